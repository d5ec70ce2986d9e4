"""Bridge between CLI arguments and configuration models."""

from __future__ import annotations

import argparse
from typing import Any, Dict


class ConfigBridge:
    """Translates CLI arguments to configuration objects."""

    @staticmethod
    def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
        """Convert CLI arguments to config override dict.

        Only options given on the command line are included, so config file
        values survive for everything else.

        Args:
            args: Parsed CLI arguments.

        Returns:
            Dictionary of config overrides.
        """
        overrides: Dict[str, Any] = {}

        if getattr(args, "public_repo", False):
            overrides["private_repository"] = False

        output: Dict[str, Any] = {}
        if getattr(args, "output_dir", None):
            output["dir"] = args.output_dir
        if getattr(args, "format", None):
            output["format"] = args.format
        if output:
            overrides["output"] = output

        upload: Dict[str, Any] = {}
        if getattr(args, "upload_url", None):
            upload["url"] = args.upload_url
        if getattr(args, "submit_url", None):
            upload["submit_url"] = args.submit_url
        if getattr(args, "api_token", None):
            upload["api_token"] = args.api_token
        if upload:
            overrides["upload"] = upload

        return overrides
