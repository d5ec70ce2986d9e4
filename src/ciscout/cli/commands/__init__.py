"""CLI commands package.

This module provides the base Command class and exports all command implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from argparse import Namespace
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ciscout.config.models import CIScoutConfig


class Command(ABC):
    """Base class for CLI commands.

    All CLI commands should inherit from this class and implement
    the execute method.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Command identifier."""

    @abstractmethod
    def execute(self, args: Namespace, config: Optional["CIScoutConfig"] = None) -> int:
        """Execute the command.

        Args:
            args: Parsed command-line arguments.
            config: Loaded ciscout configuration, for commands that scan.

        Returns:
            Exit code (0 for success, non-zero for error).
        """


# ruff: noqa: E402
from ciscout.cli.commands.config import ConfigCommand
from ciscout.cli.commands.init import InitCommand
from ciscout.cli.commands.manual_config import ManualConfigCommand

__all__ = [
    "Command",
    "ConfigCommand",
    "InitCommand",
    "ManualConfigCommand",
]
