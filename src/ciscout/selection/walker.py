"""Interactive walk of an option tree down to one config.

Selector nodes offer their child values; user-input nodes ask for free text
and descend into the single placeholder child. Untitled nodes never prompt.
Every node with an ``env_key`` contributes one ``{env_key: value}`` app env.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

import questionary
import yaml
from questionary import Style

from ciscout.core.logging import get_logger
from ciscout.core.models import OptionNode, ScanResult
from ciscout.generation.builder import to_yaml

LOGGER = get_logger(__name__)

MAX_WALK_DEPTH = 32
CUSTOM_VALUE_CHOICE = "<custom value>"
PLACEHOLDER_VALUE = "_"

STYLE = Style([
    ("qmark", "fg:cyan bold"),
    ("question", "bold"),
    ("answer", "fg:cyan"),
    ("pointer", "fg:cyan bold"),
    ("highlighted", "fg:cyan bold"),
    ("selected", "fg:green"),
    ("instruction", "fg:gray"),
])


class OptionSelectionError(Exception):
    """The walk cannot reach a config."""


class Prompter(Protocol):
    def select(self, title: str, choices: List[str], summary: str = "") -> str:
        ...

    def text(self, title: str, default: str = "", summary: str = "") -> str:
        ...


class QuestionaryPrompter:
    """Prompter backed by questionary. Ctrl+C raises KeyboardInterrupt."""

    def select(self, title: str, choices: List[str], summary: str = "") -> str:
        answer = questionary.select(
            title,
            choices=choices,
            instruction=summary or None,
            style=STYLE,
        ).ask()
        if answer is None:
            raise KeyboardInterrupt
        return answer

    def text(self, title: str, default: str = "", summary: str = "") -> str:
        answer = questionary.text(
            title,
            default=default,
            instruction=summary or None,
            style=STYLE,
        ).ask()
        if answer is None:
            raise KeyboardInterrupt
        return answer


@dataclass
class Selection:
    config_name: str
    envs: List[Dict[str, str]] = field(default_factory=list)


class OptionWalker:
    """Walks an option tree, asking the prompter at every real decision."""

    def __init__(self, prompter: Prompter, max_depth: int = MAX_WALK_DEPTH) -> None:
        self._prompter = prompter
        self._max_depth = max_depth

    def walk(self, root: OptionNode) -> Selection:
        """Walk from ``root`` to a terminal node.

        Raises:
            OptionSelectionError: On an unknown selector value, a node without
                children or a walk deeper than ``max_depth``.
        """
        envs: List[Dict[str, str]] = []
        node = root
        for _ in range(self._max_depth + 1):
            if node.is_terminal:
                return Selection(config_name=node.config or "", envs=envs)
            if not node.children:
                raise OptionSelectionError(f"Option '{node.title}' has no values")

            if not node.title:
                key = next(iter(node.children))
                LOGGER.debug(f"Auto-descending into untitled option value '{key}'")
                value = "" if key == PLACEHOLDER_VALUE else key
                child = node.children[key]
            else:
                value = self._answer(node)
                child = self._child(node, value)
            if node.env_key:
                envs.append({node.env_key: value})
            node = child

        raise OptionSelectionError(
            f"Option tree is deeper than {self._max_depth} levels"
        )

    def _answer(self, node: OptionNode) -> str:
        values = list(node.children)
        if not node.type.is_selector:
            default = "" if node.type.is_optional or values[0] == PLACEHOLDER_VALUE else values[0]
            return self._prompter.text(node.title, default=default, summary=node.summary)

        if len(values) == 1:
            LOGGER.debug(f"Auto-selecting '{values[0]}' for '{node.title}'")
            return values[0]

        choices = list(values)
        if node.type.is_optional:
            choices.append(CUSTOM_VALUE_CHOICE)
        answer = self._prompter.select(node.title, choices, summary=node.summary)
        if answer == CUSTOM_VALUE_CHOICE:
            return self._prompter.text(node.title, default="", summary=node.summary)
        return answer

    @staticmethod
    def _child(node: OptionNode, value: str) -> OptionNode:
        child = node.children.get(value)
        if child is not None:
            return child
        if node.type.is_optional or not node.type.is_selector:
            return next(iter(node.children.values()))
        raise OptionSelectionError(f"Invalid value '{value}' for option '{node.title}'")


def select_platform(scan_result: ScanResult, prompter: Prompter) -> str:
    platforms = list(scan_result.options)
    if not platforms:
        raise OptionSelectionError("no platform detected")
    if len(platforms) == 1:
        return platforms[0]
    return prompter.select("Platform", platforms)


def apply_envs(config_text: str, envs: List[Dict[str, str]]) -> str:
    """Append ``envs`` to the app envs of a pipeline document."""
    data = yaml.safe_load(config_text) or {}
    if envs:
        app = data.setdefault("app", {}) or {}
        data["app"] = app
        app["envs"] = list(app.get("envs") or []) + [dict(env) for env in envs]
    return to_yaml(data)


def ask_for_config(scan_result: ScanResult, prompter: Optional[Prompter] = None) -> str:
    """Let the user pick one config of a scan result; return its YAML.

    Raises:
        OptionSelectionError: If nothing was detected or the walk fails.
    """
    prompter = prompter or QuestionaryPrompter()
    platform = select_platform(scan_result, prompter)
    LOGGER.info(f"Selected platform: {platform}")

    selection = OptionWalker(prompter).walk(scan_result.options[platform])
    configs = scan_result.configs.get(platform) or {}
    config_text = configs.get(selection.config_name)
    if config_text is None:
        raise OptionSelectionError(
            f"Config '{selection.config_name}' not found for platform {platform}"
        )
    return apply_envs(config_text, selection.envs)
