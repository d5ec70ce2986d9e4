from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

# Config name -> generated pipeline YAML text.
ConfigMap = Dict[str, str]

# Arbitrary structured remediation hints attached to a warning or error.
Recommendation = Dict[str, Any]


class InvalidOptionTreeError(ValueError):
    """Raised when an option tree violates the internal/terminal node invariant."""


class OptionType(str, Enum):
    """How a decision node asks for its value."""

    SELECTOR = "selector"
    OPTIONAL_SELECTOR = "optional_selector"
    USER_INPUT = "user_input"
    OPTIONAL_USER_INPUT = "optional_user_input"

    @property
    def is_optional(self) -> bool:
        return self in (OptionType.OPTIONAL_SELECTOR, OptionType.OPTIONAL_USER_INPUT)

    @property
    def is_selector(self) -> bool:
        return self in (OptionType.SELECTOR, OptionType.OPTIONAL_SELECTOR)


@dataclass
class OptionNode:
    """A node of the decision tree produced by a scanner.

    A node is either internal (it has children and no config) or terminal
    (config is set and it has no children). Terminal-ness is decided by the
    presence of ``config``, never by an empty ``children`` map.
    """

    title: str = ""
    summary: str = ""
    env_key: str = ""
    type: OptionType = OptionType.SELECTOR
    children: Dict[str, "OptionNode"] = field(default_factory=dict)
    config: Optional[str] = None
    icons: List[str] = field(default_factory=list)

    @classmethod
    def new_option(
        cls,
        title: str,
        summary: str,
        env_key: str,
        option_type: OptionType = OptionType.SELECTOR,
    ) -> "OptionNode":
        """Create an internal decision node."""
        return cls(title=title, summary=summary, env_key=env_key, type=option_type)

    @classmethod
    def new_config_option(cls, name: str, icons: Optional[List[str]] = None) -> "OptionNode":
        """Create a terminal node pointing at config ``name``."""
        return cls(config=name, icons=list(icons or []))

    @property
    def is_terminal(self) -> bool:
        return self.config is not None

    def add_option(self, value: str, child: "OptionNode") -> None:
        """Attach ``child`` under ``value``. Re-adding a value replaces it."""
        if self.is_terminal:
            raise InvalidOptionTreeError(
                f"Cannot add option '{value}' to terminal node for config '{self.config}'"
            )
        self.children[value] = child

    def add_config(self, value: str, config_node: "OptionNode") -> None:
        """Attach a terminal ``config_node`` under ``value``."""
        if not config_node.is_terminal:
            raise InvalidOptionTreeError(f"Option '{value}' must point at a config node")
        self.add_option(value, config_node)

    def validate(self) -> None:
        """Check the invariant for every node of the tree.

        Raises:
            InvalidOptionTreeError: If a node is both terminal and internal, or
                neither.
        """
        for path, node in self._walk(()):
            location = "/".join(path) or "<root>"
            if node.is_terminal and node.children:
                raise InvalidOptionTreeError(
                    f"Node at {location} has both a config and children"
                )
            if not node.is_terminal and not node.children:
                raise InvalidOptionTreeError(
                    f"Node at {location} has neither a config nor children"
                )

    def depth(self) -> int:
        """Number of decisions on the longest root-to-leaf path."""
        if self.is_terminal or not self.children:
            return 0
        return 1 + max(child.depth() for child in self.children.values())

    def leaves(self) -> List[Tuple[Tuple[str, ...], str]]:
        """Return (value path, config name) for every terminal node."""
        return [
            (path, node.config)
            for path, node in self._walk(())
            if node.config is not None
        ]

    def config_names(self) -> List[str]:
        """Distinct config names referenced by the tree, in first-seen order."""
        names: List[str] = []
        for _, name in self.leaves():
            if name not in names:
                names.append(name)
        return names

    def _walk(self, path: Tuple[str, ...]) -> Iterator[Tuple[Tuple[str, ...], "OptionNode"]]:
        yield path, self
        for value, child in self.children.items():
            yield from child._walk(path + (value,))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.title:
            data["title"] = self.title
        if self.summary:
            data["summary"] = self.summary
        if self.env_key:
            data["env_key"] = self.env_key
        if not self.is_terminal:
            data["type"] = self.type.value
        if self.children:
            data["value_map"] = {
                value: child.to_dict() for value, child in self.children.items()
            }
        if self.config is not None:
            data["config"] = self.config
        if self.icons:
            data["icons"] = list(self.icons)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OptionNode":
        node = cls(
            title=data.get("title", ""),
            summary=data.get("summary", ""),
            env_key=data.get("env_key", ""),
            type=OptionType(data.get("type", OptionType.SELECTOR.value)),
            config=data.get("config"),
            icons=list(data.get("icons") or []),
        )
        for value, child in (data.get("value_map") or {}).items():
            node.children[value] = cls.from_dict(child)
        return node


@dataclass(frozen=True)
class Icon:
    """An app icon discovered by a scanner.

    ``filename`` is derived from the path relative to the search directory so
    the same file always gets the same id.
    """

    filename: str
    path: Path

    @classmethod
    def from_path(cls, path: Path, search_dir: Path) -> "Icon":
        try:
            relative = path.resolve().relative_to(search_dir.resolve())
        except ValueError:
            relative = path
        digest = hashlib.sha256(relative.as_posix().encode("utf-8")).hexdigest()
        return cls(filename=digest + os.path.splitext(path.name)[1], path=path)


@dataclass
class ErrorWithRecommendations:
    """A warning or error message with structured remediation attached."""

    error: str
    recommendations: Recommendation = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "recommendations": self.recommendations}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorWithRecommendations":
        return cls(error=data.get("error", ""), recommendations=data.get("recommendations") or {})


@dataclass
class ScanResult:
    """Aggregate output of one scan, keyed by scanner name."""

    options: Dict[str, OptionNode] = field(default_factory=dict)
    configs: Dict[str, ConfigMap] = field(default_factory=dict)
    warnings: Dict[str, List[str]] = field(default_factory=dict)
    errors: Dict[str, List[str]] = field(default_factory=dict)
    warnings_with_recommendations: Dict[str, List[ErrorWithRecommendations]] = field(
        default_factory=dict
    )
    errors_with_recommendations: Dict[str, List[ErrorWithRecommendations]] = field(
        default_factory=dict
    )
    icons: List[Icon] = field(default_factory=list)

    def add_error_with_recommendation(self, scanner: str, entry: ErrorWithRecommendations) -> None:
        self.errors_with_recommendations.setdefault(scanner, []).append(entry)

    def add_icons(self, icons: List[Icon]) -> None:
        """Add icons, skipping any whose filename is already known."""
        known = {icon.filename for icon in self.icons}
        for icon in icons:
            if icon.filename not in known:
                self.icons.append(icon)
                known.add(icon.filename)

    def detected_scanners(self) -> List[str]:
        return list(self.options.keys())

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.options:
            data["options"] = {name: node.to_dict() for name, node in self.options.items()}
        if self.configs:
            data["configs"] = {name: dict(configs) for name, configs in self.configs.items()}
        if self.warnings:
            data["warnings"] = {name: list(items) for name, items in self.warnings.items()}
        if self.errors:
            data["errors"] = {name: list(items) for name, items in self.errors.items()}
        if self.warnings_with_recommendations:
            data["warnings_with_recommendations"] = {
                name: [item.to_dict() for item in items]
                for name, items in self.warnings_with_recommendations.items()
            }
        if self.errors_with_recommendations:
            data["errors_with_recommendations"] = {
                name: [item.to_dict() for item in items]
                for name, items in self.errors_with_recommendations.items()
            }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanResult":
        return cls(
            options={
                name: OptionNode.from_dict(node)
                for name, node in (data.get("options") or {}).items()
            },
            configs={name: dict(cfg) for name, cfg in (data.get("configs") or {}).items()},
            warnings={name: list(w) for name, w in (data.get("warnings") or {}).items()},
            errors={name: list(e) for name, e in (data.get("errors") or {}).items()},
            warnings_with_recommendations={
                name: [ErrorWithRecommendations.from_dict(item) for item in items]
                for name, items in (data.get("warnings_with_recommendations") or {}).items()
            },
            errors_with_recommendations={
                name: [ErrorWithRecommendations.from_dict(item) for item in items]
                for name, items in (data.get("errors_with_recommendations") or {}).items()
            },
        )
