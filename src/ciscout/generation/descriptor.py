"""Config descriptors and deduplication.

A descriptor is the flag record a scanner derives for one buildable
variant. Its config name is a pure function of the flag values, and
pipelines are rendered once per distinct descriptor.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from ciscout.core.logging import get_logger
from ciscout.core.models import ConfigMap

LOGGER = get_logger(__name__)


class ConfigNameCollisionError(ValueError):
    """Two structurally different descriptors produced the same config name."""


@dataclass(frozen=True)
class ConfigDescriptor:
    """Base descriptor: ``{prefix}[-{qualifier}...]-config``.

    Subclasses declare their flags as dataclass fields and override
    ``prefix`` and ``qualifiers``. Qualifiers are always emitted in field
    declaration order.
    """

    @property
    def prefix(self) -> str:
        raise NotImplementedError

    def qualifiers(self) -> List[str]:
        return []

    @property
    def config_name(self) -> str:
        return "-".join([self.prefix, *self.qualifiers(), "config"])

    def flags(self) -> Dict[str, object]:
        """Flag values keyed by field name, in declaration order."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


class XcodeProjectType(str, Enum):
    IOS = "ios"
    MACOS = "macos"


@dataclass(frozen=True)
class XcodeConfigDescriptor(ConfigDescriptor):
    project_type: XcodeProjectType = XcodeProjectType.IOS
    has_podfile: bool = False
    carthage_command: str = ""
    has_test: bool = False
    has_app_clip: bool = False
    export_method: str = ""
    missing_shared_schemes: bool = False

    @property
    def prefix(self) -> str:
        return self.project_type.value

    def qualifiers(self) -> List[str]:
        parts: List[str] = []
        if self.has_podfile:
            parts.append("pod")
        if self.carthage_command:
            parts.append("carthage")
        if self.has_test:
            parts.append("test")
        if self.has_app_clip:
            parts.append(f"app-clip-{self.export_method}")
        if self.missing_shared_schemes:
            parts.append("missing-shared-schemes")
        return parts


@dataclass(frozen=True)
class FlutterConfigDescriptor(ConfigDescriptor):
    has_test: bool = False
    has_ios: bool = False
    has_android: bool = False
    # Distinguishes projects that share flags but live in different locations.
    project_id: int = 0

    @property
    def prefix(self) -> str:
        return "flutter"

    @property
    def platform(self) -> str:
        if self.has_ios and self.has_android:
            return "both"
        if self.has_ios:
            return "ios"
        if self.has_android:
            return "android"
        return ""

    @property
    def config_name(self) -> str:
        name = "flutter-config-" + ("test" if self.has_test else "notest")
        if self.platform:
            name += f"-{self.platform}"
        return f"{name}-{self.project_id}"


@dataclass(frozen=True)
class ReactNativeConfigDescriptor(ConfigDescriptor):
    has_android: bool = False
    has_ios: bool = False
    has_test: bool = False

    @property
    def prefix(self) -> str:
        return "react-native"

    def qualifiers(self) -> List[str]:
        parts: List[str] = []
        if self.has_android:
            parts.append("android")
        if self.has_ios:
            parts.append("ios")
        if self.has_test:
            parts.append("test")
        return parts


@dataclass(frozen=True)
class XamarinConfigDescriptor(ConfigDescriptor):
    has_nuget: bool = False
    has_components: bool = False

    @property
    def prefix(self) -> str:
        return "xamarin"

    def qualifiers(self) -> List[str]:
        parts: List[str] = []
        if self.has_nuget:
            parts.append("nuget")
        if self.has_components:
            parts.append("components")
        return parts


def dedupe_descriptors(descriptors: Iterable[ConfigDescriptor]) -> List[ConfigDescriptor]:
    """Keep the first of each structurally equal descriptor.

    Raises:
        ConfigNameCollisionError: If two different descriptors share a name.
    """
    unique: List[ConfigDescriptor] = []
    by_name: Dict[str, ConfigDescriptor] = {}
    for descriptor in descriptors:
        name = descriptor.config_name
        existing: Optional[ConfigDescriptor] = by_name.get(name)
        if existing is None:
            by_name[name] = descriptor
            unique.append(descriptor)
        elif existing != descriptor:
            raise ConfigNameCollisionError(
                f"Config name '{name}' produced by different descriptors: "
                f"{existing.flags()} and {descriptor.flags()}"
            )
    return unique


def generate_config_map(
    descriptors: Iterable[ConfigDescriptor],
    render: Callable[[ConfigDescriptor], str],
) -> ConfigMap:
    """Render one pipeline per distinct descriptor."""
    configs: ConfigMap = {}
    for descriptor in dedupe_descriptors(descriptors):
        LOGGER.debug(f"Generating config: {descriptor.config_name}")
        configs[descriptor.config_name] = render(descriptor)
    return configs
