"""Error and warning classification.

Maps raw scanner messages to user-facing remediation. Each tag owns an
ordered list of pattern rules; the first matching rule builds the detail,
otherwise the tag's generic builder does. Generic builders always keep the
raw message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from ciscout.core.models import Recommendation

DETAILED_ERROR_KEY = "DetailedError"
NO_PLATFORM_DETECTED_KEY = "NoPlatformDetected"

DETECT_PLATFORM_FAILED_TAG = "detect_platform_failed"
OPTIONS_FAILED_TAG = "options_failed"
CONFIGS_FAILED_TAG = "configs_failed"
NO_PLATFORM_DETECTED_TAG = "no_platform_detected"

DetailBuilder = Callable[[str, Sequence[str]], Dict[str, str]]
GenericBuilder = Callable[[str], Dict[str, str]]


@dataclass(frozen=True)
class PatternRule:
    """A compiled pattern and the builder fed with its captured groups."""

    pattern: "re.Pattern[str]"
    builder: DetailBuilder

    @classmethod
    def of(cls, pattern: str, builder: DetailBuilder) -> "PatternRule":
        return cls(pattern=re.compile(pattern), builder=builder)

    def apply(self, message: str) -> Optional[Dict[str, str]]:
        match = self.pattern.search(message)
        if match is None:
            return None
        return self.builder(message, match.groups())


@dataclass(frozen=True)
class PatternErrorMatcher:
    rules: Sequence[PatternRule]
    default_builder: GenericBuilder

    def run(self, message: str) -> Dict[str, str]:
        for rule in self.rules:
            detail = rule.apply(message)
            if detail is not None:
                return detail
        return self.default_builder(message)


def _detail(title: str, description: str) -> Dict[str, str]:
    return {"title": title, "description": description}


def generic_detail(message: str) -> Dict[str, str]:
    return _detail(message, "For more information, please see the log.")


def detect_platform_failed_detail(message: str) -> Dict[str, str]:
    return _detail(
        "We couldn’t parse your project files.",
        "You can fix the problem and try again, or skip auto-configuration and set up "
        "your project manually. Our auto-configurator returned the following error:\n"
        f"{message}",
    )


def _gradlew_not_found_detail(message: str, groups: Sequence[str]) -> Dict[str, str]:
    return _detail(
        "We couldn’t find your Gradle Wrapper. Please make sure there is a gradlew file "
        "in your project’s root directory.",
        "The Gradle Wrapper ensures that the right Gradle version is installed and used "
        "for the build. You can find out more about <a target=\"_blank\" "
        "href=\"https://docs.gradle.org/current/userguide/gradle_wrapper.html\">the "
        "Gradle Wrapper in the Gradle docs</a>.",
    )


def _app_json_detail(message: str, groups: Sequence[str]) -> Dict[str, str]:
    app_json_path, entry = groups[0], groups[1]
    return _detail(
        f"Your app.json file ({app_json_path}) doesn’t have a {entry} field.",
        "The app.json file needs to contain the following entries:\n- name\n- displayName",
    )


def _expo_app_json_detail(message: str, groups: Sequence[str]) -> Dict[str, str]:
    app_json_path, entry = groups[0], groups[1]
    return _detail(
        f"Your app.json file ({app_json_path}) doesn’t have a {entry} field.",
        "If your project uses Expo Kit, the app.json file needs to contain the following "
        "entries:\n- expo/name\n- expo/ios/bundleIdentifier\n- expo/android/package",
    )


def _cordova_config_not_found_detail(message: str, groups: Sequence[str]) -> Dict[str, str]:
    return _detail(
        "We couldn’t find your cordova.xml file.",
        "Our auto-configurator only supports Ionic projects with Cordova at the moment. "
        "If you’re trying to add a project with Ionic Capacitor, or something else, some "
        "Steps in your automatically generated Workflow might fail. To fix this, replace "
        "the failing Steps with script Steps in the Workflow editor later.",
    )


OPTIONS_FAILED_RULES: List[PatternRule] = [
    PatternRule.of(r"No Gradle Wrapper \(gradlew\) found\.", _gradlew_not_found_detail),
    PatternRule.of(
        r"app\.json file \((.+)\) missing or empty (.+) entry\n"
        r"The app\.json file needs to contain:",
        _app_json_detail,
    ),
    PatternRule.of(
        r"app\.json file \((.+)\) missing or empty (.+) entry\n"
        r"If the project uses Expo Kit the app\.json file needs to contain:",
        _expo_app_json_detail,
    ),
    PatternRule.of(r"Cordova config\.xml not found\.", _cordova_config_not_found_detail),
]

MATCHERS: Dict[str, PatternErrorMatcher] = {
    DETECT_PLATFORM_FAILED_TAG: PatternErrorMatcher(
        rules=(), default_builder=detect_platform_failed_detail
    ),
    OPTIONS_FAILED_TAG: PatternErrorMatcher(
        rules=tuple(OPTIONS_FAILED_RULES), default_builder=detect_platform_failed_detail
    ),
}

GENERIC_MATCHER = PatternErrorMatcher(rules=(), default_builder=generic_detail)


def classify(tag: str, message: str) -> Optional[Recommendation]:
    """Build the recommendation for a tagged message.

    Returns:
        ``{"DetailedError": {"title": ..., "description": ...}}``, or None for
        an empty message.
    """
    if not message:
        return None
    matcher = MATCHERS.get(tag, GENERIC_MATCHER)
    return {DETAILED_ERROR_KEY: matcher.run(message)}


def no_platform_detected_recommendation(scanner_names: Sequence[str]) -> Recommendation:
    return {
        NO_PLATFORM_DETECTED_KEY: True,
        DETAILED_ERROR_KEY: _detail(
            "We couldn’t recognize your platform.",
            f"Our auto-configurator supports {', '.join(scanner_names)} projects. "
            "If you’re adding something else, skip this step and configure your "
            "Workflow manually.",
        ),
    }
