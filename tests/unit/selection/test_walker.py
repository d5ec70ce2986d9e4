"""Tests for the interactive option walk."""

from __future__ import annotations

from typing import List, Tuple
from unittest.mock import MagicMock, patch

import pytest
import yaml

from ciscout.core.models import OptionNode, OptionType, ScanResult
from ciscout.generation import steps
from ciscout.generation.builder import PRIMARY_WORKFLOW_ID, ConfigBuilder, to_yaml
from ciscout.selection.walker import (
    CUSTOM_VALUE_CHOICE,
    OptionSelectionError,
    OptionWalker,
    QuestionaryPrompter,
    apply_envs,
    ask_for_config,
    select_platform,
)


class ScriptedPrompter:
    """Answers prompts from a queue and records what was asked."""

    def __init__(self, *answers: str) -> None:
        self._answers = list(answers)
        self.asked: List[Tuple[str, str, object]] = []

    def select(self, title: str, choices: List[str], summary: str = "") -> str:
        self.asked.append(("select", title, list(choices)))
        return self._answers.pop(0)

    def text(self, title: str, default: str = "", summary: str = "") -> str:
        self.asked.append(("text", title, default))
        return self._answers.pop(0)


def _xcode_like_tree() -> OptionNode:
    root = OptionNode.new_option("Project path", "", "BITRISE_PROJECT_PATH")
    scheme = OptionNode.new_option("Scheme", "", "BITRISE_SCHEME")
    root.add_option("App.xcodeproj", scheme)
    method = OptionNode.new_option("Method", "", "BITRISE_DISTRIBUTION_METHOD")
    scheme.add_option("App", method)
    scheme.add_option("AppTests", method)
    for value in ("app-store", "development"):
        method.add_config(value, OptionNode.new_config_option("ios-config"))
    return root


def _pipeline() -> str:
    builder = ConfigBuilder().append_steps(PRIMARY_WORKFLOW_ID, steps.git_clone())
    return to_yaml(builder.generate("ios", [{"EXISTING": "1"}]))


class TestOptionWalker:
    """Tests for OptionWalker.walk."""

    def test_single_value_selectors_auto_descend(self) -> None:
        """Test that one-choice selectors are answered without prompting."""
        prompter = ScriptedPrompter("AppTests", "development")
        selection = OptionWalker(prompter).walk(_xcode_like_tree())
        assert selection.config_name == "ios-config"
        assert selection.envs == [
            {"BITRISE_PROJECT_PATH": "App.xcodeproj"},
            {"BITRISE_SCHEME": "AppTests"},
            {"BITRISE_DISTRIBUTION_METHOD": "development"},
        ]
        assert [asked[1] for asked in prompter.asked] == ["Scheme", "Method"]

    def test_untitled_selector_is_not_asked(self) -> None:
        """Test that a selector without title picks its first value silently."""
        root = OptionNode.new_option("", "", "")
        root.add_config("a", OptionNode.new_config_option("first"))
        root.add_config("b", OptionNode.new_config_option("second"))
        prompter = ScriptedPrompter()
        selection = OptionWalker(prompter).walk(root)
        assert selection == type(selection)(config_name="first", envs=[])
        assert prompter.asked == []

    def test_untitled_user_input_auto_descends(self) -> None:
        """Test that an untitled user input node is not asked and records an empty value."""
        root = OptionNode.new_option("", "", "KEY", OptionType.USER_INPUT)
        root.add_config("_", OptionNode.new_config_option("cfg"))
        prompter = ScriptedPrompter()
        selection = OptionWalker(prompter).walk(root)
        assert selection.config_name == "cfg"
        assert selection.envs == [{"KEY": ""}]
        assert prompter.asked == []

    def test_untitled_node_records_concrete_value(self) -> None:
        """Test that an untitled node records its first child key as the env value."""
        root = OptionNode.new_option("", "", "MODULE")
        root.add_config("app", OptionNode.new_config_option("cfg"))
        selection = OptionWalker(ScriptedPrompter()).walk(root)
        assert selection.envs == [{"MODULE": "app"}]

    def test_titled_user_input_prompts_with_placeholder(self) -> None:
        """Test that titled user input nodes ask even with a single placeholder child."""
        root = OptionNode.new_option("Location", "", "PROJECT_LOCATION", OptionType.USER_INPUT)
        root.add_config("_", OptionNode.new_config_option("cfg"))
        prompter = ScriptedPrompter("./android")
        selection = OptionWalker(prompter).walk(root)
        assert selection.envs == [{"PROJECT_LOCATION": "./android"}]
        assert prompter.asked == [("text", "Location", "")]

    def test_user_input_default_is_first_value(self) -> None:
        """Test that a concrete child value is offered as the default."""
        root = OptionNode.new_option("Team", "", "TEAM", OptionType.USER_INPUT)
        root.add_config("ABC123", OptionNode.new_config_option("cfg"))
        prompter = ScriptedPrompter("XYZ")
        assert OptionWalker(prompter).walk(root).config_name == "cfg"
        assert prompter.asked == [("text", "Team", "ABC123")]

    def test_optional_selector_custom_value(self) -> None:
        """Test that optional selectors accept a custom value."""
        root = OptionNode.new_option("Lane", "", "FASTLANE_LANE", OptionType.OPTIONAL_SELECTOR)
        root.add_config("beta", OptionNode.new_config_option("cfg"))
        root.add_config("release", OptionNode.new_config_option("cfg"))
        prompter = ScriptedPrompter(CUSTOM_VALUE_CHOICE, "nightly")
        selection = OptionWalker(prompter).walk(root)
        assert selection.envs == [{"FASTLANE_LANE": "nightly"}]
        assert CUSTOM_VALUE_CHOICE in prompter.asked[0][2]

    def test_unknown_selector_value_raises(self) -> None:
        """Test that a non-optional selector rejects values it does not offer."""
        prompter = ScriptedPrompter("Other", "x")
        with pytest.raises(OptionSelectionError, match="Invalid value 'Other'"):
            OptionWalker(prompter).walk(_xcode_like_tree())

    def test_childless_node_raises(self) -> None:
        """Test that a broken tree is reported instead of looping."""
        with pytest.raises(OptionSelectionError, match="has no values"):
            OptionWalker(ScriptedPrompter()).walk(OptionNode.new_option("Empty", "", ""))

    def test_depth_limit(self) -> None:
        """Test that walks deeper than max_depth are rejected."""
        root = node = OptionNode.new_option("", "", "")
        for _ in range(5):
            child = OptionNode.new_option("", "", "")
            node.add_option("v", child)
            node = child
        node.add_config("v", OptionNode.new_config_option("cfg"))
        assert OptionWalker(ScriptedPrompter(), max_depth=6).walk(root).config_name == "cfg"
        with pytest.raises(OptionSelectionError, match="deeper than 3"):
            OptionWalker(ScriptedPrompter(), max_depth=3).walk(root)


class TestSelection:
    """Tests for the module level helpers."""

    def test_select_platform(self) -> None:
        """Test platform selection rules."""
        with pytest.raises(OptionSelectionError, match="no platform detected"):
            select_platform(ScanResult(), ScriptedPrompter())
        single = ScanResult(options={"android": OptionNode.new_config_option("x")})
        assert select_platform(single, ScriptedPrompter()) == "android"
        both = ScanResult(
            options={"android": OptionNode.new_config_option("x"), "ios": OptionNode.new_config_option("y")}
        )
        prompter = ScriptedPrompter("ios")
        assert select_platform(both, prompter) == "ios"
        assert prompter.asked == [("select", "Platform", ["android", "ios"])]

    def test_apply_envs_appends(self) -> None:
        """Test that selected envs follow the existing app envs."""
        data = yaml.safe_load(apply_envs(_pipeline(), [{"BITRISE_SCHEME": "App"}]))
        assert data["app"]["envs"] == [{"EXISTING": "1"}, {"BITRISE_SCHEME": "App"}]
        assert list(data)[0] == "format_version"

    def test_ask_for_config(self) -> None:
        """Test the full walk from scan result to pipeline text."""
        result = ScanResult(
            options={"ios": _xcode_like_tree()},
            configs={"ios": {"ios-config": _pipeline()}},
        )
        text = ask_for_config(result, ScriptedPrompter("App", "app-store"))
        envs = yaml.safe_load(text)["app"]["envs"]
        assert {"BITRISE_SCHEME": "App"} in envs
        assert {"BITRISE_DISTRIBUTION_METHOD": "app-store"} in envs

    def test_ask_for_config_missing_config(self) -> None:
        """Test that a leaf without a config body is an error."""
        result = ScanResult(options={"ios": _xcode_like_tree()}, configs={"ios": {}})
        with pytest.raises(OptionSelectionError, match="not found"):
            ask_for_config(result, ScriptedPrompter("App", "app-store"))


class TestQuestionaryPrompter:
    """Tests for the questionary backed prompter."""

    def test_cancel_raises_keyboard_interrupt(self) -> None:
        """Test that a cancelled prompt becomes KeyboardInterrupt."""
        question = MagicMock()
        question.ask.return_value = None
        with patch("ciscout.selection.walker.questionary.select", return_value=question):
            with pytest.raises(KeyboardInterrupt):
                QuestionaryPrompter().select("Title", ["a"])

    def test_text_answer(self) -> None:
        """Test that a text answer is returned as is."""
        question = MagicMock()
        question.ask.return_value = "value"
        with patch("ciscout.selection.walker.questionary.text", return_value=question) as mock_text:
            assert QuestionaryPrompter().text("Title", default="d") == "value"
        assert mock_text.call_args.kwargs["default"] == "d"
