"""Interactive option selection."""

from ciscout.selection.walker import (
    MAX_WALK_DEPTH,
    OptionSelectionError,
    OptionWalker,
    Prompter,
    QuestionaryPrompter,
    Selection,
    ask_for_config,
)

__all__ = [
    "MAX_WALK_DEPTH",
    "OptionSelectionError",
    "OptionWalker",
    "Prompter",
    "QuestionaryPrompter",
    "Selection",
    "ask_for_config",
]
