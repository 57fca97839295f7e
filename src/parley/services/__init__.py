"""Service layer exports."""

from .dialogue_engine import ChoiceView, DialogueEngine, DialogueTurn, LineView
from .dialogue_graph_validator import EntryRoot, Issue, format_issue, validate_dialogue_graphs

__all__ = [
    "ChoiceView",
    "DialogueEngine",
    "DialogueTurn",
    "EntryRoot",
    "Issue",
    "LineView",
    "format_issue",
    "validate_dialogue_graphs",
]
