"""Shared type aliases for the core and domain layers."""
from typing import Literal

LineMode = Literal["spoken", "action"]
EngineStatus = Literal["awaiting_prompt", "awaiting_choice", "awaiting_input", "ended", "handed_off"]
TurnKind = Literal["choice", "input", "ending", "handoff"]

LINE_MODES: frozenset[str] = frozenset({"spoken", "action"})

__all__ = ["EngineStatus", "LINE_MODES", "LineMode", "TurnKind"]
