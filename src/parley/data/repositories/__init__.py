"""Repository exports."""

from .dialogue_repo import DialogueRepository

__all__ = ["DialogueRepository"]
