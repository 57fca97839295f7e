"""Runtime errors raised while playing dialogue content.

Every error here points at a content defect or a misuse of the engine API.
None of them are recoverable inside the engine: the caller decides whether to
abort the session or restart it at another node.
"""


class DialogueError(Exception):
    """Base exception for the dialogue runtime."""


class UnknownNodeError(DialogueError):
    """Raised when a jump reference does not name a loaded node."""

    def __init__(self, reference: str, detail: str | None = None) -> None:
        self.reference = reference
        message = f"Unknown dialogue node '{reference}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnknownVariableError(DialogueError):
    """Raised when a substitution variable was never captured."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Variable '{name}' has not been set.")


class NoEligibleChoiceError(DialogueError):
    """Raised when current flags leave a node without any branch."""

    def __init__(self, node: str) -> None:
        self.node = node
        super().__init__(f"No eligible choice at node '{node}'.")


class MalformedNodeError(DialogueError):
    """Raised when a node cannot be played as authored."""

    def __init__(self, node: str, reason: str) -> None:
        self.node = node
        self.reason = reason
        super().__init__(f"Malformed node '{node}': {reason}")


class AutoAdvanceLimitError(DialogueError):
    """Raised when hidden choices keep advancing without reaching a player decision."""


class DialogueStateError(DialogueError):
    """Raised when the engine is driven out of order."""
