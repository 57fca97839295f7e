"""Domain definition exports."""

from .dialogue_def import (
    NEGATION_MARKER,
    PATH_SEPARATOR,
    ChoiceDef,
    ConditionDef,
    EndingDef,
    GraphDef,
    InputDef,
    LineDef,
    NodeDef,
    NodeRef,
    RequirementTerm,
    ResponseDef,
)

__all__ = [
    "NEGATION_MARKER",
    "PATH_SEPARATOR",
    "ChoiceDef",
    "ConditionDef",
    "EndingDef",
    "GraphDef",
    "InputDef",
    "LineDef",
    "NodeDef",
    "NodeRef",
    "RequirementTerm",
    "ResponseDef",
]
