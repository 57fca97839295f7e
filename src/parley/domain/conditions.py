"""Choice eligibility and effect application."""
from __future__ import annotations

import logging
from typing import List, Tuple

from parley.domain.defs import ChoiceDef, NodeDef, RequirementTerm
from parley.domain.flags import FlagStore

logger = logging.getLogger(__name__)


def term_satisfied(term: RequirementTerm, store: FlagStore) -> bool:
    return store.is_set(term.flag) != term.negated


def is_eligible(choice: ChoiceDef, store: FlagStore) -> bool:
    """Return True if the choice can be taken with the current flags.

    A set ``once`` flag blocks the choice before any ``require`` term is read.
    """
    notes = choice.notes
    if notes.once is not None and store.is_set(notes.once):
        return False
    return all(term_satisfied(term, store) for term in notes.require)


def eligible_choices(node: NodeDef, store: FlagStore) -> List[Tuple[int, ChoiceDef]]:
    """Return ``(authored_index, choice)`` pairs that are currently eligible."""
    return [(index, choice) for index, choice in enumerate(node.choices) if is_eligible(choice, store)]


def apply_effects(choice: ChoiceDef, store: FlagStore) -> List[str]:
    """Set the choice's ``once`` flag and then its ``apply`` flags.

    Returns the flags that were newly set, in application order.
    """
    newly_set: List[str] = []
    pending = [choice.notes.once] if choice.notes.once is not None else []
    pending.extend(choice.notes.apply)
    for flag in pending:
        if store.set(flag):
            newly_set.append(flag)
            logger.debug("flag set: %s", flag)
    return newly_set
