"""Dialogue state machine driving flag-gated conversation graphs."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

from parley.core.types import EngineStatus, LineMode, TurnKind
from parley.domain.conditions import apply_effects, eligible_choices
from parley.domain.defs import ChoiceDef, GraphDef, LineDef, NodeDef, NodeRef
from parley.domain.errors import (
    AutoAdvanceLimitError,
    DialogueStateError,
    MalformedNodeError,
    NoEligibleChoiceError,
)
from parley.domain.flags import FlagStore
from parley.domain.graph import GraphRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_AUTO_ADVANCE = 64


@dataclass(frozen=True, slots=True)
class LineView:
    """Single prompt or ending line, with variables substituted."""

    text: str
    mode: LineMode
    node: NodeRef


@dataclass(frozen=True, slots=True)
class ChoiceView:
    """Choice offered to the player.

    ``index`` is what gets passed back to :meth:`DialogueEngine.choose`;
    ``authored_index`` is the choice's position in the node definition.
    """

    index: int
    text: str
    mode: LineMode
    tag: str | None
    authored_index: int


@dataclass(frozen=True, slots=True)
class DialogueTurn:
    """Data returned to the presentation layer at every suspension point."""

    kind: TurnKind
    node: NodeRef
    lines: Tuple[LineView, ...] = ()
    choices: Tuple[ChoiceView, ...] = ()
    variable: str | None = None
    tag: str | None = None
    target: NodeRef | None = None
    locked: bool = False

    @property
    def is_final(self) -> bool:
        """True when the engine will not produce another turn on its own."""
        return self.kind == "ending" or (self.kind == "handoff" and self.locked)


_Step = Union[DialogueTurn, Tuple[GraphDef, NodeDef]]


class DialogueEngine:
    """Walks one conversation session through a :class:`GraphRegistry`.

    The engine owns no content and no persistence. It reads graphs from the
    registry, mutates the supplied :class:`FlagStore` and hands a
    :class:`DialogueTurn` back each time it needs the caller.
    """

    def __init__(
        self,
        registry: GraphRegistry,
        flags: FlagStore | None = None,
        *,
        max_auto_advance: int = DEFAULT_MAX_AUTO_ADVANCE,
    ) -> None:
        self._registry = registry
        self.flags = flags if flags is not None else FlagStore()
        self._max_auto_advance = max_auto_advance
        self._status: EngineStatus = "awaiting_prompt"
        self._graph: GraphDef | None = None
        self._node: NodeDef | None = None
        self._offered: List[Tuple[int, ChoiceDef]] = []
        self._turn: DialogueTurn | None = None
        self._return_point: NodeRef | None = None

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def current_node(self) -> NodeRef | None:
        if self._graph is None or self._node is None:
            return None
        return NodeRef(graph=self._graph.name, node=self._node.id)

    @property
    def return_point(self) -> NodeRef | None:
        """Node that :meth:`resume` re-enters after an unlocked hand-off."""
        return self._return_point

    def start(self, reference: str) -> DialogueTurn:
        """Enter the entry node; ``reference`` must name its graph."""
        graph, node = self._registry.resolve(None, reference)
        self._return_point = None
        return self._advance(graph, node, [])

    def current_turn(self) -> DialogueTurn:
        if self._turn is None:
            raise DialogueStateError("Dialogue has not been started.")
        return self._turn

    def choose(self, index: int) -> DialogueTurn:
        """Take the visible choice at ``index`` of the current turn."""
        if self._status != "awaiting_choice":
            raise DialogueStateError(f"Cannot choose while {self._status}.")
        if not 0 <= index < len(self._offered):
            raise IndexError(f"Choice index {index} is invalid for node '{self.current_node}'.")
        _, choice = self._offered[index]
        return self._continue(self._take(choice, []))

    def submit_text(self, text: str) -> DialogueTurn:
        """Store captured text for the pending input choice and follow it."""
        if self._status != "awaiting_input":
            raise DialogueStateError(f"Cannot submit text while {self._status}.")
        _, choice = self._offered[0]
        return self._continue(self._take(choice, [], captured=text))

    def resume(self) -> DialogueTurn:
        """Re-enter the originating node after an unlocked hand-off."""
        if self._status != "handed_off":
            raise DialogueStateError(f"Cannot resume while {self._status}.")
        if self._return_point is None:
            raise DialogueStateError("Locked hand-off does not return to this conversation.")
        graph, node = self._registry.resolve(None, str(self._return_point))
        self._return_point = None
        return self._advance(graph, node, [])

    def _continue(self, step: _Step) -> DialogueTurn:
        if isinstance(step, DialogueTurn):
            return step
        graph, node = step
        return self._advance(graph, node, [])

    def _advance(self, graph: GraphDef, node: NodeDef, lines: List[LineView]) -> DialogueTurn:
        """Enter ``node`` and keep following hidden choices until the caller is needed."""
        auto_steps = 0
        while True:
            self._status = "awaiting_prompt"
            self._graph = graph
            self._node = node
            self._offered = []
            here = NodeRef(graph=graph.name, node=node.id)
            logger.debug("entering node %s", here)
            if not node.choices:
                raise MalformedNodeError(str(here), "node has no choices")
            lines.extend(self._line_view(line, here) for line in node.prompt)

            eligible = eligible_choices(node, self.flags)
            hidden = next(((index, choice) for index, choice in eligible if choice.is_hidden), None)
            if hidden is not None:
                auto_steps += 1
                if auto_steps > self._max_auto_advance:
                    raise AutoAdvanceLimitError(
                        f"More than {self._max_auto_advance} hidden choices taken in a row at '{here}'."
                    )
                logger.debug("auto-selecting hidden choice %d at %s", hidden[0], here)
                step = self._take(hidden[1], lines)
                if isinstance(step, DialogueTurn):
                    return step
                graph, node = step
                continue

            inputs = [(index, choice) for index, choice in eligible if choice.input is not None]
            if inputs:
                self._offered = inputs[:1]
                self._status = "awaiting_input"
                return self._emit(
                    DialogueTurn(kind="input", node=here, lines=tuple(lines), variable=inputs[0][1].input.variable)
                )

            if not eligible:
                raise NoEligibleChoiceError(str(here))
            self._offered = eligible
            self._status = "awaiting_choice"
            views = tuple(
                ChoiceView(
                    index=position,
                    text=self.flags.substitute(choice.response.text),
                    mode=choice.response.mode,
                    tag=choice.tag,
                    authored_index=authored_index,
                )
                for position, (authored_index, choice) in enumerate(eligible)
            )
            return self._emit(DialogueTurn(kind="choice", node=here, lines=tuple(lines), choices=views))

    def _take(self, choice: ChoiceDef, lines: List[LineView], *, captured: str | None = None) -> _Step:
        """Resolve a choice's target, then commit its effects.

        The target is checked before any flag changes so a broken jump leaves
        the store untouched.
        """
        assert self._graph is not None and self._node is not None
        here = NodeRef(graph=self._graph.name, node=self._node.id)

        if choice.ending is not None:
            pending: Dict[str, str] = {}
            if captured is not None and choice.input is not None:
                pending[choice.input.variable] = captured
            ending_lines = [self._line_view(line, here, pending) for line in choice.ending.lines]
            self._commit(choice, captured)
            self._status = "ended"
            self._offered = []
            self._return_point = None
            logger.info("dialogue ended at %s (tag=%s)", here, choice.tag)
            return self._emit(
                DialogueTurn(kind="ending", node=here, lines=tuple(lines + ending_lines), tag=choice.tag)
            )

        assert choice.jump is not None
        target = self._registry.split_reference(self._graph.name, choice.jump)
        if self._registry.is_external(target.graph):
            self._commit(choice, captured)
            self._status = "handed_off"
            self._offered = []
            self._return_point = None if choice.lock else here
            logger.info("handing off from %s to %s (lock=%s)", here, target, choice.lock)
            return self._emit(
                DialogueTurn(
                    kind="handoff",
                    node=here,
                    lines=tuple(lines),
                    tag=choice.tag,
                    target=target,
                    locked=choice.lock,
                )
            )

        graph, node = self._registry.resolve(self._graph.name, choice.jump)
        self._commit(choice, captured)
        return graph, node

    def _commit(self, choice: ChoiceDef, captured: str | None) -> None:
        if captured is not None and choice.input is not None:
            self.flags.set_variable(choice.input.variable, captured)
        apply_effects(choice, self.flags)

    def _line_view(self, line: LineDef, node: NodeRef, pending: Dict[str, str] | None = None) -> LineView:
        return LineView(text=self.flags.substitute(line.text, pending), mode=line.mode, node=node)

    def _emit(self, turn: DialogueTurn) -> DialogueTurn:
        self._turn = turn
        return turn
