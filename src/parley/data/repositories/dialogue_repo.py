"""Repository for dialogue graph definitions."""
from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Tuple

from parley.core.types import LINE_MODES, LineMode
from parley.data.errors import DataReferenceError, DataValidationError
from parley.data.repositories.base import RepositoryBase
from parley.domain.defs import (
    NEGATION_MARKER,
    PATH_SEPARATOR,
    ChoiceDef,
    ConditionDef,
    EndingDef,
    GraphDef,
    InputDef,
    LineDef,
    NodeDef,
    RequirementTerm,
    ResponseDef,
)
from parley.domain.graph import GraphRegistry

logger = logging.getLogger(__name__)

_NODE_FIELDS = frozenset({"prompt", "choices"})
_CHOICE_FIELDS = frozenset({"response", "input", "display", "jump", "ending", "lock", "tag", "notes"})
_NOTES_FIELDS = frozenset({"once", "require", "apply"})
_LINE_FIELDS = frozenset({"text", "mode"})


class DialogueRepository(RepositoryBase[GraphDef]):
    """Loads dialogue graphs and validates their structure.

    ``dialogue/main.json`` becomes graph ``main`` and
    ``dialogue/combat/combat.json`` becomes graph ``combat/combat``.
    """

    def __init__(self, base_path: Path | str | None = None) -> None:
        super().__init__("dialogue", base_path)

    def build_registry(self, external_graphs: Iterable[str] = ()) -> GraphRegistry:
        """Return a registry holding every loaded graph plus the external names."""
        registry = GraphRegistry(self.all())
        for name in external_graphs:
            try:
                registry.register_external(name)
            except ValueError as exc:
                raise DataReferenceError(str(exc)) from exc
        return registry

    def _build(self, key: str, raw: dict[str, object]) -> GraphDef:
        nodes: Dict[str, NodeDef] = {}
        for node_id, node_payload in raw.items():
            context = f"graph '{key}' node '{node_id}'"
            if not node_id or PATH_SEPARATOR in node_id:
                raise DataValidationError(f"{context}: node ids must be non-empty and contain no '/'.")
            node_data = self._require_mapping(node_payload, context)
            self._reject_unknown_keys(node_data, _NODE_FIELDS, context)
            nodes[node_id] = NodeDef(
                id=node_id,
                prompt=self._parse_lines(node_data.get("prompt", []), f"{context} prompt"),
                choices=self._parse_choices(node_data.get("choices", []), context),
            )
        logger.debug("loaded graph %s with %d nodes", key, len(nodes))
        return GraphDef(name=key, nodes=MappingProxyType(nodes))

    def _parse_lines(self, raw_lines: object, context: str) -> Tuple[LineDef, ...]:
        lines: List[LineDef] = []
        for index, entry in enumerate(self._require_list(raw_lines, context)):
            line_ctx = f"{context}[{index}]"
            line_data = self._require_mapping(entry, line_ctx)
            self._reject_unknown_keys(line_data, _LINE_FIELDS, line_ctx)
            lines.append(
                LineDef(
                    text=self._require_str(line_data.get("text"), f"{line_ctx} text"),
                    mode=self._parse_mode(line_data.get("mode"), f"{line_ctx} mode"),
                )
            )
        return tuple(lines)

    def _parse_mode(self, value: object, context: str) -> LineMode:
        if value is None:
            return "spoken"
        mode = self._require_str(value, context)
        if mode not in LINE_MODES:
            raise DataValidationError(f"{context} must be one of {sorted(LINE_MODES)}.")
        return mode  # type: ignore[return-value]

    def _parse_choices(self, raw_choices: object, node_ctx: str) -> Tuple[ChoiceDef, ...]:
        choices: List[ChoiceDef] = []
        for index, entry in enumerate(self._require_list(raw_choices, f"{node_ctx} choices")):
            choice_ctx = f"{node_ctx} choices[{index}]"
            data = self._require_mapping(entry, choice_ctx)
            self._reject_unknown_keys(data, _CHOICE_FIELDS, choice_ctx)

            response = None
            if "response" in data:
                response_data = self._require_mapping(data["response"], f"{choice_ctx} response")
                self._reject_unknown_keys(response_data, _LINE_FIELDS, f"{choice_ctx} response")
                response = ResponseDef(
                    text=self._require_str(response_data.get("text"), f"{choice_ctx} response text"),
                    mode=self._parse_mode(response_data.get("mode"), f"{choice_ctx} response mode"),
                )
            input_def = None
            if "input" in data:
                input_data = self._require_mapping(data["input"], f"{choice_ctx} input")
                input_def = InputDef(
                    variable=self._require_str(input_data.get("variable"), f"{choice_ctx} input variable")
                )
            if response is not None and input_def is not None:
                raise DataValidationError(f"{choice_ctx} cannot have both a response and an input.")

            display = response is not None or input_def is not None
            if "display" in data:
                display = self._require_bool(data["display"], f"{choice_ctx} display")
                if not display and input_def is not None:
                    raise DataValidationError(f"{choice_ctx} input choices cannot be hidden.")

            has_jump = "jump" in data
            has_ending = "ending" in data
            if has_jump == has_ending:
                raise DataValidationError(f"{choice_ctx} must have exactly one of 'jump' or 'ending'.")
            jump = self._require_str(data["jump"], f"{choice_ctx} jump") if has_jump else None
            ending = None
            if has_ending:
                ending = EndingDef(lines=self._parse_lines(data["ending"], f"{choice_ctx} ending"))

            tag = None
            if "tag" in data:
                tag = self._require_str(data["tag"], f"{choice_ctx} tag")

            choices.append(
                ChoiceDef(
                    jump=jump,
                    ending=ending,
                    response=response,
                    input=input_def,
                    display=display,
                    lock=self._require_bool(data.get("lock", False), f"{choice_ctx} lock"),
                    tag=tag,
                    notes=self._parse_notes(data.get("notes"), f"{choice_ctx} notes"),
                )
            )
        return tuple(choices)

    def _parse_notes(self, raw_notes: object, context: str) -> ConditionDef:
        if raw_notes is None:
            return ConditionDef()
        data = self._require_mapping(raw_notes, context)
        self._reject_unknown_keys(data, _NOTES_FIELDS, context)
        once = None
        if "once" in data:
            once = self._parse_flag(data["once"], f"{context} once")
        require = tuple(
            self._parse_requirement(token, f"{context} require[{index}]")
            for index, token in enumerate(self._require_list(data.get("require", []), f"{context} require"))
        )
        # apply entries are always positive sets; a trailing '!' is dropped.
        apply = tuple(
            self._parse_apply(token, f"{context} apply[{index}]")
            for index, token in enumerate(self._require_list(data.get("apply", []), f"{context} apply"))
        )
        return ConditionDef(once=once, require=require, apply=apply)

    def _parse_requirement(self, value: object, context: str) -> RequirementTerm:
        term = RequirementTerm.parse(self._parse_token(value, context))
        if not term.flag or term.flag.endswith(NEGATION_MARKER):
            raise DataValidationError(f"{context} is not a valid requirement term.")
        return term

    def _parse_flag(self, value: object, context: str) -> str:
        flag = self._parse_token(value, context)
        if flag.endswith(NEGATION_MARKER):
            raise DataValidationError(f"{context} cannot be negated.")
        return flag

    def _parse_apply(self, value: object, context: str) -> str:
        flag = self._parse_token(value, context).rstrip(NEGATION_MARKER)
        if not flag:
            raise DataValidationError(f"{context} must name a flag.")
        return flag

    def _parse_token(self, value: object, context: str) -> str:
        token = self._require_str(value, context).strip()
        if not token:
            raise DataValidationError(f"{context} must not be empty.")
        return token
