"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
import textwrap
from typing import Sequence

from parley.services import ChoiceView, LineView

_text_display_mode = "instant"
_line_width = 72


def debug_enabled() -> bool:
    """Return True only when PARLEY_DEBUG is explicitly set to '1'."""
    return os.getenv("PARLEY_DEBUG") == "1"


def set_text_display_mode(mode: str) -> None:
    """Switch between printing all lines at once and pausing after each."""
    global _text_display_mode
    _text_display_mode = "step" if mode == "step" else "instant"


def get_text_display_mode() -> str:
    return _text_display_mode


def set_line_width(width: int) -> None:
    global _line_width
    _line_width = width


def wrap_text(text: str, width: int | None = None) -> list[str]:
    """Wrap each paragraph of ``text`` on word boundaries."""
    width = width or _line_width
    wrapped: list[str] = []
    for paragraph in text.splitlines() or [""]:
        if not paragraph:
            wrapped.append("")
            continue
        wrapped.extend(
            textwrap.wrap(paragraph, width=width, break_long_words=False, break_on_hyphens=False)
        )
    return wrapped


def format_line(line: LineView) -> list[str]:
    """Action beats are shown in asterisks, spoken lines in quotes."""
    rows = wrap_text(line.text)
    if line.mode == "action":
        return [f"* {row} *" if row else "" for row in rows]
    if rows:
        rows[0] = f'"{rows[0]}'
        rows[-1] = f'{rows[-1]}"'
    return rows


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_lines(lines: Sequence[LineView]) -> None:
    """Render prompt or ending lines with optional node ids."""
    last_node = None
    for idx, line in enumerate(lines):
        if debug_enabled() and line.node != last_node:
            print(f"[{line.node}]")
            last_node = line.node
        for row in format_line(line):
            print(row)
        if _text_display_mode == "step" and idx < len(lines) - 1:
            input("")


def render_choices(choices: Sequence[ChoiceView]) -> None:
    """Display numbered choices."""
    if not choices:
        return
    render_heading("Choices")
    for choice in choices:
        label = f"*{choice.text}*" if choice.mode == "action" else choice.text
        suffix = f" [{choice.tag}]" if debug_enabled() and choice.tag else ""
        print(f"{choice.index + 1}. {label}{suffix}")
