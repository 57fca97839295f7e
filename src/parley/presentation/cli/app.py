"""Console-driven dialogue loop."""
from __future__ import annotations

import argparse
import logging
from typing import Sequence

from parley.data import DataError
from parley.data.manifest import load_manifest
from parley.data.repositories import DialogueRepository
from parley.domain.errors import DialogueError
from parley.presentation.cli.config import (
    ConfigValue,
    get_default_config_path,
    load_config,
    normalize_config,
    save_config,
)
from parley.presentation.cli.render import (
    debug_enabled,
    render_choices,
    render_heading,
    render_lines,
    set_line_width,
    set_text_display_mode,
)
from parley.services import (
    DialogueEngine,
    DialogueTurn,
    EntryRoot,
    format_issue,
    validate_dialogue_graphs,
)

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="parley", description="Play flag-gated branching dialogue.")
    parser.add_argument("--definitions", help="Directory holding manifest.json and dialogue/ graphs.")
    parser.add_argument("--entry", help="Override the manifest entry node, e.g. 'main/main'.")
    parser.add_argument("--debug", action="store_true", help="Log engine activity to stderr.")
    parser.add_argument(
        "--validate-only", action="store_true", help="Validate the content and exit without playing."
    )
    parser.add_argument(
        "--text-mode", choices=["instant", "step"], help="Print all lines at once or pause after each."
    )
    parser.add_argument("--line-width", type=int, help="Wrap width for dialogue text.")
    parser.add_argument(
        "--save-config", action="store_true", help="Store --text-mode and --line-width as the defaults and exit."
    )
    return parser.parse_args(argv)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        format="%(asctime)s %(name)-12s %(levelname)-8s %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )


def _resolve_config(args: argparse.Namespace) -> dict[str, ConfigValue]:
    """Stored options with any command-line overrides applied."""
    config: dict[str, object] = dict(load_config())
    if args.text_mode is not None:
        config["text_display_mode"] = args.text_mode
    if args.line_width is not None:
        config["line_width"] = args.line_width
    return normalize_config(config)


def main(argv: Sequence[str] | None = None) -> int:
    """Load content, validate it, and run one interactive session."""
    args = parse_args(list(argv) if argv is not None else [])
    _configure_logging(args.debug or debug_enabled())
    if args.save_config:
        path = get_default_config_path()
        save_config(_resolve_config(args), path)
        print(f"Saved options to {path}.")
        return 0

    try:
        manifest = load_manifest(args.definitions)
        registry = DialogueRepository(base_path=args.definitions).build_registry(manifest.external_graphs)
    except DataError as exc:
        print(f"Failed to load content: {exc}")
        return 1

    entry = args.entry or manifest.entry
    issues = validate_dialogue_graphs(
        registry.graphs(),
        [EntryRoot(reference=entry, source="entry")],
        external_graphs=registry.external_graphs,
    )
    errors = [issue for issue in issues if issue.severity == "ERROR"]
    for issue in issues:
        if issue.severity != "ERROR":
            logger.warning(format_issue(issue))
    if errors:
        print("Validation failed:")
        for issue in errors:
            print(f" - {format_issue(issue)}")
        return 1
    if args.validate_only:
        print(f"Validation passed for {len(registry.graphs())} graph(s).")
        return 0

    config = _resolve_config(args)
    set_text_display_mode(str(config["text_display_mode"]))
    set_line_width(int(config["line_width"]))
    print(f"=== {manifest.title} ===")
    try:
        run_session(DialogueEngine(registry), entry)
    except DialogueError as exc:
        print(f"Dialogue aborted: {exc}")
        return 1
    print("Goodbye!")
    return 0


def run_session(engine: DialogueEngine, entry: str) -> DialogueTurn:
    """Drive ``engine`` from ``entry`` until an ending or a locked hand-off."""
    turn = engine.start(entry)
    while True:
        render_lines(turn.lines)
        if turn.kind == "choice":
            render_choices(turn.choices)
            turn = engine.choose(_prompt_choice(len(turn.choices)))
        elif turn.kind == "input":
            turn = engine.submit_text(_prompt_text(turn.variable or "text"))
        elif turn.kind == "handoff":
            print(f"\n(Control passes to {turn.target}.)")
            if turn.locked:
                return turn
            turn = engine.resume()
        else:
            if turn.tag:
                render_heading(turn.tag)
            return turn


def _prompt_choice(choice_count: int) -> int:
    while True:
        raw = input("Select an option: ").strip()
        try:
            index = int(raw) - 1
        except ValueError:
            print("Please enter a number.")
            continue
        if 0 <= index < choice_count:
            return index
        print(f"Please enter a value between 1 and {choice_count}.")


def _prompt_text(variable: str) -> str:
    while True:
        value = input(f"Enter {variable}: ").strip()
        if value:
            return value
        print("Please enter a value.")
