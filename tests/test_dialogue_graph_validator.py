import warnings

import pytest

from parley.data.manifest import load_manifest
from parley.data.repositories import DialogueRepository
from parley.services.dialogue_graph_validator import EntryRoot, format_issue, validate_dialogue_graphs
from tests.helpers.graphs import ask, auto, graph, node, notes, say


def _codes(issues) -> list[str]:
    return [issue.code for issue in issues]


def test_dialogue_graph_validator_real_data() -> None:
    manifest = load_manifest()
    repo = DialogueRepository()

    issues = validate_dialogue_graphs(
        repo.all(),
        [EntryRoot(reference=manifest.entry, source="manifest.entry")],
        external_graphs=manifest.external_graphs,
    )
    errors = [issue for issue in issues if issue.severity == "ERROR"]
    for issue in issues:
        if issue.severity == "WARN":
            warnings.warn(format_issue(issue), stacklevel=2)
    if errors:
        pytest.fail("Dialogue validation errors:\n" + "\n".join(format_issue(issue) for issue in errors))


def test_missing_jump_target_reported() -> None:
    graphs = [graph("g", node("start", ["?"], [say("Go", jump="nowhere"), say("Fight", jump="combat/main")]))]

    issues = validate_dialogue_graphs(graphs, ["g/start"])

    missing = [issue for issue in issues if issue.code == "MISSING_NODE_REF"]
    assert [issue.context["referenced_id"] for issue in missing] == ["nowhere", "combat/main"]


def test_external_graph_jumps_are_not_reported() -> None:
    graphs = [graph("g", node("start", ["?"], [say("Fight", jump="combat/main", lock=True)]))]

    assert validate_dialogue_graphs(graphs, ["g/start"], external_graphs=["combat"]) == []


def test_missing_entry_root_reported() -> None:
    graphs = {"g": graph("g", node("start", ["?"], [say("Bye", ending=["bye"])]))}

    issues = validate_dialogue_graphs(graphs, ["g/elsewhere", "start"])

    assert _codes(issues).count("MISSING_ENTRY_ROOT") == 2


def test_empty_node_and_unreachable_node_reported() -> None:
    graphs = [
        graph(
            "g",
            node("start", ["?"], [say("Go", jump="empty")]),
            node("empty", ["..."], []),
            node("orphan", ["..."], [say("Bye", ending=["bye"])]),
        )
    ]

    issues = validate_dialogue_graphs(graphs, ["g/start"])

    assert ("ERROR", "EMPTY_NODE") in {(issue.severity, issue.code) for issue in issues}
    unreachable = [issue for issue in issues if issue.code == "UNREACHABLE_NODE"]
    assert [issue.context["node"] for issue in unreachable] == ["g/orphan"]
    assert unreachable[0].severity == "WARN"


def test_unconditional_hidden_cycle_is_error() -> None:
    graphs = [graph("g", node("a", ["a"], [auto("b")]), node("b", ["b"], [auto("a")]))]

    issues = validate_dialogue_graphs(graphs, ["g/a"])

    cycles = [issue for issue in issues if issue.code == "HIDDEN_CHOICE_CYCLE"]
    assert len(cycles) == 1
    assert cycles[0].context["cycle"] == "g/a -> g/b -> g/a"


def test_gated_hidden_loop_is_not_a_cycle() -> None:
    graphs = [
        graph(
            "g",
            node("a", ["a"], [auto("b", notes=notes(once="seen")), say("Stay", ending=["bye"])]),
            node("b", ["b"], [auto("a")]),
        )
    ]

    assert "HIDDEN_CHOICE_CYCLE" not in _codes(validate_dialogue_graphs(graphs, ["g/a"]))


def test_uncaptured_variable_warns() -> None:
    graphs = [
        graph(
            "g",
            node("start", ["Hi <name>, meet <rival>."], [ask("name", "end")]),
            node("end", ["..."], [say("Bye", ending=["bye"])]),
        )
    ]

    issues = validate_dialogue_graphs(graphs, ["g/start"])

    uncaptured = [issue for issue in issues if issue.code == "UNCAPTURED_VARIABLE"]
    assert [issue.context["variable"] for issue in uncaptured] == ["rival"]


def test_format_issue_includes_context() -> None:
    issues = validate_dialogue_graphs([graph("g")], ["g/start"])

    assert format_issue(issues[0]) == (
        "[ERROR] MISSING_ENTRY_ROOT: Entry root references missing node. (source=entry_roots referenced_id=g/start)"
    )
