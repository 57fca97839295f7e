import pytest

from parley.data.repositories import DialogueRepository
from parley.domain.defs import ChoiceDef, EndingDef, InputDef, LineDef, NodeRef
from parley.domain.errors import (
    AutoAdvanceLimitError,
    DialogueStateError,
    MalformedNodeError,
    NoEligibleChoiceError,
    UnknownNodeError,
    UnknownVariableError,
)
from parley.domain.flags import FlagStore
from parley.domain.graph import GraphRegistry
from parley.services import DialogueEngine, DialogueTurn
from tests.helpers.graphs import ask, auto, graph, node, notes, say


def _content_engine(flags: FlagStore | None = None, external: tuple[str, ...] = ()) -> DialogueEngine:
    repo = DialogueRepository()
    if external:
        registry = GraphRegistry([repo.get("main")], external=external)
    else:
        registry = repo.build_registry()
    return DialogueEngine(registry, flags)


def _texts(turn: DialogueTurn) -> list[str]:
    return [line.text for line in turn.lines]


def _choice_texts(turn: DialogueTurn) -> list[str]:
    return [choice.text for choice in turn.choices]


def _start_at_main(name: str = "Ada", **kwargs) -> tuple[DialogueEngine, DialogueTurn]:
    engine = _content_engine(**kwargs)
    turn = engine.start("main/ask_for_name")
    assert turn.kind == "input"
    assert turn.variable == "name"
    assert _texts(turn) == ["What should I call you?"]
    return engine, engine.submit_text(name)


def test_fresh_main_offers_looking_around_and_work() -> None:
    engine, turn = _start_at_main()

    assert turn.kind == "choice"
    assert turn.node == NodeRef("main", "main")
    assert _texts(turn) == ["What brings you here, Ada?"]
    assert _choice_texts(turn) == ["I'm just looking around.", "I have work to do."]
    assert [choice.authored_index for choice in turn.choices] == [0, 2]
    assert engine.flags.get_variable("name") == "Ada"


def test_looking_around_loops_back_and_switches_branch() -> None:
    engine, _ = _start_at_main()

    turn = engine.choose(0)

    assert engine.flags.flags == frozenset({"looked_around"})
    assert _texts(turn) == ["Ah, okay. Let me know if you need anything.", "What brings you here, Ada?"]
    assert turn.node == NodeRef("main", "main")
    assert _choice_texts(turn) == ["I'm just looking around.", "I have work to do."]
    assert [choice.authored_index for choice in turn.choices] == [1, 2]


def test_long_enough_auto_advances_into_work_to_do() -> None:
    engine, _ = _start_at_main()
    engine.choose(0)

    turn = engine.choose(0)

    assert engine.flags.is_set("work_to_do")
    assert turn.node == NodeRef("main", "work_to_do")
    assert _texts(turn) == [
        "I think you've looked around long enough.",
        "You've got work? And you came here? Why?",
        "I can only think of one thing...",
        "He reaches for his axe.",
    ]
    assert turn.lines[-1].mode == "action"
    assert _choice_texts(turn) == ["Draw your sword", "No, wait! I need to ask you something!"]
    assert turn.choices[0].mode == "action"


def test_work_then_inquiry_unlocks_death_question() -> None:
    engine, _ = _start_at_main()
    engine.choose(1)
    assert engine.flags.flags == frozenset({"work_to_do"})

    turn = engine.choose(1)

    assert engine.flags.flags == frozenset({"work_to_do", "inquiry"})
    assert turn.node == NodeRef("main", "main")
    assert _choice_texts(turn) == ["Have you faced death before?"]


def test_locked_internal_jump_continues_in_combat_graph() -> None:
    engine, _ = _start_at_main()
    engine.choose(1)
    engine.choose(1)

    turn = engine.choose(0)

    assert engine.flags.is_set("inquiry_finish")
    assert turn.node == NodeRef("combat/combat", "main")
    assert engine.current_node == NodeRef("combat/combat", "main")
    assert engine.return_point is None
    assert _choice_texts(turn) == ["Lower your sword", "Strike him down"]


def test_sparing_reaches_satisfied_ending() -> None:
    engine, _ = _start_at_main()
    engine.choose(1)
    engine.choose(0)

    back_in_main = engine.choose(0)
    assert back_in_main.node == NodeRef("main", "main")
    assert _choice_texts(back_in_main) == ["I have work to do."]
    assert back_in_main.choices[0].tag == "SPARED"

    ending = engine.choose(0)

    assert ending.kind == "ending"
    assert ending.tag == "SPARED"
    assert ending.choices == ()
    assert ending.is_final
    assert ending.lines[-1].text.endswith("THE END. Ada is SATISFIED.")
    assert engine.status == "ended"
    with pytest.raises(DialogueStateError):
        engine.choose(0)


def test_locked_handoff_to_external_graph_never_returns() -> None:
    flags = FlagStore(variables={"name": "Ada"})
    engine = _content_engine(flags, external=("combat/combat",))
    engine.start("main/main")
    engine.choose(1)

    turn = engine.choose(0)

    assert turn.kind == "handoff"
    assert turn.target == NodeRef("combat/combat", "main")
    assert turn.locked
    assert turn.is_final
    assert engine.status == "handed_off"
    assert engine.return_point is None
    with pytest.raises(DialogueStateError):
        engine.resume()


def test_unlocked_handoff_resumes_at_origin_node() -> None:
    registry = GraphRegistry(
        [
            graph(
                "town",
                node(
                    "square",
                    ["Care for a game?"],
                    [
                        say("Roll the dice", jump="minigame/dice/start", tag="GAMBLE", notes=notes(once="rolled")),
                        say("Leave", ending=["You walk away."]),
                    ],
                ),
            )
        ],
        external=["minigame/dice"],
    )
    engine = DialogueEngine(registry)
    engine.start("town/square")

    handoff = engine.choose(0)

    assert handoff.kind == "handoff"
    assert handoff.tag == "GAMBLE"
    assert not handoff.locked
    assert not handoff.is_final
    assert engine.flags.is_set("rolled")
    assert engine.return_point == NodeRef("town", "square")

    resumed = engine.resume()

    assert resumed.kind == "choice"
    assert [line.text for line in resumed.lines] == ["Care for a game?"]
    assert _choice_texts(resumed) == ["Leave"]


def test_first_eligible_hidden_choice_wins() -> None:
    registry = GraphRegistry(
        [
            graph(
                "g",
                node(
                    "router",
                    ["..."],
                    [
                        auto("blocked", notes=notes(require=["never"])),
                        say("Visible", jump="first"),
                        auto("first"),
                        auto("second"),
                    ],
                ),
                node("first", ["First"], [say("ok", ending=["done"])]),
                node("second", ["Second"], [say("ok", ending=["done"])]),
                node("blocked", ["Blocked"], [say("ok", ending=["done"])]),
            )
        ]
    )
    turn = DialogueEngine(registry).start("g/router")

    assert turn.kind == "choice"
    assert [line.text for line in turn.lines] == ["...", "First"]


def test_hidden_choice_leading_to_ending_ends_without_suspension() -> None:
    registry = GraphRegistry(
        [graph("g", node("start", ["Goodbye."], [say("bye", ending=["Fin."], display=False, tag="QUIET")]))]
    )
    turn = DialogueEngine(registry).start("g/start")

    assert turn.kind == "ending"
    assert turn.tag == "QUIET"
    assert [line.text for line in turn.lines] == ["Goodbye.", "Fin."]


def test_unknown_jump_does_not_apply_effects() -> None:
    registry = GraphRegistry([graph("g", node("start", ["?"], [say("Go", jump="missing", notes=notes(once="went"))]))])
    engine = DialogueEngine(registry)
    engine.start("g/start")

    with pytest.raises(UnknownNodeError):
        engine.choose(0)
    assert not engine.flags.is_set("went")


def test_failed_ending_substitution_keeps_captured_text_out_of_store() -> None:
    farewell = ChoiceDef(
        ending=EndingDef(lines=(LineDef(text="bye <other>"),)),
        input=InputDef(variable="name"),
        notes=notes(once="named"),
    )
    engine = DialogueEngine(GraphRegistry([graph("g", node("start", ["Name?"], [farewell]))]))
    engine.start("g/start")

    with pytest.raises(UnknownVariableError):
        engine.submit_text("Ada")

    assert engine.flags.snapshot() == {"flags": [], "variables": {}}
    assert engine.status == "awaiting_input"


def test_input_ending_substitutes_captured_text() -> None:
    farewell = ChoiceDef(ending=EndingDef(lines=(LineDef(text="Farewell, <name>."),)), input=InputDef(variable="name"))
    engine = DialogueEngine(GraphRegistry([graph("g", node("start", ["Name?"], [farewell]))]))
    engine.start("g/start")

    turn = engine.submit_text("Ada")

    assert _texts(turn) == ["Farewell, Ada."]
    assert engine.flags.get_variable("name") == "Ada"


def test_no_eligible_choice_raises() -> None:
    registry = GraphRegistry([graph("g", node("start", ["?"], [say("Only", jump="start", notes=notes(require=["x"]))]))])

    with pytest.raises(NoEligibleChoiceError) as excinfo:
        DialogueEngine(registry).start("g/start")
    assert excinfo.value.node == "g/start"


def test_node_without_choices_is_malformed() -> None:
    registry = GraphRegistry([graph("g", node("start", ["?"], [auto("dead_end")]), node("dead_end", ["..."], []))])

    with pytest.raises(MalformedNodeError):
        DialogueEngine(registry).start("g/start")


def test_missing_variable_raises() -> None:
    registry = GraphRegistry([graph("g", node("start", ["Hello, <name>."], [say("Hi", ending=["bye"])]))])

    with pytest.raises(UnknownVariableError):
        DialogueEngine(registry).start("g/start")


def test_hidden_cycle_hits_auto_advance_limit() -> None:
    registry = GraphRegistry([graph("g", node("a", ["a"], [auto("b")]), node("b", ["b"], [auto("a")]))])

    with pytest.raises(AutoAdvanceLimitError):
        DialogueEngine(registry, max_auto_advance=10).start("g/a")


def test_choose_rejects_bad_index_and_wrong_state() -> None:
    engine = DialogueEngine(GraphRegistry([graph("g", node("start", ["?"], [ask("name", "start")]))]))

    with pytest.raises(DialogueStateError):
        engine.current_turn()
    turn = engine.start("g/start")
    assert turn.kind == "input"
    with pytest.raises(DialogueStateError):
        engine.choose(0)

    engine, _ = _start_at_main()
    with pytest.raises(IndexError):
        engine.choose(5)
    with pytest.raises(DialogueStateError):
        engine.submit_text("again")


def test_revisiting_node_reevaluates_choices() -> None:
    registry = GraphRegistry(
        [
            graph(
                "g",
                node(
                    "hub",
                    ["Hub"],
                    [
                        say("Learn", jump="side", notes=notes(once="learned")),
                        say("Use knowledge", jump="hub", notes=notes(require=["learned"], once="used")),
                        say("Leave", ending=["bye"]),
                    ],
                ),
                node("side", ["Side"], [auto("hub")]),
            )
        ]
    )
    engine = DialogueEngine(registry)

    first = engine.start("g/hub")
    second = engine.choose(0)
    third = engine.choose(0)

    assert _choice_texts(first) == ["Learn", "Leave"]
    assert _choice_texts(second) == ["Use knowledge", "Leave"]
    assert _choice_texts(third) == ["Leave"]
    assert engine.current_turn() is third


def test_shared_flag_store_is_visible_across_sessions() -> None:
    shared = FlagStore(variables={"name": "Ada"})
    first = _content_engine(shared)
    first.start("main/main")
    first.choose(0)

    second = _content_engine(shared)
    turn = second.start("main/main")

    assert second.flags is shared
    assert [choice.authored_index for choice in turn.choices] == [1, 2]
