"""Tests for dialogue entry resolution, choices, dispatch, sessions and root dialogues."""

import pytest

from conftest import run
from modengine.core.errors import ContentError, DialogueError, DialogueNodeNotFound, ErrorCode
from modengine.core.models import Task, npc
from modengine.dialogue.builder import (
    call_function, choice, close_dialogue, dialogue_node, dialogue_tree, go_to, set_state, state_is,
    task_active, validate_tree,
)
from modengine.dialogue.conversation import get_last_dialogue_branch, get_last_dialogue_node
from modengine.dialogue.model import DialogueTree, EntryRule
from modengine.dialogue.navigation import (
    DialogueSession, dispatch_choice, get_available_choices, get_initial_dialogue_node, get_next_dialogue_node,
)
from modengine.dialogue.resolution import resolve_node
from modengine.dialogue.root import format_task_choice, generate_root_dialogue


class TestEntry:
    def test_scenario_entry_rule_after_state_change(self, context):
        node_a = dialogue_node("A", "First meeting.", {
            "hi": choice("Hi!", next=None, actions=[set_state("has_met", True)]),
        })
        node_b = dialogue_node("B", "Welcome back.")
        tree = dialogue_tree().nodes(node_a, node_b).entry().when(state_is("has_met", True)).use(node_b).default(node_a).build()

        first = get_initial_dialogue_node(tree, context)
        assert first.id == "A"

        result = run(dispatch_choice(tree, first, "hi", context))
        assert result.closed

        assert get_initial_dialogue_node(tree, context).id == "B"

    def test_first_matching_rule_wins(self, guide_tree, context):
        context.accept_task("t1")
        context.set_module_state_field("has_met", True)
        assert get_initial_dialogue_node(guide_tree, context).id == "t1_ready"

    @pytest.mark.parametrize("has_met,task_state,expected", [
        (False, None, "greeting"),
        (True, None, "about"),
        (True, "active", "t1_ready"),
        (False, "completed", "done"),
    ])
    def test_always_returns_a_tree_node(self, guide_tree, context, has_met, task_state, expected):
        if has_met:
            context.set_module_state_field("has_met", True)
        if task_state == "active":
            context.accept_task("t1")
        elif task_state == "completed":
            context.complete_task("t1")
        node = get_initial_dialogue_node(guide_tree, context)
        assert guide_tree.nodes[node.id] is node
        assert node.id == expected


class TestChoices:
    def test_choices_keep_order_and_filter(self, context):
        node = dialogue_node("n", "Hello", {
            "a": choice("Always"),
            "secret": choice("Secret", condition=state_is("vip", True)),
            "b": choice(lambda ctx: f"Visits: {ctx.get_module_state_field('visits') or 0}"),
        })
        assert [c.key for c in get_available_choices(node, context)] == ["a", "b"]

        context.set_module_state_field("vip", True)
        context.set_module_state_field("visits", 3)
        choices = get_available_choices(node, context)
        assert [c.key for c in choices] == ["a", "secret", "b"]
        assert choices[2].text == "Visits: 3"

    def test_dynamic_choice_map_and_actions(self, context):
        node = dialogue_node("n", "Pick", lambda ctx: {
            "only": choice("Only", actions=lambda c: [set_state("picked", c.module_id)]),
        })
        choices = get_available_choices(node, context)
        assert len(choices) == 1
        assert choices[0].actions[0].value == "intro"

    def test_lines_resolved_on_every_visit(self, context):
        node = dialogue_node("n", lambda ctx: [f"Mood: {ctx.get_interactable_state('guide', 'mood')}"])
        assert resolve_node(node, context).lines == ["Mood: None"]
        context.set_interactable_state("guide", "mood", "cheerful")
        assert resolve_node(node, context).lines == ["Mood: cheerful"]


class TestDispatch:
    def test_next_node(self, guide_tree, context):
        greeting = guide_tree.get_node("greeting")
        result = run(dispatch_choice(guide_tree, greeting, "ask", context))
        assert not result.closed
        assert result.next_node.id == "about"
        assert context.get_module_state_field("has_met") is True

    def test_close_dialogue_action(self, guide_tree, context):
        result = run(dispatch_choice(guide_tree, guide_tree.get_node("greeting"), "bye", context))
        assert result.closed
        assert result.next_node is None

    def test_null_next_closes(self, guide_tree, context):
        result = run(dispatch_choice(guide_tree, guide_tree.get_node("offer"), "accept", context))
        assert result.closed
        assert context.get_current_task_id() == "t1"

    def test_go_to_overrides_next(self, context):
        node = dialogue_node("start", "Hi", {"jump": choice("Jump", next="middle", actions=[go_to("end")])})
        tree = dialogue_tree().nodes(node, dialogue_node("middle", "..."), dialogue_node("end", "The end")).build()
        result = run(dispatch_choice(tree, node, "jump", context))
        assert result.next_node.id == "end"

    def test_dynamic_next(self, context):
        node = dialogue_node("start", "Hi", {
            "go": choice("Go", next=lambda ctx: "vip" if ctx.get_module_state_field("vip") else "normal"),
        })
        tree = dialogue_tree().nodes(node, dialogue_node("vip", "VIP"), dialogue_node("normal", "Normal")).build()
        assert run(dispatch_choice(tree, node, "go", context)).next_node.id == "normal"
        context.set_module_state_field("vip", True)
        assert run(dispatch_choice(tree, node, "go", context)).next_node.id == "vip"

    def test_unknown_choice(self, guide_tree, context):
        with pytest.raises(DialogueError) as excinfo:
            run(dispatch_choice(guide_tree, guide_tree.get_node("greeting"), "dance", context))
        assert excinfo.value.code == ErrorCode.CHOICE_NOT_AVAILABLE

    def test_hidden_choice_cannot_be_dispatched(self, context):
        node = dialogue_node("n", "Hi", {"secret": choice("Secret", next=None, condition=state_is("vip", True),
                                                          actions=[set_state("used", True)])})
        tree = dialogue_tree().nodes(node).build()
        with pytest.raises(DialogueError):
            run(dispatch_choice(tree, node, "secret", context))
        assert context.get_module_state_field("used") is None

    def test_scenario_failing_handler_keeps_first_action(self, store, registry, guide):
        def explode(ctx):
            raise RuntimeError("handler exploded")

        node = dialogue_node("start", "Hi", {
            "go": choice("Go", next="next", actions=[set_state("x", 1), call_function(explode)]),
        })
        tree = dialogue_tree().nodes(node, dialogue_node("next", "Next")).build()
        guide.dialogue_tree = tree
        session = DialogueSession(guide, _context(store, registry), root_dialogue=False)
        session.open()

        with pytest.raises(RuntimeError, match="handler exploded"):
            run(session.choose("go"))
        assert store.get_module_state_field("intro", "x") == 1
        assert session.current.id == "start"
        assert get_last_dialogue_node(store, "intro", "guide") == "start"

    def test_dangling_successor_is_content_error(self, context):
        node = dialogue_node("start", "Hi", {"go": choice("Go", next="ghost")})
        # Built by hand: the builder would reject it
        tree = DialogueTree(nodes={"start": node}, default="start", id="broken")
        with pytest.raises(DialogueNodeNotFound) as excinfo:
            run(dispatch_choice(tree, node, "go", context))
        assert isinstance(excinfo.value, ContentError)
        assert excinfo.value.node_id == "ghost"

    def test_auto_advance(self, context):
        first = dialogue_node("first", "Part one", next="second")
        second = dialogue_node("second", "Part two")
        tree = dialogue_tree().nodes(first, second).build()
        assert get_next_dialogue_node(tree, first, context).id == "second"
        assert get_next_dialogue_node(tree, second, context) is None


class TestTreeValidation:
    def test_dangling_choice_reference(self):
        node = dialogue_node("start", "Hi", {"go": choice("Go", next="ghost")})
        with pytest.raises(ContentError) as excinfo:
            dialogue_tree("t").nodes(node).build()
        assert "ghost" in str(excinfo.value)

    def test_dangling_entry_rule(self):
        tree = DialogueTree(nodes={"a": dialogue_node("a", "A")}, default="a",
                            entry=[EntryRule(state_is("x", 1), "missing")])
        with pytest.raises(ContentError):
            validate_tree(tree)

    def test_missing_default(self):
        with pytest.raises(ContentError):
            validate_tree(DialogueTree(nodes={"a": dialogue_node("a", "A")}, default="nope"))

    def test_empty_tree(self):
        with pytest.raises(ContentError):
            dialogue_tree().build()

    def test_dangling_go_to_and_next(self):
        with pytest.raises(ContentError):
            dialogue_tree().nodes(dialogue_node("a", "A", {"x": choice("X", actions=[go_to("b")])})).build()
        with pytest.raises(ContentError):
            dialogue_tree().nodes(dialogue_node("a", "A", next="b")).build()

    def test_default_is_first_node(self):
        tree = dialogue_tree().nodes(dialogue_node("a", "A"), dialogue_node("b", "B")).build()
        assert tree.default == "a"

    def test_duplicate_node_id(self):
        with pytest.raises(ContentError):
            dialogue_tree().nodes(dialogue_node("a", "A"), dialogue_node("a", "Again"))


def _context(store, registry):
    from modengine.core.context import ModuleContext
    return ModuleContext("intro", store, registry)


class TestSession:
    def test_resumes_remembered_node(self, guide, store, registry):
        session = DialogueSession(guide, _context(store, registry), root_dialogue=False)
        assert session.open().id == "greeting"
        run(session.choose("task"))
        assert session.current.id == "offer"

        # Player walks away and comes back later
        resumed = DialogueSession(guide, _context(store, registry), root_dialogue=False)
        assert resumed.open().id == "offer"
        assert get_last_dialogue_branch(store, "intro", "guide") == "tree"

    def test_close_forgets_node(self, guide, store, registry):
        session = DialogueSession(guide, _context(store, registry), root_dialogue=False)
        session.open()
        result = run(session.choose("bye"))
        assert result.closed
        assert session.closed
        assert get_last_dialogue_node(store, "intro", "guide") is None
        with pytest.raises(DialogueError):
            session.choices()

    def test_choices_of_current_node(self, guide, store, registry):
        session = DialogueSession(guide, _context(store, registry), root_dialogue=False)
        session.open()
        assert [c.key for c in session.choices()] == ["ask", "task", "bye"]

    def test_advance(self, store, registry, guide):
        guide.dialogue_tree = dialogue_tree().nodes(
            dialogue_node("one", "One", next="two"), dialogue_node("two", "Two"),
        ).build()
        session = DialogueSession(guide, _context(store, registry), root_dialogue=False)
        session.open()
        assert session.advance().id == "two"
        assert session.advance() is None
        assert session.closed


class TestRootDialogue:
    def test_no_root_without_active_task(self, guide, context):
        assert generate_root_dialogue(guide, context) is None

    def test_root_choices(self, guide, context):
        context.accept_task("t1")
        root = generate_root_dialogue(guide, context)
        assert root.id == "guide_root"
        keys = [c.key for c in get_available_choices(root, context)]
        assert keys == ["talk", "task_t1", "goodbye"]

    def test_talk_skips_task_active_rules(self, guide, guide_tree, context):
        context.accept_task("t1")
        root = generate_root_dialogue(guide, context)
        result = run(dispatch_choice(guide_tree, root, "talk", context))
        assert result.next_node.id == "greeting"

        task_result = run(dispatch_choice(guide_tree, root, "task_t1", context))
        assert task_result.next_node.id == "t1_ready"

        assert run(dispatch_choice(guide_tree, root, "goodbye", context)).closed

    def test_session_opens_on_root_and_records_branch(self, guide, store, registry):
        context = _context(store, registry)
        context.accept_task("t1")
        session = DialogueSession(guide, context, root_dialogue=True)
        assert session.open().id == "guide_root"
        run(session.choose("task_t1"))
        assert session.current.id == "t1_ready"
        assert get_last_dialogue_branch(store, "intro", "guide") == "t1"

    def test_task_choice_text_is_truncated(self):
        short = Task(id="s", name="Quiz")
        long = Task(id="l", name="A very long task name that keeps going and going")
        assert format_task_choice(short, "In Progress") == "[Task] - Quiz (In Progress)"
        text = format_task_choice(long, "In Progress", max_length=50)
        assert len(text) == 50
        assert text.endswith("...")

    def test_no_talk_choice_without_content(self, context):
        task = Task(id="t1", name="First steps")
        silent = npc("silent", "Silent", tasks=[task], dialogue_tree=dialogue_tree().nodes(
            dialogue_node("blank", [""]),
            dialogue_node("ready", [], task=task),
        ).entry().when(task_active(task)).use("ready").default("blank").build())
        context.accept_task(task)
        root = generate_root_dialogue(silent, context)
        assert [c.key for c in get_available_choices(root, context)] == ["task_t1", "goodbye"]
