"""Tests for the JSON module loader."""

import copy
import json

import pytest

from conftest import run
from modengine.content.loader import (
    load_module_file, load_modules_dir, parse_condition, parse_module, parse_requirement,
)
from modengine.core.context import ModuleContext
from modengine.core.errors import ContentError, ErrorCode
from modengine.core.registry import ModuleRegistry
from modengine.core.state import ProgressStore
from modengine.core.models import TaskSolveResult
from modengine.dialogue.model import CallFunction, CustomCondition, TaskActiveCondition
from modengine.dialogue.navigation import dispatch_choice, get_initial_dialogue_node
from modengine.unlock.model import AllOf, Custom, ModuleComplete, Password


def _check_answer(submission):
    return TaskSolveResult(solved=submission == "blue")


FUNCTIONS = {
    "check_answer": _check_answer,
    "always": lambda ctx: True,
    "mark_seen": lambda ctx: ctx.set_module_state_field("seen", True),
}


@pytest.fixture
def module_data():
    return {
        "id": "colors",
        "manifest": {"name": "Colors", "version": "1.2.0", "summary": "Learn colors"},
        "unlock_requirement": {"type": "and", "requirements": [
            {"type": "module-complete", "module_id": "intro"},
            {"type": "password", "password": "rainbow", "hint": "After rain"},
        ]},
        "welcome": {"speaker": "Painter", "lines": ["Welcome to the studio."]},
        "tasks": [
            {
                "id": "sky",
                "name": "Sky color",
                "description": "What color is the sky?",
                "submission": {"type": "text"},
                "validate": "check_answer",
                "dialogues": {"offer": ["Tell me the color of the sky."]},
            },
        ],
        "interactables": [
            {
                "id": "painter",
                "name": "Painter",
                "type": "npc",
                "tasks": ["sky"],
                "dialogue": {
                    "entry": {
                        "rules": [{"when": {"type": "task-active", "task": "sky"}, "node": "ready"}],
                        "default": "hello",
                    },
                    "nodes": [
                        {
                            "id": "hello",
                            "lines": ["Hello!"],
                            "choices": {
                                "work": {
                                    "text": "Any work?",
                                    "next": None,
                                    "actions": [
                                        {"type": "accept-task", "task": "sky"},
                                        {"type": "call-function", "function": "mark_seen"},
                                    ],
                                },
                                "secret": {
                                    "text": "Secret",
                                    "next": "ready",
                                    "condition": {"type": "custom", "function": "always"},
                                },
                            },
                        },
                        {"id": "ready", "lines": ["Done yet?"], "task": "sky"},
                    ],
                },
            },
            {"id": "easel", "name": "Easel"},
        ],
    }


class TestParseModule:
    def test_full_module(self, module_data):
        module = parse_module(module_data, FUNCTIONS)
        assert module.id == "colors"
        assert module.config.manifest.version == "1.2.0"
        assert module.config.welcome.lines == ["Welcome to the studio."]

        requirement = module.unlock_requirement
        assert isinstance(requirement, AllOf)
        assert isinstance(requirement.requirements[0], ModuleComplete)
        assert isinstance(requirement.requirements[1], Password)

        task = module.get_task("sky")
        assert task.solve("blue").solved
        assert not task.solve("red").solved
        assert task.dialogues.offer == ["Tell me the color of the sky."]

        painter = module.get_interactable("painter")
        assert painter.is_npc
        assert [t.id for t in painter.tasks] == ["sky"]
        tree = painter.dialogue_tree
        assert set(tree.nodes) == {"hello", "ready"}
        assert isinstance(tree.entry[0].condition, TaskActiveCondition)
        assert tree.find_task_node("sky").id == "ready"
        assert isinstance(tree.nodes["hello"].choices["work"].actions[1], CallFunction)
        assert isinstance(tree.nodes["hello"].choices["secret"].condition, CustomCondition)

        assert module.get_interactable("easel").type == "object"
        assert module.get_interactable("easel").dialogue_tree is None

    def test_loaded_dialogue_runs(self, module_data):
        module = parse_module(module_data, FUNCTIONS)
        registry = ModuleRegistry([module])
        context = ModuleContext("colors", ProgressStore(), registry)
        tree = module.get_interactable("painter").dialogue_tree

        hello = get_initial_dialogue_node(tree, context)
        assert hello.id == "hello"
        result = run(dispatch_choice(tree, hello, "work", context))
        assert result.closed
        assert context.get_current_task_id() == "sky"
        assert context.get_module_state_field("seen") is True
        assert get_initial_dialogue_node(tree, context).id == "ready"

    def test_dangling_node_reference(self, module_data):
        data = copy.deepcopy(module_data)
        data["interactables"][0]["dialogue"]["nodes"][0]["choices"]["secret"]["next"] = "ghost"
        with pytest.raises(ContentError):
            parse_module(data, FUNCTIONS)

    def test_dangling_reference_allowed_without_validation(self, module_data):
        data = copy.deepcopy(module_data)
        data["interactables"][0]["dialogue"]["entry"]["default"] = "ghost"
        module = parse_module(data, FUNCTIONS, validate=False)
        assert module.get_interactable("painter").dialogue_tree.default == "ghost"

    def test_unknown_function(self, module_data):
        with pytest.raises(ContentError) as excinfo:
            parse_module(module_data, {"check_answer": _check_answer})
        assert "unknown function" in str(excinfo.value)

    def test_unknown_task_on_interactable(self, module_data):
        data = copy.deepcopy(module_data)
        data["interactables"][0]["tasks"] = ["missing"]
        with pytest.raises(ContentError) as excinfo:
            parse_module(data, FUNCTIONS)
        assert excinfo.value.code == ErrorCode.TASK_NOT_FOUND

    @pytest.mark.parametrize("mutate", [
        lambda d: d.pop("manifest"),
        lambda d: d.update(unlock_requirement={"type": "and", "requirements": []}),
        lambda d: d.update(unlock_requirement={"type": "teleport"}),
        lambda d: d["tasks"][0].update(submission={"type": "video"}),
        lambda d: d.update(extra=True),
    ])
    def test_schema_violations(self, module_data, mutate):
        data = copy.deepcopy(module_data)
        mutate(data)
        with pytest.raises(ContentError) as excinfo:
            parse_module(data, FUNCTIONS)
        assert excinfo.value.code == ErrorCode.MODULE_INVALID


def test_parse_requirement_and_condition():
    requirement = parse_requirement({"type": "custom", "function": "always", "description": "yes"}, FUNCTIONS)
    assert isinstance(requirement, Custom)
    assert requirement.description == "yes"
    assert parse_requirement(None, FUNCTIONS) is None

    condition = parse_condition({"type": "or", "conditions": [
        {"type": "interactable-state", "interactable_id": "painter", "key": "mood", "value": "calm"},
        {"type": "module-state", "key": "seen", "value": True},
    ]}, FUNCTIONS)
    assert [c.type for c in condition.conditions] == ["interactable-state", "module-state"]


class TestFiles:
    def test_load_module_file(self, tmp_path, module_data):
        path = tmp_path / "colors.json"
        path.write_text(json.dumps(module_data), encoding="utf-8")
        assert load_module_file(path, FUNCTIONS).id == "colors"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_module_file(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ContentError):
            load_module_file(path)

    def test_load_modules_dir(self, tmp_path, module_data):
        second = {"id": "basics", "manifest": {"name": "Basics"}}
        (tmp_path / "b_colors.json").write_text(json.dumps(module_data), encoding="utf-8")
        (tmp_path / "a_basics.json").write_text(json.dumps(second), encoding="utf-8")
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        modules = load_modules_dir(tmp_path, FUNCTIONS)
        assert [m.id for m in modules] == ["basics", "colors"]

    def test_missing_dir_is_empty(self, tmp_path):
        assert load_modules_dir(tmp_path / "absent") == []
