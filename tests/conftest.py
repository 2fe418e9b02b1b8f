"""Shared fixtures: an in-memory store, a small module set and a guide NPC."""

import asyncio

import pytest

from modengine.core.context import ModuleContext
from modengine.core.models import (
    ModuleConfig, ModuleDefinition, ModuleManifest, Task, TaskSolveResult, npc,
)
from modengine.core.registry import ModuleRegistry
from modengine.core.state import ProgressStore
from modengine.dialogue.builder import (
    accept_task, choice, close_dialogue, dialogue_node, dialogue_tree, set_state, state_is, task_active,
    task_completed,
)
from modengine.progression.fsm import ProgressionTracker
from modengine.unlock.model import module_complete, password


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


class FakeClock:
    """Deterministic clock: every call advances by one second."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        self.now += 1.0
        return self.now


def _answer_is_42(submission):
    if submission == "42":
        return TaskSolveResult(solved=True, reason="correct")
    return TaskSolveResult(solved=False, reason="wrong answer")


@pytest.fixture
def store():
    return ProgressStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(store, clock):
    return ProgressionTracker(store, clock)


@pytest.fixture
def intro_tasks():
    return [
        Task(id="t1", name="First steps", description="Answer the question", validate=_answer_is_42),
        Task(id="t2", name="Second steps", description="Say hello"),
    ]


@pytest.fixture
def guide_tree(intro_tasks):
    t1 = intro_tasks[0]
    greeting = dialogue_node("greeting", ["Welcome to the intro module."], {
        "ask": choice("Who are you?", next="about", actions=[set_state("has_met", True)]),
        "task": choice("Any work for me?", next="offer"),
        "bye": choice("Goodbye.", actions=[close_dialogue()]),
    })
    about = dialogue_node("about", ["I'm the guide."], {
        "back": choice("Back", next="greeting"),
    })
    offer = dialogue_node("offer", ["Solve this puzzle for me."], {
        "accept": choice("I'll do it.", next=None, actions=[accept_task(t1)]),
        "later": choice("Maybe later.", next="greeting"),
    })
    ready = dialogue_node("t1_ready", ["Have you solved the puzzle?"], {
        "not_yet": choice("Not yet.", next=None),
    }, task=t1)
    done = dialogue_node("done", ["Thanks for your help!"])
    return (dialogue_tree("guide")
            .nodes(greeting, about, offer, ready, done)
            .entry()
                .when(task_completed(t1)).use(done)
                .when(task_active(t1)).use(ready)
                .when(state_is("has_met", True)).use(about)
                .default(greeting)
            .build())


@pytest.fixture
def guide(guide_tree, intro_tasks):
    return npc("guide", "Guide", dialogue_tree=guide_tree, tasks=[intro_tasks[0]])


@pytest.fixture
def intro_module(guide, intro_tasks):
    return ModuleDefinition(
        id="intro",
        config=ModuleConfig(manifest=ModuleManifest(id="intro", name="Introduction")),
        interactables=[guide],
        tasks=intro_tasks,
    )


@pytest.fixture
def advanced_module():
    return ModuleDefinition(
        id="advanced",
        config=ModuleConfig(
            manifest=ModuleManifest(id="advanced", name="Advanced"),
            unlock_requirement=module_complete("intro"),
        ),
        tasks=[Task(id="a1", name="Advanced task")],
    )


@pytest.fixture
def vault_module():
    return ModuleDefinition(
        id="vault",
        config=ModuleConfig(
            manifest=ModuleManifest(id="vault", name="Vault"),
            unlock_requirement=password("opensesame", hint="A classic"),
        ),
    )


@pytest.fixture
def registry(intro_module, advanced_module, vault_module):
    return ModuleRegistry([intro_module, advanced_module, vault_module])


@pytest.fixture
def context(store, registry):
    return ModuleContext("intro", store, registry)
