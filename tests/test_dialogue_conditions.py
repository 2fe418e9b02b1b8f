"""Tests for dialogue condition evaluation."""

import pytest

from modengine.core.errors import ContentError
from modengine.dialogue.builder import (
    all_conditions, any_condition, custom_condition, interactable_state_is, module_state_is, state_is,
    task_active, task_completed,
)
from modengine.dialogue.conditions import evaluate_all, evaluate_condition
from modengine.dialogue.model import AndCondition, OrCondition


def test_task_completed(context, intro_tasks):
    condition = task_completed(intro_tasks[0])
    assert evaluate_condition(condition, context) is False
    context.complete_task(intro_tasks[0])
    assert evaluate_condition(condition, context) is True


def test_task_active(context, intro_tasks):
    condition = task_active("t1")
    assert evaluate_condition(condition, context) is False
    context.accept_task(intro_tasks[0])
    assert evaluate_condition(condition, context) is True
    context.complete_task("t1")
    assert evaluate_condition(condition, context) is False


def test_state_and_module_state(context):
    context.set_module_state_field("has_met", True)
    assert evaluate_condition(state_is("has_met", True), context) is True
    assert evaluate_condition(module_state_is("has_met", True), context) is True
    assert evaluate_condition(state_is("has_met", 1), context) is False


def test_interactable_state(context):
    condition = interactable_state_is("guide", "mood", "happy")
    assert evaluate_condition(condition, context) is False
    context.set_interactable_state("guide", "mood", "happy")
    assert evaluate_condition(condition, context) is True
    # Another interactable's bag is separate
    assert evaluate_condition(interactable_state_is("door", "mood", "happy"), context) is False


def test_unset_fields_do_not_match_none(context):
    assert evaluate_condition(state_is("door", None), context) is False
    assert evaluate_condition(interactable_state_is("guide", "mood", None), context) is False
    context.set_module_state_field("door", None)
    context.set_interactable_state("guide", "mood", None)
    assert evaluate_condition(state_is("door", None), context) is True
    assert evaluate_condition(interactable_state_is("guide", "mood", None), context) is True


def test_and_or(context):
    context.set_module_state_field("a", 1)
    a, b = state_is("a", 1), state_is("b", 1)
    assert evaluate_condition(all_conditions(a, b), context) is False
    assert evaluate_condition(any_condition(a, b), context) is True
    assert evaluate_condition(AndCondition([]), context) is True
    assert evaluate_condition(OrCondition([]), context) is False


def test_custom_and_bare_callable(context):
    context.set_module_state_field("visits", 3)
    assert evaluate_condition(custom_condition(lambda ctx: ctx.get_module_state_field("visits") > 2), context)
    assert evaluate_condition(lambda ctx: ctx.get_module_state_field("visits") == 3, context)
    assert not evaluate_condition(lambda ctx: None, context)


def test_unknown_condition_is_content_error(context):
    with pytest.raises(ContentError):
        evaluate_condition({"type": "state-check", "key": "a", "value": 1}, context)


def test_evaluation_does_not_write_state(context, store):
    evaluate_condition(any_condition(state_is("x", 1), interactable_state_is("guide", "y", 2)), context)
    assert store.get_progress("intro") is None


def test_evaluate_all(context):
    context.set_module_state_field("a", 1)
    assert evaluate_all([], context) is True
    assert evaluate_all([state_is("a", 1)], context) is True
    assert evaluate_all([state_is("a", 1), state_is("b", 1)], context) is False
