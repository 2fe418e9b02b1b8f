"""Dialogue condition evaluation.

Conditions gate entry rules and choices. Evaluation is synchronous and never
writes to the store, so repeated evaluation without a state change always
gives the same answer.
"""
from __future__ import annotations
import logging
from typing import Iterable

from ..core.context import ModuleContext
from ..core.errors import ContentError, ErrorCode
from ..core.models import task_id_of
from ..unlock.dsl import module_state_matches, strict_equals
from .model import (
    AndCondition, CustomCondition, DialogueCondition, InteractableStateCondition, ModuleStateCondition,
    OrCondition, StateCheckCondition, TaskActiveCondition, TaskCompleteCondition,
)

logger = logging.getLogger(__name__)


def evaluate_condition(condition: DialogueCondition, context: ModuleContext) -> bool:
    """Evaluate a dialogue condition.

    Args:
        condition: Condition dataclass or a bare ``context -> bool`` callable
        context: Context of the module the dialogue belongs to

    Returns:
        True if the condition holds

    Raises:
        ContentError: ``condition`` is not a known condition
    """
    if isinstance(condition, TaskCompleteCondition):
        return context.is_task_completed(condition.task)

    if isinstance(condition, TaskActiveCondition):
        return context.get_current_task_id() == task_id_of(condition.task)

    if isinstance(condition, (StateCheckCondition, ModuleStateCondition)):
        return module_state_matches(context, condition.key, condition.value)

    if isinstance(condition, InteractableStateCondition):
        if not context.has_interactable_state(condition.interactable_id, condition.key):
            return False
        actual = context.get_interactable_state(condition.interactable_id, condition.key)
        return strict_equals(actual, condition.value)

    if isinstance(condition, AndCondition):
        return all(evaluate_condition(c, context) for c in condition.conditions)

    if isinstance(condition, OrCondition):
        return any(evaluate_condition(c, context) for c in condition.conditions)

    if isinstance(condition, CustomCondition):
        return bool(condition.check(context))

    if callable(condition):
        return bool(condition(context))

    raise ContentError(ErrorCode.DIALOGUE_INVALID, f"Unknown dialogue condition: {condition!r}")


def evaluate_all(conditions: Iterable[DialogueCondition], context: ModuleContext) -> bool:
    """True if every condition holds (empty list is true)."""
    return all(evaluate_condition(c, context) for c in conditions)


__all__ = ["evaluate_condition", "evaluate_all"]
