"""Unlock requirement evaluation.

Supported requirement types:
- task-complete: task id is in the owning module's completed set
- module-complete: module progression state is ``completed``
- state-check: module state field is set and strictly equals a value
- password: true only after ``attempt_password_unlock`` verified this secret
- and / or: left-to-right, short-circuiting combinators
- custom: injected predicate, may be a coroutine function

Evaluation never mutates state. The password check reads a side channel in
the store that only the unlock service writes.
"""
from __future__ import annotations
import inspect
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from ..core.context import ModuleContext
from ..core.errors import ContentError, EngineError, ErrorCode, EvaluationError
from ..core.registry import ModuleRegistry
from .model import (
    AllOf, AnyOf, Custom, ModuleComplete, Password, StateCheck, TaskComplete, UnlockRequirement,
)

logger = logging.getLogger(__name__)


def strict_equals(actual, expected) -> bool:
    """Equality without coercion.

    ``True`` never equals ``1`` and ``"1"`` never equals ``1``. Ints and floats
    compare numerically; every other pair must share a type, so ``None`` only
    equals ``None``. Callers reading store fields use ``module_state_matches``,
    which keeps a missing field distinct from one set to ``None``.
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


def module_state_matches(context: ModuleContext, key: str, expected) -> bool:
    """Strict comparison of a module state field.

    A field that was never written matches nothing, not even ``None``.
    """
    if not context.has_module_state_field(key):
        return False
    return strict_equals(context.get_module_state_field(key), expected)


async def evaluate_unlock_requirement(requirement: Optional[UnlockRequirement], context: ModuleContext) -> bool:
    """Evaluate a requirement tree against the current progress.

    Args:
        requirement: Requirement to evaluate; ``None`` means always unlocked
        context: Context scoped to the module (or task's module) being gated

    Returns:
        True if the requirement is satisfied

    Raises:
        EvaluationError: A custom predicate raised
        ContentError: The requirement is not a known requirement type
    """
    if requirement is None:
        return True

    if isinstance(requirement, TaskComplete):
        owner = context.task_owner(requirement.task)
        return context.store.is_task_completed(owner, requirement.task_id)

    if isinstance(requirement, ModuleComplete):
        return context.is_module_completed(requirement.module_id)

    if isinstance(requirement, StateCheck):
        return module_state_matches(context, requirement.key, requirement.value)

    if isinstance(requirement, Password):
        return context.is_password_verified(requirement.password)

    if isinstance(requirement, AllOf):
        for child in requirement.requirements:
            if not await evaluate_unlock_requirement(child, context):
                return False
        return True

    if isinstance(requirement, AnyOf):
        for child in requirement.requirements:
            if await evaluate_unlock_requirement(child, context):
                return True
        return False

    if isinstance(requirement, Custom):
        try:
            result = requirement.check(context)
            if inspect.isawaitable(result):
                result = await result
        except EngineError:
            raise
        except Exception as e:
            raise EvaluationError(
                f"Custom unlock requirement failed: {e}",
                {"module_id": context.module_id, "description": requirement.description},
            ) from e
        return bool(result)

    raise ContentError(ErrorCode.REQUIREMENT_INVALID, f"Unknown unlock requirement: {requirement!r}")


def check_requirement_sync(requirement: Optional[UnlockRequirement], context: ModuleContext) -> bool:
    """Synchronous subset used for task availability.

    Password and custom requirements cannot be settled synchronously and
    count as unmet.
    """
    if requirement is None:
        return True
    if isinstance(requirement, TaskComplete):
        return context.store.is_task_completed(context.task_owner(requirement.task), requirement.task_id)
    if isinstance(requirement, ModuleComplete):
        return context.is_module_completed(requirement.module_id)
    if isinstance(requirement, StateCheck):
        return module_state_matches(context, requirement.key, requirement.value)
    if isinstance(requirement, AllOf):
        return all(check_requirement_sync(r, context) for r in requirement.requirements)
    if isinstance(requirement, AnyOf):
        return any(check_requirement_sync(r, context) for r in requirement.requirements)
    return False


def walk(requirement: Optional[UnlockRequirement]) -> Iterator[UnlockRequirement]:
    """Depth-first iteration over a requirement and all of its children."""
    if requirement is None:
        return
    yield requirement
    if isinstance(requirement, (AllOf, AnyOf)):
        for child in requirement.requirements:
            yield from walk(child)


def requires_user_interaction(requirement: Optional[UnlockRequirement]) -> bool:
    """True if the requirement contains a password anywhere."""
    return any(isinstance(r, Password) for r in walk(requirement))


def password_requirements(requirement: Optional[UnlockRequirement]) -> List[Password]:
    return [r for r in walk(requirement) if isinstance(r, Password)]


def extract_module_dependencies(requirement: Optional[UnlockRequirement],
                                registry: Optional[ModuleRegistry] = None) -> List[str]:
    """Module ids a requirement depends on.

    ``module-complete`` contributes its module; ``task-complete`` contributes
    the module declaring the task when the registry knows it.
    """
    dependencies: List[str] = []
    for r in walk(requirement):
        if isinstance(r, ModuleComplete):
            dependencies.append(r.module_id)
        elif isinstance(r, TaskComplete) and registry is not None:
            owner = registry.find_task_module(r.task_id)
            if owner:
                dependencies.append(owner)
    return dependencies


def extract_requirement_types(requirement: Optional[UnlockRequirement]) -> List[str]:
    """Leaf requirement type tags, in authoring order."""
    return [r.type for r in walk(requirement) if not isinstance(r, (AllOf, AnyOf))]


@dataclass(frozen=True)
class RequirementDisplayInfo:
    type: str
    module_id: Optional[str] = None
    task_name: Optional[str] = None
    hint: Optional[str] = None


def extract_requirement_details(requirement: Optional[UnlockRequirement]) -> List[RequirementDisplayInfo]:
    """Flatten combinators into one display entry per leaf requirement."""
    details: List[RequirementDisplayInfo] = []
    for r in walk(requirement):
        if isinstance(r, Password):
            details.append(RequirementDisplayInfo(type=r.type, hint=r.hint))
        elif isinstance(r, ModuleComplete):
            details.append(RequirementDisplayInfo(type=r.type, module_id=r.module_id))
        elif isinstance(r, TaskComplete):
            details.append(RequirementDisplayInfo(type=r.type, task_name=r.task_name))
        elif isinstance(r, (StateCheck, Custom)):
            details.append(RequirementDisplayInfo(type=r.type))
    return details


__all__ = [
    "strict_equals", "module_state_matches", "evaluate_unlock_requirement", "check_requirement_sync",
    "walk", "requires_user_interaction", "password_requirements", "extract_module_dependencies",
    "extract_requirement_types", "RequirementDisplayInfo", "extract_requirement_details",
]
