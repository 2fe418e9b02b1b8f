"""Unlock requirement data model.

A requirement is a small closed tagged union. Each variant carries a
class-level ``type`` tag matching the authored JSON form, e.g.::

    {"type": "task-complete", "task": "intro"}
    {"type": "and", "requirements": [...]}

New variants are added here and in the two matching functions
(``dsl.evaluate_unlock_requirement`` and ``validation.validate_requirement``).
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, ClassVar, List, Tuple, Union

from ..core.models import Task, TaskRef, task_id_of

CustomCheck = Callable[[Any], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True, eq=False)
class TaskComplete:
    type: ClassVar[str] = "task-complete"
    task: TaskRef

    @property
    def task_id(self) -> str:
        return task_id_of(self.task)

    @property
    def task_name(self) -> str:
        return self.task.name if isinstance(self.task, Task) else self.task


@dataclass(frozen=True)
class ModuleComplete:
    type: ClassVar[str] = "module-complete"
    module_id: str


@dataclass(frozen=True, eq=False)
class StateCheck:
    type: ClassVar[str] = "state-check"
    key: str
    value: Any


@dataclass(frozen=True)
class Password:
    type: ClassVar[str] = "password"
    password: str = field(repr=False)
    hint: str = ""


@dataclass(frozen=True, eq=False)
class AllOf:
    type: ClassVar[str] = "and"
    requirements: Tuple["UnlockRequirement", ...]

    def __post_init__(self):
        object.__setattr__(self, "requirements", tuple(self.requirements))


@dataclass(frozen=True, eq=False)
class AnyOf:
    type: ClassVar[str] = "or"
    requirements: Tuple["UnlockRequirement", ...]

    def __post_init__(self):
        object.__setattr__(self, "requirements", tuple(self.requirements))


@dataclass(frozen=True, eq=False)
class Custom:
    type: ClassVar[str] = "custom"
    check: CustomCheck
    description: str = ""


UnlockRequirement = Union[TaskComplete, ModuleComplete, StateCheck, Password, AllOf, AnyOf, Custom]

REQUIREMENT_TYPES = (TaskComplete, ModuleComplete, StateCheck, Password, AllOf, AnyOf, Custom)


# --- Authoring helpers ---

def task_complete(task: TaskRef) -> TaskComplete:
    return TaskComplete(task)


def module_complete(module_id: str) -> ModuleComplete:
    return ModuleComplete(module_id)


def state_check(key: str, value: Any) -> StateCheck:
    return StateCheck(key, value)


def password(secret: str, hint: str = "") -> Password:
    return Password(secret, hint)


def all_of(*requirements: UnlockRequirement) -> AllOf:
    return AllOf(requirements)


def any_of(*requirements: UnlockRequirement) -> AnyOf:
    return AnyOf(requirements)


def custom(check: CustomCheck, description: str = "") -> Custom:
    return Custom(check, description)


__all__ = [
    "TaskComplete", "ModuleComplete", "StateCheck", "Password", "AllOf", "AnyOf", "Custom",
    "UnlockRequirement", "REQUIREMENT_TYPES", "CustomCheck",
    "task_complete", "module_complete", "state_check", "password", "all_of", "any_of", "custom",
]
