"""Task availability and status.

A task is available when it is not completed and its unlock requirement is
met. Only the synchronous requirement subset is checked here: tasks gated by
a password or a custom predicate read as locked.
"""
from __future__ import annotations
from typing import Iterable, List, Literal

from ..core.context import ModuleContext
from ..core.models import Task
from ..unlock.dsl import check_requirement_sync

TaskStatus = Literal["completed", "active", "available", "locked"]


def is_task_available(task: Task, context: ModuleContext) -> bool:
    if context.is_task_completed(task):
        return False
    return check_requirement_sync(task.unlock_requirement, context)


def get_available_tasks(tasks: Iterable[Task], context: ModuleContext) -> List[Task]:
    return [task for task in tasks if is_task_available(task, context)]


def get_active_tasks(tasks: Iterable[Task], context: ModuleContext) -> List[Task]:
    """Tasks in ``tasks`` that are the module's current task."""
    current_task_id = context.get_current_task_id()
    if not current_task_id:
        return []
    return [task for task in tasks if task.id == current_task_id and not context.is_task_completed(task)]


def get_task_status(task: Task, context: ModuleContext) -> TaskStatus:
    """Status used for badges and task lists.

    Returns:
        ``completed``, ``active`` (the current task), ``available`` or ``locked``
    """
    if context.is_task_completed(task):
        return "completed"
    if context.get_current_task_id() == task.id:
        return "active"
    if check_requirement_sync(task.unlock_requirement, context):
        return "available"
    return "locked"


__all__ = ["TaskStatus", "is_task_available", "get_available_tasks", "get_active_tasks", "get_task_status"]
