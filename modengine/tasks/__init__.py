"""Task availability helpers."""

from .availability import TaskStatus, is_task_available, get_available_tasks, get_active_tasks, get_task_status

__all__ = [
    'TaskStatus', 'is_task_available', 'get_available_tasks', 'get_active_tasks', 'get_task_status',
]
