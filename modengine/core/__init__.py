"""Core types shared by every engine package: store, content models, registry, context, errors."""

from .errors import (
    ErrorCode, EngineError, ContentError, DialogueNodeNotFound, DialogueError, EvaluationError, ProgressionError,
)
from .models import (
    TaskSubmissionConfig, TaskSolveResult, TaskDialogues, Task, task_id_of,
    Interactable, npc, ModuleManifest, ModuleWelcome, ModuleConfig, ModuleHandlers, ModuleDefinition,
)
from .state import ProgressStore, ModuleProgress
from .registry import ModuleRegistry
from .context import ModuleContext

__all__ = [
    'ErrorCode', 'EngineError', 'ContentError', 'DialogueNodeNotFound', 'DialogueError',
    'EvaluationError', 'ProgressionError',
    'TaskSubmissionConfig', 'TaskSolveResult', 'TaskDialogues', 'Task', 'task_id_of',
    'Interactable', 'npc', 'ModuleManifest', 'ModuleWelcome', 'ModuleConfig', 'ModuleHandlers', 'ModuleDefinition',
    'ProgressStore', 'ModuleProgress',
    'ModuleRegistry',
    'ModuleContext',
]
