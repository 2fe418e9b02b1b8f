"""Content data models: tasks, interactables and module definitions.

Pure dataclasses without loading logic. Authored content is immutable once
built; everything that changes during play lives in the ProgressStore.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

if TYPE_CHECKING:
    from ..dialogue.model import ChoiceAction, DialogueTree
    from ..unlock.model import UnlockRequirement
    from .context import ModuleContext

SubmissionType = Literal["text", "image", "code", "multiple_choice", "custom"]
InteractableType = Literal["npc", "object"]


@dataclass(frozen=True)
class TaskSubmissionConfig:
    type: SubmissionType = "text"
    component: Optional[str] = None
    config: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TaskSolveResult:
    solved: bool
    reason: str = ""
    details: str = ""
    score: Optional[float] = None


def _never_solved(submission: Any) -> TaskSolveResult:
    return TaskSolveResult(solved=False, reason="no validator", details="Task has no solve function")


@dataclass(frozen=True)
class TaskDialogues:
    """Optional dialogue fragments shown around a task."""
    offer: List[str] = field(default_factory=list)
    ready: List[str] = field(default_factory=list)
    complete: List[str] = field(default_factory=list)


@dataclass(frozen=True, eq=False)
class Task:
    """A unit of work the player can accept and submit.

    Lifecycle is not stored here: the store tracks the active task id and the
    completed-task set per module.
    """
    id: str
    name: str
    description: str = ""
    submission: TaskSubmissionConfig = field(default_factory=TaskSubmissionConfig)
    validate: Callable[[Any], TaskSolveResult] = _never_solved
    unlock_requirement: Optional["UnlockRequirement"] = None
    dialogues: Optional[TaskDialogues] = None
    overview: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    def solve(self, submission: Any) -> TaskSolveResult:
        """Run the task's solve function on a submission."""
        return self.validate(submission)


TaskRef = Union[Task, str]


def task_id_of(task: TaskRef) -> str:
    """Accept either a Task or a bare task id."""
    return task if isinstance(task, str) else task.id


@dataclass(eq=False)
class Interactable:
    """An NPC or object placed in a module."""
    id: str
    name: str
    type: InteractableType = "object"
    description: str = ""
    tasks: List[Task] = field(default_factory=list)
    dialogue_tree: Optional["DialogueTree"] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_npc(self) -> bool:
        return self.type == "npc"


def npc(id: str, name: str, dialogue_tree: Optional["DialogueTree"] = None,
        tasks: Optional[List[Task]] = None, **kwargs) -> Interactable:
    """Shorthand for an NPC interactable."""
    return Interactable(id=id, name=name, type="npc", dialogue_tree=dialogue_tree,
                        tasks=list(tasks or []), **kwargs)


@dataclass(frozen=True)
class ModuleManifest:
    id: str
    name: str
    version: str = "1.0.0"
    summary: str = ""


@dataclass(frozen=True)
class ModuleWelcome:
    speaker: str = ""
    lines: List[str] = field(default_factory=list)


@dataclass(frozen=True, eq=False)
class ModuleConfig:
    manifest: ModuleManifest
    unlock_requirement: Optional["UnlockRequirement"] = None
    welcome: Optional[ModuleWelcome] = None
    meta: Dict[str, Any] = field(default_factory=dict)


ChoiceActionHook = Callable[[str, "ChoiceAction", "ModuleContext"], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class ModuleHandlers:
    # Called after every executed choice action: (dialogue id, action, context)
    on_choice_action: Optional[ChoiceActionHook] = None


@dataclass(eq=False)
class ModuleDefinition:
    """A self-contained content pack."""
    id: str
    config: ModuleConfig
    interactables: List[Interactable] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    handlers: ModuleHandlers = field(default_factory=ModuleHandlers)

    @property
    def unlock_requirement(self) -> Optional["UnlockRequirement"]:
        return self.config.unlock_requirement

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_interactable(self, interactable_id: str) -> Optional[Interactable]:
        for interactable in self.interactables:
            if interactable.id == interactable_id:
                return interactable
        return None

    def npcs(self) -> List[Interactable]:
        return [i for i in self.interactables if i.is_npc]


__all__ = [
    "TaskSubmissionConfig", "TaskSolveResult", "TaskDialogues", "Task", "TaskRef", "task_id_of",
    "Interactable", "npc", "ModuleManifest", "ModuleWelcome", "ModuleConfig",
    "ModuleHandlers", "ModuleDefinition",
]
