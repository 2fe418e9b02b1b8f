"""Dialogue data model: conditions, choice actions, nodes and trees.

Conditions and actions are closed tagged unions of frozen dataclasses. Each
variant carries a ``type`` tag matching its JSON form. A tree keeps its nodes in
one arena keyed by id; successors are referenced by id only, so cyclic
conversations never create cyclic object graphs.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, ClassVar, Dict, List, Optional, Tuple, Union

from ..core.errors import DialogueNodeNotFound
from ..core.models import TaskRef, task_id_of

if TYPE_CHECKING:
    from ..core.context import ModuleContext


# --- Conditions ---

@dataclass(frozen=True, eq=False)
class TaskCompleteCondition:
    type: ClassVar[str] = "task-complete"
    task: TaskRef


@dataclass(frozen=True, eq=False)
class TaskActiveCondition:
    type: ClassVar[str] = "task-active"
    task: TaskRef


@dataclass(frozen=True, eq=False)
class StateCheckCondition:
    type: ClassVar[str] = "state-check"
    key: str
    value: Any


@dataclass(frozen=True, eq=False)
class InteractableStateCondition:
    type: ClassVar[str] = "interactable-state"
    interactable_id: str
    key: str
    value: Any


@dataclass(frozen=True, eq=False)
class ModuleStateCondition:
    type: ClassVar[str] = "module-state"
    key: str
    value: Any


@dataclass(frozen=True, eq=False)
class AndCondition:
    type: ClassVar[str] = "and"
    conditions: Tuple["DialogueCondition", ...]

    def __post_init__(self):
        object.__setattr__(self, "conditions", tuple(self.conditions))


@dataclass(frozen=True, eq=False)
class OrCondition:
    type: ClassVar[str] = "or"
    conditions: Tuple["DialogueCondition", ...]

    def __post_init__(self):
        object.__setattr__(self, "conditions", tuple(self.conditions))


@dataclass(frozen=True, eq=False)
class CustomCondition:
    type: ClassVar[str] = "custom"
    check: Callable[["ModuleContext"], bool]


CONDITION_TYPES = (
    TaskCompleteCondition, TaskActiveCondition, StateCheckCondition, InteractableStateCondition,
    ModuleStateCondition, AndCondition, OrCondition, CustomCondition,
)

# A bare ``context -> bool`` callable is accepted wherever a condition is.
DialogueCondition = Union[
    TaskCompleteCondition, TaskActiveCondition, StateCheckCondition, InteractableStateCondition,
    ModuleStateCondition, AndCondition, OrCondition, CustomCondition, Callable[["ModuleContext"], bool],
]


# --- Choice actions ---

@dataclass(frozen=True, eq=False)
class AcceptTask:
    type: ClassVar[str] = "accept-task"
    task: TaskRef

    @property
    def task_id(self) -> str:
        return task_id_of(self.task)


@dataclass(frozen=True, eq=False)
class OfferTask:
    type: ClassVar[str] = "offer-task"
    task: TaskRef

    @property
    def task_id(self) -> str:
        return task_id_of(self.task)


@dataclass(frozen=True, eq=False)
class SetState:
    type: ClassVar[str] = "set-state"
    key: str
    value: Any


@dataclass(frozen=True, eq=False)
class SetInteractableState:
    type: ClassVar[str] = "set-interactable-state"
    interactable_id: str
    key: str
    value: Any


@dataclass(frozen=True, eq=False)
class SetModuleState:
    type: ClassVar[str] = "set-module-state"
    key: str
    value: Any


@dataclass(frozen=True, eq=False)
class CallFunction:
    type: ClassVar[str] = "call-function"
    handler: Callable[["ModuleContext"], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class GoTo:
    type: ClassVar[str] = "go-to"
    node: str


@dataclass(frozen=True)
class CloseDialogue:
    type: ClassVar[str] = "close-dialogue"


@dataclass(frozen=True)
class NoAction:
    type: ClassVar[str] = "none"


ChoiceAction = Union[
    AcceptTask, OfferTask, SetState, SetInteractableState, SetModuleState,
    CallFunction, GoTo, CloseDialogue, NoAction,
]

ACTION_TYPES = (
    AcceptTask, OfferTask, SetState, SetInteractableState, SetModuleState,
    CallFunction, GoTo, CloseDialogue, NoAction,
)


# --- Nodes and trees ---

DynamicText = Union[str, Callable[["ModuleContext"], str]]
DialogueLines = Union[List[str], Callable[["ModuleContext"], List[str]]]
NextNode = Union[str, None, Callable[["ModuleContext"], Optional[str]]]
ChoiceActions = Union[List[ChoiceAction], Callable[["ModuleContext"], List[ChoiceAction]]]


@dataclass(eq=False)
class DialogueChoice:
    """One selectable answer.

    ``next`` is the successor node id; ``None`` closes the conversation.
    """
    text: DynamicText
    next: NextNode = None
    actions: ChoiceActions = field(default_factory=list)
    condition: Optional[DialogueCondition] = None


DialogueChoices = Union[Dict[str, DialogueChoice], Callable[["ModuleContext"], Dict[str, DialogueChoice]]]


@dataclass(eq=False)
class DialogueNode:
    id: str
    lines: DialogueLines = field(default_factory=list)
    choices: DialogueChoices = field(default_factory=dict)
    # Set on nodes shown when the player is ready to hand in this task
    task: Optional[TaskRef] = None
    # Auto-advance target for nodes without choices
    next: Optional[str] = None

    @property
    def task_id(self) -> Optional[str]:
        return task_id_of(self.task) if self.task is not None else None


@dataclass(frozen=True, eq=False)
class EntryRule:
    condition: DialogueCondition
    node_id: str


@dataclass(eq=False)
class DialogueTree:
    """All nodes of one interactable's conversation.

    Args:
        nodes: Arena of nodes keyed by id
        default: Node id used when no entry rule matches
        entry: Ordered entry rules; the first whose condition holds wins
        id: Optional label used in error messages
    """
    nodes: Dict[str, DialogueNode]
    default: str
    entry: List[EntryRule] = field(default_factory=list)
    id: Optional[str] = None

    def get_node(self, node_id: str) -> DialogueNode:
        """Look up a node by id.

        Raises:
            DialogueNodeNotFound: The id is not in this tree
        """
        node = self.nodes.get(node_id)
        if node is None:
            raise DialogueNodeNotFound(node_id, self.id)
        return node

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def find_task_node(self, task_id: str) -> Optional[DialogueNode]:
        """First node marked as the ready node for ``task_id``."""
        for node in self.nodes.values():
            if node.task_id == task_id:
                return node
        return None


__all__ = [
    "TaskCompleteCondition", "TaskActiveCondition", "StateCheckCondition", "InteractableStateCondition",
    "ModuleStateCondition", "AndCondition", "OrCondition", "CustomCondition",
    "CONDITION_TYPES", "DialogueCondition",
    "AcceptTask", "OfferTask", "SetState", "SetInteractableState", "SetModuleState",
    "CallFunction", "GoTo", "CloseDialogue", "NoAction", "ChoiceAction", "ACTION_TYPES",
    "DynamicText", "DialogueLines", "NextNode", "ChoiceActions", "DialogueChoices",
    "DialogueChoice", "DialogueNode", "EntryRule", "DialogueTree",
]
