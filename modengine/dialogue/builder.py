"""Authoring helpers for dialogue content and tree validation.

Example::

    greeting = dialogue_node("greeting", "Hello there!", {
        "ask": choice("Who are you?", next="intro", actions=[set_state("has_met", True)]),
        "bye": choice("Bye.", actions=[close_dialogue()]),
    })
    intro = dialogue_node("intro", ["I'm the guide."], {"back": choice("Back", next="greeting")})

    tree = (dialogue_tree("guide")
            .nodes(greeting, intro)
            .entry()
                .when(state_is("has_met", True)).use(intro)
                .default(greeting)
            .build())

``build`` validates the tree; every dangling reference is a ContentError.
"""
from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from ..core.errors import ContentError, ErrorCode
from ..core.models import TaskRef
from .model import (
    ACTION_TYPES, CONDITION_TYPES, AcceptTask, AndCondition, CallFunction, ChoiceAction, ChoiceActions,
    CloseDialogue, CustomCondition, DialogueChoice, DialogueChoices, DialogueCondition, DialogueLines,
    DialogueNode, DialogueTree, DynamicText, EntryRule, GoTo, InteractableStateCondition,
    ModuleStateCondition, NextNode, NoAction, OfferTask, OrCondition, SetInteractableState, SetModuleState,
    SetState, StateCheckCondition, TaskActiveCondition, TaskCompleteCondition,
)

logger = logging.getLogger(__name__)

NodeRef = Union[DialogueNode, str]


def _node_id(node: NodeRef) -> str:
    return node if isinstance(node, str) else node.id


# --- Conditions ---

def task_completed(task: TaskRef) -> TaskCompleteCondition:
    return TaskCompleteCondition(task)


def task_active(task: TaskRef) -> TaskActiveCondition:
    return TaskActiveCondition(task)


def state_is(key: str, value: Any) -> StateCheckCondition:
    return StateCheckCondition(key, value)


def interactable_state_is(interactable_id: str, key: str, value: Any) -> InteractableStateCondition:
    return InteractableStateCondition(interactable_id, key, value)


def module_state_is(key: str, value: Any) -> ModuleStateCondition:
    return ModuleStateCondition(key, value)


def all_conditions(*conditions: DialogueCondition) -> AndCondition:
    return AndCondition(conditions)


def any_condition(*conditions: DialogueCondition) -> OrCondition:
    return OrCondition(conditions)


def custom_condition(check: Callable) -> CustomCondition:
    return CustomCondition(check)


# --- Actions ---

def accept_task(task: TaskRef) -> AcceptTask:
    return AcceptTask(task)


def offer_task(task: TaskRef) -> OfferTask:
    return OfferTask(task)


def set_state(key: str, value: Any) -> SetState:
    return SetState(key, value)


def set_interactable_state(interactable_id: str, key: str, value: Any) -> SetInteractableState:
    return SetInteractableState(interactable_id, key, value)


def set_module_state(key: str, value: Any) -> SetModuleState:
    return SetModuleState(key, value)


def call_function(handler: Callable) -> CallFunction:
    return CallFunction(handler)


def go_to(node: NodeRef) -> GoTo:
    return GoTo(_node_id(node))


def close_dialogue() -> CloseDialogue:
    return CloseDialogue()


def no_action() -> NoAction:
    return NoAction()


# --- Nodes ---

def choice(text: DynamicText, next: Union[NextNode, DialogueNode] = None,
           actions: Optional[ChoiceActions] = None,
           condition: Optional[DialogueCondition] = None) -> DialogueChoice:
    if isinstance(next, DialogueNode):
        next = next.id
    return DialogueChoice(text=text, next=next, actions=actions if actions is not None else [],
                          condition=condition)


def dialogue_node(id: str, lines: Union[str, DialogueLines], choices: Optional[DialogueChoices] = None,
                  task: Optional[TaskRef] = None, next: Optional[NodeRef] = None) -> DialogueNode:
    """Create a node; a single string is accepted for ``lines``."""
    if isinstance(lines, str):
        lines = [lines]
    return DialogueNode(
        id=id,
        lines=lines,
        choices=choices if choices is not None else {},
        task=task,
        next=_node_id(next) if next is not None else None,
    )


# --- Trees ---

class DialogueTreeBuilder:
    """Collects nodes and entry rules, then validates them in ``build``."""

    def __init__(self, tree_id: Optional[str] = None):
        self.tree_id = tree_id
        self._nodes: Dict[str, DialogueNode] = {}
        self._entry: List[EntryRule] = []
        self._default: Optional[str] = None

    def node(self, node: DialogueNode) -> "DialogueTreeBuilder":
        if node.id in self._nodes and self._nodes[node.id] is not node:
            raise ContentError(ErrorCode.DIALOGUE_INVALID,
                               f"Duplicate dialogue node id '{node.id}'", {"tree_id": self.tree_id})
        self._nodes[node.id] = node
        return self

    def nodes(self, *nodes: DialogueNode) -> "DialogueTreeBuilder":
        for node in nodes:
            self.node(node)
        return self

    def entry(self) -> "EntryBuilder":
        return EntryBuilder(self)

    def _add_entry_rule(self, condition: DialogueCondition, node: NodeRef) -> None:
        if isinstance(node, DialogueNode):
            self.node(node)
        self._entry.append(EntryRule(condition, _node_id(node)))

    def _set_default(self, node: NodeRef) -> None:
        if isinstance(node, DialogueNode):
            self.node(node)
        self._default = _node_id(node)

    def build(self) -> DialogueTree:
        """Assemble and validate the tree.

        Without an explicit default, the first added node is used.

        Raises:
            ContentError: Empty tree, dangling references or malformed conditions
        """
        if not self._nodes:
            raise ContentError(ErrorCode.DIALOGUE_INVALID, "Dialogue tree must have at least one node",
                               {"tree_id": self.tree_id})
        default = self._default or next(iter(self._nodes))
        tree = DialogueTree(nodes=dict(self._nodes), default=default, entry=list(self._entry), id=self.tree_id)
        validate_tree(tree)
        return tree


class EntryBuilder:
    def __init__(self, tree_builder: DialogueTreeBuilder):
        self.tree_builder = tree_builder

    def when(self, condition: DialogueCondition) -> "EntryConditionBuilder":
        return EntryConditionBuilder(self, condition)

    def default(self, node: NodeRef) -> DialogueTreeBuilder:
        self.tree_builder._set_default(node)
        return self.tree_builder


class EntryConditionBuilder:
    def __init__(self, entry_builder: EntryBuilder, condition: DialogueCondition):
        self.entry_builder = entry_builder
        self.condition = condition

    def use(self, node: NodeRef) -> EntryBuilder:
        self.entry_builder.tree_builder._add_entry_rule(self.condition, node)
        return self.entry_builder


def dialogue_tree(tree_id: Optional[str] = None) -> DialogueTreeBuilder:
    return DialogueTreeBuilder(tree_id)


# --- Validation ---

def validate_condition(condition: DialogueCondition, where: str) -> None:
    if isinstance(condition, (AndCondition, OrCondition)):
        if not condition.conditions:
            raise ContentError(ErrorCode.DIALOGUE_INVALID, f"{where}: '{condition.type}' needs at least one condition")
        for index, child in enumerate(condition.conditions):
            validate_condition(child, f"{where}.{condition.type}[{index}]")
        return
    if isinstance(condition, CustomCondition):
        if not callable(condition.check):
            raise ContentError(ErrorCode.DIALOGUE_INVALID, f"{where}: custom check is not callable")
        return
    if isinstance(condition, CONDITION_TYPES) or callable(condition):
        return
    raise ContentError(ErrorCode.DIALOGUE_INVALID, f"{where}: unknown condition {condition!r}")


def validate_tree(tree: DialogueTree) -> None:
    """Check every statically known reference of a tree.

    Dynamic choice maps, successors and action lists are resolved at runtime
    and cannot be checked here; a dangling id they produce still raises
    DialogueNodeNotFound when reached.

    Raises:
        ContentError: The first problem found
    """
    label = tree.id or "dialogue tree"

    def missing(node_id: Optional[str], where: str) -> None:
        if not isinstance(node_id, str) or node_id not in tree.nodes:
            raise ContentError(ErrorCode.DIALOGUE_NODE_NOT_FOUND,
                               f"{label}: {where} references unknown node '{node_id}'",
                               {"tree_id": tree.id, "node_id": node_id})

    if not tree.nodes:
        raise ContentError(ErrorCode.DIALOGUE_INVALID, f"{label}: tree has no nodes", {"tree_id": tree.id})
    for key, node in tree.nodes.items():
        if key != node.id:
            raise ContentError(ErrorCode.DIALOGUE_INVALID,
                               f"{label}: node stored under '{key}' has id '{node.id}'", {"tree_id": tree.id})

    missing(tree.default, "entry default")
    for index, rule in enumerate(tree.entry):
        validate_condition(rule.condition, f"{label}.entry[{index}]")
        missing(rule.node_id, f"entry rule {index}")

    for node in tree.nodes.values():
        if node.next is not None:
            missing(node.next, f"node '{node.id}' next")
        if callable(node.choices):
            continue
        for key, ch in node.choices.items():
            where = f"node '{node.id}' choice '{key}'"
            if ch.condition is not None:
                validate_condition(ch.condition, f"{label}.{node.id}.{key}")
            if isinstance(ch.next, str):
                missing(ch.next, where)
            elif ch.next is not None and not callable(ch.next):
                raise ContentError(ErrorCode.DIALOGUE_INVALID, f"{label}: {where} has invalid next {ch.next!r}")
            if callable(ch.actions):
                continue
            for action in ch.actions:
                if not isinstance(action, ACTION_TYPES):
                    raise ContentError(ErrorCode.DIALOGUE_INVALID, f"{label}: {where} has unknown action {action!r}")
                if isinstance(action, GoTo):
                    missing(action.node, f"{where} go-to")

    logger.debug("Validated %s (%d nodes)", label, len(tree.nodes))


__all__ = [
    "task_completed", "task_active", "state_is", "interactable_state_is", "module_state_is",
    "all_conditions", "any_condition", "custom_condition",
    "accept_task", "offer_task", "set_state", "set_interactable_state", "set_module_state",
    "call_function", "go_to", "close_dialogue", "no_action",
    "choice", "dialogue_node", "DialogueTreeBuilder", "EntryBuilder", "EntryConditionBuilder",
    "dialogue_tree", "validate_condition", "validate_tree",
]
