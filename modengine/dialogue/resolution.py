"""Dynamic content resolution.

Lines, choice maps, choice text, actions and successors can each be static or
a function of the context. They are resolved at the moment a node becomes
current and never cached, so two visits to the same node can read differently.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..core.context import ModuleContext
from ..core.errors import ContentError, ErrorCode
from .conditions import evaluate_condition
from .model import (
    ChoiceAction, ChoiceActions, DialogueChoice, DialogueLines, DialogueNode, DynamicText, NextNode,
)


@dataclass(frozen=True)
class AvailableChoice:
    key: str
    text: str
    actions: List[ChoiceAction] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedNode:
    """A node as the player sees it right now."""
    id: str
    lines: List[str]
    choices: List[AvailableChoice]
    task_id: Optional[str] = None
    next: Optional[str] = None


def resolve_lines(lines: DialogueLines, context: ModuleContext) -> List[str]:
    if callable(lines):
        return list(lines(context))
    return list(lines)


def resolve_text(text: DynamicText, context: ModuleContext) -> str:
    if callable(text):
        return text(context)
    return text


def resolve_choices(node: DialogueNode, context: ModuleContext) -> Dict[str, DialogueChoice]:
    """Node choices in authoring order, before condition filtering."""
    choices = node.choices(context) if callable(node.choices) else node.choices
    if choices is None:
        return {}
    if not isinstance(choices, dict):
        raise ContentError(ErrorCode.DIALOGUE_INVALID,
                           f"Choices of node '{node.id}' must be a mapping, got {type(choices).__name__}")
    return choices


def resolve_actions(actions: ChoiceActions, context: ModuleContext) -> List[ChoiceAction]:
    if actions is None:
        return []
    if callable(actions):
        return list(actions(context))
    return list(actions)


def resolve_next(next_node: NextNode, context: ModuleContext) -> Optional[str]:
    """Successor node id, or None for "close the conversation"."""
    if callable(next_node):
        next_node = next_node(context)
    if next_node is not None and not isinstance(next_node, str):
        raise ContentError(ErrorCode.DIALOGUE_INVALID, f"Successor must be a node id, got {next_node!r}")
    return next_node


def is_choice_visible(choice: DialogueChoice, context: ModuleContext) -> bool:
    return choice.condition is None or evaluate_condition(choice.condition, context)


def resolve_available_choices(node: DialogueNode, context: ModuleContext) -> List[AvailableChoice]:
    """Visible choices of ``node`` with resolved text and actions."""
    available = []
    for key, choice in resolve_choices(node, context).items():
        if not is_choice_visible(choice, context):
            continue
        available.append(AvailableChoice(
            key=key,
            text=resolve_text(choice.text, context),
            actions=resolve_actions(choice.actions, context),
        ))
    return available


def resolve_node(node: DialogueNode, context: ModuleContext) -> ResolvedNode:
    """Resolve every dynamic field of ``node`` against the current state."""
    return ResolvedNode(
        id=node.id,
        lines=resolve_lines(node.lines, context),
        choices=resolve_available_choices(node, context),
        task_id=node.task_id,
        next=node.next,
    )


__all__ = [
    "AvailableChoice", "ResolvedNode", "resolve_lines", "resolve_text", "resolve_choices",
    "resolve_actions", "resolve_next", "is_choice_visible", "resolve_available_choices", "resolve_node",
]
