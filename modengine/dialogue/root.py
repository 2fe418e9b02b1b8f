"""Auto-generated root dialogue for NPCs with an active task.

When the player's current task belongs to an NPC, opening that NPC shows a
synthetic ``<npc>_root`` node first::

    Hello! What would you like to do?
      talk            -> normal entry node (task-active entry rules skipped)
      task_<task id>  -> the tree node marked with that task
      goodbye         -> close

The node is rebuilt on every call and never added to the tree.
"""
from __future__ import annotations
from typing import Optional

from config import TASK_CHOICE_MAX_LENGTH

from ..core.context import ModuleContext
from ..core.models import Interactable, Task
from ..tasks.availability import get_active_tasks
from .conditions import evaluate_condition
from .conversation import TREE_BRANCH
from .model import CloseDialogue, DialogueChoice, DialogueNode, DialogueTree, TaskActiveCondition

ROOT_SUFFIX = "_root"
TALK_CHOICE = "talk"
GOODBYE_CHOICE = "goodbye"
TASK_CHOICE_PREFIX = "task_"


def root_node_id(npc: Interactable) -> str:
    return f"{npc.id}{ROOT_SUFFIX}"


def is_root_node(node_id: Optional[str]) -> bool:
    return bool(node_id) and node_id.endswith(ROOT_SUFFIX)


def format_task_choice(task: Task, status: str, max_length: int = TASK_CHOICE_MAX_LENGTH) -> str:
    """``[Task] - <name> (<status>)``, cut to ``max_length`` with ``...``."""
    text = f"[Task] - {task.name} ({status})"
    if len(text) > max_length:
        text = text[:max_length - 3] + "..."
    return text


def has_dialogue_content(npc: Interactable) -> bool:
    """True if the NPC's tree has at least one node with a non-blank static line."""
    tree = npc.dialogue_tree
    if tree is None or not tree.nodes:
        return False
    for node in tree.nodes.values():
        # Dynamic lines count as content
        if callable(node.lines):
            return True
        if any(line.strip() for line in node.lines):
            return True
    return False


def talk_entry_node_id(tree: DialogueTree, context: ModuleContext) -> str:
    """Entry node for a manual "talk", ignoring task-active entry rules."""
    for rule in tree.entry:
        if isinstance(rule.condition, TaskActiveCondition):
            continue
        if evaluate_condition(rule.condition, context):
            return rule.node_id
    return tree.default


def generate_root_dialogue(npc: Interactable, context: ModuleContext) -> Optional[DialogueNode]:
    """Build the root node for ``npc``, or None when it has no active task.

    Args:
        npc: Interactable with tasks and a dialogue tree
        context: Context of the NPC's module

    Returns:
        A fresh DialogueNode whose choices point into the NPC's tree
    """
    tree = npc.dialogue_tree
    if tree is None or not npc.tasks:
        return None

    active_tasks = get_active_tasks(npc.tasks, context)
    if not active_tasks:
        return None

    choices = {}
    if has_dialogue_content(npc):
        choices[TALK_CHOICE] = DialogueChoice(
            text=f"Talk to {npc.name}...",
            next=lambda ctx: talk_entry_node_id(tree, ctx),
        )

    for task in active_tasks:
        task_node = tree.find_task_node(task.id)
        if task_node is None:
            continue
        choices[f"{TASK_CHOICE_PREFIX}{task.id}"] = DialogueChoice(
            text=format_task_choice(task, "In Progress"),
            next=task_node.id,
        )

    choices[GOODBYE_CHOICE] = DialogueChoice(text="Goodbye", next=None, actions=[CloseDialogue()])

    return DialogueNode(
        id=root_node_id(npc),
        lines=["Hello! What would you like to do?"],
        choices=choices,
    )


def branch_for_choice(choice_key: str) -> Optional[str]:
    """Conversation branch entered by a root choice: a task id or ``"tree"``."""
    if choice_key.startswith(TASK_CHOICE_PREFIX):
        return choice_key[len(TASK_CHOICE_PREFIX):]
    if choice_key == TALK_CHOICE:
        return TREE_BRANCH
    return None


__all__ = [
    "ROOT_SUFFIX", "TALK_CHOICE", "GOODBYE_CHOICE", "TASK_CHOICE_PREFIX",
    "root_node_id", "is_root_node", "format_task_choice", "has_dialogue_content",
    "talk_entry_node_id", "generate_root_dialogue", "branch_for_choice",
]
