"""Dialogue navigation: entry resolution, choices, dispatch and resumption.

Dispatch is not arbitrated: two overlapping ``dispatch_choice`` calls for the
same interactable can interleave their awaited actions. Hosts must serialize
dispatches per interactable, e.g. by disabling the choice UI until the
previous call returns.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Optional

import config

from ..core.context import ModuleContext
from ..core.errors import ContentError, DialogueError, ErrorCode
from ..core.models import Interactable
from .actions import closes_dialogue, execute_actions, goto_target
from .conditions import evaluate_condition
from .conversation import (
    TREE_BRANCH, clear_last_dialogue_node, get_last_dialogue_node, set_last_dialogue_branch,
    set_last_dialogue_node,
)
from .model import DialogueChoice, DialogueNode, DialogueTree
from .resolution import (
    AvailableChoice, ResolvedNode, is_choice_visible, resolve_actions, resolve_available_choices,
    resolve_choices, resolve_next, resolve_node,
)
from .root import branch_for_choice, generate_root_dialogue, is_root_node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a choice: the next node, or ``closed``."""
    next_node: Optional[DialogueNode]
    closed: bool
    choice_key: str = ""


def get_initial_dialogue_node(tree: DialogueTree, context: ModuleContext) -> DialogueNode:
    """First node of a conversation.

    Entry rules are scanned top to bottom; the first whose condition holds
    wins, otherwise the tree's default node is used.

    Raises:
        DialogueNodeNotFound: The selected id is not in the tree
    """
    for rule in tree.entry:
        if evaluate_condition(rule.condition, context):
            logger.debug("Entry rule matched, starting at %s", rule.node_id)
            return tree.get_node(rule.node_id)
    return tree.get_node(tree.default)


def get_available_choices(node: DialogueNode, context: ModuleContext) -> List[AvailableChoice]:
    """Choices the player can pick right now, in authoring order."""
    return resolve_available_choices(node, context)


def find_choice(node: DialogueNode, choice_key: str, context: ModuleContext) -> DialogueChoice:
    """Visible choice ``choice_key`` of ``node``.

    Raises:
        DialogueError: The key does not exist or its condition is false
    """
    choice = resolve_choices(node, context).get(choice_key)
    if choice is None or not is_choice_visible(choice, context):
        raise DialogueError(
            ErrorCode.CHOICE_NOT_AVAILABLE,
            f"Choice '{choice_key}' is not available on node '{node.id}'",
            {"node_id": node.id, "choice_key": choice_key},
        )
    return choice


async def dispatch_choice(tree: DialogueTree, node: DialogueNode, choice_key: str,
                          context: ModuleContext) -> DispatchResult:
    """Run a choice's actions, then work out where the conversation goes.

    The successor is the last go-to target if any, else closed when a
    close-dialogue action ran or ``next`` is None, else the ``next`` node.

    Args:
        tree: Tree the successor is looked up in
        node: Node the choice belongs to
        choice_key: Key of the selected choice
        context: Context of the dialogue's module

    Returns:
        DispatchResult with the next node or ``closed=True``

    Raises:
        DialogueError: The choice is unknown or hidden
        DialogueNodeNotFound: The successor id is not in the tree
        Exception: Any error raised by an action; earlier actions stay applied
    """
    choice = find_choice(node, choice_key, context)
    actions = resolve_actions(choice.actions, context)

    await execute_actions(actions, context, dialogue_id=node.id)

    target = goto_target(actions)
    if target is None:
        if closes_dialogue(actions):
            return DispatchResult(next_node=None, closed=True, choice_key=choice_key)
        target = resolve_next(choice.next, context)
    if target is None:
        return DispatchResult(next_node=None, closed=True, choice_key=choice_key)

    logger.debug("Choice %s on %s -> %s", choice_key, node.id, target)
    return DispatchResult(next_node=tree.get_node(target), closed=False, choice_key=choice_key)


def get_next_dialogue_node(tree: DialogueTree, node: DialogueNode,
                           context: ModuleContext) -> Optional[DialogueNode]:
    """Auto-advance target of a node without choices, or None."""
    if node.next is None:
        return None
    return tree.get_node(node.next)


class DialogueSession:
    """Conversation cursor for one NPC of one module.

    Opening a session resumes the remembered node when there is one, else
    shows the root dialogue when the NPC owns the active task, else evaluates
    the entry rules. Every successful transition is remembered in the store;
    closing forgets the node. A dispatch that raises leaves the session on
    the node it was on.

    Like ``dispatch_choice``, a session must not run two ``choose`` calls at
    once.
    """

    def __init__(self, npc: Interactable, context: ModuleContext, root_dialogue: Optional[bool] = None):
        if npc.dialogue_tree is None:
            raise ContentError(ErrorCode.DIALOGUE_INVALID, f"Interactable '{npc.id}' has no dialogue tree")
        self.npc = npc
        self.tree = npc.dialogue_tree
        self.context = context
        self.root_dialogue = config.get_root_dialogue_enabled() if root_dialogue is None else root_dialogue
        self.current: Optional[DialogueNode] = None
        self.closed = False

    @property
    def store(self):
        return self.context.store

    @property
    def module_id(self) -> str:
        return self.context.module_id

    def open(self) -> ResolvedNode:
        """Pick the starting node and return it resolved."""
        self.closed = False
        last_node_id = get_last_dialogue_node(self.store, self.module_id, self.npc.id)
        if last_node_id and self.tree.has_node(last_node_id):
            logger.debug("Resuming conversation with %s at %s", self.npc.id, last_node_id)
            self.current = self.tree.get_node(last_node_id)
            return self.resolved()

        root = generate_root_dialogue(self.npc, self.context) if self.root_dialogue else None
        if root is not None:
            self.current = root
            return self.resolved()

        self.current = get_initial_dialogue_node(self.tree, self.context)
        set_last_dialogue_branch(self.store, self.module_id, self.npc.id, TREE_BRANCH)
        self._remember()
        return self.resolved()

    def resolved(self) -> ResolvedNode:
        self._require_open()
        return resolve_node(self.current, self.context)

    def choices(self) -> List[AvailableChoice]:
        self._require_open()
        return get_available_choices(self.current, self.context)

    async def choose(self, choice_key: str) -> DispatchResult:
        """Dispatch a choice on the current node and move the cursor."""
        self._require_open()
        node = self.current
        result = await dispatch_choice(self.tree, node, choice_key, self.context)

        if is_root_node(node.id):
            branch = branch_for_choice(choice_key)
            if branch:
                set_last_dialogue_branch(self.store, self.module_id, self.npc.id, branch)

        if result.closed:
            self.close()
        else:
            self.current = result.next_node
            self._remember()
        return result

    def advance(self) -> Optional[ResolvedNode]:
        """Follow the current node's ``next``; closes when there is none."""
        self._require_open()
        next_node = get_next_dialogue_node(self.tree, self.current, self.context)
        if next_node is None:
            self.close()
            return None
        self.current = next_node
        self._remember()
        return self.resolved()

    def close(self) -> None:
        self.closed = True
        self.current = None
        clear_last_dialogue_node(self.store, self.module_id, self.npc.id)

    def _remember(self) -> None:
        set_last_dialogue_node(self.store, self.module_id, self.npc.id, self.current.id)

    def _require_open(self) -> None:
        if self.closed or self.current is None:
            raise DialogueError(ErrorCode.CHOICE_NOT_AVAILABLE,
                                f"Conversation with '{self.npc.id}' is not open")


__all__ = [
    "DispatchResult", "get_initial_dialogue_node", "get_available_choices", "find_choice",
    "dispatch_choice", "get_next_dialogue_node", "DialogueSession",
]
