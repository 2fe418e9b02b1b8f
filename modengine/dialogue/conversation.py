"""Per-(module, NPC) conversation memory used to resume dialogues.

Records live in the module state under the ``conversations`` key::

    {"guide": {"branch": "tree", "last_node": "explain"}}

``branch`` is ``"tree"`` for the NPC's own dialogue tree or a task id when the
player entered through a task choice of the root dialogue.
"""
from __future__ import annotations
from typing import Any, Dict, Optional

from ..core.state import ProgressStore

CONVERSATIONS_KEY = "conversations"
TREE_BRANCH = "tree"


def _conversations(store: ProgressStore, module_id: str) -> Dict[str, Dict[str, Any]]:
    return store.get_module_state_field(module_id, CONVERSATIONS_KEY) or {}


def _update(store: ProgressStore, module_id: str, npc_id: str, **fields) -> None:
    conversations = dict(_conversations(store, module_id))
    record = dict(conversations.get(npc_id, {}))
    record.update(fields)
    conversations[npc_id] = record
    store.set_module_state_field(module_id, CONVERSATIONS_KEY, conversations)


def get_last_dialogue_branch(store: ProgressStore, module_id: str, npc_id: str) -> Optional[str]:
    return _conversations(store, module_id).get(npc_id, {}).get("branch") or None


def set_last_dialogue_branch(store: ProgressStore, module_id: str, npc_id: str, branch: str) -> None:
    _update(store, module_id, npc_id, branch=branch)


def get_last_dialogue_node(store: ProgressStore, module_id: str, npc_id: str) -> Optional[str]:
    return _conversations(store, module_id).get(npc_id, {}).get("last_node") or None


def set_last_dialogue_node(store: ProgressStore, module_id: str, npc_id: str, node_id: str) -> None:
    _update(store, module_id, npc_id, last_node=node_id)


def clear_last_dialogue_node(store: ProgressStore, module_id: str, npc_id: str) -> None:
    """Forget where the conversation stopped; the branch is kept."""
    if npc_id in _conversations(store, module_id):
        _update(store, module_id, npc_id, last_node=None)


__all__ = [
    "CONVERSATIONS_KEY", "TREE_BRANCH",
    "get_last_dialogue_branch", "set_last_dialogue_branch",
    "get_last_dialogue_node", "set_last_dialogue_node", "clear_last_dialogue_node",
]
