"""In-process progress store.

Holds every piece of mutable per-player data: task progress, module-level
state, per-interactable state, module progression records and verified
password unlocks. Static module content stays in the registry.

The store serializes writes by construction (plain synchronous dict updates);
callers are responsible for not interleaving async dispatches on the same
interactable.
"""
from __future__ import annotations
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

# Module-state keys stored on the progress record itself instead of the
# free-form module bag.
CORE_STATE_KEYS = ("completed_tasks", "current_task_id", "conversations")


def _secret_digest(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


@dataclass
class ModuleProgress:
    completed_tasks: List[str] = field(default_factory=list)
    current_task_id: Optional[str] = None
    conversations: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    module: Dict[str, Any] = field(default_factory=dict)
    # interactable id -> field -> value, created lazily on first write
    interactables: Dict[str, Dict[str, Any]] = field(default_factory=dict)


class ProgressStore:
    """Key-value store of module, interactable, task and progression state."""

    def __init__(self):
        self.progress: Dict[str, ModuleProgress] = {}
        self.progression: Dict[str, Dict[str, Any]] = {}
        # (module id, sha256 of the secret) per verified password requirement
        self.verified_passwords: Set[Tuple[str, str]] = set()

    # --- Progress records ---

    def get_progress(self, module_id: str) -> Optional[ModuleProgress]:
        return self.progress.get(module_id)

    def _ensure_progress(self, module_id: str) -> ModuleProgress:
        progress = self.progress.get(module_id)
        if progress is None:
            progress = ModuleProgress()
            self.progress[module_id] = progress
        return progress

    # --- Tasks ---

    def accept_task(self, module_id: str, task_id: str) -> None:
        self._ensure_progress(module_id).current_task_id = task_id
        logger.debug("Task %s accepted in module %s", task_id, module_id)

    def complete_task(self, module_id: str, task_id: str) -> None:
        progress = self._ensure_progress(module_id)
        if task_id in progress.completed_tasks:
            return
        progress.completed_tasks.append(task_id)
        if progress.current_task_id == task_id:
            progress.current_task_id = None
        logger.debug("Task %s completed in module %s", task_id, module_id)

    def is_task_completed(self, module_id: str, task_id: str) -> bool:
        progress = self.progress.get(module_id)
        return progress is not None and task_id in progress.completed_tasks

    def get_current_task_id(self, module_id: str) -> Optional[str]:
        progress = self.progress.get(module_id)
        return progress.current_task_id if progress else None

    # --- Module state ---

    def get_module_state_field(self, module_id: str, key: str) -> Any:
        progress = self.progress.get(module_id)
        if progress is None:
            return None
        if key in CORE_STATE_KEYS:
            return getattr(progress, key)
        return progress.module.get(key)

    def set_module_state_field(self, module_id: str, key: str, value: Any) -> None:
        progress = self._ensure_progress(module_id)
        if key in CORE_STATE_KEYS:
            setattr(progress, key, value)
        else:
            progress.module[key] = value

    def has_module_state_field(self, module_id: str, key: str) -> bool:
        """True once the field has been written, even if its value is None."""
        progress = self.progress.get(module_id)
        if progress is None:
            return False
        if key in CORE_STATE_KEYS:
            return True
        return key in progress.module

    # --- Interactable state ---

    def get_interactable_state_field(self, module_id: str, interactable_id: str, key: str) -> Any:
        progress = self.progress.get(module_id)
        if progress is None:
            return None
        return progress.interactables.get(interactable_id, {}).get(key)

    def set_interactable_state_field(self, module_id: str, interactable_id: str, key: str, value: Any) -> None:
        bag = self._ensure_progress(module_id).interactables.setdefault(interactable_id, {})
        bag[key] = value

    def has_interactable_state_field(self, module_id: str, interactable_id: str, key: str) -> bool:
        progress = self.progress.get(module_id)
        return progress is not None and key in progress.interactables.get(interactable_id, {})

    # --- Progression ---

    def get_progression_record(self, module_id: str) -> Optional[Dict[str, Any]]:
        return self.progression.get(module_id)

    def set_progression_record(self, module_id: str, record: Dict[str, Any]) -> None:
        self.progression[module_id] = record

    # --- Password side channel ---

    def mark_password_verified(self, module_id: str, secret: str) -> None:
        self.verified_passwords.add((module_id, _secret_digest(secret)))

    def is_password_verified(self, module_id: str, secret: str) -> bool:
        return (module_id, _secret_digest(secret)) in self.verified_passwords

    def reset(self) -> None:
        """Drop every record. Used between test runs and on 'new game'."""
        self.progress.clear()
        self.progression.clear()
        self.verified_passwords.clear()
