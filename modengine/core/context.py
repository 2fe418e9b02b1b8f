"""Module context: the narrow interface authored content and the core use.

Every read and write goes straight to the ProgressStore, scoped to one
module. Evaluators, executors and navigators only ever see this object.
"""
from __future__ import annotations
import inspect
from typing import Any, Callable, Optional

from .models import Interactable, Task, TaskRef, task_id_of
from .registry import ModuleRegistry
from .state import ProgressStore

TaskHook = Callable[[Task], Any]


class ModuleContext:
    """Store access bound to one module id.

    Args:
        module_id: Module the context is scoped to
        store: Shared progress store
        registry: Module registry, used to resolve tasks, interactables and
            the owners of task ids referenced across modules
        open_task_submission: Optional host hook to show a submission UI
        open_task_offer: Optional host hook to show a task offer UI
    """

    def __init__(
        self,
        module_id: str,
        store: ProgressStore,
        registry: Optional[ModuleRegistry] = None,
        open_task_submission: Optional[TaskHook] = None,
        open_task_offer: Optional[TaskHook] = None,
    ):
        self.module_id = module_id
        self.store = store
        self.registry = registry
        self.open_task_submission = open_task_submission
        self.open_task_offer = open_task_offer

    def __repr__(self) -> str:
        return f"ModuleContext(module_id={self.module_id!r})"

    # --- Module state ---

    def get_module_state_field(self, key: str) -> Any:
        return self.store.get_module_state_field(self.module_id, key)

    def set_module_state_field(self, key: str, value: Any) -> None:
        self.store.set_module_state_field(self.module_id, key, value)

    def has_module_state_field(self, key: str) -> bool:
        return self.store.has_module_state_field(self.module_id, key)

    # --- Interactable state ---

    def get_interactable_state(self, interactable_id: str, key: str) -> Any:
        return self.store.get_interactable_state_field(self.module_id, interactable_id, key)

    def set_interactable_state(self, interactable_id: str, key: str, value: Any) -> None:
        self.store.set_interactable_state_field(self.module_id, interactable_id, key, value)

    def has_interactable_state(self, interactable_id: str, key: str) -> bool:
        return self.store.has_interactable_state_field(self.module_id, interactable_id, key)

    # --- Tasks ---

    def accept_task(self, task: TaskRef) -> None:
        self.store.accept_task(self.module_id, task_id_of(task))

    def complete_task(self, task: TaskRef) -> None:
        self.store.complete_task(self.module_id, task_id_of(task))

    def is_task_completed(self, task: TaskRef) -> bool:
        return self.store.is_task_completed(self.module_id, task_id_of(task))

    def get_current_task_id(self) -> Optional[str]:
        return self.store.get_current_task_id(self.module_id)

    def get_current_task(self) -> Optional[Task]:
        task_id = self.get_current_task_id()
        if not task_id or self.registry is None:
            return None
        module = self.registry.get_module(self.module_id)
        return module.get_task(task_id) if module else None

    async def request_task_submission(self, task: TaskRef) -> bool:
        """Ask the host to show the submission UI for ``task``.

        A bare task id is resolved through the registry before the hook is
        called.

        Returns:
            False when the host installed no ``open_task_submission`` hook
        """
        if self.open_task_submission is None:
            return False
        if isinstance(task, str) and self.registry is not None:
            task = self.registry.get_task(task) or task
        result = self.open_task_submission(task)
        if inspect.isawaitable(result):
            await result
        return True

    def task_owner(self, task: TaskRef) -> str:
        """Module that declares the task, falling back to this context's module."""
        task_id = task_id_of(task)
        if self.registry is not None:
            owner = self.registry.find_task_module(task_id)
            if owner:
                return owner
        return self.module_id

    # --- Modules ---

    def is_module_completed(self, module_id: str) -> bool:
        record = self.store.get_progression_record(module_id)
        return bool(record) and record.get("state") == "completed"

    def is_password_verified(self, secret: str, module_id: Optional[str] = None) -> bool:
        """True if ``secret`` was supplied to a successful password unlock of the module."""
        return self.store.is_password_verified(module_id or self.module_id, secret)

    def get_interactable(self, interactable_id: str) -> Optional[Interactable]:
        if self.registry is None:
            return None
        module = self.registry.get_module(self.module_id)
        return module.get_interactable(interactable_id) if module else None

    def for_module(self, module_id: str) -> "ModuleContext":
        """Same store, registry and hooks, scoped to another module."""
        return ModuleContext(
            module_id,
            self.store,
            self.registry,
            open_task_submission=self.open_task_submission,
            open_task_offer=self.open_task_offer,
        )
