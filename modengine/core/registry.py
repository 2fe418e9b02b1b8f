"""Runtime registry of loaded modules.

An explicit object passed to whatever needs lookups; there is no global
registry. Task ids are indexed so requirements can find the module that owns
a task without walking every module.
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional

from .models import ModuleConfig, ModuleDefinition, Task

logger = logging.getLogger(__name__)


class ModuleRegistry:
    """Registry for managing module definitions at runtime."""

    def __init__(self, modules: Optional[Iterable[ModuleDefinition]] = None):
        self.modules: Dict[str, ModuleDefinition] = {}
        self.task_index: Dict[str, str] = {}  # task id -> module id
        for module in modules or []:
            self.register_module(module)

    def register_module(self, module: ModuleDefinition) -> None:
        """Register a module, replacing any previous one with the same id."""
        if module.id in self.modules:
            logger.warning("Module %s registered twice, replacing previous definition", module.id)
            self.unregister_module(module.id)
        self.modules[module.id] = module
        for task in module.tasks:
            owner = self.task_index.get(task.id)
            if owner and owner != module.id:
                logger.warning("Task id %s is declared by both %s and %s", task.id, owner, module.id)
            self.task_index[task.id] = module.id
        logger.debug("Registered module %s (%d tasks)", module.id, len(module.tasks))

    def register_modules(self, modules: Iterable[ModuleDefinition]) -> None:
        for module in modules:
            self.register_module(module)

    def unregister_module(self, module_id: str) -> None:
        module = self.modules.pop(module_id, None)
        if not module:
            return
        for task in module.tasks:
            if self.task_index.get(task.id) == module_id:
                del self.task_index[task.id]

    def get_module(self, module_id: str) -> Optional[ModuleDefinition]:
        return self.modules.get(module_id)

    def get_module_config(self, module_id: str) -> Optional[ModuleConfig]:
        module = self.modules.get(module_id)
        return module.config if module else None

    def get_registered_module_ids(self) -> List[str]:
        return list(self.modules.keys())

    def is_module_registered(self, module_id: str) -> bool:
        return module_id in self.modules

    def find_task_module(self, task_id: str) -> Optional[str]:
        """Module id that declares ``task_id``, or None."""
        return self.task_index.get(task_id)

    def get_task(self, task_id: str) -> Optional[Task]:
        module_id = self.task_index.get(task_id)
        if not module_id:
            return None
        return self.modules[module_id].get_task(task_id)

    def clear(self) -> None:
        """Forget every module (test teardown)."""
        self.modules.clear()
        self.task_index.clear()

    def __len__(self) -> int:
        return len(self.modules)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self.modules
