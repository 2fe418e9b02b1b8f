"""Engine facade for host applications.

Bundles a registry, a progress store, the progression tracker and the unlock
service behind the calls a rendering layer needs. Every method delegates to
the stateless functions of the dialogue and unlock packages.
"""
from __future__ import annotations
import logging
import time
from typing import Any, Callable, List, Optional

from .content.loader import FunctionMap, load_modules_dir
from .core.context import ModuleContext, TaskHook
from .core.models import TaskRef, TaskSolveResult, task_id_of
from .core.registry import ModuleRegistry
from .core.state import ProgressStore
from .dialogue.model import DialogueNode, DialogueTree
from .dialogue.navigation import (
    DialogueSession, DispatchResult, dispatch_choice, get_available_choices, get_initial_dialogue_node,
)
from .dialogue.resolution import AvailableChoice
from .progression.fsm import ProgressionState, ProgressionTracker
from .progression.runtime import UnlockService
from .unlock.dsl import evaluate_unlock_requirement
from .unlock.model import UnlockRequirement
from .unlock.validation import validate_module_graph

logger = logging.getLogger(__name__)


class ModuleEngine:
    """Entry point for hosts.

    Args:
        registry: Module registry; an empty one is created if omitted
        store: Progress store; an empty one is created if omitted
        clock: Time source for progression timestamps
        open_task_submission: Host hook passed to every context
        open_task_offer: Host hook passed to every context
    """

    def __init__(
        self,
        registry: Optional[ModuleRegistry] = None,
        store: Optional[ProgressStore] = None,
        clock: Callable[[], float] = time.time,
        open_task_submission: Optional[TaskHook] = None,
        open_task_offer: Optional[TaskHook] = None,
    ):
        self.registry = registry if registry is not None else ModuleRegistry()
        self.store = store if store is not None else ProgressStore()
        self.tracker = ProgressionTracker(self.store, clock)
        self.unlock_service = UnlockService(self.registry, self.store, self.tracker)
        self.open_task_submission = open_task_submission
        self.open_task_offer = open_task_offer

    def context_for(self, module_id: str) -> ModuleContext:
        return ModuleContext(
            module_id,
            self.store,
            self.registry,
            open_task_submission=self.open_task_submission,
            open_task_offer=self.open_task_offer,
        )

    def load_modules(self, path=None, functions: Optional[FunctionMap] = None) -> List[str]:
        """Load and register every JSON module in ``path``, then validate the unlock graph.

        Returns:
            Ids of the loaded modules
        """
        modules = load_modules_dir(path, functions)
        self.registry.register_modules(modules)
        validate_module_graph(self.registry)
        logger.info("Loaded %d modules", len(modules))
        return [m.id for m in modules]

    async def initialize(self) -> List[str]:
        """Validate the registered content, then seed module progression.

        Modules built in Python get the same checks as loaded JSON modules.

        Returns:
            Ids of the modules unlocked by the sweep

        Raises:
            ContentError: Malformed requirement or dialogue tree, or an unlock cycle
        """
        validate_module_graph(self.registry)
        return await self.unlock_service.initialize_module_progression()

    # --- Unlocking and progression ---

    async def evaluate_unlock_requirement(self, requirement: Optional[UnlockRequirement],
                                          context: ModuleContext) -> bool:
        return await evaluate_unlock_requirement(requirement, context)

    def get_module_progression_state(self, module_id: str) -> ProgressionState:
        return self.tracker.get_module_progression(module_id)

    async def attempt_password_unlock(self, module_id: str, password: str) -> bool:
        return await self.unlock_service.attempt_password_unlock(module_id, password)

    async def complete_task(self, module_id: str, task: TaskRef) -> List[str]:
        """Mark a task completed and cascade module completion.

        Returns:
            Ids of modules unlocked as a consequence
        """
        self.context_for(module_id).complete_task(task)
        logger.info("Task %s completed in module %s", task_id_of(task), module_id)
        return await self.unlock_service.evaluate_module_completion(module_id)

    async def submit_task(self, module_id: str, task: TaskRef, submission: Any) -> TaskSolveResult:
        """Run a task's validator and complete the task when it is solved."""
        task_id = task_id_of(task)
        module = self.registry.get_module(module_id)
        resolved = module.get_task(task_id) if module else None
        if resolved is None:
            return TaskSolveResult(solved=False, reason="unknown task", details=f"Task '{task_id}' not found")
        result = resolved.solve(submission)
        if result.solved:
            await self.complete_task(module_id, resolved)
        return result

    async def request_task_submission(self, module_id: str, task: TaskRef) -> bool:
        """Open the host's submission UI for a task; False when no hook is installed."""
        return await self.context_for(module_id).request_task_submission(task)

    # --- Dialogue ---

    def get_initial_dialogue_node(self, tree: DialogueTree, context: ModuleContext) -> DialogueNode:
        return get_initial_dialogue_node(tree, context)

    def get_available_choices(self, node: DialogueNode, context: ModuleContext) -> List[AvailableChoice]:
        return get_available_choices(node, context)

    async def dispatch_choice(self, tree: DialogueTree, node: DialogueNode, choice_key: str,
                              context: ModuleContext) -> DispatchResult:
        """See ``navigation.dispatch_choice``. Dispatches for one NPC must not overlap."""
        return await dispatch_choice(tree, node, choice_key, context)

    def open_conversation(self, module_id: str, npc_id: str) -> Optional[DialogueSession]:
        """Open (or resume) a conversation; None for unknown modules, NPCs or NPCs without dialogue."""
        module = self.registry.get_module(module_id)
        interactable = module.get_interactable(npc_id) if module else None
        if interactable is None or interactable.dialogue_tree is None:
            return None
        session = DialogueSession(interactable, self.context_for(module_id))
        session.open()
        return session


__all__ = ["ModuleEngine"]
