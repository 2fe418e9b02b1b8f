"""Module unlock service.

Decides when modules unlock or complete and records it through the
ProgressionTracker:

- initialization sweep: every module gets a record; modules whose requirement
  already holds (or that have none) start unlocked
- password unlock: the only path that writes the verified-password channel,
  one record per matched secret
- completion: a module whose tasks are all completed is marked completed and
  every locked module whose requirement now holds is unlocked
"""
from __future__ import annotations
import hmac
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..core.context import ModuleContext
from ..core.registry import ModuleRegistry
from ..core.state import ProgressStore
from ..unlock.dsl import evaluate_unlock_requirement, password_requirements, requires_user_interaction
from ..unlock.model import Password
from .fsm import ProgressionState, ProgressionTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnlockCheck:
    can_unlock: bool
    requires_interaction: bool


@dataclass(frozen=True)
class UnlockResult:
    success: bool
    requires_password: bool


class _PasswordGrantedContext(ModuleContext):
    """Context that treats one supplied secret as verified, for dry runs."""

    def __init__(self, module_id: str, store: ProgressStore, registry: ModuleRegistry, granted: str):
        super().__init__(module_id, store, registry)
        self.granted = granted

    def is_password_verified(self, secret: str, module_id: Optional[str] = None) -> bool:
        if (module_id is None or module_id == self.module_id) and password_matches(secret, self.granted):
            return True
        return super().is_password_verified(secret, module_id)


def password_matches(secret: str, attempt: str) -> bool:
    """Constant-time comparison of a stored password and an attempt."""
    return hmac.compare_digest(secret.encode("utf-8"), attempt.encode("utf-8"))


class UnlockService:
    """Unlock and completion policy over a registry and a store.

    Args:
        registry: Modules to manage
        store: Shared progress store
        tracker: Progression tracker; one is created over ``store`` if omitted
    """

    def __init__(self, registry: ModuleRegistry, store: ProgressStore,
                 tracker: Optional[ProgressionTracker] = None):
        self.registry = registry
        self.store = store
        self.tracker = tracker or ProgressionTracker(store)

    def context_for(self, module_id: str) -> ModuleContext:
        return ModuleContext(module_id, self.store, self.registry)

    def _matching_passwords(self, module_id: str, attempt: str) -> List[Password]:
        """Password requirements of the module whose secret equals ``attempt``."""
        module = self.registry.get_module(module_id)
        if module is None:
            return []
        return [p for p in password_requirements(module.unlock_requirement) if password_matches(p.password, attempt)]

    def _mark_verified(self, module_id: str, passwords: List[Password]) -> None:
        for p in passwords:
            self.store.mark_password_verified(module_id, p.password)

    async def can_unlock_module(self, module_id: str, password: Optional[str] = None) -> UnlockCheck:
        """Check whether a locked module could be unlocked now.

        Args:
            module_id: Module to check
            password: Optional password to test without recording it

        Returns:
            UnlockCheck; ``requires_interaction`` is True when the requirement
            needs a password that has not been supplied or verified
        """
        module = self.registry.get_module(module_id)
        if module is None:
            return UnlockCheck(can_unlock=False, requires_interaction=False)

        if self.tracker.get_module_progression(module_id) != ProgressionState.LOCKED:
            return UnlockCheck(can_unlock=False, requires_interaction=False)

        requirement = module.unlock_requirement
        if requirement is None:
            return UnlockCheck(can_unlock=True, requires_interaction=False)

        needs_password = requires_user_interaction(requirement)
        if password is not None and needs_password:
            if not self._matching_passwords(module_id, password):
                return UnlockCheck(can_unlock=False, requires_interaction=True)
            context = _PasswordGrantedContext(module_id, self.store, self.registry, password)
            met = await evaluate_unlock_requirement(requirement, context)
            return UnlockCheck(can_unlock=met, requires_interaction=True)

        met = await evaluate_unlock_requirement(requirement, self.context_for(module_id))
        return UnlockCheck(can_unlock=met, requires_interaction=needs_password and not met)

    async def unlock_module(self, module_id: str, password: Optional[str] = None) -> UnlockResult:
        """Unlock a module if its requirement holds.

        A correct ``password`` is recorded as verified before unlocking.
        """
        check = await self.can_unlock_module(module_id, password)
        if check.requires_interaction and password is None:
            return UnlockResult(success=False, requires_password=True)
        if not check.can_unlock:
            return UnlockResult(success=False, requires_password=False)

        if password is not None:
            self._mark_verified(module_id, self._matching_passwords(module_id, password))
        self.tracker.unlock_module(module_id)
        return UnlockResult(success=True, requires_password=False)

    async def attempt_password_unlock(self, module_id: str, password: str) -> bool:
        """Verify a password for a module.

        On success every ``password`` requirement of the module with this exact
        secret evaluates true from now on; password requirements with other
        secrets stay unmet. The module is unlocked if its whole requirement
        now holds.

        Returns:
            True if the password was correct; a wrong password changes nothing
        """
        module = self.registry.get_module(module_id)
        if module is None:
            logger.warning("Password attempt for unknown module %s", module_id)
            return False
        if not password_requirements(module.unlock_requirement):
            logger.warning("Password attempt for module %s, which has no password", module_id)
            return False
        matched = self._matching_passwords(module_id, password)
        if not matched:
            logger.warning("Wrong password for module %s", module_id)
            return False

        self._mark_verified(module_id, matched)
        if self.tracker.get_module_progression(module_id) == ProgressionState.LOCKED:
            if await evaluate_unlock_requirement(module.unlock_requirement, self.context_for(module_id)):
                self.tracker.unlock_module(module_id)
        return True

    async def initialize_module_progression(self, module_ids: Optional[Iterable[str]] = None) -> List[str]:
        """Seed progression records before any interaction.

        Existing records are never moved backwards. Password-gated modules
        stay locked until their password is verified.

        Returns:
            Ids of the modules unlocked by this sweep
        """
        ids = list(module_ids) if module_ids is not None else self.registry.get_registered_module_ids()
        for module_id in ids:
            self.tracker.ensure_record(module_id)

        unlocked = []
        for module_id in ids:
            check = await self.can_unlock_module(module_id)
            if check.can_unlock and not check.requires_interaction:
                self.tracker.unlock_module(module_id)
                unlocked.append(module_id)
        logger.debug("Initialized %d modules, %d unlocked", len(ids), len(unlocked))
        return unlocked

    def is_module_fully_completed(self, module_id: str) -> bool:
        """True if the module has tasks and every one of them is completed."""
        module = self.registry.get_module(module_id)
        if module is None or not module.tasks:
            return False
        return all(self.store.is_task_completed(module_id, task.id) for task in module.tasks)

    async def refresh_module_unlocks(self) -> List[str]:
        """Unlock every locked module whose requirement now holds without a password prompt."""
        unlocked = []
        for module_id in self.registry.get_registered_module_ids():
            if self.tracker.get_module_progression(module_id) != ProgressionState.LOCKED:
                continue
            check = await self.can_unlock_module(module_id)
            if check.can_unlock:
                self.tracker.unlock_module(module_id)
                unlocked.append(module_id)
        return unlocked

    async def evaluate_module_completion(self, module_id: str) -> List[str]:
        """Complete the module if all its tasks are done, then unlock dependents.

        Returns:
            Ids of the modules unlocked as a consequence
        """
        if not self.is_module_fully_completed(module_id):
            return []
        if not self.tracker.is_module_completed(module_id):
            self.tracker.complete_module(module_id)
        unlocked = await self.refresh_module_unlocks()
        if unlocked:
            logger.info("Completing %s unlocked: %s", module_id, ", ".join(unlocked))
        return unlocked


__all__ = ["UnlockCheck", "UnlockResult", "password_matches", "UnlockService"]
