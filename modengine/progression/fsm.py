"""Module progression state machine.

States move strictly forward: LOCKED -> UNLOCKED -> COMPLETED. Skipping
UNLOCKED is allowed (a module can be completed straight from locked), going
back is not. ``unlocked_at`` and ``completed_at`` are written once and never
overwritten.

This module only records transitions. Deciding *when* a module unlocks or
completes belongs to ``runtime.UnlockService``.
"""
from __future__ import annotations
import logging
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from ..core.errors import ProgressionError
from ..core.state import ProgressStore

logger = logging.getLogger(__name__)


class ProgressionState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


_ORDER: Dict[ProgressionState, int] = {
    ProgressionState.LOCKED: 0,
    ProgressionState.UNLOCKED: 1,
    ProgressionState.COMPLETED: 2,
}


@dataclass
class ModuleProgression:
    module_id: str
    state: ProgressionState = ProgressionState.LOCKED
    unlocked_at: Optional[float] = None
    completed_at: Optional[float] = None

    def to_record(self) -> dict:
        record = asdict(self)
        record["state"] = self.state.value
        return record

    @classmethod
    def from_record(cls, record: dict) -> "ModuleProgression":
        return cls(
            module_id=record["module_id"],
            state=ProgressionState(record.get("state", ProgressionState.LOCKED.value)),
            unlocked_at=record.get("unlocked_at"),
            completed_at=record.get("completed_at"),
        )


def can_transition(current: ProgressionState, target: ProgressionState) -> bool:
    """True if moving from ``current`` to ``target`` is not a regression.

    Staying in the same state is allowed and is a no-op.
    """
    return _ORDER[ProgressionState(target)] >= _ORDER[ProgressionState(current)]


class ProgressionTracker:
    """Reads and writes progression records in a ProgressStore.

    Args:
        store: Store holding the records
        clock: Returns the current time as a float; injectable for tests
    """

    def __init__(self, store: ProgressStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    def get_record(self, module_id: str) -> Optional[ModuleProgression]:
        record = self.store.get_progression_record(module_id)
        return ModuleProgression.from_record(record) if record else None

    def get_module_progression(self, module_id: str) -> ProgressionState:
        """Current state; unknown modules read as LOCKED."""
        record = self.get_record(module_id)
        return record.state if record else ProgressionState.LOCKED

    def set_module_progression(self, module_id: str, state: ProgressionState) -> ModuleProgression:
        """Move a module to ``state``.

        Args:
            module_id: Module to update
            state: Target state (enum or its string value)

        Returns:
            The stored record

        Raises:
            ProgressionError: ``state`` is behind the current state
        """
        state = ProgressionState(state)
        record = self.get_record(module_id) or ModuleProgression(module_id)
        if not can_transition(record.state, state):
            raise ProgressionError(module_id, record.state.value, state.value)

        previous = record.state
        now = self.clock()
        record.state = state
        if state in (ProgressionState.UNLOCKED, ProgressionState.COMPLETED) and record.unlocked_at is None:
            record.unlocked_at = now
        if state == ProgressionState.COMPLETED and record.completed_at is None:
            record.completed_at = now
        self.store.set_progression_record(module_id, record.to_record())

        if previous != state:
            logger.info("Module %s: %s -> %s", module_id, previous.value, state.value)
        return record

    def ensure_record(self, module_id: str) -> ModuleProgression:
        """Create a LOCKED record if the module has none yet."""
        record = self.get_record(module_id)
        if record is None:
            record = ModuleProgression(module_id)
            self.store.set_progression_record(module_id, record.to_record())
        return record

    def unlock_module(self, module_id: str) -> ModuleProgression:
        """Unlock; a completed module stays completed."""
        if self.get_module_progression(module_id) == ProgressionState.COMPLETED:
            return self.get_record(module_id)
        return self.set_module_progression(module_id, ProgressionState.UNLOCKED)

    def complete_module(self, module_id: str) -> ModuleProgression:
        return self.set_module_progression(module_id, ProgressionState.COMPLETED)

    def is_module_completed(self, module_id: str) -> bool:
        return self.get_module_progression(module_id) == ProgressionState.COMPLETED

    def is_module_unlocked(self, module_id: str) -> bool:
        """True for UNLOCKED and COMPLETED modules."""
        return self.get_module_progression(module_id) != ProgressionState.LOCKED


__all__ = ["ProgressionState", "ModuleProgression", "can_transition", "ProgressionTracker"]
