"""Module progression: state machine and unlock service."""

from .fsm import ProgressionState, ModuleProgression, ProgressionTracker, can_transition
from .runtime import UnlockCheck, UnlockResult, UnlockService, password_matches

__all__ = [
    'ProgressionState', 'ModuleProgression', 'ProgressionTracker', 'can_transition',
    'UnlockCheck', 'UnlockResult', 'UnlockService', 'password_matches',
]
