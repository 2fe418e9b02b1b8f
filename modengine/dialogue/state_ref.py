"""Interactable state accessors.

``state_ref(guard)`` is created once while authoring content and bound to a
context whenever a condition, action or dynamic text needs it::

    guard_state = state_ref(guard)

    def greet(ctx):
        state = guard_state.bind(ctx)
        if not state.get("has_met"):
            state.set("has_met", True)

Every read and write goes to the store; nothing is cached, so writes made
elsewhere are visible immediately. Listing fields is not supported.
"""
from __future__ import annotations
from typing import Any, Union

from ..core.context import ModuleContext
from ..core.models import Interactable


class BoundStateRef:
    """Pass-through view of one interactable's state in one module."""

    def __init__(self, interactable_id: str, context: ModuleContext):
        self.interactable_id = interactable_id
        self.context = context

    def get(self, field: str, default: Any = None) -> Any:
        value = self.context.get_interactable_state(self.interactable_id, field)
        return default if value is None else value

    def set(self, field: str, value: Any) -> None:
        self.context.set_interactable_state(self.interactable_id, field, value)

    def has(self, field: str) -> bool:
        return self.context.has_interactable_state(self.interactable_id, field)

    def __iter__(self):
        raise TypeError("Interactable state cannot be enumerated; read fields by name")

    def __repr__(self) -> str:
        return f"BoundStateRef({self.interactable_id!r}, module={self.context.module_id!r})"


class StateRef:
    """Accessor bound at authoring time to one interactable id."""

    def __init__(self, interactable_id: str):
        self.interactable_id = interactable_id

    def bind(self, context: ModuleContext) -> BoundStateRef:
        return BoundStateRef(self.interactable_id, context)

    def __call__(self, context: ModuleContext) -> BoundStateRef:
        return self.bind(context)

    def __repr__(self) -> str:
        return f"StateRef({self.interactable_id!r})"


def state_ref(interactable: Union[Interactable, str]) -> StateRef:
    """Create a state accessor for an interactable or interactable id."""
    interactable_id = interactable if isinstance(interactable, str) else interactable.id
    return StateRef(interactable_id)


__all__ = ["StateRef", "BoundStateRef", "state_ref"]
