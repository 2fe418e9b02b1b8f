"""Choice action execution.

Actions run strictly in order, one at a time. There is no batching and no
rollback: if an action raises, the actions before it stay applied and the
rest of the sequence is skipped.
"""
from __future__ import annotations
import inspect
import logging
from typing import Iterable, Optional, Union

from ..core.context import ModuleContext
from ..core.errors import ContentError, ErrorCode
from .model import (
    AcceptTask, CallFunction, ChoiceAction, CloseDialogue, GoTo, NoAction, OfferTask,
    SetInteractableState, SetModuleState, SetState,
)

logger = logging.getLogger(__name__)


async def execute_action(action: ChoiceAction, context: ModuleContext) -> None:
    """Apply one action to the store through ``context``.

    Raises:
        ContentError: ``action`` is not a known action
        Exception: Whatever a call-function handler raises, unchanged
    """
    if isinstance(action, AcceptTask):
        context.accept_task(action.task)
    elif isinstance(action, OfferTask):
        if context.open_task_offer is not None:
            task = action.task
            if isinstance(task, str) and context.registry is not None:
                task = context.registry.get_task(task) or task
            result = context.open_task_offer(task)
            if inspect.isawaitable(result):
                await result
        else:
            context.accept_task(action.task)
    elif isinstance(action, (SetState, SetModuleState)):
        context.set_module_state_field(action.key, action.value)
    elif isinstance(action, SetInteractableState):
        context.set_interactable_state(action.interactable_id, action.key, action.value)
    elif isinstance(action, CallFunction):
        result = action.handler(context)
        if inspect.isawaitable(result):
            await result
    elif isinstance(action, (GoTo, CloseDialogue, NoAction)):
        # Navigation reads these; nothing to apply
        pass
    else:
        raise ContentError(ErrorCode.DIALOGUE_INVALID, f"Unknown choice action: {action!r}")


async def execute_actions(actions: Union[ChoiceAction, Iterable[ChoiceAction], None],
                          context: ModuleContext,
                          dialogue_id: str = "") -> None:
    """Run a sequence of actions in order.

    When the context's module declares ``handlers.on_choice_action`` it is
    called after each action with ``(dialogue_id, action, context)``.

    Args:
        actions: A single action, a list of actions, or None
        context: Context of the module the dialogue belongs to
        dialogue_id: Node id passed to the module hook
    """
    if actions is None:
        return
    if not isinstance(actions, (list, tuple)):
        actions = [actions]

    hook = _choice_action_hook(context)
    for action in actions:
        logger.debug("Executing %s action in module %s", getattr(action, "type", action), context.module_id)
        await execute_action(action, context)
        if hook is not None:
            result = hook(dialogue_id, action, context)
            if inspect.isawaitable(result):
                await result


def _choice_action_hook(context: ModuleContext):
    if context.registry is None:
        return None
    module = context.registry.get_module(context.module_id)
    if module is None:
        return None
    return module.handlers.on_choice_action


def closes_dialogue(actions: Iterable[ChoiceAction]) -> bool:
    """True if the sequence contains a close-dialogue action."""
    return any(isinstance(a, CloseDialogue) for a in actions)


def goto_target(actions: Iterable[ChoiceAction]) -> Optional[str]:
    """Target of the last go-to action in the sequence, if any."""
    target = None
    for action in actions:
        if isinstance(action, GoTo):
            target = action.node
    return target


__all__ = ["execute_action", "execute_actions", "closes_dialogue", "goto_target"]
