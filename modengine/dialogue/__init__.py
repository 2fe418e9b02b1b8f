"""Dialogue trees: model, conditions, actions, navigation and authoring builders."""

from .model import (
    TaskCompleteCondition, TaskActiveCondition, StateCheckCondition, InteractableStateCondition,
    ModuleStateCondition, AndCondition, OrCondition, CustomCondition,
    AcceptTask, OfferTask, SetState, SetInteractableState, SetModuleState, CallFunction, GoTo,
    CloseDialogue, NoAction, DialogueChoice, DialogueNode, EntryRule, DialogueTree,
)
from .conditions import evaluate_condition
from .actions import execute_action, execute_actions
from .resolution import AvailableChoice, ResolvedNode, resolve_node
from .navigation import (
    DispatchResult, get_initial_dialogue_node, get_available_choices, dispatch_choice,
    get_next_dialogue_node, DialogueSession,
)
from .root import generate_root_dialogue, format_task_choice
from .state_ref import StateRef, BoundStateRef, state_ref
from .builder import dialogue_node, dialogue_tree, choice, validate_tree

__all__ = [
    'TaskCompleteCondition', 'TaskActiveCondition', 'StateCheckCondition', 'InteractableStateCondition',
    'ModuleStateCondition', 'AndCondition', 'OrCondition', 'CustomCondition',
    'AcceptTask', 'OfferTask', 'SetState', 'SetInteractableState', 'SetModuleState', 'CallFunction', 'GoTo',
    'CloseDialogue', 'NoAction', 'DialogueChoice', 'DialogueNode', 'EntryRule', 'DialogueTree',
    'evaluate_condition',
    'execute_action', 'execute_actions',
    'AvailableChoice', 'ResolvedNode', 'resolve_node',
    'DispatchResult', 'get_initial_dialogue_node', 'get_available_choices', 'dispatch_choice',
    'get_next_dialogue_node', 'DialogueSession',
    'generate_root_dialogue', 'format_task_choice',
    'StateRef', 'BoundStateRef', 'state_ref',
    'dialogue_node', 'dialogue_tree', 'choice', 'validate_tree',
]
