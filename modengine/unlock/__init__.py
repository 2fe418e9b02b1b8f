"""Unlock requirements: model, evaluation and validation."""

from .model import (
    TaskComplete, ModuleComplete, StateCheck, Password, AllOf, AnyOf, Custom,
    UnlockRequirement, REQUIREMENT_TYPES,
    task_complete, module_complete, state_check, password, all_of, any_of, custom,
)
from .dsl import (
    evaluate_unlock_requirement, check_requirement_sync, strict_equals, module_state_matches,
    requires_user_interaction, extract_module_dependencies, extract_requirement_types,
    extract_requirement_details, RequirementDisplayInfo,
)
from .validation import validate_requirement, find_requirement_cycles, validate_module_graph

__all__ = [
    'TaskComplete', 'ModuleComplete', 'StateCheck', 'Password', 'AllOf', 'AnyOf', 'Custom',
    'UnlockRequirement', 'REQUIREMENT_TYPES',
    'task_complete', 'module_complete', 'state_check', 'password', 'all_of', 'any_of', 'custom',
    'evaluate_unlock_requirement', 'check_requirement_sync', 'strict_equals', 'module_state_matches',
    'requires_user_interaction', 'extract_module_dependencies', 'extract_requirement_types',
    'extract_requirement_details', 'RequirementDisplayInfo',
    'validate_requirement', 'find_requirement_cycles', 'validate_module_graph',
]
