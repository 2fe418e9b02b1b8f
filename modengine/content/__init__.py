"""Declarative (JSON) module content."""

from .schema import MODULE_SCHEMA
from .loader import (
    validate_module_data, parse_requirement, parse_condition, parse_action, parse_dialogue_tree,
    parse_module, load_module_file, load_modules_dir,
)

__all__ = [
    'MODULE_SCHEMA',
    'validate_module_data', 'parse_requirement', 'parse_condition', 'parse_action', 'parse_dialogue_tree',
    'parse_module', 'load_module_file', 'load_modules_dir',
]
