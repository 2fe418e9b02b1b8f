"""Structural checks for unlock requirements and the module unlock graph."""
from __future__ import annotations
import logging
from typing import Dict, List, Optional

from ..core.errors import ContentError, ErrorCode
from ..core.registry import ModuleRegistry
from ..dialogue.builder import validate_tree
from .dsl import extract_module_dependencies
from .model import REQUIREMENT_TYPES, AllOf, AnyOf, Custom, ModuleComplete, Password, UnlockRequirement

logger = logging.getLogger(__name__)


def validate_requirement(requirement: Optional[UnlockRequirement], where: str = "requirement") -> None:
    """Reject malformed requirement trees.

    Args:
        requirement: Requirement to check; ``None`` is valid
        where: Location label used in error messages

    Raises:
        ContentError: Empty combinator, non-requirement child, non-callable
            custom check, empty password or module id
    """
    if requirement is None:
        return
    if not isinstance(requirement, REQUIREMENT_TYPES):
        raise ContentError(ErrorCode.REQUIREMENT_INVALID,
                           f"{where}: not an unlock requirement: {requirement!r}")

    if isinstance(requirement, (AllOf, AnyOf)):
        if not requirement.requirements:
            raise ContentError(ErrorCode.REQUIREMENT_INVALID,
                               f"{where}: '{requirement.type}' needs at least one requirement")
        for index, child in enumerate(requirement.requirements):
            if child is None:
                raise ContentError(ErrorCode.REQUIREMENT_INVALID, f"{where}.{requirement.type}[{index}]: missing")
            validate_requirement(child, f"{where}.{requirement.type}[{index}]")
    elif isinstance(requirement, Custom) and not callable(requirement.check):
        raise ContentError(ErrorCode.REQUIREMENT_INVALID, f"{where}: custom check is not callable")
    elif isinstance(requirement, Password) and not requirement.password:
        raise ContentError(ErrorCode.REQUIREMENT_INVALID, f"{where}: password is empty")
    elif isinstance(requirement, ModuleComplete) and not requirement.module_id:
        raise ContentError(ErrorCode.REQUIREMENT_INVALID, f"{where}: module id is empty")


def find_requirement_cycles(registry: ModuleRegistry) -> List[List[str]]:
    """Find cycles in the "module A needs module B" graph.

    Returns:
        One list per cycle found, each starting and ending on the same id
    """
    graph: Dict[str, List[str]] = {}
    for module_id in registry.get_registered_module_ids():
        module = registry.get_module(module_id)
        graph[module_id] = extract_module_dependencies(module.unlock_requirement, registry)

    cycles: List[List[str]] = []
    state: Dict[str, int] = {}  # 1 = on stack, 2 = done
    stack: List[str] = []

    def visit(node: str) -> None:
        state[node] = 1
        stack.append(node)
        for dep in graph.get(node, []):
            if state.get(dep) == 1:
                cycles.append(stack[stack.index(dep):] + [dep])
            elif dep not in state:
                visit(dep)
        stack.pop()
        state[node] = 2

    for module_id in graph:
        if module_id not in state:
            visit(module_id)
    return cycles


def validate_module_graph(registry: ModuleRegistry) -> None:
    """Validate every registered module: requirements, dialogue trees and the unlock graph.

    Raises:
        ContentError: A requirement or tree is malformed, or modules require
            each other
    """
    for module_id in registry.get_registered_module_ids():
        module = registry.get_module(module_id)
        validate_requirement(module.unlock_requirement, f"{module_id}.unlock_requirement")
        for task in module.tasks:
            validate_requirement(task.unlock_requirement, f"{module_id}.tasks.{task.id}.unlock_requirement")
        for interactable in module.interactables:
            if interactable.dialogue_tree is not None:
                validate_tree(interactable.dialogue_tree)

    cycles = find_requirement_cycles(registry)
    if cycles:
        path = " -> ".join(cycles[0])
        raise ContentError(ErrorCode.REQUIREMENT_CYCLE, f"Module unlock requirements form a cycle: {path}",
                           {"cycles": cycles})
    logger.debug("Module graph of %d modules is valid", len(registry))


__all__ = ["validate_requirement", "find_requirement_cycles", "validate_module_graph"]
