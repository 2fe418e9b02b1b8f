"""Declarative module loader.

Reads JSON module files, validates them against MODULE_SCHEMA and converts
them into ModuleDefinition objects. Code cannot live in JSON, so custom
predicates, call-function handlers, task validators and module hooks are
referenced by name and looked up in a ``functions`` mapping supplied by the
host.
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import jsonschema

import config

from ..core.errors import ContentError, ErrorCode
from ..core.models import (
    Interactable, ModuleConfig, ModuleDefinition, ModuleHandlers, ModuleManifest, ModuleWelcome, Task,
    TaskDialogues, TaskSubmissionConfig,
)
from ..dialogue.builder import validate_tree
from ..dialogue.model import (
    AcceptTask, AndCondition, CallFunction, ChoiceAction, CloseDialogue, CustomCondition, DialogueChoice,
    DialogueCondition, DialogueNode, DialogueTree, EntryRule, GoTo, InteractableStateCondition,
    ModuleStateCondition, NoAction, OfferTask, OrCondition, SetInteractableState, SetModuleState, SetState,
    StateCheckCondition, TaskActiveCondition, TaskCompleteCondition,
)
from ..unlock.model import AllOf, AnyOf, Custom, ModuleComplete, Password, StateCheck, TaskComplete, UnlockRequirement
from ..unlock.validation import validate_requirement
from .schema import MODULE_SCHEMA

logger = logging.getLogger(__name__)

FunctionMap = Mapping[str, Callable]


def _function(name: str, functions: FunctionMap, where: str) -> Callable:
    fn = functions.get(name)
    if fn is None:
        raise ContentError(ErrorCode.MODULE_INVALID, f"{where}: unknown function '{name}'", {"function": name})
    return fn


def validate_module_data(data: Dict[str, Any]) -> None:
    """Validate raw module data against MODULE_SCHEMA.

    Raises:
        ContentError: The data does not match the schema
    """
    try:
        jsonschema.validate(data, MODULE_SCHEMA)
    except jsonschema.ValidationError as e:
        path = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ContentError(ErrorCode.MODULE_INVALID, f"Invalid module data at {path}: {e.message}",
                           {"path": path}) from e


def parse_requirement(data: Optional[Dict[str, Any]], functions: FunctionMap) -> Optional[UnlockRequirement]:
    """Convert a requirement dict into requirement dataclasses.

    Args:
        data: e.g. ``{"type": "and", "requirements": [...]}``; None for no requirement
        functions: Named functions for ``custom`` requirements

    Returns:
        The requirement, or None
    """
    if data is None:
        return None
    kind = data.get("type")
    if kind == "task-complete":
        return TaskComplete(data["task"])
    if kind == "module-complete":
        return ModuleComplete(data["module_id"])
    if kind == "state-check":
        return StateCheck(data["key"], data["value"])
    if kind == "password":
        return Password(data["password"], data.get("hint", ""))
    if kind in ("and", "or"):
        children = [parse_requirement(child, functions) for child in data.get("requirements", [])]
        return AllOf(children) if kind == "and" else AnyOf(children)
    if kind == "custom":
        return Custom(_function(data["function"], functions, "custom requirement"), data.get("description", ""))
    raise ContentError(ErrorCode.REQUIREMENT_INVALID, f"Unknown requirement type: {kind!r}")


def parse_condition(data: Dict[str, Any], functions: FunctionMap) -> DialogueCondition:
    kind = data.get("type")
    if kind == "task-complete":
        return TaskCompleteCondition(data["task"])
    if kind == "task-active":
        return TaskActiveCondition(data["task"])
    if kind == "state-check":
        return StateCheckCondition(data["key"], data["value"])
    if kind == "module-state":
        return ModuleStateCondition(data["key"], data["value"])
    if kind == "interactable-state":
        return InteractableStateCondition(data["interactable_id"], data["key"], data["value"])
    if kind in ("and", "or"):
        children = [parse_condition(child, functions) for child in data.get("conditions", [])]
        return AndCondition(children) if kind == "and" else OrCondition(children)
    if kind == "custom":
        return CustomCondition(_function(data["function"], functions, "custom condition"))
    raise ContentError(ErrorCode.DIALOGUE_INVALID, f"Unknown condition type: {kind!r}")


def parse_action(data: Dict[str, Any], functions: FunctionMap) -> ChoiceAction:
    kind = data.get("type")
    if kind == "accept-task":
        return AcceptTask(data["task"])
    if kind == "offer-task":
        return OfferTask(data["task"])
    if kind == "set-state":
        return SetState(data["key"], data["value"])
    if kind == "set-module-state":
        return SetModuleState(data["key"], data["value"])
    if kind == "set-interactable-state":
        return SetInteractableState(data["interactable_id"], data["key"], data["value"])
    if kind == "call-function":
        return CallFunction(_function(data["function"], functions, "call-function action"))
    if kind == "go-to":
        return GoTo(data["node"])
    if kind == "close-dialogue":
        return CloseDialogue()
    if kind == "none":
        return NoAction()
    raise ContentError(ErrorCode.DIALOGUE_INVALID, f"Unknown action type: {kind!r}")


def _parse_choice(data: Dict[str, Any], functions: FunctionMap) -> DialogueChoice:
    condition = data.get("condition")
    return DialogueChoice(
        text=data["text"],
        next=data.get("next"),
        actions=[parse_action(a, functions) for a in data.get("actions", [])],
        condition=parse_condition(condition, functions) if condition is not None else None,
    )


def _parse_node(data: Dict[str, Any], functions: FunctionMap) -> DialogueNode:
    return DialogueNode(
        id=data["id"],
        lines=list(data.get("lines", [])),
        choices={key: _parse_choice(c, functions) for key, c in data.get("choices", {}).items()},
        task=data.get("task"),
        next=data.get("next"),
    )


def parse_dialogue_tree(data: Dict[str, Any], functions: FunctionMap,
                        tree_id: Optional[str] = None, validate: bool = True) -> DialogueTree:
    """Convert a dialogue dict into a DialogueTree.

    Raises:
        ContentError: Duplicate node ids, or (when ``validate``) dangling references
    """
    nodes: Dict[str, DialogueNode] = {}
    for node_data in data.get("nodes", []):
        node = _parse_node(node_data, functions)
        if node.id in nodes:
            raise ContentError(ErrorCode.DIALOGUE_INVALID, f"Duplicate dialogue node id '{node.id}'",
                               {"tree_id": tree_id})
        nodes[node.id] = node

    entry = data.get("entry", {})
    tree = DialogueTree(
        nodes=nodes,
        default=entry.get("default"),
        entry=[EntryRule(parse_condition(rule["when"], functions), rule["node"]) for rule in entry.get("rules", [])],
        id=data.get("id", tree_id),
    )
    if validate:
        validate_tree(tree)
    return tree


def _parse_task(data: Dict[str, Any], functions: FunctionMap) -> Task:
    fields: Dict[str, Any] = {
        "id": data["id"],
        "name": data["name"],
        "description": data.get("description", ""),
        "submission": TaskSubmissionConfig(**data.get("submission", {})),
        "unlock_requirement": parse_requirement(data.get("unlock_requirement"), functions),
        "overview": dict(data.get("overview", {})),
        "meta": dict(data.get("meta", {})),
    }
    if "validate" in data:
        fields["validate"] = _function(data["validate"], functions, f"task '{data['id']}' validate")
    if "dialogues" in data:
        fields["dialogues"] = TaskDialogues(**data["dialogues"])
    return Task(**fields)


def parse_module(data: Dict[str, Any], functions: Optional[FunctionMap] = None,
                 validate: Optional[bool] = None) -> ModuleDefinition:
    """Convert validated-or-raw module data into a ModuleDefinition.

    Args:
        data: Module dict in the MODULE_SCHEMA format
        functions: Named functions referenced by the module
        validate: Validate trees and requirements; defaults to
            ``config.get_validate_content()``. Schema validation always runs.

    Raises:
        ContentError: Schema violation, unknown function or task, malformed content
    """
    functions = functions or {}
    if validate is None:
        validate = config.get_validate_content()
    validate_module_data(data)

    module_id = data["id"]
    tasks = [_parse_task(t, functions) for t in data.get("tasks", [])]
    tasks_by_id = {task.id: task for task in tasks}
    if len(tasks_by_id) != len(tasks):
        raise ContentError(ErrorCode.MODULE_INVALID, f"Module '{module_id}' declares a task id twice")

    interactables = []
    for item in data.get("interactables", []):
        item_tasks = []
        for task_id in item.get("tasks", []):
            if task_id not in tasks_by_id:
                raise ContentError(ErrorCode.TASK_NOT_FOUND,
                                   f"Interactable '{item['id']}' references unknown task '{task_id}'",
                                   {"module_id": module_id, "task_id": task_id})
            item_tasks.append(tasks_by_id[task_id])
        dialogue = item.get("dialogue")
        interactables.append(Interactable(
            id=item["id"],
            name=item["name"],
            type=item.get("type", "object"),
            description=item.get("description", ""),
            tasks=item_tasks,
            dialogue_tree=parse_dialogue_tree(dialogue, functions, tree_id=item["id"], validate=validate)
            if dialogue is not None else None,
            meta=dict(item.get("meta", {})),
        ))

    manifest = data["manifest"]
    welcome = data.get("welcome")
    handlers = data.get("handlers", {})
    module_config = ModuleConfig(
        manifest=ModuleManifest(
            id=module_id,
            name=manifest["name"],
            version=manifest.get("version", "1.0.0"),
            summary=manifest.get("summary", ""),
        ),
        unlock_requirement=parse_requirement(data.get("unlock_requirement"), functions),
        welcome=ModuleWelcome(**welcome) if welcome is not None else None,
        meta=dict(data.get("meta", {})),
    )

    if validate:
        validate_requirement(module_config.unlock_requirement, f"{module_id}.unlock_requirement")
        for task in tasks:
            validate_requirement(task.unlock_requirement, f"{module_id}.tasks.{task.id}.unlock_requirement")

    hook = handlers.get("on_choice_action")
    return ModuleDefinition(
        id=module_id,
        config=module_config,
        interactables=interactables,
        tasks=tasks,
        handlers=ModuleHandlers(on_choice_action=_function(hook, functions, "on_choice_action") if hook else None),
    )


def load_module_file(path, functions: Optional[FunctionMap] = None,
                     validate: Optional[bool] = None) -> ModuleDefinition:
    """Load one module from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ContentError: If the JSON is malformed or the module is invalid
    """
    module_path = Path(path)
    if not module_path.exists():
        raise FileNotFoundError(f"Module file not found: {module_path}")

    try:
        with open(module_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ContentError(ErrorCode.MODULE_INVALID, f"Invalid JSON in module file {module_path}: {e}") from e

    module = parse_module(data, functions, validate)
    logger.debug("Loaded module %s from %s", module.id, module_path)
    return module


def load_modules_dir(path=None, functions: Optional[FunctionMap] = None,
                     validate: Optional[bool] = None) -> List[ModuleDefinition]:
    """Load every ``*.json`` module in a directory, sorted by file name.

    Args:
        path: Directory; defaults to ``config.get_modules_dir()``
        functions: Named functions shared by all modules
        validate: See ``parse_module``

    Returns:
        Loaded modules; an absent directory yields an empty list
    """
    modules_dir = Path(path if path is not None else config.get_modules_dir())
    if not modules_dir.is_dir():
        logger.warning("Modules directory %s does not exist", modules_dir)
        return []
    return [load_module_file(p, functions, validate) for p in sorted(modules_dir.glob("*.json"))]


__all__ = [
    "FunctionMap", "validate_module_data", "parse_requirement", "parse_condition", "parse_action",
    "parse_dialogue_tree", "parse_module", "load_module_file", "load_modules_dir",
]
