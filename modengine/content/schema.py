"""JSON schema for declarative module files.

One module per file. Requirements, conditions and actions use the same
``type`` tags as the in-memory model; custom predicates and call-function
handlers name a function registered with the loader.
"""

_ANY = {}

_REQUIREMENT = {
    "type": "object",
    "required": ["type"],
    "oneOf": [
        {
            "properties": {"type": {"const": "task-complete"}, "task": {"type": "string", "minLength": 1}},
            "required": ["task"],
            "additionalProperties": False,
        },
        {
            "properties": {"type": {"const": "module-complete"}, "module_id": {"type": "string", "minLength": 1}},
            "required": ["module_id"],
            "additionalProperties": False,
        },
        {
            "properties": {"type": {"const": "state-check"}, "key": {"type": "string"}, "value": _ANY},
            "required": ["key", "value"],
            "additionalProperties": False,
        },
        {
            "properties": {
                "type": {"const": "password"},
                "password": {"type": "string", "minLength": 1},
                "hint": {"type": "string"},
            },
            "required": ["password"],
            "additionalProperties": False,
        },
        {
            "properties": {
                "type": {"enum": ["and", "or"]},
                "requirements": {"type": "array", "minItems": 1, "items": {"$ref": "#/definitions/requirement"}},
            },
            "required": ["requirements"],
            "additionalProperties": False,
        },
        {
            "properties": {
                "type": {"const": "custom"},
                "function": {"type": "string", "minLength": 1},
                "description": {"type": "string"},
            },
            "required": ["function"],
            "additionalProperties": False,
        },
    ],
}

_CONDITION = {
    "type": "object",
    "required": ["type"],
    "oneOf": [
        {
            "properties": {"type": {"enum": ["task-complete", "task-active"]}, "task": {"type": "string", "minLength": 1}},
            "required": ["task"],
            "additionalProperties": False,
        },
        {
            "properties": {"type": {"enum": ["state-check", "module-state"]}, "key": {"type": "string"}, "value": _ANY},
            "required": ["key", "value"],
            "additionalProperties": False,
        },
        {
            "properties": {
                "type": {"const": "interactable-state"},
                "interactable_id": {"type": "string", "minLength": 1},
                "key": {"type": "string"},
                "value": _ANY,
            },
            "required": ["interactable_id", "key", "value"],
            "additionalProperties": False,
        },
        {
            "properties": {
                "type": {"enum": ["and", "or"]},
                "conditions": {"type": "array", "minItems": 1, "items": {"$ref": "#/definitions/condition"}},
            },
            "required": ["conditions"],
            "additionalProperties": False,
        },
        {
            "properties": {"type": {"const": "custom"}, "function": {"type": "string", "minLength": 1}},
            "required": ["function"],
            "additionalProperties": False,
        },
    ],
}

_ACTION = {
    "type": "object",
    "required": ["type"],
    "oneOf": [
        {
            "properties": {"type": {"enum": ["accept-task", "offer-task"]}, "task": {"type": "string", "minLength": 1}},
            "required": ["task"],
            "additionalProperties": False,
        },
        {
            "properties": {"type": {"enum": ["set-state", "set-module-state"]}, "key": {"type": "string"}, "value": _ANY},
            "required": ["key", "value"],
            "additionalProperties": False,
        },
        {
            "properties": {
                "type": {"const": "set-interactable-state"},
                "interactable_id": {"type": "string", "minLength": 1},
                "key": {"type": "string"},
                "value": _ANY,
            },
            "required": ["interactable_id", "key", "value"],
            "additionalProperties": False,
        },
        {
            "properties": {"type": {"const": "call-function"}, "function": {"type": "string", "minLength": 1}},
            "required": ["function"],
            "additionalProperties": False,
        },
        {
            "properties": {"type": {"const": "go-to"}, "node": {"type": "string", "minLength": 1}},
            "required": ["node"],
            "additionalProperties": False,
        },
        {
            "properties": {"type": {"enum": ["close-dialogue", "none"]}},
            "additionalProperties": False,
        },
    ],
}

_CHOICE = {
    "type": "object",
    "required": ["text"],
    "properties": {
        "text": {"type": "string"},
        "next": {"type": ["string", "null"]},
        "actions": {"type": "array", "items": {"$ref": "#/definitions/action"}},
        "condition": {"$ref": "#/definitions/condition"},
    },
    "additionalProperties": False,
}

_NODE = {
    "type": "object",
    "required": ["id", "lines"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "lines": {"type": "array", "items": {"type": "string"}},
        "choices": {"type": "object", "additionalProperties": {"$ref": "#/definitions/choice"}},
        "task": {"type": "string"},
        "next": {"type": "string"},
    },
    "additionalProperties": False,
}

_DIALOGUE_TREE = {
    "type": "object",
    "required": ["nodes", "entry"],
    "properties": {
        "id": {"type": "string"},
        "nodes": {"type": "array", "minItems": 1, "items": {"$ref": "#/definitions/node"}},
        "entry": {
            "type": "object",
            "required": ["default"],
            "properties": {
                "rules": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["when", "node"],
                        "properties": {
                            "when": {"$ref": "#/definitions/condition"},
                            "node": {"type": "string", "minLength": 1},
                        },
                        "additionalProperties": False,
                    },
                },
                "default": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

_TASK = {
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "submission": {
            "type": "object",
            "properties": {
                "type": {"enum": ["text", "image", "code", "multiple_choice", "custom"]},
                "component": {"type": "string"},
                "config": {"type": "object"},
            },
            "additionalProperties": False,
        },
        "validate": {"type": "string", "minLength": 1},
        "unlock_requirement": {"$ref": "#/definitions/requirement"},
        "dialogues": {
            "type": "object",
            "properties": {
                "offer": {"type": "array", "items": {"type": "string"}},
                "ready": {"type": "array", "items": {"type": "string"}},
                "complete": {"type": "array", "items": {"type": "string"}},
            },
            "additionalProperties": False,
        },
        "overview": {"type": "object"},
        "meta": {"type": "object"},
    },
    "additionalProperties": False,
}

_INTERACTABLE = {
    "type": "object",
    "required": ["id", "name"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "name": {"type": "string", "minLength": 1},
        "type": {"enum": ["npc", "object"]},
        "description": {"type": "string"},
        "tasks": {"type": "array", "items": {"type": "string"}},
        "dialogue": {"$ref": "#/definitions/dialogue_tree"},
        "meta": {"type": "object"},
    },
    "additionalProperties": False,
}

MODULE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["id", "manifest"],
    "properties": {
        "id": {"type": "string", "minLength": 1, "pattern": "^[A-Za-z0-9_-]+$"},
        "manifest": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "version": {"type": "string"},
                "summary": {"type": "string"},
            },
            "additionalProperties": False,
        },
        "unlock_requirement": {"oneOf": [{"type": "null"}, {"$ref": "#/definitions/requirement"}]},
        "welcome": {
            "type": "object",
            "properties": {
                "speaker": {"type": "string"},
                "lines": {"type": "array", "items": {"type": "string"}},
            },
            "additionalProperties": False,
        },
        "meta": {"type": "object"},
        "tasks": {"type": "array", "items": {"$ref": "#/definitions/task"}},
        "interactables": {"type": "array", "items": {"$ref": "#/definitions/interactable"}},
        "handlers": {
            "type": "object",
            "properties": {"on_choice_action": {"type": "string", "minLength": 1}},
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
    "definitions": {
        "requirement": _REQUIREMENT,
        "condition": _CONDITION,
        "action": _ACTION,
        "choice": _CHOICE,
        "node": _NODE,
        "dialogue_tree": _DIALOGUE_TREE,
        "task": _TASK,
        "interactable": _INTERACTABLE,
    },
}
