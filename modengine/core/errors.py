"""Error taxonomy for the module engine.

Content errors are authoring mistakes (dangling node ids, empty combinators,
requirement cycles) and are fatal. Evaluation errors wrap failures raised by
author-supplied predicates and handlers. Unknown module or task ids are never
errors: lookups fail closed (locked / not completed).
"""
from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    MODULE_NOT_FOUND = "MODULE_NOT_FOUND"
    MODULE_INVALID = "MODULE_INVALID"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    DIALOGUE_INVALID = "DIALOGUE_INVALID"
    DIALOGUE_NODE_NOT_FOUND = "DIALOGUE_NODE_NOT_FOUND"
    CHOICE_NOT_AVAILABLE = "CHOICE_NOT_AVAILABLE"
    REQUIREMENT_INVALID = "REQUIREMENT_INVALID"
    REQUIREMENT_CYCLE = "REQUIREMENT_CYCLE"
    EVALUATION_FAILED = "EVALUATION_FAILED"
    PROGRESSION_INVALID = "PROGRESSION_INVALID"


class EngineError(Exception):
    """Base class for every error raised by the engine."""

    def __init__(self, code: ErrorCode, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class ContentError(EngineError):
    """Malformed authored content. Raised at build/load time, fatal at runtime."""
    pass


class DialogueNodeNotFound(ContentError):
    """A transition or entry rule named a node that is not in the tree."""

    def __init__(self, node_id: str, tree_id: Optional[str] = None):
        where = f" in tree '{tree_id}'" if tree_id else ""
        super().__init__(
            ErrorCode.DIALOGUE_NODE_NOT_FOUND,
            f"Dialogue node '{node_id}' not found{where}",
            {"node_id": node_id, "tree_id": tree_id},
        )
        self.node_id = node_id
        self.tree_id = tree_id


class DialogueError(EngineError):
    """Runtime misuse of a dialogue (e.g. dispatching a hidden choice)."""
    pass


class EvaluationError(EngineError):
    """A custom unlock predicate raised.

    The original exception is chained as ``__cause__``. Call-function handlers
    are not wrapped: their errors reach the dispatch caller unchanged.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.EVALUATION_FAILED, message, context)


class ProgressionError(EngineError):
    """Attempted a backwards module progression transition."""

    def __init__(self, module_id: str, current: str, target: str):
        super().__init__(
            ErrorCode.PROGRESSION_INVALID,
            f"Module '{module_id}' cannot move from {current} to {target}",
            {"module_id": module_id, "current": current, "target": target},
        )
        self.module_id = module_id


__all__ = [
    "ErrorCode", "EngineError", "ContentError", "DialogueNodeNotFound",
    "DialogueError", "EvaluationError", "ProgressionError",
]
