"""Central configuration for modengine.

Engine tunables live here. Every value has a sensible default and can be
overridden through environment variables (prefix ``MODENGINE_``).
"""
from __future__ import annotations
import logging
import os


def _get_int_env(name: str, default: int, minval: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw)
        if minval is not None and v < minval:
            return default
        return v
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in {"1", "true", "yes", "on"}


# ---------------- Logging ----------------
ENV_LOG_LEVEL = "MODENGINE_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


def get_log_level() -> int:
    """Numeric logging level. Var: MODENGINE_LOG_LEVEL (default WARNING).

    Unknown level names fall back to the default.
    """
    raw = os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(raw)
    if isinstance(level, int):
        return level
    return logging.getLevelName(DEFAULT_LOG_LEVEL)


def configure_logging() -> None:
    """Configure the root logger for hosts that do not set up logging themselves."""
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------- Dialogue ----------------
# Maximum length of the auto-generated "[Task] - ..." choice in root dialogues
TASK_CHOICE_MAX_LENGTH: int = _get_int_env("MODENGINE_TASK_CHOICE_MAX_LENGTH", 50, minval=8)


def get_root_dialogue_enabled() -> bool:
    """Offer the synthetic root node for NPCs with an active task. Var: MODENGINE_ROOT_DIALOGUE (default on)."""
    return _get_bool_env("MODENGINE_ROOT_DIALOGUE", True)


# ---------------- Content ----------------

def get_modules_dir() -> str:
    """Directory scanned for JSON module files. Var: MODENGINE_MODULES_DIR (default 'modules')."""
    return os.getenv("MODENGINE_MODULES_DIR", "modules").strip()


def get_validate_content() -> bool:
    """Validate trees and requirements at load time. Var: MODENGINE_VALIDATE_CONTENT (default on)."""
    return _get_bool_env("MODENGINE_VALIDATE_CONTENT", True)


__all__ = [
    # Logging
    "ENV_LOG_LEVEL", "DEFAULT_LOG_LEVEL", "get_log_level", "configure_logging",
    # Dialogue
    "TASK_CHOICE_MAX_LENGTH", "get_root_dialogue_enabled",
    # Content
    "get_modules_dir", "get_validate_content",
]
