"""Module engine: unlockable content packs with branching NPC dialogues."""

from .integration import ModuleEngine

__all__ = ['ModuleEngine']
