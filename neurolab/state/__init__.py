"""Explicit state stores owned by a game session."""

from .lab import GameStage, LabStore
from .neurofiles import Chapter, NeuroFilesStore

__all__ = ["Chapter", "GameStage", "LabStore", "NeuroFilesStore"]
