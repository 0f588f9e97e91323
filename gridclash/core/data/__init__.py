"""Core data structures and definitions.

This package contains fundamental data types:
- data_structures.py: GridPoint and FieldBounds for grid positions
- game_enums.py: Centralized enums for unit states, game modes, windows and scheduling
"""

from .data_structures import GridPoint, FieldBounds, manhattan_distance
from .game_enums import (
    BattleUnitState,
    GameMode,
    WindowState,
    TaskPriority,
    CommandStatus,
    UNIT_STATE_NAMES,
    GAME_MODE_NAMES,
)

__all__ = [
    "GridPoint",
    "FieldBounds",
    "manhattan_distance",
    "BattleUnitState",
    "GameMode",
    "WindowState",
    "TaskPriority",
    "CommandStatus",
    "UNIT_STATE_NAMES",
    "GAME_MODE_NAMES",
]
