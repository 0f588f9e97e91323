"""Centralized enums and constants.

All state identifiers and scheduler classes live here so that the engine
primitives, the battle domain and the tests share a single source of truth.
"""

from enum import Enum, auto


class BattleUnitState(Enum):
    """Behaviour states of a battle unit."""
    SPAWNING = auto()
    IDLE = auto()
    MOVING = auto()
    ATTACKING = auto()
    DYING = auto()


class GameMode(Enum):
    """Top-level modes of the game loop."""
    LOADING = auto()
    IDLE_SCREEN = auto()
    BATTLE = auto()


class WindowState(Enum):
    """Lifecycle states of a UI window."""
    PRE_INIT = auto()
    INIT = auto()
    IDLE = auto()
    OPENING = auto()
    OPENED = auto()
    CLOSING = auto()
    CLOSED = auto()


class TaskPriority(Enum):
    """Scheduling classes for the cooperative task manager."""
    DEFAULT = auto()    # Appended to the back of the queue
    HIGH = auto()       # Inserted at the front of the queue
    INTERRUPT = auto()  # Front of the queue and stops a running non-interrupt task


class CommandStatus(Enum):
    """Lifecycle of a named command."""
    NONE = auto()
    QUEUED = auto()
    EXECUTING = auto()
    COMPLETED = auto()
    CANCELED = auto()


UNIT_STATE_NAMES = {
    BattleUnitState.SPAWNING: "Spawning",
    BattleUnitState.IDLE: "Idle",
    BattleUnitState.MOVING: "Moving",
    BattleUnitState.ATTACKING: "Attacking",
    BattleUnitState.DYING: "Dying",
}

GAME_MODE_NAMES = {
    GameMode.LOADING: "Loading",
    GameMode.IDLE_SCREEN: "Idle Screen",
    GameMode.BATTLE: "Battle",
}
