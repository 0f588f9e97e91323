"""Event system for publisher-subscriber communication.

This package contains the event-driven plumbing of the simulation:
- event_manager.py: Publisher-subscriber event routing
- events.py: Event definitions for inter-system communication
"""

from .event_manager import EventManager, EventPriority, QueuedEvent
from .events import (
    GameEvent,
    EventType,
    UnitSpawned,
    UnitMoveStarted,
    UnitAttacked,
    UnitDied,
    BattleStarted,
    BattleEnded,
    GameModeChanged,
    WindowStateChanged,
    LogMessage,
)

__all__ = [
    "EventManager",
    "EventPriority",
    "QueuedEvent",
    "GameEvent",
    "EventType",
    "UnitSpawned",
    "UnitMoveStarted",
    "UnitAttacked",
    "UnitDied",
    "BattleStarted",
    "BattleEnded",
    "GameModeChanged",
    "WindowStateChanged",
    "LogMessage",
]
