"""Domain events published on the simulation event bus.

Event Design Principles:
- Events are immutable dataclasses stamped with the tick they happened on
- Payloads carry ids and grid points, never live unit objects, so a
  subscriber cannot mutate battle state through an event
- ``event_type`` is derived from the class and set in ``__post_init__``
"""

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, TYPE_CHECKING

from ..data.game_enums import GameMode, WindowState

if TYPE_CHECKING:
    from ..data.data_structures import GridPoint
    from ...game.log_manager import LogLevel


class EventType(Enum):
    """Types of events that systems can subscribe to."""
    # Unit Events
    UNIT_SPAWNED = auto()
    UNIT_MOVE_STARTED = auto()
    UNIT_ATTACKED = auto()
    UNIT_DIED = auto()

    # Battle Events
    BATTLE_STARTED = auto()
    BATTLE_ENDED = auto()

    # Game flow and UI Events
    GAME_MODE_CHANGED = auto()
    WINDOW_STATE_CHANGED = auto()

    # Logging Events
    LOG_MESSAGE = auto()


@dataclass(frozen=True)
class GameEvent(ABC):
    """Base class for all events."""
    tick: int
    event_type: EventType = field(init=False)


@dataclass(frozen=True)
class UnitSpawned(GameEvent):
    """Event emitted when a unit is added to the battleground."""
    unit_id: int
    team: int
    position: "GridPoint"

    def __post_init__(self):
        # Frozen dataclasses need object.__setattr__
        object.__setattr__(self, 'event_type', EventType.UNIT_SPAWNED)


@dataclass(frozen=True)
class UnitMoveStarted(GameEvent):
    """Event emitted when a unit commits to a step toward a neighbouring cell."""
    unit_id: int
    origin: "GridPoint"
    destination: "GridPoint"

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.UNIT_MOVE_STARTED)


@dataclass(frozen=True)
class UnitAttacked(GameEvent):
    """Event emitted when an attack strike lands."""
    attacker_id: int
    target_id: int
    damage: int
    remaining_hp: int

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.UNIT_ATTACKED)


@dataclass(frozen=True)
class UnitDied(GameEvent):
    """Event emitted once a unit's death action finished and it left the field."""
    unit_id: int
    team: int

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.UNIT_DIED)


@dataclass(frozen=True)
class BattleStarted(GameEvent):
    """Event emitted after both teams were spawned."""
    team_sizes: tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.BATTLE_STARTED)


@dataclass(frozen=True)
class BattleEnded(GameEvent):
    """Event emitted when a team has been eliminated.

    ``winning_team`` is None when both teams were wiped out.
    """
    winning_team: Optional[int]
    surviving_unit_ids: tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.BATTLE_ENDED)


@dataclass(frozen=True)
class GameModeChanged(GameEvent):
    """Event emitted when the top-level game loop switches mode."""
    old_mode: Optional[GameMode]
    new_mode: GameMode

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.GAME_MODE_CHANGED)


@dataclass(frozen=True)
class WindowStateChanged(GameEvent):
    """Event emitted when a UI window enters a new lifecycle state."""
    window_name: str
    old_state: Optional[WindowState]
    new_state: WindowState

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.WINDOW_STATE_CHANGED)


@dataclass(frozen=True)
class LogMessage(GameEvent):
    """Event emitted when a log message is created."""
    message: str
    category: str
    level: "LogLevel"
    source: str

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.LOG_MESSAGE)

