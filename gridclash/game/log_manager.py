"""
Log management for simulation messages and debugging.

The log manager listens on the event bus and keeps a bounded, categorised
buffer of messages that the headless runner prints after a run. Systems
never write to it directly; they publish ``LogMessage`` events or domain
events which are translated into log lines here.
"""
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, TYPE_CHECKING

from ..core.events.events import (
    BattleEnded,
    BattleStarted,
    EventType,
    GameEvent,
    GameModeChanged,
    LogMessage as LogEvent,
    UnitAttacked,
    UnitDied,
    UnitMoveStarted,
    UnitSpawned,
    WindowStateChanged,
)
from ..core.data.game_enums import GAME_MODE_NAMES

if TYPE_CHECKING:
    from ..core.events.event_manager import EventManager


class LogCategory(Enum):
    """Categories for log messages."""
    SYSTEM = auto()     # Loading, mode changes
    BATTLE = auto()     # Spawns, attacks, deaths, outcomes
    MOVEMENT = auto()   # Unit steps
    AI = auto()         # Unit decision details
    SCHEDULER = auto()  # Command and task processing
    UI = auto()         # Window lifecycle
    DEBUG = auto()
    WARNING = auto()
    ERROR = auto()


CATEGORY_TAGS = {
    LogCategory.SYSTEM: "SYS",
    LogCategory.BATTLE: "BTL",
    LogCategory.MOVEMENT: "MOV",
    LogCategory.AI: "AI",
    LogCategory.SCHEDULER: "SCH",
    LogCategory.UI: "UI",
    LogCategory.DEBUG: "DBG",
    LogCategory.WARNING: "WRN",
    LogCategory.ERROR: "ERR",
}


class LogLevel(Enum):
    """Log levels for filtering."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass
class LogEntry:
    """A single buffered log line."""
    text: str
    category: LogCategory
    tick: int = 0

    def format(self, include_tick: bool = False, include_category: bool = True) -> str:
        parts = []
        if include_tick:
            parts.append(f"[{self.tick:>6}]")
        if include_category:
            parts.append(f"[{CATEGORY_TAGS.get(self.category, '???')}]")
        parts.append(self.text)
        return " ".join(parts)


class LogManager:
    """Categorised log buffer fed by the event bus."""

    def __init__(
        self,
        event_manager: "EventManager",
        max_messages: int = 1000,
        default_level: LogLevel = LogLevel.INFO
    ):
        """Initialize the log manager.

        Args:
            event_manager: Event bus to listen on
            max_messages: Maximum number of messages kept in the buffer
            default_level: Minimum level returned by :meth:`get_messages`
        """
        self.messages: deque[LogEntry] = deque(maxlen=max_messages)
        self.log_level = default_level
        self.enabled_categories = set(LogCategory)
        self.event_manager = event_manager

        # Categories not listed here are INFO
        self.category_levels = {
            LogCategory.DEBUG: LogLevel.DEBUG,
            LogCategory.MOVEMENT: LogLevel.DEBUG,
            LogCategory.AI: LogLevel.DEBUG,
            LogCategory.SCHEDULER: LogLevel.DEBUG,
            LogCategory.UI: LogLevel.DEBUG,
            LogCategory.WARNING: LogLevel.WARNING,
            LogCategory.ERROR: LogLevel.ERROR,
        }

        self._setup_event_subscriptions()

    def _setup_event_subscriptions(self) -> None:
        handlers = {
            EventType.LOG_MESSAGE: self._handle_log_message_event,
            EventType.UNIT_SPAWNED: self._handle_unit_spawned,
            EventType.UNIT_MOVE_STARTED: self._handle_unit_move_started,
            EventType.UNIT_ATTACKED: self._handle_unit_attacked,
            EventType.UNIT_DIED: self._handle_unit_died,
            EventType.BATTLE_STARTED: self._handle_battle_started,
            EventType.BATTLE_ENDED: self._handle_battle_ended,
            EventType.GAME_MODE_CHANGED: self._handle_game_mode_changed,
            EventType.WINDOW_STATE_CHANGED: self._handle_window_state_changed,
        }
        for event_type, handler in handlers.items():
            self.event_manager.subscribe(
                event_type, handler, subscriber_name=f"LogManager.{event_type.name.lower()}"
            )

    def _handle_log_message_event(self, event: GameEvent) -> None:
        if isinstance(event, LogEvent):
            try:
                category = LogCategory[event.category.upper()]
            except KeyError:
                category = LogCategory.SYSTEM
            self.log(event.message, category, event.tick)

    def _handle_unit_spawned(self, event: GameEvent) -> None:
        if isinstance(event, UnitSpawned):
            self.log(f"Unit {event.unit_id} (team {event.team}) spawned at "
                     f"{event.position.to_tuple()}", LogCategory.BATTLE, event.tick)

    def _handle_unit_move_started(self, event: GameEvent) -> None:
        if isinstance(event, UnitMoveStarted):
            self.log(f"Unit {event.unit_id} moves {event.origin.to_tuple()} -> "
                     f"{event.destination.to_tuple()}", LogCategory.MOVEMENT, event.tick)

    def _handle_unit_attacked(self, event: GameEvent) -> None:
        if isinstance(event, UnitAttacked):
            self.log(f"Unit {event.attacker_id} hits unit {event.target_id} for {event.damage} "
                     f"({event.remaining_hp} hp left)", LogCategory.BATTLE, event.tick)

    def _handle_unit_died(self, event: GameEvent) -> None:
        if isinstance(event, UnitDied):
            self.log(f"Unit {event.unit_id} (team {event.team}) died",
                     LogCategory.BATTLE, event.tick)

    def _handle_battle_started(self, event: GameEvent) -> None:
        if isinstance(event, BattleStarted):
            sizes = " vs ".join(str(size) for size in event.team_sizes)
            self.log(f"Battle started: {sizes}", LogCategory.BATTLE, event.tick)

    def _handle_battle_ended(self, event: GameEvent) -> None:
        if isinstance(event, BattleEnded):
            if event.winning_team is None:
                text = "Battle ended: no team survived"
            else:
                text = (f"Battle ended: team {event.winning_team} wins with "
                        f"{len(event.surviving_unit_ids)} unit(s) left")
            self.log(text, LogCategory.BATTLE, event.tick)

    def _handle_game_mode_changed(self, event: GameEvent) -> None:
        if isinstance(event, GameModeChanged):
            old = GAME_MODE_NAMES[event.old_mode] if event.old_mode is not None else "None"
            self.log(f"Game mode: {old} -> {GAME_MODE_NAMES[event.new_mode]}",
                     LogCategory.SYSTEM, event.tick)

    def _handle_window_state_changed(self, event: GameEvent) -> None:
        if isinstance(event, WindowStateChanged):
            self.log(f"Window '{event.window_name}' -> {event.new_state.name}",
                     LogCategory.UI, event.tick)

    def log(self, text: str, category: LogCategory = LogCategory.SYSTEM, tick: int = 0) -> None:
        """Buffer a line; visibility is decided when the buffer is read."""
        self.messages.append(LogEntry(text=text, category=category, tick=tick))

    def system(self, text: str, tick: int = 0) -> None:
        self.log(text, LogCategory.SYSTEM, tick)

    def battle(self, text: str, tick: int = 0) -> None:
        self.log(text, LogCategory.BATTLE, tick)

    def debug(self, text: str, tick: int = 0) -> None:
        self.log(text, LogCategory.DEBUG, tick)

    def warning(self, text: str, tick: int = 0) -> None:
        self.log(text, LogCategory.WARNING, tick)

    def error(self, text: str, tick: int = 0) -> None:
        self.log(text, LogCategory.ERROR, tick)

    def level_of(self, category: LogCategory) -> LogLevel:
        return self.category_levels.get(category, LogLevel.INFO)

    def _is_visible(self, entry: LogEntry) -> bool:
        if entry.category not in self.enabled_categories:
            return False
        return self.level_of(entry.category).value >= self.log_level.value

    def get_messages(self, count: Optional[int] = None,
                     categories: Optional[set[LogCategory]] = None) -> list[LogEntry]:
        """Read the buffer back, oldest first.

        Args:
            count: Keep only the newest ``count`` lines
            categories: Select these (enabled) categories regardless of level;
                without it the level filter applies

        Returns:
            Matching log entries
        """
        if categories:
            selected = [entry for entry in self.messages
                        if entry.category in categories & self.enabled_categories]
        else:
            selected = [entry for entry in self.messages if self._is_visible(entry)]

        return selected[-count:] if count is not None else selected

    def clear(self) -> None:
        self.messages.clear()

    def enable_category(self, category: LogCategory) -> None:
        self.enabled_categories.add(category)

    def disable_category(self, category: LogCategory) -> None:
        self.enabled_categories.discard(category)

    def set_log_level(self, level: LogLevel) -> None:
        self.log_level = level

    def is_debug_enabled(self) -> bool:
        return self.log_level is LogLevel.DEBUG and LogCategory.DEBUG in self.enabled_categories

    def toggle_debug(self) -> None:
        """Flip between showing everything and hiding debug-level lines."""
        if self.is_debug_enabled():
            self.disable_category(LogCategory.DEBUG)
            self.log_level = LogLevel.INFO
        else:
            self.enable_category(LogCategory.DEBUG)
            self.log_level = LogLevel.DEBUG
