"""
Event bus decoupling battle systems from logging and orchestration.

Battle code never calls the log or the game loop directly. It publishes an
event; the bus holds it in a priority heap until the game drains the heap
with :meth:`EventManager.process_events` at the end of the tick.

Everything runs on the simulation thread: the bus takes no lock and a
subscriber that raises aborts delivery with the exception.
"""

import heapq
import itertools
from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .events import GameEvent, EventType


class EventPriority(Enum):
    """Delivery classes; a lower value is delivered earlier."""
    CRITICAL = 0
    HIGH = 1
    NORMAL = 2
    LOW = 3


_publication_counter = itertools.count()


@dataclass
class QueuedEvent:
    """Heap entry wrapping a published event."""
    event: "GameEvent"
    priority: EventPriority = EventPriority.NORMAL
    source: Optional[str] = None
    sequence: int = field(default_factory=lambda: next(_publication_counter))

    def sort_key(self) -> tuple[int, int]:
        return (self.priority.value, self.sequence)

    def __lt__(self, other: "QueuedEvent") -> bool:
        return self.sort_key() < other.sort_key()


EventSubscriber = Callable[["GameEvent"], None]
DebugSink = Callable[[str], None]


def _describe(subscriber: EventSubscriber, name: Optional[str]) -> str:
    return name or getattr(subscriber, "__name__", "anonymous")


class EventManager:
    """Priority-ordered publish/subscribe bus."""

    def __init__(self, enable_debug_logging: bool = False, history_size: int = 1000):
        """Create an empty bus.

        Args:
            enable_debug_logging: Forward a line per bus operation to the debug sink
            history_size: How many delivered events to remember
        """
        self.enable_debug_logging = enable_debug_logging

        self._by_type: dict["EventType", list[EventSubscriber]] = defaultdict(list)
        self._catch_all: list[EventSubscriber] = []
        self._heap: list[QueuedEvent] = []
        self._delivered: deque[QueuedEvent] = deque(maxlen=history_size)

        self._published_total = 0
        self._delivered_total = 0
        self._debug_sink: Optional[DebugSink] = None

    def set_debug_callback(self, callback: Optional[DebugSink]) -> None:
        self._debug_sink = callback

    def _trace(self, message: str) -> None:
        if self.enable_debug_logging and self._debug_sink is not None:
            self._debug_sink(f"[EVENT] {message}")

    # Subscriptions

    def subscribe(
        self,
        event_type: "EventType",
        subscriber: EventSubscriber,
        subscriber_name: Optional[str] = None,
    ) -> None:
        """Deliver every future event of ``event_type`` to ``subscriber``."""
        self._by_type[event_type].append(subscriber)
        self._trace(f"{_describe(subscriber, subscriber_name)} listens to {event_type.name}")

    def subscribe_all(self, subscriber: EventSubscriber, subscriber_name: Optional[str] = None) -> None:
        """Deliver every future event, whatever its type, to ``subscriber``."""
        self._catch_all.append(subscriber)
        self._trace(f"{_describe(subscriber, subscriber_name)} listens to every event")

    def unsubscribe(self, event_type: "EventType", subscriber: EventSubscriber) -> bool:
        """Stop delivering ``event_type`` to ``subscriber``.

        Returns:
            False if the subscriber was not registered for that type
        """
        listeners = self._by_type.get(event_type)
        if not listeners or subscriber not in listeners:
            return False
        listeners.remove(subscriber)
        self._trace(f"Listener removed from {event_type.name}")
        return True

    def unsubscribe_all(self, subscriber: EventSubscriber) -> bool:
        if subscriber not in self._catch_all:
            return False
        self._catch_all.remove(subscriber)
        return True

    # Publishing

    def publish(
        self,
        event: "GameEvent",
        priority: EventPriority = EventPriority.NORMAL,
        source: Optional[str] = None,
    ) -> None:
        """Queue ``event`` for the next :meth:`process_events` call.

        Args:
            event: Event to deliver
            priority: Delivery class
            source: Name of the publishing system, kept for debugging
        """
        entry = QueuedEvent(event, priority, source or "unknown")
        heapq.heappush(self._heap, entry)
        self._published_total += 1
        self._trace(f"Published {type(event).__name__} ({priority.name} from {entry.source})")

    def publish_immediate(self, event: "GameEvent", source: Optional[str] = None) -> None:
        """Deliver ``event`` now, ahead of everything queued."""
        self._published_total += 1
        self._deliver(QueuedEvent(event, EventPriority.CRITICAL, source or "immediate"))

    def process_events(self, max_events: Optional[int] = None) -> int:
        """Drain the queue in priority order.

        Only events queued before the call are delivered; whatever the
        subscribers publish meanwhile waits for the next call.

        Args:
            max_events: Stop after this many deliveries and keep the rest queued

        Returns:
            Number of events delivered
        """
        pending, self._heap = self._heap, []

        delivered = 0
        while pending:
            if max_events is not None and delivered >= max_events:
                for entry in pending:
                    heapq.heappush(self._heap, entry)
                break
            self._deliver(heapq.heappop(pending))
            delivered += 1

        return delivered

    def _deliver(self, entry: QueuedEvent) -> None:
        event = entry.event
        self._delivered.append(entry)
        self._delivered_total += 1
        self._trace(f"Delivering {type(event).__name__} from {entry.source} at tick {event.tick}")

        # Iterate over snapshots; listeners may unsubscribe while being called
        for subscriber in list(self._by_type.get(event.event_type, ())):
            subscriber(event)
        for subscriber in list(self._catch_all):
            subscriber(event)

    # Housekeeping

    def has_queued_events(self) -> bool:
        return bool(self._heap)

    def clear_queue(self) -> int:
        """Forget every queued event.

        Returns:
            How many events were dropped
        """
        dropped = len(self._heap)
        self._heap = []
        self._trace(f"Dropped {dropped} queued events")
        return dropped

    def get_statistics(self) -> dict[str, Any]:
        return {
            'events_published': self._published_total,
            'events_processed': self._delivered_total,
            'events_queued': len(self._heap),
            'subscribers_count': sum(len(listeners) for listeners in self._by_type.values()),
            'universal_subscribers_count': len(self._catch_all),
            'event_history_size': len(self._delivered),
        }

    def get_recent_events(self, count: int = 10) -> list[dict[str, Any]]:
        """Summaries of the last ``count`` delivered events, oldest first."""
        return [
            {
                'event_type': type(entry.event).__name__,
                'tick': entry.event.tick,
                'priority': entry.priority.name,
                'source': entry.source,
            }
            for entry in list(self._delivered)[-count:]
        ]

    def shutdown(self) -> None:
        """Drop subscribers, queued events and history."""
        self._by_type.clear()
        self._catch_all.clear()
        self._heap = []
        self._delivered.clear()
        self._trace("Event bus shut down")
