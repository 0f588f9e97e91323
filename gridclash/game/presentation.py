"""Presentation boundary between the battle simulation and whatever shows it.

Units never animate themselves. They ask a :class:`Presentation` to begin
a move, an attack or a death and poll the returned :class:`ActionHandle`
every tick until it reports completion. :class:`TickedPresentation` is the
headless implementation: every action lasts a fixed number of simulation
ticks.
"""

from typing import Callable, Optional, Protocol, TYPE_CHECKING

from ..core.config import UnitConfig
from ..core.data.data_structures import GridPoint
from ..core.engine.clock import TickClock

if TYPE_CHECKING:
    from .entities.battle_unit import BattleUnit

StrikeCallback = Callable[[], None]
ReadinessQuery = Callable[[int], bool]


class ActionHandle:
    """A running presentation action lasting ``duration`` ticks.

    An optional strike callback fires once, on the tick ``strike_at`` is
    reached.
    """

    def __init__(
        self,
        name: str,
        duration: int,
        strike_at: Optional[int] = None,
        on_strike: Optional[StrikeCallback] = None,
    ):
        self.name = name
        self.duration = duration
        self.strike_at = strike_at
        self.on_strike = on_strike
        self.elapsed = 0
        self.canceled = False

    @property
    def is_done(self) -> bool:
        return self.canceled or self.elapsed >= self.duration

    def advance(self) -> None:
        if self.is_done:
            return
        self.elapsed += 1
        if self.on_strike is not None and self.elapsed == self.strike_at:
            self.on_strike()

    def cancel(self) -> None:
        """Finish immediately without firing a pending strike."""
        self.canceled = True

    def __repr__(self) -> str:
        return f"ActionHandle({self.name!r}, {self.elapsed}/{self.duration})"


class Presentation(Protocol):
    """What the unit behaviour needs from the presentation layer."""

    def begin_move(self, unit: "BattleUnit", destination: GridPoint) -> ActionHandle:
        ...

    def begin_attack(
        self, unit: "BattleUnit", target: "BattleUnit", on_strike: StrikeCallback
    ) -> ActionHandle:
        ...

    def begin_death(self, unit: "BattleUnit") -> ActionHandle:
        ...

    def is_unit_presentation_ready(self, unit_id: int) -> bool:
        ...


class TickedPresentation:
    """Headless presentation whose actions complete after fixed tick counts.

    Readiness is delegated to an attached query (normally the HUD window);
    without one every unit is ready immediately.
    """

    def __init__(
        self,
        move_ticks: int,
        attack_ticks: int,
        strike_tick: int,
        death_ticks: int,
        readiness: Optional[ReadinessQuery] = None,
    ):
        if min(move_ticks, attack_ticks, death_ticks) < 1:
            raise ValueError("Action durations must be at least one tick")
        self.move_ticks = move_ticks
        self.attack_ticks = attack_ticks
        self.strike_tick = max(1, min(strike_tick, attack_ticks))
        self.death_ticks = death_ticks
        self.readiness = readiness
        self._actions: list[ActionHandle] = []

    @classmethod
    def from_config(cls, unit_config: UnitConfig, clock: TickClock) -> "TickedPresentation":
        return cls(
            move_ticks=clock.seconds_to_ticks(unit_config.move_duration),
            attack_ticks=clock.seconds_to_ticks(unit_config.attack_duration),
            strike_tick=clock.seconds_to_ticks(unit_config.attack_strike_time),
            death_ticks=clock.seconds_to_ticks(unit_config.death_duration),
        )

    @property
    def active_count(self) -> int:
        return len(self._actions)

    def begin_move(self, unit: "BattleUnit", destination: GridPoint) -> ActionHandle:
        return self._start(ActionHandle(f"move:{unit.id}->{destination.to_tuple()}", self.move_ticks))

    def begin_attack(
        self, unit: "BattleUnit", target: "BattleUnit", on_strike: StrikeCallback
    ) -> ActionHandle:
        return self._start(ActionHandle(
            f"attack:{unit.id}->{target.id}",
            self.attack_ticks,
            strike_at=self.strike_tick,
            on_strike=on_strike,
        ))

    def begin_death(self, unit: "BattleUnit") -> ActionHandle:
        return self._start(ActionHandle(f"death:{unit.id}", self.death_ticks))

    def is_unit_presentation_ready(self, unit_id: int) -> bool:
        if self.readiness is None:
            return True
        return self.readiness(unit_id)

    def tick(self) -> None:
        """Advance every running action by one tick."""
        for action in list(self._actions):
            action.advance()
        self._actions = [action for action in self._actions if not action.is_done]

    def cancel_all(self) -> None:
        for action in self._actions:
            action.cancel()
        self._actions.clear()

    def _start(self, action: ActionHandle) -> ActionHandle:
        self._actions.append(action)
        return action
