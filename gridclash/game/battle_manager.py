"""Battle orchestration: spawning teams, ticking units and detecting the end.

The manager owns no unit behaviour. It places units, listens for unit-dead
notifications from the battleground, and ends the battle as soon as any
participating team has no units left.
"""

from dataclasses import dataclass
from random import Random
from typing import Callable, Iterable, Optional, TYPE_CHECKING

from ..core.config import SimulationConfig, TeamSpawnConfig
from ..core.events.events import BattleEnded, BattleStarted, LogMessage
from .entities.battle_unit import BattleUnit
from .log_manager import LogLevel

if TYPE_CHECKING:
    from ..core.events.event_manager import EventManager
    from .battleground import Battleground
    from .presentation import TickedPresentation


@dataclass(frozen=True)
class BattleOutcome:
    """Result of one battle.

    ``winning_team`` is None when every team was wiped out.
    """
    winning_team: Optional[int]
    surviving_unit_ids: tuple[int, ...]
    ticks: int


BattleOverCallback = Callable[[BattleOutcome], None]


class BattleManager:
    """Starts and stops battles on a shared battleground."""

    def __init__(
        self,
        battleground: "Battleground",
        presentation: "TickedPresentation",
        config: SimulationConfig,
        rng: Random,
        event_manager: Optional["EventManager"] = None,
    ):
        self.battleground = battleground
        self.presentation = presentation
        self.config = config
        self.rng = rng
        self.event_manager = event_manager

        self.on_battle_over: Optional[BattleOverCallback] = None
        self.outcomes: list[BattleOutcome] = []
        self.is_running = False
        self._teams: tuple[int, ...] = ()
        self._start_tick = 0

    @property
    def last_outcome(self) -> Optional[BattleOutcome]:
        return self.outcomes[-1] if self.outcomes else None

    def start_battle(self, team_configs: Optional[Iterable[TeamSpawnConfig]] = None) -> None:
        """Spawn every team and begin listening for deaths.

        Args:
            team_configs: Teams to field; defaults to the configured teams
        """
        assert not self.is_running, "A battle is already running"

        teams = tuple(team_configs) if team_configs is not None else self.config.teams
        self._teams = tuple(team_config.team for team_config in teams)
        self._start_tick = self.battleground.current_tick

        self.battleground.subscribe_unit_dead(self._on_unit_dead)
        self.is_running = True

        sizes = []
        for team_config in teams:
            count = team_config.roll_unit_count(self.rng)
            sizes.append(self.spawn_units(team_config, count))

        self._publish(BattleStarted(tick=self.battleground.current_tick, team_sizes=tuple(sizes)))

        # A team that could not field anyone has already lost
        self._check_elimination()

    def spawn_units(self, team_config: TeamSpawnConfig, count: int) -> int:
        """Place up to ``count`` units of one team on random free spawn cells.

        Returns:
            Number of units actually spawned
        """
        points = [point for point in team_config.bounds.all_points()
                  if self.battleground.is_walkable(point)]
        self.rng.shuffle(points)

        if len(points) < count:
            self._emit_log(
                f"Can't spawn {count} units for team {team_config.team}, "
                f"trimming to {len(points)} free points",
                category="WARNING", level=LogLevel.WARNING,
            )
            count = len(points)

        for point in points[:count]:
            unit = BattleUnit(
                team=team_config.team,
                position=point,
                config=self.config.unit,
                battleground=self.battleground,
                presentation=self.presentation,
                rng=self.rng,
            )
            self.battleground.add_unit(unit)
        return count

    def tick(self) -> None:
        """Advance presentation actions, then every unit."""
        self.presentation.tick()
        if self.is_running:
            self.battleground.tick_units()

    def stop_battle(self) -> Optional[BattleOutcome]:
        """End the running battle and report its outcome once.

        Returns:
            The recorded outcome, or None if no battle was running
        """
        if not self.is_running:
            return None
        self.is_running = False
        self.battleground.unsubscribe_unit_dead(self._on_unit_dead)

        alive_teams = [team for team in self._teams if self.battleground.team_unit_count(team) > 0]
        outcome = BattleOutcome(
            winning_team=alive_teams[0] if len(alive_teams) == 1 else None,
            surviving_unit_ids=tuple(sorted(
                unit_id for unit_id, unit in self.battleground.units.items() if unit.is_alive
            )),
            ticks=self.battleground.current_tick - self._start_tick,
        )
        self.outcomes.append(outcome)

        self._publish(BattleEnded(
            tick=self.battleground.current_tick,
            winning_team=outcome.winning_team,
            surviving_unit_ids=outcome.surviving_unit_ids,
        ))

        if self.on_battle_over is not None:
            self.on_battle_over(outcome)
        return outcome

    def _on_unit_dead(self, unit_id: int, team: int) -> None:
        self._emit_log(f"Unit {unit_id} of team {team} removed", category="AI",
                       level=LogLevel.DEBUG)
        if self.battleground.team_unit_count(team) == 0:
            self.stop_battle()

    def _check_elimination(self) -> None:
        if any(self.battleground.team_unit_count(team) == 0 for team in self._teams):
            self.stop_battle()

    def _publish(self, event) -> None:
        if self.event_manager is not None:
            self.event_manager.publish(event, source="BattleManager")

    def _emit_log(self, message: str, category: str = "BATTLE",
                  level: LogLevel = LogLevel.INFO) -> None:
        self._publish(LogMessage(
            tick=self.battleground.current_tick,
            message=message,
            category=category,
            level=level,
            source="BattleManager",
        ))
