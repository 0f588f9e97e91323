"""Battle configuration loaded from YAML.

The configuration file describes the battleground bounds, the spawn area
and team size range of each team, unit combat numbers, action durations and
scheduler settings. When no file exists the built-in defaults describe the
classic 6x8 field with two teams spawning on opposite rows.
"""

from dataclasses import dataclass, field
from pathlib import Path
from random import Random
from typing import Any, Optional, Union

import yaml

from .data.data_structures import FieldBounds

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "assets" / "battle.yaml"

DEFAULT_BOUNDS = FieldBounds(min_x=-3, max_x=2, min_y=-4, max_y=3)


@dataclass(frozen=True)
class UnitConfig:
    """Combat numbers and action durations shared by every unit.

    Durations are in seconds and converted to ticks with the scheduler's
    tick rate.
    """
    max_hp: int = 100
    min_damage: int = 5
    max_damage: int = 15
    move_duration: float = 1.0
    attack_duration: float = 0.5
    attack_strike_time: float = 0.25
    death_duration: float = 0.5

    def __post_init__(self):
        if self.max_hp <= 0:
            raise ValueError(f"max_hp must be positive, got {self.max_hp}")
        if not 0 <= self.min_damage <= self.max_damage:
            raise ValueError(
                f"Invalid damage range [{self.min_damage}, {self.max_damage}]"
            )
        for name in ("move_duration", "attack_duration", "death_duration"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if not 0 <= self.attack_strike_time <= self.attack_duration:
            raise ValueError("attack_strike_time must lie within attack_duration")


@dataclass(frozen=True)
class TeamSpawnConfig:
    """Where a team spawns and how many units it fields.

    The team size is drawn from ``[min_units, max_units)``.
    """
    team: int
    bounds: FieldBounds
    min_units: int = 2
    max_units: int = 6

    def __post_init__(self):
        if self.min_units < 0 or self.max_units <= self.min_units:
            raise ValueError(
                f"Team {self.team}: invalid unit range [{self.min_units}, {self.max_units})"
            )

    def roll_unit_count(self, rng: Random) -> int:
        return rng.randrange(self.min_units, self.max_units)


@dataclass(frozen=True)
class SchedulerConfig:
    tick_rate: int = 50
    command_history: int = 20

    def __post_init__(self):
        if self.tick_rate <= 0:
            raise ValueError(f"tick_rate must be positive, got {self.tick_rate}")
        if self.command_history <= 0:
            raise ValueError(f"command_history must be positive, got {self.command_history}")


def _default_teams() -> tuple[TeamSpawnConfig, ...]:
    return (
        TeamSpawnConfig(team=0, bounds=FieldBounds(min_x=-3, max_x=2, min_y=3, max_y=3)),
        TeamSpawnConfig(team=1, bounds=FieldBounds(min_x=-3, max_x=2, min_y=-4, max_y=-4)),
    )


@dataclass(frozen=True)
class SimulationConfig:
    """Complete configuration of one simulation run."""
    bounds: FieldBounds = DEFAULT_BOUNDS
    teams: tuple[TeamSpawnConfig, ...] = field(default_factory=_default_teams)
    unit: UnitConfig = field(default_factory=UnitConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    seed: Optional[int] = None
    map_dir: Optional[Path] = None

    def __post_init__(self):
        for team in self.teams:
            if not (self.bounds.contains_bounds(team.bounds)):
                raise ValueError(f"Team {team.team} spawn area lies outside the battleground")

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Optional[Path] = None) -> "SimulationConfig":
        """Build a configuration from parsed YAML.

        Args:
            data: Mapping with optional ``battleground``, ``teams``, ``unit``,
                ``scheduler`` and ``seed`` keys
            base_dir: Directory relative map paths are resolved against

        Raises:
            ValueError: If a section is malformed
        """
        try:
            battleground = data.get("battleground", {}) or {}
            bounds = (FieldBounds.from_dict(battleground["bounds"])
                      if "bounds" in battleground else DEFAULT_BOUNDS)

            map_dir = None
            if battleground.get("map_dir"):
                map_dir = Path(battleground["map_dir"])
                if not map_dir.is_absolute() and base_dir is not None:
                    map_dir = base_dir / map_dir

            teams = _default_teams()
            if "teams" in data:
                teams = tuple(
                    TeamSpawnConfig(
                        team=int(entry["team"]),
                        bounds=FieldBounds.from_dict(entry["spawn"]),
                        min_units=int(entry.get("min_units", 2)),
                        max_units=int(entry.get("max_units", 6)),
                    )
                    for entry in data["teams"]
                )

            unit = UnitConfig(**(data.get("unit") or {}))
            scheduler = SchedulerConfig(**(data.get("scheduler") or {}))
            seed = data.get("seed")
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed battle configuration: {e}") from e

        return cls(
            bounds=bounds,
            teams=teams,
            unit=unit,
            scheduler=scheduler,
            seed=None if seed is None else int(seed),
            map_dir=map_dir,
        )


def load_config(path: Optional[Union[str, Path]] = None) -> SimulationConfig:
    """Load the battle configuration.

    Args:
        path: YAML file to read; defaults to the packaged ``battle.yaml``

    Returns:
        The parsed configuration, or the built-in defaults when the file
        does not exist or is empty

    Raises:
        ValueError: If the file is not valid YAML or holds invalid values
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        return SimulationConfig()

    with open(config_path, "r", encoding="utf-8") as file:
        try:
            data = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return SimulationConfig()
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: top level must be a mapping")

    return SimulationConfig.from_dict(data, base_dir=config_path.parent)
