"""Battleground: terrain layers, cell occupancy and the unit registry.

The battleground is the single shared mutable resource of a battle. Every
unit reads it and writes it during its own update, so it also defines the
order in which units are updated.

Occupancy is an explicit boolean layer of free cells. It is never rebuilt
by scanning units; units reserve and release cells themselves as part of
their state transitions. A moving unit claims its destination when it
decides to move, not when it arrives, so two units can never be routed
onto the same cell.
"""

import csv
import os
from random import Random
from typing import Callable, Optional, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..core.data.data_structures import FieldBounds, GridPoint
from ..core.events.events import GameEvent, UnitDied, UnitSpawned
from .pathfinding import Pathfinder, point_neighbours

if TYPE_CHECKING:
    from ..core.events.event_manager import EventManager
    from .entities.battle_unit import BattleUnit

UnitDeadCallback = Callable[[int, int], None]
TickSource = Callable[[], int]


class Battleground:
    """Grid of cells with floor/decor layers, occupancy and registered units.

    Layers are numpy boolean arrays shaped ``(height, width)`` and indexed
    through :meth:`FieldBounds.to_index`.
    """

    def __init__(
        self,
        bounds: FieldBounds,
        rng: Optional[Random] = None,
        event_manager: Optional["EventManager"] = None,
        clock: Optional[TickSource] = None,
    ):
        self.bounds = bounds
        self.rng = rng if rng is not None else Random()
        self.event_manager = event_manager
        self.clock = clock

        self.floor: Optional[NDArray[np.bool_]] = None
        self.decor: Optional[NDArray[np.bool_]] = None
        self._terrain: NDArray[np.bool_] = np.zeros(bounds.shape, dtype=np.bool_)
        self._free: NDArray[np.bool_] = np.ones(bounds.shape, dtype=np.bool_)
        self.is_loaded = False

        self.units: dict[int, "BattleUnit"] = {}
        self.pathfinder = Pathfinder(bounds, self.is_walkable)
        self._unit_dead_callbacks: list[UnitDeadCallback] = []

    # Loading

    def load_layers(
        self,
        floor: Optional[NDArray[np.bool_]] = None,
        decor: Optional[NDArray[np.bool_]] = None,
    ) -> None:
        """Install terrain layers and mark every cell free.

        Args:
            floor: Cells with floor; defaults to floor everywhere
            decor: Cells blocked by decor; defaults to none

        Raises:
            ValueError: If a layer does not match the bounds' shape
        """
        shape = self.bounds.shape
        floor = np.ones(shape, dtype=np.bool_) if floor is None else np.asarray(floor, dtype=np.bool_)
        decor = np.zeros(shape, dtype=np.bool_) if decor is None else np.asarray(decor, dtype=np.bool_)

        for name, layer in (("floor", floor), ("decor", decor)):
            if layer.shape != shape:
                raise ValueError(f"{name} layer has shape {layer.shape}, expected {shape}")

        self.floor = floor
        self.decor = decor
        self._terrain = floor & ~decor
        self._free = np.ones(shape, dtype=np.bool_)
        self.is_loaded = True

    def load_csv_layers(self, map_directory: str) -> None:
        """Load ``floor.csv`` and ``decor.csv`` from a map directory.

        Expected directory structure:
        map_directory/
        ├── floor.csv (required - cells that can be stood on)
        └── decor.csv (required - obstacles on top of the floor)

        Row ``i`` is ``y = min_y + i`` and column ``j`` is ``x = min_x + j``.
        Any non-empty cell other than ``0`` marks the tile as present.

        Raises:
            FileNotFoundError: If a layer file is missing
            ValueError: If a layer's dimensions do not match the bounds
        """
        map_dir = os.path.abspath(map_directory)
        floor = self._read_csv_layer(os.path.join(map_dir, "floor.csv"))
        decor = self._read_csv_layer(os.path.join(map_dir, "decor.csv"))
        self.load_layers(floor, decor)

    def _read_csv_layer(self, path: str) -> NDArray[np.bool_]:
        if not os.path.exists(path):
            raise FileNotFoundError(f"Required layer {os.path.basename(path)} not found in "
                                    f"{os.path.dirname(path)}")

        with open(path, "r", encoding="utf-8") as f:
            reader = csv.reader(f)
            rows = [row for row in reader if row]  # Skip empty rows

        height, width = self.bounds.shape
        if len(rows) != height or any(len(row) != width for row in rows):
            raise ValueError(f"{path}: expected {height} rows of {width} cells")

        return np.array(
            [[cell.strip() not in ("", "0") for cell in row] for row in rows],
            dtype=np.bool_,
        )

    def _assert_loaded(self) -> None:
        assert self.is_loaded, "Battleground queried before its layers were loaded"

    # Occupancy

    def is_terrain_walkable(self, point: GridPoint) -> bool:
        """Floor present and no decor, ignoring units."""
        self._assert_loaded()
        if not self.bounds.contains(point):
            return False
        return bool(self._terrain[self.bounds.to_index(point)])

    def is_free(self, point: GridPoint) -> bool:
        """True if no unit claims ``point``."""
        if not self.bounds.contains(point):
            return False
        return bool(self._free[self.bounds.to_index(point)])

    def is_walkable(self, point: GridPoint) -> bool:
        """In bounds, terrain-walkable and not claimed by any unit."""
        return self.is_terrain_walkable(point) and self.is_free(point)

    def reserve(self, point: GridPoint) -> None:
        """Remove ``point`` from the free set."""
        assert self.bounds.contains(point), f"Cannot reserve {point} outside {self.bounds}"
        self._free[self.bounds.to_index(point)] = False

    def release(self, point: GridPoint) -> None:
        """Return ``point`` to the free set."""
        assert self.bounds.contains(point), f"Cannot release {point} outside {self.bounds}"
        self._free[self.bounds.to_index(point)] = True

    def free_points(self) -> list[GridPoint]:
        """Every unclaimed point, row-major."""
        return self.bounds.points_from_mask(self._free)

    def walkable_points(self) -> list[GridPoint]:
        """Every unclaimed, terrain-walkable point, row-major."""
        self._assert_loaded()
        return self.bounds.points_from_mask(self._free & self._terrain)

    # Units

    def add_unit(self, unit: "BattleUnit") -> int:
        """Register a unit, claim its cell and assign its id.

        Ids are ``max(existing ids) + 1``, or 0 on an empty battleground.
        Removing the highest-id unit therefore hands its id out again, along
        with any freed id above the new maximum.

        Returns:
            The assigned id
        """
        unit_id = max(self.units) + 1 if self.units else 0
        unit.id = unit_id
        self.units[unit_id] = unit
        self.reserve(unit.position)

        self.publish(UnitSpawned(
            tick=self.current_tick, unit_id=unit_id, team=unit.team, position=unit.position
        ))
        return unit_id

    def remove_unit(self, unit_id: int) -> None:
        """Drop a unit and notify unit-dead listeners. Unknown ids are ignored."""
        unit = self.units.pop(unit_id, None)
        if unit is None:
            return
        unit.is_removed = True

        self.publish(UnitDied(tick=self.current_tick, unit_id=unit_id, team=unit.team))
        for callback in list(self._unit_dead_callbacks):
            callback(unit_id, unit.team)

    def get_unit(self, unit_id: int) -> Optional["BattleUnit"]:
        return self.units.get(unit_id)

    def unit_at(self, point: GridPoint) -> Optional["BattleUnit"]:
        """The registered unit standing on ``point``, if any."""
        for unit in self.units.values():
            if unit.position == point:
                return unit
        return None

    def team_unit_count(self, team: int) -> int:
        return sum(1 for unit in self.units.values() if unit.team == team)

    def subscribe_unit_dead(self, callback: UnitDeadCallback) -> None:
        self._unit_dead_callbacks.append(callback)

    def unsubscribe_unit_dead(self, callback: UnitDeadCallback) -> None:
        if callback in self._unit_dead_callbacks:
            self._unit_dead_callbacks.remove(callback)

    def tick_units(self) -> None:
        """Update every unit once, in ascending id order.

        The order decides who wins a contested cell or target within a tick.
        Units removed earlier in the same pass are skipped.
        """
        for unit_id in sorted(self.units):
            unit = self.units.get(unit_id)
            if unit is not None:
                unit.update()

    # Queries used by unit decisions

    def find_enemy_to_attack(self, point: GridPoint, team: int) -> Optional["BattleUnit"]:
        """The weakest living enemy on one of the 8 cells around ``point``.

        Ties go to the first neighbour in enumeration order.
        """
        best: Optional["BattleUnit"] = None
        min_hp = float("inf")
        for neighbour in point_neighbours(point, with_diagonal=True):
            unit = self.unit_at(neighbour)
            if unit is None or unit.team == team or not unit.is_alive:
                continue
            if unit.hp < min_hp:
                min_hp = unit.hp
                best = unit
        return best

    def shortest_path_to_any_enemy(
        self, start: GridPoint, team: int
    ) -> Optional[list[GridPoint]]:
        """Shortest inner path from ``start`` toward any living enemy.

        Enemies are tried in ascending id order and only a strictly shorter
        path replaces the current best. Empty paths (enemy already adjacent)
        are skipped.

        Returns:
            The intermediate cells of the best path, or None
        """
        self._assert_loaded()
        best_path: Optional[list[GridPoint]] = None
        min_length = self.bounds.width * self.bounds.height

        for unit_id in sorted(self.units):
            unit = self.units[unit_id]
            if unit.team == team or not unit.is_alive:
                continue

            path = self.pathfinder.find_inner_path(start, unit.position)
            if not path:
                continue

            if len(path) < min_length:
                min_length = len(path)
                best_path = path

        return best_path

    def random_free_neighbor(self, point: GridPoint) -> Optional[GridPoint]:
        """A random walkable orthogonal neighbour, or None if all are blocked."""
        neighbours = point_neighbours(point)
        self.rng.shuffle(neighbours)
        for neighbour in neighbours:
            if self.is_walkable(neighbour):
                return neighbour
        return None

    # Misc

    @property
    def current_tick(self) -> int:
        return self.clock() if self.clock is not None else 0

    def publish(self, event: GameEvent) -> None:
        if self.event_manager is not None:
            self.event_manager.publish(event, source="Battleground")

    def reset(self) -> None:
        """Drop every unit and free every cell."""
        for unit in self.units.values():
            unit.is_removed = True
        self.units.clear()
        self._free = np.ones(self.bounds.shape, dtype=np.bool_)
