"""
Unit tests for the battleground: layers, occupancy, unit registry and the
queries units base their decisions on.
"""

from random import Random
from unittest.mock import Mock

import numpy as np
import pytest

from gridclash.core.config import DEFAULT_CONFIG_PATH
from gridclash.core.data.data_structures import FieldBounds, GridPoint
from gridclash.core.events.events import EventType
from gridclash.game.battleground import Battleground


def write_layer(path, rows):
    path.write_text("\n".join(",".join(str(cell) for cell in row) for row in rows) + "\n")


class TestLayers:
    """Test loading terrain layers."""

    def test_open_floor_by_default(self, battleground, field_bounds):
        assert all(battleground.is_walkable(p) for p in field_bounds.all_points())
        assert len(battleground.walkable_points()) == 48

    def test_layer_shape_mismatch(self, field_bounds):
        battleground = Battleground(field_bounds)
        with pytest.raises(ValueError):
            battleground.load_layers(floor=np.ones((6, 8), dtype=bool))

    def test_decor_and_missing_floor_block(self, field_bounds):
        battleground = Battleground(field_bounds)
        floor = np.ones(field_bounds.shape, dtype=bool)
        decor = np.zeros(field_bounds.shape, dtype=bool)
        floor[field_bounds.to_index(GridPoint(0, 0))] = False
        decor[field_bounds.to_index(GridPoint(1, 1))] = True
        battleground.load_layers(floor, decor)

        assert not battleground.is_terrain_walkable(GridPoint(0, 0))
        assert not battleground.is_terrain_walkable(GridPoint(1, 1))
        assert battleground.is_terrain_walkable(GridPoint(2, 2))
        # Terrain does not affect occupancy
        assert battleground.is_free(GridPoint(1, 1))

    def test_queries_before_loading_fail(self, field_bounds):
        battleground = Battleground(field_bounds)
        with pytest.raises(AssertionError):
            battleground.is_walkable(GridPoint(0, 0))

    def test_load_csv_layers(self, tmp_path):
        bounds = FieldBounds(0, 2, 0, 1)
        write_layer(tmp_path / "floor.csv", [[1, 1, 0], [1, 1, 1]])
        write_layer(tmp_path / "decor.csv", [[0, 0, 0], [0, 5, 0]])

        battleground = Battleground(bounds)
        battleground.load_csv_layers(str(tmp_path))

        # Row i is y = min_y + i, column j is x = min_x + j
        assert not battleground.is_terrain_walkable(GridPoint(2, 0))
        assert not battleground.is_terrain_walkable(GridPoint(1, 1))
        assert battleground.walkable_points() == [
            GridPoint(0, 0), GridPoint(1, 0), GridPoint(0, 1), GridPoint(2, 1)
        ]

    def test_missing_csv_layer(self, tmp_path):
        bounds = FieldBounds(0, 1, 0, 0)
        write_layer(tmp_path / "floor.csv", [[1, 1]])
        with pytest.raises(FileNotFoundError):
            Battleground(bounds).load_csv_layers(str(tmp_path))

    def test_csv_dimension_mismatch(self, tmp_path):
        bounds = FieldBounds(0, 1, 0, 0)
        write_layer(tmp_path / "floor.csv", [[1, 1, 1]])
        write_layer(tmp_path / "decor.csv", [[0, 0, 0]])
        with pytest.raises(ValueError):
            Battleground(bounds).load_csv_layers(str(tmp_path))

    def test_packaged_map(self, field_bounds):
        battleground = Battleground(field_bounds)
        battleground.load_csv_layers(str(DEFAULT_CONFIG_PATH.parent / "maps" / "default"))
        assert len(battleground.walkable_points()) == 48


class TestOccupancy:
    """Test reserving and releasing cells."""

    def test_reserve_and_release(self, battleground):
        point = GridPoint(1, 2)
        battleground.reserve(point)
        assert not battleground.is_free(point)
        assert not battleground.is_walkable(point)
        assert point not in battleground.free_points()

        battleground.release(point)
        assert battleground.is_walkable(point)

    def test_out_of_bounds(self, battleground):
        outside = GridPoint(3, 0)
        assert not battleground.is_walkable(outside)
        assert not battleground.is_free(outside)
        with pytest.raises(AssertionError):
            battleground.reserve(outside)
        with pytest.raises(AssertionError):
            battleground.release(outside)

    def test_reset_frees_everything(self, battleground, spawn_unit):
        unit = spawn_unit(0, 0, 0)
        battleground.reserve(GridPoint(2, 2))
        battleground.reset()

        assert battleground.units == {}
        assert unit.is_removed
        assert len(battleground.free_points()) == 48


class TestUnitRegistry:
    """Test adding and removing units."""

    def test_ids_are_max_plus_one(self, battleground, spawn_unit):
        units = [spawn_unit(0, x, 0) for x in range(3)]
        assert [u.id for u in units] == [0, 1, 2]

        battleground.remove_unit(1)
        assert spawn_unit(1, 0, 1).id == 3

        battleground.remove_unit(3)
        assert spawn_unit(1, 1, 1).id == 3

    def test_add_claims_cell(self, battleground, spawn_unit):
        unit = spawn_unit(0, -1, 2)
        assert not battleground.is_free(GridPoint(-1, 2))
        assert battleground.unit_at(GridPoint(-1, 2)) is unit
        assert battleground.get_unit(unit.id) is unit
        assert battleground.team_unit_count(0) == 1
        assert battleground.team_unit_count(1) == 0

    def test_add_publishes_spawn(self, battleground, spawn_unit, event_manager):
        received = []
        event_manager.subscribe(EventType.UNIT_SPAWNED, received.append)
        spawn_unit(1, 2, 3)
        event_manager.process_events()

        assert len(received) == 1
        assert received[0].team == 1
        assert received[0].position == GridPoint(2, 3)

    def test_remove_notifies(self, battleground, spawn_unit, event_manager):
        callback = Mock()
        died = []
        battleground.subscribe_unit_dead(callback)
        event_manager.subscribe(EventType.UNIT_DIED, died.append)

        unit = spawn_unit(1, 0, 0)
        battleground.remove_unit(unit.id)
        event_manager.process_events()

        callback.assert_called_once_with(unit.id, 1)
        assert [e.unit_id for e in died] == [unit.id]
        assert unit.is_removed
        assert battleground.get_unit(unit.id) is None

    def test_remove_unknown_is_ignored(self, battleground):
        callback = Mock()
        battleground.subscribe_unit_dead(callback)
        battleground.remove_unit(42)
        callback.assert_not_called()

    def test_unsubscribe_unit_dead(self, battleground, spawn_unit):
        callback = Mock()
        battleground.subscribe_unit_dead(callback)
        battleground.unsubscribe_unit_dead(callback)
        battleground.remove_unit(spawn_unit(0, 0, 0).id)
        callback.assert_not_called()

    def test_tick_units_in_id_order(self, battleground):
        order = []
        for x in (2, 0, 1):
            unit = Mock(team=0, position=GridPoint(x, 0))
            battleground.add_unit(unit)
            unit.update.side_effect = lambda unit=unit: order.append(unit.id)

        battleground.tick_units()
        assert order == [0, 1, 2]

    def test_tick_units_skips_units_removed_in_pass(self, battleground):
        first = Mock(team=0, position=GridPoint(0, 0))
        second = Mock(team=1, position=GridPoint(1, 0))
        battleground.add_unit(first)
        battleground.add_unit(second)
        first.update.side_effect = lambda: battleground.remove_unit(second.id)

        battleground.tick_units()
        second.update.assert_not_called()


class TestDecisionQueries:
    """Test the queries backing unit decisions."""

    def test_find_enemy_prefers_lowest_hp(self, battleground, spawn_unit):
        spawn_unit(0, 0, 0)
        strong = spawn_unit(1, 1, 0)
        weak = spawn_unit(1, -1, -1)
        weak.health.take_damage(40)

        assert battleground.find_enemy_to_attack(GridPoint(0, 0), 0) is weak
        assert strong.hp > weak.hp

    def test_find_enemy_tie_goes_to_first_neighbour(self, battleground, spawn_unit):
        spawn_unit(0, 0, 0)
        west = spawn_unit(1, -1, 0)
        spawn_unit(1, 0, 1)
        assert battleground.find_enemy_to_attack(GridPoint(0, 0), 0) is west

    def test_find_enemy_ignores_allies_dead_and_distant(self, battleground, spawn_unit):
        spawn_unit(0, 0, 0)
        spawn_unit(0, 1, 0)
        dying = spawn_unit(1, 0, 1)
        dying.receive_damage(dying.hp)
        spawn_unit(1, 2, 2)

        assert battleground.find_enemy_to_attack(GridPoint(0, 0), 0) is None

    def test_shortest_path_to_nearest_enemy(self, battleground, spawn_unit):
        spawn_unit(0, 0, 0)
        spawn_unit(1, 0, 3)
        spawn_unit(1, -2, 0)

        path = battleground.shortest_path_to_any_enemy(GridPoint(0, 0), 0)
        assert path == [GridPoint(-1, 0)]

    def test_shortest_path_keeps_first_of_equal_length(self, battleground, spawn_unit):
        spawn_unit(0, 0, 0)
        spawn_unit(1, 0, 3)
        spawn_unit(1, 0, -3)

        path = battleground.shortest_path_to_any_enemy(GridPoint(0, 0), 0)
        assert path == [GridPoint(0, 1), GridPoint(0, 2)]

    def test_adjacent_enemy_has_no_path(self, battleground, spawn_unit):
        spawn_unit(0, 0, 0)
        spawn_unit(1, 1, 0)
        assert battleground.shortest_path_to_any_enemy(GridPoint(0, 0), 0) is None

    def test_no_enemies_no_path(self, battleground, spawn_unit):
        spawn_unit(0, 0, 0)
        assert battleground.shortest_path_to_any_enemy(GridPoint(0, 0), 0) is None

    def test_random_free_neighbor(self, battleground):
        neighbour = battleground.random_free_neighbor(GridPoint(0, 0))
        assert neighbour.manhattan_distance_to(GridPoint(0, 0)) == 1

    def test_random_free_neighbor_is_seeded(self, field_bounds):
        picks = []
        for _ in range(2):
            battleground = Battleground(field_bounds, rng=Random(5))
            battleground.load_layers()
            picks.append([battleground.random_free_neighbor(GridPoint(0, 0)) for _ in range(10)])
        assert picks[0] == picks[1]

    def test_random_free_neighbor_skips_blocked(self, battleground):
        for point in (GridPoint(1, 0), GridPoint(-1, 0), GridPoint(0, 1)):
            battleground.reserve(point)
        assert battleground.random_free_neighbor(GridPoint(0, 0)) == GridPoint(0, -1)

    def test_random_free_neighbor_boxed_in(self, battleground):
        for point in (GridPoint(1, 0), GridPoint(-1, 0), GridPoint(0, 1), GridPoint(0, -1)):
            battleground.reserve(point)
        assert battleground.random_free_neighbor(GridPoint(0, 0)) is None
