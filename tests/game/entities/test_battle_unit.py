"""
Unit tests for battle unit behaviour.

Each test drives the presentation and the unit pass the way the battle
manager does: actions advance first, then every unit updates once.
"""

import gc
from unittest.mock import Mock

import numpy as np
import pytest

from gridclash.core.data.data_structures import FieldBounds, GridPoint
from gridclash.core.data.game_enums import BattleUnitState
from gridclash.core.events.events import EventType
from gridclash.game.battleground import Battleground
from gridclash.game.entities.battle_unit import BattleUnit


def step(presentation, battleground, ticks=1):
    for _ in range(ticks):
        presentation.tick()
        battleground.tick_units()


@pytest.fixture
def corridor(rng, event_manager):
    """A single-column battleground five cells tall."""
    bg = Battleground(FieldBounds(0, 0, 0, 4), rng=rng, event_manager=event_manager)
    bg.load_layers()
    return bg


def make_unit(battleground, presentation, unit_config, rng, team, x, y):
    unit = BattleUnit(team, GridPoint(x, y), unit_config, battleground, presentation, rng)
    battleground.add_unit(unit)
    return unit


class TestSpawning:
    """Test the spawning state."""

    def test_new_unit_is_spawning(self, spawn_unit):
        unit = spawn_unit(0, 0, 0)
        assert unit.state is BattleUnitState.SPAWNING
        assert unit.state_name == "Spawning"
        assert unit.hp == unit.hp_max == 100

    def test_waits_for_presentation(self, spawn_unit, presentation, battleground):
        ready = set()
        presentation.readiness = lambda unit_id: unit_id in ready
        unit = spawn_unit(0, 0, 0)

        step(presentation, battleground, 3)
        assert unit.state is BattleUnitState.SPAWNING

        ready.add(unit.id)
        step(presentation, battleground)
        assert unit.state is BattleUnitState.IDLE


class TestIdleAndMoving:
    """Test decisions and movement."""

    def test_lone_unit_wanders(self, spawn_unit, presentation, battleground):
        """Without enemies a unit steps to a random free neighbour."""
        unit = spawn_unit(0, 0, 0)
        origin = unit.position
        step(presentation, battleground)
        assert unit.state is BattleUnitState.IDLE

        step(presentation, battleground)
        assert unit.state is BattleUnitState.MOVING
        destination = unit.target_position
        assert destination.manhattan_distance_to(origin) == 1
        assert unit.position == origin
        assert unit.reserved_cell == destination
        assert not battleground.is_free(destination)
        assert battleground.is_free(origin)

        step(presentation, battleground)
        assert unit.state is BattleUnitState.MOVING

        step(presentation, battleground)
        assert unit.state is BattleUnitState.IDLE
        assert unit.position == destination
        assert unit.target_position is None
        assert not battleground.is_free(destination)

    def test_idle_cell_blocks_others_but_not_its_owner(self, corridor, presentation, unit_config,
                                                       rng):
        first = make_unit(corridor, presentation, unit_config, rng, 0, 0, 0)
        second = make_unit(corridor, presentation, unit_config, rng, 1, 0, 4)
        step(presentation, corridor)
        assert first.state is second.state is BattleUnitState.IDLE

        assert not corridor.is_walkable(GridPoint(0, 0))
        assert not corridor.is_walkable(GridPoint(0, 4))
        assert corridor.shortest_path_to_any_enemy(GridPoint(0, 0), 0) == [
            GridPoint(0, 1), GridPoint(0, 2), GridPoint(0, 3)
        ]

    def test_move_publishes_event(self, spawn_unit, presentation, battleground, event_manager):
        moves = []
        event_manager.subscribe(EventType.UNIT_MOVE_STARTED, moves.append)
        unit = spawn_unit(0, 0, 0)
        step(presentation, battleground, 2)
        event_manager.process_events()

        assert len(moves) == 1
        assert moves[0].unit_id == unit.id
        assert moves[0].origin == GridPoint(0, 0)
        assert moves[0].destination == unit.target_position

    def test_units_walk_toward_each_other(self, corridor, presentation, unit_config, rng):
        """The first unit claims its step before the second decides, so they never collide."""
        first = make_unit(corridor, presentation, unit_config, rng, 0, 0, 0)
        second = make_unit(corridor, presentation, unit_config, rng, 1, 0, 4)
        step(presentation, corridor, 2)

        assert first.target_position == GridPoint(0, 1)
        assert first.current_path == [GridPoint(0, 2), GridPoint(0, 3)]
        # The second unit's route is cut by the first unit's claimed cell
        assert second.target_position == GridPoint(0, 3)
        assert not corridor.is_free(GridPoint(0, 1))
        assert not corridor.is_free(GridPoint(0, 3))
        assert corridor.free_points() == [GridPoint(0, 0), GridPoint(0, 2), GridPoint(0, 4)]

    def test_boxed_in_unit_stays_idle(self, field_bounds, rng, presentation, unit_config):
        decor = np.zeros(field_bounds.shape, dtype=bool)
        for point in (GridPoint(1, 0), GridPoint(-1, 0), GridPoint(0, 1), GridPoint(0, -1)):
            decor[field_bounds.to_index(point)] = True
        battleground = Battleground(field_bounds, rng=rng)
        battleground.load_layers(decor=decor)
        unit = make_unit(battleground, presentation, unit_config, rng, 0, 0, 0)

        step(presentation, battleground, 10)
        assert unit.state is BattleUnitState.IDLE
        assert unit.position == GridPoint(0, 0)

    def test_moving_without_destination_falls_back_to_idle(self, spawn_unit, presentation,
                                                           battleground, event_manager):
        moves = []
        event_manager.subscribe(EventType.UNIT_MOVE_STARTED, moves.append)
        unit = spawn_unit(0, 0, 0)
        step(presentation, battleground)
        assert unit.state is BattleUnitState.IDLE
        free_before = battleground.free_points()
        actions_before = presentation.active_count

        unit.target_position = None
        unit.fsm.switch_to(BattleUnitState.MOVING)
        event_manager.process_events()

        assert unit.state is BattleUnitState.IDLE
        assert unit.position == GridPoint(0, 0)
        assert battleground.free_points() == free_before
        assert unit.move_action is None
        assert presentation.active_count == actions_before
        assert moves == []


class TestAttacking:
    """Test attacks between adjacent units."""

    def test_adjacent_units_trade_strikes(self, spawn_unit, presentation, battleground):
        first = spawn_unit(0, 0, 0)
        second = spawn_unit(1, 1, 1)
        step(presentation, battleground, 2)

        assert first.state is BattleUnitState.ATTACKING
        assert second.state is BattleUnitState.ATTACKING
        assert first.target_unit is second

        step(presentation, battleground)
        assert 85 <= first.hp <= 95
        assert 85 <= second.hp <= 95
        assert first.state is BattleUnitState.ATTACKING

        step(presentation, battleground)
        assert first.state is BattleUnitState.IDLE
        assert first.target_unit is None

    def test_strike_publishes_event(self, spawn_unit, event_manager):
        attacker = spawn_unit(0, 0, 0)
        target = spawn_unit(1, 1, 0)
        hits = []
        event_manager.subscribe(EventType.UNIT_ATTACKED, hits.append)

        damage = attacker.strike(target)
        event_manager.process_events()

        assert 5 <= damage <= 15
        assert hits[0].attacker_id == attacker.id
        assert hits[0].target_id == target.id
        assert hits[0].remaining_hp == target.hp == 100 - damage

    def test_dead_attacker_deals_nothing(self, spawn_unit):
        attacker = spawn_unit(0, 0, 0)
        target = spawn_unit(1, 1, 0)
        attacker.receive_damage(100)

        assert attacker.strike(target) == 0
        assert target.hp == 100

    def test_attack_on_dead_target_is_abandoned(self, spawn_unit, presentation, battleground):
        attacker = spawn_unit(0, 0, 0)
        target = spawn_unit(1, 1, 0)
        step(presentation, battleground)
        target.receive_damage(100)

        step(presentation, battleground)
        assert attacker.state is not BattleUnitState.ATTACKING

    def test_target_is_held_weakly(self, battleground, presentation, unit_config, rng):
        unit = BattleUnit(0, GridPoint(0, 0), unit_config, battleground, presentation, rng)
        other = BattleUnit(1, GridPoint(1, 0), unit_config, battleground, presentation, rng)
        unit.target_unit = other
        assert unit.target_unit is other

        del other
        gc.collect()
        assert unit.target_unit is None


class TestDying:
    """Test death handling."""

    def test_lethal_damage_starts_dying_once(self, spawn_unit, presentation):
        unit = spawn_unit(0, 0, 0)
        assert unit.receive_damage(250) == 100
        assert unit.state is BattleUnitState.DYING
        assert not unit.is_alive
        assert presentation.active_count == 1

        assert unit.receive_damage(10) == 0
        assert presentation.active_count == 1

    def test_non_lethal_damage_keeps_state(self, spawn_unit):
        unit = spawn_unit(0, 0, 0)
        assert unit.receive_damage(40) == 40
        assert unit.state is BattleUnitState.SPAWNING
        assert unit.hp_percent == pytest.approx(0.6)

    def test_removed_after_death_action(self, spawn_unit, presentation, battleground):
        callback = Mock()
        battleground.subscribe_unit_dead(callback)
        unit = spawn_unit(1, 2, 2)
        unit.receive_damage(100)

        step(presentation, battleground)
        callback.assert_not_called()
        assert not battleground.is_free(GridPoint(2, 2))

        step(presentation, battleground)
        callback.assert_called_once_with(unit.id, 1)
        assert unit.is_removed
        assert battleground.is_free(GridPoint(2, 2))

        step(presentation, battleground, 3)
        callback.assert_called_once()

    def test_death_while_moving_frees_destination(self, spawn_unit, presentation, battleground):
        unit = spawn_unit(0, 0, 0)
        step(presentation, battleground, 2)
        destination = unit.target_position
        assert unit.state is BattleUnitState.MOVING

        unit.receive_damage(100)
        assert unit.position == destination
        assert battleground.is_free(GridPoint(0, 0))

        step(presentation, battleground, 2)
        assert unit.is_removed
        assert battleground.is_free(destination)
        assert len(battleground.free_points()) == 48
