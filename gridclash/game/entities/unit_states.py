"""Behaviour states of a battle unit.

Each state is a stateless strategy object; its hooks receive the owning
unit as their context. The unit binds the hooks into its state machine, so
states never keep a reference to the machine or to a particular unit.

Cell ownership follows one rule: a unit always holds exactly one reserved
cell in the battleground's occupancy layer. That is its position, except
while moving, when it is the destination.
"""

from abc import ABC
from typing import TYPE_CHECKING

from ...core.data.game_enums import BattleUnitState
from ...core.events.events import UnitMoveStarted

if TYPE_CHECKING:
    from .battle_unit import BattleUnit


class UnitState(ABC):
    """Base class for unit states; every hook defaults to a no-op."""

    state_id: BattleUnitState

    def on_enter(self, unit: "BattleUnit") -> None:
        pass

    def on_update(self, unit: "BattleUnit") -> None:
        pass

    def on_exit(self, unit: "BattleUnit") -> None:
        pass


class SpawningState(UnitState):
    """Waits until the presentation layer has set the unit up."""

    state_id = BattleUnitState.SPAWNING

    def on_update(self, unit: "BattleUnit") -> None:
        # Polled every tick rather than pushed
        if unit.presentation.is_unit_presentation_ready(unit.id):
            unit.fsm.try_switch_to(BattleUnitState.IDLE)


class IdleState(UnitState):
    """Decides the unit's next action: attack a neighbour or take one step."""

    state_id = BattleUnitState.IDLE

    def on_enter(self, unit: "BattleUnit") -> None:
        # The resting cell stays claimed so no one can be routed onto it.
        # Path searches never test their start cell, so this does not block
        # the unit's own searches.
        unit.battleground.reserve(unit.position)

    def on_update(self, unit: "BattleUnit") -> None:
        battleground = unit.battleground

        target = battleground.find_enemy_to_attack(unit.position, unit.team)
        if target is not None:
            unit.target_unit = target
            unit.fsm.try_switch_to(BattleUnitState.ATTACKING)
            return

        path = unit.current_path
        if path is not None and (not path or not battleground.is_walkable(path[0])):
            path = None

        relevant_path = battleground.shortest_path_to_any_enemy(unit.position, unit.team)
        if relevant_path is not None and (path is None or len(path) > len(relevant_path)):
            path = relevant_path
        unit.current_path = path

        if path:
            destination = path.pop(0)
        else:
            destination = battleground.random_free_neighbor(unit.position)

        if destination is None:
            # Boxed in; retry next tick
            return

        unit.target_position = destination
        unit.fsm.try_switch_to(BattleUnitState.MOVING)


class MovingState(UnitState):
    """Steps to the adjacent target cell claimed at decision time."""

    state_id = BattleUnitState.MOVING

    def on_enter(self, unit: "BattleUnit") -> None:
        destination = unit.target_position
        if destination is None:
            unit.fsm.try_switch_to(BattleUnitState.IDLE)
            return

        battleground = unit.battleground
        battleground.reserve(destination)
        battleground.release(unit.position)

        unit.move_action = unit.presentation.begin_move(unit, destination)
        battleground.publish(UnitMoveStarted(
            tick=battleground.current_tick,
            unit_id=unit.id,
            origin=unit.position,
            destination=destination,
        ))

    def on_update(self, unit: "BattleUnit") -> None:
        if unit.move_action is not None and not unit.move_action.is_done:
            return
        unit.fsm.try_switch_to(BattleUnitState.IDLE)

    def on_exit(self, unit: "BattleUnit") -> None:
        # Arrival, or death mid-step: either way the unit now owns the destination
        if unit.target_position is not None:
            unit.position = unit.target_position
        unit.target_position = None
        unit.move_action = None


class AttackingState(UnitState):
    """Plays one attack against the target unit; damage lands on the strike."""

    state_id = BattleUnitState.ATTACKING

    def on_enter(self, unit: "BattleUnit") -> None:
        unit.current_path = None

        target = unit.target_unit
        if target is None or not target.is_alive:
            unit.fsm.try_switch_to(BattleUnitState.IDLE)
            return

        unit.attack_action = unit.presentation.begin_attack(
            unit, target, lambda: unit.strike(target)
        )

    def on_update(self, unit: "BattleUnit") -> None:
        if unit.attack_action is not None and not unit.attack_action.is_done:
            return
        unit.fsm.try_switch_to(BattleUnitState.IDLE)

    def on_exit(self, unit: "BattleUnit") -> None:
        unit.target_unit = None
        unit.attack_action = None


class DyingState(UnitState):
    """Plays the death action, then frees the cell and leaves the battleground."""

    state_id = BattleUnitState.DYING

    def on_enter(self, unit: "BattleUnit") -> None:
        unit.current_path = None
        unit.death_action = unit.presentation.begin_death(unit)

    def on_update(self, unit: "BattleUnit") -> None:
        if unit.death_action is not None and not unit.death_action.is_done:
            return
        if unit.is_removed:
            return

        battleground = unit.battleground
        battleground.release(unit.position)
        battleground.remove_unit(unit.id)


UNIT_STATES: tuple[UnitState, ...] = (
    SpawningState(),
    IdleState(),
    MovingState(),
    AttackingState(),
    DyingState(),
)
