"""Autonomous battle unit driven by a five-state behaviour machine.

States: SPAWNING -> IDLE <-> MOVING / ATTACKING, and any state -> DYING once
hit points reach zero. The behaviour itself lives in :mod:`unit_states`;
this module holds the unit's data and the combat entry points.
"""

import weakref
from functools import partial
from random import Random
from typing import Optional, TYPE_CHECKING

from ...core.config import UnitConfig
from ...core.data.data_structures import GridPoint
from ...core.data.game_enums import BattleUnitState, UNIT_STATE_NAMES
from ...core.engine.state_machine import StateMachine
from ...core.events.events import UnitAttacked
from .components import CombatComponent, HealthComponent
from .unit_states import UNIT_STATES, UnitState

if TYPE_CHECKING:
    from ..battleground import Battleground
    from ..presentation import ActionHandle, Presentation


class BattleUnit:
    """A unit on the battleground.

    The unit id is assigned by the battleground when the unit is added.
    Target units are held weakly; a unit never keeps an enemy alive.
    """

    def __init__(
        self,
        team: int,
        position: GridPoint,
        config: UnitConfig,
        battleground: "Battleground",
        presentation: "Presentation",
        rng: Random,
    ):
        self.id = -1
        self.team = team
        self.position = position
        self.battleground = battleground
        self.presentation = presentation
        self.rng = rng

        self.health = HealthComponent(config.max_hp)
        self.combat = CombatComponent.from_config(config)

        self.current_path: Optional[list[GridPoint]] = None
        self.target_position: Optional[GridPoint] = None
        self._target_unit: Optional["weakref.ref[BattleUnit]"] = None

        self.move_action: Optional["ActionHandle"] = None
        self.attack_action: Optional["ActionHandle"] = None
        self.death_action: Optional["ActionHandle"] = None
        self.is_removed = False

        self.fsm: StateMachine[BattleUnitState] = StateMachine(name=f"unit(team {team})")
        for state in UNIT_STATES:
            self._add_state(state)
        self.fsm.switch_to(BattleUnitState.SPAWNING)

    def _add_state(self, state: UnitState) -> None:
        self.fsm.add(
            state.state_id,
            partial(state.on_enter, self),
            partial(state.on_update, self),
            partial(state.on_exit, self),
        )

    @property
    def state(self) -> Optional[BattleUnitState]:
        return self.fsm.current_state

    @property
    def state_name(self) -> str:
        state = self.fsm.current_state
        return UNIT_STATE_NAMES[state] if state is not None else "None"

    @property
    def hp(self) -> int:
        return self.health.hp_current

    @property
    def hp_max(self) -> int:
        return self.health.hp_max

    @property
    def hp_percent(self) -> float:
        return self.health.get_hp_percent()

    @property
    def is_alive(self) -> bool:
        return self.health.is_alive()

    @property
    def reserved_cell(self) -> GridPoint:
        """The cell this unit claims in the occupancy layer."""
        if self.state is BattleUnitState.MOVING and self.target_position is not None:
            return self.target_position
        return self.position

    @property
    def target_unit(self) -> Optional["BattleUnit"]:
        return self._target_unit() if self._target_unit is not None else None

    @target_unit.setter
    def target_unit(self, unit: Optional["BattleUnit"]) -> None:
        self._target_unit = weakref.ref(unit) if unit is not None else None

    def update(self) -> None:
        """Advance the behaviour machine by one tick."""
        self.fsm.update()

    def strike(self, target: "BattleUnit") -> int:
        """Deal one randomly rolled hit to ``target``.

        A unit that died while its attack was in flight deals nothing.

        Returns:
            Damage actually dealt
        """
        if not self.is_alive:
            return 0

        damage = target.receive_damage(self.combat.roll_damage(self.rng))
        self.battleground.publish(UnitAttacked(
            tick=self.battleground.current_tick,
            attacker_id=self.id,
            target_id=target.id,
            damage=damage,
            remaining_hp=target.hp,
        ))
        return damage

    def receive_damage(self, amount: int) -> int:
        """Apply damage; reaching zero hit points starts dying exactly once.

        Returns:
            Damage actually taken (0 for a unit that is already down)
        """
        if not self.is_alive:
            return 0

        taken = self.health.take_damage(amount)
        if not self.is_alive:
            self.fsm.try_switch_to(BattleUnitState.DYING)
        return taken

    def __repr__(self) -> str:
        return (f"BattleUnit(id={self.id}, team={self.team}, pos={self.position}, "
                f"hp={self.hp}, state={self.state_name})")
