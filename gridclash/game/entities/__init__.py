"""Battle unit entities.

- components.py: Health and combat components
- unit_states.py: Behaviour states (spawning, idle, moving, attacking, dying)
- battle_unit.py: The unit tying components and states together
"""

from .components import CombatComponent, HealthComponent
from .battle_unit import BattleUnit
from .unit_states import (
    UNIT_STATES,
    AttackingState,
    DyingState,
    IdleState,
    MovingState,
    SpawningState,
    UnitState,
)

__all__ = [
    "CombatComponent",
    "HealthComponent",
    "BattleUnit",
    "UNIT_STATES",
    "AttackingState",
    "DyingState",
    "IdleState",
    "MovingState",
    "SpawningState",
    "UnitState",
]
