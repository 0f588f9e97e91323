"""Components owned by battle units.

Health and combat numbers are kept apart from the behaviour code so the
unit states only express decisions, never arithmetic.
"""

from random import Random

from ...core.config import UnitConfig


class HealthComponent:
    """Current and maximum hit points.

    Hit points are clamped to ``[0, hp_max]`` on every change.
    """

    def __init__(self, hp_max: int):
        """Initialize health component.

        Args:
            hp_max: Maximum hit points for this unit
        """
        if hp_max <= 0:
            raise ValueError(f"hp_max must be positive, got {hp_max}")
        self.hp_max = hp_max
        self.hp_current = hp_max

    def is_alive(self) -> bool:
        return self.hp_current > 0

    def get_hp_percent(self) -> float:
        """Get current health as a fraction of maximum (0.0 to 1.0)."""
        return self.hp_current / self.hp_max

    def take_damage(self, amount: int) -> int:
        """Apply damage to this unit.

        Args:
            amount: Amount of damage to apply

        Returns:
            Actual damage dealt (less than ``amount`` on overkill)
        """
        if amount < 0:
            raise ValueError("Damage amount cannot be negative")

        old_hp = self.hp_current
        self.hp_current = max(0, min(self.hp_max, self.hp_current - amount))
        return old_hp - self.hp_current


class CombatComponent:
    """Damage range of a unit's strikes."""

    def __init__(self, min_damage: int, max_damage: int):
        if not 0 <= min_damage <= max_damage:
            raise ValueError(f"Invalid damage range [{min_damage}, {max_damage}]")
        self.min_damage = min_damage
        self.max_damage = max_damage

    @classmethod
    def from_config(cls, config: UnitConfig) -> "CombatComponent":
        return cls(config.min_damage, config.max_damage)

    def roll_damage(self, rng: Random) -> int:
        """Uniform integer damage in ``[min_damage, max_damage]``."""
        return rng.randint(self.min_damage, self.max_damage)
