"""
Shared test fixtures for the gridclash test suite.

Battles built from these fixtures use a fixed seed and short action
durations so state transitions can be driven tick by tick.
"""

import sys
import os
from random import Random

import pytest

# Add the project root to the Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from gridclash.core.config import UnitConfig
from gridclash.core.data.data_structures import FieldBounds, GridPoint
from gridclash.core.engine.clock import TickClock
from gridclash.core.events.event_manager import EventManager
from gridclash.game.battleground import Battleground
from gridclash.game.entities.battle_unit import BattleUnit
from gridclash.game.presentation import TickedPresentation


@pytest.fixture
def event_manager():
    """Create an event manager for testing."""
    return EventManager(enable_debug_logging=False)


@pytest.fixture
def clock():
    return TickClock(tick_rate=50)


@pytest.fixture
def rng():
    return Random(1234)


@pytest.fixture
def field_bounds():
    """The classic 6x8 field."""
    return FieldBounds(min_x=-3, max_x=2, min_y=-4, max_y=3)


@pytest.fixture
def unit_config():
    return UnitConfig()


@pytest.fixture
def battleground(field_bounds, rng, event_manager, clock):
    """A loaded battleground with open floor everywhere."""
    bg = Battleground(field_bounds, rng=rng, event_manager=event_manager, clock=clock)
    bg.load_layers()
    return bg


@pytest.fixture
def presentation():
    """Short actions: 2-tick moves, 2-tick attacks striking on tick 1, 2-tick deaths."""
    return TickedPresentation(move_ticks=2, attack_ticks=2, strike_tick=1, death_ticks=2)


@pytest.fixture
def spawn_unit(battleground, presentation, unit_config, rng):
    """Factory placing a unit on the battleground and returning it."""
    def _spawn(team: int, x: int, y: int) -> BattleUnit:
        unit = BattleUnit(
            team=team,
            position=GridPoint(x, y),
            config=unit_config,
            battleground=battleground,
            presentation=presentation,
            rng=rng,
        )
        battleground.add_unit(unit)
        return unit
    return _spawn
