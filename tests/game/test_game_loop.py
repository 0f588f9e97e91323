"""
Unit tests for the game-mode loop: loading, idle screen and battle.

The game is composed through :class:`Game` with a low tick rate so that
window animations and unit actions only take a handful of ticks.
"""

import numpy as np
import pytest

from gridclash.core.config import SchedulerConfig, SimulationConfig
from gridclash.core.data.data_structures import GridPoint
from gridclash.core.data.game_enums import BattleUnitState, GameMode, WindowState
from gridclash.core.events.events import EventType
from gridclash.game.game import Game


def fast_config(**overrides):
    return SimulationConfig(scheduler=SchedulerConfig(tick_rate=10), **overrides)


def tick_until(game, predicate, limit=20000):
    for _ in range(limit):
        if predicate():
            return
        game.tick()
    pytest.fail("condition not reached")


@pytest.fixture
def game():
    game = Game(fast_config(), seed=11)
    yield game
    game.shutdown()


class TestLoading:
    """Test the LOADING mode."""

    def test_starts_loading(self, game):
        assert game.mode is GameMode.LOADING
        assert not game.battleground.is_loaded

    def test_loading_leads_to_idle_screen(self, game):
        tick_until(game, lambda: game.mode is GameMode.IDLE_SCREEN)

        assert game.battleground.is_loaded
        assert not game.loading_window.is_open
        assert len(game.battleground.walkable_points()) == 48

    def test_loading_window_shown_while_loading(self, game):
        tick_until(game, lambda: game.loading_window.state is WindowState.OPENED)
        assert game.mode is GameMode.LOADING

    def test_loads_csv_map(self, tmp_path):
        floor = np.ones((8, 6), dtype=int)
        decor = np.zeros((8, 6), dtype=int)
        decor[4, 3] = 1  # x = 0, y = 0
        np.savetxt(tmp_path / "floor.csv", floor, fmt="%d", delimiter=",")
        np.savetxt(tmp_path / "decor.csv", decor, fmt="%d", delimiter=",")

        game = Game(fast_config(map_dir=tmp_path), seed=1)
        tick_until(game, lambda: game.mode is GameMode.IDLE_SCREEN)

        assert not game.battleground.is_terrain_walkable(GridPoint(0, 0))
        assert len(game.battleground.walkable_points()) == 47

    def test_missing_map_dir_gives_open_floor(self, tmp_path):
        game = Game(fast_config(map_dir=tmp_path / "missing"), seed=1)
        tick_until(game, lambda: game.mode is GameMode.IDLE_SCREEN)
        assert len(game.battleground.walkable_points()) == 48


class TestIdleScreen:
    """Test the IDLE_SCREEN mode."""

    def test_start_window_opens(self, game):
        tick_until(game, lambda: game.mode is GameMode.IDLE_SCREEN)
        tick_until(game, lambda: game.start_window.state is WindowState.OPENED)
        assert game.mode is GameMode.IDLE_SCREEN

    def test_start_button_starts_battle(self, game):
        tick_until(game, lambda: game.start_window.state is WindowState.OPENED)
        assert game.start_window.press_start()
        game.tick()

        assert game.mode is GameMode.BATTLE
        assert game.battle_manager.is_running

    def test_stays_idle_without_request(self, game):
        tick_until(game, lambda: game.start_window.state is WindowState.OPENED)
        for _ in range(50):
            game.tick()
        assert game.mode is GameMode.IDLE_SCREEN
        assert game.battleground.units == {}


class TestBattleMode:
    """Test the BATTLE mode."""

    @pytest.fixture
    def battling(self, game):
        tick_until(game, lambda: game.mode is GameMode.IDLE_SCREEN)
        game.request_battle()
        game.tick()
        assert game.mode is GameMode.BATTLE
        return game

    def test_units_wait_for_hud(self, battling):
        units = list(battling.battleground.units.values())
        assert units
        assert all(unit.state is BattleUnitState.SPAWNING for unit in units)

        tick_until(battling, lambda: battling.hud.state is WindowState.OPENED)
        battling.tick()
        assert all(unit.state is not BattleUnitState.SPAWNING
                   for unit in battling.battleground.units.values())
        assert set(battling.hud.hp_bars) == set(battling.battleground.units)

    def test_start_window_closes(self, battling):
        tick_until(battling, lambda: battling.start_window.state is WindowState.IDLE)

    def test_battle_end_returns_to_idle_screen(self, battling):
        tick_until(battling, lambda: battling.outcomes)
        # The mode change is queued on the loop's commands and lands a tick later
        assert battling.mode is GameMode.BATTLE

        tick_until(battling, lambda: battling.mode is GameMode.IDLE_SCREEN, limit=5)
        assert battling.battleground.units == {}
        assert len(battling.battleground.free_points()) == 48
        assert battling.presentation.active_count == 0

        tick_until(battling, lambda: battling.hud.state is WindowState.IDLE)
        assert battling.hud.hp_bars == {}

    def test_mode_changes_are_published(self):
        game = Game(fast_config(), seed=5)
        changes = []
        game.event_manager.subscribe(EventType.GAME_MODE_CHANGED, changes.append)

        tick_until(game, lambda: game.mode is GameMode.IDLE_SCREEN)
        game.request_battle()
        tick_until(game, lambda: game.outcomes)
        tick_until(game, lambda: game.mode is GameMode.IDLE_SCREEN)
        game.tick()

        assert [(c.old_mode, c.new_mode) for c in changes] == [
            (None, GameMode.LOADING),
            (GameMode.LOADING, GameMode.IDLE_SCREEN),
            (GameMode.IDLE_SCREEN, GameMode.BATTLE),
            (GameMode.BATTLE, GameMode.IDLE_SCREEN),
        ]


class TestShutdown:
    """Test tearing the game down."""

    def test_shutdown(self):
        game = Game(fast_config(), seed=3)
        tick_until(game, lambda: game.mode is GameMode.IDLE_SCREEN)
        game.shutdown()

        assert game.mode is None
        assert game.windows.windows == {}
        assert not game.event_manager.has_queued_events()
