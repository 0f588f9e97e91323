"""
Main game class that composes every system of the simulation.

Per tick the game advances the clock, runs the game loop (which ticks the
battle while one is running), updates every window and finally delivers
the events published during the tick.
"""

from random import Random
from typing import Optional

from ..core.config import SimulationConfig, load_config
from ..core.data.game_enums import GameMode
from ..core.engine.clock import TickClock
from ..core.events.event_manager import EventManager
from .battle_manager import BattleManager, BattleOutcome
from .battleground import Battleground
from .game_loop import GameLoop
from .log_manager import LogLevel, LogManager
from .presentation import TickedPresentation
from .windows import HudWindow, LoadingWindow, StartWindow, WindowRegistry


class Game:
    """Headless game: config, rng, event bus, windows, battle and game loop."""

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        seed: Optional[int] = None,
        debug: bool = False,
    ):
        """Compose the game.

        Args:
            config: Simulation configuration; loaded from the packaged YAML
                file when omitted
            seed: Random seed overriding the configured one
            debug: Keep debug-level log messages visible
        """
        self.config = config if config is not None else load_config()
        self.seed = seed if seed is not None else self.config.seed
        self.rng = Random(self.seed)

        self.clock = TickClock(self.config.scheduler.tick_rate)
        self.event_manager = EventManager(enable_debug_logging=debug)
        self.log_manager = LogManager(
            self.event_manager,
            default_level=LogLevel.DEBUG if debug else LogLevel.INFO,
        )
        self.event_manager.set_debug_callback(self.log_manager.debug)

        self.battleground = Battleground(
            self.config.bounds, rng=self.rng, event_manager=self.event_manager, clock=self.clock
        )
        self.presentation = TickedPresentation.from_config(self.config.unit, self.clock)

        history = self.config.scheduler.command_history
        self.windows = WindowRegistry()
        self.hud = HudWindow(
            "hud", self.windows, self.battleground,
            event_manager=self.event_manager, clock=self.clock, history_limit=history,
        )
        self.loading_window = LoadingWindow(
            "loading", self.windows,
            open_ticks=self.clock.seconds_to_ticks(0.5),
            close_ticks=self.clock.seconds_to_ticks(0.5),
            event_manager=self.event_manager, clock=self.clock, history_limit=history,
        )
        self.start_window = StartWindow(
            "start", self.windows, on_start=self.request_battle,
            open_ticks=self.clock.seconds_to_ticks(0.5),
            close_ticks=self.clock.seconds_to_ticks(0.5),
            event_manager=self.event_manager, clock=self.clock, history_limit=history,
        )
        self.presentation.readiness = self.hud.is_unit_presentation_ready

        self.battle_manager = BattleManager(
            self.battleground, self.presentation, self.config, self.rng,
            event_manager=self.event_manager,
        )
        self.game_loop = GameLoop(
            self.config,
            self.battleground,
            self.battle_manager,
            self.presentation,
            self.hud,
            self.loading_window,
            self.start_window,
            event_manager=self.event_manager,
            clock=self.clock,
        )
        self.game_loop.start()

    @property
    def mode(self) -> Optional[GameMode]:
        return self.game_loop.current_mode

    @property
    def outcomes(self) -> list[BattleOutcome]:
        return self.battle_manager.outcomes

    def tick(self) -> None:
        """Advance the whole game by one fixed step."""
        self.clock.advance()
        self.game_loop.tick()
        self.windows.update_all()
        self.event_manager.process_events()

    def request_battle(self) -> None:
        self.game_loop.request_battle()

    def run(self, max_ticks: int = 100_000, battles: int = 1) -> list[BattleOutcome]:
        """Tick until ``battles`` more battles have finished or ``max_ticks`` ran out.

        While more battles are wanted, the start button is pressed as soon
        as the start window has opened on the idle screen.

        Returns:
            Outcomes of the battles finished during this call
        """
        first = len(self.outcomes)
        target = first + battles

        for _ in range(max_ticks):
            if self.mode is GameMode.IDLE_SCREEN:
                if len(self.outcomes) >= target:
                    break
                self.start_window.press_start()
            self.tick()

        return self.outcomes[first:]

    def shutdown(self) -> None:
        self.game_loop.shutdown()
        for window in list(self.windows.windows.values()):
            window.destroy()
        self.event_manager.shutdown()
