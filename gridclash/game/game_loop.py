"""Top-level game modes: LOADING -> IDLE_SCREEN -> BATTLE -> IDLE_SCREEN ...

The loop is one more state machine next to units and windows. Long-running
mode work (loading the battleground) and mode changes requested from deep
inside a tick (the end of a battle) are queued as commands on the loop's
own command processor, so they run at a well-defined point of the next tick.
"""

import os
from typing import Callable, Iterator, Optional, TYPE_CHECKING

from ..core.config import SimulationConfig
from ..core.data.game_enums import GameMode, WindowState
from ..core.engine.commands import CommandProcessor
from ..core.engine.state_machine import StateMachine
from ..core.engine.task_manager import wait_until
from ..core.events.events import GameModeChanged, LogMessage
from .log_manager import LogLevel

if TYPE_CHECKING:
    from ..core.events.event_manager import EventManager
    from .battle_manager import BattleManager, BattleOutcome
    from .battleground import Battleground
    from .presentation import TickedPresentation
    from .windows import HudWindow, LoadingWindow, StartWindow

TickSource = Callable[[], int]


class GameLoop:
    """Game-mode state machine plus the game-level command processor."""

    def __init__(
        self,
        config: SimulationConfig,
        battleground: "Battleground",
        battle_manager: "BattleManager",
        presentation: "TickedPresentation",
        hud: "HudWindow",
        loading_window: "LoadingWindow",
        start_window: "StartWindow",
        event_manager: Optional["EventManager"] = None,
        clock: Optional[TickSource] = None,
    ):
        self.config = config
        self.battleground = battleground
        self.battle_manager = battle_manager
        self.presentation = presentation
        self.hud = hud
        self.loading_window = loading_window
        self.start_window = start_window
        self.event_manager = event_manager
        self.clock = clock

        self.battle_requested = False
        self._previous_mode: Optional[GameMode] = None

        self.commands = CommandProcessor(
            name="game", history_limit=config.scheduler.command_history
        )
        self.commands.define_async_command("load_battleground", False, self._load_battleground)
        self.commands.define_sync_command("return_to_idle_screen", self._return_to_idle_screen)

        battle_manager.on_battle_over = self._on_battle_over

        self.fsm: StateMachine[GameMode] = StateMachine(name="game_loop")
        self.fsm.add(GameMode.LOADING, self._enter_loading, None, self._exit_mode)
        self.fsm.add(GameMode.IDLE_SCREEN, self._enter_idle_screen, self._update_idle_screen,
                     self._exit_idle_screen)
        self.fsm.add(GameMode.BATTLE, self._enter_battle, self._update_battle, self._exit_battle)

    @property
    def current_mode(self) -> Optional[GameMode]:
        return self.fsm.current_state

    def start(self) -> None:
        """Enter the first mode."""
        self.fsm.switch_to(GameMode.LOADING)

    def tick(self) -> None:
        self.fsm.update()
        self.commands.tick()

    def try_switch_to(self, mode: GameMode) -> bool:
        return self.fsm.try_switch_to(mode)

    def request_battle(self) -> None:
        """Ask the idle screen to start a battle on its next update."""
        self.battle_requested = True

    def shutdown(self) -> None:
        self.fsm.shutdown()
        self.commands.destroy()

    # LOADING

    def _enter_loading(self) -> None:
        self._announce(GameMode.LOADING)
        self.commands.execute_command("load_battleground")

    def _load_battleground(self) -> Iterator[None]:
        self.loading_window.try_execute_command("open")
        yield from wait_until(lambda: self.loading_window.state is WindowState.OPENED)

        map_dir = self.config.map_dir
        if map_dir is not None and os.path.isdir(map_dir):
            self.battleground.load_csv_layers(str(map_dir))
            self._emit_log(f"Battleground loaded from {map_dir}")
        else:
            self.battleground.load_layers()
            self._emit_log("Battleground loaded with open floor")

        self.loading_window.try_execute_command("close")
        yield from wait_until(lambda: not self.loading_window.is_open)

        self.fsm.try_switch_to(GameMode.IDLE_SCREEN)

    # IDLE_SCREEN

    def _enter_idle_screen(self) -> None:
        self._announce(GameMode.IDLE_SCREEN)
        self.start_window.try_execute_command("open")

    def _update_idle_screen(self) -> None:
        if not self.battle_requested:
            return
        self.battle_requested = False
        self.fsm.try_switch_to(GameMode.BATTLE)

    def _exit_idle_screen(self) -> None:
        self._exit_mode()
        self.start_window.try_execute_command("close")

    # BATTLE

    def _enter_battle(self) -> None:
        self._announce(GameMode.BATTLE)
        self.hud.try_execute_command("open")
        self.battle_manager.start_battle()

    def _update_battle(self) -> None:
        self.battle_manager.tick()
        self.hud.update_hp_bars()

    def _exit_battle(self) -> None:
        self._exit_mode()
        self.battle_manager.stop_battle()
        self.hud.try_execute_command("close")
        self.presentation.cancel_all()
        self.battleground.reset()

    def _on_battle_over(self, outcome: "BattleOutcome") -> None:
        # Raised from inside the unit pass; the mode change waits for the next tick
        self.commands.execute_command("return_to_idle_screen")

    def _return_to_idle_screen(self) -> None:
        self.fsm.try_switch_to(GameMode.IDLE_SCREEN)

    # Helpers

    def _exit_mode(self) -> None:
        self._previous_mode = self.fsm.current_state

    def _announce(self, mode: GameMode) -> None:
        if self.event_manager is not None:
            self.event_manager.publish(GameModeChanged(
                tick=self._now(), old_mode=self._previous_mode, new_mode=mode
            ), source="GameLoop")

    def _emit_log(self, message: str, category: str = "SYSTEM",
                  level: LogLevel = LogLevel.INFO) -> None:
        if self.event_manager is not None:
            self.event_manager.publish(LogMessage(
                tick=self._now(), message=message, category=category, level=level,
                source="GameLoop",
            ), source="GameLoop")

    def _now(self) -> int:
        return self.clock() if self.clock is not None else 0
