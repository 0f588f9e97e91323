"""Headless UI windows driven by the same state machine as units.

A window walks PRE_INIT -> INIT -> IDLE -> OPENING -> OPENED -> CLOSING ->
CLOSED and back to IDLE, so it can be opened again. Windows are opened and
closed by executing their ``open``/``close`` commands, which run through
the window's own command processor.

Windows here draw nothing. What they keep is the part of UI state that the
simulation depends on: the HUD's hp bars gate a unit's spawning, and the
loading and start windows sequence the game loop.
"""

from functools import partial
from typing import Any, Callable, Iterator, Optional, TYPE_CHECKING

from ..core.data.game_enums import WindowState
from ..core.engine.commands import CommandProcessor, HISTORY_LIMIT, command_hash
from ..core.engine.state_machine import StateMachine
from ..core.engine.task_manager import wait_ticks, wait_until
from ..core.events.events import WindowStateChanged

if TYPE_CHECKING:
    from ..core.events.event_manager import EventManager
    from .battleground import Battleground

TickSource = Callable[[], int]

OPEN_STATES = (WindowState.OPENING, WindowState.OPENED, WindowState.CLOSING)


class WindowRegistry:
    """Lookup tables of windows by name hash.

    Windows add themselves to the idle/opened tables when they enter the
    IDLE/OPENED states and remove themselves on exit.
    """

    def __init__(self):
        self.windows: dict[int, "UIWindow"] = {}
        self.idle_windows: dict[int, "UIWindow"] = {}
        self.opened_windows: dict[int, "UIWindow"] = {}

    def add(self, window: "UIWindow") -> None:
        if window.name_hash in self.windows:
            raise ValueError(f"Window {window.name!r} is already registered")
        self.windows[window.name_hash] = window

    def remove(self, window: "UIWindow") -> None:
        self.windows.pop(window.name_hash, None)
        self.idle_windows.pop(window.name_hash, None)
        self.opened_windows.pop(window.name_hash, None)

    def find(self, name: str) -> Optional["UIWindow"]:
        return self.windows.get(command_hash(name))

    def find_opened(self, name: str) -> Optional["UIWindow"]:
        return self.opened_windows.get(command_hash(name))

    def is_opened(self, name: str) -> bool:
        return command_hash(name) in self.opened_windows

    def close(self, name: str) -> bool:
        """Request closing an opened window.

        Returns:
            False if no window with that name is opened
        """
        window = self.find_opened(name)
        if window is None:
            return False
        return window.try_execute_command("close")

    def close_all(self) -> None:
        for window in list(self.opened_windows.values()):
            window.try_execute_command("close")

    def update_all(self) -> None:
        for window in list(self.windows.values()):
            window.update()


class UIWindow:
    """Base window: lifecycle machine plus a command processor."""

    def __init__(
        self,
        name: str,
        registry: WindowRegistry,
        event_manager: Optional["EventManager"] = None,
        clock: Optional[TickSource] = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.name = name
        self.name_hash = command_hash(name)
        self.registry = registry
        self.event_manager = event_manager
        self.clock = clock

        self.commands = CommandProcessor(name=f"window:{name}", history_limit=history_limit)
        self.fsm: StateMachine[WindowState] = StateMachine(name=f"window:{name}")

        self._pre_init_completed = False
        self._init_completed = False
        self._previous_state: Optional[WindowState] = None

        self._init_fsm()
        registry.add(self)
        self.fsm.switch_to(WindowState.PRE_INIT)

    def _init_fsm(self) -> None:
        hooks: dict[WindowState, tuple[Any, Any, Any]] = {
            WindowState.PRE_INIT: (self.pre_init, self._update_pre_init, None),
            WindowState.INIT: (self.init, self._update_init, None),
            WindowState.IDLE: (self._enter_idle, None, self._exit_idle),
            WindowState.OPENING: (None, self._update_opening, None),
            WindowState.OPENED: (self._enter_opened, None, self._exit_opened),
            WindowState.CLOSING: (None, self._update_closing, None),
            WindowState.CLOSED: (None, self._update_closed, None),
        }
        for state, (on_enter, on_update, on_exit) in hooks.items():
            self.fsm.add(state, partial(self._enter, state, on_enter), on_update,
                         partial(self._exit, state, on_exit))

    @property
    def state(self) -> Optional[WindowState]:
        return self.fsm.current_state

    @property
    def is_open(self) -> bool:
        return self.state in OPEN_STATES

    def update(self) -> None:
        """One tick: advance the lifecycle, then the window's commands."""
        self.fsm.update()
        self.commands.tick()

    def try_switch_to(self, state: WindowState) -> bool:
        return self.fsm.try_switch_to(state)

    def try_execute_command(self, name: str) -> bool:
        """Queue a window command if it is defined.

        Returns:
            False if the window has no such command
        """
        if not self.commands.command_exists(name):
            return False
        self.commands.execute_command(name)
        return True

    def destroy(self) -> None:
        self.fsm.shutdown()
        self.commands.destroy()
        self.registry.remove(self)

    # Overridable lifecycle steps

    def pre_init(self) -> None:
        self.define_commands()
        self._pre_init_completed = True

    def init(self) -> None:
        self._init_completed = True

    def define_commands(self) -> None:
        self.commands.define_sync_command("open", self.open)
        self.commands.define_sync_command("close", self.close)

    def open(self) -> None:
        self.fsm.try_switch_to(WindowState.OPENING)

    def close(self) -> None:
        self.fsm.try_switch_to(WindowState.CLOSING)

    # State hooks

    def _enter(self, state: WindowState, hook: Optional[Callable[[], None]]) -> None:
        if self.event_manager is not None:
            self.event_manager.publish(WindowStateChanged(
                tick=self.clock() if self.clock is not None else 0,
                window_name=self.name,
                old_state=self._previous_state,
                new_state=state,
            ), source=f"UIWindow.{self.name}")
        if hook is not None:
            hook()

    def _exit(self, state: WindowState, hook: Optional[Callable[[], None]]) -> None:
        self._previous_state = state
        if hook is not None:
            hook()

    def _update_pre_init(self) -> None:
        if self._pre_init_completed:
            self.fsm.try_switch_to(WindowState.INIT)

    def _update_init(self) -> None:
        if self._init_completed:
            self.fsm.try_switch_to(WindowState.IDLE)

    def _enter_idle(self) -> None:
        self.registry.idle_windows[self.name_hash] = self

    def _exit_idle(self) -> None:
        self.registry.idle_windows.pop(self.name_hash, None)

    def _update_opening(self) -> None:
        self.fsm.try_switch_to(WindowState.OPENED)

    def _enter_opened(self) -> None:
        self.registry.opened_windows[self.name_hash] = self

    def _exit_opened(self) -> None:
        self.registry.opened_windows.pop(self.name_hash, None)

    def _update_closing(self) -> None:
        self.fsm.try_switch_to(WindowState.CLOSED)

    def _update_closed(self) -> None:
        self.fsm.try_switch_to(WindowState.IDLE)

    def __repr__(self) -> str:
        state = self.state.name if self.state is not None else "None"
        return f"{type(self).__name__}({self.name!r}, {state})"


class AnimatedWindow(UIWindow):
    """Window whose open and close run as async commands with timed animations.

    Opening waits until the window is IDLE, switches to OPENING, plays the
    open animation and only then switches to OPENED; closing mirrors it.
    """

    def __init__(
        self,
        name: str,
        registry: WindowRegistry,
        open_ticks: int = 1,
        close_ticks: int = 1,
        event_manager: Optional["EventManager"] = None,
        clock: Optional[TickSource] = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.open_ticks = open_ticks
        self.close_ticks = close_ticks
        super().__init__(name, registry, event_manager, clock, history_limit)

    def define_commands(self) -> None:
        self.commands.define_async_command("open", False, self._open_routine)
        self.commands.define_async_command("close", False, self._close_routine)

    def _open_routine(self) -> Iterator[None]:
        yield from wait_until(lambda: self.state is WindowState.IDLE)
        self.fsm.try_switch_to(WindowState.OPENING)
        yield from wait_ticks(self.open_ticks)
        self.fsm.try_switch_to(WindowState.OPENED)

    def _close_routine(self) -> Iterator[None]:
        yield from wait_until(lambda: self.state is WindowState.OPENED)
        self.fsm.try_switch_to(WindowState.CLOSING)
        yield from wait_ticks(self.close_ticks)
        self.fsm.try_switch_to(WindowState.CLOSED)

    # The routines drive OPENING and CLOSING; the states only wait

    def _update_opening(self) -> None:
        pass

    def _update_closing(self) -> None:
        pass


class LoadingWindow(AnimatedWindow):
    """Shown while the battleground is being loaded."""


class StartWindow(AnimatedWindow):
    """Idle-screen window with a start button."""

    def __init__(self, name: str, registry: WindowRegistry, on_start: Callable[[], None], **kwargs):
        self.on_start = on_start
        super().__init__(name, registry, **kwargs)

    def press_start(self) -> bool:
        """Press the start button; only an opened window reacts.

        Returns:
            True if the start callback ran
        """
        if self.state is not WindowState.OPENED:
            return False
        self.on_start()
        return True


class HudWindow(UIWindow):
    """Battle HUD keeping one hp bar per unit.

    The HUD is the readiness gate for spawning units: a unit may leave
    SPAWNING once the HUD is opened and has defined its hp bar.
    """

    def __init__(
        self,
        name: str,
        registry: WindowRegistry,
        battleground: "Battleground",
        event_manager: Optional["EventManager"] = None,
        clock: Optional[TickSource] = None,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.battleground = battleground
        self.hp_bars: dict[int, float] = {}
        super().__init__(name, registry, event_manager, clock, history_limit)

    def define_commands(self) -> None:
        self.commands.define_async_command("open", False, self._open_routine)
        self.commands.define_async_command("close", False, self._close_routine)

    def _open_routine(self) -> Iterator[None]:
        yield from wait_until(lambda: self.state is WindowState.IDLE)
        self.fsm.try_switch_to(WindowState.OPENED)

    def _close_routine(self) -> Iterator[None]:
        yield from wait_until(lambda: self.state is WindowState.OPENED)
        self.fsm.try_switch_to(WindowState.CLOSED)

    def _exit_opened(self) -> None:
        super()._exit_opened()
        self.hp_bars.clear()

    def define_hp_bar(self, unit_id: int) -> bool:
        """Create the hp bar of a unit still on the battleground.

        Returns:
            False if the unit is unknown
        """
        unit = self.battleground.get_unit(unit_id)
        if unit is None:
            return False
        self.hp_bars.setdefault(unit_id, unit.hp_percent)
        return True

    def is_unit_presentation_ready(self, unit_id: int) -> bool:
        """Readiness query used by spawning units."""
        if self.state is not WindowState.OPENED:
            return False
        if unit_id in self.hp_bars:
            return True
        return self.define_hp_bar(unit_id)

    def update_hp_bars(self) -> None:
        """Refresh every bar and drop bars of units that left the battleground."""
        for unit_id in list(self.hp_bars):
            unit = self.battleground.get_unit(unit_id)
            if unit is None:
                del self.hp_bars[unit_id]
                continue
            self.hp_bars[unit_id] = unit.hp_percent
