"""Minimal named-state machine shared by units, windows and the game loop.

The machine knows nothing about legality of transitions: any state may
switch to any other state at any time, and the owning behaviour decides
when that is appropriate. The only built-in rule is the equality
short-circuit of :meth:`StateMachine.try_switch_to`.

Handlers are zero-argument callables. Behaviour code is written as state
classes whose hooks receive their owner as an explicit argument and are
bound into the machine by the owner, so states never hold a reference back
to the machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, TypeVar

StateId = TypeVar("StateId", bound=Hashable)

StateHandler = Callable[[], None]


@dataclass(frozen=True)
class StateHandlers:
    """The enter/update/exit hooks registered for one state."""
    on_enter: Optional[StateHandler] = None
    on_update: Optional[StateHandler] = None
    on_exit: Optional[StateHandler] = None


class StateMachine(Generic[StateId]):
    """Mapping of state id -> handlers with a single current state.

    The machine starts with no current state; no callbacks fire until the
    first explicit switch.
    """

    def __init__(self, name: str = "fsm"):
        self.name = name
        self._states: dict[StateId, StateHandlers] = {}
        self._current: Optional[StateId] = None

    @property
    def current_state(self) -> Optional[StateId]:
        """The active state id, or None before the first switch."""
        return self._current

    def has_state(self, state_id: StateId) -> bool:
        return state_id in self._states

    def add(
        self,
        state_id: StateId,
        on_enter: Optional[StateHandler] = None,
        on_update: Optional[StateHandler] = None,
        on_exit: Optional[StateHandler] = None,
    ) -> None:
        """Register a state. Each id may be registered once.

        Raises:
            ValueError: If the state id is already registered
        """
        if state_id in self._states:
            raise ValueError(f"{self.name}: state {state_id!r} is already registered")
        self._states[state_id] = StateHandlers(on_enter, on_update, on_exit)

    def switch_to(self, state_id: StateId) -> None:
        """Exit the current state (if any) and enter ``state_id``.

        Always fires exit-then-enter, even when switching to the state that
        is already current.

        Raises:
            KeyError: If the state id was never registered
        """
        if state_id not in self._states:
            raise KeyError(f"{self.name}: unknown state {state_id!r}")

        if self._current is not None:
            current = self._states[self._current]
            if current.on_exit is not None:
                current.on_exit()

        # Set before entering so transitions requested from on_enter see the new state
        self._current = state_id

        handlers = self._states[state_id]
        if handlers.on_enter is not None:
            handlers.on_enter()

    def try_switch_to(self, state_id: StateId) -> bool:
        """Switch unless ``state_id`` is already current.

        Returns:
            False (and fires nothing) if already in that state, True otherwise
        """
        if self._current == state_id:
            return False
        self.switch_to(state_id)
        return True

    def update(self) -> None:
        """Run the current state's update hook once."""
        if self._current is None:
            return
        handlers = self._states[self._current]
        if handlers.on_update is not None:
            handlers.on_update()

    def shutdown(self) -> None:
        """Run the exit hook of the current state and clear it."""
        if self._current is None:
            return
        handlers = self._states[self._current]
        self._current = None
        if handlers.on_exit is not None:
            handlers.on_exit()
