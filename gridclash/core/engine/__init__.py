"""Engine primitives shared by every actor in the simulation.

- state_machine.py: Named-state machine with enter/update/exit hooks
- task_manager.py: Cooperative scheduler for sync and generator-based tasks
- commands.py: Named commands executed through the scheduler
- clock.py: Fixed-step tick clock
"""

from .clock import TickClock
from .commands import (
    AsyncCommand,
    Command,
    CommandProcessor,
    SyncCommand,
    command_hash,
)
from .state_machine import StateHandlers, StateMachine
from .task_manager import (
    AsyncTask,
    CancellationToken,
    GameTask,
    GameTaskManager,
    SyncTask,
    wait_ticks,
    wait_until,
)

__all__ = [
    "TickClock",
    "AsyncCommand",
    "Command",
    "CommandProcessor",
    "SyncCommand",
    "command_hash",
    "StateHandlers",
    "StateMachine",
    "AsyncTask",
    "CancellationToken",
    "GameTask",
    "GameTaskManager",
    "SyncTask",
    "wait_ticks",
    "wait_until",
]
