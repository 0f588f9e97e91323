"""Named commands executed through the cooperative task manager.

A command wraps a sync action or a generator-based async action under a
unique name. The processor keeps the definitions, queues executions and
feeds at most one newly requested command into the task manager per tick.
"""

from __future__ import annotations

import zlib
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Iterator, Optional

from ..data.game_enums import CommandStatus, TaskPriority
from .task_manager import CancellationToken, GameTaskManager

HISTORY_LIMIT = 20

CancelHook = Callable[[], None]


def command_hash(name: str) -> int:
    """Stable 32-bit identity of a command name."""
    return zlib.crc32(name.encode("utf-8")) & 0xFFFFFFFF


class Command(ABC):
    """Base command: status tracking, cancellation hook and a fresh token per run."""

    def __init__(
        self,
        name: str,
        task_manager: GameTaskManager,
        on_cancel: Optional[CancelHook] = None,
        priority: TaskPriority = TaskPriority.DEFAULT,
    ):
        self.name = name
        self.name_hash = command_hash(name)
        self.priority = priority
        self.on_cancel = on_cancel
        self.token = CancellationToken()
        self._task_manager = task_manager
        self._status = CommandStatus.NONE

    @property
    def status(self) -> CommandStatus:
        return self._status

    @property
    def is_pending(self) -> bool:
        return self._status in (CommandStatus.QUEUED, CommandStatus.EXECUTING)

    def mark_requested(self) -> None:
        """Clear a finished status so the command can be queued again."""
        if not self.is_pending:
            self._status = CommandStatus.NONE

    def schedule_execute(self) -> None:
        """Hand the command to the task manager with a new cancellation token."""
        self.token = CancellationToken()
        self._status = CommandStatus.QUEUED
        self._schedule()

    def cancel(self) -> None:
        """Request cancellation.

        A scheduled command is stopped cooperatively by its task; one that was
        never handed to the task manager is marked canceled immediately.
        """
        if self._status in (CommandStatus.COMPLETED, CommandStatus.CANCELED):
            return
        if self.is_pending:
            self.token.cancel()
        else:
            self._mark_canceled()

    def _on_finished(self, canceled: bool) -> None:
        if canceled:
            self._mark_canceled()
        else:
            self._status = CommandStatus.COMPLETED

    def _mark_canceled(self) -> None:
        self._status = CommandStatus.CANCELED
        if self.on_cancel is not None:
            self.on_cancel()

    @abstractmethod
    def _schedule(self) -> None:
        """Submit the work to the task manager."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self._status.name})"


class SyncCommand(Command):
    """Command whose action completes within the tick it starts."""

    def __init__(
        self,
        name: str,
        task_manager: GameTaskManager,
        on_execute: Callable[[], None],
        on_cancel: Optional[CancelHook] = None,
        priority: TaskPriority = TaskPriority.DEFAULT,
    ):
        super().__init__(name, task_manager, on_cancel, priority)
        self.on_execute = on_execute

    def _schedule(self) -> None:
        self._task_manager.schedule_sync_task(
            self._execute, self._on_finished, self.priority, self.token
        )

    def _execute(self) -> None:
        self._status = CommandStatus.EXECUTING
        self.on_execute()


class AsyncCommand(Command):
    """Command whose action is a generator function spanning several ticks."""

    def __init__(
        self,
        name: str,
        task_manager: GameTaskManager,
        on_execute: Callable[[], Optional[Iterator[Any]]],
        is_parallel: bool = False,
        on_cancel: Optional[CancelHook] = None,
        priority: TaskPriority = TaskPriority.DEFAULT,
    ):
        super().__init__(name, task_manager, on_cancel, priority)
        self.on_execute = on_execute
        self.is_parallel = is_parallel

    def _schedule(self) -> None:
        self._task_manager.schedule_async_task(
            self._execute, self._on_finished, self.priority, self.token, self.is_parallel
        )

    def _execute(self) -> Iterator[Any]:
        self._status = CommandStatus.EXECUTING
        routine = self.on_execute()
        if routine is not None:
            yield from routine


class CommandProcessor:
    """Registry and execution queue for named commands.

    Each call to :meth:`tick` advances the owned task manager, retires
    finished commands and schedules at most one newly requested command.
    """

    def __init__(self, name: str = "commands", history_limit: int = HISTORY_LIMIT):
        self.name = name
        self.task_manager = GameTaskManager()
        self._defined: dict[int, Command] = {}
        self._pending: deque[Command] = deque()
        self._executing: list[Command] = []
        self._history: deque[Command] = deque(maxlen=history_limit)

    @property
    def history(self) -> tuple[Command, ...]:
        """Completed commands, oldest first."""
        return tuple(self._history)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_idle(self) -> bool:
        return not self._pending and not self._executing and not self.task_manager.is_busy

    def define_sync_command(
        self,
        name: str,
        on_execute: Callable[[], None],
        on_cancel: Optional[CancelHook] = None,
        priority: TaskPriority = TaskPriority.DEFAULT,
    ) -> SyncCommand:
        """Register a synchronous command.

        Raises:
            ValueError: If the name hash is already taken
        """
        command = SyncCommand(name, self.task_manager, on_execute, on_cancel, priority)
        self._define(command)
        return command

    def define_async_command(
        self,
        name: str,
        is_parallel: bool,
        on_execute: Callable[[], Optional[Iterator[Any]]],
        on_cancel: Optional[CancelHook] = None,
        priority: TaskPriority = TaskPriority.DEFAULT,
    ) -> AsyncCommand:
        """Register a generator-based command.

        Raises:
            ValueError: If the name hash is already taken
        """
        command = AsyncCommand(name, self.task_manager, on_execute, is_parallel, on_cancel, priority)
        self._define(command)
        return command

    def _define(self, command: Command) -> None:
        existing = self._defined.get(command.name_hash)
        if existing is not None:
            raise ValueError(
                f"{self.name}: command {command.name!r} collides with {existing.name!r}"
            )
        self._defined[command.name_hash] = command

    def find_command(self, name: str) -> Optional[Command]:
        return self._defined.get(command_hash(name))

    def command_exists(self, name: str) -> bool:
        return command_hash(name) in self._defined

    def execute_command(self, name: str) -> Command:
        """Queue a defined command for execution.

        Raises:
            KeyError: If no command with that name was defined
        """
        command = self.find_command(name)
        if command is None:
            raise KeyError(f"{self.name}: unknown command {name!r}")
        command.mark_requested()
        self._pending.append(command)
        return command

    def tick(self) -> None:
        self.task_manager.tick()
        self._retire_finished()

        while self._pending:
            command = self._pending.popleft()
            if command.status is CommandStatus.CANCELED:
                continue
            command.schedule_execute()
            self._executing.append(command)
            break

    def _retire_finished(self) -> None:
        still_running = []
        for command in self._executing:
            if command.status is CommandStatus.COMPLETED:
                self._history.append(command)
            elif command.status is not CommandStatus.CANCELED:
                still_running.append(command)
        self._executing = still_running

    def destroy(self) -> None:
        """Stop all running and queued work and forget pending requests."""
        self.task_manager.clear()
        self._pending.clear()
        self._executing.clear()
