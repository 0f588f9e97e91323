"""Cooperative task scheduling for tick-driven game logic.

This module implements the scheduler that sequences deferred work without
ever blocking the simulation. Work is expressed as tasks that the manager
advances once per tick.

Core Concepts:
- A synchronous task runs its action to completion when it starts
- An asynchronous task wraps a generator function; every ``yield`` is a
  suspend point and the generator is resumed once per tick
- Exactly one non-parallel task executes at a time; parallel tasks start as
  soon as they are queued and run alongside it
- Cancellation is cooperative: stopping a task cancels its token and closes
  its generator so ``finally`` blocks can clean up
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Iterator, Optional

from ..data.game_enums import TaskPriority

AsyncAction = Callable[[], Optional[Iterator[Any]]]
SyncAction = Callable[[], None]
FinishedCallback = Callable[[bool], None]


class CancellationToken:
    """Flag shared between a task and whoever may want to cancel it."""

    def __init__(self):
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


def wait_until(predicate: Callable[[], bool]) -> Iterator[None]:
    """Suspend once per tick until ``predicate`` holds."""
    while not predicate():
        yield


def wait_ticks(count: int) -> Iterator[None]:
    """Suspend for ``count`` ticks."""
    for _ in range(count):
        yield


class GameTask(ABC):
    """Base class for scheduled work.

    Finish listeners receive ``True`` when the task was stopped and
    ``False`` when it ran to completion.
    """

    def __init__(
        self,
        priority: TaskPriority = TaskPriority.DEFAULT,
        token: Optional[CancellationToken] = None,
        is_parallel: bool = False,
    ):
        self.priority = priority
        self.token = token if token is not None else CancellationToken()
        self.is_parallel = is_parallel
        self._listeners: list[FinishedCallback] = []
        self._started = False
        self._completed = False
        self._stopped = False

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    @property
    def is_finished(self) -> bool:
        return self._completed or self._stopped

    def subscribe(self, on_finished: FinishedCallback) -> None:
        self._listeners.append(on_finished)

    def unsubscribe(self, on_finished: FinishedCallback) -> None:
        if on_finished in self._listeners:
            self._listeners.remove(on_finished)

    def start(self) -> None:
        """Begin execution. A task cancelled before it starts is stopped instead."""
        if self._started:
            return
        self._started = True
        if self.token.is_cancelled:
            self.stop()
            return
        self._run()

    def stop(self) -> None:
        """Cancel the token, release resources and notify listeners once."""
        if self.is_finished:
            return
        self.token.cancel()
        self._stopped = True
        self._release()
        self._notify(True)

    @abstractmethod
    def step(self) -> None:
        """Advance the task by one tick."""

    @abstractmethod
    def _run(self) -> None:
        """Run up to the first suspend point."""

    def _release(self) -> None:
        """Hook for subclasses holding resources that must be closed on stop."""

    def _complete(self) -> None:
        self._completed = True
        self._notify(False)

    def _notify(self, canceled: bool) -> None:
        for listener in list(self._listeners):
            listener(canceled)


class SyncTask(GameTask):
    """Runs a plain callable to completion as soon as it starts."""

    def __init__(
        self,
        action: SyncAction,
        priority: TaskPriority = TaskPriority.DEFAULT,
        token: Optional[CancellationToken] = None,
    ):
        super().__init__(priority, token, is_parallel=False)
        self.action = action

    def _run(self) -> None:
        self.action()
        if not self.is_finished:
            self._complete()

    def step(self) -> None:
        pass


class AsyncTask(GameTask):
    """Drives a generator function one suspend point per tick."""

    def __init__(
        self,
        action: AsyncAction,
        priority: TaskPriority = TaskPriority.DEFAULT,
        token: Optional[CancellationToken] = None,
        is_parallel: bool = False,
    ):
        super().__init__(priority, token, is_parallel)
        self.action = action
        self._routine: Optional[Iterator[Any]] = None
        self._advancing = False

    def _run(self) -> None:
        self._routine = self.action()
        if self._routine is None:
            self._complete()
            return
        self._advance()

    def step(self) -> None:
        if not self._started or self.is_finished:
            return
        if self.token.is_cancelled:
            self.stop()
            return
        self._advance()

    def _advance(self) -> None:
        assert self._routine is not None
        self._advancing = True
        try:
            next(self._routine)
        except StopIteration:
            self._routine = None
        finally:
            self._advancing = False

        if self._stopped:
            # Stopped from inside its own body; close now that it has suspended
            self._release()
        elif self._routine is None:
            self._complete()

    def _release(self) -> None:
        if self._routine is None or self._advancing:
            return
        routine, self._routine = self._routine, None
        close = getattr(routine, "close", None)
        if close is not None:
            close()


class GameTaskManager:
    """Cooperative scheduler executing one foreground task at a time.

    Key Features:
    - DEFAULT tasks queue FIFO, HIGH tasks jump to the front of the queue
    - INTERRUPT tasks jump to the front and stop a running non-interrupt task
    - Parallel tasks start on the next tick alongside the foreground task,
      without a concurrency limit
    """

    def __init__(self):
        self._current: Optional[GameTask] = None
        self._tasks: list[GameTask] = []
        self._queued_parallel: deque[GameTask] = deque()
        self._running_parallel: list[GameTask] = []

    @property
    def current_task(self) -> Optional[GameTask]:
        return self._current

    @property
    def is_busy(self) -> bool:
        return self._current is not None and not self._current.is_finished

    @property
    def pending_count(self) -> int:
        return len(self._tasks) + len(self._queued_parallel)

    @property
    def running_parallel_count(self) -> int:
        return len(self._running_parallel)

    def schedule_sync_task(
        self,
        action: SyncAction,
        on_finished: Optional[FinishedCallback] = None,
        priority: TaskPriority = TaskPriority.DEFAULT,
        token: Optional[CancellationToken] = None,
    ) -> SyncTask:
        """Queue a synchronous action.

        Args:
            action: Callable run to completion when the task starts
            on_finished: Called with True if stopped, False if completed
            priority: Scheduling class
            token: Optional shared cancellation token

        Returns:
            The queued task
        """
        task = SyncTask(action, priority, token)
        if on_finished is not None:
            task.subscribe(on_finished)
        self.add_task(task)
        return task

    def schedule_async_task(
        self,
        action: AsyncAction,
        on_finished: Optional[FinishedCallback] = None,
        priority: TaskPriority = TaskPriority.DEFAULT,
        token: Optional[CancellationToken] = None,
        is_parallel: bool = False,
    ) -> AsyncTask:
        """Queue a generator-based action.

        Args:
            action: Generator function; each yield suspends until the next tick
            on_finished: Called with True if stopped, False if completed
            priority: Scheduling class (ignored for parallel tasks)
            token: Optional shared cancellation token
            is_parallel: Run alongside the foreground task instead of queueing

        Returns:
            The queued task
        """
        task = AsyncTask(action, priority, token, is_parallel)
        if on_finished is not None:
            task.subscribe(on_finished)
        self.add_task(task)
        return task

    def add_task(self, task: GameTask) -> None:
        if task.is_parallel:
            self._queued_parallel.append(task)
            return

        if task.priority is TaskPriority.DEFAULT:
            self._tasks.append(task)
        elif task.priority is TaskPriority.HIGH:
            self._tasks.insert(0, task)
        elif task.priority is TaskPriority.INTERRUPT:
            current = self._current
            if self.is_busy and current is not None and current.priority is not TaskPriority.INTERRUPT:
                self._stop_current()
            self._tasks.insert(0, task)

    def tick(self) -> None:
        """Advance parallel work, then the foreground task, then start the next one."""
        self._update_parallel()
        self._run_parallel()

        if self.is_busy and self._current is not None:
            self._current.step()
        if self.is_busy:
            return

        self._run_next()

    def clear(self) -> None:
        """Stop every task, running or queued, and empty the queues."""
        self._stop_current()
        for task in self._tasks:
            task.stop()
        for task in self._queued_parallel:
            task.stop()
        for task in self._running_parallel:
            task.stop()

        self._tasks.clear()
        self._queued_parallel.clear()
        self._running_parallel.clear()

    def _stop_current(self) -> None:
        if self._current is not None:
            self._current.stop()
            self._current = None

    def _run_next(self) -> None:
        self._current = self._tasks.pop(0) if self._tasks else None
        if self._current is not None:
            self._current.start()

    def _run_parallel(self) -> None:
        while self._queued_parallel:
            task = self._queued_parallel.popleft()
            task.start()
            if not task.is_finished:
                self._running_parallel.append(task)

    def _update_parallel(self) -> None:
        for task in list(self._running_parallel):
            task.step()
        self._running_parallel = [task for task in self._running_parallel if not task.is_finished]
