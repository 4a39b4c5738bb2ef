"""
Scheduler Module - Cancellable deferred and periodic tasks.

The session never touches timers directly. It asks a Scheduler for
one-shot and repeating callbacks and keeps the returned TaskHandle so the
callback can be cancelled when a game is restarted.

Two implementations exist:
    ManualScheduler   virtual clock advanced explicitly (tests, headless)
    QtScheduler       QTimer-backed, see src.qt_bridge
"""

import heapq
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class TaskHandle:
    """
    Handle for a scheduled callback.

    Cancellation is a flag checked right before the callback runs, so a
    cancelled task never fires even if its timer already expired.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._cancel_flag = threading.Event()
        self._on_cancel: Optional[Callable[[], None]] = None

    def cancel(self) -> None:
        """Prevent the callback from running again."""
        if self._cancel_flag.is_set():
            return
        self._cancel_flag.set()
        if self._on_cancel is not None:
            self._on_cancel()

    @property
    def cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._cancel_flag.is_set()


class Scheduler(ABC):
    """Abstract time source and task scheduler."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None], name: str = "") -> TaskHandle:
        """
        Run a callback once after a delay.

        Args:
            delay: Seconds to wait
            callback: Function taking no arguments
            name: Label for logging

        Returns:
            TaskHandle for cancellation
        """
        pass

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None], name: str = "") -> TaskHandle:
        """
        Run a callback repeatedly, first after one interval.

        Args:
            interval: Seconds between runs
            callback: Function taking no arguments
            name: Label for logging

        Returns:
            TaskHandle for cancellation
        """
        pass


@dataclass(order=True)
class _ScheduledTask:
    """Heap entry for ManualScheduler."""
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    handle: TaskHandle = field(compare=False)
    interval: Optional[float] = field(default=None, compare=False)


class ManualScheduler(Scheduler):
    """
    Scheduler driven by an explicit virtual clock.

    Nothing runs until advance() is called; due tasks then run in time
    order with the clock set to each task's due time.

    Example:
        scheduler = ManualScheduler()
        scheduler.call_later(3.0, resolve)
        scheduler.advance(3.0)  # resolve() runs here
    """

    def __init__(self, start_time: float = 0.0):
        """
        Initialize the virtual clock.

        Args:
            start_time: Initial value of now()
        """
        self._now = start_time
        self._queue: List[_ScheduledTask] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "") -> TaskHandle:
        handle = TaskHandle(name)
        self._push(self._now + delay, callback, handle, None)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None], name: str = "") -> TaskHandle:
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        handle = TaskHandle(name)
        self._push(self._now + interval, callback, handle, interval)
        return handle

    def _push(self, due: float, callback: Callable[[], None],
              handle: TaskHandle, interval: Optional[float]) -> None:
        heapq.heappush(
            self._queue,
            _ScheduledTask(due, next(self._counter), callback, handle, interval),
        )

    @property
    def pending(self) -> int:
        """Number of tasks waiting to run (cancelled ones excluded)."""
        return sum(1 for task in self._queue if not task.handle.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every task that falls due.

        Args:
            seconds: Amount of virtual time to pass

        Returns:
            Number of callbacks run
        """
        target = self._now + seconds
        ran = 0

        while self._queue and self._queue[0].due <= target:
            task = heapq.heappop(self._queue)
            if task.handle.cancelled:
                continue

            self._now = task.due
            task.callback()
            ran += 1

            if task.interval is not None and not task.handle.cancelled:
                self._push(task.due + task.interval, task.callback, task.handle, task.interval)

        self._now = target
        return ran
