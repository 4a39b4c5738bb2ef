"""
Qt Bridge Module for Domino Cross

Connects a PuzzleSession to a Qt event loop:
    QtScheduler     Scheduler backed by QTimer, wall-clock now()
    SessionSignals  Re-emits session changes as Qt signals

Both must be created in the thread that runs the Qt event loop.
"""

import logging
import time
from typing import Callable, Set

from PyQt5.QtCore import QObject, QTimer, pyqtSignal

from src.scheduler import Scheduler, TaskHandle
from src.session import PuzzleSession

logger = logging.getLogger(__name__)


class QtScheduler(Scheduler):
    """
    Scheduler that runs callbacks from QTimer timeouts.

    Timers are kept referenced until they finish or are cancelled so Qt
    does not garbage collect them early.
    """

    def __init__(self):
        self._timers: Set[QTimer] = set()

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "") -> TaskHandle:
        return self._start(delay, callback, name, single_shot=True)

    def call_every(self, interval: float, callback: Callable[[], None], name: str = "") -> TaskHandle:
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        return self._start(interval, callback, name, single_shot=False)

    @property
    def active_timers(self) -> int:
        """Number of timers still running."""
        return len(self._timers)

    def _start(self, seconds: float, callback: Callable[[], None],
               name: str, single_shot: bool) -> TaskHandle:
        handle = TaskHandle(name)
        timer = QTimer()
        timer.setSingleShot(single_shot)

        def on_timeout():
            if handle.cancelled:
                return
            if single_shot:
                self._release(timer)
            callback()

        def on_cancel():
            timer.stop()
            self._release(timer)

        timer.timeout.connect(on_timeout)
        handle._on_cancel = on_cancel
        self._timers.add(timer)
        timer.start(max(0, int(seconds * 1000)))

        logger.debug(f"Timer '{name}' started: {seconds:.2f}s, single_shot={single_shot}")
        return handle

    def _release(self, timer: QTimer) -> None:
        """Forget a timer that has finished or been cancelled."""
        self._timers.discard(timer)


class SessionSignals(QObject):
    """
    Qt signal adapter for a PuzzleSession.

    Signals:
        state_changed(object): SessionView after every change
        solved(int): Final score when the puzzle is solved
    """

    state_changed = pyqtSignal(object)
    solved = pyqtSignal(int)

    def attach(self, session: PuzzleSession) -> None:
        """Forward the session's listeners to this object's signals."""
        session.add_listener(self.state_changed.emit)
        session.add_solved_listener(self.solved.emit)
