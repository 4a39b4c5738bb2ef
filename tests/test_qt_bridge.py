"""
Test script for the Qt bridge

Runs QTimer-backed scheduling and the session signal adapter on a
QCoreApplication, pumping events by hand.

Usage:
    python test_qt_bridge.py
"""

import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from PyQt5.QtCore import QCoreApplication

from src.puzzle import ScoringRules
from src.qt_bridge import QtScheduler, SessionSignals
from src.session import PuzzleSession, SessionState
from puzzle_fixtures import fixed_puzzle, FIXED_SOLUTION_MOVES


_app_instance = None


def _app() -> QCoreApplication:
    """Shared application; kept referenced for the whole run."""
    global _app_instance
    if _app_instance is None:
        _app_instance = QCoreApplication.instance() or QCoreApplication(sys.argv)
    return _app_instance


def _pump(condition, timeout: float = 2.0) -> bool:
    """Process Qt events until condition() holds or the timeout passes."""
    app = _app()
    deadline = time.time() + timeout
    while time.time() < deadline:
        app.processEvents()
        if condition():
            return True
        time.sleep(0.005)
    return condition()


def _banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(f"TEST: {title}")
    print("=" * 60)


def test_qt_scheduler_timers():
    """One-shot and repeating timers fire; cancelled ones do not."""
    _banner("QtScheduler")
    _app()

    scheduler = QtScheduler()
    calls = []

    scheduler.call_later(0.01, lambda: calls.append("once"))
    cancelled = scheduler.call_later(0.01, lambda: calls.append("never"))
    ticker = scheduler.call_every(0.01, lambda: calls.append("tick"))
    cancelled.cancel()
    assert scheduler.active_timers == 2

    assert _pump(lambda: calls.count("tick") >= 3)
    ticker.cancel()
    assert "once" in calls
    assert "never" not in calls
    assert scheduler.active_timers == 0

    ticks = calls.count("tick")
    _pump(lambda: False, timeout=0.1)
    assert calls.count("tick") == ticks

    assert abs(scheduler.now() - time.time()) < 1.0

    print(f"  {ticks} ticks before cancel")
    print("  [PASS] QtScheduler tests")


def test_session_signals():
    """Session changes and the win are re-emitted as Qt signals."""
    _banner("SessionSignals")
    _app()

    session = PuzzleSession(QtScheduler())
    signals = SessionSignals()
    signals.attach(session)

    views = []
    solved = []
    signals.state_changed.connect(views.append)
    signals.solved.connect(solved.append)

    session.load_puzzle(fixed_puzzle())
    assert len(views) == 1

    for type_id, r, c in FIXED_SOLUTION_MOVES:
        session.place_piece(type_id, r, c)

    assert session.state == SessionState.WON
    assert solved == [session.score]
    assert views[-1].state == SessionState.WON
    session.stop()

    print("  [PASS] SessionSignals tests")


def test_session_decay_on_qt_timer():
    """A short tick interval decays the score through real timers."""
    _banner("Decay on Qt timers")
    _app()

    rules = ScoringRules("fast", tick_interval=0.01)
    session = PuzzleSession(QtScheduler(), rules=rules)
    session.load_puzzle(fixed_puzzle())

    assert _pump(lambda: session.score <= 197)
    session.stop()
    score = session.score
    _pump(lambda: False, timeout=0.1)
    assert session.score == score

    print("  [PASS] Decay on Qt timer tests")


def main():
    """Run all tests."""
    print("\n" + "#" * 60)
    print("# QT BRIDGE TESTS")
    print("#" * 60)

    tests = [
        test_qt_scheduler_timers,
        test_session_signals,
        test_session_decay_on_qt_timer,
    ]

    failed = 0
    for test in tests:
        try:
            test()
        except AssertionError as e:
            print(f"  [FAIL] {test.__name__}: {e}")
            failed += 1

    print()
    if failed == 0:
        print("All tests PASSED!")
        return 0
    print(f"{failed} tests FAILED!")
    return 1


if __name__ == "__main__":
    sys.exit(main())
