"""
Test script for the session controller

Drives PuzzleSession with a ManualScheduler so timers run on a virtual
clock:
1. Scheduler ordering and cancellation
2. Win detection and the solved signal
3. Score decay and autosave
4. Hint eligibility, reveal and cooldown
5. Restart invalidating pending callbacks

Usage:
    python test_session.py
"""

import random
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.puzzle import ScoringRules
from src.scheduler import ManualScheduler
from src.session import HintMark, PuzzleSession, SessionState
from puzzle_fixtures import fixed_puzzle, FIXED_SOLUTION_MOVES


def _banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(f"TEST: {title}")
    print("=" * 60)


def _session(puzzle=None, rules="classic", on_save=None):
    """Session on a virtual clock playing the fixed puzzle."""
    scheduler = ManualScheduler()
    session = PuzzleSession(scheduler, rules=rules, on_save=on_save)
    session.load_puzzle(puzzle or fixed_puzzle())
    return session, scheduler


def test_manual_scheduler():
    """Tasks run in due order; cancelled tasks never run."""
    _banner("ManualScheduler")

    scheduler = ManualScheduler()
    calls = []

    scheduler.call_later(2.0, lambda: calls.append("b"))
    scheduler.call_later(1.0, lambda: calls.append("a"))
    cancelled = scheduler.call_later(1.5, lambda: calls.append("x"))
    ticker = scheduler.call_every(1.0, lambda: calls.append("t"))
    cancelled.cancel()

    assert scheduler.pending == 3
    ran = scheduler.advance(2.0)
    assert calls == ["a", "t", "b", "t"], calls
    assert ran == 4
    assert scheduler.now() == 2.0

    ticker.cancel()
    assert scheduler.advance(10.0) == 0
    assert scheduler.now() == 12.0
    assert scheduler.pending == 0

    try:
        scheduler.call_every(0, lambda: None)
    except ValueError:
        pass
    else:
        raise AssertionError("zero interval should be rejected")

    print("  [PASS] ManualScheduler tests")


def test_win_fires_once():
    """Placing the whole solution wins exactly once and freezes the score."""
    _banner("Win detection")

    idle = PuzzleSession(ManualScheduler())
    assert idle.hint_status().reason == "No game in progress"

    session, scheduler = _session()
    solved = []
    session.add_solved_listener(solved.append)

    assert session.state == SessionState.ACTIVE
    for type_id, r, c in FIXED_SOLUTION_MOVES:
        assert session.place_piece(type_id, r, c)

    assert session.state == SessionState.WON
    assert session.is_solved()
    assert solved == [200]

    status = session.hint_status()
    assert not status.available
    assert status.reason == "Puzzle solved"

    # Frozen after the win
    assert not session.remove_piece(0, 0)
    scheduler.advance(10)
    assert session.score == 200
    assert solved == [200]

    print(f"  Solved with score {session.score}")
    print("  [PASS] Win detection tests")


def test_matching_sums_with_gap_is_not_a_win():
    """Every line sum matching is not enough while a cell is empty."""
    _banner("Win requires a full board")

    puzzle = fixed_puzzle(h_faces=(0, 0))
    session, _ = _session(puzzle)

    for type_id, r, c in FIXED_SOLUTION_MOVES[:-1]:
        assert session.place_piece(type_id, r, c)

    board = session.board
    clues = puzzle.clues
    assert all(board.row_sum(r) == clues.row_sums[r] for r in range(4))
    assert all(board.col_sum(c) == clues.col_sums[c] for c in range(4))
    assert not board.is_full()
    assert not session.is_solved()
    assert session.state == SessionState.ACTIVE

    type_id, r, c = FIXED_SOLUTION_MOVES[-1]
    assert session.place_piece(type_id, r, c)
    assert session.state == SessionState.WON

    print("  [PASS] Full board tests")


def test_generated_puzzle_can_be_won():
    """Placing the tiling's own pieces solves a generated puzzle."""
    _banner("Generated puzzle solution")

    scheduler = ManualScheduler()
    session = PuzzleSession(scheduler, "medium", rng=random.Random(21))
    puzzle = session.start_new_game()
    assert puzzle.grid_size == 8
    assert session.board.obstacle_count == puzzle.obstacle_cells

    view = session.view()
    counts = puzzle.piece_type_counts()
    assert [entry.remaining for entry in view.palette] == [
        counts[t.id] for t in puzzle.catalog
    ]

    for piece in puzzle.tiling.pieces:
        r, c = piece.anchor
        cell = puzzle.solution_cell(r, c)
        if not cell.obstacle:
            assert session.place_piece(cell.piece_type_id, r, c)

    assert session.state == SessionState.WON
    assert all(entry.remaining == 0 for entry in session.view().palette)

    puzzle = session.start_new_game("hard")
    assert puzzle.grid_size == 10
    assert session.difficulty == "hard"
    assert session.state == SessionState.ACTIVE

    print("  [PASS] Generated puzzle tests")


def test_placement_rejections():
    """Unknown types and blocked cells leave the session unchanged."""
    _banner("Placement rejections")

    session, _ = _session()
    views = []
    session.add_listener(views.append)

    assert not session.place_piece(9, 0, 0)
    assert not session.place_piece(1, 0, 3)  # off the right edge
    assert not session.remove_piece(0, 0)
    assert views == []

    assert session.place_piece(0, 0, 0)
    assert len(views) == 1
    assert views[0].cells[1][0].value == 2
    assert views[0].fill_ratio == 2 / 16

    assert not session.place_piece(1, 1, 0)  # overlaps the tail
    assert session.remove_piece(1, 0)
    assert session.board.count_cells() == 0
    assert len(views) == 2

    print("  [PASS] Placement rejection tests")


def test_score_decay():
    """Score drops once per tick, floors at zero and autosaves."""
    _banner("Score decay")

    saves = []
    session, scheduler = _session(on_save=saves.append)
    assert len(saves) == 1

    scheduler.advance(4)
    assert session.score == 196
    assert len(saves) == 1

    scheduler.advance(1)
    assert session.score == 195
    assert len(saves) == 2
    assert saves[-1]["score"] == 195

    tiny = ScoringRules("tiny", starting_score=3)
    session, scheduler = _session(rules=tiny)
    scheduler.advance(10)
    assert session.score == 0

    print("  [PASS] Score decay tests")


def test_hint_flow():
    """Gate, penalty, marks, locked input, resolution and cooldown."""
    _banner("Hint flow")

    session, scheduler = _session()

    status = session.hint_status()
    assert not status.available
    assert status.reason == "Fill more than 50% to use hint (0%)"

    for type_id, r, c in FIXED_SOLUTION_MOVES[:4]:
        session.place_piece(type_id, r, c)
    assert session.hint_status().reason == "Fill more than 50% to use hint (50%)"

    # Wrong vertical over solution cells holding 0, and a correct horizontal
    assert session.place_piece(0, 2, 0)
    assert session.place_piece(1, 2, 2)
    palette = session.view().palette
    assert palette[0].remaining == 0

    status = session.hint_status()
    assert status.available
    assert status.reason == "Use hint (-40 points)"

    assert session.use_hint()
    assert session.score == 160
    assert session.input_locked
    assert session.last_hint_time == 0.0

    marks = session.hint_marks
    assert marks[(2, 0)] == HintMark.INCORRECT
    assert marks[(3, 0)] == HintMark.INCORRECT
    assert marks[(2, 3)] == HintMark.CORRECT
    assert sum(1 for m in marks.values() if m == HintMark.CORRECT) == 10

    assert session.hint_status().reason == "Hint in progress"
    assert not session.use_hint()
    assert not session.place_piece(1, 3, 2)
    assert not session.remove_piece(0, 0)

    scheduler.advance(2)
    assert session.input_locked
    scheduler.advance(1)
    assert not session.input_locked
    assert session.hint_marks == {}
    assert session.board.get_cell(2, 0) is None
    assert session.board.get_cell(3, 0) is None
    assert session.board.get_cell(2, 2).value == 0
    assert session.score == 157

    assert session.hint_status().reason == "On cooldown"
    scheduler.advance(26)
    assert session.hint_status().reason == "On cooldown"
    scheduler.advance(1)
    assert session.hint_status().available

    print("  [PASS] Hint flow tests")


def test_hint_penalty_floors_at_zero():
    """A hint never takes the score below zero."""
    _banner("Hint penalty floor")

    rules = ScoringRules("poor", starting_score=10)
    session, _ = _session(rules=rules)
    for type_id, r, c in FIXED_SOLUTION_MOVES[:5]:
        session.place_piece(type_id, r, c)

    assert session.use_hint()
    assert session.score == 0

    print("  [PASS] Hint penalty floor tests")


def test_restart_drops_pending_hint():
    """Restart resets the level and cancels every pending callback."""
    _banner("Restart")

    session, scheduler = _session()
    for type_id, r, c in FIXED_SOLUTION_MOVES[:5]:
        session.place_piece(type_id, r, c)
    scheduler.advance(2)
    assert session.use_hint()
    generation = session.generation

    session.restart_level()
    assert session.generation == generation + 1
    assert session.board.count_cells() == 0
    assert session.score == 200
    assert not session.input_locked
    assert session.last_hint_time is None
    assert session.hint_marks == {}
    assert scheduler.pending == 1  # decay only

    assert session.place_piece(0, 2, 0)
    scheduler.advance(5)
    assert session.board.get_cell(2, 0) is not None
    assert session.score == 195

    session.stop()
    assert scheduler.pending == 0
    scheduler.advance(5)
    assert session.score == 195

    print("  [PASS] Restart tests")


def main():
    """Run all tests."""
    print("\n" + "#" * 60)
    print("# SESSION TESTS")
    print("#" * 60)

    tests = [
        test_manual_scheduler,
        test_win_fires_once,
        test_matching_sums_with_gap_is_not_a_win,
        test_generated_puzzle_can_be_won,
        test_placement_rejections,
        test_score_decay,
        test_hint_flow,
        test_hint_penalty_floors_at_zero,
        test_restart_drops_pending_hint,
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
