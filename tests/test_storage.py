"""
Test script for persistence and rendering

Covers:
1. Snapshot encode/decode through JSON
2. Rejection of corrupt snapshots
3. Save file and settings file fallbacks
4. Board image rendering

Usage:
    python test_storage.py
"""

import copy
import json
import random
import sys
import tempfile
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.puzzle import (
    CorruptSnapshotError,
    calculate_clues,
    decode_snapshot,
    try_decode_snapshot,
)
from src.puzzle.solution import solution_from_list
from src.scheduler import ManualScheduler
from src.session import PuzzleSession, SessionState
from src.settings import DEFAULT_SETTINGS, load_settings, save_settings
from src.storage import clear_game, load_game, save_game
from src.render import CELL_SIZE, CLUE_WIDTH, MARGIN, render_board, save_board_image
from puzzle_fixtures import fixed_puzzle, FIXED_SOLUTION_MOVES


def _banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(f"TEST: {title}")
    print("=" * 60)


def _played_session(difficulty: str, seed: int, moves: int = 3) -> PuzzleSession:
    """Generated session with a few solution pieces placed."""
    session = PuzzleSession(ManualScheduler(), difficulty, rng=random.Random(seed))
    puzzle = session.start_new_game()

    placed = 0
    for piece in puzzle.tiling.pieces:
        if placed == moves:
            break
        r, c = piece.anchor
        cell = puzzle.solution_cell(r, c)
        if not cell.obstacle:
            session.place_piece(cell.piece_type_id, r, c)
            placed += 1
    return session


def _snapshot(difficulty: str = "easy", seed: int = 1) -> dict:
    """JSON round-tripped snapshot of a played session."""
    session = _played_session(difficulty, seed)
    return json.loads(json.dumps(session.to_snapshot()))


def test_snapshot_round_trip():
    """Decoding an encoded session restores puzzle, board and score."""
    _banner("Snapshot round trip")

    for difficulty in ("easy", "medium", "hard"):
        session = _played_session(difficulty, seed=7)
        session.scheduler.advance(12)
        data = json.loads(json.dumps(session.to_snapshot()))

        decoded = decode_snapshot(data)
        assert decoded.puzzle == session.puzzle
        assert decoded.board == session.board
        assert decoded.score == session.score == 188
        assert decoded.last_hint_time is None

        restored = PuzzleSession.from_snapshot(data, ManualScheduler())
        assert restored.state == SessionState.ACTIVE
        assert restored.difficulty == difficulty
        assert restored.board == session.board
        assert restored.score == 188
        print(f"  {difficulty}: {session.board.count_cells()} cells restored")

    print("  [PASS] Snapshot round trip tests")


def test_snapshot_keeps_hint_time():
    """last_hint_time survives a save so the cooldown carries over."""
    _banner("Snapshot hint time")

    scheduler = ManualScheduler(start_time=100.0)
    session = PuzzleSession(scheduler, "easy", rng=random.Random(3))
    puzzle = session.start_new_game()
    for piece in puzzle.tiling.pieces:
        r, c = piece.anchor
        cell = puzzle.solution_cell(r, c)
        if not cell.obstacle:
            session.place_piece(cell.piece_type_id, r, c)
        if session.board.fill_ratio() > 0.5:
            break
    assert session.use_hint()

    data = json.loads(json.dumps(session.to_snapshot()))
    assert data["last_hint_time"] == 100.0

    restored = PuzzleSession.from_snapshot(data, ManualScheduler(start_time=110.0))
    assert not restored.input_locked
    assert restored.hint_status().reason == "On cooldown"

    print("  [PASS] Snapshot hint time tests")


def test_won_snapshot_loads_as_won():
    """A saved solved board resumes in the won state without decay."""
    _banner("Won snapshot")

    session = PuzzleSession(ManualScheduler(), "easy", rng=random.Random(5))
    puzzle = session.start_new_game()
    for piece in puzzle.tiling.pieces:
        r, c = piece.anchor
        cell = puzzle.solution_cell(r, c)
        if not cell.obstacle:
            session.place_piece(cell.piece_type_id, r, c)
    assert session.state == SessionState.WON

    scheduler = ManualScheduler()
    restored = PuzzleSession.from_snapshot(session.to_snapshot(), scheduler)
    assert restored.state == SessionState.WON
    assert scheduler.pending == 0

    print("  [PASS] Won snapshot tests")


def test_corrupt_snapshots_rejected():
    """Every structural problem raises CorruptSnapshotError."""
    _banner("Corrupt snapshots")

    base = _snapshot()

    def corrupt(mutate):
        data = copy.deepcopy(base)
        mutate(data)
        return data

    def drop_obstacle(data):
        for row in data["board"]:
            for i, cell in enumerate(row):
                if cell is not None and cell.get("obstacle"):
                    row[i] = None
                    return

    def bump_clue(data):
        data["clues"]["row_sums"][0] += 1

    def bad_face(data):
        data["catalog"][0]["faces"][0] = 99

    def bad_shape(data):
        data["tiling"]["pieces"][0]["shape"] = "X"

    def half_piece(data):
        for r, row in enumerate(data["board"]):
            for c, cell in enumerate(row):
                if cell is not None and cell.get("role_index") == 1:
                    row[c] = None
                    return

    def free_piece_head(data):
        """Head cell of the last non-obstacle piece, never placed by _snapshot."""
        for piece in reversed(data["tiling"]["pieces"]):
            r, c = piece["anchor"]
            if not data["solution"][r][c]["obstacle"]:
                return r, c
        raise AssertionError("no free piece")

    def refresh_clues(data):
        data["clues"] = calculate_clues(solution_from_list(data["solution"])).to_dict()

    def half_obstacle_piece(data):
        r, c = free_piece_head(data)
        data["solution"][r][c].update(value=0, obstacle=True, piece_type_id=None)
        data["board"][r][c] = {"obstacle": True}
        refresh_clues(data)

    def impossible_value(data):
        r, c = free_piece_head(data)
        data["solution"][r][c]["value"] = 99
        refresh_clues(data)

    cases = {
        "not an object": [1, 2, 3],
        "missing key": corrupt(lambda d: d.pop("clues")),
        "negative score": corrupt(lambda d: d.update(score=-5)),
        "size mismatch": corrupt(lambda d: d.update(grid_size=8)),
        "unknown difficulty": corrupt(lambda d: d.update(difficulty="nightmare")),
        "obstacle removed": corrupt(drop_obstacle),
        "clue altered": corrupt(bump_clue),
        "face out of range": corrupt(bad_face),
        "unknown shape": corrupt(bad_shape),
        "half a piece": corrupt(half_piece),
        "bad hint time": corrupt(lambda d: d.update(last_hint_time="soon")),
        "piece half obstacle": corrupt(half_obstacle_piece),
        "value no piece type has": corrupt(impossible_value),
    }

    for name, data in cases.items():
        try:
            decode_snapshot(data)
        except CorruptSnapshotError:
            pass
        else:
            raise AssertionError(f"{name} should be rejected")
        assert try_decode_snapshot(data) is None
        print(f"  rejected: {name}")

    # A failed load leaves the running game alone
    session = _played_session("easy", seed=2)
    board = session.board.copy()
    try:
        session.load_snapshot(cases["clue altered"])
    except CorruptSnapshotError:
        pass
    else:
        raise AssertionError("corrupt load should raise")
    assert session.board == board

    print("  [PASS] Corrupt snapshot tests")


def test_save_file():
    """save_game/load_game/clear_game with fallbacks to None."""
    _banner("Save file")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "savegame.json"
        assert load_game(path) is None

        snapshot = _snapshot("medium", seed=4)
        save_game(snapshot, path)
        assert load_game(path) == snapshot

        path.write_text("{not json", encoding="utf-8")
        assert load_game(path) is None

        broken = copy.deepcopy(snapshot)
        broken["score"] = -1
        save_game(broken, path)
        assert load_game(path) is None

        clear_game(path)
        assert not path.exists()
        clear_game(path)

    print("  [PASS] Save file tests")


def test_session_autosaves_to_file():
    """A session wired to save_game leaves a resumable file behind."""
    _banner("Session autosave")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "savegame.json"
        session = PuzzleSession(ManualScheduler(), "easy", rng=random.Random(8),
                                on_save=lambda data: save_game(data, path))
        session.start_new_game()
        session.scheduler.advance(5)

        snapshot = load_game(path)
        assert snapshot is not None
        assert snapshot["score"] == 195

        restored = PuzzleSession.from_snapshot(snapshot, ManualScheduler())
        assert restored.puzzle == session.puzzle

    print("  [PASS] Session autosave tests")


def test_settings_file():
    """Unknown names and bad seeds fall back to defaults."""
    _banner("Settings file")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "config.json"
        assert load_settings(path) == DEFAULT_SETTINGS

        save_settings({"difficulty": "hard", "rules": "relaxed", "seed": 42}, path)
        assert load_settings(path) == {"difficulty": "hard", "rules": "relaxed", "seed": 42}

        path.write_text(json.dumps({"difficulty": "insane", "seed": "abc"}), encoding="utf-8")
        settings = load_settings(path)
        assert settings["difficulty"] == DEFAULT_SETTINGS["difficulty"]
        assert settings["seed"] is None

        path.write_text("[]", encoding="utf-8")
        assert load_settings(path) == DEFAULT_SETTINGS

    print("  [PASS] Settings file tests")


def test_render_board():
    """Rendered image size follows the board layout constants."""
    _banner("Board rendering")

    session = PuzzleSession(ManualScheduler())
    session.load_puzzle(fixed_puzzle())
    for type_id, r, c in FIXED_SOLUTION_MOVES[:5]:
        session.place_piece(type_id, r, c)
    assert session.place_piece(0, 2, 2)
    assert session.use_hint()

    view = session.view()
    assert view.hint_marks
    img = render_board(view)
    expected = MARGIN * 2 + 4 * CELL_SIZE + CLUE_WIDTH
    assert img.size == (expected, expected)
    assert img.mode == "RGB"

    with tempfile.TemporaryDirectory() as tmp:
        path = save_board_image(view, Path(tmp) / "board.png")
        assert path.exists()
        assert path.stat().st_size > 0

    print(f"  Image size: {img.size}")
    print("  [PASS] Board rendering tests")


def main():
    """Run all tests."""
    print("\n" + "#" * 60)
    print("# PERSISTENCE TESTS")
    print("#" * 60)

    tests = [
        test_snapshot_round_trip,
        test_snapshot_keeps_hint_time,
        test_won_snapshot_loads_as_won,
        test_corrupt_snapshots_rejected,
        test_save_file,
        test_session_autosaves_to_file,
        test_settings_file,
        test_render_board,
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
