"""
Domino Cross - Entry Point

Generates (or resumes) a Domino Cross puzzle, prints it, and optionally
renders it to PNG or plays the solution back on a Qt event loop.

Example:
    python main.py                          # Resume saved game or start one
    python main.py --new -d hard --seed 7   # Fresh reproducible hard puzzle
    python main.py --image board.png        # Also write a PNG of the board
    python main.py --autoplay               # Watch the solution being placed
"""

import sys
import logging
import argparse
import random
import time
from typing import List, Optional, Tuple

from src.puzzle import ObstacleCell, get_difficulty_names, get_rules_names
from src.scheduler import ManualScheduler
from src.session import PuzzleSession, SessionView
from src.settings import load_settings, save_settings
from src.storage import load_game, save_game
from src.render import save_board_image


# Configure logging - output to both console and file
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
    handlers=[
        logging.StreamHandler(),  # Console output
        logging.FileHandler("domino_cross.log", mode='w', encoding='utf-8')  # File output
    ]
)
logger = logging.getLogger(__name__)


def format_board(view: SessionView) -> str:
    """
    Render a view as text.

    Obstacles are '#', empty cells '.', placed cells their value. Each row
    ends with its current/target sum and the last line lists column clues.
    """
    status_marks = {"matches-and-full": "=", "exceeds": "!", "incomplete": " "}
    lines = []
    for r, row in enumerate(view.cells):
        chars = []
        for cell in row:
            if cell is None:
                chars.append(".")
            elif isinstance(cell, ObstacleCell):
                chars.append("#")
            else:
                chars.append(str(cell.value))
        line = view.rows[r]
        lines.append(f"{' '.join(chars)}  | {line.current:>3}/{line.clue:<3}"
                     f"{status_marks[line.status.value]}")

    lines.append("-" * (view.grid_size * 2 - 1))
    lines.append(" ".join(str(line.clue) for line in view.cols))
    return "\n".join(lines)


def format_palette(view: SessionView) -> str:
    """One line per piece type: id, orientation, faces and remaining count."""
    return "\n".join(
        f"  [{entry.piece_type.id}] {entry.piece_type.orientation} "
        f"{'/'.join(str(v) for v in entry.piece_type.faces)}  x{entry.remaining}"
        for entry in view.palette
    )


def solution_moves(session: PuzzleSession) -> List[Tuple[int, int, int]]:
    """
    Placements that solve the current puzzle.

    Returns:
        List of (piece_type_id, anchor_row, anchor_col)
    """
    puzzle = session.puzzle
    moves = []
    for piece in puzzle.tiling.pieces:
        r, c = piece.anchor
        cell = puzzle.solution_cell(r, c)
        if not cell.obstacle:
            moves.append((cell.piece_type_id, r, c))
    return moves


def build_session(args, settings) -> PuzzleSession:
    """Resume the saved game unless --new, otherwise start a fresh one."""
    rng = random.Random(settings["seed"]) if settings["seed"] is not None else None
    scheduler = _qt_scheduler() if args.autoplay else ManualScheduler(start_time=time.time())

    snapshot = None if args.new else load_game()
    if snapshot is not None:
        session = PuzzleSession.from_snapshot(
            snapshot, scheduler, settings["rules"], rng, on_save=save_game
        )
        if args.difficulty is None or session.difficulty == args.difficulty:
            return session
        logger.info(f"Saved game is {session.difficulty}, starting {args.difficulty}")
        session.stop()

    session = PuzzleSession(scheduler, settings["difficulty"], settings["rules"], rng,
                            on_save=save_game)
    session.start_new_game()
    return session


def _qt_scheduler():
    """Create the Qt scheduler lazily so headless runs do not need Qt."""
    from src.qt_bridge import QtScheduler
    return QtScheduler()


def run_autoplay(session: PuzzleSession, interval_ms: int) -> int:
    """
    Clear the board and place the solution one piece per interval.

    Returns:
        Exit code
    """
    from PyQt5.QtCore import QCoreApplication
    from src.qt_bridge import SessionSignals

    app = QCoreApplication.instance()
    signals = SessionSignals()
    signals.attach(session)

    def on_solved(score):
        print(f"Solved! Final score: {score}")
        app.quit()

    signals.solved.connect(on_solved)

    if session.is_solved():
        print("Puzzle already solved")
        return 0

    for anchor, _, _ in session.board.placed_pieces():
        session.remove_piece(*anchor)

    moves = solution_moves(session)
    scheduler = session.scheduler

    def step():
        if not moves:
            task.cancel()
            return
        piece_type_id, r, c = moves.pop(0)
        session.place_piece(piece_type_id, r, c)
        print(format_board(session.view()))
        print()

    task = scheduler.call_every(interval_ms / 1000.0, step, name="autoplay")
    return app.exec_()


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Domino Cross - Domino placement puzzle generator and validator"
    )
    parser.add_argument(
        "--difficulty", "-d",
        choices=get_difficulty_names(),
        help="Difficulty tier (default: from config.json)"
    )
    parser.add_argument(
        "--rules", "-r",
        choices=get_rules_names(),
        help="Scoring rule preset (default: from config.json)"
    )
    parser.add_argument(
        "--seed", "-s",
        type=int,
        help="Random seed for reproducible puzzles"
    )
    parser.add_argument(
        "--new", "-n",
        action="store_true",
        help="Ignore the saved game and start a new puzzle"
    )
    parser.add_argument(
        "--image", "-i",
        help="Write a PNG of the board to this path"
    )
    parser.add_argument(
        "--autoplay",
        action="store_true",
        help="Place the solution piece by piece on a Qt event loop"
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=250,
        help="Milliseconds between autoplay placements (default: 250)"
    )
    parser.add_argument(
        "--save-settings",
        action="store_true",
        help="Store --difficulty/--rules/--seed in config.json"
    )
    return parser.parse_args(argv)


def main():
    """Initialize and run Domino Cross."""
    args = parse_args()

    settings = load_settings()
    if args.difficulty:
        settings["difficulty"] = args.difficulty
    if args.rules:
        settings["rules"] = args.rules
    if args.seed is not None:
        settings["seed"] = args.seed
    if args.save_settings:
        save_settings(settings)

    app = None
    if args.autoplay:
        from PyQt5.QtCore import QCoreApplication
        app = QCoreApplication(sys.argv)

    session = build_session(args, settings)
    view = session.view()

    print(format_board(view))
    print(f"\nPalette:\n{format_palette(view)}")
    print(f"\nScore: {view.score}  Hint: {view.hint.reason}")

    if args.image:
        path = save_board_image(view, args.image)
        logger.info(f"Board image saved: {path}")

    if app is not None:
        sys.exit(run_autoplay(session, args.interval))

    session.stop()


if __name__ == "__main__":
    main()
