"""
Session Module - One playable Domino Cross game.

PuzzleSession owns the immutable Puzzle and the mutable BoardState for a
game and is the only thing that mutates the board. It also runs the
score decay, the hint flow and win detection.

Hint flow:
    use_hint() -> penalty charged, cells marked, input locked
        |
        | hint_reveal_delay
        v
    resolution -> wrong pieces removed, input unlocked
        |
        | hint_cooldown - hint_reveal_delay
        v
    cooldown recheck -> state re-emitted so the hint button can re-enable

Every scheduled callback is bound to the game generation it was created
in. Starting or restarting a game bumps the generation and cancels the
pending handles, so late callbacks from an old game are ignored.

For generation and board rules, see the src.puzzle package.
"""

import logging
import math
import random
import threading
from dataclasses import dataclass
from enum import Enum, auto
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from src.puzzle import (
    BoardState,
    DecodedSnapshot,
    LineStatus,
    PieceType,
    Puzzle,
    ScoringRules,
    decode_snapshot,
    encode_snapshot,
    generate_puzzle,
    get_difficulty,
    get_rules,
    DEFAULT_DIFFICULTY,
    DEFAULT_RULES,
)
from src.puzzle.board import BoardCell, line_status
from src.scheduler import Scheduler, TaskHandle

logger = logging.getLogger(__name__)


__all__ = [
    "SessionState",
    "HintMark",
    "HintStatus",
    "LineView",
    "PaletteEntry",
    "SessionView",
    "PuzzleSession",
]


class SessionState(Enum):
    """
    Session lifecycle states.

    States:
        NOT_STARTED: No puzzle yet, score frozen
        ACTIVE: Player may edit the board, score decays
        WON: Board solved, score frozen, input rejected
    """
    NOT_STARTED = auto()
    ACTIVE = auto()
    WON = auto()


class HintMark(Enum):
    """Transient hint annotation for a placed cell."""
    CORRECT = "correct"
    INCORRECT = "incorrect"


@dataclass(frozen=True)
class HintStatus:
    """Whether a hint can be used now, with a reason for the UI."""
    available: bool
    reason: str


@dataclass(frozen=True)
class LineView:
    """Current sum of one row or column against its clue."""
    index: int
    current: int
    clue: int
    status: LineStatus


@dataclass(frozen=True)
class PaletteEntry:
    """
    Palette item for the UI.

    Attributes:
        piece_type: Catalog entry
        remaining: Solution pieces of this type not yet matched by a
                   placed piece of the same type (never negative)
    """
    piece_type: PieceType
    remaining: int


@dataclass
class SessionView:
    """Everything a presentation layer needs to redraw."""
    grid_size: int
    difficulty: str
    cells: List[List[BoardCell]]
    rows: List[LineView]
    cols: List[LineView]
    palette: List[PaletteEntry]
    hint: HintStatus
    hint_marks: Dict[Tuple[int, int], HintMark]
    score: int
    state: SessionState
    input_locked: bool
    fill_ratio: float = 0.0


class PuzzleSession:
    """
    A single-player Domino Cross session.

    All public mutators take the session lock, so a decay tick, a hint
    resolution and a player placement never interleave.

    Example:
        scheduler = ManualScheduler()
        session = PuzzleSession(scheduler, difficulty="easy")
        session.add_solved_listener(lambda score: print(f"Won with {score}"))
        session.start_new_game()
        session.place_piece(0, 2, 3)
    """

    def __init__(
        self,
        scheduler: Scheduler,
        difficulty: str = DEFAULT_DIFFICULTY,
        rules: Union[str, ScoringRules] = DEFAULT_RULES,
        rng: Optional[random.Random] = None,
        on_save: Optional[Callable[[Dict[str, Any]], None]] = None,
    ):
        """
        Initialize a session without a puzzle.

        Args:
            scheduler: Time source and timer factory
            difficulty: Difficulty tier for new games
            rules: Scoring rule preset name or instance
            rng: Random source for puzzle generation
            on_save: Called with a snapshot whenever state should be persisted
        """
        self._scheduler = scheduler
        self._difficulty = get_difficulty(difficulty).name
        self._rules = get_rules(rules) if isinstance(rules, str) else rules
        self._rng = rng or random.Random()
        self._on_save = on_save

        self._lock = threading.RLock()
        self._generation = 0
        self._state = SessionState.NOT_STARTED

        self._puzzle: Optional[Puzzle] = None
        self._board: Optional[BoardState] = None
        self._expected_counts: Dict[int, int] = {}
        self._score = self._rules.starting_score

        # Hint tracking
        self._last_hint_time: Optional[float] = None
        self._input_locked = False
        self._hint_marks: Dict[Tuple[int, int], HintMark] = {}

        # Scheduled tasks
        self._decay_task: Optional[TaskHandle] = None
        self._hint_task: Optional[TaskHandle] = None
        self._cooldown_task: Optional[TaskHandle] = None

        self._listeners: List[Callable[[SessionView], None]] = []
        self._solved_listeners: List[Callable[[int], None]] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def puzzle(self) -> Optional[Puzzle]:
        """Current puzzle, None before the first game."""
        return self._puzzle

    @property
    def board(self) -> Optional[BoardState]:
        """Current player board, None before the first game."""
        return self._board

    @property
    def scheduler(self) -> Scheduler:
        """Scheduler driving the session timers."""
        return self._scheduler

    @property
    def rules(self) -> ScoringRules:
        """Scoring rules in effect."""
        return self._rules

    @property
    def difficulty(self) -> str:
        """Difficulty used for the next new game."""
        return self._difficulty

    @property
    def score(self) -> int:
        """Current score."""
        return self._score

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def input_locked(self) -> bool:
        """True while a hint is being shown."""
        return self._input_locked

    @property
    def last_hint_time(self) -> Optional[float]:
        """Scheduler time of the last hint, None if no hint this level."""
        return self._last_hint_time

    @property
    def hint_marks(self) -> Dict[Tuple[int, int], HintMark]:
        """Cells annotated by the active hint."""
        return dict(self._hint_marks)

    @property
    def generation(self) -> int:
        """Counter bumped on every new game or restart."""
        return self._generation

    def add_listener(self, callback: Callable[[SessionView], None]) -> None:
        """Register a callback receiving a SessionView on every change."""
        self._listeners.append(callback)

    def add_solved_listener(self, callback: Callable[[int], None]) -> None:
        """Register a callback receiving the final score when solved."""
        self._solved_listeners.append(callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_new_game(self, difficulty: Optional[str] = None) -> Puzzle:
        """
        Generate a new puzzle and start playing it.

        Args:
            difficulty: Tier to switch to (keeps the current tier if None)

        Returns:
            The new Puzzle
        """
        with self._lock:
            if difficulty is not None:
                self._difficulty = get_difficulty(difficulty).name

            puzzle = generate_puzzle(self._difficulty, self._rng, self._rules.obstacle_fraction)
            self.load_puzzle(puzzle)
            return puzzle

    def load_puzzle(self, puzzle: Puzzle) -> None:
        """
        Start playing a given puzzle on an empty board.

        Args:
            puzzle: Puzzle to play (generated or built by hand)
        """
        with self._lock:
            self._cancel_tasks()
            self._generation += 1
            self._adopt(puzzle, BoardState.from_puzzle(puzzle), self._rules.starting_score, None)

            logger.info(
                f"New game #{self._generation}: {puzzle.difficulty} "
                f"{puzzle.grid_size}x{puzzle.grid_size}"
            )
            self._save()
            self._emit()

    def restart_level(self) -> None:
        """Clear the board back to its obstacles and reset the score."""
        with self._lock:
            if self._puzzle is None:
                self.start_new_game()
                return

            self._cancel_tasks()
            self._generation += 1
            self._board.reset()
            self._score = self._rules.starting_score
            self._last_hint_time = None
            self._input_locked = False
            self._hint_marks = {}
            self._state = SessionState.ACTIVE
            self._start_decay()

            logger.info(f"Level restarted (game #{self._generation})")
            self._save()
            self._emit()

    def stop(self) -> None:
        """Cancel every pending timer. The board is left as is."""
        with self._lock:
            self._cancel_tasks()
            self._generation += 1
            logger.info("Session stopped")

    def _adopt(self, puzzle: Puzzle, board: BoardState, score: int,
               last_hint_time: Optional[float]) -> None:
        """Install a puzzle/board pair and enter the matching state."""
        self._puzzle = puzzle
        self._board = board
        self._expected_counts = puzzle.piece_type_counts()
        self._score = score
        self._last_hint_time = last_hint_time
        self._input_locked = False
        self._hint_marks = {}

        if self.is_solved():
            self._state = SessionState.WON
        else:
            self._state = SessionState.ACTIVE
            self._start_decay()

    def _cancel_tasks(self) -> None:
        """Cancel decay, pending hint resolution and cooldown recheck."""
        for task in (self._decay_task, self._hint_task, self._cooldown_task):
            if task is not None:
                task.cancel()
        self._decay_task = None
        self._hint_task = None
        self._cooldown_task = None

    # ------------------------------------------------------------------
    # Score decay
    # ------------------------------------------------------------------

    def _start_decay(self) -> None:
        """(Re)start the periodic score tick for the current generation."""
        if self._decay_task is not None:
            self._decay_task.cancel()
        self._decay_task = self._scheduler.call_every(
            self._rules.tick_interval,
            partial(self._on_tick, self._generation),
            name="score-decay",
        )

    def _on_tick(self, generation: int) -> None:
        """Periodic decay callback."""
        with self._lock:
            if generation != self._generation or self._state != SessionState.ACTIVE:
                return
            if self._score <= 0:
                return

            self._score = max(0, self._score - self._rules.decay_amount)
            if self._score % self._rules.autosave_every == 0:
                self._save()
            self._emit()

    # ------------------------------------------------------------------
    # Player mutations
    # ------------------------------------------------------------------

    def _accepts_input(self) -> bool:
        """True if player mutations are currently allowed."""
        return self._state == SessionState.ACTIVE and not self._input_locked

    def place_piece(self, piece_type_id: int, row: int, col: int) -> bool:
        """
        Place a catalog piece with its head at (row, col).

        Args:
            piece_type_id: Catalog id of the piece
            row: Anchor row
            col: Anchor column

        Returns:
            True if placed; False if rejected (locked, not active,
            unknown type, blocked or out of bounds)
        """
        with self._lock:
            if not self._accepts_input():
                logger.debug(f"Placement at ({row},{col}) dropped: input not accepted")
                return False

            try:
                piece_type = self._puzzle.get_piece_type(piece_type_id)
            except KeyError:
                logger.warning(f"Placement with unknown piece type {piece_type_id}")
                return False

            if not self._board.place_piece(piece_type, row, col):
                return False

            logger.debug(f"Placed type {piece_type_id} at ({row},{col})")
            self._after_mutation()
            return True

    def remove_piece(self, row: int, col: int) -> bool:
        """
        Remove the piece covering (row, col).

        Returns:
            True if a piece was removed
        """
        with self._lock:
            if not self._accepts_input():
                logger.debug(f"Removal at ({row},{col}) dropped: input not accepted")
                return False

            if not self._board.remove_piece(row, col):
                return False

            logger.debug(f"Removed piece at ({row},{col})")
            self._after_mutation()
            return True

    def _after_mutation(self) -> None:
        """Persist, check for a win and notify listeners."""
        self._save()
        self._check_win()
        self._emit()

    # ------------------------------------------------------------------
    # Win detection
    # ------------------------------------------------------------------

    def is_solved(self) -> bool:
        """
        True iff every cell is filled and every line sum equals its clue.
        """
        if self._puzzle is None or self._board is None:
            return False
        board = self._board
        clues = self._puzzle.clues

        if not board.is_full():
            return False
        for r in range(board.size):
            if board.row_sum(r) != clues.row_sums[r]:
                return False
        for c in range(board.size):
            if board.col_sum(c) != clues.col_sums[c]:
                return False
        return True

    def _check_win(self) -> None:
        """Move to WON and fire the solved signal once."""
        if self._state != SessionState.ACTIVE or not self.is_solved():
            return

        self._state = SessionState.WON
        if self._decay_task is not None:
            self._decay_task.cancel()
            self._decay_task = None

        logger.info(f"Puzzle solved! Final score: {self._score}")
        self._save()
        for callback in self._solved_listeners:
            callback(self._score)

    # ------------------------------------------------------------------
    # Hints
    # ------------------------------------------------------------------

    def hint_status(self) -> HintStatus:
        """
        Check whether a hint can be used right now.

        Returns:
            HintStatus with a human-readable reason
        """
        with self._lock:
            rules = self._rules
            if self._state == SessionState.WON:
                return HintStatus(False, "Puzzle solved")
            if self._state != SessionState.ACTIVE:
                return HintStatus(False, "No game in progress")
            if self._input_locked:
                return HintStatus(False, "Hint in progress")

            if self._last_hint_time is not None:
                elapsed = self._scheduler.now() - self._last_hint_time
                if elapsed < rules.hint_cooldown:
                    return HintStatus(False, "On cooldown")

            fill = self._board.fill_ratio()
            if fill <= rules.hint_fill_threshold:
                threshold_pct = int(round(rules.hint_fill_threshold * 100))
                return HintStatus(
                    False,
                    f"Fill more than {threshold_pct}% to use hint ({math.floor(fill * 100)}%)",
                )

            return HintStatus(True, f"Use hint (-{rules.hint_penalty} points)")

    def use_hint(self) -> bool:
        """
        Reveal which placed cells are right, then clear the wrong pieces.

        Returns:
            True if the hint was activated, False if ineligible
        """
        with self._lock:
            status = self.hint_status()
            if not status.available:
                logger.debug(f"Hint rejected: {status.reason}")
                return False

            self._score = max(0, self._score - self._rules.hint_penalty)
            self._last_hint_time = self._scheduler.now()
            self._input_locked = True

            marks = {}
            for r, c, cell in self._board.placed_cells():
                expected = self._puzzle.solution_cell(r, c)
                marks[(r, c)] = HintMark.CORRECT if cell.value == expected.value else HintMark.INCORRECT
            self._hint_marks = marks

            if self._cooldown_task is not None:
                self._cooldown_task.cancel()
                self._cooldown_task = None
            self._hint_task = self._scheduler.call_later(
                self._rules.hint_reveal_delay,
                partial(self._resolve_hint, self._generation),
                name="hint-resolve",
            )

            wrong = sum(1 for mark in marks.values() if mark is HintMark.INCORRECT)
            logger.info(
                f"Hint used (-{self._rules.hint_penalty}): {wrong} of {len(marks)} cells wrong"
            )
            self._save()
            self._emit()
            return True

    def _resolve_hint(self, generation: int) -> None:
        """Deferred part of a hint: drop wrong pieces and unlock input."""
        with self._lock:
            if generation != self._generation:
                logger.debug("Stale hint resolution ignored")
                return

            wrong_cells = [pos for pos, mark in self._hint_marks.items()
                           if mark is HintMark.INCORRECT]
            removed = 0
            for r, c in wrong_cells:
                # Partner of an earlier wrong cell may already be cleared
                if self._board.remove_piece(r, c):
                    removed += 1

            self._hint_marks = {}
            self._input_locked = False
            self._hint_task = None

            remaining = self._rules.hint_cooldown - self._rules.hint_reveal_delay
            if remaining > 0:
                self._cooldown_task = self._scheduler.call_later(
                    remaining,
                    partial(self._on_cooldown_elapsed, generation),
                    name="hint-cooldown",
                )

            logger.info(f"Hint resolved: removed {removed} pieces")
            self._after_mutation()

    def _on_cooldown_elapsed(self, generation: int) -> None:
        """Re-emit state once the hint cooldown has run out."""
        with self._lock:
            if generation != self._generation:
                return
            self._cooldown_task = None
            self._emit()

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def view(self) -> SessionView:
        """
        Build a redraw payload for the presentation layer.

        Raises:
            RuntimeError: If no game has been started
        """
        with self._lock:
            if self._puzzle is None or self._board is None:
                raise RuntimeError("No puzzle loaded")

            board = self._board
            clues = self._puzzle.clues

            rows = [
                LineView(r, board.row_sum(r), clues.row_sums[r],
                         line_status(board.row_sum(r), clues.row_sums[r], board.is_row_full(r)))
                for r in range(board.size)
            ]
            cols = [
                LineView(c, board.col_sum(c), clues.col_sums[c],
                         line_status(board.col_sum(c), clues.col_sums[c], board.is_col_full(c)))
                for c in range(board.size)
            ]

            placed_counts: Dict[int, int] = {}
            for _, piece_type_id, _ in board.placed_pieces():
                placed_counts[piece_type_id] = placed_counts.get(piece_type_id, 0) + 1
            palette = [
                PaletteEntry(
                    piece_type=t,
                    remaining=max(0, self._expected_counts.get(t.id, 0) - placed_counts.get(t.id, 0)),
                )
                for t in self._puzzle.catalog
            ]

            return SessionView(
                grid_size=board.size,
                difficulty=self._puzzle.difficulty,
                cells=[list(row) for row in board.cells],
                rows=rows,
                cols=cols,
                palette=palette,
                hint=self.hint_status(),
                hint_marks=dict(self._hint_marks),
                score=self._score,
                state=self._state,
                input_locked=self._input_locked,
                fill_ratio=board.fill_ratio(),
            )

    def _emit(self) -> None:
        """Send the current view to every listener."""
        if not self._listeners or self._puzzle is None:
            return
        view = self.view()
        for callback in self._listeners:
            callback(view)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_snapshot(self) -> Dict[str, Any]:
        """
        Serialize the session for the persistence collaborator.

        Raises:
            RuntimeError: If no game has been started
        """
        with self._lock:
            if self._puzzle is None or self._board is None:
                raise RuntimeError("No puzzle loaded")
            return encode_snapshot(self._puzzle, self._board, self._score, self._last_hint_time)

    def _save(self) -> None:
        """Hand a snapshot to the save callback, if any."""
        if self._on_save is not None and self._puzzle is not None:
            self._on_save(self.to_snapshot())

    def load_snapshot(self, data: Any) -> None:
        """
        Replace the current game with a saved one.

        Any pending hint is dropped; a hint in progress at save time is
        simply forgotten and input starts unlocked.

        Raises:
            CorruptSnapshotError: If the snapshot fails validation; the
                session is left untouched in that case
        """
        self._load_decoded(decode_snapshot(data))

    def _load_decoded(self, decoded: DecodedSnapshot) -> None:
        """Adopt an already validated snapshot."""
        with self._lock:
            self._cancel_tasks()
            self._generation += 1
            self._difficulty = decoded.puzzle.difficulty
            self._adopt(decoded.puzzle, decoded.board, decoded.score, decoded.last_hint_time)
            logger.info(
                f"Loaded saved game: {self._difficulty}, score {self._score}, "
                f"fill {decoded.board.fill_ratio() * 100:.0f}%"
            )
            self._emit()

    @classmethod
    def from_snapshot(
        cls,
        data: Any,
        scheduler: Scheduler,
        rules: Union[str, ScoringRules] = DEFAULT_RULES,
        rng: Optional[random.Random] = None,
        on_save: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> 'PuzzleSession':
        """
        Build a session from a saved snapshot.

        Raises:
            CorruptSnapshotError: If the snapshot fails validation
        """
        decoded = decode_snapshot(data)
        session = cls(scheduler, decoded.puzzle.difficulty, rules, rng, on_save)
        session._load_decoded(decoded)
        return session
