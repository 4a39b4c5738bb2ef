"""
Snapshot Module - Serialization and structural validation of saved games.

A snapshot is a plain dict holding everything needed to rebuild a
session: grid_size, tiling, solution, board, catalog, clues, score,
difficulty and last_hint_time. Nothing derived is stored beyond that.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .board import BoardState, ObstacleCell, PlacedCell
from .catalog import PieceType
from .clues import Clues, calculate_clues
from .difficulty import get_difficulty
from .puzzle import Puzzle
from .solution import SolutionGrid, solution_from_list, solution_to_list
from .tiling import Tiling, TilingPiece

logger = logging.getLogger(__name__)

SNAPSHOT_KEYS = (
    "grid_size",
    "tiling",
    "solution",
    "board",
    "catalog",
    "clues",
    "score",
    "difficulty",
    "last_hint_time",
)


class CorruptSnapshotError(ValueError):
    """Raised when a saved payload cannot be adopted."""


@dataclass
class DecodedSnapshot:
    """Validated snapshot contents."""
    puzzle: Puzzle
    board: BoardState
    score: int
    last_hint_time: Optional[float]


def encode_snapshot(
    puzzle: Puzzle,
    board: BoardState,
    score: int,
    last_hint_time: Optional[float],
) -> Dict[str, Any]:
    """
    Build a JSON-ready snapshot.

    Args:
        puzzle: Current puzzle
        board: Current player board
        score: Current score
        last_hint_time: Timestamp of the last hint (None if none)

    Returns:
        Snapshot dict
    """
    return {
        "grid_size": puzzle.grid_size,
        "tiling": puzzle.tiling.to_dict(),
        "solution": solution_to_list(puzzle.solution),
        "board": board.to_list(),
        "catalog": [t.to_dict() for t in puzzle.catalog],
        "clues": puzzle.clues.to_dict(),
        "score": score,
        "difficulty": puzzle.difficulty,
        "last_hint_time": last_hint_time,
    }


def decode_snapshot(data: Any) -> DecodedSnapshot:
    """
    Validate and rebuild a snapshot.

    Nothing is partially adopted: either every check passes and a full
    DecodedSnapshot is returned, or CorruptSnapshotError is raised.

    Args:
        data: Snapshot dict, typically parsed JSON

    Returns:
        DecodedSnapshot

    Raises:
        CorruptSnapshotError: If any structural or consistency check fails
    """
    if not isinstance(data, dict):
        raise CorruptSnapshotError("Snapshot is not an object")

    missing = [key for key in SNAPSHOT_KEYS if key not in data]
    if missing:
        raise CorruptSnapshotError(f"Snapshot missing keys: {', '.join(missing)}")

    try:
        return _decode(data)
    except CorruptSnapshotError:
        raise
    except (KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
        raise CorruptSnapshotError(f"Invalid snapshot: {e}") from e


def _decode(data: Dict[str, Any]) -> DecodedSnapshot:
    """Decode a snapshot whose top-level keys are present."""
    grid_size = int(data["grid_size"])
    config = get_difficulty(data["difficulty"])
    if config.grid_size != grid_size:
        raise CorruptSnapshotError(
            f"Grid size {grid_size} does not match difficulty {config.name}"
        )

    tiling = Tiling.from_dict(data["tiling"])
    if tiling.grid_size != grid_size:
        raise CorruptSnapshotError("Tiling size does not match grid size")

    catalog = tuple(PieceType.from_dict(t) for t in data["catalog"])
    if [t.id for t in catalog] != list(range(len(catalog))):
        raise CorruptSnapshotError("Catalog ids are not sequential")
    for piece_type in catalog:
        if any(not 0 <= v <= config.max_pips for v in piece_type.faces):
            raise CorruptSnapshotError(f"Piece type {piece_type.id} face out of range")

    solution = solution_from_list(data["solution"])
    if len(solution) != grid_size or any(len(row) != grid_size for row in solution):
        raise CorruptSnapshotError("Solution grid has wrong dimensions")
    for r, row in enumerate(solution):
        for c, cell in enumerate(row):
            if cell.piece_id != tiling.cell(r, c)[0]:
                raise CorruptSnapshotError(f"Solution cell ({r},{c}) disagrees with tiling")
            if cell.obstacle and cell.value != 0:
                raise CorruptSnapshotError(f"Obstacle at ({r},{c}) carries a value")
    for piece in tiling.pieces:
        _check_solution_piece(piece, solution, catalog)

    clues = Clues.from_dict(data["clues"])
    if clues != calculate_clues(solution):
        raise CorruptSnapshotError("Clues do not match the solution")

    board = BoardState.from_list(data["board"])
    if board.size != grid_size:
        raise CorruptSnapshotError("Board size does not match grid size")
    for r in range(grid_size):
        for c in range(grid_size):
            cell = board.cells[r][c]
            if isinstance(cell, ObstacleCell) != solution[r][c].obstacle:
                raise CorruptSnapshotError(f"Board obstacle mismatch at ({r},{c})")
            if isinstance(cell, PlacedCell):
                if not 0 <= cell.piece_type_id < len(catalog):
                    raise CorruptSnapshotError(f"Unknown piece type at ({r},{c})")
                piece_type = catalog[cell.piece_type_id]
                if piece_type.shape != cell.shape or piece_type.faces[cell.role_index] != cell.value:
                    raise CorruptSnapshotError(f"Placed cell ({r},{c}) disagrees with catalog")

    score = int(data["score"])
    if score < 0:
        raise CorruptSnapshotError("Negative score")

    raw_hint_time = data["last_hint_time"]
    last_hint_time = None if raw_hint_time is None else float(raw_hint_time)

    puzzle = Puzzle(
        grid_size=grid_size,
        difficulty=config.name,
        tiling=tiling,
        catalog=catalog,
        solution=solution,
        clues=clues,
    )
    return DecodedSnapshot(puzzle=puzzle, board=board, score=score, last_hint_time=last_hint_time)


def _check_solution_piece(
    piece: TilingPiece,
    solution: SolutionGrid,
    catalog: Tuple[PieceType, ...],
) -> None:
    """
    Check one tiling piece is either a whole obstacle or a catalog piece.

    Raises:
        CorruptSnapshotError: If the piece is partly blocked, mixes types,
            or its values are not the faces of its type
    """
    cells = [solution[r][c] for r, c in piece.cells]

    blocked = [cell.obstacle for cell in cells]
    if any(blocked) != all(blocked):
        raise CorruptSnapshotError(f"Piece {piece.id} is only partly an obstacle")
    if all(blocked):
        return

    type_ids = {cell.piece_type_id for cell in cells}
    if len(type_ids) != 1:
        raise CorruptSnapshotError(f"Piece {piece.id} mixes piece types")
    type_id = type_ids.pop()
    if type_id is None or not 0 <= type_id < len(catalog):
        raise CorruptSnapshotError(f"Piece {piece.id} has unknown type {type_id}")

    piece_type = catalog[type_id]
    if piece_type.shape != piece.shape:
        raise CorruptSnapshotError(
            f"Piece {piece.id} is {piece.shape.name} but type {type_id} is {piece_type.shape.name}"
        )
    for role, cell in enumerate(cells):
        if cell.value != piece_type.faces[role]:
            raise CorruptSnapshotError(
                f"Piece {piece.id} value {cell.value} is not face {role} of type {type_id}"
            )


def try_decode_snapshot(data: Any) -> Optional[DecodedSnapshot]:
    """
    Decode a snapshot, logging and returning None if it is corrupt.
    """
    try:
        return decode_snapshot(data)
    except CorruptSnapshotError as e:
        logger.warning(f"Rejected saved game: {e}")
        return None
