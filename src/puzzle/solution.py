"""
Solution Module - Authoritative per-cell values for a generated puzzle.

Builds the solution grid by assigning a catalog type to every tiling
piece, then knocks out a fraction of pieces as obstacles.
"""

import logging
import math
import random
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .catalog import PieceType
from .tiling import Tiling

logger = logging.getLogger(__name__)

# Default share of tiling pieces turned into obstacles
OBSTACLE_FRACTION = 0.15

SolutionGrid = Tuple[Tuple['SolutionCell', ...], ...]


@dataclass(frozen=True)
class SolutionCell:
    """
    Solution record for one cell.

    Attributes:
        value: Face value (0 for obstacles)
        obstacle: True if the cell is blocked
        piece_id: Tiling piece covering the cell
        piece_type_id: Catalog type assigned to that piece (None for obstacles)
    """
    value: int
    obstacle: bool
    piece_id: int
    piece_type_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-ready data."""
        return {
            "value": self.value,
            "obstacle": self.obstacle,
            "piece_id": self.piece_id,
            "piece_type_id": self.piece_type_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SolutionCell':
        """Rebuild a cell from to_dict() output."""
        type_id = data.get("piece_type_id")
        return cls(
            value=int(data["value"]),
            obstacle=bool(data["obstacle"]),
            piece_id=int(data["piece_id"]),
            piece_type_id=None if type_id is None else int(type_id),
        )


def assign_types_to_tiling(
    tiling: Tiling,
    catalog: Sequence[PieceType],
    rng: Optional[random.Random] = None,
) -> SolutionGrid:
    """
    Give every tiling piece a random catalog type of the same shape.

    Face values are written in role order, so the head cell gets face 0
    and the tail cell face 1.

    Args:
        tiling: Exact cover of the board
        catalog: Available piece types
        rng: Random source (module random if None)

    Returns:
        Solution grid with no obstacles

    Raises:
        ValueError: If some piece has no type of its shape in the catalog
    """
    rng = rng or random.Random()
    size = tiling.grid_size
    grid: List[List[Optional[SolutionCell]]] = [[None] * size for _ in range(size)]

    for piece in tiling.pieces:
        suitable = [t for t in catalog if t.shape == piece.shape]
        if not suitable:
            raise ValueError(f"No piece type with shape {piece.shape.name} in catalog")
        chosen = rng.choice(suitable)

        for role, (r, c) in enumerate(piece.cells):
            grid[r][c] = SolutionCell(
                value=chosen.faces[role],
                obstacle=False,
                piece_id=piece.id,
                piece_type_id=chosen.id,
            )

    return tuple(tuple(row) for row in grid)


def obstacle_count(piece_count: int, fraction: float = OBSTACLE_FRACTION) -> int:
    """Number of pieces to remove: floor of the fraction, at least one."""
    return max(1, math.floor(piece_count * fraction))


def place_obstacles(
    solution: SolutionGrid,
    tiling: Tiling,
    rng: Optional[random.Random] = None,
    fraction: float = OBSTACLE_FRACTION,
) -> SolutionGrid:
    """
    Turn a random subset of tiling pieces into obstacles.

    Args:
        solution: Solution grid from assign_types_to_tiling()
        tiling: The tiling the solution was built on
        rng: Random source (module random if None)
        fraction: Share of pieces to remove (floor, minimum one piece)

    Returns:
        New solution grid; the input is left untouched
    """
    rng = rng or random.Random()
    piece_ids = [piece.id for piece in tiling.pieces]
    rng.shuffle(piece_ids)
    count = obstacle_count(len(piece_ids), fraction)

    grid = [list(row) for row in solution]
    for piece_id in piece_ids[:count]:
        for r, c in tiling.cells_of(piece_id):
            grid[r][c] = replace(grid[r][c], value=0, obstacle=True, piece_type_id=None)

    logger.debug(f"Placed {count} obstacle pieces out of {len(piece_ids)}")
    return tuple(tuple(row) for row in grid)


def solution_to_list(solution: SolutionGrid) -> List[List[Dict[str, Any]]]:
    """Serialize a solution grid."""
    return [[cell.to_dict() for cell in row] for row in solution]


def solution_from_list(data: List[List[Dict[str, Any]]]) -> SolutionGrid:
    """Rebuild a solution grid from solution_to_list() output."""
    return tuple(tuple(SolutionCell.from_dict(cell) for cell in row) for row in data)
