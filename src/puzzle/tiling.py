"""
Tiling Module - Random exact partition of the board into dominoes.

The generator starts from the all-horizontal tiling, which is valid for
any even board, and then applies a long run of random 2x2 flips. A flip
only ever swaps two parallel dominoes for two perpendicular ones inside
the same 2x2 block, so coverage is preserved at every step and the
generator cannot get stuck.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .shapes import HORIZONTAL, VERTICAL, Shape, get_shape, has_domino_shapes

logger = logging.getLogger(__name__)

# Flip moves per cell
FLIPS_PER_CELL = 20


@dataclass(frozen=True)
class TilingPiece:
    """One piece of a tiling: a shape anchored at its head cell."""
    id: int
    shape: Shape
    anchor: Tuple[int, int]

    @property
    def cells(self) -> List[Tuple[int, int]]:
        """Cells covered by the piece, in role order."""
        return self.shape.cells_at(*self.anchor)


@dataclass(frozen=True)
class Tiling:
    """
    Exact cover of a grid_size x grid_size board.

    Attributes:
        grid_size: Board edge length
        pieces: Pieces indexed by id
        cells: cells[r][c] = (piece_id, role_index)
    """
    grid_size: int
    pieces: Tuple[TilingPiece, ...]
    cells: Tuple[Tuple[Tuple[int, int], ...], ...]

    @classmethod
    def from_pieces(cls, grid_size: int, pieces: Sequence[TilingPiece]) -> 'Tiling':
        """
        Build the per-cell map from a list of pieces.

        Raises:
            ValueError: If pieces overlap, leave gaps or leave the board
        """
        grid: List[List[Optional[Tuple[int, int]]]] = [
            [None] * grid_size for _ in range(grid_size)
        ]
        for piece in pieces:
            for role, (r, c) in enumerate(piece.cells):
                if 0 <= r < grid_size and 0 <= c < grid_size:
                    grid[r][c] = (piece.id, role)

        cells = tuple(tuple(row) for row in grid)
        tiling = cls(grid_size=grid_size, pieces=tuple(pieces), cells=cells)
        tiling.validate()
        return tiling

    def validate(self) -> None:
        """
        Check the pieces form an exact cover and agree with the cell map.

        Raises:
            ValueError: On the first out-of-bounds, overlapping or
                uncovered cell, or a cell map entry that disagrees
        """
        size = self.grid_size
        covered: Dict[Tuple[int, int], Tuple[int, int]] = {}

        for index, piece in enumerate(self.pieces):
            if piece.id != index:
                raise ValueError(f"Piece id {piece.id} at position {index}")
            for role, (r, c) in enumerate(piece.cells):
                if not (0 <= r < size and 0 <= c < size):
                    raise ValueError(f"Piece {piece.id} leaves the board at ({r},{c})")
                if (r, c) in covered:
                    raise ValueError(
                        f"Pieces {covered[(r, c)][0]} and {piece.id} overlap at ({r},{c})"
                    )
                covered[(r, c)] = (piece.id, role)

        if len(self.cells) != size or any(len(row) != size for row in self.cells):
            raise ValueError("Cell map has wrong dimensions")

        for r in range(size):
            for c in range(size):
                if (r, c) not in covered:
                    raise ValueError(f"Cell ({r},{c}) is not covered")
                if self.cells[r][c] != covered[(r, c)]:
                    raise ValueError(f"Cell map disagrees with pieces at ({r},{c})")

    def cell(self, row: int, col: int) -> Tuple[int, int]:
        """(piece_id, role_index) of a cell."""
        return self.cells[row][col]

    def cells_of(self, piece_id: int) -> List[Tuple[int, int]]:
        """Cells of a piece in role order."""
        return self.pieces[piece_id].cells

    @property
    def piece_count(self) -> int:
        """Number of pieces in the tiling."""
        return len(self.pieces)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-ready data. The cell map is rebuilt on load."""
        return {
            "grid_size": self.grid_size,
            "pieces": [
                {"id": p.id, "shape": p.shape.name, "anchor": list(p.anchor)}
                for p in self.pieces
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Tiling':
        """
        Rebuild a tiling from to_dict() output.

        Raises:
            ValueError: If the data does not describe an exact cover
        """
        pieces = [
            TilingPiece(
                id=int(p["id"]),
                shape=get_shape(p["shape"]),
                anchor=(int(p["anchor"][0]), int(p["anchor"][1])),
            )
            for p in data["pieces"]
        ]
        return cls.from_pieces(int(data["grid_size"]), pieces)


def generate_tiling(
    grid_size: int,
    shape_set: Sequence[Shape] = (HORIZONTAL, VERTICAL),
    rng: Optional[random.Random] = None,
) -> Tiling:
    """
    Generate a random domino tiling by flip shuffling.

    Args:
        grid_size: Board edge length, must be even
        shape_set: Allowed shapes, must contain both domino orientations
        rng: Random source (module random if None)

    Returns:
        Tiling covering every cell exactly once

    Raises:
        ValueError: If grid_size is odd or the shape set lacks dominoes
    """
    if grid_size < 2 or grid_size % 2 != 0:
        raise ValueError(f"Grid size must be a positive even number, got {grid_size}")
    if not has_domino_shapes(shape_set):
        raise ValueError("Shape set must contain both horizontal and vertical dominoes")

    rng = rng or random.Random()

    # Seed with rows of horizontal dominoes
    shapes: List[Shape] = []
    anchors: List[Tuple[int, int]] = []
    owner = [[0] * grid_size for _ in range(grid_size)]
    for r in range(grid_size):
        for c in range(0, grid_size, 2):
            owner[r][c] = owner[r][c + 1] = len(shapes)
            shapes.append(HORIZONTAL)
            anchors.append((r, c))

    flips = 0
    iterations = grid_size * grid_size * FLIPS_PER_CELL
    for _ in range(iterations):
        r = rng.randrange(grid_size - 1)
        c = rng.randrange(grid_size - 1)
        if _flip_block(r, c, owner, shapes, anchors):
            flips += 1

    logger.debug(f"Tiling {grid_size}x{grid_size}: {flips}/{iterations} flips applied")

    # Renumber in row-major anchor order so ids are stable for a given layout
    order = sorted(range(len(shapes)), key=lambda i: anchors[i])
    pieces = [
        TilingPiece(id=new_id, shape=shapes[old_id], anchor=anchors[old_id])
        for new_id, old_id in enumerate(order)
    ]
    return Tiling.from_pieces(grid_size, pieces)


def _flip_block(
    r: int,
    c: int,
    owner: List[List[int]],
    shapes: List[Shape],
    anchors: List[Tuple[int, int]],
) -> bool:
    """
    Re-tile the 2x2 block at (r, c) if it holds two parallel dominoes.

    Returns:
        True if a flip was applied
    """
    top = owner[r][c]

    if shapes[top] is HORIZONTAL and anchors[top] == (r, c):
        bottom = owner[r + 1][c]
        if shapes[bottom] is HORIZONTAL and anchors[bottom] == (r + 1, c):
            # Two stacked horizontals -> two side-by-side verticals
            shapes[top], anchors[top] = VERTICAL, (r, c)
            shapes[bottom], anchors[bottom] = VERTICAL, (r, c + 1)
            owner[r + 1][c] = top
            owner[r][c + 1] = bottom
            return True
        return False

    if shapes[top] is VERTICAL and anchors[top] == (r, c):
        right = owner[r][c + 1]
        if shapes[right] is VERTICAL and anchors[right] == (r, c + 1):
            # Two side-by-side verticals -> two stacked horizontals
            shapes[top], anchors[top] = HORIZONTAL, (r, c)
            shapes[right], anchors[right] = HORIZONTAL, (r + 1, c)
            owner[r][c + 1] = top
            owner[r + 1][c] = right
            return True

    return False
