"""
Shapes Module - Piece footprints as relative cell offsets.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple


@dataclass(frozen=True)
class Shape:
    """
    Rigid piece footprint.

    The index of an offset is the role index of that cell, so offset 0
    is always the head (anchor) cell of the piece.

    Attributes:
        name: Short identifier ("H", "V")
        offsets: Tuple of (row, col) offsets relative to the anchor
    """
    name: str
    offsets: Tuple[Tuple[int, int], ...]

    @property
    def size(self) -> int:
        """Number of cells covered by the shape."""
        return len(self.offsets)

    def cells_at(self, anchor_row: int, anchor_col: int) -> List[Tuple[int, int]]:
        """
        Get absolute cells covered when the shape is anchored at a position.

        Args:
            anchor_row: Row of the head cell
            anchor_col: Column of the head cell

        Returns:
            List of (row, col) in role order
        """
        return [(anchor_row + dr, anchor_col + dc) for dr, dc in self.offsets]

    def anchor_of(self, row: int, col: int, role_index: int) -> Tuple[int, int]:
        """
        Recover the anchor from any cell of a placed piece.

        Args:
            row: Row of a cell of the piece
            col: Column of a cell of the piece
            role_index: Role of that cell within the shape

        Returns:
            (anchor_row, anchor_col)
        """
        dr, dc = self.offsets[role_index]
        return (row - dr, col - dc)


HORIZONTAL = Shape(name="H", offsets=((0, 0), (0, 1)))
VERTICAL = Shape(name="V", offsets=((0, 0), (1, 0)))

_SHAPES: Dict[str, Shape] = {
    HORIZONTAL.name: HORIZONTAL,
    VERTICAL.name: VERTICAL,
}

DOMINO_SHAPES: Tuple[Shape, ...] = (HORIZONTAL, VERTICAL)


def get_shape(name: str) -> Shape:
    """
    Look up a shape by name.

    Raises:
        ValueError: If the shape name is unknown
    """
    if name not in _SHAPES:
        available = ", ".join(_SHAPES.keys())
        raise ValueError(f"Unknown shape: {name}. Available: {available}")
    return _SHAPES[name]


def has_domino_shapes(shape_set: Iterable[Shape]) -> bool:
    """Check that both two-cell orientations are present."""
    shapes = set(shape_set)
    return HORIZONTAL in shapes and VERTICAL in shapes
