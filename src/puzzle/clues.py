"""
Clues Module - Row and column target sums derived from a solution.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import numpy as np

from .solution import SolutionGrid


@dataclass(frozen=True)
class Clues:
    """
    Target sums for every line of the board.

    Attributes:
        row_sums: Sum of non-obstacle solution values per row
        col_sums: Sum of non-obstacle solution values per column
    """
    row_sums: Tuple[int, ...]
    col_sums: Tuple[int, ...]

    @property
    def total(self) -> int:
        """Sum over all rows (equal to the sum over all columns)."""
        return sum(self.row_sums)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-ready data."""
        return {"row_sums": list(self.row_sums), "col_sums": list(self.col_sums)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Clues':
        """Rebuild clues from to_dict() output."""
        return cls(
            row_sums=tuple(int(v) for v in data["row_sums"]),
            col_sums=tuple(int(v) for v in data["col_sums"]),
        )


def solution_values(solution: SolutionGrid) -> np.ndarray:
    """
    Value matrix with obstacle cells zeroed.

    Returns:
        2D int array of shape (rows, cols)
    """
    return np.array(
        [[0 if cell.obstacle else cell.value for cell in row] for row in solution],
        dtype=np.int64,
    )


def calculate_clues(solution: SolutionGrid) -> Clues:
    """
    Compute the row and column clues for a solution.

    Args:
        solution: Solution grid (obstacles excluded from the sums)

    Returns:
        Clues instance
    """
    values = solution_values(solution)
    return Clues(
        row_sums=tuple(int(v) for v in values.sum(axis=1)),
        col_sums=tuple(int(v) for v in values.sum(axis=0)),
    )
