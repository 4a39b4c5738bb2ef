"""
Board State Module - Mutable player-facing board.

Each cell is one of three variants:
    None          empty
    OBSTACLE      pre-revealed blocker, never changed by the player
    PlacedCell    one segment of a placed piece, carrying the piece's
                  shape and its role index so the rest of the piece can be
                  found without looking at neighbouring cells
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union, TYPE_CHECKING

from .catalog import PieceType
from .shapes import Shape, get_shape

if TYPE_CHECKING:
    from .puzzle import Puzzle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObstacleCell:
    """Blocked cell marker."""
    obstacle: bool = True


OBSTACLE = ObstacleCell()


@dataclass(frozen=True)
class PlacedCell:
    """
    One segment of a placed piece.

    Attributes:
        value: Face value shown in this cell
        piece_type_id: Catalog type of the piece
        shape: Footprint of the piece
        role_index: Which offset of the shape this cell is (0 = head)
    """
    value: int
    piece_type_id: int
    shape: Shape
    role_index: int

    @property
    def is_head(self) -> bool:
        """True for the anchor cell of the piece."""
        return self.role_index == 0


BoardCell = Optional[Union[ObstacleCell, PlacedCell]]


class LineStatus(Enum):
    """Status of a row or column against its clue."""
    MATCHES_AND_FULL = "matches-and-full"
    EXCEEDS = "exceeds"
    INCOMPLETE = "incomplete"


def line_status(current: int, clue: int, full: bool) -> LineStatus:
    """
    Classify a line for display.

    Args:
        current: Current sum of the line
        clue: Target sum
        full: True if every cell in the line is non-empty

    Returns:
        LineStatus
    """
    if current == clue and full:
        return LineStatus.MATCHES_AND_FULL
    if current > clue:
        return LineStatus.EXCEEDS
    return LineStatus.INCOMPLETE


class BoardState:
    """
    Mutable board the player edits.

    All mutations either fully apply or leave the board unchanged.

    Attributes:
        size: Board edge length
        cells: cells[r][c] is None, OBSTACLE or a PlacedCell
    """

    def __init__(self, size: int, obstacles: Optional[List[Tuple[int, int]]] = None):
        """
        Create an empty board.

        Args:
            size: Board edge length
            obstacles: Positions of blocked cells
        """
        self.size = size
        self.cells: List[List[BoardCell]] = [[None] * size for _ in range(size)]
        self._obstacles = list(obstacles or [])
        for r, c in self._obstacles:
            self.cells[r][c] = OBSTACLE

    @classmethod
    def from_puzzle(cls, puzzle: 'Puzzle') -> 'BoardState':
        """
        Create the starting board for a puzzle: obstacles only.

        Args:
            puzzle: Generated puzzle

        Returns:
            BoardState with obstacle cells matching the solution
        """
        obstacles = [
            (r, c)
            for r in range(puzzle.grid_size)
            for c in range(puzzle.grid_size)
            if puzzle.is_obstacle(r, c)
        ]
        return cls(puzzle.grid_size, obstacles)

    def reset(self) -> None:
        """Remove every placed piece, keeping the obstacles."""
        self.cells = [[None] * self.size for _ in range(self.size)]
        for r, c in self._obstacles:
            self.cells[r][c] = OBSTACLE

    def copy(self) -> 'BoardState':
        """Independent copy of the board."""
        board = BoardState(self.size, self._obstacles)
        board.cells = [list(row) for row in self.cells]
        return board

    def in_bounds(self, row: int, col: int) -> bool:
        """Check a position lies on the board."""
        return 0 <= row < self.size and 0 <= col < self.size

    def get_cell(self, row: int, col: int) -> BoardCell:
        """
        Get the cell at a position.

        Returns:
            Cell contents, or None if empty or out of bounds
        """
        if self.in_bounds(row, col):
            return self.cells[row][col]
        return None

    def place_piece(self, piece_type: PieceType, anchor_row: int, anchor_col: int) -> bool:
        """
        Place a piece with its head cell at the anchor.

        Every footprint cell must be on the board and empty. Nothing is
        written unless all cells qualify.

        Args:
            piece_type: Catalog entry to place
            anchor_row: Row of the head cell
            anchor_col: Column of the head cell

        Returns:
            True if placed, False if rejected
        """
        targets = piece_type.shape.cells_at(anchor_row, anchor_col)

        for r, c in targets:
            if not self.in_bounds(r, c) or self.cells[r][c] is not None:
                logger.debug(
                    f"Placement of type {piece_type.id} at ({anchor_row},{anchor_col}) "
                    f"rejected at ({r},{c})"
                )
                return False

        for role, (r, c) in enumerate(targets):
            self.cells[r][c] = PlacedCell(
                value=piece_type.faces[role],
                piece_type_id=piece_type.id,
                shape=piece_type.shape,
                role_index=role,
            )
        return True

    def piece_cells(self, row: int, col: int) -> List[Tuple[int, int]]:
        """
        All cells of the piece covering a position.

        Returns:
            Cells in role order, or an empty list if no piece is there
        """
        cell = self.get_cell(row, col)
        if not isinstance(cell, PlacedCell):
            return []
        anchor = cell.shape.anchor_of(row, col, cell.role_index)
        return cell.shape.cells_at(*anchor)

    def remove_piece(self, row: int, col: int) -> bool:
        """
        Remove the piece covering a position.

        Args:
            row: Row of any cell of the piece
            col: Column of any cell of the piece

        Returns:
            True if a piece was removed, False for empty/obstacle cells
        """
        targets = self.piece_cells(row, col)
        if not targets:
            return False

        for r, c in targets:
            if self.in_bounds(r, c) and isinstance(self.cells[r][c], PlacedCell):
                self.cells[r][c] = None
        return True

    def placed_pieces(self) -> List[Tuple[Tuple[int, int], int, Shape]]:
        """
        Enumerate placed pieces by their head cell.

        Returns:
            List of (anchor, piece_type_id, shape) in row-major order
        """
        pieces = []
        for r in range(self.size):
            for c in range(self.size):
                cell = self.cells[r][c]
                if isinstance(cell, PlacedCell) and cell.is_head:
                    pieces.append(((r, c), cell.piece_type_id, cell.shape))
        return pieces

    def placed_cells(self) -> Iterator[Tuple[int, int, PlacedCell]]:
        """Iterate (row, col, cell) over every placed segment."""
        for r in range(self.size):
            for c in range(self.size):
                cell = self.cells[r][c]
                if isinstance(cell, PlacedCell):
                    yield r, c, cell

    def row_sum(self, row: int) -> int:
        """Sum of placed values in a row; empty cells count as 0."""
        return sum(cell.value for cell in self.cells[row] if isinstance(cell, PlacedCell))

    def col_sum(self, col: int) -> int:
        """Sum of placed values in a column; empty cells count as 0."""
        return sum(
            self.cells[r][col].value
            for r in range(self.size)
            if isinstance(self.cells[r][col], PlacedCell)
        )

    def is_row_full(self, row: int) -> bool:
        """True if no cell in the row is empty."""
        return all(cell is not None for cell in self.cells[row])

    def is_col_full(self, col: int) -> bool:
        """True if no cell in the column is empty."""
        return all(self.cells[r][col] is not None for r in range(self.size))

    def is_full(self) -> bool:
        """True if no cell on the board is empty."""
        return all(self.is_row_full(r) for r in range(self.size))

    def row_status(self, row: int, clue: int) -> LineStatus:
        """Status of a row against its clue."""
        return line_status(self.row_sum(row), clue, self.is_row_full(row))

    def col_status(self, col: int, clue: int) -> LineStatus:
        """Status of a column against its clue."""
        return line_status(self.col_sum(col), clue, self.is_col_full(col))

    @property
    def obstacle_count(self) -> int:
        """Number of blocked cells."""
        return len(self._obstacles)

    def count_cells(self) -> int:
        """Number of cells covered by placed pieces."""
        return sum(1 for _ in self.placed_cells())

    def fill_ratio(self) -> float:
        """
        Fraction of playable cells covered by placed pieces.

        Returns:
            filled / (total - obstacles), or 1.0 when nothing is playable
        """
        playable = self.size * self.size - self.obstacle_count
        if playable <= 0:
            return 1.0
        return self.count_cells() / playable

    def __eq__(self, other):
        """Boards are equal when every cell matches."""
        if not isinstance(other, BoardState):
            return False
        return self.size == other.size and self.cells == other.cells

    def validate(self) -> None:
        """
        Check every placed segment belongs to a complete, consistent piece.

        Raises:
            ValueError: On the first inconsistent cell
        """
        for r, c, cell in self.placed_cells():
            if not 0 <= cell.role_index < cell.shape.size:
                raise ValueError(f"Cell ({r},{c}) has invalid role {cell.role_index}")
            for role, (pr, pc) in enumerate(self.piece_cells(r, c)):
                partner = self.get_cell(pr, pc) if self.in_bounds(pr, pc) else None
                if (
                    not isinstance(partner, PlacedCell)
                    or partner.piece_type_id != cell.piece_type_id
                    or partner.shape != cell.shape
                    or partner.role_index != role
                ):
                    raise ValueError(f"Piece at ({r},{c}) is incomplete at ({pr},{pc})")

    def to_list(self) -> List[List[Optional[Dict[str, Any]]]]:
        """
        Convert to JSON-ready nested lists.

        Returns:
            2D list of None, {"obstacle": True} or placed segment dicts
        """
        result = []
        for row in self.cells:
            out_row: List[Optional[Dict[str, Any]]] = []
            for cell in row:
                if cell is None:
                    out_row.append(None)
                elif isinstance(cell, ObstacleCell):
                    out_row.append({"obstacle": True})
                else:
                    out_row.append({
                        "value": cell.value,
                        "piece_type_id": cell.piece_type_id,
                        "shape": cell.shape.name,
                        "role_index": cell.role_index,
                    })
            result.append(out_row)
        return result

    @classmethod
    def from_list(cls, data: List[List[Optional[Dict[str, Any]]]]) -> 'BoardState':
        """
        Rebuild a board from to_list() output.

        Raises:
            ValueError: If the grid is not square or pieces are inconsistent
        """
        size = len(data)
        if any(len(row) != size for row in data):
            raise ValueError("Board is not square")

        obstacles = []
        placed: List[Tuple[int, int, PlacedCell]] = []
        for r, row in enumerate(data):
            for c, item in enumerate(row):
                if item is None:
                    continue
                if item.get("obstacle"):
                    obstacles.append((r, c))
                else:
                    placed.append((r, c, PlacedCell(
                        value=int(item["value"]),
                        piece_type_id=int(item["piece_type_id"]),
                        shape=get_shape(item["shape"]),
                        role_index=int(item["role_index"]),
                    )))

        board = cls(size, obstacles)
        for r, c, cell in placed:
            board.cells[r][c] = cell
        board.validate()
        return board
