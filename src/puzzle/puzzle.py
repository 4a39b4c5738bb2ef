"""
Puzzle Module - Immutable generated puzzle and the generation pipeline.
"""

import logging
import random
import time
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from .catalog import PieceType, generate_piece_types
from .clues import Clues, calculate_clues
from .difficulty import DifficultyConfig, get_difficulty
from .solution import (
    OBSTACLE_FRACTION,
    SolutionCell,
    SolutionGrid,
    assign_types_to_tiling,
    place_obstacles,
)
from .tiling import Tiling, generate_tiling

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Puzzle:
    """
    One playable puzzle instance. Read-only after generation.

    Attributes:
        grid_size: Board edge length
        difficulty: Difficulty selector value it was generated for
        tiling: Structural cover of the board
        catalog: Piece types offered to the player
        solution: Per-cell solution values and obstacles
        clues: Row and column targets
    """
    grid_size: int
    difficulty: str
    tiling: Tiling
    catalog: Tuple[PieceType, ...]
    solution: SolutionGrid
    clues: Clues

    def solution_cell(self, row: int, col: int) -> SolutionCell:
        """Solution record at a position."""
        return self.solution[row][col]

    def is_obstacle(self, row: int, col: int) -> bool:
        """True if the cell is blocked in the solution."""
        return self.solution[row][col].obstacle

    @property
    def obstacle_cells(self) -> int:
        """Number of blocked cells."""
        return sum(1 for row in self.solution for cell in row if cell.obstacle)

    def get_piece_type(self, piece_type_id: int) -> PieceType:
        """
        Look up a catalog entry by id.

        Raises:
            KeyError: If no such type exists
        """
        for piece_type in self.catalog:
            if piece_type.id == piece_type_id:
                return piece_type
        raise KeyError(f"Unknown piece type: {piece_type_id}")

    def piece_type_counts(self) -> Dict[int, int]:
        """
        Number of non-obstacle solution pieces using each catalog type.

        Returns:
            Mapping piece_type_id -> count (every catalog id present)
        """
        counts = Counter()
        for piece in self.tiling.pieces:
            r, c = piece.anchor
            cell = self.solution[r][c]
            if not cell.obstacle:
                counts[cell.piece_type_id] += 1
        return {t.id: counts.get(t.id, 0) for t in self.catalog}


def generate_puzzle(
    difficulty: Union[str, DifficultyConfig],
    rng: Optional[random.Random] = None,
    obstacle_fraction: float = OBSTACLE_FRACTION,
) -> Puzzle:
    """
    Run the full generation pipeline.

    tiling -> catalog -> solution -> obstacles -> clues

    Args:
        difficulty: Tier name or config
        rng: Random source; pass a seeded Random for reproducible puzzles
        obstacle_fraction: Share of pieces turned into obstacles

    Returns:
        New Puzzle
    """
    config = get_difficulty(difficulty) if isinstance(difficulty, str) else difficulty
    rng = rng or random.Random()
    start_time = time.perf_counter()

    tiling = generate_tiling(config.grid_size, config.shape_set, rng)
    catalog = tuple(
        generate_piece_types(config.num_piece_types, config.max_pips, config.shape_set, rng)
    )
    solution = assign_types_to_tiling(tiling, catalog, rng)
    solution = place_obstacles(solution, tiling, rng, obstacle_fraction)
    clues = calculate_clues(solution)

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"Generated {config.name} puzzle {config.grid_size}x{config.grid_size}: "
        f"{tiling.piece_count} pieces, {len(catalog)} types, "
        f"clue total {clues.total} ({elapsed_ms:.1f}ms)"
    )

    return Puzzle(
        grid_size=config.grid_size,
        difficulty=config.name,
        tiling=tiling,
        catalog=catalog,
        solution=solution,
        clues=clues,
    )
