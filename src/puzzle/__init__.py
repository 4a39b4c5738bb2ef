"""
Puzzle Package - Generation and validation engine for Domino Cross.

Generates a random exact domino tiling of an N x N board, assigns piece
values from a small catalog, removes some pieces as obstacles and derives
row/column clues. The mutable BoardState validates player placements
against the rules.

Public API:
    - generate_puzzle(): Full generation pipeline
    - Puzzle: Immutable generated puzzle
    - BoardState: Mutable player board
    - get_difficulty() / get_rules(): Configuration lookup
    - encode_snapshot() / decode_snapshot(): Save game codec

Usage:
    from src.puzzle import generate_puzzle, BoardState

    puzzle = generate_puzzle("easy")
    board = BoardState.from_puzzle(puzzle)

    piece_type = puzzle.catalog[0]
    if board.place_piece(piece_type, 0, 0):
        print(f"Row 0 sum: {board.row_sum(0)} / {puzzle.clues.row_sums[0]}")
"""

# Shapes and configuration
from .shapes import Shape, HORIZONTAL, VERTICAL, DOMINO_SHAPES, get_shape
from .difficulty import (
    DifficultyConfig,
    ScoringRules,
    get_difficulty,
    get_rules,
    get_difficulty_names,
    get_rules_names,
    DEFAULT_DIFFICULTY,
    DEFAULT_RULES,
)

# Generation pipeline
from .tiling import Tiling, TilingPiece, generate_tiling
from .catalog import PieceType, generate_piece_types
from .solution import (
    SolutionCell,
    assign_types_to_tiling,
    place_obstacles,
    obstacle_count,
)
from .clues import Clues, calculate_clues
from .puzzle import Puzzle, generate_puzzle

# Player board
from .board import (
    BoardState,
    PlacedCell,
    ObstacleCell,
    OBSTACLE,
    LineStatus,
    line_status,
)

# Persistence codec
from .snapshot import (
    CorruptSnapshotError,
    DecodedSnapshot,
    encode_snapshot,
    decode_snapshot,
    try_decode_snapshot,
)

__all__ = [
    # Shapes and configuration
    "Shape",
    "HORIZONTAL",
    "VERTICAL",
    "DOMINO_SHAPES",
    "get_shape",
    "DifficultyConfig",
    "ScoringRules",
    "get_difficulty",
    "get_rules",
    "get_difficulty_names",
    "get_rules_names",
    "DEFAULT_DIFFICULTY",
    "DEFAULT_RULES",
    # Generation
    "Tiling",
    "TilingPiece",
    "generate_tiling",
    "PieceType",
    "generate_piece_types",
    "SolutionCell",
    "assign_types_to_tiling",
    "place_obstacles",
    "obstacle_count",
    "Clues",
    "calculate_clues",
    "Puzzle",
    "generate_puzzle",
    # Board
    "BoardState",
    "PlacedCell",
    "ObstacleCell",
    "OBSTACLE",
    "LineStatus",
    "line_status",
    # Snapshots
    "CorruptSnapshotError",
    "DecodedSnapshot",
    "encode_snapshot",
    "decode_snapshot",
    "try_decode_snapshot",
]
