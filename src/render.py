"""
Board Image Utilities

Functions for drawing a session view to a PNG for debugging and sharing.
"""

from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageDraw, ImageFont

from src.puzzle import LineStatus, ObstacleCell, PlacedCell
from src.session import HintMark, SessionView


# Output settings
SNAPSHOT_DIR = Path("./snapshots")
MAX_SNAPSHOT_IMAGES = 10

CELL_SIZE = 40
MARGIN = 10
CLUE_WIDTH = 40

# Colors
BACKGROUND = "#FAFAFA"
GRID_LINE = "#9E9E9E"
OBSTACLE_FILL = "#424242"
PIECE_FILL = "#FFFFFF"
PIECE_BORDER = "#212121"

STATUS_COLORS = {
    LineStatus.MATCHES_AND_FULL: "#4CAF50",  # Green
    LineStatus.EXCEEDS: "#d32f2f",           # Red
    LineStatus.INCOMPLETE: "#212121",
}

HINT_COLORS = {
    HintMark.CORRECT: "#4CAF50",
    HintMark.INCORRECT: "#d32f2f",
}


def render_board(view: SessionView) -> Image.Image:
    """
    Draw the board, clues and hint marks.

    Layout:
    - Board cells in a grid, obstacles filled dark
    - Placed pieces outlined as one block with their values
    - Row clues to the right and column clues below, colored by status
    - Hint marks as a colored inner frame

    Args:
        view: Session view to draw

    Returns:
        RGB PIL Image
    """
    n = view.grid_size
    board_px = n * CELL_SIZE
    width = MARGIN * 2 + board_px + CLUE_WIDTH
    height = MARGIN * 2 + board_px + CLUE_WIDTH

    img = Image.new("RGB", (width, height), BACKGROUND)
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    def cell_box(r, c):
        x0 = MARGIN + c * CELL_SIZE
        y0 = MARGIN + r * CELL_SIZE
        return x0, y0, x0 + CELL_SIZE, y0 + CELL_SIZE

    for r in range(n):
        for c in range(n):
            draw.rectangle(cell_box(r, c), outline=GRID_LINE, width=1)

    for r in range(n):
        for c in range(n):
            cell = view.cells[r][c]
            x0, y0, x1, y1 = cell_box(r, c)

            if isinstance(cell, ObstacleCell):
                draw.rectangle([x0 + 1, y0 + 1, x1 - 1, y1 - 1], fill=OBSTACLE_FILL)
            elif isinstance(cell, PlacedCell) and cell.is_head:
                # Outline the whole piece from its head cell
                cells = cell.shape.cells_at(r, c)
                boxes = [cell_box(pr, pc) for pr, pc in cells]
                left = min(b[0] for b in boxes) + 3
                top = min(b[1] for b in boxes) + 3
                right = max(b[2] for b in boxes) - 3
                bottom = max(b[3] for b in boxes) - 3
                draw.rectangle([left, top, right, bottom], fill=PIECE_FILL,
                               outline=PIECE_BORDER, width=2)

    for r in range(n):
        for c in range(n):
            cell = view.cells[r][c]
            if not isinstance(cell, PlacedCell):
                continue
            x0, y0, x1, y1 = cell_box(r, c)
            draw.text((x0 + CELL_SIZE // 2 - 3, y0 + CELL_SIZE // 2 - 6),
                      str(cell.value), fill=PIECE_BORDER, font=font)

            mark = view.hint_marks.get((r, c))
            if mark is not None:
                draw.rectangle([x0 + 6, y0 + 6, x1 - 6, y1 - 6],
                               outline=HINT_COLORS[mark], width=2)

    for line in view.rows:
        _, y0, _, _ = cell_box(line.index, 0)
        draw.text((MARGIN + board_px + 8, y0 + CELL_SIZE // 2 - 6),
                  f"{line.current}/{line.clue}", fill=STATUS_COLORS[line.status], font=font)

    for line in view.cols:
        x0, _, _, _ = cell_box(0, line.index)
        draw.text((x0 + 4, MARGIN + board_px + 8),
                  f"{line.current}/{line.clue}", fill=STATUS_COLORS[line.status], font=font)

    return img


def save_board_image(view: SessionView, path: Optional[Union[str, Path]] = None) -> Path:
    """
    Render a view and save it as PNG.

    Args:
        view: Session view to draw
        path: Output file; defaults to SNAPSHOT_DIR/board_<score>.png

    Returns:
        Path of the written image
    """
    if path is None:
        SNAPSHOT_DIR.mkdir(parents=True, exist_ok=True)
        path = SNAPSHOT_DIR / f"board_{view.difficulty}_{view.score}.png"
    path = Path(path)

    render_board(view).save(path, "PNG")

    if path.parent.resolve() == SNAPSHOT_DIR.resolve():
        _cleanup_snapshot_images()
    return path


def _cleanup_snapshot_images() -> None:
    """Remove old images, keeping only the most recent MAX_SNAPSHOT_IMAGES."""
    if not SNAPSHOT_DIR.exists():
        return

    images = sorted(
        SNAPSHOT_DIR.glob("board_*.png"),
        key=lambda p: p.stat().st_mtime,
        reverse=True
    )

    for old_file in images[MAX_SNAPSHOT_IMAGES:]:
        try:
            old_file.unlink()
        except OSError:
            pass
