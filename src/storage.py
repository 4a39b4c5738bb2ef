"""
Storage Module for Domino Cross

Keeps the current game in a single JSON save file so a session can be
resumed. The file holds exactly one snapshot as produced by
PuzzleSession.to_snapshot().
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from src.puzzle import try_decode_snapshot

logger = logging.getLogger(__name__)

# Save file location (project root)
SAVE_FILE = Path("savegame.json")


def save_game(snapshot: Dict[str, Any], path: Optional[Path] = None) -> None:
    """
    Write a snapshot to the save file.

    Args:
        snapshot: Session snapshot
        path: Save file (defaults to SAVE_FILE)
    """
    path = path or SAVE_FILE
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(snapshot, f)
        logger.debug(f"Game saved: score {snapshot.get('score')}")
    except IOError as e:
        logger.error(f"Failed to save game: {e}")


def load_game(path: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    """
    Read and validate the saved snapshot.

    Args:
        path: Save file (defaults to SAVE_FILE)

    Returns:
        The snapshot dict, or None if there is no valid saved game
    """
    path = path or SAVE_FILE
    if not path.exists():
        logger.debug("No saved game found")
        return None

    try:
        with open(path, 'r', encoding='utf-8') as f:
            snapshot = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to read saved game: {e}")
        return None

    if try_decode_snapshot(snapshot) is None:
        return None

    logger.info(f"Saved game loaded from {path}")
    return snapshot


def clear_game(path: Optional[Path] = None) -> None:
    """Delete the save file if it exists."""
    path = path or SAVE_FILE
    try:
        path.unlink()
        logger.debug("Saved game cleared")
    except FileNotFoundError:
        pass
