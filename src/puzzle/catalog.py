"""
Catalog Module - Piece types available to the player for one session.
"""

import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .shapes import HORIZONTAL, VERTICAL, Shape, get_shape


@dataclass(frozen=True)
class PieceType:
    """
    A palette entry: a shape with one face value per role.

    Attributes:
        id: Index in the catalog
        shape: Footprint (orientation)
        faces: Face values in role order (head first)
    """
    id: int
    shape: Shape
    faces: Tuple[int, ...]

    @property
    def orientation(self) -> str:
        """Shape name, "H" or "V" for dominoes."""
        return self.shape.name

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-ready data."""
        return {"id": self.id, "shape": self.shape.name, "faces": list(self.faces)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PieceType':
        """
        Rebuild a piece type from to_dict() output.

        Raises:
            ValueError: If the face count does not match the shape
        """
        shape = get_shape(data["shape"])
        faces = tuple(int(v) for v in data["faces"])
        if len(faces) != shape.size:
            raise ValueError(
                f"Piece type {data['id']} has {len(faces)} faces for shape {shape.name}"
            )
        return cls(id=int(data["id"]), shape=shape, faces=faces)


def generate_piece_types(
    count: int,
    max_pips: int,
    shape_set: Sequence[Shape] = (HORIZONTAL, VERTICAL),
    rng: Optional[random.Random] = None,
) -> List[PieceType]:
    """
    Build the session palette.

    The first type is always vertical and the second always horizontal,
    so every domino in a tiling has at least one matching type. Further
    types pick a random shape from the set. Faces are drawn uniformly
    from [0, max_pips]; blanks and doubles are allowed.

    Args:
        count: Number of types (2 or more)
        max_pips: Highest face value
        shape_set: Shapes for the extra types
        rng: Random source (module random if None)

    Returns:
        List of PieceType with ids 0..count-1

    Raises:
        ValueError: If count < 2
    """
    if count < 2:
        raise ValueError(f"Need at least 2 piece types, got {count}")

    rng = rng or random.Random()
    shapes = list(shape_set)
    types = []

    for i in range(count):
        if i == 0:
            shape = VERTICAL
        elif i == 1:
            shape = HORIZONTAL
        else:
            shape = rng.choice(shapes)

        faces = tuple(rng.randint(0, max_pips) for _ in range(shape.size))
        types.append(PieceType(id=i, shape=shape, faces=faces))

    return types
