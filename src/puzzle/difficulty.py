"""
Difficulty Module - Registry of difficulty tiers and scoring rule presets.

A single difficulty name resolves to everything the generator needs, and
a single rules name resolves to every reward/penalty constant the session
uses. Both are plain data so that tiers can be re-derived from a saved
selector value alone.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from .shapes import DOMINO_SHAPES, Shape


@dataclass(frozen=True)
class DifficultyConfig:
    """
    Generator parameters for one difficulty tier.

    Attributes:
        name: Selector value ("easy", "medium", "hard")
        grid_size: Board edge length (even)
        max_pips: Highest face value a piece type can carry
        num_piece_types: Number of piece types in the palette
        shape_set: Shapes allowed on the board
    """
    name: str
    grid_size: int
    max_pips: int
    num_piece_types: int
    shape_set: Tuple[Shape, ...] = DOMINO_SHAPES


@dataclass(frozen=True)
class ScoringRules:
    """
    Session reward/penalty constants.

    Attributes:
        name: Preset name
        starting_score: Score at the start of a level
        decay_amount: Points lost per tick
        tick_interval: Seconds between decay ticks
        hint_penalty: Points deducted per hint
        hint_fill_threshold: Fill ratio that must be exceeded before a hint
        hint_cooldown: Seconds between hint activations
        hint_reveal_delay: Seconds input stays locked while a hint is shown
        obstacle_fraction: Fraction of tiling pieces turned into obstacles
        autosave_every: Save the score every N points of decay
    """
    name: str
    starting_score: int = 200
    decay_amount: int = 1
    tick_interval: float = 1.0
    hint_penalty: int = 40
    hint_fill_threshold: float = 0.5
    hint_cooldown: float = 30.0
    hint_reveal_delay: float = 3.0
    obstacle_fraction: float = 0.15
    autosave_every: int = 5


_DIFFICULTIES: Dict[str, DifficultyConfig] = {}
_RULES: Dict[str, ScoringRules] = {}


def register_difficulty(config: DifficultyConfig) -> DifficultyConfig:
    """Add a difficulty tier to the registry."""
    _DIFFICULTIES[config.name] = config
    return config


def register_rules(rules: ScoringRules) -> ScoringRules:
    """Add a scoring rule preset to the registry."""
    _RULES[rules.name] = rules
    return rules


EASY = register_difficulty(DifficultyConfig("easy", grid_size=6, max_pips=3, num_piece_types=2))
MEDIUM = register_difficulty(DifficultyConfig("medium", grid_size=8, max_pips=5, num_piece_types=2))
HARD = register_difficulty(DifficultyConfig("hard", grid_size=10, max_pips=6, num_piece_types=3))

CLASSIC = register_rules(ScoringRules("classic"))
RELAXED = register_rules(ScoringRules("relaxed", hint_penalty=20, hint_fill_threshold=0.25))

DEFAULT_DIFFICULTY = EASY.name
DEFAULT_RULES = CLASSIC.name


def get_difficulty(name: str) -> DifficultyConfig:
    """
    Resolve a difficulty selector value.

    Raises:
        ValueError: If the name is not a registered tier
    """
    if name not in _DIFFICULTIES:
        available = ", ".join(_DIFFICULTIES.keys())
        raise ValueError(f"Unknown difficulty: {name}. Available: {available}")
    return _DIFFICULTIES[name]


def get_rules(name: str) -> ScoringRules:
    """
    Resolve a scoring rule preset.

    Raises:
        ValueError: If the name is not a registered preset
    """
    if name not in _RULES:
        available = ", ".join(_RULES.keys())
        raise ValueError(f"Unknown rules: {name}. Available: {available}")
    return _RULES[name]


def get_difficulty_names() -> List[str]:
    """Names of all registered difficulty tiers, easiest first."""
    return list(_DIFFICULTIES.keys())


def get_rules_names() -> List[str]:
    """Names of all registered rule presets."""
    return list(_RULES.keys())
