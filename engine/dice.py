"""Dice rolling and chance utilities for the Cryn combat server."""

import math
import random
import re

from pydantic import BaseModel


class DiceResult(BaseModel):
    """Result of a dice roll."""
    total: int
    rolls: list[int]
    modifier: int
    notation: str


def roll(notation: str, rng: random.Random | None = None) -> DiceResult:
    """Parse and roll dice notation like '1d90', '1d180', '2d6+3'.

    Args:
        notation: Dice notation string (e.g. "1d90").
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        DiceResult with total, individual rolls, modifier, and notation.
    """
    rng = rng or random.Random()
    notation = notation.strip().lower()

    match = re.match(r"^(\d+)d(\d+)([+-]\d+)?$", notation)
    if not match:
        raise ValueError(f"Invalid dice notation: {notation}")

    num_dice = int(match.group(1))
    die_size = int(match.group(2))
    modifier = int(match.group(3)) if match.group(3) else 0

    rolls = [rng.randint(1, die_size) for _ in range(num_dice)]
    total = sum(rolls) + modifier

    return DiceResult(
        total=total,
        rolls=rolls,
        modifier=modifier,
        notation=notation,
    )


def random_bonus(spread: int, rng: random.Random) -> int:
    """Uniform integer bonus in [0, spread), i.e. floor(random() * spread)."""
    return math.floor(rng.random() * spread)


def chance(probability: float, rng: random.Random) -> bool:
    """Return True with the given probability."""
    return rng.random() < probability


def scale(value: int, multiplier: float) -> int:
    """Multiply and floor, as used by critical and crushing hits."""
    return math.floor(value * multiplier)
