"""
Pattern Generator

Produces random color sequences in which no color repeats more than
MAX_RUN_LENGTH times in a row.
"""

import random
from typing import List, Optional, Sequence

from ..config.game_settings import MAX_RUN_LENGTH
from ..models.game import Color

COLORS = (Color.GREEN, Color.RED)


def generate_sequence(length: int,
                      previous: Sequence[Color] = (),
                      rng: Optional[random.Random] = None) -> List[Color]:
    """
    Generate `length` new colors.

    Each color is an independent 50/50 pick unless the last MAX_RUN_LENGTH
    committed colors are identical, in which case the opposite color is
    forced. `previous` is the sequence the new colors will be appended to,
    so the run limit also holds across the boundary.

    Args:
        length: Number of colors to produce
        previous: Colors already committed before these
        rng: Random source (anything with `choice`); module random by default

    Returns:
        List of newly generated colors (without `previous`)
    """
    if length < 0:
        raise ValueError("length must be non-negative")

    rng = rng or random
    window = list(previous)[-MAX_RUN_LENGTH:]
    generated: List[Color] = []

    for _ in range(length):
        if len(window) == MAX_RUN_LENGTH and len(set(window)) == 1:
            color = window[0].opposite
        else:
            color = rng.choice(COLORS)
        generated.append(color)
        window = (window + [color])[-MAX_RUN_LENGTH:]

    return generated
