"""
Process-wide terrain seed.

The seed is drawn once when first needed and then held fixed for the life of
the process, so repeated generations with default parameters match.
"""

import random
from typing import Optional

# Global terrain seed
_terrain_seed = None


def set_terrain_seed(seed: Optional[float]) -> None:
    """
    Pin the terrain seed.

    Args:
        seed: Seed value, or None to draw a fresh one on next use
    """
    global _terrain_seed
    _terrain_seed = None if seed is None else float(seed)


def get_terrain_seed() -> float:
    """
    Get the current terrain seed, drawing one at random the first time.

    Returns:
        Seed value
    """
    global _terrain_seed
    if _terrain_seed is None:
        _terrain_seed = float(random.randint(0, 999_999))
    return _terrain_seed
