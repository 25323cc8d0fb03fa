"""
Deterministic coordinate hash used for every random draw in island generation.

The classic shader hash ``frac(|sin(a * 12.9898 + b * 78.233) * 43758.5453|)``
is cheap, reproducible and works on scalars and NumPy arrays alike, which
lets the per-cell passes run vectorized over the whole grid.
"""

from typing import Union

import numpy as np

ArrayLike = Union[float, int, np.ndarray]

X_FACTOR = 12.9898
Z_FACTOR = 78.233
AMPLITUDE = 43758.5453


def seeded_hash(x: ArrayLike, z: ArrayLike, offset: float = 0.0, seed: float = 0.0) -> ArrayLike:
    """
    Hash integer coordinates to a uniform value in [0, 1).

    Args:
        x: Tile x coordinate (scalar or array)
        z: Tile z coordinate (scalar or array)
        offset: Stream offset, distinct per use site
        seed: Terrain seed held fixed for a generation run

    Returns:
        Value in [0, 1), same shape as the broadcast inputs
    """
    shift = seed + offset
    value = np.abs(
        np.sin(
            (np.asarray(x, dtype=np.float64) + shift) * X_FACTOR
            + (np.asarray(z, dtype=np.float64) + shift) * Z_FACTOR
        )
        * AMPLITUDE
    )
    result = value - np.floor(value)
    if np.ndim(result) == 0:
        return float(result)
    return result


class SeededHash:
    """Binds a terrain seed so call sites only pass coordinates and offset."""

    def __init__(self, seed: float = 0.0):
        self.seed = float(seed)

    def __call__(self, x: ArrayLike, z: ArrayLike, offset: float = 0.0) -> ArrayLike:
        return seeded_hash(x, z, offset, self.seed)

    def centered(self, x: ArrayLike, z: ArrayLike, offset: float = 0.0) -> ArrayLike:
        """Hash shifted to [-0.5, 0.5) for symmetric jitter."""
        return self(x, z, offset) - 0.5

    def pick(self, x: int, z: int, offset: float, choices):
        """Hash-indexed choice from a non-empty sequence."""
        if not choices:
            raise IndexError("Cannot choose from an empty sequence")
        index = int(self(x, z, offset) * len(choices))
        return choices[min(index, len(choices) - 1)]
