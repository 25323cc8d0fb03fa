"""Square tile grid sizing for the island."""

import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

import numpy as np
import structlog

from .population import PopulationAreaModel

logger = structlog.get_logger()


class GridSpec(NamedTuple):
    """Odd-sized square grid centered on the origin."""

    size: int

    @property
    def half_size(self) -> int:
        return self.size // 2

    @property
    def cell_count(self) -> int:
        return self.size * self.size

    def contains(self, x: int, z: int) -> bool:
        half = self.half_size
        return -half <= x <= half and -half <= z <= half

    def array_index(self, x: int, z: int) -> Tuple[int, int]:
        """Array index (row, column) of a tile coordinate."""
        return x + self.half_size, z + self.half_size

    def coordinate_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Coordinate arrays for every tile.

        Returns:
            (xs, zs) each of shape (size, size), indexed [x + half, z + half]
        """
        axis = np.arange(-self.half_size, self.half_size + 1, dtype=np.int64)
        xs, zs = np.meshgrid(axis, axis, indexing="ij")
        return xs, zs

    def radial_order(self) -> np.ndarray:
        """
        Flat cell indices sorted by distance from the origin.

        Ties are broken by x, then z, both ascending. Flat indices address
        arrays shaped (size, size) in row-major order.
        """
        xs, zs = self.coordinate_arrays()
        xs = xs.ravel()
        zs = zs.ravel()
        # Squared distance is exact in integers and sorts the same as distance
        return np.lexsort((zs, xs, xs * xs + zs * zs))


@dataclass
class GridSizerOptions:
    """Grid sizing options."""

    default_size: int = 141  # Used when population sizing is disabled
    min_size: int = 50
    max_size: int = 500


class GridSizer:
    """Derives the grid dimension from the area each person holds."""

    def __init__(
        self,
        model: Optional[PopulationAreaModel] = None,
        options: Optional[GridSizerOptions] = None,
    ):
        self.model = model or PopulationAreaModel()
        self.options = options or GridSizerOptions()

    def size_for(
        self,
        year: int,
        use_population_sizing: bool = True,
        override: Optional[int] = None,
    ) -> GridSpec:
        """
        Get the grid for a year.

        An explicit override wins over both population sizing and the fixed
        default. The result is clamped to the configured bounds and made odd
        so the grid is symmetric around (0, 0).
        """
        if override is not None:
            raw = int(override)
        elif not use_population_sizing:
            raw = self.options.default_size
        else:
            raw = math.floor(math.sqrt(self.model.area_per_person(year)))

        size = self._make_odd(self._clamp(raw))
        logger.debug("Grid sized", year=year, raw_size=raw, size=size)
        return GridSpec(size)

    def _clamp(self, size: int) -> int:
        clamped = max(self.options.min_size, min(self.options.max_size, size))
        if clamped != size:
            logger.debug("Grid size clamped", requested=size, clamped=clamped)
        return clamped

    def _make_odd(self, size: int) -> int:
        if size % 2 == 1:
            return size
        # Round up, except at the upper bound where rounding up would exceed it
        if size + 1 > self.options.max_size:
            return size - 1
        return size + 1
