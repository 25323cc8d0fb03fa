"""
Quota-exact biome placement.

Cells are walked outward from the origin and handed to biomes in a fixed
priority order, so mountains end up in the middle and deserts on the outer
land ring, with saltwater filling everything left over. Per-cell preferences
from clustering only reorder cells inside a biome's band window; the number
of tiles each biome receives always equals its quota.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
import structlog

from .biomes import ABSORBER_BIOME, BIOME_KEYS, BiomeType
from .grid import GridSpec
from .quotas import QuotaState, validate_quotas

logger = structlog.get_logger()

# Innermost band first
PLACEMENT_PRIORITY = (
    BiomeType.MOUNTAINS,
    BiomeType.TUNDRA,
    BiomeType.BOREAL_FOREST,
    BiomeType.TEMPERATE_FOREST,
    BiomeType.TROPICAL_RAINFOREST,
    BiomeType.FRESHWATER,
    BiomeType.TEMPERATE_GRASSLAND,
    BiomeType.SAVANNA,
    BiomeType.PASTURELAND,
    BiomeType.CROPLAND,
    BiomeType.SCRUB,
    BiomeType.URBAN,
    BiomeType.DESERTS,
)


@dataclass
class PlacementOptions:
    """Placement options."""

    # Extra share of a biome's quota scanned for cells that prefer it; 0 disables hints
    hint_lookahead: float = 0.25
    priority: Sequence[BiomeType] = PLACEMENT_PRIORITY


class ExactCountPlacer:
    """Authoritative placement pass: radial greedy fill with exact counts."""

    def __init__(self, options: Optional[PlacementOptions] = None):
        self.options = options or PlacementOptions()

    def place(
        self,
        grid: GridSpec,
        quotas: Dict[BiomeType, int],
        preferences: Optional[np.ndarray] = None,
        state: Optional[QuotaState] = None,
    ) -> np.ndarray:
        """
        Assign every cell so per-biome counts equal the quotas.

        Args:
            grid: Grid to fill
            quotas: Target tile count per biome, summing to N²
            preferences: Optional preferred biome per cell, shape (size, size)
            state: Optional QuotaState to record consumption in

        Returns:
            Biome per cell, shape (size, size)

        Raises:
            ValueError: If quotas do not sum to N² or a biome has no place in
                the priority order
        """
        validate_quotas(quotas, grid)
        self._validate_priority(quotas)

        flat_preferences = None
        if preferences is not None and self.options.hint_lookahead > 0:
            flat_preferences = np.asarray(preferences).ravel()

        remaining = grid.radial_order()
        assigned = np.full(grid.cell_count, ABSORBER_BIOME, dtype=np.uint8)

        for biome in self.options.priority:
            quota = int(quotas.get(biome, 0))
            if quota <= 0:
                continue

            if flat_preferences is None:
                chosen, remaining = remaining[:quota], remaining[quota:]
            else:
                chosen, remaining = self._take_with_hints(remaining, quota, biome, flat_preferences)

            assigned[chosen] = biome
            if state is not None:
                state.consume(biome, len(chosen))

        if state is not None:
            state.consume(ABSORBER_BIOME, len(remaining))

        logger.info(
            "Exact placement completed",
            grid_size=grid.size,
            absorber_cells=len(remaining),
            hints=flat_preferences is not None,
        )
        return assigned.reshape(grid.size, grid.size)

    def _take_with_hints(
        self, remaining: np.ndarray, quota: int, biome: BiomeType, preferences: np.ndarray
    ):
        """
        Take ``quota`` cells from the front of the radial order.

        Within a window slightly wider than the quota, cells preferring the
        biome go first; the cells passed over keep their radial position for
        the next biome.
        """
        window = quota + math.ceil(quota * self.options.hint_lookahead)
        candidates = remaining[:window]
        matches = preferences[candidates] == biome

        # Stable sort keeps radial order inside each group
        order = np.argsort(~matches, kind="stable")
        take = np.zeros(len(candidates), dtype=bool)
        take[order[:quota]] = True

        chosen = candidates[take]
        rest = np.concatenate([candidates[~take], remaining[window:]])
        return chosen, rest

    def _validate_priority(self, quotas: Dict[BiomeType, int]):
        covered = set(self.options.priority) | {ABSORBER_BIOME}
        missing = [BIOME_KEYS[b] for b, count in quotas.items() if count > 0 and b not in covered]
        if missing:
            raise ValueError(f"Biomes missing from placement priority: {', '.join(missing)}")
