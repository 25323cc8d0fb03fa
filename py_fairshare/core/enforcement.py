"""
Per-cell quota enforcement.

Turns a preferred biome plus the live QuotaState into a placement. When the
preferred biome has no quota left, a fallback is resolved in this order:

1. Diversity forcing for biomes that have not been placed yet
2. Rare-biome boosting for biomes with few placements so far
3. Static similarity substitutes
4. Any biome with quota left, in fixed order
5. The absolute fallback biome, even past zero remaining

The enforcer mutates the QuotaState it is given, so cells must be fed in a
stable order for the result to be reproducible.
"""

from collections import Counter
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import structlog

from .biomes import ABSORBER_BIOME, SIMILAR_BIOMES, BiomeType
from .clustering import TerrainField
from .quotas import QuotaState
from .seeded_hash import SeededHash

logger = structlog.get_logger()

DIVERSITY_ROLL_OFFSET = 601.0
DIVERSITY_PICK_OFFSET = 607.0
RARE_ROLL_OFFSET = 701.0
RARE_PICK_OFFSET = 709.0


@dataclass
class EnforcerOptions:
    """Fallback tuning for the per-cell enforcer."""

    diversity_probability: float = 0.4
    rare_probability: float = 0.3
    rare_threshold: int = 50
    near_threshold: float = 0.1  # Island-relative magnitude for "central"
    far_threshold: float = 0.3  # Island-relative magnitude for "far" directions
    default_biome: BiomeType = BiomeType.SCRUB


class QuotaEnforcer:
    """Places one cell at a time against a shared QuotaState."""

    def __init__(
        self,
        state: QuotaState,
        hasher: SeededHash,
        options: Optional[EnforcerOptions] = None,
    ):
        self.state = state
        self.hasher = hasher
        self.options = options or EnforcerOptions()
        self.decisions = Counter()  # Placement reason -> count

    def place(self, x: int, z: int, ix: float, iz: float, preferred: BiomeType) -> BiomeType:
        """Resolve a biome for the cell and consume one unit of its quota."""
        biome = self.resolve(x, z, ix, iz, BiomeType(preferred))
        self.state.consume(biome)
        return biome

    def resolve(self, x: int, z: int, ix: float, iz: float, preferred: BiomeType) -> BiomeType:
        """Pick the biome for a cell without consuming quota."""
        if self.state.remaining_for(preferred) > 0:
            self.decisions["preferred"] += 1
            return preferred

        steps = (
            ("diversity", lambda: self._force_diversity(x, z, ix, iz)),
            ("rare", lambda: self._boost_rare(x, z)),
            ("similar", lambda: self._similar(preferred)),
            ("any", self._any_available),
        )
        for reason, step in steps:
            choice = step()
            if choice is not None:
                self.decisions[reason] += 1
                return choice

        # Over-allocates past zero; the only path that makes remaining negative
        self.decisions["absolute"] += 1
        logger.debug(
            "Absolute fallback used",
            x=x,
            z=z,
            biome=self.options.default_biome.name,
            remaining=self.state.remaining_for(self.options.default_biome),
        )
        return self.options.default_biome

    def _force_diversity(self, x: int, z: int, ix: float, iz: float) -> Optional[BiomeType]:
        missing = [b for b in self.state.never_placed() if b != ABSORBER_BIOME]
        if not missing:
            return None
        if self.hasher(x, z, DIVERSITY_ROLL_OFFSET) >= self.options.diversity_probability:
            return None

        suited = [b for b in self.geographic_candidates(ix, iz) if b in missing]
        return self.hasher.pick(x, z, DIVERSITY_PICK_OFFSET, suited or missing)

    def _boost_rare(self, x: int, z: int) -> Optional[BiomeType]:
        rare = [b for b in self.state.rare(self.options.rare_threshold) if b != ABSORBER_BIOME]
        if not rare:
            return None
        if self.hasher(x, z, RARE_ROLL_OFFSET) >= self.options.rare_probability:
            return None
        return self.hasher.pick(x, z, RARE_PICK_OFFSET, rare)

    def _similar(self, preferred: BiomeType) -> Optional[BiomeType]:
        for substitute in SIMILAR_BIOMES.get(preferred, []):
            if self.state.remaining_for(substitute) > 0:
                return substitute
        return None

    def _any_available(self) -> Optional[BiomeType]:
        available = self.state.available()
        return available[0] if available else None

    def geographic_candidates(self, ix: float, iz: float) -> List[BiomeType]:
        """Biomes that suit a position, from its island-relative direction."""
        near = self.options.near_threshold
        far = self.options.far_threshold
        candidates = []

        if abs(ix) < near and abs(iz) < near:
            candidates += [BiomeType.MOUNTAINS, BiomeType.URBAN]

        if iz < -far:
            candidates += [BiomeType.TUNDRA, BiomeType.BOREAL_FOREST]
        elif iz < -near:
            candidates += [BiomeType.BOREAL_FOREST, BiomeType.TEMPERATE_FOREST]
        elif iz > far:
            candidates += [BiomeType.TROPICAL_RAINFOREST, BiomeType.SAVANNA, BiomeType.DESERTS]
        elif iz > near:
            candidates += [BiomeType.TEMPERATE_FOREST, BiomeType.TEMPERATE_GRASSLAND]

        if ix > far:
            candidates += [BiomeType.CROPLAND, BiomeType.PASTURELAND]
        elif ix < -far:
            candidates += [BiomeType.TEMPERATE_GRASSLAND, BiomeType.SCRUB, BiomeType.FRESHWATER]

        return candidates


def enforce_grid(
    field: TerrainField,
    preferences: np.ndarray,
    state: QuotaState,
    hasher: SeededHash,
    options: Optional[EnforcerOptions] = None,
) -> np.ndarray:
    """
    Run the enforcer over every cell in radial order.

    Args:
        field: Terrain field of the grid
        preferences: Preferred biome per cell, shape (size, size)
        state: Quota state, mutated in place
        hasher: Seeded hash for the run
        options: Enforcer options

    Returns:
        Assigned biome per cell, shape (size, size)
    """
    enforcer = QuotaEnforcer(state, hasher, options)
    assigned = np.empty(field.grid.cell_count, dtype=np.uint8)

    xs = field.xs.ravel()
    zs = field.zs.ravel()
    ix = field.ix.ravel()
    iz = field.iz.ravel()
    flat_preferences = preferences.ravel()

    for cell in field.grid.radial_order():
        assigned[cell] = enforcer.place(
            int(xs[cell]), int(zs[cell]), float(ix[cell]), float(iz[cell]), flat_preferences[cell]
        )

    logger.info("Per-cell enforcement completed", decisions=dict(enforcer.decisions))
    return assigned.reshape(field.shape)
