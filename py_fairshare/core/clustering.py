"""
Geographic biome clustering.

This module implements:
- TerrainField: island-relative coordinates, coastline mask and elevation
- Seed regions anchoring related biomes to parts of the island
- Per-cell preferred biome from the nearest containing seed region

Every value here is a pure function of (coordinates, seed, static tables),
so the whole grid is computed in one vectorized pass.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .biomes import BiomeType
from .grid import GridSpec
from .seeded_hash import SeededHash

logger = structlog.get_logger()

ISLAND_RADIUS_FACTOR = 0.65  # Island radius as a share of the half size

# Hash stream offsets, one per use site
ELEVATION_NOISE = ((101.0, 0.5), (211.0, 0.3), (307.0, 0.2))  # (offset, scale)
COAST_JITTER_OFFSET = 401.0
REGION_PICK_OFFSET = 503.0


@dataclass(frozen=True)
class SeedRegion:
    """Fixed geographic anchor that clusters related biomes."""

    name: str
    center: Tuple[float, float]  # Island-relative (ix, iz)
    radius: float
    group: str
    members: Tuple[BiomeType, ...]

    def contains(self, ix: float, iz: float) -> bool:
        return np.hypot(ix - self.center[0], iz - self.center[1]) <= self.radius


# The first region is the default for points no region contains
DEFAULT_SEED_REGIONS: Tuple[SeedRegion, ...] = (
    SeedRegion(
        "coastal_plains",
        (0.0, 0.85),
        0.35,
        "dryland",
        (BiomeType.SCRUB, BiomeType.TEMPERATE_GRASSLAND, BiomeType.SAVANNA),
    ),
    SeedRegion(
        "central_highlands",
        (0.0, 0.0),
        0.3,
        "highland",
        (BiomeType.MOUNTAINS, BiomeType.TUNDRA),
    ),
    SeedRegion(
        "northern_forests",
        (-0.1, -0.5),
        0.45,
        "forest",
        (BiomeType.BOREAL_FOREST, BiomeType.TEMPERATE_FOREST),
    ),
    SeedRegion(
        "southern_forests",
        (0.1, 0.45),
        0.4,
        "forest",
        (BiomeType.TEMPERATE_FOREST, BiomeType.TROPICAL_RAINFOREST),
    ),
    SeedRegion(
        "western_grasslands",
        (-0.6, 0.1),
        0.4,
        "grassland",
        (BiomeType.TEMPERATE_GRASSLAND, BiomeType.SAVANNA),
    ),
    SeedRegion(
        "eastern_farmland",
        (0.55, -0.05),
        0.4,
        "agriculture",
        (BiomeType.CROPLAND, BiomeType.PASTURELAND),
    ),
    SeedRegion(
        "settlement",
        (0.3, -0.35),
        0.15,
        "urban",
        (BiomeType.URBAN,),
    ),
    SeedRegion(
        "southeastern_drylands",
        (0.6, 0.6),
        0.35,
        "dryland",
        (BiomeType.DESERTS, BiomeType.SCRUB, BiomeType.SAVANNA),
    ),
    SeedRegion(
        "western_wetlands",
        (-0.55, -0.45),
        0.2,
        "wetland",
        (BiomeType.FRESHWATER, BiomeType.TEMPERATE_GRASSLAND),
    ),
)


@dataclass
class TerrainField:
    """Per-cell geometry shared by clustering, enforcement and water features."""

    grid: GridSpec
    xs: np.ndarray
    zs: np.ndarray
    ix: np.ndarray  # Island-relative x
    iz: np.ndarray  # Island-relative z
    normalized_distance: np.ndarray  # Distance from origin in island radii, capped at 1
    elevation: np.ndarray
    land: np.ndarray  # Inside the jittered coastline

    @property
    def shape(self) -> Tuple[int, int]:
        return self.xs.shape

    @classmethod
    def build(cls, grid: GridSpec, hasher: SeededHash) -> "TerrainField":
        """Compute island-relative coordinates, coastline and elevation."""
        xs, zs = grid.coordinate_arrays()
        radius = max(grid.half_size * ISLAND_RADIUS_FACTOR, 1.0)
        ix = xs / radius
        iz = zs / radius
        island_distance = np.hypot(ix, iz)
        normalized_distance = np.minimum(island_distance, 1.0)

        # Smooth coastline wobble plus fine hash jitter
        coast_noise = (
            np.sin(xs * 0.05 + zs * 0.03) * 0.1
            + np.cos(xs * 0.03 - zs * 0.05) * 0.08
            + hasher.centered(xs, zs, COAST_JITTER_OFFSET) * 0.05
        )
        land = island_distance + coast_noise <= 1.0

        elevation = compute_elevation(xs, zs, normalized_distance, hasher)

        return cls(
            grid=grid,
            xs=xs,
            zs=zs,
            ix=ix,
            iz=iz,
            normalized_distance=normalized_distance,
            elevation=elevation,
            land=land,
        )


def compute_elevation(
    xs: np.ndarray, zs: np.ndarray, normalized_distance: np.ndarray, hasher: SeededHash
) -> np.ndarray:
    """
    Elevation from a radial falloff, a mountain spine, foothills and noise.

    Used only to steer classification and water features; rendering uses the
    flat per-biome height.
    """
    base = 1.0 - normalized_distance
    spine = (np.abs(0.3 * xs + 0.1 * zs) < 20).astype(np.float64)
    foothill = np.exp(-((0.05 * xs + 0.03 * zs) ** 2)) * 0.8
    noise = sum(hasher.centered(xs, zs, offset) * scale for offset, scale in ELEVATION_NOISE)
    return np.maximum(0.0, base + 0.4 * (spine + foothill) + 0.3 * noise)


# Group rules return a candidate biome per masked cell
GroupRule = Callable[[TerrainField, np.ndarray], np.ndarray]


def _forest_rule(field: TerrainField, mask: np.ndarray) -> np.ndarray:
    iz = field.iz[mask]
    return np.select(
        [iz < -0.15, iz > 0.15],
        [BiomeType.BOREAL_FOREST, BiomeType.TROPICAL_RAINFOREST],
        default=BiomeType.TEMPERATE_FOREST,
    )


def _highland_rule(field: TerrainField, mask: np.ndarray) -> np.ndarray:
    return np.where(field.elevation[mask] >= 1.1, BiomeType.MOUNTAINS, BiomeType.TUNDRA)


def _grassland_rule(field: TerrainField, mask: np.ndarray) -> np.ndarray:
    return np.where(
        field.elevation[mask] >= 0.5, BiomeType.TEMPERATE_GRASSLAND, BiomeType.SAVANNA
    )


def _agriculture_rule(field: TerrainField, mask: np.ndarray) -> np.ndarray:
    return np.where(field.elevation[mask] < 0.45, BiomeType.CROPLAND, BiomeType.PASTURELAND)


GROUP_RULES: Dict[str, GroupRule] = {
    "forest": _forest_rule,
    "highland": _highland_rule,
    "grassland": _grassland_rule,
    "agriculture": _agriculture_rule,
}


class BiomeClusterAssigner:
    """Computes each cell's preferred biome from geographic seed regions."""

    def __init__(
        self,
        hasher: SeededHash,
        regions: Optional[Sequence[SeedRegion]] = None,
    ):
        """
        Initialize the assigner.

        Args:
            hasher: Seeded hash for the run
            regions: Seed regions; the first one is the default region
        """
        self.hasher = hasher
        if regions is None:
            regions = DEFAULT_SEED_REGIONS
        self.regions: List[SeedRegion] = list(regions)
        if not self.regions:
            raise ValueError("At least one seed region is required")

    def nearest_regions(self, ix: np.ndarray, iz: np.ndarray) -> np.ndarray:
        """
        Index of the closest seed region containing each point.

        Ties go to the earlier region; points outside every region get 0.
        """
        centers = np.array([region.center for region in self.regions], dtype=np.float64)
        radii = np.array([region.radius for region in self.regions], dtype=np.float64)

        distances = np.hypot(ix[..., None] - centers[:, 0], iz[..., None] - centers[:, 1])
        contained = distances <= radii
        masked = np.where(contained, distances, np.inf)
        # argmin returns the first minimum, which keeps list order on ties
        nearest = np.argmin(masked, axis=-1)
        nearest[~contained.any(axis=-1)] = 0
        return nearest

    def assign(self, field: TerrainField) -> np.ndarray:
        """
        Preferred biome for every cell.

        Cells outside the coastline prefer saltwater. The result is a hint
        for placement, not a final classification.
        """
        preferences = np.full(field.shape, BiomeType.SALTWATER, dtype=np.uint8)
        region_index = self.nearest_regions(field.ix, field.iz)

        for index, region in enumerate(self.regions):
            mask = field.land & (region_index == index)
            if not mask.any():
                continue
            preferences[mask] = self._resolve(region, field, mask)

        logger.info(
            "Biome preferences assigned",
            grid_size=field.grid.size,
            land_cells=int(field.land.sum()),
        )
        return preferences

    def _resolve(self, region: SeedRegion, field: TerrainField, mask: np.ndarray) -> np.ndarray:
        fallback = self._hash_pick(region, field, mask)
        rule = GROUP_RULES.get(region.group)
        if rule is None:
            return fallback

        chosen = rule(field, mask)
        allowed = np.isin(chosen, np.array(region.members, dtype=np.int64))
        return np.where(allowed, chosen, fallback)

    def _hash_pick(self, region: SeedRegion, field: TerrainField, mask: np.ndarray) -> np.ndarray:
        members = np.array(region.members, dtype=np.uint8)
        draws = self.hasher(field.xs[mask], field.zs[mask], REGION_PICK_OFFSET)
        picks = np.minimum((draws * len(members)).astype(np.int64), len(members) - 1)
        return members[picks]
