"""
Freshwater feature overlay.

This module implements:
- Meandering rivers along source -> target segments
- Lakes around a center with jittered shores
- Coastal wetlands in the outer land ring

Features are drawn after placement and only reclassify land cells. Quota
bookkeeping is not touched here; callers reconcile counts afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np
import structlog

from .biomes import WATER_BIOMES, BiomeType
from .clustering import ISLAND_RADIUS_FACTOR, TerrainField
from .seeded_hash import SeededHash

logger = structlog.get_logger()


class WaterFeatureKind(str, Enum):
    """Kinds of freshwater features."""

    RIVER = "river"
    LAKE = "lake"
    WETLAND = "wetland"


@dataclass(frozen=True)
class WaterFeatureSpec:
    """
    Static description of one feature.

    Points and sizes are island-relative so features scale with the grid.
    Rivers use ``points`` as (source, target); lakes and wetlands use the
    first point as their center.
    """

    kind: WaterFeatureKind
    points: Tuple[Tuple[float, float], ...]
    radius: float  # River half-width at the source, lake/wetland radius
    density: float = 1.0  # Probability a qualifying cell becomes water
    offset: float = 0.0  # Hash stream offset, unique per feature
    min_elevation: float = 0.0  # Cells below this stay dry
    max_elevation: float = 1.4  # Cells above this stay dry; rivers lower it toward the mouth
    meander_amplitude: float = 0.0
    meander_cycles: float = 0.0
    width_growth: float = 1.0  # River width multiplier gained by the mouth
    band_shrink: float = 0.3  # Share of max_elevation lost by the mouth
    shore_jitter: float = 0.3
    coastal_band: Tuple[float, float] = (0.6, 0.8)  # Wetland normalized distance gate


DEFAULT_WATER_FEATURES: Tuple[WaterFeatureSpec, ...] = (
    WaterFeatureSpec(
        WaterFeatureKind.LAKE,
        ((-0.3, 0.25),),
        0.15,
        density=0.75,
        offset=1000.0,
        min_elevation=0.2,
        max_elevation=1.3,
    ),
    WaterFeatureSpec(
        WaterFeatureKind.RIVER,
        ((-0.3, 0.25), (-0.3, 1.05)),
        0.015,
        density=0.6,
        offset=1100.0,
        min_elevation=0.1,
        meander_amplitude=0.1,
        meander_cycles=3.0,
    ),
    WaterFeatureSpec(
        WaterFeatureKind.RIVER,
        ((-0.3, 0.25), (1.05, 0.35)),
        0.015,
        density=0.6,
        offset=1200.0,
        min_elevation=0.1,
        meander_amplitude=0.08,
        meander_cycles=2.5,
    ),
    WaterFeatureSpec(
        WaterFeatureKind.RIVER,
        ((0.45, -0.35), (0.95, -0.95)),
        0.012,
        density=0.6,
        offset=1300.0,
        min_elevation=0.1,
        meander_amplitude=0.06,
        meander_cycles=2.0,
    ),
    WaterFeatureSpec(
        WaterFeatureKind.WETLAND, ((0.0, -0.7),), 0.2, density=0.5, offset=1400.0
    ),
    WaterFeatureSpec(
        WaterFeatureKind.WETLAND, ((-0.65, 0.3),), 0.15, density=0.5, offset=1500.0
    ),
)


@dataclass
class WaterFeatureOptions:
    """Water overlay options."""

    enabled: bool = True
    features: Sequence[WaterFeatureSpec] = field(
        default_factory=lambda: list(DEFAULT_WATER_FEATURES)
    )
    bank_jitter: float = 1.0  # Tiles of hash noise on river banks
    min_river_width: float = 0.75  # Tiles, so rivers survive on small grids


class WaterFeatureOverlay:
    """Reclassifies land cells into freshwater features."""

    def __init__(self, hasher: SeededHash, options: Optional[WaterFeatureOptions] = None):
        self.hasher = hasher
        self.options = options or WaterFeatureOptions()

    def apply(self, field: TerrainField, assigned: np.ndarray) -> Tuple[np.ndarray, int]:
        """
        Draw every feature onto a copy of the assignment.

        Args:
            field: Terrain field of the grid
            assigned: Biome per cell, shape (size, size)

        Returns:
            (new assignment, number of cells converted to freshwater)
        """
        result = np.array(assigned, dtype=np.uint8, copy=True)
        if not self.options.enabled:
            return result, 0

        land = ~np.isin(result, np.array([int(b) for b in WATER_BIOMES], dtype=np.uint8))
        water = self.water_mask(field, candidates=land)

        result[water] = BiomeType.FRESHWATER
        converted = int(water.sum())
        logger.info("Water features applied", converted=converted, grid_size=field.grid.size)
        return result, converted

    def water_mask(self, field: TerrainField, candidates: Optional[np.ndarray] = None) -> np.ndarray:
        """Cells for which any feature predicate holds."""
        pending = np.ones(field.shape, dtype=bool) if candidates is None else candidates.copy()
        water = np.zeros(field.shape, dtype=bool)

        for spec in self.options.features:
            if not pending.any():
                break
            hit = self.feature_mask(spec, field) & pending
            water |= hit
            pending &= ~hit

        return water

    def feature_mask(self, spec: WaterFeatureSpec, field: TerrainField) -> np.ndarray:
        if spec.kind == WaterFeatureKind.RIVER:
            return self._river(spec, field)
        if spec.kind == WaterFeatureKind.LAKE:
            return self._lake(spec, field)
        if spec.kind == WaterFeatureKind.WETLAND:
            return self._wetland(spec, field)
        raise ValueError(f"Unknown water feature kind: {spec.kind}")

    def _scale(self, field: TerrainField) -> float:
        return max(field.grid.half_size * ISLAND_RADIUS_FACTOR, 1.0)

    def _density(self, spec: WaterFeatureSpec, field: TerrainField) -> np.ndarray:
        return self.hasher(field.xs, field.zs, spec.offset + 1) < spec.density

    def _jittered_radius(self, spec: WaterFeatureSpec, field: TerrainField) -> np.ndarray:
        jitter = self.hasher.centered(field.xs, field.zs, spec.offset + 2)
        return spec.radius * self._scale(field) * (1.0 + jitter * spec.shore_jitter)

    def _elevation_band(
        self, spec: WaterFeatureSpec, field: TerrainField, ceiling_scale=1.0
    ) -> np.ndarray:
        """Cells inside [min_elevation, max_elevation * ceiling_scale]."""
        ceiling = spec.max_elevation * ceiling_scale
        return (field.elevation >= spec.min_elevation) & (field.elevation <= ceiling)

    def _distance_to_center(self, spec: WaterFeatureSpec, field: TerrainField) -> np.ndarray:
        scale = self._scale(field)
        cx, cz = spec.points[0]
        return np.hypot(field.xs - cx * scale, field.zs - cz * scale)

    def _river(self, spec: WaterFeatureSpec, field: TerrainField) -> np.ndarray:
        scale = self._scale(field)
        (sx, sz), (tx, tz) = spec.points[0], spec.points[1]
        sx, sz, tx, tz = sx * scale, sz * scale, tx * scale, tz * scale
        dx, dz = tx - sx, tz - sz
        length = float(np.hypot(dx, dz))
        if length == 0:
            return np.zeros(field.shape, dtype=bool)

        rel_x = field.xs - sx
        rel_z = field.zs - sz
        progress = (rel_x * dx + rel_z * dz) / (length * length)
        lateral = (rel_x * -dz + rel_z * dx) / length

        meander = np.sin(progress * np.pi * spec.meander_cycles) * spec.meander_amplitude * scale
        width = max(spec.radius * scale, self.options.min_river_width) * (
            1.0 + spec.width_growth * progress
        )
        bank = self.hasher.centered(field.xs, field.zs, spec.offset + 2) * self.options.bank_jitter

        channel = np.abs(lateral - meander) <= width + bank
        along = (progress >= 0.0) & (progress <= 1.0)
        band = self._elevation_band(spec, field, 1.0 - spec.band_shrink * progress)
        return along & channel & band & self._density(spec, field)

    def _lake(self, spec: WaterFeatureSpec, field: TerrainField) -> np.ndarray:
        inside = self._distance_to_center(spec, field) <= self._jittered_radius(spec, field)
        band = self._elevation_band(spec, field)
        return inside & band & self._density(spec, field)

    def _wetland(self, spec: WaterFeatureSpec, field: TerrainField) -> np.ndarray:
        inside = self._distance_to_center(spec, field) <= self._jittered_radius(spec, field)
        low, high = spec.coastal_band
        coastal = (field.normalized_distance >= low) & (field.normalized_distance <= high)
        return inside & coastal & self._density(spec, field)
