"""Tests for the freshwater feature overlay."""

from dataclasses import replace

import numpy as np
import pytest

from py_fairshare.core.biomes import BiomeType
from py_fairshare.core.clustering import TerrainField
from py_fairshare.core.grid import GridSpec
from py_fairshare.core.hydrology import (
    DEFAULT_WATER_FEATURES,
    WaterFeatureKind,
    WaterFeatureOptions,
    WaterFeatureOverlay,
    WaterFeatureSpec,
)
from py_fairshare.core.seeded_hash import SeededHash


@pytest.fixture
def hasher():
    return SeededHash(2718.0)


@pytest.fixture
def field(hasher):
    return TerrainField.build(GridSpec(141), hasher)


@pytest.fixture
def all_land():
    return np.full((141, 141), BiomeType.SCRUB, dtype=np.uint8)


class TestWaterFeatureOverlay:
    """Test overlay application."""

    def test_converts_land_to_freshwater(self, hasher, field, all_land):
        result, converted = WaterFeatureOverlay(hasher).apply(field, all_land)
        assert converted > 0
        assert int((result == BiomeType.FRESHWATER).sum()) == converted
        assert set(np.unique(result).tolist()) == {BiomeType.SCRUB, BiomeType.FRESHWATER}

    def test_input_not_modified(self, hasher, field, all_land):
        WaterFeatureOverlay(hasher).apply(field, all_land)
        assert np.all(all_land == BiomeType.SCRUB)

    def test_water_cells_untouched(self, hasher, field):
        sea = np.full((141, 141), BiomeType.SALTWATER, dtype=np.uint8)
        result, converted = WaterFeatureOverlay(hasher).apply(field, sea)
        assert converted == 0
        assert np.all(result == BiomeType.SALTWATER)

    def test_disabled(self, hasher, field, all_land):
        overlay = WaterFeatureOverlay(hasher, WaterFeatureOptions(enabled=False))
        result, converted = overlay.apply(field, all_land)
        assert converted == 0
        assert np.array_equal(result, all_land)

    def test_deterministic(self, hasher, field, all_land):
        first, _ = WaterFeatureOverlay(hasher).apply(field, all_land)
        second, _ = WaterFeatureOverlay(SeededHash(hasher.seed)).apply(field, all_land)
        assert np.array_equal(first, second)

    def test_candidates_restrict_mask(self, hasher, field):
        candidates = np.zeros(field.shape, dtype=bool)
        candidates[:, :70] = True
        water = WaterFeatureOverlay(hasher).water_mask(field, candidates)
        assert not water[:, 70:].any()

    def test_default_features(self):
        kinds = [spec.kind for spec in DEFAULT_WATER_FEATURES]
        assert kinds.count(WaterFeatureKind.RIVER) == 3
        assert kinds.count(WaterFeatureKind.LAKE) == 1
        assert kinds.count(WaterFeatureKind.WETLAND) == 2
        assert len({spec.offset for spec in DEFAULT_WATER_FEATURES}) == len(DEFAULT_WATER_FEATURES)


class TestFeatureMasks:
    """Test individual feature predicates."""

    def test_lake_is_near_center(self, hasher, field):
        spec = WaterFeatureSpec(
            WaterFeatureKind.LAKE, ((0.0, 0.0),), 0.2, offset=10.0, max_elevation=2.0
        )
        mask = WaterFeatureOverlay(hasher).feature_mask(spec, field)
        assert mask.any()
        # Radius 0.2 island radii with 30% shore jitter stays well inside 0.3
        scale = 70 * 0.65
        assert np.all(np.hypot(field.xs[mask], field.zs[mask]) <= 0.3 * scale)

    def test_lake_density(self, hasher, field):
        full = WaterFeatureSpec(
            WaterFeatureKind.LAKE, ((0.0, 0.0),), 0.3, offset=20.0, max_elevation=2.0
        )
        sparse = WaterFeatureSpec(
            WaterFeatureKind.LAKE, ((0.0, 0.0),), 0.3, density=0.3, offset=20.0, max_elevation=2.0
        )
        overlay = WaterFeatureOverlay(hasher)
        assert overlay.feature_mask(sparse, field).sum() < overlay.feature_mask(full, field).sum()

    def test_elevation_band(self, hasher, field):
        spec = WaterFeatureSpec(
            WaterFeatureKind.LAKE, ((0.0, 0.0),), 0.3, offset=30.0, max_elevation=-1.0
        )
        assert not WaterFeatureOverlay(hasher).feature_mask(spec, field).any()

    def test_elevation_floor(self, hasher, field):
        spec = WaterFeatureSpec(
            WaterFeatureKind.LAKE, ((0.0, 0.0),), 0.3, offset=30.0, min_elevation=5.0
        )
        assert not WaterFeatureOverlay(hasher).feature_mask(spec, field).any()

    def test_default_bands_inside_terrain_range(self, field):
        for spec in DEFAULT_WATER_FEATURES:
            if spec.kind != WaterFeatureKind.WETLAND:
                assert spec.max_elevation < field.elevation.max()
                assert spec.min_elevation < spec.max_elevation

    def test_default_lake_band_excludes_cells(self, hasher, field):
        lake = next(s for s in DEFAULT_WATER_FEATURES if s.kind == WaterFeatureKind.LAKE)
        unbounded = replace(lake, min_elevation=-np.inf, max_elevation=np.inf)
        overlay = WaterFeatureOverlay(hasher)

        gated = overlay.feature_mask(lake, field)
        open_basin = overlay.feature_mask(unbounded, field)
        assert gated.any()
        assert np.all(open_basin[gated])
        assert gated.sum() < open_basin.sum()

    def test_river_ceiling_drops_toward_mouth(self, hasher, field):
        spec = WaterFeatureSpec(
            WaterFeatureKind.RIVER,
            ((0.0, 0.0), (0.0, 1.0)),
            0.02,
            offset=60.0,
            min_elevation=0.1,
            max_elevation=1.4,
        )
        mask = WaterFeatureOverlay(hasher).feature_mask(spec, field)
        assert mask.any()
        progress = field.zs[mask] / (70 * 0.65)
        elevation = field.elevation[mask]
        assert np.all(elevation <= 1.4 * (1.0 - 0.3 * progress))
        assert np.all(elevation >= 0.1)

    def test_river_follows_segment(self, hasher, field):
        spec = WaterFeatureSpec(
            WaterFeatureKind.RIVER, ((0.0, 0.0), (0.0, 1.0)), 0.02, offset=40.0
        )
        mask = WaterFeatureOverlay(hasher).feature_mask(spec, field)
        assert mask.any()
        # Straight river running south from the origin
        assert np.all(field.zs[mask] >= 0)
        assert np.all(np.abs(field.xs[mask]) <= 5)

    def test_zero_length_river(self, hasher, field):
        spec = WaterFeatureSpec(WaterFeatureKind.RIVER, ((0.2, 0.2), (0.2, 0.2)), 0.05)
        assert not WaterFeatureOverlay(hasher).feature_mask(spec, field).any()

    def test_wetland_in_coastal_band(self, hasher, field):
        spec = WaterFeatureSpec(WaterFeatureKind.WETLAND, ((0.0, 0.7),), 0.3, offset=50.0)
        mask = WaterFeatureOverlay(hasher).feature_mask(spec, field)
        assert mask.any()
        distances = field.normalized_distance[mask]
        assert np.all((distances >= 0.6) & (distances <= 0.8))

    def test_unknown_kind(self, hasher, field):
        spec = WaterFeatureSpec("glacier", ((0.0, 0.0),), 0.1)
        with pytest.raises(ValueError):
            WaterFeatureOverlay(hasher).feature_mask(spec, field)
