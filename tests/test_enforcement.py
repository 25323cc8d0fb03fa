"""Tests for the per-cell quota enforcer."""

import numpy as np
import pytest

from py_fairshare.core.biomes import BiomeType
from py_fairshare.core.clustering import BiomeClusterAssigner, TerrainField
from py_fairshare.core.enforcement import EnforcerOptions, QuotaEnforcer, enforce_grid
from py_fairshare.core.grid import GridSpec
from py_fairshare.core.quotas import QuotaCalculator, QuotaState
from py_fairshare.core.seeded_hash import SeededHash

NO_RANDOM_STEPS = EnforcerOptions(diversity_probability=0.0, rare_probability=0.0)


@pytest.fixture
def hasher():
    return SeededHash(17.0)


class TestQuotaEnforcer:
    """Test the fallback chain."""

    def test_preferred_with_quota(self, hasher):
        state = QuotaState({BiomeType.DESERTS: 2})
        enforcer = QuotaEnforcer(state, hasher)
        assert enforcer.place(0, 0, 0.0, 0.0, BiomeType.DESERTS) == BiomeType.DESERTS
        assert state.remaining_for(BiomeType.DESERTS) == 1
        assert enforcer.decisions["preferred"] == 1

    def test_resolve_does_not_consume(self, hasher):
        state = QuotaState({BiomeType.DESERTS: 2})
        QuotaEnforcer(state, hasher).resolve(0, 0, 0.0, 0.0, BiomeType.DESERTS)
        assert state.remaining_for(BiomeType.DESERTS) == 2

    def test_diversity_forcing(self, hasher):
        state = QuotaState(
            {BiomeType.MOUNTAINS: 1, BiomeType.URBAN: 5, BiomeType.SALTWATER: 10}
        )
        state.consume(BiomeType.MOUNTAINS)
        options = EnforcerOptions(diversity_probability=1.0, rare_probability=0.0)
        enforcer = QuotaEnforcer(state, hasher, options)
        # Saltwater is never forced even though it has not been placed
        assert enforcer.resolve(3, 4, 0.5, 0.5, BiomeType.MOUNTAINS) == BiomeType.URBAN
        assert enforcer.decisions["diversity"] == 1

    def test_diversity_prefers_geographic_fit(self, hasher):
        state = QuotaState(
            {BiomeType.MOUNTAINS: 1, BiomeType.URBAN: 5, BiomeType.CROPLAND: 5}
        )
        state.consume(BiomeType.MOUNTAINS)
        options = EnforcerOptions(diversity_probability=1.0, rare_probability=0.0)
        enforcer = QuotaEnforcer(state, hasher, options)
        # Far east suits cropland, not urban
        assert enforcer.resolve(9, 0, 0.8, 0.0, BiomeType.MOUNTAINS) == BiomeType.CROPLAND

    def test_rare_boosting(self, hasher):
        state = QuotaState(
            {
                BiomeType.MOUNTAINS: 1,
                BiomeType.DESERTS: 100,
                BiomeType.URBAN: 10,
                BiomeType.SALTWATER: 10,
            }
        )
        state.consume(BiomeType.MOUNTAINS)
        state.consume(BiomeType.DESERTS, 60)
        state.consume(BiomeType.URBAN, 5)
        options = EnforcerOptions(diversity_probability=0.0, rare_probability=1.0)
        enforcer = QuotaEnforcer(state, hasher, options)
        assert enforcer.resolve(1, 1, 0.0, 0.0, BiomeType.MOUNTAINS) == BiomeType.URBAN
        assert enforcer.decisions["rare"] == 1

    def test_rare_threshold_from_enforcer_options(self, hasher):
        """Biomes placed at least rare_threshold times are not boosted."""
        state = QuotaState({BiomeType.MOUNTAINS: 1, BiomeType.URBAN: 10, BiomeType.TUNDRA: 5})
        state.consume(BiomeType.MOUNTAINS)
        state.consume(BiomeType.URBAN, 5)
        state.consume(BiomeType.TUNDRA)
        options = EnforcerOptions(
            diversity_probability=0.0, rare_probability=1.0, rare_threshold=1
        )
        enforcer = QuotaEnforcer(state, hasher, options)
        assert enforcer.resolve(1, 1, 0.0, 0.0, BiomeType.MOUNTAINS) == BiomeType.TUNDRA
        assert enforcer.decisions["rare"] == 0
        assert enforcer.decisions["similar"] == 1

    def test_similar_substitute(self, hasher):
        state = QuotaState({BiomeType.TUNDRA: 5, BiomeType.DESERTS: 5})
        enforcer = QuotaEnforcer(state, hasher, NO_RANDOM_STEPS)
        assert enforcer.resolve(0, 0, 0.0, 0.0, BiomeType.MOUNTAINS) == BiomeType.TUNDRA
        assert enforcer.decisions["similar"] == 1

    def test_any_available_in_enum_order(self, hasher):
        state = QuotaState({BiomeType.CROPLAND: 3, BiomeType.FRESHWATER: 3})
        enforcer = QuotaEnforcer(state, hasher, NO_RANDOM_STEPS)
        assert enforcer.resolve(0, 0, 0.0, 0.0, BiomeType.MOUNTAINS) == BiomeType.CROPLAND
        assert enforcer.decisions["any"] == 1

    def test_absolute_fallback_over_allocates(self, hasher):
        state = QuotaState({})
        enforcer = QuotaEnforcer(state, hasher, NO_RANDOM_STEPS)
        assert enforcer.place(0, 0, 0.0, 0.0, BiomeType.MOUNTAINS) == BiomeType.SCRUB
        assert state.remaining_for(BiomeType.SCRUB) == -1
        assert enforcer.decisions["absolute"] == 1

    def test_custom_default_biome(self, hasher):
        options = EnforcerOptions(
            diversity_probability=0.0, rare_probability=0.0, default_biome=BiomeType.DESERTS
        )
        enforcer = QuotaEnforcer(QuotaState({}), hasher, options)
        assert enforcer.resolve(0, 0, 0.0, 0.0, BiomeType.URBAN) == BiomeType.DESERTS


class TestGeographicCandidates:
    """Test direction-based candidate lists."""

    @pytest.fixture
    def enforcer(self, hasher):
        return QuotaEnforcer(QuotaState({}), hasher)

    def test_center(self, enforcer):
        assert enforcer.geographic_candidates(0.0, 0.0) == [BiomeType.MOUNTAINS, BiomeType.URBAN]

    def test_far_north(self, enforcer):
        assert enforcer.geographic_candidates(0.0, -0.5) == [
            BiomeType.TUNDRA,
            BiomeType.BOREAL_FOREST,
        ]

    def test_near_north(self, enforcer):
        assert enforcer.geographic_candidates(0.0, -0.2) == [
            BiomeType.BOREAL_FOREST,
            BiomeType.TEMPERATE_FOREST,
        ]

    def test_far_south_east(self, enforcer):
        assert enforcer.geographic_candidates(0.5, 0.5) == [
            BiomeType.TROPICAL_RAINFOREST,
            BiomeType.SAVANNA,
            BiomeType.DESERTS,
            BiomeType.CROPLAND,
            BiomeType.PASTURELAND,
        ]

    def test_far_west(self, enforcer):
        assert enforcer.geographic_candidates(-0.5, 0.0) == [
            BiomeType.TEMPERATE_GRASSLAND,
            BiomeType.SCRUB,
            BiomeType.FRESHWATER,
        ]


class TestEnforceGrid:
    """Test the radial per-cell pass."""

    @pytest.fixture
    def setup(self, hasher):
        grid = GridSpec(51)
        field = TerrainField.build(grid, hasher)
        preferences = BiomeClusterAssigner(hasher).assign(field)
        state = QuotaCalculator().build_state(grid, 2025)
        return grid, field, preferences, state

    def test_every_cell_assigned(self, hasher, setup):
        grid, field, preferences, state = setup
        assigned = enforce_grid(field, preferences, state, hasher)
        assert assigned.shape == (51, 51)
        assert np.all(assigned < len(BiomeType))

    def test_one_unit_per_cell(self, hasher, setup):
        """Remaining quota drops by exactly one per cell overall."""
        grid, field, preferences, state = setup
        enforce_grid(field, preferences, state, hasher)
        assert sum(state.remaining.values()) == 0

    def test_counts_match_consumption(self, hasher, setup):
        grid, field, preferences, state = setup
        assigned = enforce_grid(field, preferences, state, hasher)
        values, counts = np.unique(assigned, return_counts=True)
        for value, count in zip(values, counts):
            assert state.placed(BiomeType(int(value))) == count

    def test_deterministic(self, hasher, setup):
        grid, field, preferences, state = setup
        first = enforce_grid(field, preferences, state.copy(), hasher)
        second = enforce_grid(field, preferences, state.copy(), hasher)
        assert np.array_equal(first, second)
