"""Tests for quota calculation and quota state."""

import math
from dataclasses import fields

import pytest

from py_fairshare.core.biomes import ABSORBER_BIOME, LAND_BIOMES, BiomeType
from py_fairshare.core.grid import GridSpec
from py_fairshare.core.population import PopulationAreaModel
from py_fairshare.core.quotas import QuotaCalculator, QuotaOptions, QuotaState, validate_quotas


class InflatedModel(PopulationAreaModel):
    """Breakdown that asks for far more area than exists."""

    def biome_area_breakdown(self, year):
        total = self.area_per_person(year)
        return {biome: total * 0.2 for biome in BiomeType}


def fields_of(options_type):
    return [f.name for f in fields(options_type)]


@pytest.fixture
def calculator():
    return QuotaCalculator()


class TestQuotaCalculator:
    """Test quota computation."""

    @pytest.mark.parametrize("size", [1, 3, 51, 141, 251, 499])
    def test_sum_equals_cell_count(self, calculator, size):
        quotas = calculator.calculate(GridSpec(size), 2025)
        assert sum(quotas.values()) == size * size
        assert all(count >= 0 for count in quotas.values())

    def test_covers_every_biome(self, calculator):
        quotas = calculator.calculate(GridSpec(51), 2025)
        assert set(quotas) == set(BiomeType)

    def test_non_absorber_rounding(self, calculator):
        """Each biome except the absorber rounds half up independently."""
        grid = GridSpec(141)
        model = PopulationAreaModel()
        area = model.area_per_person(2025)
        breakdown = model.biome_area_breakdown(2025)
        quotas = calculator.calculate(grid, 2025)
        for biome in BiomeType:
            if biome == ABSORBER_BIOME:
                continue
            expected = math.floor(grid.cell_count * breakdown[biome] / area + 0.5)
            assert quotas[biome] == expected

    def test_absorber_takes_remainder(self, calculator):
        grid = GridSpec(251)
        quotas = calculator.calculate(grid, 2025)
        others = sum(count for biome, count in quotas.items() if biome != ABSORBER_BIOME)
        assert quotas[ABSORBER_BIOME] == grid.cell_count - others

    def test_independent_of_year(self, calculator):
        """Fractions are per person, so a fixed grid gets the same split any year."""
        grid = GridSpec(141)
        assert calculator.calculate(grid, 1950) == calculator.calculate(grid, 2080)

    def test_overflow_is_trimmed(self):
        calculator = QuotaCalculator(model=InflatedModel())
        grid = GridSpec(5)
        quotas = calculator.calculate(grid, 2025)
        assert quotas[ABSORBER_BIOME] == 0
        assert sum(quotas.values()) == 25
        assert all(count >= 0 for count in quotas.values())

    def test_options_cover_ocean_fraction_only(self):
        """Rare-biome tuning belongs to the enforcer, not the quota calculator."""
        assert fields_of(QuotaOptions) == ["ocean_fraction"]


class TestOceanEnforcement:
    """Test ocean-ratio rescaling."""

    @pytest.mark.parametrize("size", [51, 141, 499])
    def test_saltwater_matches_ocean_fraction(self, calculator, size):
        grid = GridSpec(size)
        quotas = calculator.enforce_ocean_ratio(calculator.calculate(grid, 2025), grid)
        assert quotas[BiomeType.SALTWATER] == math.floor(grid.cell_count * 0.709)
        assert sum(quotas.values()) == grid.cell_count

    def test_land_scaled_down_proportionally(self, calculator):
        grid = GridSpec(141)
        original = calculator.calculate(grid, 2025)
        enforced = calculator.enforce_ocean_ratio(original, grid)
        for biome in LAND_BIOMES:
            assert 0 <= enforced[biome] <= original[biome]
        # The largest land biome stays the largest
        largest = max(LAND_BIOMES, key=lambda b: original[b])
        assert enforced[largest] == max(enforced[b] for b in LAND_BIOMES)

    def test_freshwater_kept_when_it_fits(self, calculator):
        grid = GridSpec(141)
        original = calculator.calculate(grid, 2025)
        enforced = calculator.enforce_ocean_ratio(original, grid)
        assert enforced[BiomeType.FRESHWATER] == original[BiomeType.FRESHWATER]

    def test_custom_ocean_fraction(self):
        calculator = QuotaCalculator(options=QuotaOptions(ocean_fraction=0.5))
        grid = GridSpec(51)
        quotas = calculator.enforce_ocean_ratio(calculator.calculate(grid, 2025), grid)
        assert quotas[BiomeType.SALTWATER] == math.floor(2601 * 0.5)

    def test_build_state(self, calculator):
        grid = GridSpec(51)
        state = calculator.build_state(grid, 2025, enforce_ocean_quota=True)
        assert state.total == grid.cell_count
        assert state.remaining == state.quotas
        assert state.quotas[BiomeType.SALTWATER] == math.floor(2601 * 0.709)


class TestValidateQuotas:
    """Test quota validation."""

    def test_valid(self):
        validate_quotas({BiomeType.SALTWATER: 9}, GridSpec(3))

    def test_wrong_sum(self):
        with pytest.raises(ValueError, match="sum to 8"):
            validate_quotas({BiomeType.SALTWATER: 8}, GridSpec(3))

    def test_negative(self):
        with pytest.raises(ValueError, match="Negative"):
            validate_quotas({BiomeType.SALTWATER: 10, BiomeType.URBAN: -1}, GridSpec(3))


class TestQuotaState:
    """Test the per-run quota counter."""

    @pytest.fixture
    def state(self):
        return QuotaState(
            {BiomeType.MOUNTAINS: 2, BiomeType.URBAN: 60, BiomeType.SALTWATER: 10}
        )

    def test_missing_biomes_are_zero(self, state):
        assert state.quotas[BiomeType.DESERTS] == 0
        assert state.total == 72

    def test_consume(self, state):
        assert state.consume(BiomeType.MOUNTAINS) == 1
        assert state.placed(BiomeType.MOUNTAINS) == 1
        assert state.consume(BiomeType.URBAN, 5) == 55

    def test_available_in_enum_order(self, state):
        assert state.available() == [BiomeType.MOUNTAINS, BiomeType.URBAN, BiomeType.SALTWATER]
        state.consume(BiomeType.MOUNTAINS, 2)
        assert state.available() == [BiomeType.URBAN, BiomeType.SALTWATER]

    def test_never_placed(self, state):
        state.consume(BiomeType.URBAN)
        assert state.never_placed() == [BiomeType.MOUNTAINS, BiomeType.SALTWATER]

    def test_rare(self, state):
        state.consume(BiomeType.URBAN, 55)
        assert BiomeType.URBAN not in state.rare(50)
        assert BiomeType.MOUNTAINS in state.rare(50)

    def test_reconciled(self, state):
        reconciled = state.reconciled({BiomeType.MOUNTAINS: 3, BiomeType.URBAN: 60})
        assert reconciled.remaining[BiomeType.MOUNTAINS] == -1
        assert reconciled.remaining[BiomeType.URBAN] == 0
        assert reconciled.remaining[BiomeType.SALTWATER] == 10
        assert state.remaining[BiomeType.MOUNTAINS] == 2

    def test_copy_is_independent(self, state):
        copy = state.copy()
        copy.consume(BiomeType.URBAN, 10)
        assert state.remaining[BiomeType.URBAN] == 60

    def test_as_keys(self, state):
        keys = state.as_keys()
        assert keys["mountains"] == 2
        assert keys["saltwater"] == 10
