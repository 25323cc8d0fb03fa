"""
Integer tile quotas per biome.

This module implements:
- Exact quota computation from area fractions (sum always equals N²)
- Ocean-ratio enforcement with proportional land rescaling
- QuotaState, the explicit per-run counter threaded through placement
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog

from .biomes import ABSORBER_BIOME, BIOME_KEYS, LAND_BIOMES, BiomeType
from .grid import GridSpec
from .population import PopulationAreaModel

logger = structlog.get_logger()


@dataclass
class QuotaOptions:
    """Quota calculation options."""

    ocean_fraction: float = 0.709  # Global ocean share used when enforcing


class QuotaState:
    """
    Target and remaining tile counts for one generation run.

    Remaining counts only ever go down; they go below zero only through the
    enforcer's absolute fallback.
    """

    def __init__(self, quotas: Dict[BiomeType, int]):
        self.quotas = {biome: int(quotas.get(biome, 0)) for biome in BiomeType}
        self.remaining = dict(self.quotas)

    @property
    def total(self) -> int:
        return sum(self.quotas.values())

    def remaining_for(self, biome: BiomeType) -> int:
        return self.remaining[biome]

    def placed(self, biome: BiomeType) -> int:
        return self.quotas[biome] - self.remaining[biome]

    def consume(self, biome: BiomeType, count: int = 1) -> int:
        """Record ``count`` placements and return what is left."""
        self.remaining[biome] -= count
        return self.remaining[biome]

    def available(self) -> List[BiomeType]:
        """Biomes with quota left, in fixed enum order."""
        return [biome for biome in BiomeType if self.remaining[biome] > 0]

    def never_placed(self) -> List[BiomeType]:
        """Placeable biomes that have not received a single tile yet."""
        return [
            biome
            for biome in BiomeType
            if self.quotas[biome] > 0 and self.remaining[biome] == self.quotas[biome]
        ]

    def rare(self, threshold: int) -> List[BiomeType]:
        """Placeable biomes with fewer than ``threshold`` tiles placed so far."""
        return [
            biome
            for biome in BiomeType
            if self.remaining[biome] > 0 and self.placed(biome) < threshold
        ]

    def reconciled(self, counts: Dict[BiomeType, int]) -> "QuotaState":
        """New state with remaining recomputed from actual tile counts."""
        state = QuotaState(self.quotas)
        for biome in BiomeType:
            state.remaining[biome] = self.quotas[biome] - int(counts.get(biome, 0))
        return state

    def copy(self) -> "QuotaState":
        state = QuotaState(self.quotas)
        state.remaining = dict(self.remaining)
        return state

    def as_keys(self, values: Optional[Dict[BiomeType, int]] = None) -> Dict[str, int]:
        values = self.quotas if values is None else values
        return {BIOME_KEYS[biome]: count for biome, count in values.items()}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class QuotaCalculator:
    """Turns area fractions and a grid size into exact integer quotas."""

    def __init__(
        self,
        model: Optional[PopulationAreaModel] = None,
        options: Optional[QuotaOptions] = None,
    ):
        self.model = model or PopulationAreaModel()
        self.options = options or QuotaOptions()

    def calculate(self, grid: GridSpec, year: int) -> Dict[BiomeType, int]:
        """
        Compute quotas for every biome.

        Every biome except the absorber is rounded independently; the
        absorber takes whatever is left so the total is exactly N².
        """
        total_tiles = grid.cell_count
        area_per_person = self.model.area_per_person(year)
        breakdown = self.model.biome_area_breakdown(year)

        quotas = {}
        for biome in BiomeType:
            if biome == ABSORBER_BIOME:
                continue
            quotas[biome] = _round_half_up(total_tiles * breakdown[biome] / area_per_person)

        quotas[ABSORBER_BIOME] = total_tiles - sum(quotas.values())
        if quotas[ABSORBER_BIOME] < 0:
            self._trim_overflow(quotas)

        logger.info(
            "Quotas calculated",
            grid_size=grid.size,
            total_tiles=total_tiles,
            absorber=quotas[ABSORBER_BIOME],
        )
        return quotas

    def _trim_overflow(self, quotas: Dict[BiomeType, int]):
        """Take tiles back from the largest quotas until the absorber is non-negative."""
        overflow = -quotas[ABSORBER_BIOME]
        logger.warning("Quota overflow, trimming largest biomes", overflow=overflow)
        order = sorted(
            (b for b in quotas if b != ABSORBER_BIOME),
            key=lambda b: (-quotas[b], BIOME_KEYS[b]),
        )
        while overflow > 0:
            for biome in order:
                if overflow == 0:
                    break
                if quotas[biome] > 0:
                    quotas[biome] -= 1
                    overflow -= 1
        quotas[ABSORBER_BIOME] = 0

    def enforce_ocean_ratio(
        self, quotas: Dict[BiomeType, int], grid: GridSpec
    ) -> Dict[BiomeType, int]:
        """
        Rescale quotas so saltwater holds the global ocean fraction.

        Freshwater is clamped to what the ocean leaves over, then the land
        biomes are scaled down proportionally (floored, with the remainder
        handed to the largest original allocations, ties by key).
        """
        total_tiles = grid.cell_count
        desired_saltwater = math.floor(total_tiles * self.options.ocean_fraction)

        enforced = dict(quotas)
        enforced[BiomeType.FRESHWATER] = min(
            quotas.get(BiomeType.FRESHWATER, 0), total_tiles - desired_saltwater
        )
        land_budget = total_tiles - desired_saltwater - enforced[BiomeType.FRESHWATER]

        scaled = self._rescale({b: quotas.get(b, 0) for b in LAND_BIOMES}, land_budget)
        enforced.update(scaled)
        enforced[ABSORBER_BIOME] = total_tiles - sum(
            count for biome, count in enforced.items() if biome != ABSORBER_BIOME
        )

        logger.info(
            "Ocean ratio enforced",
            desired_saltwater=desired_saltwater,
            saltwater=enforced[ABSORBER_BIOME],
            freshwater=enforced[BiomeType.FRESHWATER],
            land_budget=land_budget,
        )
        return enforced

    def _rescale(self, quotas: Dict[BiomeType, int], budget: int) -> Dict[BiomeType, int]:
        original_total = sum(quotas.values())
        if original_total == 0:
            logger.warning("No land quota to rescale", budget=budget)
            return {biome: 0 for biome in quotas}

        scaled = {biome: count * budget // original_total for biome, count in quotas.items()}
        remainder = budget - sum(scaled.values())
        order = sorted(quotas, key=lambda b: (-quotas[b], BIOME_KEYS[b]))
        for biome in order[:remainder]:
            scaled[biome] += 1
        return scaled

    def build_state(
        self, grid: GridSpec, year: int, enforce_ocean_quota: bool = False
    ) -> QuotaState:
        """Compute quotas and wrap them in a fresh QuotaState."""
        quotas = self.calculate(grid, year)
        if enforce_ocean_quota:
            quotas = self.enforce_ocean_ratio(quotas, grid)
        return QuotaState(quotas)


def validate_quotas(quotas: Dict[BiomeType, int], grid: GridSpec) -> None:
    """Raise ValueError unless quotas are non-negative and sum to N²."""
    negative = [BIOME_KEYS[b] for b, count in quotas.items() if count < 0]
    if negative:
        raise ValueError(f"Negative quotas for {', '.join(negative)}")
    total = sum(quotas.values())
    if total != grid.cell_count:
        raise ValueError(
            f"Quotas sum to {total}, expected {grid.cell_count} for a {grid.size}x{grid.size} grid"
        )
