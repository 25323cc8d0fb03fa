"""
Population and per-person area model.

Maps a calendar year to a world population estimate, the share of the
Earth's surface each person would hold, and the split of that share across
the 14 biome classes.
"""

import math
from dataclasses import dataclass
from typing import Dict, Union

import structlog

from .biomes import BIOME_KEYS, BiomeType, biome_from_key

logger = structlog.get_logger()

BASE_POPULATION = 8_045_311_447  # UN estimate, January 2023
BASE_YEAR = 2023
EARTH_SURFACE_AREA_M2 = 510_072_000_000_000
MIN_POPULATION = 1
MAX_POPULATION = 1e300  # Saturation point for far-future years

OCEAN_SHARE = 0.7092
LAND_SHARE = 0.2908
LAND_SURFACE = 0.292
AGRICULTURAL_SHARE = 0.31

# Fraction of the total surface per person held by each biome
BIOME_AREA_FRACTIONS: Dict[BiomeType, float] = {
    BiomeType.SALTWATER: 0.6903,
    BiomeType.FRESHWATER: 0.0177,
    BiomeType.DESERTS: 0.19 * LAND_SURFACE,
    BiomeType.BOREAL_FOREST: 0.17 * LAND_SURFACE,
    BiomeType.TEMPERATE_GRASSLAND: 0.13 * LAND_SURFACE,
    BiomeType.TEMPERATE_FOREST: 0.13 * LAND_SURFACE,
    BiomeType.TUNDRA: 0.11 * LAND_SURFACE,
    BiomeType.TROPICAL_RAINFOREST: 0.10 * LAND_SURFACE,
    BiomeType.SAVANNA: 0.08 * LAND_SURFACE,
    BiomeType.MOUNTAINS: 0.06 * LAND_SURFACE,
    BiomeType.SCRUB: 0.03 * LAND_SURFACE,
    # Human use
    BiomeType.URBAN: 0.0069 * LAND_SURFACE,
    BiomeType.CROPLAND: AGRICULTURAL_SHARE * 0.646 * LAND_SURFACE,
    BiomeType.PASTURELAND: AGRICULTURAL_SHARE * 0.354 * LAND_SURFACE,
}


@dataclass(frozen=True)
class GrowthPeriod:
    """Compound growth rate applied up to ``end_year`` (inclusive)."""

    end_year: float
    rate: float


# Declining growth after the anchor year
GROWTH_PERIODS = (
    GrowthPeriod(2030, 0.0067),
    GrowthPeriod(2050, 0.0043),
    GrowthPeriod(math.inf, 0.0010),
)
HISTORICAL_GROWTH_RATE = 0.0084


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class PopulationAreaModel:
    """Year -> population -> area per person -> per-biome target area."""

    def __init__(self, base_population: int = BASE_POPULATION, base_year: int = BASE_YEAR):
        self.base_population = base_population
        self.base_year = base_year

    def population(self, year: int) -> int:
        """
        Estimate world population for a year.

        Years before the anchor decline at the historical rate; later years
        chain each growth period from the value at the end of the previous one.
        Growth is accumulated in log space so extreme years saturate instead
        of overflowing: the far past rounds to 0 and the far future caps at
        MAX_POPULATION.
        """
        if year < self.base_year:
            log_growth = -(self.base_year - year) * math.log1p(HISTORICAL_GROWTH_RATE)
        else:
            log_growth = 0.0
            period_start = self.base_year
            for period in GROWTH_PERIODS:
                if year <= period.end_year:
                    log_growth += (year - period_start) * math.log1p(period.rate)
                    break
                log_growth += (period.end_year - period_start) * math.log1p(period.rate)
                period_start = period.end_year

        log_population = math.log(self.base_population) + log_growth
        if log_population > math.log(MAX_POPULATION):
            logger.warning("Population saturated", year=year)
            return _round_half_up(MAX_POPULATION)
        return _round_half_up(math.exp(log_population))

    def area_per_person(self, year: int) -> float:
        """Earth surface area in m² per person."""
        population = self.population(year)
        if population < MIN_POPULATION:
            logger.warning(
                "Population below minimum, clamping", year=year, population=population
            )
            population = MIN_POPULATION
        return EARTH_SURFACE_AREA_M2 / population

    def ocean_area_per_person(self, year: int) -> float:
        return self.area_per_person(year) * OCEAN_SHARE

    def land_area_per_person(self, year: int) -> float:
        return self.area_per_person(year) * LAND_SHARE

    def biome_area_breakdown(self, year: int) -> Dict[BiomeType, float]:
        """Area in m² per person for every biome."""
        total = self.area_per_person(year)
        return {biome: total * fraction for biome, fraction in BIOME_AREA_FRACTIONS.items()}

    def biome_area(self, year: int, biome: Union[BiomeType, str]) -> float:
        """
        Area in m² per person for a single biome.

        Unknown keys return 0 rather than raising.
        """
        if isinstance(biome, str):
            biome = biome_from_key(biome)
        if biome is None or biome not in BIOME_AREA_FRACTIONS:
            return 0.0
        return self.area_per_person(year) * BIOME_AREA_FRACTIONS[biome]

    def usable_area_per_person(self, year: int) -> float:
        """
        Area per person that is realistically usable for living and farming.

        Only part of forests and grasslands counts; agriculture and urban land
        count in full.
        """
        breakdown = self.biome_area_breakdown(year)
        usable_forest = (
            breakdown[BiomeType.BOREAL_FOREST]
            + breakdown[BiomeType.TEMPERATE_FOREST]
            + breakdown[BiomeType.TROPICAL_RAINFOREST]
        ) * 0.15
        usable_grassland = (
            breakdown[BiomeType.TEMPERATE_GRASSLAND] + breakdown[BiomeType.SAVANNA]
        ) * 0.35
        agricultural = breakdown[BiomeType.PASTURELAND] + breakdown[BiomeType.CROPLAND]
        return usable_forest + usable_grassland + agricultural + breakdown[BiomeType.URBAN]

    def breakdown_by_key(self, year: int) -> Dict[str, float]:
        """Breakdown keyed by stable biome key, for reporting."""
        return {
            BIOME_KEYS[biome]: area for biome, area in self.biome_area_breakdown(year).items()
        }
