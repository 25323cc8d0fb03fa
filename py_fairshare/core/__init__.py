"""
Core island generation functionality.
"""

from .biomes import BiomeType, BIOME_KEYS, BIOME_NAMES, elevation_for
from .population import PopulationAreaModel
from .grid import GridSpec, GridSizer, GridSizerOptions
from .quotas import QuotaCalculator, QuotaOptions, QuotaState
from .clustering import BiomeClusterAssigner, SeedRegion, TerrainField
from .enforcement import QuotaEnforcer, EnforcerOptions
from .placement import ExactCountPlacer, PlacementOptions
from .hydrology import WaterFeatureOverlay, WaterFeatureOptions, WaterFeatureSpec
from .island import (
    Assignment,
    GenerationParams,
    GenerationResult,
    IslandGenerator,
    PlacementMode,
)
from .seeded_hash import SeededHash, seeded_hash

__all__ = ['BiomeType', 'BIOME_KEYS', 'BIOME_NAMES', 'elevation_for',
           'PopulationAreaModel', 'GridSpec', 'GridSizer', 'GridSizerOptions',
           'QuotaCalculator', 'QuotaOptions', 'QuotaState',
           'BiomeClusterAssigner', 'SeedRegion', 'TerrainField',
           'QuotaEnforcer', 'EnforcerOptions', 'ExactCountPlacer', 'PlacementOptions',
           'WaterFeatureOverlay', 'WaterFeatureOptions', 'WaterFeatureSpec',
           'Assignment', 'GenerationParams', 'GenerationResult', 'IslandGenerator',
           'PlacementMode', 'SeededHash', 'seeded_hash']
