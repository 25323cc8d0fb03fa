"""
Biome labels shared by every stage of island generation.

This module defines:
- The closed set of 14 biome classes
- Display names, stable keys and preview colors
- Flat per-class elevation used by the renderer
- Static similarity table used when a biome's quota runs out
"""

from enum import IntEnum
from typing import Dict, List, Optional


class BiomeType(IntEnum):
    """Biome classes covering the whole grid."""

    MOUNTAINS = 0
    TUNDRA = 1
    BOREAL_FOREST = 2
    TEMPERATE_FOREST = 3
    TROPICAL_RAINFOREST = 4
    TEMPERATE_GRASSLAND = 5
    SAVANNA = 6
    SCRUB = 7
    DESERTS = 8
    URBAN = 9
    CROPLAND = 10
    PASTURELAND = 11
    SALTWATER = 12
    FRESHWATER = 13


# Stable keys, also used for lexicographic tie breaks
BIOME_KEYS = {
    BiomeType.MOUNTAINS: "mountains",
    BiomeType.TUNDRA: "tundra",
    BiomeType.BOREAL_FOREST: "borealForest",
    BiomeType.TEMPERATE_FOREST: "temperateForest",
    BiomeType.TROPICAL_RAINFOREST: "tropicalRainforest",
    BiomeType.TEMPERATE_GRASSLAND: "temperateGrassland",
    BiomeType.SAVANNA: "savanna",
    BiomeType.SCRUB: "scrub",
    BiomeType.DESERTS: "deserts",
    BiomeType.URBAN: "urban",
    BiomeType.CROPLAND: "cropland",
    BiomeType.PASTURELAND: "pastureland",
    BiomeType.SALTWATER: "saltwater",
    BiomeType.FRESHWATER: "freshwater",
}

# Biome names for display
BIOME_NAMES = {
    BiomeType.MOUNTAINS: "Mountains",
    BiomeType.TUNDRA: "Tundra",
    BiomeType.BOREAL_FOREST: "Boreal Forest",
    BiomeType.TEMPERATE_FOREST: "Temperate Forest",
    BiomeType.TROPICAL_RAINFOREST: "Tropical Rainforest",
    BiomeType.TEMPERATE_GRASSLAND: "Temperate Grassland",
    BiomeType.SAVANNA: "Savanna",
    BiomeType.SCRUB: "Scrub",
    BiomeType.DESERTS: "Deserts",
    BiomeType.URBAN: "Urban",
    BiomeType.CROPLAND: "Cropland",
    BiomeType.PASTURELAND: "Pastureland",
    BiomeType.SALTWATER: "Saltwater",
    BiomeType.FRESHWATER: "Freshwater",
}

BIOME_COLORS = {
    BiomeType.MOUNTAINS: "#8c8c8c",
    BiomeType.TUNDRA: "#96784b",
    BiomeType.BOREAL_FOREST: "#4b6b32",
    BiomeType.TEMPERATE_FOREST: "#29bc56",
    BiomeType.TROPICAL_RAINFOREST: "#7dcb35",
    BiomeType.TEMPERATE_GRASSLAND: "#c8d68f",
    BiomeType.SAVANNA: "#d2d082",
    BiomeType.SCRUB: "#b5b887",
    BiomeType.DESERTS: "#fbe79f",
    BiomeType.URBAN: "#5a5a66",
    BiomeType.CROPLAND: "#a0522d",
    BiomeType.PASTURELAND: "#9acd32",
    BiomeType.SALTWATER: "#466eab",
    BiomeType.FRESHWATER: "#6ba9cb",
}

# Absorbs rounding residue so quotas always sum to the tile count
ABSORBER_BIOME = BiomeType.SALTWATER

WATER_BIOMES = frozenset({BiomeType.SALTWATER, BiomeType.FRESHWATER})
LAND_BIOMES = tuple(b for b in BiomeType if b not in WATER_BIOMES)

WATER_ELEVATION = 0.5
LAND_ELEVATION = 1.5

# Ordered substitutes tried when a biome has no quota left
SIMILAR_BIOMES: Dict[BiomeType, List[BiomeType]] = {
    BiomeType.MOUNTAINS: [BiomeType.TUNDRA, BiomeType.BOREAL_FOREST, BiomeType.SCRUB],
    BiomeType.TUNDRA: [BiomeType.BOREAL_FOREST, BiomeType.MOUNTAINS],
    BiomeType.BOREAL_FOREST: [BiomeType.TEMPERATE_FOREST, BiomeType.TUNDRA],
    BiomeType.TEMPERATE_FOREST: [
        BiomeType.BOREAL_FOREST,
        BiomeType.TROPICAL_RAINFOREST,
        BiomeType.TEMPERATE_GRASSLAND,
    ],
    BiomeType.TROPICAL_RAINFOREST: [BiomeType.TEMPERATE_FOREST, BiomeType.SAVANNA],
    BiomeType.TEMPERATE_GRASSLAND: [
        BiomeType.PASTURELAND,
        BiomeType.SAVANNA,
        BiomeType.CROPLAND,
    ],
    BiomeType.SAVANNA: [BiomeType.TEMPERATE_GRASSLAND, BiomeType.SCRUB, BiomeType.DESERTS],
    BiomeType.SCRUB: [BiomeType.DESERTS, BiomeType.SAVANNA],
    BiomeType.DESERTS: [BiomeType.SCRUB, BiomeType.SAVANNA],
    BiomeType.URBAN: [BiomeType.CROPLAND, BiomeType.PASTURELAND],
    BiomeType.CROPLAND: [BiomeType.PASTURELAND, BiomeType.TEMPERATE_GRASSLAND],
    BiomeType.PASTURELAND: [BiomeType.CROPLAND, BiomeType.TEMPERATE_GRASSLAND],
    BiomeType.SALTWATER: [BiomeType.FRESHWATER],
    BiomeType.FRESHWATER: [BiomeType.TEMPERATE_GRASSLAND, BiomeType.SALTWATER],
}


def elevation_for(biome: BiomeType) -> float:
    """
    Get the flat extrusion height for a biome class.

    Water classes sit at water level, every land class one unit above it.
    """
    return WATER_ELEVATION if biome in WATER_BIOMES else LAND_ELEVATION


def biome_from_key(key: str) -> Optional[BiomeType]:
    """Look up a biome by its stable key or enum name; None when unknown."""
    for biome, biome_key in BIOME_KEYS.items():
        if key == biome_key or key.upper() == biome.name:
            return biome
    return None
