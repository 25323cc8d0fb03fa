"""Population-scaled biome island generator."""

__version__ = "0.1.0"
