"""Configuration management."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Generation
    default_year: int = Field(default=2025, description="Year used when a request omits one")
    use_population_sizing: bool = Field(
        default=True, description="Size the grid from area per person"
    )
    default_grid_size: int = Field(
        default=141, description="Grid size when population sizing is disabled"
    )
    min_grid_size: int = Field(default=50, description="Smallest allowed grid size")
    max_grid_size: int = Field(default=500, description="Largest allowed grid size")
    terrain_seed: Optional[float] = Field(
        default=None, description="Terrain seed; drawn once at startup when unset"
    )
    enforce_ocean_quota: bool = Field(
        default=False, description="Rescale quotas so saltwater holds the global ocean share"
    )
    ocean_fraction: float = Field(default=0.709, description="Global ocean share")
    water_features: bool = Field(default=True, description="Draw rivers, lakes and wetlands")
    hint_lookahead: float = Field(
        default=0.25, description="Window share scanned for cells preferring a biome"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
