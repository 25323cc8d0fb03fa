"""FastAPI main application."""

from typing import Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException, Path
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config import settings
from ..core.biomes import BIOME_KEYS, BIOME_NAMES, elevation_for
from ..core.grid import GridSizerOptions
from ..core.hydrology import WaterFeatureOptions
from ..core.island import (
    CoordinateOutOfRangeError,
    GenerationInProgressError,
    GenerationParams,
    GenerationResult,
    IslandGenerator,
    NoAssignmentError,
    PlacementMode,
)
from ..core.placement import PlacementOptions
from ..core.quotas import QuotaOptions
from ..utils.logging import configure_logging
from ..utils.random import set_terrain_seed

configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()

if settings.terrain_seed is not None:
    set_terrain_seed(settings.terrain_seed)

# Initialize FastAPI app
app = FastAPI(
    title="Fair Share Island API",
    description="Population-scaled biome island generator",
    version="0.1.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

generator = IslandGenerator(
    sizer_options=GridSizerOptions(
        default_size=settings.default_grid_size,
        min_size=settings.min_grid_size,
        max_size=settings.max_grid_size,
    ),
    quota_options=QuotaOptions(ocean_fraction=settings.ocean_fraction),
    placement_options=PlacementOptions(hint_lookahead=settings.hint_lookahead),
    water_options=WaterFeatureOptions(enabled=settings.water_features),
)


# Request/Response models
class IslandGenerationRequest(BaseModel):
    """Request to generate a new island."""

    year: Optional[int] = Field(None, ge=-10000, le=10000, description="Year to model")
    use_population_sizing: Optional[bool] = Field(
        None, description="Size the grid from area per person"
    )
    grid_size: Optional[int] = Field(None, ge=1, le=2000, description="Explicit grid size")
    seed: Optional[float] = Field(None, description="Terrain seed, defaults to the process seed")
    enforce_ocean_quota: Optional[bool] = Field(
        None, description="Hold saltwater at the global ocean share"
    )
    placement_mode: PlacementMode = Field(PlacementMode.EXACT, description="Placement strategy")
    water_features: bool = Field(True, description="Draw rivers, lakes and wetlands")


class BiomeStatistics(BaseModel):
    """Biome distribution statistics for an island."""

    biome_key: str
    biome_name: str
    cell_count: int
    target_count: int
    remaining: int
    percentage: float
    target_percentage: float
    elevation: float


class IslandSummary(BaseModel):
    """Summary of a generated island."""

    year: int
    population: int
    area_per_person: float
    grid_size: int
    half_size: int
    total_cells: int
    seed: float
    water_converted: int
    biomes: List[BiomeStatistics]


class TileInfo(BaseModel):
    """Biome data for a single tile."""

    x: int
    z: int
    biome: str
    biome_name: str
    elevation: float


class PopulationInfo(BaseModel):
    """Population model output for a year."""

    year: int
    population: int
    area_per_person: float
    ocean_area_per_person: float
    land_area_per_person: float
    usable_area_per_person: float
    grid_size: int
    breakdown: Dict[str, float]


def _biome_statistics(result: GenerationResult) -> List[BiomeStatistics]:
    return [
        BiomeStatistics(
            biome_key=row.key,
            biome_name=row.name,
            cell_count=row.count,
            target_count=row.target,
            remaining=row.remaining,
            percentage=round(row.percentage, 4),
            target_percentage=round(row.target_percentage, 4),
            elevation=elevation_for(row.biome),
        )
        for row in result.report()
    ]


def _summary(result: GenerationResult) -> IslandSummary:
    return IslandSummary(
        year=result.params.year,
        population=result.population,
        area_per_person=result.area_per_person,
        grid_size=result.grid.size,
        half_size=result.grid.half_size,
        total_cells=result.grid.cell_count,
        seed=result.seed,
        water_converted=result.water_converted,
        biomes=_biome_statistics(result),
    )


def _last_result() -> GenerationResult:
    result = generator.last_result
    if result is None:
        raise HTTPException(status_code=404, detail="No island generated yet")
    return result


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Fair Share Island API",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "generating": generator.is_generating}


@app.post("/island/generate", response_model=IslandSummary)
def generate_island(request: IslandGenerationRequest):
    """
    Generate an island synchronously and make it the current one.

    Rejected with 409 while another generation is running.
    """
    logger.info("Island generation requested", request=request.dict())

    params = GenerationParams(
        year=settings.default_year if request.year is None else request.year,
        use_population_sizing=(
            settings.use_population_sizing
            if request.use_population_sizing is None
            else request.use_population_sizing
        ),
        grid_size=request.grid_size,
        seed=request.seed,
        enforce_ocean_quota=(
            settings.enforce_ocean_quota
            if request.enforce_ocean_quota is None
            else request.enforce_ocean_quota
        ),
        placement_mode=request.placement_mode,
        water_features=request.water_features,
    )

    try:
        result = generator.generate(params)
    except GenerationInProgressError:
        raise HTTPException(status_code=409, detail="Island generation already in progress")

    return _summary(result)


@app.get("/island", response_model=IslandSummary)
async def get_island():
    """Summary of the current island."""
    return _summary(_last_result())


@app.get("/island/biomes", response_model=List[BiomeStatistics])
async def get_island_biomes():
    """Biome distribution of the current island."""
    return _biome_statistics(_last_result())


@app.get("/island/tiles/{x}/{z}", response_model=TileInfo)
async def get_tile(x: int, z: int):
    """Biome and elevation of a single tile."""
    try:
        biome = generator.biome_at(x, z)
    except NoAssignmentError:
        raise HTTPException(status_code=404, detail="No island generated yet")
    except CoordinateOutOfRangeError:
        raise HTTPException(status_code=404, detail=f"Tile ({x}, {z}) is outside the grid")

    return TileInfo(
        x=x,
        z=z,
        biome=BIOME_KEYS[biome],
        biome_name=BIOME_NAMES[biome],
        elevation=elevation_for(biome),
    )


@app.get("/population/{year}", response_model=PopulationInfo)
async def get_population(
    year: int = Path(..., ge=-10000, le=10000, description="Year to model"),
    use_population_sizing: bool = True,
):
    """Population model output for a year."""
    model = generator.model
    grid = generator.sizer.size_for(year, use_population_sizing)
    return PopulationInfo(
        year=year,
        population=model.population(year),
        area_per_person=model.area_per_person(year),
        ocean_area_per_person=model.ocean_area_per_person(year),
        land_area_per_person=model.land_area_per_person(year),
        usable_area_per_person=model.usable_area_per_person(year),
        grid_size=grid.size,
        breakdown=model.breakdown_by_key(year),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
