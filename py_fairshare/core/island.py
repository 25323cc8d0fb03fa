"""
Island generation pipeline.

Runs the stages in order (grid sizing, quotas, clustering, placement, water
features), validates the finished grid and keeps the last result for point
lookups by the rendering layer.
"""

import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from ..utils.random import get_terrain_seed
from .biomes import BIOME_KEYS, BIOME_NAMES, BiomeType, elevation_for
from .clustering import BiomeClusterAssigner, SeedRegion, TerrainField
from .enforcement import EnforcerOptions, enforce_grid
from .grid import GridSizer, GridSizerOptions, GridSpec
from .hydrology import WaterFeatureOptions, WaterFeatureOverlay
from .placement import ExactCountPlacer, PlacementOptions
from .population import PopulationAreaModel
from .quotas import QuotaCalculator, QuotaOptions, QuotaState
from .seeded_hash import SeededHash

logger = structlog.get_logger()


class IncompleteAssignmentError(RuntimeError):
    """A generated grid does not hold exactly one valid biome per cell."""


class GenerationInProgressError(RuntimeError):
    """A generation was requested while another one was running."""


class NoAssignmentError(LookupError):
    """Nothing has been generated yet."""


class CoordinateOutOfRangeError(KeyError):
    """A tile coordinate lies outside the grid."""


class PlacementMode(str, Enum):
    """How quotas are turned into a grid."""

    EXACT = "exact"  # Radial fill, authoritative
    PER_CELL = "per_cell"  # Enforcer with fallback chain


@dataclass(frozen=True)
class GenerationParams:
    """Inputs of one generation run."""

    year: int = 2025
    use_population_sizing: bool = True
    grid_size: Optional[int] = None  # Explicit override
    seed: Optional[float] = None  # None uses the process-wide terrain seed
    enforce_ocean_quota: bool = False
    placement_mode: PlacementMode = PlacementMode.EXACT
    water_features: bool = True


class Assignment:
    """Immutable coordinate -> biome map covering every cell exactly once."""

    def __init__(self, grid: GridSpec, biomes: np.ndarray):
        biomes = np.asarray(biomes)
        if biomes.shape != (grid.size, grid.size):
            raise IncompleteAssignmentError(
                f"Assignment has shape {biomes.shape}, expected ({grid.size}, {grid.size})"
            )
        if biomes.size and int(biomes.max()) >= len(BiomeType):
            raise IncompleteAssignmentError("Assignment contains unassigned cells")

        self.grid = grid
        self._biomes = np.array(biomes, dtype=np.uint8, copy=True)
        self._biomes.flags.writeable = False

    @property
    def biomes(self) -> np.ndarray:
        """Read-only array indexed [x + half, z + half]."""
        return self._biomes

    def __len__(self) -> int:
        return self._biomes.size

    def __getitem__(self, coordinate: Tuple[int, int]) -> BiomeType:
        return self.biome_at(*coordinate)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Assignment):
            return NotImplemented
        return self.grid == other.grid and np.array_equal(self._biomes, other._biomes)

    def biome_at(self, x: int, z: int) -> BiomeType:
        if not self.grid.contains(x, z):
            raise CoordinateOutOfRangeError((x, z))
        return BiomeType(int(self._biomes[self.grid.array_index(x, z)]))

    def items(self) -> Iterator[Tuple[Tuple[int, int], BiomeType]]:
        half = self.grid.half_size
        for row in range(self.grid.size):
            for col in range(self.grid.size):
                yield (row - half, col - half), BiomeType(int(self._biomes[row, col]))

    def to_dict(self) -> Dict[Tuple[int, int], BiomeType]:
        return dict(self.items())

    def counts(self) -> Dict[BiomeType, int]:
        """Tile count per biome, including zero counts."""
        values, counts = np.unique(self._biomes, return_counts=True)
        found = {BiomeType(int(v)): int(c) for v, c in zip(values, counts)}
        return {biome: found.get(biome, 0) for biome in BiomeType}

    def elevation_grid(self) -> np.ndarray:
        """Flat per-cell extrusion height."""
        lookup = np.array([elevation_for(biome) for biome in BiomeType], dtype=np.float32)
        return lookup[self._biomes]


@dataclass
class BiomeReport:
    """One row of the per-biome report."""

    biome: BiomeType
    key: str
    name: str
    count: int
    target: int
    remaining: int  # target - count; negative when over-allocated
    percentage: float
    target_percentage: float


@dataclass
class GenerationResult:
    """Everything a run produced."""

    params: GenerationParams
    seed: float
    grid: GridSpec
    population: int
    area_per_person: float
    assignment: Assignment
    quota_state: QuotaState  # Remaining reconciled against the final grid
    placement_state: QuotaState  # Remaining right after placement
    water_converted: int

    def actual_counts(self) -> Dict[BiomeType, int]:
        return self.assignment.counts()

    def target_quotas(self) -> Dict[BiomeType, int]:
        return dict(self.quota_state.quotas)

    def remaining_quotas(self) -> Dict[BiomeType, int]:
        return dict(self.quota_state.remaining)

    def percentages(self) -> Dict[BiomeType, float]:
        total = self.grid.cell_count
        return {biome: count * 100.0 / total for biome, count in self.actual_counts().items()}

    def elevation_grid(self) -> np.ndarray:
        return self.assignment.elevation_grid()

    def report(self) -> List[BiomeReport]:
        total = self.grid.cell_count
        counts = self.actual_counts()
        return [
            BiomeReport(
                biome=biome,
                key=BIOME_KEYS[biome],
                name=BIOME_NAMES[biome],
                count=counts[biome],
                target=self.quota_state.quotas[biome],
                remaining=self.quota_state.remaining[biome],
                percentage=counts[biome] * 100.0 / total,
                target_percentage=self.quota_state.quotas[biome] * 100.0 / total,
            )
            for biome in BiomeType
        ]


class IslandGenerator:
    """
    Runs the full pipeline and serves lookups into the last result.

    Only one run may be in flight; overlapping requests are rejected.
    """

    def __init__(
        self,
        model: Optional[PopulationAreaModel] = None,
        sizer_options: Optional[GridSizerOptions] = None,
        quota_options: Optional[QuotaOptions] = None,
        placement_options: Optional[PlacementOptions] = None,
        enforcer_options: Optional[EnforcerOptions] = None,
        water_options: Optional[WaterFeatureOptions] = None,
        regions: Optional[Sequence[SeedRegion]] = None,
    ):
        self.model = model or PopulationAreaModel()
        self.sizer = GridSizer(self.model, sizer_options)
        self.calculator = QuotaCalculator(self.model, quota_options)
        self.placer = ExactCountPlacer(placement_options)
        self.enforcer_options = enforcer_options or EnforcerOptions()
        self.water_options = water_options or WaterFeatureOptions()
        self.regions = regions

        self._lock = threading.Lock()
        self._last_result: Optional[GenerationResult] = None

    @property
    def is_generating(self) -> bool:
        return self._lock.locked()

    @property
    def last_result(self) -> Optional[GenerationResult]:
        return self._last_result

    def generate(self, params: Optional[GenerationParams] = None) -> GenerationResult:
        """
        Generate an island and make it the current result.

        Raises:
            GenerationInProgressError: If another run is in flight
            IncompleteAssignmentError: If the grid fails validation
        """
        params = params or GenerationParams()
        if not self._lock.acquire(blocking=False):
            logger.warning("Generation already in progress, request dropped", year=params.year)
            raise GenerationInProgressError("Island generation already in progress")

        try:
            result = self._run(params)
            self._last_result = result
            return result
        finally:
            self._lock.release()

    def biome_at(self, x: int, z: int) -> BiomeType:
        """Point lookup into the last generated assignment."""
        if self._last_result is None:
            raise NoAssignmentError("No island has been generated yet")
        return self._last_result.assignment.biome_at(x, z)

    @staticmethod
    def elevation_for(biome: BiomeType) -> float:
        return elevation_for(biome)

    def _run(self, params: GenerationParams) -> GenerationResult:
        seed = get_terrain_seed() if params.seed is None else float(params.seed)
        hasher = SeededHash(seed)
        logger.info(
            "Starting island generation",
            year=params.year,
            seed=seed,
            mode=PlacementMode(params.placement_mode).value,
        )

        grid = self.sizer.size_for(params.year, params.use_population_sizing, params.grid_size)
        state = self.calculator.build_state(grid, params.year, params.enforce_ocean_quota)

        field = TerrainField.build(grid, hasher)
        preferences = BiomeClusterAssigner(hasher, self.regions).assign(field)

        if PlacementMode(params.placement_mode) == PlacementMode.EXACT:
            assigned = self.placer.place(grid, state.quotas, preferences, state)
        else:
            assigned = enforce_grid(field, preferences, state, hasher, self.enforcer_options)

        water_options = replace(
            self.water_options, enabled=self.water_options.enabled and params.water_features
        )
        assigned, converted = WaterFeatureOverlay(hasher, water_options).apply(field, assigned)

        # Validates shape and coverage before anything is published
        assignment = Assignment(grid, assigned)

        counts = assignment.counts()
        reconciled = state.reconciled(counts)
        logger.info(
            "Island generation completed",
            grid_size=grid.size,
            tiles=grid.cell_count,
            water_converted=converted,
            counts=reconciled.as_keys(counts),
        )

        return GenerationResult(
            params=params,
            seed=seed,
            grid=grid,
            population=self.model.population(params.year),
            area_per_person=self.model.area_per_person(params.year),
            assignment=assignment,
            quota_state=reconciled,
            placement_state=state,
            water_converted=converted,
        )


class Debouncer:
    """
    Coalesces rapid parameter changes into a single generation.

    Each trigger restarts the timer; when it fires, the latest params are
    generated. A run that collides with one in flight is re-scheduled.
    """

    def __init__(
        self,
        generator: IslandGenerator,
        delay: float = 0.1,
        on_result: Optional[Callable[[GenerationResult], None]] = None,
    ):
        self.generator = generator
        self.delay = delay
        self.on_result = on_result
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[GenerationParams] = None

    @property
    def pending(self) -> Optional[GenerationParams]:
        return self._pending

    def trigger(self, params: GenerationParams) -> None:
        with self._lock:
            self._pending = params
            self._restart_timer()

    def flush(self) -> Optional[GenerationResult]:
        """Run any pending request now instead of waiting for the timer."""
        self.cancel_timer()
        return self._run_pending()

    def cancel(self) -> None:
        with self._lock:
            self._cancel_timer_locked()
            self._pending = None

    def cancel_timer(self) -> None:
        with self._lock:
            self._cancel_timer_locked()

    def _restart_timer(self):
        self._cancel_timer_locked()
        self._timer = threading.Timer(self.delay, self._run_pending)
        self._timer.daemon = True
        self._timer.start()

    def _cancel_timer_locked(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _run_pending(self) -> Optional[GenerationResult]:
        with self._lock:
            params, self._pending = self._pending, None
            self._timer = None
        if params is None:
            return None

        try:
            result = self.generator.generate(params)
        except GenerationInProgressError:
            logger.info("Generation busy, rescheduling", year=params.year)
            with self._lock:
                # A newer trigger takes precedence over the busy request
                if self._pending is None:
                    self._pending = params
                self._restart_timer()
            return None

        if self.on_result is not None:
            self.on_result(result)
        return result
