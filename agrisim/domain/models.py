"""
Domain models for the crop planning workflow.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, HTTP, etc.).
"""
import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, StrictBool, field_validator, model_validator


class Location(BaseModel):
    """
    A coordinate pair that may still be incomplete.

    Both fields must be set (and in range) before the location is used
    by any downstream request.
    """
    lat: Optional[float] = Field(default=None, description="Latitude in degrees")
    lon: Optional[float] = Field(default=None, description="Longitude in degrees")

    @property
    def is_valid(self) -> bool:
        """True when both coordinates are finite and inside their ranges."""
        if self.lat is None or self.lon is None:
            return False
        if not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            return False
        return -90.0 <= self.lat <= 90.0 and -180.0 <= self.lon <= 180.0


class Crop(BaseModel):
    """A crop from the backend catalog."""
    id: str
    name: str
    category: str = ""

    class Config:
        frozen = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Catalogs backed by SQL tables send integer ids
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class Terrain(str, Enum):
    """Planting site topography."""
    PLAIN = "plain"
    PLATEAU = "plateau"
    MOUNTAIN = "mountain"
    VALLEY = "valley"
    COASTAL = "coastal"


class WeatherSnapshot(BaseModel):
    """Current environmental conditions at a location."""
    temp: float = Field(description="Temperature in °C")
    humidity: float = Field(description="Relative humidity in %")
    rainfall: float = Field(description="Rainfall in mm")
    wind: float = Field(description="Wind speed in km/h")


class YieldRange(BaseModel):
    """Worst / average / best case yield band, in kg/ha."""
    min: float
    avg: float
    max: float

    @model_validator(mode="after")
    def _check_ordering(self):
        if not (self.min <= self.avg <= self.max):
            raise ValueError(
                f"yield_range must satisfy min <= avg <= max, "
                f"got {self.min} / {self.avg} / {self.max}"
            )
        return self


class SimulationResult(BaseModel):
    """
    Structured result returned by the simulation engine.

    ``risk_level`` is kept as the raw backend value, of any type, so that
    values outside Low/Medium/High reach the presentation layer as an
    unknown tier. ``explanation`` and ``is_override`` are required.
    """
    success_probability: float = Field(ge=0.0, le=1.0)
    expected_yield: float = Field(ge=0.0, description="Expected yield in kg/ha")
    risk_level: Any
    explanation: str
    is_override: StrictBool
    yield_range: Optional[YieldRange] = None

    @field_validator("success_probability", "expected_yield")
    @classmethod
    def _check_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("value must be a finite number")
        return value


class SimulationLocation(BaseModel):
    """Coordinates as sent in a simulation request."""
    lat: float
    lon: float


class SimulationRequest(BaseModel):
    """Body of a simulation submission."""
    crop: str
    location: SimulationLocation
    terrain: Terrain
    weather: Optional[WeatherSnapshot] = None


class WorkflowState(str, Enum):
    """Progress of the session through location, weather and simulation."""
    IDLE = "Idle"
    LOCATION_PENDING = "LocationPending"
    LOCATION_READY = "LocationReady"
    LOCATION_FAILED = "LocationFailed"
    WEATHER_FETCHING = "WeatherFetching"
    WEATHER_READY = "WeatherReady"
    WEATHER_FAILED = "WeatherFailed"
    INPUT_ERROR = "InputError"
    SIMULATION_RUNNING = "SimulationRunning"
    SIMULATION_COMPLETE = "SimulationComplete"
    SIMULATION_FAILED = "SimulationFailed"
