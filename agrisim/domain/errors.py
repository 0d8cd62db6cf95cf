"""
Error taxonomy for the planning workflow.

Every failure carries a human-readable message tied to the operation that
produced it, so the presentation layer can render it as-is.
"""
from typing import Optional


class AgriSimError(Exception):
    """Base class for all workflow errors."""

    kind: str = "AgriSimError"
    operation: str = "session"
    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)

    @classmethod
    def from_cause(cls, cause: BaseException) -> "AgriSimError":
        """Build an error whose message embeds the underlying failure."""
        return cls(f"{cls.default_message}: {cause}", cause=cause)


class LocationDenied(AgriSimError):
    """The device geolocation capability refused or failed."""
    kind = "LocationDenied"
    operation = "location"
    status_code = 403
    default_message = "Location access denied. Please enter coordinates manually."


class LocationInvalid(AgriSimError, ValueError):
    """Manually entered coordinates are non-numeric or out of range."""
    kind = "LocationInvalid"
    operation = "location"
    status_code = 400
    default_message = "Invalid coordinates"


class CatalogFetchFailed(AgriSimError):
    """The crop catalog could not be loaded."""
    kind = "CatalogFetchFailed"
    operation = "catalog"
    status_code = 502
    default_message = "Failed to load crop data"


class WeatherFetchFailed(AgriSimError):
    """Weather retrieval failed. Simulation may still proceed without it."""
    kind = "WeatherFetchFailed"
    operation = "weather"
    status_code = 502
    default_message = "Failed to fetch weather data"


class SimulationPreconditionFailed(AgriSimError):
    """A simulation was requested without a crop or a valid location."""
    kind = "SimulationPreconditionFailed"
    operation = "simulation"
    status_code = 400
    default_message = "Please select a crop and ensure location is available"


class SimulationRequestFailed(AgriSimError):
    """The simulation submission failed in transport or decoding."""
    kind = "SimulationRequestFailed"
    operation = "simulation"
    status_code = 502
    default_message = "Simulation failed"


class SimulationResultInvalid(AgriSimError):
    """The backend answered with a payload that breaks the result contract."""
    kind = "SimulationResultInvalid"
    operation = "simulation"
    status_code = 502
    default_message = "Simulation returned an invalid result"


class SimulationInProgress(AgriSimError):
    """An intent was rejected because a simulation is already in flight."""
    kind = "SimulationInProgress"
    operation = "simulation"
    status_code = 409
    default_message = "A simulation is already running; wait for it to finish"
