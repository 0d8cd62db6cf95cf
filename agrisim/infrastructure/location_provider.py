"""
Infrastructure layer: coordinate acquisition.

Resolves a Location from a one-shot geolocation capability or from manual
entry. Capability failures are returned as a reason, distinct from a
location that simply has not been resolved yet.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from agrisim.domain.errors import LocationDenied, LocationInvalid
from agrisim.domain.models import Location

logger = logging.getLogger(__name__)

CoordinateInput = Union[float, int, str, None]


class GeolocationError(Exception):
    """Raised by a capability that cannot produce coordinates."""

    def __init__(self, reason: str = LocationDenied.default_message):
        self.reason = reason
        super().__init__(reason)


class GeolocationCapability(Protocol):
    """A one-shot "get current coordinates" capability."""

    async def get_current_position(self) -> Location:
        ...


class StaticGeolocation:
    """Capability backed by fixed device coordinates, if any are configured."""

    def __init__(self, lat: Optional[float] = None, lon: Optional[float] = None):
        self.lat = lat
        self.lon = lon

    async def get_current_position(self) -> Location:
        if self.lat is None or self.lon is None:
            raise GeolocationError()
        return Location(lat=self.lat, lon=self.lon)


@dataclass(frozen=True)
class LocationOutcome:
    """Exactly one of ``location`` or ``reason`` is set."""
    location: Optional[Location] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.location is not None


def _parse_coordinate(name: str, value: CoordinateInput, bound: float) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            value = float(value.strip())
        except ValueError:
            raise LocationInvalid(f"Invalid coordinates: {name} '{value}' is not a number") from None
    elif isinstance(value, bool) or not isinstance(value, (int, float)):
        raise LocationInvalid(f"Invalid coordinates: {name} must be a number")

    number = float(value)
    if not math.isfinite(number):
        raise LocationInvalid(f"Invalid coordinates: {name} must be finite")
    if not -bound <= number <= bound:
        raise LocationInvalid(
            f"Invalid coordinates: {name} {number} out of range [-{bound:g}, {bound:g}]"
        )
    return number


class LocationProvider:
    """
    Resolves coordinates from a capability or from user input.
    """

    def __init__(self, capability: Optional[GeolocationCapability] = None):
        self.capability = capability

    async def locate(self) -> LocationOutcome:
        """
        Ask the capability for the current position.

        Returns:
            LocationOutcome with either a valid location or a failure reason
        """
        if self.capability is None:
            return LocationOutcome(reason=LocationDenied.default_message)

        try:
            location = await self.capability.get_current_position()
        except GeolocationError as e:
            logger.warning(f"Geolocation failed: {e.reason}")
            return LocationOutcome(reason=e.reason)

        if not location.is_valid:
            logger.warning(f"Geolocation returned unusable coordinates: {location}")
            return LocationOutcome(reason=LocationDenied.default_message)
        return LocationOutcome(location=location)

    @staticmethod
    def parse_manual(lat: CoordinateInput, lon: CoordinateInput) -> Location:
        """
        Validate manually entered coordinates.

        Either field may be left empty; the returned Location is then
        incomplete and not yet usable downstream.

        Args:
            lat: Latitude as a number or numeric string
            lon: Longitude as a number or numeric string

        Returns:
            Location instance

        Raises:
            LocationInvalid: If a value is non-numeric, non-finite or out of range
        """
        return Location(
            lat=_parse_coordinate("latitude", lat, 90.0),
            lon=_parse_coordinate("longitude", lon, 180.0),
        )
