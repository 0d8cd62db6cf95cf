"""
Infrastructure layer: adapters for the simulation backend.

One request, one parsed JSON response. There is no retry; every failure
is surfaced as a typed error so the controller can render a specific
message.
"""
import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from agrisim.config import settings
from agrisim.domain.errors import (
    CatalogFetchFailed,
    SimulationRequestFailed,
    SimulationResultInvalid,
    WeatherFetchFailed,
)
from agrisim.domain.models import (
    Crop,
    Location,
    SimulationRequest,
    SimulationResult,
    WeatherSnapshot,
)
from agrisim.infrastructure.api_constants import APIConstants, BackendEndpoints

logger = logging.getLogger(__name__)


class BackendRequestError(Exception):
    """Transport, HTTP status or decoding failure of a backend call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into a single readable line."""
    parts = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error["loc"])
        parts.append(f"{loc}: {error['msg']}" if loc else error["msg"])
    return "; ".join(parts)


class BackendClient:
    """
    Shared HTTP transport for the backend adapters.

    The endpoint is opaque: it is prepended verbatim to each path and may be
    changed at runtime. An empty endpoint fails before any network call.
    """

    def __init__(self, endpoint: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize the transport.

        Args:
            endpoint: Base endpoint; defaults to the configured one
            timeout: Per-request timeout in seconds
        """
        self.endpoint = settings.backend_endpoint if endpoint is None else endpoint
        self.client = httpx.AsyncClient(
            headers={"accept": APIConstants.CONTENT_TYPE_JSON},
            timeout=timeout or settings.request_timeout or APIConstants.DEFAULT_TIMEOUT,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.endpoint.strip())

    async def request(self, method: str, path: str, **kwargs) -> Any:
        """
        Make a single HTTP request and decode its JSON body.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: Endpoint path from BackendEndpoints
            **kwargs: Additional arguments for the request

        Returns:
            Decoded JSON payload

        Raises:
            BackendRequestError: If the request fails or the body is not JSON
        """
        if not self.is_configured:
            raise BackendRequestError("backend endpoint is not configured")

        url = BackendEndpoints.url(self.endpoint, path)
        logger.debug(f"{method} {url}")

        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise BackendRequestError(
                f"HTTP {status_code} - {e.response.text[:200]}",
                status_code=status_code,
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise BackendRequestError(f"request error: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise BackendRequestError(f"invalid JSON response: {e}") from e


class CatalogClient:
    """Reads the crop catalog."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def fetch_crops(self) -> List[Crop]:
        """
        Fetch the list of available crops.

        Returns:
            List of Crop instances

        Raises:
            CatalogFetchFailed: If the request fails or the payload is malformed
        """
        try:
            data = await self.backend.request("GET", BackendEndpoints.CROPS)
        except BackendRequestError as e:
            logger.error(f"Crop catalog request failed: {e}")
            raise CatalogFetchFailed.from_cause(e) from e

        if not isinstance(data, list):
            raise CatalogFetchFailed(
                f"{CatalogFetchFailed.default_message}: expected a JSON array of crops"
            )

        try:
            return [Crop.model_validate(item) for item in data]
        except ValidationError as e:
            raise CatalogFetchFailed(
                f"{CatalogFetchFailed.default_message}: {describe_validation_error(e)}",
                cause=e,
            ) from e


class WeatherClient:
    """Reads current conditions for a coordinate pair."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def fetch_weather(self, location: Location) -> WeatherSnapshot:
        """
        Fetch current weather at a location.

        Args:
            location: A valid Location

        Returns:
            WeatherSnapshot instance

        Raises:
            WeatherFetchFailed: If the request fails or the payload is malformed
        """
        try:
            data = await self.backend.request(
                "GET",
                BackendEndpoints.WEATHER,
                params={"lat": location.lat, "lon": location.lon},
            )
        except BackendRequestError as e:
            logger.error(f"Weather request failed: {e}")
            raise WeatherFetchFailed.from_cause(e) from e

        try:
            return WeatherSnapshot.model_validate(data)
        except ValidationError as e:
            raise WeatherFetchFailed(
                f"{WeatherFetchFailed.default_message}: {describe_validation_error(e)}",
                cause=e,
            ) from e


class SimulationClient:
    """Submits simulation requests."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def simulate(self, request: SimulationRequest) -> SimulationResult:
        """
        Submit a simulation and parse its result.

        Args:
            request: Crop, location, terrain and optional weather

        Returns:
            SimulationResult instance

        Raises:
            SimulationRequestFailed: On transport, HTTP or JSON failure
            SimulationResultInvalid: If the payload breaks the result contract
        """
        try:
            data = await self.backend.request(
                "POST",
                BackendEndpoints.SIMULATE,
                json=request.model_dump(mode="json"),
            )
        except BackendRequestError as e:
            logger.error(f"Simulation request failed: {e}")
            raise SimulationRequestFailed.from_cause(e) from e

        if not isinstance(data, dict):
            raise SimulationResultInvalid(
                f"{SimulationResultInvalid.default_message}: expected a JSON object"
            )

        try:
            return SimulationResult.model_validate(data)
        except ValidationError as e:
            logger.error(f"Simulation result rejected: {describe_validation_error(e)}")
            raise SimulationResultInvalid(
                f"{SimulationResultInvalid.default_message}: {describe_validation_error(e)}",
                cause=e,
            ) from e
