"""
Application service: orchestration of the planning workflow.

Owns the session state and sequences location acquisition, weather
retrieval and simulation submission. Every precondition is checked here,
not only in the presentation layer.
"""
import logging
from typing import Optional, Tuple

from agrisim.config import Settings, settings as default_settings
from agrisim.domain.errors import (
    AgriSimError,
    CatalogFetchFailed,
    LocationDenied,
    LocationInvalid,
    SimulationInProgress,
    SimulationPreconditionFailed,
    SimulationRequestFailed,
    SimulationResultInvalid,
    WeatherFetchFailed,
)
from agrisim.domain.models import (
    Crop,
    Location,
    SimulationLocation,
    SimulationRequest,
    SimulationResult,
    Terrain,
    WeatherSnapshot,
    WorkflowState,
)
from agrisim.infrastructure.backend_clients import (
    BackendClient,
    CatalogClient,
    SimulationClient,
    WeatherClient,
)
from agrisim.infrastructure.location_provider import (
    CoordinateInput,
    LocationProvider,
    StaticGeolocation,
)
from agrisim.services.domain.result_interpreter import ResultView, interpret

logger = logging.getLogger(__name__)

# States from which a manual location entry moves the workflow forward
_LOCATION_ENTRY_STATES = {
    WorkflowState.IDLE,
    WorkflowState.LOCATION_PENDING,
    WorkflowState.LOCATION_FAILED,
    WorkflowState.INPUT_ERROR,
}


class OrchestrationController:
    """
    Session-scoped controller for the crop planning workflow.

    Holds the workflow state, the user's inputs, the latest weather snapshot
    and simulation result, the crop catalog cache and a single error slot.
    Components never talk to each other; all coordination flows through here.
    """

    def __init__(
        self,
        backend: BackendClient,
        catalog_client: CatalogClient,
        weather_client: WeatherClient,
        simulation_client: SimulationClient,
        location_provider: LocationProvider,
        monte_carlo_runs: int = 10000,
    ):
        """
        Initialize the controller with its collaborators.

        Args:
            backend: Shared transport whose endpoint the session configures
            catalog_client: Adapter for the crop catalog
            weather_client: Adapter for current weather
            simulation_client: Adapter for simulation submissions
            location_provider: Geolocation and manual entry
            monte_carlo_runs: Run count announced while a simulation is in flight
        """
        self.backend = backend
        self.catalog_client = catalog_client
        self.weather_client = weather_client
        self.simulation_client = simulation_client
        self.location_provider = location_provider
        self.monte_carlo_runs = monte_carlo_runs

        self.endpoint: str = backend.endpoint
        self.state = WorkflowState.IDLE
        self.location = Location()
        self.selected_crop: Optional[str] = None
        self.terrain = Terrain.PLAIN
        self.weather: Optional[WeatherSnapshot] = None
        self.result: Optional[SimulationResult] = None
        self.result_view: Optional[ResultView] = None
        self.catalog: Optional[Tuple[Crop, ...]] = None
        self.error: Optional[AgriSimError] = None
        self._simulation_in_flight = False

    @classmethod
    def build(cls, config: Optional[Settings] = None) -> "OrchestrationController":
        """Wire a controller against the real backend from settings."""
        config = config or default_settings
        backend = BackendClient(
            endpoint=config.backend_endpoint,
            timeout=config.request_timeout,
        )
        capability = StaticGeolocation(config.device_latitude, config.device_longitude)
        return cls(
            backend=backend,
            catalog_client=CatalogClient(backend),
            weather_client=WeatherClient(backend),
            simulation_client=SimulationClient(backend),
            location_provider=LocationProvider(capability),
            monte_carlo_runs=config.monte_carlo_runs,
        )

    async def close(self):
        """Release the HTTP transport."""
        await self.backend.close()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._simulation_in_flight

    @property
    def busy_message(self) -> Optional[str]:
        if not self.busy:
            return None
        return f"Running {self.monte_carlo_runs:,} Monte Carlo Simulations..."

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def can_fetch_weather(self) -> bool:
        return not self.busy and self.location.is_valid

    @property
    def can_run_simulation(self) -> bool:
        return not self.busy and bool(self.selected_crop) and self.location.is_valid

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, new_state: WorkflowState):
        if new_state is not self.state:
            logger.info(f"Workflow {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _begin(self):
        # A new action supersedes whatever error is on display
        self.error = None

    def _fail(self, error: AgriSimError):
        logger.warning(f"{error.kind}: {error.message}")
        self.error = error

    def _ensure_not_busy(self, intent: str):
        if self._simulation_in_flight:
            logger.warning(f"Rejected {intent}: a simulation is in flight")
            raise SimulationInProgress()

    def _apply_location(self, location: Location):
        if location != self.location:
            if self.weather is not None:
                logger.info("Coordinates changed; discarding weather snapshot")
            self.weather = None
        self.location = location

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def set_endpoint(self, endpoint: str):
        """
        Point the session at a backend.

        Changing the endpoint clears the crop catalog cache.

        Args:
            endpoint: Opaque base URL, prepended to every backend path

        Raises:
            ValueError: If the endpoint is empty
            SimulationInProgress: If a simulation is in flight
        """
        self._ensure_not_busy("set_endpoint")
        if not endpoint or not endpoint.strip():
            raise ValueError("Backend endpoint must not be empty")

        if endpoint != self.endpoint:
            logger.info(f"Backend endpoint set to {endpoint}")
            self.catalog = None
        self.endpoint = endpoint
        self.backend.endpoint = endpoint

    async def fetch_catalog(self, refresh: bool = False) -> Optional[Tuple[Crop, ...]]:
        """
        Load the crop catalog, once per endpoint.

        Args:
            refresh: Refetch even if a catalog is cached

        Returns:
            The cached catalog, or None if the fetch failed
        """
        if self.catalog is not None and not refresh:
            return self.catalog

        self._begin()
        endpoint = self.endpoint
        try:
            crops = await self.catalog_client.fetch_crops()
        except CatalogFetchFailed as e:
            self._fail(e)
            return None

        if endpoint != self.endpoint:
            logger.info(f"Discarding catalog from superseded endpoint {endpoint}")
            return None

        self.catalog = tuple(crops)
        logger.info(f"Loaded {len(self.catalog)} crops from {endpoint}")
        return self.catalog

    async def request_location(self) -> Optional[Location]:
        """
        Ask the device for its current coordinates.

        Returns:
            The resolved Location, or None if access failed
        """
        self._ensure_not_busy("request_location")
        self._begin()
        self._transition(WorkflowState.LOCATION_PENDING)

        outcome = await self.location_provider.locate()

        if self.state is not WorkflowState.LOCATION_PENDING:
            # Manual entry (or another action) won the race
            logger.info("Discarding superseded geolocation result")
            return None

        if not outcome.ok:
            self._fail(LocationDenied(outcome.reason))
            self._transition(WorkflowState.LOCATION_FAILED)
            return None

        self._apply_location(outcome.location)
        self._transition(WorkflowState.LOCATION_READY)
        return self.location

    def set_manual_location(self, lat: CoordinateInput, lon: CoordinateInput) -> Location:
        """
        Apply manually entered coordinates.

        Either value may be left empty while the user is still typing; the
        workflow only reaches LocationReady once both are valid.

        Args:
            lat: Latitude as a number or numeric string
            lon: Longitude as a number or numeric string

        Returns:
            The current Location (unchanged if the entry was invalid)
        """
        self._ensure_not_busy("set_manual_location")
        self._begin()
        try:
            location = self.location_provider.parse_manual(lat, lon)
        except LocationInvalid as e:
            self._fail(e)
            return self.location

        unchanged = location == self.location
        self._apply_location(location)

        if not location.is_valid:
            self._transition(WorkflowState.IDLE)
        elif not unchanged or self.state in _LOCATION_ENTRY_STATES:
            self._transition(WorkflowState.LOCATION_READY)
        return self.location

    def select_crop(self, crop: Optional[str]) -> Optional[str]:
        """
        Select a crop by name or id.

        With a cached catalog the value must name one of its crops. An empty
        value clears the selection.

        Returns:
            The selected crop name

        Raises:
            ValueError: If the crop is not in the cached catalog
        """
        self._ensure_not_busy("select_crop")
        value = (crop or "").strip()
        if not value:
            self.selected_crop = None
            return None

        if self.catalog is not None:
            match = next(
                (c for c in self.catalog if value in (c.name, c.id)),
                None,
            )
            if match is None:
                raise ValueError(f"Unknown crop '{value}'")
            value = match.name

        self.selected_crop = value
        return value

    def select_terrain(self, terrain) -> Terrain:
        """Select the terrain; raises ValueError outside the closed set."""
        self._ensure_not_busy("select_terrain")
        self.terrain = Terrain(terrain)
        return self.terrain

    async def fetch_weather(self) -> Optional[WeatherSnapshot]:
        """
        Fetch current weather for the session's location.

        A no-op while the location is incomplete. A failure is recorded but
        does not block a later simulation, which then runs without weather.

        Returns:
            The WeatherSnapshot, or None
        """
        self._ensure_not_busy("fetch_weather")
        if not self.location.is_valid:
            logger.debug("fetch_weather ignored: location is not set")
            return None

        self._begin()
        self._transition(WorkflowState.WEATHER_FETCHING)
        requested = self.location

        try:
            snapshot = await self.weather_client.fetch_weather(requested)
        except WeatherFetchFailed as e:
            if self.location != requested:
                return None
            self.weather = None
            self._fail(e)
            if self.state is WorkflowState.WEATHER_FETCHING:
                self._transition(WorkflowState.WEATHER_FAILED)
            return None

        if self.location != requested:
            logger.info("Discarding weather for superseded coordinates")
            return None

        self.weather = snapshot
        if self.state is WorkflowState.WEATHER_FETCHING:
            self._transition(WorkflowState.WEATHER_READY)
        return snapshot

    async def run_simulation(self) -> Optional[SimulationResult]:
        """
        Submit a simulation for the current inputs.

        At most one simulation is in flight; a second call while one is
        outstanding is rejected without a network call. Missing inputs move
        the workflow to InputError, also without a network call.

        Returns:
            The SimulationResult, or None if preconditions or the request failed

        Raises:
            SimulationInProgress: If a simulation is already in flight
        """
        if self._simulation_in_flight:
            logger.warning("Rejected run_simulation: a simulation is in flight")
            raise SimulationInProgress()

        if not self.selected_crop or not self.location.is_valid:
            self._fail(SimulationPreconditionFailed())
            self._transition(WorkflowState.INPUT_ERROR)
            return None

        self._simulation_in_flight = True
        self._begin()
        self.result = None
        self.result_view = None
        self._transition(WorkflowState.SIMULATION_RUNNING)

        request = SimulationRequest(
            crop=self.selected_crop,
            location=SimulationLocation(lat=self.location.lat, lon=self.location.lon),
            terrain=self.terrain,
            weather=self.weather,
        )
        if request.weather is None:
            logger.info("Running simulation without weather data")

        try:
            result = await self.simulation_client.simulate(request)
            view = interpret(result)
        except (SimulationRequestFailed, SimulationResultInvalid) as e:
            self._fail(e)
            self._transition(WorkflowState.SIMULATION_FAILED)
            return None
        else:
            self.result = result
            self.result_view = view
            self._transition(WorkflowState.SIMULATION_COMPLETE)
            logger.info(
                f"Simulation complete for {request.crop}: "
                f"p={result.success_probability}, risk={result.risk_level}"
            )
            return result
        finally:
            self._simulation_in_flight = False
