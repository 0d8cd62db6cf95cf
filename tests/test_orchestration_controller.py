"""
Unit tests for the orchestration controller.

Tests cover:
- Location acquisition and manual entry
- Weather guard and non-fatal weather failures
- Simulation preconditions, single-flight guard and result handling
- Catalog caching and endpoint reconfiguration
- Error slot lifecycle
"""
import asyncio

import pytest

from agrisim.domain.errors import (
    CatalogFetchFailed,
    LocationDenied,
    SimulationInProgress,
    SimulationRequestFailed,
    SimulationResultInvalid,
    WeatherFetchFailed,
)
from agrisim.domain.models import (
    Location,
    SimulationResult,
    Terrain,
    WorkflowState,
)
from agrisim.infrastructure.location_provider import LocationOutcome
from agrisim.services.domain.result_interpreter import RiskTier


# ============================================================
# Location Tests
# ============================================================

class TestLocation:
    """Tests for location acquisition."""

    def test_initial_state(self, controller):
        assert controller.state is WorkflowState.IDLE
        assert controller.location == Location()
        assert controller.terrain is Terrain.PLAIN
        assert controller.error is None
        assert controller.catalog is None

    @pytest.mark.asyncio
    async def test_request_location_success(self, controller):
        location = await controller.request_location()

        assert location == Location(lat=40.0, lon=-75.0)
        assert controller.state is WorkflowState.LOCATION_READY

    @pytest.mark.asyncio
    async def test_request_location_pending_while_waiting(self, controller, mock_location_provider):
        seen = []

        async def locate():
            seen.append(controller.state)
            return LocationOutcome(location=Location(lat=1.0, lon=2.0))

        mock_location_provider.locate.side_effect = locate

        await controller.request_location()

        assert seen == [WorkflowState.LOCATION_PENDING]

    @pytest.mark.asyncio
    async def test_request_location_denied(self, controller, mock_location_provider):
        mock_location_provider.locate.return_value = LocationOutcome(
            reason="Location access denied. Please enter coordinates manually."
        )

        location = await controller.request_location()

        assert location is None
        assert controller.state is WorkflowState.LOCATION_FAILED
        assert isinstance(controller.error, LocationDenied)
        assert controller.error_message.startswith("Location access denied")
        assert controller.location == Location()

    @pytest.mark.asyncio
    async def test_manual_entry_recovers_from_denied(self, controller, mock_location_provider):
        mock_location_provider.locate.return_value = LocationOutcome(reason="denied")
        await controller.request_location()

        controller.set_manual_location("40.0", None)
        assert controller.state is WorkflowState.IDLE

        controller.set_manual_location("40.0", "-75.0")

        assert controller.state is WorkflowState.LOCATION_READY
        assert controller.location == Location(lat=40.0, lon=-75.0)
        assert controller.error is None

    def test_invalid_manual_entry(self, controller):
        controller.set_manual_location(40.0, -75.0)

        location = controller.set_manual_location("abc", -75.0)

        assert location == Location(lat=40.0, lon=-75.0)
        assert controller.state is WorkflowState.LOCATION_READY
        assert controller.error.kind == "LocationInvalid"

    @pytest.mark.asyncio
    async def test_manual_entry_supersedes_pending_geolocation(self, controller, mock_location_provider):
        release = asyncio.Event()

        async def slow_locate():
            await release.wait()
            return LocationOutcome(location=Location(lat=1.0, lon=2.0))

        mock_location_provider.locate.side_effect = slow_locate

        task = asyncio.create_task(controller.request_location())
        await asyncio.sleep(0)
        controller.set_manual_location(40.0, -75.0)
        release.set()

        assert await task is None
        assert controller.location == Location(lat=40.0, lon=-75.0)
        assert controller.state is WorkflowState.LOCATION_READY

    @pytest.mark.asyncio
    async def test_changing_coordinates_discards_weather(self, controller):
        controller.set_manual_location(40.0, -75.0)
        await controller.fetch_weather()
        assert controller.weather is not None

        controller.set_manual_location(41.0, -75.0)

        assert controller.weather is None
        assert controller.state is WorkflowState.LOCATION_READY

    @pytest.mark.asyncio
    async def test_same_coordinates_keep_weather(self, controller):
        controller.set_manual_location(40.0, -75.0)
        await controller.fetch_weather()

        controller.set_manual_location(40.0, -75.0)

        assert controller.weather is not None
        assert controller.state is WorkflowState.WEATHER_READY


# ============================================================
# Weather Tests
# ============================================================

class TestWeather:
    """Tests for weather retrieval."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lat, lon", [(None, None), (40.0, None), (None, -75.0)])
    async def test_noop_without_location(self, controller, mock_weather_client, lat, lon):
        controller.set_manual_location(lat, lon)
        controller.error = CatalogFetchFailed()
        state_before = controller.state

        result = await controller.fetch_weather()

        assert result is None
        assert controller.state is state_before
        assert isinstance(controller.error, CatalogFetchFailed)
        mock_weather_client.fetch_weather.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success(self, controller, sample_weather, mock_weather_client):
        controller.set_manual_location(40.0, -75.0)

        snapshot = await controller.fetch_weather()

        assert snapshot == sample_weather
        assert controller.weather == sample_weather
        assert controller.state is WorkflowState.WEATHER_READY
        mock_weather_client.fetch_weather.assert_awaited_once_with(Location(lat=40.0, lon=-75.0))

    @pytest.mark.asyncio
    async def test_failure_is_not_fatal(self, ready_controller, mock_weather_client, mock_simulation_client):
        mock_weather_client.fetch_weather.side_effect = WeatherFetchFailed("Failed to fetch weather data: boom")

        await ready_controller.fetch_weather()

        assert ready_controller.state is WorkflowState.WEATHER_FAILED
        assert ready_controller.weather is None
        assert ready_controller.error_message == "Failed to fetch weather data: boom"
        assert ready_controller.can_run_simulation

        result = await ready_controller.run_simulation()

        assert result is not None
        assert ready_controller.state is WorkflowState.SIMULATION_COMPLETE
        request = mock_simulation_client.simulate.await_args.args[0]
        assert request.weather is None

    @pytest.mark.asyncio
    async def test_weather_included_in_simulation(self, ready_controller, sample_weather, mock_simulation_client):
        await ready_controller.fetch_weather()

        await ready_controller.run_simulation()

        request = mock_simulation_client.simulate.await_args.args[0]
        assert request.weather == sample_weather


# ============================================================
# Simulation Tests
# ============================================================

class TestSimulation:
    """Tests for simulation submission."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lat, lon", [(None, None), (40.0, None), (None, -75.0)])
    async def test_precondition_missing_location(self, controller, mock_simulation_client, lat, lon):
        controller.select_crop("Wheat")
        controller.set_manual_location(lat, lon)
        location_before = controller.location

        result = await controller.run_simulation()

        assert result is None
        assert controller.state is WorkflowState.INPUT_ERROR
        assert controller.error.kind == "SimulationPreconditionFailed"
        assert controller.error_message == "Please select a crop and ensure location is available"
        assert controller.location == location_before
        assert controller.selected_crop == "Wheat"
        mock_simulation_client.simulate.assert_not_called()

    @pytest.mark.asyncio
    async def test_precondition_missing_crop(self, controller, mock_simulation_client):
        controller.set_manual_location(40.0, -75.0)

        await controller.run_simulation()

        assert controller.state is WorkflowState.INPUT_ERROR
        mock_simulation_client.simulate.assert_not_called()

    @pytest.mark.asyncio
    async def test_precondition_failure_keeps_previous_result(self, ready_controller, sample_result):
        await ready_controller.run_simulation()
        ready_controller.select_crop("")

        await ready_controller.run_simulation()

        assert ready_controller.result == sample_result

    @pytest.mark.asyncio
    async def test_reference_scenario(self, ready_controller, mock_simulation_client):
        """Wheat on a plain at 40, -75 with no weather."""
        result = await ready_controller.run_simulation()

        request = mock_simulation_client.simulate.await_args.args[0]
        assert request.model_dump(mode="json") == {
            "crop": "Wheat",
            "location": {"lat": 40.0, "lon": -75.0},
            "terrain": "plain",
            "weather": None,
        }
        assert isinstance(result, SimulationResult)
        assert ready_controller.state is WorkflowState.SIMULATION_COMPLETE
        view = ready_controller.result_view
        assert view.probability == "62.0%"
        assert view.expected_yield == "3400"
        assert view.risk_tier is RiskTier.MEDIUM
        assert view.show_override_banner is False
        assert ready_controller.error is None

    @pytest.mark.asyncio
    async def test_one_request_per_call(self, ready_controller, mock_simulation_client):
        await ready_controller.run_simulation()
        await ready_controller.run_simulation()

        assert mock_simulation_client.simulate.await_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_run_rejected(self, ready_controller, mock_simulation_client, sample_result):
        release = asyncio.Event()

        async def slow_simulate(request):
            await release.wait()
            return sample_result

        mock_simulation_client.simulate.side_effect = slow_simulate

        first = asyncio.create_task(ready_controller.run_simulation())
        await asyncio.sleep(0)

        assert ready_controller.state is WorkflowState.SIMULATION_RUNNING
        assert ready_controller.busy
        assert ready_controller.busy_message == "Running 10,000 Monte Carlo Simulations..."
        assert not ready_controller.can_run_simulation

        with pytest.raises(SimulationInProgress):
            await ready_controller.run_simulation()

        release.set()
        assert await first == sample_result
        assert mock_simulation_client.simulate.call_count == 1
        assert not ready_controller.busy
        assert ready_controller.state is WorkflowState.SIMULATION_COMPLETE

    @pytest.mark.asyncio
    async def test_inputs_rejected_while_running(self, ready_controller, mock_simulation_client, sample_result):
        release = asyncio.Event()

        async def slow_simulate(request):
            await release.wait()
            return sample_result

        mock_simulation_client.simulate.side_effect = slow_simulate

        task = asyncio.create_task(ready_controller.run_simulation())
        await asyncio.sleep(0)

        with pytest.raises(SimulationInProgress):
            ready_controller.select_crop("Rice")
        with pytest.raises(SimulationInProgress):
            ready_controller.select_terrain("valley")
        with pytest.raises(SimulationInProgress):
            ready_controller.set_manual_location(1.0, 2.0)
        with pytest.raises(SimulationInProgress):
            await ready_controller.fetch_weather()

        release.set()
        await task

        assert ready_controller.selected_crop == "Wheat"
        assert ready_controller.location == Location(lat=40.0, lon=-75.0)

    @pytest.mark.asyncio
    async def test_request_failure(self, ready_controller, mock_simulation_client):
        mock_simulation_client.simulate.side_effect = SimulationRequestFailed(
            "Simulation failed: request error: Connection refused"
        )

        result = await ready_controller.run_simulation()

        assert result is None
        assert ready_controller.state is WorkflowState.SIMULATION_FAILED
        assert ready_controller.error_message == "Simulation failed: request error: Connection refused"
        assert ready_controller.result is None
        assert not ready_controller.busy

        # The session stays interactive
        assert await ready_controller.run_simulation() is None
        assert ready_controller.state is WorkflowState.SIMULATION_FAILED

    @pytest.mark.asyncio
    async def test_invalid_result_not_rendered(self, ready_controller, mock_simulation_client):
        mock_simulation_client.simulate.side_effect = SimulationResultInvalid()

        await ready_controller.run_simulation()

        assert ready_controller.state is WorkflowState.SIMULATION_FAILED
        assert ready_controller.error.kind == "SimulationResultInvalid"
        assert ready_controller.result is None
        assert ready_controller.result_view is None

    @pytest.mark.asyncio
    async def test_new_run_supersedes_result(self, ready_controller, mock_simulation_client, sample_result):
        await ready_controller.run_simulation()
        assert ready_controller.result == sample_result

        mock_simulation_client.simulate.side_effect = SimulationRequestFailed()
        await ready_controller.run_simulation()

        assert ready_controller.result is None

    @pytest.mark.asyncio
    async def test_run_clears_stale_error(self, ready_controller):
        ready_controller.error = CatalogFetchFailed()

        await ready_controller.run_simulation()

        assert ready_controller.error is None

    @pytest.mark.asyncio
    async def test_terrain_sent(self, ready_controller, mock_simulation_client):
        ready_controller.select_terrain("mountain")

        await ready_controller.run_simulation()

        request = mock_simulation_client.simulate.await_args.args[0]
        assert request.terrain is Terrain.MOUNTAIN


# ============================================================
# Selection Tests
# ============================================================

class TestSelection:
    """Tests for crop and terrain selection."""

    def test_invalid_terrain(self, controller):
        with pytest.raises(ValueError):
            controller.select_terrain("swamp")

        assert controller.terrain is Terrain.PLAIN

    def test_crop_without_catalog(self, controller):
        assert controller.select_crop("  Quinoa ") == "Quinoa"

    def test_empty_crop_clears_selection(self, controller):
        controller.select_crop("Wheat")

        assert controller.select_crop("") is None
        assert controller.selected_crop is None

    @pytest.mark.asyncio
    async def test_crop_resolved_against_catalog(self, controller):
        await controller.fetch_catalog()

        assert controller.select_crop("3") == "Tomato"
        assert controller.select_crop("Rice") == "Rice"
        with pytest.raises(ValueError, match="Unknown crop"):
            controller.select_crop("Quinoa")
        assert controller.selected_crop == "Rice"


# ============================================================
# Catalog & Endpoint Tests
# ============================================================

class TestCatalog:
    """Tests for the crop catalog cache."""

    @pytest.mark.asyncio
    async def test_fetched_once(self, controller, mock_catalog_client, sample_crops):
        first = await controller.fetch_catalog()
        second = await controller.fetch_catalog()

        assert first == tuple(sample_crops)
        assert second is first
        mock_catalog_client.fetch_crops.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh(self, controller, mock_catalog_client):
        await controller.fetch_catalog()
        await controller.fetch_catalog(refresh=True)

        assert mock_catalog_client.fetch_crops.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_leaves_workflow_untouched(self, controller, mock_catalog_client):
        controller.set_manual_location(40.0, -75.0)
        mock_catalog_client.fetch_crops.side_effect = CatalogFetchFailed("Failed to load crop data: HTTP 500")

        result = await controller.fetch_catalog()

        assert result is None
        assert controller.catalog is None
        assert controller.state is WorkflowState.LOCATION_READY
        assert controller.error.operation == "catalog"

    @pytest.mark.asyncio
    async def test_set_endpoint_clears_cache(self, controller, mock_backend):
        await controller.fetch_catalog()

        controller.set_endpoint("http://farm.example:8000")

        assert controller.catalog is None
        assert controller.endpoint == "http://farm.example:8000"
        assert mock_backend.endpoint == "http://farm.example:8000"

    @pytest.mark.asyncio
    async def test_same_endpoint_keeps_cache(self, controller):
        await controller.fetch_catalog()

        controller.set_endpoint(controller.endpoint)

        assert controller.catalog is not None

    def test_empty_endpoint_rejected(self, controller):
        with pytest.raises(ValueError):
            controller.set_endpoint("  ")

    @pytest.mark.asyncio
    async def test_catalog_from_superseded_endpoint_discarded(self, controller, mock_catalog_client, sample_crops):
        release = asyncio.Event()

        async def slow_fetch():
            await release.wait()
            return sample_crops

        mock_catalog_client.fetch_crops.side_effect = slow_fetch

        task = asyncio.create_task(controller.fetch_catalog())
        await asyncio.sleep(0)
        controller.set_endpoint("http://other:5000")
        release.set()

        assert await task is None
        assert controller.catalog is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
