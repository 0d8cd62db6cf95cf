"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample crops, weather and simulation payloads
- Mock backend adapters and location provider
- A controller wired to the mocks
- FastAPI test client
"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from agrisim.main import app
from agrisim.domain.models import Crop, Location, SimulationResult, WeatherSnapshot
from agrisim.infrastructure.backend_clients import (
    BackendClient,
    CatalogClient,
    SimulationClient,
    WeatherClient,
)
from agrisim.infrastructure.location_provider import LocationOutcome, LocationProvider
from agrisim.services.application.orchestration_controller import OrchestrationController


ENDPOINT = "http://localhost:5000"


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def sample_crops() -> list[Crop]:
    """A small crop catalog."""
    return [
        Crop(id="1", name="Wheat", category="Cereal"),
        Crop(id="2", name="Rice", category="Cereal"),
        Crop(id="3", name="Tomato", category="Vegetable"),
    ]


@pytest.fixture
def sample_weather() -> WeatherSnapshot:
    return WeatherSnapshot(temp=21.5, humidity=60.0, rainfall=3.2, wind=12.0)


@pytest.fixture
def sample_result_payload() -> dict:
    """A well-formed simulation response body."""
    return {
        "success_probability": 0.62,
        "expected_yield": 3400,
        "risk_level": "Medium",
        "explanation": "Rainfall is the limiting factor.",
        "is_override": False,
    }


@pytest.fixture
def sample_result(sample_result_payload) -> SimulationResult:
    return SimulationResult(**sample_result_payload)


# ============================================================
# Mock Collaborator Fixtures
# ============================================================

@pytest.fixture
def mock_backend():
    """Transport stand-in; only its endpoint and close() are used by the controller."""
    backend = MagicMock(spec=BackendClient)
    backend.endpoint = ENDPOINT
    backend.close = AsyncMock()
    return backend


@pytest.fixture
def mock_catalog_client(sample_crops):
    client = AsyncMock(spec=CatalogClient)
    client.fetch_crops.return_value = sample_crops
    return client


@pytest.fixture
def mock_weather_client(sample_weather):
    client = AsyncMock(spec=WeatherClient)
    client.fetch_weather.return_value = sample_weather
    return client


@pytest.fixture
def mock_simulation_client(sample_result):
    client = AsyncMock(spec=SimulationClient)
    client.simulate.return_value = sample_result
    return client


@pytest.fixture
def mock_location_provider():
    """Provider whose device reports 40.0, -75.0; manual parsing is the real one."""
    provider = MagicMock(spec=LocationProvider)
    provider.locate = AsyncMock(
        return_value=LocationOutcome(location=Location(lat=40.0, lon=-75.0))
    )
    provider.parse_manual.side_effect = LocationProvider.parse_manual
    return provider


@pytest.fixture
def controller(
    mock_backend,
    mock_catalog_client,
    mock_weather_client,
    mock_simulation_client,
    mock_location_provider,
) -> OrchestrationController:
    """A fresh controller wired to mock collaborators."""
    return OrchestrationController(
        backend=mock_backend,
        catalog_client=mock_catalog_client,
        weather_client=mock_weather_client,
        simulation_client=mock_simulation_client,
        location_provider=mock_location_provider,
    )


@pytest.fixture
def ready_controller(controller) -> OrchestrationController:
    """Controller with a valid location and a selected crop."""
    controller.set_manual_location(40.0, -75.0)
    controller.select_crop("Wheat")
    return controller


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)


@pytest.fixture
def session_client(controller):
    """Test client whose session is backed by the mock-wired controller."""
    from agrisim.api.dependencies import get_controller

    app.dependency_overrides[get_controller] = lambda: controller
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
