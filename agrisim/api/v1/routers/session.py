"""
API router for the planning session.

Each route forwards one user intent to the controller and answers with the
resulting session snapshot. Operational failures (catalog, location,
weather, simulation) are reported in the snapshot's error slot; rejected
intents are HTTP errors raised by the error handling middleware.
"""
from fastapi import APIRouter, Query, Request

from agrisim.api.dependencies import ControllerDep
from agrisim.api.v1.models.requests import (
    CropSelectionRequest,
    EndpointRequest,
    ManualLocationRequest,
    TerrainSelectionRequest,
)
from agrisim.api.v1.models.responses import SessionResponse
from agrisim.middleware.rate_limit import SIMULATION_RATE_LIMIT, limiter


router = APIRouter(
    prefix="/session",
    tags=["session"],
)

_REJECTED = {
    400: {"description": "Invalid input"},
    409: {"description": "A simulation is in flight"},
}


@router.get(
    "",
    response_model=SessionResponse,
    summary="Get the session snapshot",
)
async def get_session(controller: ControllerDep) -> SessionResponse:
    """Return the current workflow state, inputs, result and error."""
    return SessionResponse.from_controller(controller)


@router.put(
    "/endpoint",
    response_model=SessionResponse,
    summary="Configure the backend endpoint",
    responses=_REJECTED,
)
async def set_endpoint(body: EndpointRequest, controller: ControllerDep) -> SessionResponse:
    """Point the session at a backend; a changed endpoint clears the crop catalog."""
    controller.set_endpoint(body.endpoint)
    return SessionResponse.from_controller(controller)


@router.post(
    "/catalog",
    response_model=SessionResponse,
    summary="Fetch the crop catalog",
)
async def fetch_catalog(
    controller: ControllerDep,
    refresh: bool = Query(default=False, description="Refetch even if cached"),
) -> SessionResponse:
    """Load the crops offered by the backend, once per endpoint unless refreshed."""
    await controller.fetch_catalog(refresh=refresh)
    return SessionResponse.from_controller(controller)


@router.post(
    "/location/request",
    response_model=SessionResponse,
    summary="Request the device location",
    responses=_REJECTED,
)
async def request_location(controller: ControllerDep) -> SessionResponse:
    await controller.request_location()
    return SessionResponse.from_controller(controller)


@router.put(
    "/location",
    response_model=SessionResponse,
    summary="Enter coordinates manually",
    responses=_REJECTED,
)
async def set_manual_location(body: ManualLocationRequest, controller: ControllerDep) -> SessionResponse:
    controller.set_manual_location(body.lat, body.lon)
    return SessionResponse.from_controller(controller)


@router.put(
    "/crop",
    response_model=SessionResponse,
    summary="Select a crop",
    responses=_REJECTED,
)
async def select_crop(body: CropSelectionRequest, controller: ControllerDep) -> SessionResponse:
    controller.select_crop(body.crop)
    return SessionResponse.from_controller(controller)


@router.put(
    "/terrain",
    response_model=SessionResponse,
    summary="Select the terrain",
    responses=_REJECTED,
)
async def select_terrain(body: TerrainSelectionRequest, controller: ControllerDep) -> SessionResponse:
    controller.select_terrain(body.terrain)
    return SessionResponse.from_controller(controller)


@router.post(
    "/weather",
    response_model=SessionResponse,
    summary="Fetch current weather",
    responses=_REJECTED,
)
async def fetch_weather(controller: ControllerDep) -> SessionResponse:
    """Fetch weather for the session location; ignored while the location is incomplete."""
    await controller.fetch_weather()
    return SessionResponse.from_controller(controller)


@router.post(
    "/simulation",
    response_model=SessionResponse,
    summary="Run the crop simulation",
    description="""
    Submit the selected crop, location, terrain and (optional) weather to the
    Monte Carlo engine.

    Without a crop or a valid location the session moves to `InputError`
    and no request is made. Only one simulation may be in flight at a time.
    """,
    responses={
        **_REJECTED,
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(SIMULATION_RATE_LIMIT)
async def run_simulation(request: Request, controller: ControllerDep) -> SessionResponse:
    await controller.run_simulation()
    return SessionResponse.from_controller(controller)
