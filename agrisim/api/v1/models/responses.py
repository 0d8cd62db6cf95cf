"""
API response models using Pydantic.
"""
from dataclasses import asdict
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from agrisim.domain.models import (
    Crop,
    Location,
    SimulationResult,
    Terrain,
    WeatherSnapshot,
    WorkflowState,
)
from agrisim.services.application.orchestration_controller import OrchestrationController
from agrisim.services.domain.result_interpreter import RiskTier, format_weather


class ErrorInfo(BaseModel):
    """The session's current error."""
    kind: str = Field(description="Error type, e.g. WeatherFetchFailed")
    operation: str = Field(description="Operation that produced the error")
    message: str = Field(description="Human-readable message")


class ResultViewResponse(BaseModel):
    """Display fields derived from the simulation result."""
    probability: str
    expected_yield: str
    yield_unit: str
    risk_level: Any = Field(description="Risk level as sent by the backend")
    risk_tier: RiskTier
    risk_style: str
    explanation: str
    show_override_banner: bool
    override_warning: Optional[str] = None
    show_yield_range: bool
    yield_range: Dict[str, str]


class SessionResponse(BaseModel):
    """Everything the presentation layer needs to render the session."""
    state: WorkflowState
    endpoint: str
    location: Location
    selected_crop: Optional[str] = None
    terrain: Terrain
    catalog: Optional[List[Crop]] = Field(
        default=None,
        description="Cached crop catalog; null until fetched"
    )
    weather: Optional[WeatherSnapshot] = None
    weather_display: Optional[Dict[str, str]] = None
    result: Optional[SimulationResult] = None
    result_view: Optional[ResultViewResponse] = None
    error: Optional[ErrorInfo] = None
    busy: bool
    busy_message: Optional[str] = None
    can_fetch_weather: bool
    can_run_simulation: bool

    class Config:
        json_schema_extra = {
            "example": {
                "state": "SimulationComplete",
                "endpoint": "http://localhost:5000",
                "location": {"lat": 40.0, "lon": -75.0},
                "selected_crop": "Wheat",
                "terrain": "plain",
                "catalog": [{"id": "1", "name": "Wheat", "category": "Cereal"}],
                "weather": None,
                "weather_display": None,
                "result": {
                    "success_probability": 0.62,
                    "expected_yield": 3400,
                    "risk_level": "Medium",
                    "explanation": "Rainfall is the limiting factor.",
                    "is_override": False,
                    "yield_range": None,
                },
                "result_view": {
                    "probability": "62.0%",
                    "expected_yield": "3400",
                    "yield_unit": "kg/ha",
                    "risk_level": "Medium",
                    "risk_tier": "medium",
                    "risk_style": "yellow",
                    "explanation": "Rainfall is the limiting factor.",
                    "show_override_banner": False,
                    "override_warning": None,
                    "show_yield_range": False,
                    "yield_range": {},
                },
                "error": None,
                "busy": False,
                "busy_message": None,
                "can_fetch_weather": True,
                "can_run_simulation": True,
            }
        }

    @classmethod
    def from_controller(cls, controller: OrchestrationController) -> "SessionResponse":
        """
        Build a snapshot of the controller's state.

        Args:
            controller: The session controller

        Returns:
            SessionResponse instance
        """
        error = None
        if controller.error is not None:
            error = ErrorInfo(
                kind=controller.error.kind,
                operation=controller.error.operation,
                message=controller.error.message,
            )

        result_view = None
        if controller.result_view is not None:
            result_view = ResultViewResponse(**asdict(controller.result_view))

        return cls(
            state=controller.state,
            endpoint=controller.endpoint,
            location=controller.location,
            selected_crop=controller.selected_crop,
            terrain=controller.terrain,
            catalog=list(controller.catalog) if controller.catalog is not None else None,
            weather=controller.weather,
            weather_display=format_weather(controller.weather) if controller.weather is not None else None,
            result=controller.result,
            result_view=result_view,
            error=error,
            busy=controller.busy,
            busy_message=controller.busy_message,
            can_fetch_weather=controller.can_fetch_weather,
            can_run_simulation=controller.can_run_simulation,
        )
