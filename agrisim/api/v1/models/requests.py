"""
API request models using Pydantic.
"""
from typing import Optional, Union
from pydantic import BaseModel, Field


class EndpointRequest(BaseModel):
    """Backend endpoint to use for the session."""
    endpoint: str = Field(
        description="Base URL of the simulation backend",
        examples=["http://localhost:5000"],
    )


class ManualLocationRequest(BaseModel):
    """Manually entered coordinates; either may still be empty."""
    lat: Optional[Union[float, str]] = Field(
        default=None,
        description="Latitude in degrees",
        examples=[40.0],
    )
    lon: Optional[Union[float, str]] = Field(
        default=None,
        description="Longitude in degrees",
        examples=[-75.0],
    )


class CropSelectionRequest(BaseModel):
    """Crop to simulate, by name or catalog id."""
    crop: Optional[str] = Field(
        default=None,
        description="Crop name or id; empty clears the selection",
        examples=["Wheat"],
    )


class TerrainSelectionRequest(BaseModel):
    """Terrain of the planting site."""
    terrain: str = Field(
        description="One of plain, plateau, mountain, valley, coastal",
        examples=["plain"],
    )
