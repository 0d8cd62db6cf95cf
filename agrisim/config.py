"""
Application configuration using Pydantic settings.
"""
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend Configuration
    backend_endpoint: str = Field(
        default="",
        description="Base URL of the simulation backend (e.g. http://localhost:5000)"
    )
    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for a single backend request"
    )

    # Device geolocation
    device_latitude: Optional[float] = Field(
        default=None,
        description="Latitude reported by the device geolocation capability"
    )
    device_longitude: Optional[float] = Field(
        default=None,
        description="Longitude reported by the device geolocation capability"
    )

    # Simulation
    monte_carlo_runs: int = Field(
        default=10000,
        description="Number of Monte Carlo runs announced while a simulation is in flight"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum simulation requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="AgriSim Planner",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
