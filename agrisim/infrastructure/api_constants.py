"""
Backend endpoint constants and configuration.

This module contains the simulation backend's endpoint paths and related
constants. The base endpoint itself is user supplied at runtime.
"""

# Simulation backend endpoints
class BackendEndpoints:
    """Backend endpoint paths, appended to the configured endpoint."""

    API_BASE = "/api"

    CROPS = f"{API_BASE}/crops"
    WEATHER = f"{API_BASE}/weather"
    SIMULATE = f"{API_BASE}/simulate"

    @classmethod
    def url(cls, endpoint: str, path: str) -> str:
        """
        Prepend the endpoint to a path.

        The endpoint is treated as opaque and is not normalised.

        Args:
            endpoint: User supplied base endpoint
            path: One of the endpoint paths above

        Returns:
            Full request URL
        """
        return f"{endpoint}{path}"


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"

    # Timeouts (in seconds)
    DEFAULT_TIMEOUT = 30.0
