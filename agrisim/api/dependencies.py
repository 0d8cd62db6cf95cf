"""
Dependency injection for FastAPI.
"""
from typing import Annotated, Optional
from fastapi import Depends

from agrisim.services.application.orchestration_controller import OrchestrationController


# Singleton instance: one planning session per process
_controller: Optional[OrchestrationController] = None


def get_controller() -> OrchestrationController:
    """
    Get or create the session controller.

    Returns:
        OrchestrationController instance
    """
    global _controller
    if _controller is None:
        _controller = OrchestrationController.build()
    return _controller


async def close_controller():
    """Close the session controller, if one was created."""
    global _controller
    if _controller is not None:
        await _controller.close()
        _controller = None


# Type aliases for cleaner route signatures
ControllerDep = Annotated[OrchestrationController, Depends(get_controller)]
