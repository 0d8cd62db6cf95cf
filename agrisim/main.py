"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from agrisim.config import settings
from agrisim.middleware.error_handler import ErrorHandlerMiddleware
from agrisim.middleware.rate_limit import limiter
from agrisim.api.v1.routers import session

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Backend endpoint: {settings.backend_endpoint or '(not configured)'}")
    logger.info(f"Rate limit: {settings.rate_limit_requests} simulations/minute")

    yield

    # Shutdown
    from agrisim.api.dependencies import close_controller
    logger.info("Shutting down application...")
    await close_controller()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Agricultural Simulation Planning API

    This API drives a crop planning session against a Monte Carlo
    crop-success backend.

    ## Workflow

    1. Configure the backend endpoint and load the crop catalog
    2. Resolve a location from the device or enter coordinates manually
    3. Optionally fetch current weather for that location
    4. Select a crop and terrain, then run the simulation
    5. Read the success probability, yield projection, risk tier and
       override warnings from the session snapshot

    Weather is optional: a simulation runs without it if retrieval failed
    or was skipped. Only one simulation may be in flight at a time.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(session.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
