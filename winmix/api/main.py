"""
WinMix Prediction API - FastAPI Application

Main entry point for the backend API.
This module configures the FastAPI app, middleware, and routes.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from winmix.api.dependencies import get_config, get_database_service, get_prediction_engine
from winmix.api.routes import learning, predictions, statistics
from winmix.application.dtos.dtos import ErrorResponseDTO, HealthResponseDTO
from winmix.domain.exceptions import UpstreamUnavailableException, ValidationException
from winmix.utils.time_utils import get_current_time

# Load environment variables
load_dotenv()


# Logging timestamps use the service timezone
class ServiceTimeFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        ct = get_current_time()
        if datefmt:
            s = ct.strftime(datefmt)
        else:
            t = ct.strftime("%Y-%m-%d %H:%M:%S")
            s = "%s,%03d" % (t, record.msecs)
        return s


formatter = ServiceTimeFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
handler = logging.StreamHandler()
handler.setFormatter(formatter)
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)
root_logger.handlers = [handler]
logger = logging.getLogger(__name__)


# Application metadata
APP_TITLE = "WinMix Prediction API"
APP_DESCRIPTION = """
**Football Match Prediction API**

Ensemble predictions for football fixtures built from stored match history.

## Features

* **Match Statistics** - Outcome, BTTS, comeback, goal and half-time breakdowns
* **Ensemble Predictions** - Empirical, gradient-boosted, Poisson and Markov models
* **In-match Updates** - Half-time score aware predictions
* **Continuous Learning** - Ensemble weights follow recent model accuracy

---
**Educational purposes only** - Not for actual betting
"""
APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    config = get_config()
    logger.info(f"Starting {APP_TITLE} v{APP_VERSION} ({config.model_version})")
    get_database_service().create_tables()

    engine = get_prediction_engine()
    logger.info(f"Models loaded: {', '.join(engine.models)}")

    yield

    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title=APP_TITLE,
    description=APP_DESCRIPTION,
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# Configure CORS
base_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]
all_origins = list(set(o for o in base_origins + list(get_config().cors_origins) if o))

app.add_middleware(
    CORSMiddleware,
    allow_origins=all_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException):
    return JSONResponse(
        status_code=422,
        content=ErrorResponseDTO(
            error="validation_error",
            message=str(exc),
            details={"path": str(request.url)},
        ).model_dump(),
    )


@app.exception_handler(UpstreamUnavailableException)
async def upstream_exception_handler(request: Request, exc: UpstreamUnavailableException):
    logger.error(f"Match store unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorResponseDTO(
            error="upstream_unavailable",
            message="Match history store is unavailable",
            details={"path": str(request.url)},
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ErrorResponseDTO(
            error="internal_server_error",
            message="An unexpected error occurred",
            details={"path": str(request.url)},
        ).model_dump(),
    )


# Health check endpoint
@app.get(
    "/health",
    response_model=HealthResponseDTO,
    tags=["Health"],
    summary="Health check",
    description="Check if the API is running and healthy.",
)
async def health_check() -> HealthResponseDTO:
    """Health check endpoint."""
    return HealthResponseDTO(
        status="healthy",
        version=APP_VERSION,
        timestamp=get_current_time(),
    )


# Root endpoint
@app.get(
    "/",
    tags=["Root"],
    summary="API Information",
    description="Get basic API information and links.",
)
async def root():
    """Root endpoint with API info."""
    return {
        "name": APP_TITLE,
        "version": APP_VERSION,
        "documentation": "/docs",
        "health": "/health",
        "endpoints": {
            "predictions": "/api/v1/predictions",
            "batch_predictions": "/api/v1/predictions/batch",
            "statistics": "/api/v1/statistics",
            "feedback": "/api/v1/learning/feedback",
            "weights": "/api/v1/learning/weights",
        },
    }


# Include routers
app.include_router(predictions.router, prefix="/api/v1")
app.include_router(statistics.router, prefix="/api/v1")
app.include_router(learning.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "winmix.api.main:app",
        host="0.0.0.0",
        port=get_config().port,
        reload=True,
    )
