import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from starlette.exceptions import HTTPException as StarletteHTTPException

from estimator.config import validate_provider_settings

logger = logging.getLogger(__name__)
from estimator.routes import estimate, health
from estimator.providers.registry import provider_registry
from estimator.utils.exceptions import http_exception_handler, validation_exception_handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle events"""
    validate_provider_settings()

    yield

    # Shutdown: Cleanup resources
    await provider_registry.cleanup()


app = FastAPI(
    title="Macro Estimator API",
    description="Calorie and macro estimation with SSE streaming",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware (the mobile client calls this API directly)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Include routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(estimate.router, prefix="/api", tags=["estimate"])
# Same path layout as the hosted function, so clients can point at either
app.include_router(estimate.router, prefix="/functions/v1", tags=["estimate"])
