"""Main FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.api.deps import build_patient_service, close_patient_service
from app.api.endpoints import router, status_router
from app.config import ServiceConfig
from app.errors import PatientServiceError
from app.services.patients import PatientService
from app.utils.logging import LogConfig, get_logger, setup_logging

logger = get_logger(__name__)


async def handle_patient_service_error(request: Request, exc: PatientServiceError) -> JSONResponse:
    """Translate service errors into JSON error responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.error, "detail": str(exc)})


def create_app(service: PatientService | None = None, config: ServiceConfig | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        service: Pre-built patient service. Its collaborators stay open at
            shutdown; only its in-flight publishes are awaited. When omitted,
            one is wired from ``config`` at startup and closed at shutdown.
        config: Service configuration, defaults to the environment
    """
    config = config or ServiceConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if service is not None:
            yield
            await service.drain_publishes()
            return

        setup_logging(LogConfig(level=config.log_level, service_name=config.service_name))
        app.state.patient_service = await build_patient_service(config)
        logger.info(f"{config.service_name} {__version__} started")
        try:
            yield
        finally:
            await close_patient_service(app.state.patient_service)

    app = FastAPI(
        title="Patient Service",
        description=(
            "Manages patient records. Creating a patient also provisions a billing "
            "account and publishes a patient created event."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Patient", "description": "API for managing Patients"},
            {"name": "Health", "description": "Service health monitoring and status checks."},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PatientServiceError, handle_patient_service_error)

    app.include_router(router)
    app.include_router(status_router)

    if service is not None:
        app.state.patient_service = service

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=4000, reload=True, log_level="info")
