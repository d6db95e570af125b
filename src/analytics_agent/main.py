import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.analytics_agent.api.dependencies import close_service_clients
from src.analytics_agent.api.middlewares import setup_middlewares
from src.analytics_agent.api.v1.router import api_router
from src.analytics_agent.core.config import get_settings
from src.analytics_agent.core.exceptions import setup_exception_handlers
from src.analytics_agent.core.logging import get_logger, setup_logging
from src.analytics_agent.core.rate_limit import limiter
from src.analytics_agent.core.shutdown import run_tracker

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}", app_env=settings.app_env)

    yield

    # Let running workflows finish before their HTTP clients are closed
    grace_period = settings.shutdown_grace_period
    logger.info(
        f"Shutdown initiated, waiting for {run_tracker.in_flight_count} workflow runs..."
    )
    await run_tracker.start_shutdown()

    drained = await run_tracker.wait_for_drain(timeout=grace_period)
    if not drained:
        logger.warning(
            f"Shutdown timeout after {grace_period}s - "
            f"{run_tracker.in_flight_count} runs may not have completed"
        )

    logger.info("Closing connections...")
    await close_service_clients()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "workflow", "description": "Workflow execution and per-step helpers"},
    {"name": "query", "description": "Natural-language questions over a data source"},
    {"name": "health", "description": "Liveness and readiness"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Analytics monitoring workflow engine",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
    )

    setup_exception_handlers(app)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    setup_middlewares(app, settings)

    app.include_router(api_router)

    # Prometheus metrics instrumentation
    instrumentator = Instrumentator().instrument(app)

    # Protect /metrics endpoint if API key is configured
    if settings.metrics_api_key:
        api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

        async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
            if (
                api_key is None
                or settings.metrics_api_key is None
                or not secrets.compare_digest(api_key, settings.metrics_api_key)
            ):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid or missing metrics API key",
                )

        instrumentator.expose(app, endpoint="/metrics", dependencies=[Depends(verify_metrics_key)])
    else:
        instrumentator.expose(app, endpoint="/metrics")

    @app.get("/health", tags=["health"])
    async def health() -> JSONResponse:
        """Report service status and in-flight workflow runs."""
        if run_tracker.is_shutting_down:
            return JSONResponse(
                content={
                    "status": "draining",
                    "in_flight_runs": run_tracker.in_flight_count,
                    "message": "Server is shutting down",
                },
                status_code=503,
            )

        return JSONResponse(
            content={
                "status": "healthy",
                "openrouter": "configured" if settings.openrouter_api_key else "not_configured",
                "in_flight_runs": run_tracker.in_flight_count,
            }
        )

    return app


app = create_app()
