import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from affiliate_sync.api.v1.router import router as api_router
from affiliate_sync.config import settings
from affiliate_sync.core.exceptions import AffiliateSyncException
from affiliate_sync.core.middleware import setup_middlewares
from affiliate_sync.schemas.common import HealthResponse
from affiliate_sync.services import AffiliateStore, PollingScheduler
from affiliate_sync.services.remote import RemoteDataSource, close_api_client, get_api_client
from affiliate_sync.utils.helpers import utc_now

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format=settings.log_format,
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name}...")

    source = RemoteDataSource(get_api_client())
    app.state.store = AffiliateStore(source, settings)
    app.state.scheduler = PollingScheduler(app.state.store, settings)

    if settings.polling_autostart:
        await app.state.scheduler.start(settings.polling_page_context)

    logger.info("Application startup complete")
    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await app.state.scheduler.stop()
    await app.state.store.aclose()
    await close_api_client()

    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    description="Affiliate network sync and aggregation service",
    version=VERSION,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

setup_middlewares(app)


@app.exception_handler(AffiliateSyncException)
async def affiliate_sync_exception_handler(request: Request, exc: AffiliateSyncException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
            }
        )

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "Validation error",
            "details": errors,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception: {exc}")

    if settings.debug:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": str(exc),
                "type": type(exc).__name__,
            },
        )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
        },
    )


@app.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    services = {}

    scheduler = getattr(request.app.state, "scheduler", None)
    services["polling"] = "running" if scheduler and scheduler.is_running else "stopped"

    store = getattr(request.app.state, "store", None)
    if store is None or store.get_snapshot().last_update is None:
        services["cache"] = "empty"
    else:
        services["cache"] = "stale" if store.is_stale() else "fresh"

    return HealthResponse(
        version=VERSION,
        timestamp=utc_now(),
        services=services,
    )


app.include_router(api_router, prefix="/api")


def main() -> None:
    import uvicorn

    uvicorn.run(
        "affiliate_sync.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
