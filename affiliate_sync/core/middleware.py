import logging
import time
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from affiliate_sync.config import settings

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 3.0
QUIET_PATHS = ("/health",)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        message = (
            f"{request.method} {request.url.path} "
            f"status={response.status_code} "
            f"duration={process_time:.3f}s"
        )
        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(f"Slow request: {message}")
        elif request.url.path in QUIET_PATHS:
            logger.debug(message)
        else:
            logger.info(message)

        response.headers["X-Process-Time"] = str(process_time)
        return response


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Process-Time"],
    )


def setup_middlewares(app: FastAPI) -> None:
    # CORS goes last so it is outermost and also covers error responses.
    app.add_middleware(RequestLoggingMiddleware)
    setup_cors(app)
