import logging
import time
import uuid
from typing import Optional
from urllib.parse import urlencode

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from app.core.logging import redact, request_context

# Set up logger
logger = logging.getLogger(__name__)


def loggable_url(request: Request) -> str:
    """Request path plus query string with OAuth code/state masked."""
    if not request.query_params:
        return request.url.path
    query = urlencode(redact(dict(request.query_params)))
    return f"{request.url.path}?{query}"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.

    The request ID is added to the request state and as a response header,
    and every request is logged with its status and timing.
    """

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = "X-Request-ID",
        environment_header: Optional[str] = "X-Environment",
    ):
        super().__init__(app)
        self.header_name = header_name
        self.environment_header = environment_header

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id

        if self.environment_header:
            request.state.environment = request.headers.get(
                self.environment_header, "unknown"
            )

        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as exc:
            self._log_exception(request, exc, start_time)
            raise

        response.headers[self.header_name] = request_id
        if self.environment_header and hasattr(request.state, "environment"):
            response.headers[self.environment_header] = request.state.environment

        self._log_request(request, response, start_time)
        return response

    def _base_log_dict(self, request: Request, start_time: float) -> dict:
        return {
            "request_id": getattr(request.state, "request_id", "unknown"),
            "method": request.method,
            "url": loggable_url(request),
            "process_time_ms": round((time.time() - start_time) * 1000, 2),
            "client_host": request.client.host if request.client else "unknown",
        }

    def _log_request(
        self, request: Request, response: Response, start_time: float
    ) -> None:
        """Log details about the request and response."""
        log_dict = self._base_log_dict(request, start_time)
        log_dict["status_code"] = response.status_code

        # Choose log level based on status code
        if response.status_code >= 500:
            logger.error(f"Request failed: {log_dict}")
        elif response.status_code >= 400:
            logger.warning(f"Request error: {log_dict}")
        else:
            logger.info(f"Request completed: {log_dict}")

    def _log_exception(
        self, request: Request, exc: Exception, start_time: float
    ) -> None:
        """Log unhandled exceptions."""
        log_dict = self._base_log_dict(request, start_time)
        log_dict["exception"] = str(exc)
        logger.error(f"Unhandled exception during request: {log_dict}", exc_info=True)


class LogContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that binds request information to the logging context.

    Every record emitted while the request is processed carries the
    request_id, method and path.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        token = request_context.set(
            {
                "request_id": getattr(request.state, "request_id", "unknown"),
                "method": request.method,
                "path": request.url.path,
                "client_host": request.client.host if request.client else "unknown",
            }
        )

        try:
            return await call_next(request)
        finally:
            request_context.reset(token)


def register_middlewares(app: FastAPI) -> None:
    """
    Register all middlewares with the FastAPI app.

    Note: Middleware is executed in reverse order of registration
    (last registered is executed first), so the request ID is assigned
    before the log context is bound.

    Args:
        app: The FastAPI application instance
    """
    app.add_middleware(LogContextMiddleware)
    app.add_middleware(
        RequestIdMiddleware,
        header_name="X-Request-ID",
        environment_header="X-Environment",
    )
