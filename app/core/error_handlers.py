import logging
from typing import Dict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from app.core.config import settings
from app.core.exceptions import BusinessException

# Set up module logger
logger = logging.getLogger(__name__)


def _request_extra(request: Request) -> Dict[str, str]:
    return {
        "path": request.url.path,
        "method": request.method,
        "client_host": request.client.host if request.client else "unknown",
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers for the FastAPI application.

    OAuth callback routes never let exceptions reach these handlers; they
    answer with a redirect instead. Everything else gets a JSON error body.

    Args:
        app: The FastAPI application instance
    """

    @app.exception_handler(BusinessException)
    async def business_exception_handler(
        request: Request, exc: BusinessException
    ) -> JSONResponse:
        """
        Handle integration errors (unsupported app type, not found,
        already connected, provider failures) as a standardized JSON response.
        """
        logger.warning(
            f"Business exception: {exc.code}: {exc.message}",
            extra={**_request_extra(request), "details": exc.details},
        )

        content = {
            "error": exc.code,
            "message": exc.message,
        }

        if exc.details:
            content["details"] = exc.details

        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Handle Pydantic validation errors, flattened to {field: message}.
        """
        simplified_errors: Dict[str, str] = {}

        for error in exc.errors():
            loc = error.get("loc", [])
            # Skip the first element if it's the body
            if loc and loc[0] in ("body", "query", "path"):
                loc = loc[1:]

            field = ".".join(str(x) for x in loc)
            simplified_errors[field] = error.get("msg", "Validation error")

        logger.warning(
            f"Validation error: {simplified_errors}", extra=_request_extra(request)
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "validation_error",
                "message": "Input validation failed",
                "details": simplified_errors,
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """
        Handle unhandled exceptions.
        Logs them as errors and returns a generic error message.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            exc_info=True,
            extra=_request_extra(request),
        )

        # Don't expose details in production
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "internal_server_error",
                "message": str(exc)
                if settings.ENVIRONMENT != "production"
                else "An internal server error occurred",
            },
        )
