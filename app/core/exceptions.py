# app/core/exceptions.py
from typing import Dict, Any, Optional

from fastapi import status


class BusinessException(Exception):
    """Base exception for business rule violations."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "business_error"

    def __init__(
        self, message: str, code: str = None, details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


# Request-level exceptions
class UnsupportedAppTypeException(BusinessException):
    """Raised when an app type has no provider registered for it."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "unsupported_app_type"


class InvalidStateException(BusinessException):
    """Raised when an OAuth callback carries a missing or malformed code/state."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "invalid_state"


# Resource-related exceptions
class IntegrationNotFoundException(BusinessException):
    """Raised when the user has no integration for the requested app type."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "integration_not_found"


class DuplicateIntegrationException(BusinessException):
    """
    Raised when the user tries to connect an app type that is already connected.

    This is user-correctable: disconnect first, then connect again.
    """

    status_code = status.HTTP_409_CONFLICT
    error_code = "integration_already_connected"


# External provider exceptions
class ExternalServiceException(BusinessException):
    """Exception raised when an external service call fails."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "external_service_error"


class TokenExchangeFailedException(ExternalServiceException):
    """The provider rejected (or never answered) the code-for-token exchange."""

    error_code = "token_exchange_failed"


class TokenRefreshFailedException(ExternalServiceException):
    """The provider rejected (or never answered) a refresh-token grant."""

    error_code = "token_refresh_failed"


class ProviderAPIException(ExternalServiceException):
    """A provider data API (e.g. calendar listing) returned a non-2xx response."""

    error_code = "provider_api_error"

