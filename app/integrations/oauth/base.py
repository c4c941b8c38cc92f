from abc import ABC, abstractmethod
import logging
import time
from typing import Any, Dict, Optional, Type

import httpx

from app.core.config import settings
from app.core.constants import CallbackError
from app.core.exceptions import ExternalServiceException
from app.integrations.registry import OAuthEndpointConfig
from app.schemas.integration import OAuthTokens

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def expiry_from_expires_in(expires_in: Optional[Any]) -> int:
    """Turn a relative ``expires_in`` (seconds) into epoch milliseconds."""
    try:
        seconds = int(expires_in or 0)
    except (TypeError, ValueError):
        seconds = 0
    return now_ms() + seconds * 1000


class BaseOAuthClient(ABC):
    """
    Abstract base class for one provider's OAuth2 authorization-code flow.

    Instances hold only the immutable endpoint configuration; every call
    receives the tokens it needs explicitly.
    """

    def __init__(self, config: OAuthEndpointConfig):
        self.config = config

    @abstractmethod
    def build_authorization_url(self, state: str) -> str:
        """
        Build the URL the end user is sent to for consent.

        Args:
            state: Encoded state token to round-trip through the redirect
        """

    @abstractmethod
    async def exchange_code(self, code: str) -> OAuthTokens:
        """
        Exchange an authorization code for tokens.

        Raises:
            TokenExchangeFailedException: non-2xx response, transport error or timeout
        """

    @abstractmethod
    async def refresh(self, refresh_token: str) -> OAuthTokens:
        """
        Obtain a new access token from a refresh token.

        Raises:
            TokenRefreshFailedException: non-2xx response, transport error or timeout
        """

    async def _post_token_request(
        self,
        data: Dict[str, str],
        error_class: Type[ExternalServiceException],
        error_message: str,
        auth: Optional[httpx.Auth] = None,
    ) -> Dict[str, Any]:
        """
        POST a form-encoded grant to the token endpoint and return its JSON.

        Every failure is raised as ``error_class(error_message)``; that message
        is what the callback redirect shows the user.
        """
        try:
            async with httpx.AsyncClient(timeout=settings.OAUTH_HTTP_TIMEOUT) as client:
                resp = await client.post(
                    self.config.token_url,
                    data=data,
                    auth=auth,
                    headers={"Accept": "application/json"},
                )
                resp.raise_for_status()
                payload = resp.json()
        except httpx.TimeoutException as e:
            logger.error(f"Token endpoint timed out: {self.config.token_url}")
            raise error_class(error_message, details={"reason": "timeout"}) from e
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Token endpoint returned {e.response.status_code}: {self.config.token_url}"
            )
            raise error_class(
                error_message,
                details={"status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Token request to {self.config.token_url} failed: {e}")
            raise error_class(error_message) from e

        if not payload.get("access_token"):
            logger.error(f"Token endpoint returned no access token: {self.config.token_url}")
            raise error_class(CallbackError.ACCESS_TOKEN_MISSING)
        return payload

    @staticmethod
    def _tokens_from_payload(payload: Dict[str, Any], refreshed: bool = False) -> OAuthTokens:
        scope = payload.get("scope")
        if isinstance(scope, (list, tuple)):
            scope = " ".join(scope)
        return OAuthTokens(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expiry_date=expiry_from_expires_in(payload.get("expires_in")),
            scope=scope,
            token_type=payload.get("token_type"),
            refreshed=refreshed,
        )
