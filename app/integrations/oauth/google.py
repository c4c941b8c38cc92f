# app/integrations/oauth/google.py
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from app.core.config import settings
from app.core.constants import CallbackError
from app.core.exceptions import TokenExchangeFailedException, TokenRefreshFailedException
from app.integrations.oauth.base import BaseOAuthClient, expiry_from_expires_in
from app.schemas.integration import OAuthTokens
from app.utils.timeout import with_timeout

logger = logging.getLogger(__name__)

# With include_granted_scopes Google may return more scopes than requested
os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")


def expiry_to_epoch_ms(expiry: Optional[datetime]) -> Optional[int]:
    """google-auth reports expiry as a naive UTC datetime."""
    if expiry is None:
        return None
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return int(expiry.timestamp() * 1000)


class GoogleOAuthClient(BaseOAuthClient):
    """Google OAuth through google-auth-oauthlib / google-auth."""

    def _client_config(self) -> Dict[str, Any]:
        return {
            "web": {
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "auth_uri": self.config.authorize_url,
                "token_uri": self.config.token_url,
                "redirect_uris": [self.config.redirect_uri],
            }
        }

    def create_oauth_flow(self) -> Flow:
        """
        Create a fresh OAuth flow.

        PKCE is disabled because the verifier would have to survive between
        the authorize request and the callback.
        """
        return Flow.from_client_config(
            self._client_config(),
            scopes=list(self.config.scopes),
            redirect_uri=self.config.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def build_authorization_url(self, state: str) -> str:
        authorization_url, _ = self.create_oauth_flow().authorization_url(
            access_type="offline",
            include_granted_scopes="true",
            prompt="consent",
            state=state,
        )
        return authorization_url

    def _fetch_token(self, code: str) -> Dict[str, Any]:
        flow = self.create_oauth_flow()
        return dict(flow.fetch_token(code=code, timeout=settings.OAUTH_HTTP_TIMEOUT))

    async def exchange_code(self, code: str) -> OAuthTokens:
        try:
            token = await with_timeout(
                run_in_threadpool(self._fetch_token, code),
                timeout=settings.OAUTH_HTTP_TIMEOUT,
                error_message=CallbackError.TOKEN_EXCHANGE_FAILED,
                exception_class=TokenExchangeFailedException,
            )
        except TokenExchangeFailedException:
            raise
        except Exception as e:
            logger.error(f"Error exchanging Google authorization code: {e}")
            raise TokenExchangeFailedException(CallbackError.TOKEN_EXCHANGE_FAILED) from e

        if not token.get("access_token"):
            raise TokenExchangeFailedException(CallbackError.ACCESS_TOKEN_MISSING)

        expires_at = token.get("expires_at")
        scope = token.get("scope")
        return OAuthTokens(
            access_token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            expiry_date=(
                int(float(expires_at) * 1000)
                if expires_at
                else expiry_from_expires_in(token.get("expires_in"))
            ),
            scope=" ".join(scope) if isinstance(scope, (list, tuple)) else scope,
            token_type=token.get("token_type"),
        )

    def _refresh_credentials(self, refresh_token: str) -> Credentials:
        credentials = Credentials(
            token=None,  # Token is expired or missing
            refresh_token=refresh_token,
            token_uri=self.config.token_url,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            scopes=list(self.config.scopes),
        )
        credentials.refresh(Request())
        return credentials

    async def refresh(self, refresh_token: str) -> OAuthTokens:
        try:
            credentials = await with_timeout(
                run_in_threadpool(self._refresh_credentials, refresh_token),
                timeout=settings.OAUTH_HTTP_TIMEOUT,
                error_message="Google token refresh timed out",
                exception_class=TokenRefreshFailedException,
            )
        except TokenRefreshFailedException:
            raise
        except Exception as e:
            logger.error(f"Error refreshing Google token: {e}")
            raise TokenRefreshFailedException("Failed to refresh Google token") from e

        return OAuthTokens(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expiry_date=expiry_to_epoch_ms(credentials.expiry),
            refreshed=True,
        )
