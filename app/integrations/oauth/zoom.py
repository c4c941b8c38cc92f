import httpx

from app.core.constants import CallbackError
from app.core.exceptions import TokenExchangeFailedException, TokenRefreshFailedException
from app.integrations.oauth.base import BaseOAuthClient
from app.schemas.integration import OAuthTokens


class ZoomOAuthClient(BaseOAuthClient):
    """Zoom OAuth: client credentials travel in an HTTP Basic header."""

    def _basic_auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.config.client_id, self.config.client_secret)

    def build_authorization_url(self, state: str) -> str:
        url = httpx.URL(self.config.authorize_url).copy_merge_params(
            {
                "response_type": "code",
                "client_id": self.config.client_id,
                "redirect_uri": self.config.redirect_uri,
                "state": state,
            }
        )
        return str(url)

    async def exchange_code(self, code: str) -> OAuthTokens:
        payload = await self._post_token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.config.redirect_uri,
            },
            error_class=TokenExchangeFailedException,
            error_message=CallbackError.TOKEN_EXCHANGE_FAILED,
            auth=self._basic_auth(),
        )
        return self._tokens_from_payload(payload)

    async def refresh(self, refresh_token: str) -> OAuthTokens:
        # Zoom rotates refresh tokens; the new one comes back in the payload
        payload = await self._post_token_request(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            error_class=TokenRefreshFailedException,
            error_message="Failed to refresh token",
            auth=self._basic_auth(),
        )
        return self._tokens_from_payload(payload, refreshed=True)
