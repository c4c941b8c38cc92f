import httpx

from app.core.constants import CallbackError
from app.core.exceptions import TokenExchangeFailedException, TokenRefreshFailedException
from app.integrations.oauth.base import BaseOAuthClient
from app.schemas.integration import OAuthTokens


class MicrosoftOAuthClient(BaseOAuthClient):
    """Microsoft identity platform (v2.0): client credentials go in the form body."""

    def build_authorization_url(self, state: str) -> str:
        url = httpx.URL(self.config.authorize_url).copy_merge_params(
            {
                "client_id": self.config.client_id,
                "response_type": "code",
                "redirect_uri": self.config.redirect_uri,
                "response_mode": "query",
                "scope": self.config.scope,
                "state": state,
            }
        )
        return str(url)

    def _client_credentials(self) -> dict:
        return {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "redirect_uri": self.config.redirect_uri,
            "scope": self.config.scope,
        }

    async def exchange_code(self, code: str) -> OAuthTokens:
        payload = await self._post_token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                **self._client_credentials(),
            },
            error_class=TokenExchangeFailedException,
            error_message=CallbackError.TOKEN_EXCHANGE_FAILED,
        )
        return self._tokens_from_payload(payload)

    async def refresh(self, refresh_token: str) -> OAuthTokens:
        payload = await self._post_token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                **self._client_credentials(),
            },
            error_class=TokenRefreshFailedException,
            error_message="Failed to refresh token",
        )
        return self._tokens_from_payload(payload, refreshed=True)
