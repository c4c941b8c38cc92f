# app/integrations/oauth/flow.py
"""
OAuth flow engine.

Builds authorization URLs, exchanges codes and refreshes expired tokens for
every provider. Nothing here touches the database: callers persist the
tokens returned, including any refreshed ones.
"""
import logging
from types import MappingProxyType
from typing import Mapping, Optional, Type

from app.core.constants import AppType, Provider
from app.core.exceptions import TokenRefreshFailedException
from app.integrations import registry
from app.integrations.oauth.base import BaseOAuthClient, now_ms
from app.integrations.oauth.google import GoogleOAuthClient
from app.integrations.oauth.microsoft import MicrosoftOAuthClient
from app.integrations.oauth.state import StatePayload, encode_state
from app.integrations.oauth.zoom import ZoomOAuthClient
from app.schemas.integration import OAuthTokens

logger = logging.getLogger(__name__)

OAUTH_CLIENTS: Mapping[Provider, Type[BaseOAuthClient]] = MappingProxyType(
    {
        Provider.GOOGLE: GoogleOAuthClient,
        Provider.ZOOM: ZoomOAuthClient,
        Provider.MICROSOFT: MicrosoftOAuthClient,
    }
)

_missing = [provider.value for provider in Provider if provider not in OAUTH_CLIENTS]
if _missing:
    raise RuntimeError(f"No OAuth client registered for providers: {_missing}")


def get_oauth_client(app_type: AppType) -> BaseOAuthClient:
    """Create the OAuth client for an app type's provider."""
    provider = registry.get_provider(app_type)
    return OAUTH_CLIENTS[provider](registry.get_oauth_config(app_type))


def build_authorization_url(user_id: str, app_type: AppType) -> str:
    """
    Build the provider consent URL carrying a signed state for (user, app type).

    Raises:
        UnsupportedAppTypeException: app_type is not a known AppType
    """
    app_type = registry.parse_app_type(app_type)
    state = encode_state(StatePayload(user_id=str(user_id), app_type=app_type))
    return get_oauth_client(app_type).build_authorization_url(state)


async def exchange_code_for_token(app_type: AppType, code: str) -> OAuthTokens:
    """
    Exchange an authorization code at the app type's provider.

    Raises:
        TokenExchangeFailedException: provider refused, failed or timed out
    """
    return await get_oauth_client(app_type).exchange_code(code)


def is_token_expired(expiry_date: Optional[int], now: Optional[int] = None) -> bool:
    """A missing expiry counts as expired."""
    if expiry_date is None:
        return True
    return (now if now is not None else now_ms()) >= expiry_date


async def ensure_valid_token(
    app_type: AppType,
    access_token: str,
    refresh_token: Optional[str],
    expiry_date: Optional[int],
) -> OAuthTokens:
    """
    Return a usable access token, refreshing it when expired.

    The result has ``refreshed=True`` when a refresh happened; the caller must
    then persist it.

    Raises:
        TokenRefreshFailedException: refresh needed but impossible or rejected
    """
    if not is_token_expired(expiry_date):
        return OAuthTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expiry_date=expiry_date,
        )

    if not refresh_token:
        raise TokenRefreshFailedException(
            "Access token expired and no refresh token is available"
        )

    logger.info(f"Refreshing expired access token for {AppType(app_type).value}")
    return await get_oauth_client(app_type).refresh(refresh_token)
