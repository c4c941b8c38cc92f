from datetime import datetime
from urllib.parse import parse_qs

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.core.constants import AppType
from app.core.exceptions import (
    TokenExchangeFailedException,
    TokenRefreshFailedException,
    UnsupportedAppTypeException,
)
from app.integrations.oauth import flow
from app.integrations.oauth.base import now_ms
from app.integrations.oauth.google import GoogleOAuthClient, expiry_to_epoch_ms
from app.integrations.oauth.microsoft import MicrosoftOAuthClient
from app.integrations.oauth.state import decode_state
from app.integrations.oauth.zoom import ZoomOAuthClient
from app.schemas.integration import OAuthTokens

_RealAsyncClient = httpx.AsyncClient


def mock_async_client(handler):
    """Stand-in for httpx.AsyncClient routing every request to ``handler``."""

    def _factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    return _factory


class TestAuthorizationUrl:
    """
    Test cases for building provider consent URLs
    """

    @pytest.mark.parametrize("app_type", list(AppType))
    def test_url_carries_a_decodable_state(self, app_type):
        url = httpx.URL(flow.build_authorization_url("user-1", app_type))

        assert decode_state(url.params["state"]) == {
            "user_id": "user-1",
            "app_type": app_type,
        }

    def test_zoom_url(self):
        url = httpx.URL(flow.build_authorization_url("user-1", AppType.ZOOM_MEETING))

        assert url.host == "zoom.us"
        assert url.params["response_type"] == "code"
        assert url.params["client_id"] == "zoom-client-id"
        assert url.params["redirect_uri"].endswith("/integrations/zoom/callback")

    def test_microsoft_url_requests_offline_access(self):
        url = httpx.URL(
            flow.build_authorization_url("user-1", AppType.MICROSOFT_TEAMS)
        )

        assert url.host == "login.microsoftonline.com"
        assert url.params["response_mode"] == "query"
        assert "offline_access" in url.params["scope"].split()

    def test_google_url_requests_offline_consent(self):
        url = httpx.URL(
            flow.build_authorization_url("user-1", AppType.GOOGLE_MEET_AND_CALENDAR)
        )

        assert url.host == "accounts.google.com"
        assert url.params["access_type"] == "offline"
        assert url.params["prompt"] == "consent"
        assert url.params["client_id"] == "google-client-id"
        assert "code_challenge" not in url.params

    def test_unknown_app_type(self):
        with pytest.raises(UnsupportedAppTypeException):
            flow.build_authorization_url("user-1", "MYSPACE_CALENDAR")


class TestTokenExpiry:
    """
    Test cases for the expiry rule
    """

    def test_missing_expiry_counts_as_expired(self):
        assert flow.is_token_expired(None) is True

    def test_past_and_future(self):
        assert flow.is_token_expired(1_000, now=2_000) is True
        assert flow.is_token_expired(2_000, now=2_000) is True
        assert flow.is_token_expired(3_000, now=2_000) is False


class TestEnsureValidToken:
    """
    Test cases for refresh-on-demand
    """

    @pytest.mark.asyncio
    async def test_valid_token_is_returned_without_refresh(self):
        client = MagicMock()
        client.refresh = AsyncMock()
        expiry = now_ms() + 60_000

        with patch.object(flow, "get_oauth_client", return_value=client):
            tokens = await flow.ensure_valid_token(
                AppType.ZOOM_MEETING, "access", "refresh", expiry
            )

        client.refresh.assert_not_called()
        assert tokens.access_token == "access"
        assert tokens.expiry_date == expiry
        assert tokens.refreshed is False

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed(self):
        client = MagicMock()
        client.refresh = AsyncMock(
            return_value=OAuthTokens(
                access_token="new-access", expiry_date=now_ms() + 3_600_000, refreshed=True
            )
        )

        with patch.object(flow, "get_oauth_client", return_value=client):
            tokens = await flow.ensure_valid_token(
                AppType.OUTLOOK_CALENDAR, "old-access", "refresh", now_ms() - 1
            )

        client.refresh.assert_awaited_once_with("refresh")
        assert tokens.access_token == "new-access"
        assert tokens.refreshed is True

    @pytest.mark.asyncio
    async def test_expired_token_without_refresh_token(self):
        with pytest.raises(TokenRefreshFailedException):
            await flow.ensure_valid_token(
                AppType.ZOOM_MEETING, "old-access", None, now_ms() - 1
            )


class TestZoomOAuthClient:
    """
    Test cases for the Zoom token endpoint calls
    """

    @pytest.fixture
    def client(self):
        return flow.get_oauth_client(AppType.ZOOM_MEETING)

    def test_client_type(self, client):
        assert isinstance(client, ZoomOAuthClient)

    @pytest.mark.asyncio
    async def test_exchange_code_uses_basic_auth(self, client):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["auth"] = request.headers.get("authorization")
            captured["form"] = parse_qs(request.content.decode())
            return httpx.Response(
                200,
                json={
                    "access_token": "zoom-access",
                    "refresh_token": "zoom-refresh",
                    "expires_in": 3600,
                    "token_type": "bearer",
                    "scope": "meeting:write",
                },
            )

        before = now_ms()
        with patch("httpx.AsyncClient", mock_async_client(handler)):
            tokens = await client.exchange_code("the-code")

        assert captured["auth"].startswith("Basic ")
        assert captured["form"]["grant_type"] == ["authorization_code"]
        assert captured["form"]["code"] == ["the-code"]
        assert "client_secret" not in captured["form"]
        assert tokens.access_token == "zoom-access"
        assert tokens.refresh_token == "zoom-refresh"
        assert tokens.expiry_date >= before + 3600 * 1000
        assert tokens.refreshed is False

    @pytest.mark.asyncio
    async def test_exchange_code_rejected(self, client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"reason": "Invalid authorization code"})

        with patch("httpx.AsyncClient", mock_async_client(handler)):
            with pytest.raises(TokenExchangeFailedException) as exc_info:
                await client.exchange_code("bad-code")

        assert exc_info.value.message == "Failed to get token"
        assert exc_info.value.details == {"status_code": 400}

    @pytest.mark.asyncio
    async def test_exchange_code_timeout(self, client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with patch("httpx.AsyncClient", mock_async_client(handler)):
            with pytest.raises(TokenExchangeFailedException):
                await client.exchange_code("the-code")

    @pytest.mark.asyncio
    async def test_response_without_access_token(self, client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"token_type": "bearer"})

        with patch("httpx.AsyncClient", mock_async_client(handler)):
            with pytest.raises(TokenExchangeFailedException) as exc_info:
                await client.exchange_code("the-code")

        assert exc_info.value.message == "Access Token not passed"

    @pytest.mark.asyncio
    async def test_refresh_returns_rotated_refresh_token(self, client):
        def handler(request: httpx.Request) -> httpx.Response:
            form = parse_qs(request.content.decode())
            assert form["grant_type"] == ["refresh_token"]
            assert form["refresh_token"] == ["old-refresh"]
            return httpx.Response(
                200,
                json={
                    "access_token": "new-access",
                    "refresh_token": "new-refresh",
                    "expires_in": 3600,
                },
            )

        with patch("httpx.AsyncClient", mock_async_client(handler)):
            tokens = await client.refresh("old-refresh")

        assert tokens.refresh_token == "new-refresh"
        assert tokens.refreshed is True

    @pytest.mark.asyncio
    async def test_refresh_rejected(self, client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"reason": "Invalid Token!"})

        with patch("httpx.AsyncClient", mock_async_client(handler)):
            with pytest.raises(TokenRefreshFailedException):
                await client.refresh("old-refresh")


class TestMicrosoftOAuthClient:
    """
    Test cases for the Microsoft identity platform token calls
    """

    @pytest.mark.asyncio
    async def test_exchange_code_sends_credentials_in_body(self):
        client = flow.get_oauth_client(AppType.OUTLOOK_CALENDAR)
        assert isinstance(client, MicrosoftOAuthClient)
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["auth"] = request.headers.get("authorization")
            captured["form"] = parse_qs(request.content.decode())
            return httpx.Response(
                200,
                json={
                    "access_token": "ms-access",
                    "refresh_token": "ms-refresh",
                    "expires_in": "3599",
                    "scope": "User.Read Calendars.ReadWrite",
                    "token_type": "Bearer",
                },
            )

        with patch("httpx.AsyncClient", mock_async_client(handler)):
            tokens = await client.exchange_code("the-code")

        assert captured["auth"] is None
        assert captured["form"]["client_id"] == ["ms-client-id"]
        assert captured["form"]["client_secret"] == ["ms-client-secret"]
        assert captured["form"]["grant_type"] == ["authorization_code"]
        assert tokens.access_token == "ms-access"
        assert tokens.scope == "User.Read Calendars.ReadWrite"


class TestGoogleOAuthClient:
    """
    Test cases for the Google OAuth client; the blocking library calls are patched
    """

    @pytest.fixture
    def client(self):
        client = flow.get_oauth_client(AppType.GOOGLE_MEET_AND_CALENDAR)
        assert isinstance(client, GoogleOAuthClient)
        return client

    @pytest.mark.asyncio
    async def test_exchange_code(self, client):
        token = {
            "access_token": "google-access",
            "refresh_token": "google-refresh",
            "expires_at": 1_700_000_000.5,
            "scope": ["https://www.googleapis.com/auth/calendar.events"],
            "token_type": "Bearer",
        }

        with patch.object(GoogleOAuthClient, "_fetch_token", return_value=token):
            tokens = await client.exchange_code("the-code")

        assert tokens.access_token == "google-access"
        assert tokens.refresh_token == "google-refresh"
        assert tokens.expiry_date == 1_700_000_000_500
        assert tokens.scope == "https://www.googleapis.com/auth/calendar.events"

    @pytest.mark.asyncio
    async def test_exchange_code_without_access_token(self, client):
        with patch.object(GoogleOAuthClient, "_fetch_token", return_value={}):
            with pytest.raises(TokenExchangeFailedException) as exc_info:
                await client.exchange_code("the-code")

        assert exc_info.value.message == "Access Token not passed"

    @pytest.mark.asyncio
    async def test_exchange_code_library_error(self, client):
        with patch.object(
            GoogleOAuthClient, "_fetch_token", side_effect=ValueError("invalid_grant")
        ):
            with pytest.raises(TokenExchangeFailedException) as exc_info:
                await client.exchange_code("the-code")

        assert exc_info.value.message == "Failed to get token"

    @pytest.mark.asyncio
    async def test_refresh(self, client):
        credentials = MagicMock()
        credentials.token = "google-new-access"
        credentials.refresh_token = "google-refresh"
        credentials.expiry = None

        with patch.object(
            GoogleOAuthClient, "_refresh_credentials", return_value=credentials
        ) as mock_refresh:
            tokens = await client.refresh("google-refresh")

        mock_refresh.assert_called_once_with("google-refresh")
        assert tokens.access_token == "google-new-access"
        assert tokens.refreshed is True

    @pytest.mark.asyncio
    async def test_refresh_failure(self, client):
        with patch.object(
            GoogleOAuthClient, "_refresh_credentials", side_effect=RuntimeError("boom")
        ):
            with pytest.raises(TokenRefreshFailedException):
                await client.refresh("google-refresh")

    def test_expiry_to_epoch_ms_treats_naive_as_utc(self):

        assert expiry_to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1)) == 1000
        assert expiry_to_epoch_ms(None) is None
