import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.core.constants import AppType
from app.core.exceptions import (
    IntegrationNotFoundException,
    ProviderAPIException,
    TokenRefreshFailedException,
    UnsupportedAppTypeException,
)
from app.integrations.calendars.base import ProviderCalendar
from app.integrations.calendars.google import GoogleCalendarClient
from app.integrations.calendars.microsoft import MicrosoftCalendarClient
from app.integrations.oauth.base import now_ms
from app.schemas.integration import OAuthTokens
from app.services.calendar_service import CalendarService


class TestCalendarService:
    """
    Test cases for listing calendars and saving the selection
    """

    @pytest.fixture
    def service(self, db):
        return CalendarService(db)

    @pytest.fixture
    def google_calendars(self):
        return [
            ProviderCalendar(id="me@example.com", name="Me", primary=True),
            ProviderCalendar(id="team@group.calendar.google.com", name="Team"),
        ]

    @pytest.mark.asyncio
    async def test_zoom_selection_is_saved_but_listing_stays_empty(
        self, service, create_integration
    ):
        create_integration(app_type=AppType.ZOOM_MEETING)

        assert service.save_selected_calendars(
            "user-123", AppType.ZOOM_MEETING, ["a", "b"]
        ) is True

        with patch(
            "app.integrations.oauth.flow.ensure_valid_token", new_callable=AsyncMock
        ) as mock_ensure:
            calendars = await service.list_calendars("user-123", AppType.ZOOM_MEETING)

        assert calendars == []
        mock_ensure.assert_not_called()
        integration = service.repository.find("user-123", AppType.ZOOM_MEETING)
        assert integration.selected_calendar_ids == ["a", "b"]

    @pytest.mark.asyncio
    async def test_google_defaults_to_primary_calendar(
        self, service, create_integration, google_calendars
    ):
        create_integration(app_type=AppType.GOOGLE_MEET_AND_CALENDAR)

        with patch.object(
            GoogleCalendarClient,
            "list_calendars",
            new_callable=AsyncMock,
            return_value=google_calendars,
        ) as mock_list:
            calendars = await service.list_calendars(
                "user-123", "GOOGLE_MEET_AND_CALENDAR"
            )

        mock_list.assert_awaited_once_with("stored-access-token")
        assert [(c.id, c.summary, c.selected) for c in calendars] == [
            ("me@example.com", "Me", True),
            ("team@group.calendar.google.com", "Team", False),
        ]

    @pytest.mark.asyncio
    async def test_google_saved_selection_is_applied(
        self, service, create_integration, google_calendars
    ):
        create_integration(app_type=AppType.GOOGLE_MEET_AND_CALENDAR)
        service.save_selected_calendars(
            "user-123",
            AppType.GOOGLE_MEET_AND_CALENDAR,
            ["team@group.calendar.google.com"],
        )

        with patch.object(
            GoogleCalendarClient,
            "list_calendars",
            new_callable=AsyncMock,
            return_value=google_calendars,
        ):
            calendars = await service.list_calendars(
                "user-123", AppType.GOOGLE_MEET_AND_CALENDAR
            )

        assert [c.selected for c in calendars] == [False, True]

    @pytest.mark.asyncio
    async def test_microsoft_defaults_to_all_calendars(self, service, create_integration):
        create_integration(app_type=AppType.OUTLOOK_CALENDAR)

        with patch.object(
            MicrosoftCalendarClient,
            "list_calendars",
            new_callable=AsyncMock,
            return_value=[ProviderCalendar(id="c1", name="Calendar"), ProviderCalendar(id="c2")],
        ):
            calendars = await service.list_calendars("user-123", AppType.OUTLOOK_CALENDAR)

        assert all(c.selected for c in calendars)

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed_and_persisted(
        self, service, create_integration
    ):
        create_integration(app_type=AppType.OUTLOOK_CALENDAR, expiry_date=now_ms() - 1000)
        new_expiry = now_ms() + 3_600_000
        client = MagicMock()
        client.refresh = AsyncMock(
            return_value=OAuthTokens(
                access_token="refreshed-access",
                expiry_date=new_expiry,
                refreshed=True,
            )
        )

        with patch(
            "app.integrations.oauth.flow.get_oauth_client", return_value=client
        ), patch.object(
            MicrosoftCalendarClient,
            "list_calendars",
            new_callable=AsyncMock,
            return_value=[],
        ) as mock_list:
            await service.list_calendars("user-123", AppType.OUTLOOK_CALENDAR)

        client.refresh.assert_awaited_once_with("stored-refresh-token")
        mock_list.assert_awaited_once_with("refreshed-access")
        integration = service.repository.find("user-123", AppType.OUTLOOK_CALENDAR)
        assert integration.access_token == "refreshed-access"
        assert integration.expiry_date == new_expiry
        assert integration.refresh_token == "stored-refresh-token"

    @pytest.mark.asyncio
    async def test_valid_token_is_not_refreshed(self, service, create_integration):
        create_integration(app_type=AppType.OUTLOOK_CALENDAR)
        client = MagicMock()
        client.refresh = AsyncMock()

        with patch(
            "app.integrations.oauth.flow.get_oauth_client", return_value=client
        ), patch.object(
            MicrosoftCalendarClient,
            "list_calendars",
            new_callable=AsyncMock,
            return_value=[],
        ):
            await service.list_calendars("user-123", AppType.OUTLOOK_CALENDAR)

        client.refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_token_without_refresh_token(self, service, create_integration):
        create_integration(
            app_type=AppType.OUTLOOK_CALENDAR,
            refresh_token=None,
            expiry_date=now_ms() - 1000,
        )

        with pytest.raises(TokenRefreshFailedException):
            await service.list_calendars("user-123", AppType.OUTLOOK_CALENDAR)

    @pytest.mark.asyncio
    async def test_provider_failure_propagates(self, service, create_integration):
        create_integration(app_type=AppType.OUTLOOK_CALENDAR)

        with patch.object(
            MicrosoftCalendarClient,
            "list_calendars",
            new_callable=AsyncMock,
            side_effect=ProviderAPIException("Failed to list Outlook calendars"),
        ):
            with pytest.raises(ProviderAPIException):
                await service.list_calendars("user-123", AppType.OUTLOOK_CALENDAR)

    @pytest.mark.asyncio
    async def test_not_connected(self, service):
        with pytest.raises(IntegrationNotFoundException):
            await service.list_calendars("user-123", AppType.OUTLOOK_CALENDAR)

    def test_save_selection_not_connected(self, service):
        with pytest.raises(IntegrationNotFoundException):
            service.save_selected_calendars("user-123", AppType.ZOOM_MEETING, ["a"])

    def test_save_selection_unknown_app_type(self, service):
        with pytest.raises(UnsupportedAppTypeException):
            service.save_selected_calendars("user-123", "MYSPACE_CALENDAR", ["a"])
