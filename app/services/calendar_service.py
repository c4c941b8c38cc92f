# app/services/calendar_service.py
import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.constants import AppType, MetadataKey
from app.core.exceptions import IntegrationNotFoundException
from app.core.logging import log_context
from app.integrations import registry
from app.integrations.calendars import get_calendar_client
from app.integrations.oauth import flow as oauth_flow
from app.models.integration import Integration
from app.repositories.integration_repository import IntegrationRepository
from app.schemas.integration import CalendarSummary

logger = logging.getLogger(__name__)


class CalendarService:
    """Service for listing a connected app's calendars and saving the selection."""

    def __init__(self, db: Session):
        self.db = db
        self.repository = IntegrationRepository(db)

    def _get_integration(self, user_id: str, app_type: AppType) -> Integration:
        integration = self.repository.find(user_id, app_type)
        if not integration:
            raise IntegrationNotFoundException(
                "Integration not found", details={"app_type": app_type.value}
            )
        return integration

    async def get_valid_access_token(self, integration: Integration) -> str:
        """
        Return a usable access token for the integration.

        A refreshed token is written back before it is returned, so later
        calls reuse it instead of refreshing again.
        """
        tokens = await oauth_flow.ensure_valid_token(
            integration.app_type,
            integration.access_token,
            integration.refresh_token,
            integration.expiry_date,
        )
        if tokens.refreshed:
            self.repository.update_tokens(
                integration.user_id, integration.app_type, tokens
            )
            logger.info(f"Persisted refreshed token for integration {integration.id}")
        return tokens.access_token

    async def list_calendars(self, user_id: str, app_type: AppType) -> List[CalendarSummary]:
        """
        List the calendars of a connected app with their selection flag.

        Raises:
            UnsupportedAppTypeException: unknown app type
            IntegrationNotFoundException: the app type is not connected
            TokenRefreshFailedException: the stored token could not be refreshed
            ProviderAPIException: the provider's calendar API failed
        """
        app_type = registry.parse_app_type(app_type)
        with log_context(user_id=user_id, app_type=app_type.value):
            integration = self._get_integration(user_id, app_type)
            client = get_calendar_client(app_type)

            if not client.has_calendars:
                return []

            access_token = await self.get_valid_access_token(integration)
            calendars = await client.list_calendars(access_token)

            selected_ids = integration.selected_calendar_ids
            if selected_ids is None:
                selected_ids = client.default_selection(calendars)

            logger.info(f"Listed {len(calendars)} calendars")
            return [
                CalendarSummary(
                    id=calendar.id,
                    summary=calendar.name,
                    selected=client.is_selected(calendar, selected_ids),
                )
                for calendar in calendars
            ]

    def save_selected_calendars(
        self, user_id: str, app_type: AppType, ids: List[str]
    ) -> bool:
        """
        Replace the saved calendar selection, keeping other metadata keys.

        IDs are stored as given; they are expected to come from list_calendars.

        Raises:
            UnsupportedAppTypeException: unknown app type
            IntegrationNotFoundException: the app type is not connected
        """
        app_type = registry.parse_app_type(app_type)
        integration = self.repository.update_metadata(
            user_id, app_type, **{MetadataKey.SELECTED_CALENDAR_IDS: list(ids)}
        )
        if not integration:
            raise IntegrationNotFoundException(
                "Integration not found", details={"app_type": app_type.value}
            )

        logger.info(
            f"Saved {len(ids)} selected calendars for user {user_id} ({app_type.value})"
        )
        return True
