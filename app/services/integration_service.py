# app/services/integration_service.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.constants import (
    AppType,
    CallbackError,
    ConnectionState,
    MetadataKey,
    Provider,
)
from app.core.exceptions import (
    BusinessException,
    DuplicateIntegrationException,
    IntegrationNotFoundException,
    InvalidStateException,
)
from app.core.logging import log_context
from app.integrations import registry
from app.integrations.oauth import flow as oauth_flow
from app.integrations.oauth.state import decode_state
from app.models.integration import Integration
from app.repositories.integration_repository import IntegrationRepository
from app.schemas.integration import CalendarSummary, IntegrationSummary, OAuthTokens
from app.services.calendar_service import CalendarService

logger = logging.getLogger(__name__)


class IntegrationService:
    """Service for connecting, inspecting and disconnecting third-party apps."""

    def __init__(self, db: Session):
        self.db = db
        self.repository = IntegrationRepository(db)
        self.calendar_service = CalendarService(db)

    def list_user_integrations(self, user_id: str) -> List[IntegrationSummary]:
        """One entry per known app type, flagged with the user's connection state."""
        connected = {
            AppType(integration.app_type)
            for integration in self.repository.list_by_user(user_id)
        }

        return [
            IntegrationSummary(
                provider=registry.get_provider(app_type),
                title=registry.get_title(app_type),
                app_type=app_type,
                category=registry.get_category(app_type),
                is_connected=app_type in connected,
            )
            for app_type in AppType
        ]

    def is_connected(self, user_id: str, app_type: AppType) -> bool:
        app_type = registry.parse_app_type(app_type)
        return self.repository.find(user_id, app_type) is not None

    def connect(self, user_id: str, app_type: AppType) -> str:
        """
        Start an OAuth connection and return the provider consent URL.

        Raises:
            UnsupportedAppTypeException: unknown app type
        """
        app_type = registry.parse_app_type(app_type)
        with log_context(
            user_id=user_id,
            app_type=app_type.value,
            connection_state=ConnectionState.INITIATED.value,
        ):
            url = oauth_flow.build_authorization_url(user_id, app_type)

        with log_context(
            user_id=user_id,
            app_type=app_type.value,
            connection_state=ConnectionState.AUTHORIZING.value,
        ):
            logger.info(f"Sending user {user_id} to {app_type.value} consent page")
        return url

    def _resolve_callback_app_type(
        self, provider: Provider, state_app_type: Optional[AppType]
    ) -> AppType:
        """App type carried in the state, or the provider default when absent."""
        if state_app_type is None:
            return registry.default_app_type_for_provider(provider)
        if registry.get_provider(state_app_type) != provider:
            raise InvalidStateException(
                CallbackError.INVALID_STATE,
                details={"provider": provider.value, "app_type": state_app_type.value},
            )
        return state_app_type

    async def handle_oauth_callback(
        self, provider: Provider, code: Optional[str], state: Optional[str]
    ) -> Integration:
        """
        Complete an OAuth connection from the provider's redirect.

        The existing-row check runs before the code exchange, so a second
        connection attempt neither spends the code nor overwrites the row.

        Raises:
            InvalidStateException: missing code/state, or state without a user
            DuplicateIntegrationException: the app type is already connected
            TokenExchangeFailedException: the provider refused the code
        """
        provider = Provider(provider)
        with log_context(
            provider=provider.value,
            connection_state=ConnectionState.CALLBACK_RECEIVED.value,
        ):
            try:
                if not code:
                    raise InvalidStateException(CallbackError.INVALID_AUTHORIZATION)
                if not state:
                    raise InvalidStateException(CallbackError.INVALID_STATE)

                payload = decode_state(state)
                user_id = payload.get("user_id")
                if not user_id:
                    raise InvalidStateException(CallbackError.USER_ID_REQUIRED)

                app_type = self._resolve_callback_app_type(
                    provider, payload.get("app_type")
                )

                with log_context(user_id=user_id, app_type=app_type.value):
                    if self.repository.find(user_id, app_type):
                        raise DuplicateIntegrationException(
                            f"{app_type.value} already connected"
                        )

                    tokens = await oauth_flow.exchange_code_for_token(app_type, code)

                    with log_context(
                        connection_state=ConnectionState.TOKEN_EXCHANGED.value
                    ):
                        integration = self.create_integration(user_id, app_type, tokens)
                        logger.info(f"Connected {app_type.value} for user {user_id}")
                        return integration
            except BusinessException as e:
                with log_context(connection_state=ConnectionState.FAILED.value):
                    logger.warning(f"OAuth callback failed: {e.code}: {e.message}")
                raise

    def create_integration(
        self, user_id: str, app_type: AppType, tokens: OAuthTokens
    ) -> Integration:
        """
        Persist a new connection from freshly exchanged tokens.

        Raises:
            DuplicateIntegrationException: the app type is already connected
        """
        metadata = {}
        if tokens.scope:
            metadata[MetadataKey.SCOPE] = tokens.scope
        if tokens.token_type:
            metadata[MetadataKey.TOKEN_TYPE] = tokens.token_type

        return self.repository.create(
            {
                "user_id": user_id,
                "provider": registry.get_provider(app_type),
                "category": registry.get_category(app_type),
                "app_type": app_type,
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token,
                "expiry_date": tokens.expiry_date,
                "integration_metadata": metadata,
            }
        )

    async def list_calendars(self, user_id: str, app_type: AppType) -> List[CalendarSummary]:
        return await self.calendar_service.list_calendars(user_id, app_type)

    def save_selected_calendars(
        self, user_id: str, app_type: AppType, ids: List[str]
    ) -> bool:
        return self.calendar_service.save_selected_calendars(user_id, app_type, ids)

    def disconnect(self, user_id: str, app_type: AppType) -> bool:
        """
        Remove a connection so the app can be linked again with a new OAuth flow.

        Raises:
            IntegrationNotFoundException: the app type is not connected
        """
        app_type = registry.parse_app_type(app_type)
        integration = self.repository.find(user_id, app_type)
        if not integration:
            raise IntegrationNotFoundException(
                "Integration not found", details={"app_type": app_type.value}
            )

        self.repository.delete(integration)
        logger.info(f"Disconnected {app_type.value} for user {user_id}")
        return True
