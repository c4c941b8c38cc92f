from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.constants import AppType
from app.core.exceptions import DuplicateIntegrationException
from app.models.integration import Integration
from app.repositories.base_repository import BaseRepository
from app.schemas.integration import OAuthTokens


class IntegrationRepository(BaseRepository[Integration]):
    """
    Token store: one Integration row per (user_id, app_type).

    No policy lives here besides the uniqueness rule; services decide when
    to create, refresh or update.
    """

    def __init__(self, db: Session):
        super().__init__(Integration, db)

    def find(self, user_id: str, app_type: AppType) -> Optional[Integration]:
        """Get the user's integration for an app type."""
        return self.get_by(user_id=user_id, app_type=AppType(app_type))

    def find_for_update(self, user_id: str, app_type: AppType) -> Optional[Integration]:
        """Same as find, holding a row lock until the next commit."""
        return self.get_by_for_update(user_id=user_id, app_type=AppType(app_type))

    def list_by_user(self, user_id: str) -> List[Integration]:
        """Get all integrations of a user."""
        return self.list(user_id=user_id)

    def create(self, data: Dict[str, Any]) -> Integration:
        """
        Create an integration.

        Raises:
            DuplicateIntegrationException: the user already has this app type,
                either found up front or caught by the unique constraint
        """
        app_type = AppType(data["app_type"])
        if self.find(data["user_id"], app_type):
            raise DuplicateIntegrationException(f"{app_type.value} already connected")

        try:
            return self.add({"is_connected": True, "integration_metadata": {}, **data})
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateIntegrationException(
                f"{app_type.value} already connected"
            ) from e

    def update_tokens(
        self, user_id: str, app_type: AppType, tokens: OAuthTokens
    ) -> Optional[Integration]:
        """
        Persist a refreshed token under a row lock.

        Only the token columns are written; the refresh token is replaced
        only when the provider rotated it.
        """
        integration = self.find_for_update(user_id, app_type)
        if not integration:
            self.db.rollback()
            return None

        integration.access_token = tokens.access_token
        integration.expiry_date = tokens.expiry_date
        if tokens.refresh_token:
            integration.refresh_token = tokens.refresh_token
        return self.save(integration)

    def update_metadata(
        self, user_id: str, app_type: AppType, **values: Any
    ) -> Optional[Integration]:
        """Merge keys into the metadata mapping under a row lock."""
        integration = self.find_for_update(user_id, app_type)
        if not integration:
            self.db.rollback()
            return None

        integration.merge_metadata(**values)
        return self.save(integration)
