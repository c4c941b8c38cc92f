from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Enum,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from app.core.constants import AppType, Category, MetadataKey, Provider
from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Integration(Base):
    """
    One user's OAuth connection to one app type.

    ``expiry_date`` is the access token expiry in epoch milliseconds; ``None``
    means the token must be treated as expired.
    """

    __tablename__ = "integrations"
    __table_args__ = (
        UniqueConstraint("user_id", "app_type", name="uq_integrations_user_app_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)

    provider = Column(Enum(Provider, name="integration_provider"), nullable=False)
    category = Column(Enum(Category, name="integration_category"), nullable=False)
    app_type = Column(Enum(AppType, name="integration_app_type"), nullable=False)

    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    expiry_date = Column(BigInteger, nullable=True)

    # "metadata" is reserved on declarative classes
    integration_metadata = Column("metadata", JSON, nullable=False, default=dict)

    is_connected = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @property
    def selected_calendar_ids(self) -> Optional[List[str]]:
        """Saved calendar selection, or None when the user never saved one."""
        ids = (self.integration_metadata or {}).get(MetadataKey.SELECTED_CALENDAR_IDS)
        return list(ids) if ids is not None else None

    def merge_metadata(self, **values: Any) -> Dict[str, Any]:
        """
        Replace the given metadata keys, keeping every other key.

        A new dict is assigned so SQLAlchemy sees the JSON column as dirty.
        """
        merged = {**(self.integration_metadata or {}), **values}
        self.integration_metadata = merged
        return merged

    def __repr__(self) -> str:
        return (
            f"<Integration id={self.id} user_id={self.user_id} "
            f"app_type={self.app_type}>"
        )
