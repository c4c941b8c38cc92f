# app/schemas/integration.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.constants import AppType, Category, Provider


class OAuthTokens(BaseModel):
    """Provider-neutral result of a code exchange or a refresh."""

    access_token: str
    refresh_token: Optional[str] = None
    # Epoch milliseconds; None means "treat as expired"
    expiry_date: Optional[int] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None
    # True when the token was obtained by a refresh grant and must be persisted
    refreshed: bool = False


# Shared properties
class IntegrationSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: Provider
    title: str
    app_type: AppType
    category: Category
    is_connected: bool = Field(False, alias="isConnected")


class IntegrationListResponse(BaseModel):
    message: str = "Fetched user integrations successfully"
    integrations: List[IntegrationSummary]


class IntegrationCheckResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Integration checked successfully"
    is_connected: bool = Field(..., alias="isConnected")


class ConnectResponse(BaseModel):
    url: str


class CalendarSummary(BaseModel):
    id: str
    summary: Optional[str] = None
    selected: bool = False


class CalendarListResponse(BaseModel):
    calendars: List[CalendarSummary]


class SelectedCalendarsRequest(BaseModel):
    ids: List[str] = Field(..., description="Calendar IDs returned by the calendar listing")


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
