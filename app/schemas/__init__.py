# app/schemas/__init__.py
from app.schemas.token import TokenPayload
from app.schemas.integration import (
    OAuthTokens,
    IntegrationSummary,
    IntegrationListResponse,
    IntegrationCheckResponse,
    ConnectResponse,
    CalendarSummary,
    CalendarListResponse,
    SelectedCalendarsRequest,
    SuccessResponse,
)
