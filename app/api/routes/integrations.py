# app/api/routes/integrations.py
import logging

from fastapi import APIRouter, Depends

from app.api import deps
from app.core.logging import log_context
from app.schemas.integration import (
    CalendarListResponse,
    ConnectResponse,
    IntegrationCheckResponse,
    IntegrationListResponse,
    SelectedCalendarsRequest,
    SuccessResponse,
)
from app.services.integration_service import IntegrationService

router = APIRouter()
logger = logging.getLogger(__name__)

# app_type path parameters are plain strings: an unknown value is answered by
# UnsupportedAppTypeException (400) rather than a 422 validation error.


@router.get("/all", response_model=IntegrationListResponse)
async def get_user_integrations(
    user_id: str = Depends(deps.get_current_user_id),
    integration_service: IntegrationService = Depends(deps.get_integration_service()),
):
    """List every connectable app with the user's connection state."""
    integrations = integration_service.list_user_integrations(user_id)
    return IntegrationListResponse(integrations=integrations)


@router.get("/check/{app_type}", response_model=IntegrationCheckResponse)
async def check_integration(
    app_type: str,
    user_id: str = Depends(deps.get_current_user_id),
    integration_service: IntegrationService = Depends(deps.get_integration_service()),
):
    """Check whether the user has connected an app."""
    is_connected = integration_service.is_connected(user_id, app_type)
    return IntegrationCheckResponse(is_connected=is_connected)


@router.get("/connect/{app_type}", response_model=ConnectResponse)
async def connect_app(
    app_type: str,
    user_id: str = Depends(deps.get_current_user_id),
    integration_service: IntegrationService = Depends(deps.get_integration_service()),
):
    """Return the provider consent URL the frontend should open."""
    with log_context(user_id=user_id, action="connect_app"):
        url = integration_service.connect(user_id, app_type)
    return ConnectResponse(url=url)


@router.get("/calendars/{app_type}", response_model=CalendarListResponse)
async def list_calendars(
    app_type: str,
    user_id: str = Depends(deps.get_current_user_id),
    integration_service: IntegrationService = Depends(deps.get_integration_service()),
):
    """List the calendars of a connected app, flagged with the saved selection."""
    calendars = await integration_service.list_calendars(user_id, app_type)
    return CalendarListResponse(calendars=calendars)


@router.post("/calendars/{app_type}/selected", response_model=SuccessResponse)
async def save_selected_calendars(
    app_type: str,
    selection: SelectedCalendarsRequest,
    user_id: str = Depends(deps.get_current_user_id),
    integration_service: IntegrationService = Depends(deps.get_integration_service()),
):
    """Save which calendars of a connected app are used."""
    integration_service.save_selected_calendars(user_id, app_type, selection.ids)
    return SuccessResponse(success=True)


@router.delete("/{app_type}", response_model=SuccessResponse)
async def disconnect_app(
    app_type: str,
    user_id: str = Depends(deps.get_current_user_id),
    integration_service: IntegrationService = Depends(deps.get_integration_service()),
):
    """Disconnect an app. It can be connected again afterwards."""
    integration_service.disconnect(user_id, app_type)
    return SuccessResponse(success=True, message="Integration disconnected successfully")
