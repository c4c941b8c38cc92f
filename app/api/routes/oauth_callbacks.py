# app/api/routes/oauth_callbacks.py
"""
Public OAuth callback endpoints - receive each provider's redirect.

The browser is mid-redirect here, so every outcome is a redirect back to the
frontend integrations page with ``success=true`` or ``error=<message>``.
"""
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from app.api import deps
from app.core.config import settings
from app.core.constants import CallbackError, Provider
from app.core.exceptions import BusinessException
from app.services.integration_service import IntegrationService

router = APIRouter()
logger = logging.getLogger(__name__)


def frontend_redirect(provider: Provider, **params: str) -> RedirectResponse:
    url = httpx.URL(settings.FRONTEND_INTEGRATION_URL).copy_merge_params(
        {"app_type": provider.value.lower(), **params}
    )
    return RedirectResponse(str(url), status_code=302)


async def complete_oauth(
    provider: Provider,
    integration_service: IntegrationService,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str],
) -> RedirectResponse:
    if error:
        logger.warning(f"{provider.value} authorization denied: {error}")
        return frontend_redirect(provider, error=f"Authorization denied: {error}")

    try:
        await integration_service.handle_oauth_callback(provider, code, state)
    except BusinessException as e:
        return frontend_redirect(provider, error=e.message)
    except Exception as e:
        logger.error(f"Unexpected error completing {provider.value} OAuth: {e}", exc_info=True)
        return frontend_redirect(provider, error=CallbackError.UNEXPECTED)

    return frontend_redirect(provider, success="true")


@router.get("/google/callback")
async def google_oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    integration_service: IntegrationService = Depends(deps.get_integration_service()),
):
    return await complete_oauth(Provider.GOOGLE, integration_service, code, state, error)


@router.get("/zoom/callback")
async def zoom_oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    integration_service: IntegrationService = Depends(deps.get_integration_service()),
):
    return await complete_oauth(Provider.ZOOM, integration_service, code, state, error)


@router.get("/microsoft/callback")
async def microsoft_oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    integration_service: IntegrationService = Depends(deps.get_integration_service()),
):
    return await complete_oauth(Provider.MICROSOFT, integration_service, code, state, error)
