from types import MappingProxyType
from typing import Mapping, Type

from app.core.constants import AppType, Provider
from app.integrations import registry
from app.integrations.calendars.base import BaseCalendarClient, ProviderCalendar
from app.integrations.calendars.google import GoogleCalendarClient
from app.integrations.calendars.microsoft import MicrosoftCalendarClient
from app.integrations.calendars.zoom import ZoomCalendarClient

CALENDAR_CLIENTS: Mapping[Provider, Type[BaseCalendarClient]] = MappingProxyType(
    {
        Provider.GOOGLE: GoogleCalendarClient,
        Provider.ZOOM: ZoomCalendarClient,
        Provider.MICROSOFT: MicrosoftCalendarClient,
    }
)

_missing = [provider.value for provider in Provider if provider not in CALENDAR_CLIENTS]
if _missing:
    raise RuntimeError(f"No calendar client registered for providers: {_missing}")


def get_calendar_client(app_type: AppType) -> BaseCalendarClient:
    """
    Provides a calendar client for an app type's provider.

    Raises:
        UnsupportedAppTypeException: app_type is not a known AppType
    """
    return CALENDAR_CLIENTS[registry.get_provider(app_type)]()
