from typing import List

from app.integrations.calendars.base import BaseCalendarClient, ProviderCalendar


class ZoomCalendarClient(BaseCalendarClient):
    """Zoom has no calendar concept; listing is always empty."""

    has_calendars = False

    async def list_calendars(self, access_token: str) -> List[ProviderCalendar]:
        return []

    def default_selection(self, calendars: List[ProviderCalendar]) -> List[str]:
        return []
