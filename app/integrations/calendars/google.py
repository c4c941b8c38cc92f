# app/integrations/calendars/google.py
import logging
from typing import Any, Dict, List

from fastapi.concurrency import run_in_threadpool
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.core.config import settings
from app.core.constants import GOOGLE_PRIMARY_CALENDAR_ID
from app.core.exceptions import ProviderAPIException
from app.integrations.calendars.base import BaseCalendarClient, ProviderCalendar
from app.utils.timeout import with_timeout

logger = logging.getLogger(__name__)


class GoogleCalendarClient(BaseCalendarClient):
    """Client for the Google Calendar API (calendarList)."""

    def __init__(self, max_results: int = 250):
        self.max_results = max_results

    def _fetch_calendar_list(self, access_token: str) -> List[Dict[str, Any]]:
        # Credentials and service are local to this call
        service = build(
            "calendar",
            "v3",
            credentials=Credentials(token=access_token),
            cache_discovery=False,
        )
        items: List[Dict[str, Any]] = []
        page_token = None
        while True:
            result = (
                service.calendarList()
                .list(maxResults=self.max_results, pageToken=page_token)
                .execute()
            )
            items.extend(result.get("items", []))
            page_token = result.get("nextPageToken")
            if not page_token:
                return items

    async def list_calendars(self, access_token: str) -> List[ProviderCalendar]:
        try:
            items = await with_timeout(
                run_in_threadpool(self._fetch_calendar_list, access_token),
                timeout=settings.OAUTH_HTTP_TIMEOUT,
                error_message="Google calendar listing timed out",
                exception_class=ProviderAPIException,
            )
        except HttpError as e:
            logger.error(f"Error listing Google calendars: {e}")
            raise ProviderAPIException(
                "Failed to list Google calendars",
                details={"status_code": e.resp.status},
            ) from e

        return [
            ProviderCalendar(
                id=item["id"],
                name=item.get("summaryOverride") or item.get("summary"),
                primary=bool(item.get("primary", False)),
            )
            for item in items
            if item.get("id")
        ]

    def default_selection(self, calendars: List[ProviderCalendar]) -> List[str]:
        return [GOOGLE_PRIMARY_CALENDAR_ID]

    def is_selected(self, calendar: ProviderCalendar, selected_ids: List[str]) -> bool:
        # "primary" is Google's alias for the account's main calendar, whose
        # calendarList id is the account email
        if calendar.primary and GOOGLE_PRIMARY_CALENDAR_ID in selected_ids:
            return True
        return calendar.id in selected_ids
