import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import ProviderAPIException
from app.integrations.calendars.base import BaseCalendarClient, ProviderCalendar

logger = logging.getLogger(__name__)


class MicrosoftCalendarClient(BaseCalendarClient):
    """Client for Microsoft Graph calendars (Outlook and Teams accounts)."""

    def __init__(self, graph_url: Optional[str] = None):
        self.graph_url = (graph_url or settings.MS_GRAPH_URL).rstrip("/")

    async def list_calendars(self, access_token: str) -> List[ProviderCalendar]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        items: List[Dict[str, Any]] = []
        url: Optional[str] = f"{self.graph_url}/me/calendars"

        try:
            async with httpx.AsyncClient(timeout=settings.OAUTH_HTTP_TIMEOUT) as client:
                # Graph pages through @odata.nextLink
                while url:
                    resp = await client.get(url, headers=headers)
                    resp.raise_for_status()
                    data = resp.json()
                    items.extend(data.get("value", []))
                    url = data.get("@odata.nextLink")
        except httpx.TimeoutException as e:
            logger.error("Microsoft Graph calendar listing timed out")
            raise ProviderAPIException("Microsoft calendar listing timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Microsoft Graph returned {e.response.status_code}")
            raise ProviderAPIException(
                "Failed to list Outlook calendars",
                details={"status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error listing Microsoft calendars: {e}")
            raise ProviderAPIException("Failed to list Outlook calendars") from e

        return [
            ProviderCalendar(
                id=item["id"],
                name=item.get("name"),
                primary=bool(item.get("isDefaultCalendar", False)),
            )
            for item in items
            if item.get("id")
        ]

    def default_selection(self, calendars: List[ProviderCalendar]) -> List[str]:
        # Every calendar counts until the user narrows it down
        return [calendar.id for calendar in calendars]
