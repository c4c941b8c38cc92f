from abc import ABC, abstractmethod
from typing import List, Optional


class ProviderCalendar:
    """
    Calendar as reported by a provider, before selection is applied.
    """

    def __init__(self, id: str, name: Optional[str] = None, primary: bool = False):
        self.id = id
        self.name = name
        self.primary = primary  # provider flags it as the account's main calendar

    def __repr__(self) -> str:
        return f"ProviderCalendar(id={self.id!r}, name={self.name!r}, primary={self.primary})"


class BaseCalendarClient(ABC):
    """
    Abstract base class for listing a provider's calendars.

    Clients are built per call; the access token is always passed in.
    """

    # False for providers without calendars; no token is needed then
    has_calendars = True

    @abstractmethod
    async def list_calendars(self, access_token: str) -> List[ProviderCalendar]:
        """
        List the calendars visible to the token's account.

        Raises:
            ProviderAPIException: the provider API failed or timed out
        """

    @abstractmethod
    def default_selection(self, calendars: List[ProviderCalendar]) -> List[str]:
        """Calendar IDs treated as selected before the user saves a choice."""

    def is_selected(self, calendar: ProviderCalendar, selected_ids: List[str]) -> bool:
        return calendar.id in selected_ids
