# app/integrations/registry.py
"""
Static catalog of connectable apps.

Every AppType maps to a provider, a category, a display title and the OAuth
endpoint configuration of its provider. The tables are checked for
completeness at import time so a new AppType without a mapping stops the
application from starting instead of failing a request later.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Tuple

from app.core.config import settings
from app.core.constants import AppType, Category, Provider
from app.core.exceptions import UnsupportedAppTypeException


@dataclass(frozen=True)
class OAuthEndpointConfig:
    authorize_url: str
    token_url: str
    client_id: str
    client_secret: str = field(repr=False)
    redirect_uri: str
    scopes: Tuple[str, ...]

    @property
    def scope(self) -> str:
        return " ".join(self.scopes)


APP_TYPE_PROVIDERS: Mapping[AppType, Provider] = MappingProxyType(
    {
        AppType.GOOGLE_MEET_AND_CALENDAR: Provider.GOOGLE,
        AppType.ZOOM_MEETING: Provider.ZOOM,
        AppType.OUTLOOK_CALENDAR: Provider.MICROSOFT,
        AppType.MICROSOFT_TEAMS: Provider.MICROSOFT,
    }
)

APP_TYPE_CATEGORIES: Mapping[AppType, Category] = MappingProxyType(
    {
        AppType.GOOGLE_MEET_AND_CALENDAR: Category.CALENDAR_AND_VIDEO_CONFERENCING,
        AppType.ZOOM_MEETING: Category.VIDEO_CONFERENCING,
        AppType.OUTLOOK_CALENDAR: Category.CALENDAR,
        AppType.MICROSOFT_TEAMS: Category.VIDEO_CONFERENCING,
    }
)

APP_TYPE_TITLES: Mapping[AppType, str] = MappingProxyType(
    {
        AppType.GOOGLE_MEET_AND_CALENDAR: "Google Meet & Calendar",
        AppType.ZOOM_MEETING: "Zoom",
        AppType.OUTLOOK_CALENDAR: "Outlook Calendar",
        AppType.MICROSOFT_TEAMS: "Microsoft Teams",
    }
)

# App type assumed when a callback's state carries none
PROVIDER_DEFAULT_APP_TYPES: Mapping[Provider, AppType] = MappingProxyType(
    {
        Provider.GOOGLE: AppType.GOOGLE_MEET_AND_CALENDAR,
        Provider.ZOOM: AppType.ZOOM_MEETING,
        Provider.MICROSOFT: AppType.OUTLOOK_CALENDAR,
    }
)


def _build_provider_configs() -> Mapping[Provider, OAuthEndpointConfig]:
    return MappingProxyType(
        {
            Provider.GOOGLE: OAuthEndpointConfig(
                authorize_url=settings.GOOGLE_AUTH_URL,
                token_url=settings.GOOGLE_TOKEN_URL,
                client_id=settings.GOOGLE_CLIENT_ID,
                client_secret=settings.GOOGLE_CLIENT_SECRET,
                redirect_uri=settings.GOOGLE_REDIRECT_URI,
                scopes=tuple(settings.GOOGLE_SCOPES),
            ),
            Provider.ZOOM: OAuthEndpointConfig(
                authorize_url=settings.ZOOM_AUTH_URL,
                token_url=settings.ZOOM_TOKEN_URL,
                client_id=settings.ZOOM_CLIENT_ID,
                client_secret=settings.ZOOM_CLIENT_SECRET,
                redirect_uri=settings.ZOOM_REDIRECT_URI,
                scopes=(),
            ),
            Provider.MICROSOFT: OAuthEndpointConfig(
                authorize_url=settings.MS_AUTH_URL,
                token_url=settings.MS_TOKEN_URL,
                client_id=settings.MS_CLIENT_ID,
                client_secret=settings.MS_CLIENT_SECRET,
                redirect_uri=settings.MS_REDIRECT_URI,
                scopes=tuple(settings.MS_SCOPE.split()),
            ),
        }
    )


PROVIDER_OAUTH_CONFIGS: Mapping[Provider, OAuthEndpointConfig] = _build_provider_configs()


def validate_registry() -> None:
    """Fail fast when any AppType or Provider is missing from a table."""
    app_type_tables = {
        "provider": APP_TYPE_PROVIDERS,
        "category": APP_TYPE_CATEGORIES,
        "title": APP_TYPE_TITLES,
    }
    for name, table in app_type_tables.items():
        missing = [app_type.value for app_type in AppType if app_type not in table]
        if missing:
            raise RuntimeError(f"No {name} registered for app types: {missing}")

    provider_tables = {
        "OAuth config": PROVIDER_OAUTH_CONFIGS,
        "default app type": PROVIDER_DEFAULT_APP_TYPES,
    }
    for name, table in provider_tables.items():
        missing = [provider.value for provider in Provider if provider not in table]
        if missing:
            raise RuntimeError(f"No {name} registered for providers: {missing}")


validate_registry()


def parse_app_type(value) -> AppType:
    """Coerce a raw value (path parameter, state claim) into an AppType."""
    try:
        return AppType(value)
    except ValueError:
        raise UnsupportedAppTypeException(
            "Unsupported app type", details={"app_type": str(value)}
        )


def get_provider(app_type: AppType) -> Provider:
    return APP_TYPE_PROVIDERS[parse_app_type(app_type)]


def get_category(app_type: AppType) -> Category:
    return APP_TYPE_CATEGORIES[parse_app_type(app_type)]


def get_title(app_type: AppType) -> str:
    return APP_TYPE_TITLES[parse_app_type(app_type)]


def get_oauth_config(app_type: AppType) -> OAuthEndpointConfig:
    return PROVIDER_OAUTH_CONFIGS[get_provider(app_type)]


def app_types_for_provider(provider: Provider) -> List[AppType]:
    return [app_type for app_type, owner in APP_TYPE_PROVIDERS.items() if owner == provider]


def default_app_type_for_provider(provider: Provider) -> AppType:
    return PROVIDER_DEFAULT_APP_TYPES[provider]
