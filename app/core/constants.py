# app/core/constants.py
import enum


class AppType(str, enum.Enum):
    GOOGLE_MEET_AND_CALENDAR = "GOOGLE_MEET_AND_CALENDAR"
    ZOOM_MEETING = "ZOOM_MEETING"
    OUTLOOK_CALENDAR = "OUTLOOK_CALENDAR"
    MICROSOFT_TEAMS = "MICROSOFT_TEAMS"


class Provider(str, enum.Enum):
    GOOGLE = "GOOGLE"
    ZOOM = "ZOOM"
    MICROSOFT = "MICROSOFT"


class Category(str, enum.Enum):
    CALENDAR = "CALENDAR"
    VIDEO_CONFERENCING = "VIDEO_CONFERENCING"
    CALENDAR_AND_VIDEO_CONFERENCING = "CALENDAR_AND_VIDEO_CONFERENCING"


# Lifecycle of a single connection attempt. Not persisted, only logged.
class ConnectionState(str, enum.Enum):
    INITIATED = "initiated"
    AUTHORIZING = "authorizing"
    CALLBACK_RECEIVED = "callback_received"
    TOKEN_EXCHANGED = "token_exchanged"
    FAILED = "failed"


# Documented keys of Integration.metadata
class MetadataKey:
    SELECTED_CALENDAR_IDS = "selectedCalendarIds"
    SCOPE = "scope"
    TOKEN_TYPE = "token_type"


# Messages sent back to the frontend on the callback redirect
class CallbackError:
    INVALID_AUTHORIZATION = "Invalid authorization"
    INVALID_STATE = "Invalid state parameter"
    USER_ID_REQUIRED = "UserId is required"
    ACCESS_TOKEN_MISSING = "Access Token not passed"
    TOKEN_EXCHANGE_FAILED = "Failed to get token"
    UNEXPECTED = "Failed to connect integration"


GOOGLE_PRIMARY_CALENDAR_ID = "primary"
