# app/core/config.py
import secrets
from typing import List, Literal, Optional, Union

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment settings
    ENVIRONMENT: Literal["development", "testing", "production"] = "development"

    # API settings
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"

    # Server settings
    SERVER_HOST: str = "http://localhost:8000"
    # Frontend page the OAuth callbacks redirect back to
    FRONTEND_INTEGRATION_URL: str = "http://localhost:5173/app/integrations"

    # CORS settings
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None  # Path to log file if file logging is enabled

    # Database settings
    SQLALCHEMY_DATABASE_URI: str
    AUTO_CREATE_TABLES: bool = True

    # OAuth flow settings
    STATE_TOKEN_EXPIRE_MINUTES: int = 15
    OAUTH_HTTP_TIMEOUT: float = 15.0  # seconds, applied to every provider call

    # Google
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REDIRECT_URI: str = ""
    GOOGLE_AUTH_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
    GOOGLE_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    GOOGLE_SCOPES: List[str] = [
        "https://www.googleapis.com/auth/calendar.events",
        "https://www.googleapis.com/auth/calendar.readonly",
    ]

    # Zoom
    ZOOM_CLIENT_ID: str = ""
    ZOOM_CLIENT_SECRET: str = ""
    ZOOM_REDIRECT_URI: str = ""
    ZOOM_AUTH_URL: str = "https://zoom.us/oauth/authorize"
    ZOOM_TOKEN_URL: str = "https://zoom.us/oauth/token"

    # Microsoft (Outlook / Teams)
    MS_CLIENT_ID: str = ""
    MS_CLIENT_SECRET: str = ""
    MS_REDIRECT_URI: str = ""
    MS_AUTH_URL: str = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
    MS_TOKEN_URL: str = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
    MS_SCOPE: str = "offline_access User.Read Calendars.ReadWrite OnlineMeetings.ReadWrite"
    MS_GRAPH_URL: str = "https://graph.microsoft.com/v1.0"

    @model_validator(mode="after")
    def default_redirect_uris(self) -> "Settings":
        base = f"{self.SERVER_HOST}{self.API_V1_STR}/integrations"
        if not self.GOOGLE_REDIRECT_URI:
            self.GOOGLE_REDIRECT_URI = f"{base}/google/callback"
        if not self.ZOOM_REDIRECT_URI:
            self.ZOOM_REDIRECT_URI = f"{base}/zoom/callback"
        if not self.MS_REDIRECT_URI:
            self.MS_REDIRECT_URI = f"{base}/microsoft/callback"
        return self

    # Use SettingsConfigDict instead of Config class
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )


# Create settings instance
settings = Settings()
