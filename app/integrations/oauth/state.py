# app/integrations/oauth/state.py
"""
OAuth ``state`` parameter codec.

The state carries ``{user_id, app_type}`` across the provider redirect. It is
a signed, short-lived JWT so a callback cannot be replayed for another user.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, TypedDict

from jose import JWTError, jwt

from app.core.config import settings
from app.core.constants import AppType

logger = logging.getLogger(__name__)

_USER_ID_CLAIM = "uid"
_APP_TYPE_CLAIM = "app"
_PURPOSE_CLAIM = "typ"
_PURPOSE = "oauth_state"


class StatePayload(TypedDict, total=False):
    user_id: str
    app_type: AppType


def encode_state(payload: StatePayload, expires_delta: Optional[timedelta] = None) -> str:
    """Encode a state payload into a URL-safe signed token."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.STATE_TOKEN_EXPIRE_MINUTES)

    claims = {
        _USER_ID_CLAIM: str(payload["user_id"]),
        _PURPOSE_CLAIM: _PURPOSE,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    app_type = payload.get("app_type")
    if app_type is not None:
        claims[_APP_TYPE_CLAIM] = AppType(app_type).value

    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_state(token: str) -> StatePayload:
    """
    Decode a state token.

    Never raises: an invalid, expired or foreign token yields ``{}``, and an
    unknown app type is dropped. Callers must check ``user_id`` themselves.
    """
    try:
        claims = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        logger.warning(f"Rejected OAuth state token: {e}")
        return {}

    if claims.get(_PURPOSE_CLAIM) != _PURPOSE:
        logger.warning("Rejected OAuth state token with unexpected purpose")
        return {}

    payload: StatePayload = {}
    if claims.get(_USER_ID_CLAIM):
        payload["user_id"] = claims[_USER_ID_CLAIM]

    raw_app_type = claims.get(_APP_TYPE_CLAIM)
    if raw_app_type is not None:
        try:
            payload["app_type"] = AppType(raw_app_type)
        except ValueError:
            logger.warning(f"Ignoring unknown app type in OAuth state: {raw_app_type}")

    return payload
