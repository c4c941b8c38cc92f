# app/api/deps.py
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from app.core.config import settings
from app.schemas.token import TokenPayload
from app.services.integration_service import IntegrationService
from app.utils.dependencies import get_service

# Bearer scheme for token extraction; missing tokens are answered with 401 below
bearer_scheme = HTTPBearer(auto_error=False)


# Service dependencies - defined as functions that will be called at runtime
# These will only be evaluated after services have been registered
def get_integration_service():
    return get_service(IntegrationService)


# Authentication dependencies
async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Get the id of the calling user from the bearer token's ``sub`` claim.

    Tokens are issued by the main application with the shared SECRET_KEY.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
        token_data = TokenPayload(**payload)
    except (JWTError, ValidationError):
        raise unauthorized

    if not token_data.sub:
        raise unauthorized
    return token_data.sub
