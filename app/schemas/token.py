# app/schemas/token.py
from typing import Optional

from pydantic import BaseModel


class TokenPayload(BaseModel):
    """Claims of the bearer token identifying the calling user."""

    sub: Optional[str] = None
