# app/api/api.py
from fastapi import APIRouter

from app.api.routes import integrations, oauth_callbacks

api_router = APIRouter()
# Callback routes are registered first so "/google/callback" and friends are
# never shadowed by the parameterised integration routes
api_router.include_router(
    oauth_callbacks.router, prefix="/integrations", tags=["oauth_callbacks"]
)
api_router.include_router(
    integrations.router, prefix="/integrations", tags=["integrations"]
)
