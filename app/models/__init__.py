# app/models/__init__.py
from app.models.integration import Integration
