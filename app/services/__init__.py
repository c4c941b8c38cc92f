"""
Service registry module.

This module registers all services with the dependency injection system.
"""
from app.services.calendar_service import CalendarService
from app.services.integration_service import IntegrationService


def register_services():
    """Register all services with the dependency injection system."""
    # Import register_service inside the function to avoid circular imports
    from app.utils.dependencies import register_service

    register_service(IntegrationService, lambda db: IntegrationService(db))
    register_service(CalendarService, lambda db: CalendarService(db))
