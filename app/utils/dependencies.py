from typing import Any, Callable, Dict, Type, TypeVar, cast

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.db.session import get_db

# Type variable for service classes
T = TypeVar("T")

# Global registry of service factories
_service_registry: Dict[Type[Any], Callable[..., Any]] = {}


def register_service(service_class: Type[T], factory: Callable[..., T]) -> None:
    """
    Register a service factory function.

    Args:
        service_class: The class of the service
        factory: Function that creates an instance of the service from a db session
    """
    _service_registry[service_class] = factory


def get_service(service_class: Type[T]) -> Callable[..., T]:
    """
    Get a dependency provider for a service.

    The returned dependency builds the service once per request (cached in
    ``request.state``) from the registered factory. Unregistered services fall
    back to ``service_class(db)``.

    Args:
        service_class: The class of the service to provide

    Returns:
        A FastAPI dependency that provides the service
    """

    async def _get_service(request: Request, db: Session = Depends(get_db)) -> T:
        service_key = f"service:{service_class.__name__}"
        if hasattr(request.state, service_key):
            return cast(T, getattr(request.state, service_key))

        factory = _service_registry.get(service_class, service_class)
        service = factory(db)

        setattr(request.state, service_key, service)
        return service

    return _get_service
