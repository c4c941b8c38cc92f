import asyncio
import logging
from typing import Any, Awaitable, Type

from app.core.exceptions import BusinessException, ExternalServiceException

# Set up module logger
logger = logging.getLogger(__name__)


async def with_timeout(
    coro: Awaitable[Any],
    timeout: float,
    error_message: str = "Operation timed out",
    exception_class: Type[BusinessException] = ExternalServiceException,
) -> Any:
    """
    Execute a coroutine with a timeout.

    Args:
        coro: The coroutine to execute
        timeout: Timeout in seconds
        error_message: Custom error message for timeout
        exception_class: Exception raised on timeout, so a slow token
            endpoint surfaces as the same error as a failing one

    Returns:
        The result of the coroutine

    Raises:
        exception_class: If the operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Timeout error: {error_message} (limit: {timeout}s)")
        raise exception_class(error_message)
