import functools
import logging
from typing import Any, Callable, Optional, Type

from library_api.core.exceptions import BaseAppException, InternalServerError

logger = logging.getLogger(__name__)


def raise_for_status(
    condition: bool,
    exception: Type[BaseAppException],
    detail: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Raise ``exception`` when ``condition`` holds."""
    if condition:
        raise exception(detail, **kwargs)


def handle_exceptions(
    default_exception: Type[BaseAppException] = InternalServerError,
    message: Optional[str] = None,
) -> Callable:
    """
    Decorator for async repository methods.

    Application exceptions pass through untouched; anything else is logged with
    its traceback and re-raised as ``default_exception``.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except BaseAppException:
                raise
            except Exception as e:
                logger.error(
                    f"Unhandled error in {func.__qualname__}",
                    exc_info=True,
                    extra={"error_type": type(e).__name__},
                )
                raise default_exception(detail=message) from e

        return wrapper

    return decorator
