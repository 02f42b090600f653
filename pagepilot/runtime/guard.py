"""Fault isolation for tool entry points.

Every tool invocation runs through guard(). Expected failures (any
BrowserError) pass through as the result's error. Anything else is treated
as a handler bug: it is logged with its stack trace and turned into a
PanickedError so the hosting process keeps running.
"""
from __future__ import annotations

import functools
import logging
import traceback
from typing import Callable, TypeVar

from ..errors import BrowserError, PanickedError
from .result import OperationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


def guard(name: str, operation: Callable[[], T]) -> OperationResult[T]:
    """Run an operation, converting every exception into a result.

    Args:
        name: Operation name used in logs and in PanickedError.
        operation: Zero-argument callable.

    Returns:
        OperationResult with the value, the BrowserError raised, or a
        PanickedError for any other exception.
    """
    try:
        return OperationResult(value=operation())
    except BrowserError as e:
        logger.debug(f"{name} failed: {e}")
        return OperationResult(error=e)
    except Exception as e:
        stack = traceback.format_exc()
        logger.error(f"Recovered from fault in {name}: {e!r}\n{stack}")
        return OperationResult(error=PanickedError(name, e, stack))


def guarded(name: str) -> Callable[[Callable[..., T]], Callable[..., OperationResult[T]]]:
    """Decorator form of guard() for handler functions."""

    def decorator(func: Callable[..., T]) -> Callable[..., OperationResult[T]]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> OperationResult[T]:
            return guard(name, lambda: func(*args, **kwargs))

        return wrapper

    return decorator
