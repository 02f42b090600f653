"""Deadline-bounded execution of blocking operations.

with_timeout() bounds how long the CALLER waits, not how long the work
runs. On timeout the operation is not cancelled: its thread keeps running
until the operation returns (possibly never) and its result is discarded.
Resources held by the operation are not released when with_timeout
returns, so deadlines should be chosen conservatively.
"""
from __future__ import annotations

import logging
import threading
import time
from queue import Empty, Queue
from typing import Callable, TypeVar

from ..errors import TimeoutExceededError
from .guard import guard
from .result import OperationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_timeout(
    deadline: float,
    operation: Callable[[], T],
    name: str = "operation",
) -> OperationResult[T]:
    """Run an operation on a background thread and wait at most deadline seconds.

    The operation runs through guard(), so an exception raised after the
    caller has already received a timeout is still caught and logged.

    Args:
        deadline: Seconds to wait. Must be positive.
        operation: Zero-argument callable.
        name: Operation name used in logs and in the timeout message.

    Returns:
        The operation's OperationResult, or one holding TimeoutExceededError
        if the deadline elapsed first.

    Raises:
        ValueError: If deadline is not positive.
    """
    if deadline <= 0:
        raise ValueError(f"deadline must be positive, got {deadline}")

    outcome: Queue[OperationResult[T]] = Queue(maxsize=1)
    abandoned = threading.Event()
    start = time.monotonic()

    def run() -> None:
        result = guard(name, operation)
        if abandoned.is_set():
            elapsed = time.monotonic() - start
            if result.ok:
                logger.info(f"{name} finished after its deadline ({elapsed:.1f}s); result discarded")
            else:
                logger.warning(f"{name} failed after its deadline ({elapsed:.1f}s): {result.error}")
        outcome.put(result)

    thread = threading.Thread(target=run, daemon=True, name=f"bounded-{name}")
    thread.start()

    try:
        return outcome.get(timeout=deadline)
    except Empty:
        abandoned.set()
        logger.warning(f"{name} exceeded its {deadline:g}s deadline; left running in background")
        return OperationResult(error=TimeoutExceededError(name, deadline))
