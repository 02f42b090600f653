"""Outcome of an operation run through the wrapper or the harness."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from ..errors import BrowserError

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """Value or error produced by one operation.

    Attributes:
        value: Return value of the operation, None on failure.
        error: The error the operation ended with, None on success.
    """

    value: Optional[T] = None
    error: Optional[BrowserError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the stored error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
