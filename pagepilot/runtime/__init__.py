"""Timeout-bounded execution and fault isolation."""
from .guard import guard, guarded
from .result import OperationResult
from .timeout import with_timeout

__all__ = ["OperationResult", "guard", "guarded", "with_timeout"]
