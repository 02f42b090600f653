"""pagepilot: concurrent, deadline-bounded control of browser tabs."""
from .manager import BrowserManager
from .runtime import OperationResult, guard, guarded, with_timeout

__all__ = ["BrowserManager", "OperationResult", "guard", "guarded", "with_timeout"]
