"""Browser control: driver adapter, page registry, lifecycle and script gateway."""
from .connection import PlaywrightDriver
from .driver import Driver, TabInfo
from .gateway import ScriptGateway
from .lifecycle import LifecycleController, VisibilityMode
from .page import Page, PageStatus, normalize_url
from .registry import PageRegistry
from .script_result import ScriptResult, ScriptValueKind

__all__ = [
    "Driver",
    "LifecycleController",
    "Page",
    "PageRegistry",
    "PageStatus",
    "PlaywrightDriver",
    "ScriptGateway",
    "ScriptResult",
    "ScriptValueKind",
    "TabInfo",
    "VisibilityMode",
    "normalize_url",
]
