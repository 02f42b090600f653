"""Driver adapter contract and the values that cross it."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from ..core.config import BrowserConfig

# Opaque to everything but the driver that issued it.
TabHandle = Any


@dataclass
class TabInfo:
    """Navigation state of a tab as reported by the driver."""

    handle: TabHandle
    url: str
    title: str = ""


class Driver(Protocol):
    """Capability to run and talk to one browser process.

    Implementations raise StartError from launch(), DriverError for tab,
    navigation and screenshot failures, and ScriptError for exceptions thrown
    by page scripts.
    """

    def launch(self, config: BrowserConfig) -> None: ...

    def shutdown(self) -> None: ...

    def is_connected(self) -> bool: ...

    def open_tab(self, url: str) -> TabInfo: ...

    def close_tab(self, handle: TabHandle) -> None: ...

    def focus_tab(self, handle: TabHandle) -> None: ...

    def navigate(self, handle: TabHandle, url: str) -> TabInfo: ...

    def evaluate(self, handle: TabHandle, script: str) -> Any: ...

    def screenshot(self, handle: TabHandle, full_page: bool = True) -> bytes: ...

    def tab_info(self, handle: TabHandle) -> TabInfo: ...

    def is_responsive(self, handle: TabHandle) -> bool: ...
