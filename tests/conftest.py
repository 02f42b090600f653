"""Shared fixtures: an in-memory driver standing in for the browser."""
from __future__ import annotations

import itertools
import threading
from typing import Any, Callable, Iterator, Optional

import pytest

from pagepilot.core.config import BrowserConfig
from pagepilot.errors import DriverError, ScriptError, StartError
from pagepilot.browser.driver import TabInfo
from pagepilot.manager import BrowserManager


class FakeDriver:
    """Thread-safe driver that keeps tabs in a dict.

    Handles are integers. Script results come from the scripts mapping: a
    value is returned, an exception instance is raised, a callable is called.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handles = itertools.count(1)
        self.tabs: dict[int, dict[str, str]] = {}
        self.closed: list[int] = []
        self.focused: list[int] = []
        self.launches: list[BrowserConfig] = []
        self.shutdowns = 0
        self.connected = False
        self.responsive = True
        self.scripts: dict[str, Any] = {"1+1": 2}
        self.fail_launch: Optional[str] = None
        self.fail_urls: set[str] = set()
        self.open_delay: Optional[Callable[[], None]] = None

    def launch(self, config: BrowserConfig) -> None:
        if self.fail_launch:
            raise StartError(self.fail_launch)
        self.launches.append(config)
        with self._lock:
            self.tabs.clear()
        self.connected = True

    def shutdown(self) -> None:
        self.shutdowns += 1
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def open_tab(self, url: str) -> TabInfo:
        if self.open_delay is not None:
            self.open_delay()
        if not self.connected:
            raise DriverError("open tab failed: browser not connected")
        if url in self.fail_urls:
            raise DriverError(f"failed to navigate to {url}: net::ERR_NAME_NOT_RESOLVED")
        with self._lock:
            handle = next(self._handles)
            self.tabs[handle] = {"url": url, "title": f"Title of {url}"}
        return TabInfo(handle=handle, url=url, title=f"Title of {url}")

    def close_tab(self, handle: int) -> None:
        with self._lock:
            self.tabs.pop(handle, None)
            self.closed.append(handle)

    def focus_tab(self, handle: int) -> None:
        self._require_tab(handle)
        with self._lock:
            self.focused.append(handle)

    def navigate(self, handle: int, url: str) -> TabInfo:
        self._require_tab(handle)
        if url in self.fail_urls:
            raise DriverError(f"failed to navigate to {url}: net::ERR_NAME_NOT_RESOLVED")
        with self._lock:
            self.tabs[handle] = {"url": url, "title": f"Title of {url}"}
        return TabInfo(handle=handle, url=url, title=f"Title of {url}")

    def evaluate(self, handle: int, script: str) -> Any:
        self._require_tab(handle)
        result = self.scripts.get(script)
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result()
        return result

    def screenshot(self, handle: int, full_page: bool = True) -> bytes:
        self._require_tab(handle)
        return b"\x89PNG\r\n\x1a\n" + str(handle).encode()

    def tab_info(self, handle: int) -> TabInfo:
        tab = self._require_tab(handle)
        return TabInfo(handle=handle, url=tab["url"], title=tab["title"])

    def is_responsive(self, handle: int) -> bool:
        with self._lock:
            return self.responsive and handle in self.tabs

    def _require_tab(self, handle: int) -> dict[str, str]:
        with self._lock:
            tab = self.tabs.get(handle)
        if tab is None:
            raise DriverError(f"tab {handle} is closed")
        return tab


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def manager(driver: FakeDriver) -> Iterator[BrowserManager]:
    """A started manager backed by the fake driver."""
    mgr = BrowserManager(driver=driver, config=BrowserConfig(headless=True))
    mgr.start()
    yield mgr
    mgr.stop()


@pytest.fixture
def script_error() -> ScriptError:
    return ScriptError("Error: Element not found with selector: #missing")
