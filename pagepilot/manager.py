"""BrowserManager: the object every tool handler is given."""
from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from .browser.connection import PlaywrightDriver
from .browser.driver import Driver
from .browser.gateway import ScriptGateway
from .browser.lifecycle import LifecycleController, VisibilityMode
from .browser.page import Page, PageStatus
from .browser.registry import PageRegistry
from .browser.script_result import ScriptResult
from .core.config import BrowserConfig
from .runtime import OperationResult, with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BrowserManager:
    """Registry, lifecycle and gateway behind one explicitly constructed object.

    Create one per browser process and pass it to handlers by reference.
    Registry and gateway methods are safe to call from many threads.
    Driver-backed calls (create, navigate, execute, screenshot, ...) can
    block; wrap them with bounded() or with_timeout() when the caller
    cannot wait indefinitely.
    """

    def __init__(self, driver: Optional[Driver] = None, config: Optional[BrowserConfig] = None) -> None:
        """Initialize the manager.

        Args:
            driver: Driver adapter. Defaults to a PlaywrightDriver.
            config: Config used by start() when none is passed.
        """
        self._driver = driver or PlaywrightDriver()
        self._default_config = config or BrowserConfig()
        self.registry = PageRegistry(self._driver)
        self.lifecycle = LifecycleController(self._driver, self.registry)
        self.gateway = ScriptGateway(self.registry, self._driver)

    @property
    def is_running(self) -> bool:
        return self.lifecycle.is_running

    @property
    def mode(self) -> Optional[VisibilityMode]:
        return self.lifecycle.mode

    def start(self, config: Optional[BrowserConfig] = None) -> None:
        self.lifecycle.start(config or self._default_config)

    def stop(self) -> None:
        self.lifecycle.stop()

    def set_visibility(self, visible: bool) -> None:
        self.lifecycle.set_visibility(visible)

    def check_health(self) -> None:
        self.lifecycle.check_health()

    def ensure_healthy(self) -> bool:
        return self.lifecycle.ensure_healthy()

    def create(self, url: str = "") -> str:
        return self.registry.create(url)

    def get(self, page_id: str) -> Optional[Page]:
        return self.registry.get(page_id)

    def list(self) -> list[str]:
        return self.registry.list()

    def pages(self) -> list[Page]:
        return self.registry.pages()

    def current(self) -> str:
        return self.registry.current()

    def switch_current(self, page_id: str) -> None:
        self.registry.switch_current(page_id)

    def close(self, page_id: str) -> None:
        self.registry.close(page_id)

    def navigate(self, page_id: str, url: str) -> Page:
        return self.gateway.navigate(page_id, url)

    def execute(self, page_id: str, script: str) -> ScriptResult:
        return self.gateway.execute(page_id, script)

    def screenshot(self, page_id: str = "", full_page: bool = True) -> bytes:
        return self.gateway.screenshot(page_id, full_page=full_page)

    def page_status(self, page_id: str = "") -> PageStatus:
        return self.gateway.page_status(page_id)

    def recover_page(self, page_id: str = "") -> Page:
        return self.gateway.recover_page(page_id)

    def bounded(self, name: str, deadline: float, operation: Callable[[], T]) -> OperationResult[T]:
        """Run an operation with with_timeout(); see its caveats on cancellation."""
        return with_timeout(deadline, operation, name=name)
