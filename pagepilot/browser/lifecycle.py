"""Browser process lifecycle: start, stop, visibility and health."""
import logging
import time
from enum import Enum
from typing import Optional

from ..core.config import BrowserConfig
from ..errors import BrowserError, DriverError, NotRunningError, StartError
from .driver import Driver
from .page import BLANK_URL
from .registry import PageRegistry

logger = logging.getLogger(__name__)


class VisibilityMode(Enum):
    """Presentation mode of the browser process."""
    HEADLESS = "headless"
    VISIBLE = "visible"


class LifecycleController:
    """Starts, stops and reconfigures the single browser process.

    start(), stop() and set_visibility() must not run concurrently with
    each other.
    """

    def __init__(self, driver: Driver, registry: PageRegistry) -> None:
        self._driver = driver
        self._registry = registry
        self._config: Optional[BrowserConfig] = None

    @property
    def config(self) -> Optional[BrowserConfig]:
        """Config the browser was last started with."""
        return self._config

    @property
    def is_running(self) -> bool:
        return self._registry.is_running

    @property
    def mode(self) -> Optional[VisibilityMode]:
        """Current visibility mode, None before the first start."""
        if self._config is None:
            return None
        return VisibilityMode.HEADLESS if self._config.headless else VisibilityMode.VISIBLE

    def start(self, config: BrowserConfig) -> None:
        """Launch the browser.

        Args:
            config: Window and visibility settings.

        Raises:
            StartError: If the browser could not be launched.
        """
        logger.info(
            f"Starting browser (headless={config.headless}, "
            f"window={config.window_width}x{config.window_height})"
        )
        start = time.monotonic()
        self._launch(config)
        self._config = config
        self._registry.activate()
        duration = (time.monotonic() - start) * 1000
        logger.info(f"Browser started ({duration:.0f}ms)")

    def stop(self) -> None:
        """Close every page and tear the browser down.

        Registry and gateway calls raise NotRunningError afterwards.
        """
        if not self._registry.is_running:
            logger.debug("Stop requested but browser is not running")
            return

        logger.info("Stopping browser")
        start = time.monotonic()
        for page in self._registry.deactivate():
            try:
                self._driver.close_tab(page.handle)
            except BrowserError as e:
                logger.error(f"Failed to close page {page.id}: {e}")

        try:
            self._driver.shutdown()
        except BrowserError as e:
            logger.error(f"Failed to close browser: {e}")

        duration = (time.monotonic() - start) * 1000
        logger.info(f"Browser stopped ({duration:.0f}ms)")

    def set_visibility(self, visible: bool) -> None:
        """Switch between headless and visible mode.

        Restarts the browser and re-opens every page under its existing id
        at its last known URL. The current page stays current.

        Raises:
            NotRunningError: If the browser is not started.
            StartError: If the browser could not be relaunched.
        """
        if not self._registry.is_running or self._config is None:
            raise NotRunningError()

        mode = VisibilityMode.VISIBLE if visible else VisibilityMode.HEADLESS
        if self.mode == mode:
            logger.info(f"Browser already {mode.value}")
            return

        start = time.monotonic()
        restored = self._restart(self._config.model_copy(update={"headless": not visible}))
        duration = (time.monotonic() - start) * 1000
        logger.info(f"Browser visibility changed to {mode.value}, {restored} pages restored ({duration:.0f}ms)")

    def check_health(self) -> None:
        """Verify the browser connection is alive.

        Raises:
            NotRunningError: If the browser is not started.
            DriverError: If the connection was lost.
        """
        if not self._registry.is_running:
            raise NotRunningError()
        if not self._driver.is_connected():
            raise DriverError("browser connection unhealthy")

    def ensure_healthy(self) -> bool:
        """Restart the browser if its connection was lost.

        Returns:
            True if a restart was needed and succeeded, False if healthy.

        Raises:
            NotRunningError: If the browser is not started.
            StartError: If the restart failed.
        """
        try:
            self.check_health()
            return False
        except DriverError as e:
            logger.warning(f"Browser unhealthy, attempting restart: {e}")

        if self._config is None:
            raise NotRunningError()
        restored = self._restart(self._config)
        logger.info(f"Browser restarted successfully, {restored} pages restored")
        return True

    def _launch(self, config: BrowserConfig) -> None:
        try:
            self._driver.launch(config)
        except StartError:
            raise
        except BrowserError as e:
            raise StartError(f"failed to launch browser: {e}") from e

    def _restart(self, config: BrowserConfig) -> int:
        """Relaunch with config and re-acquire a handle for every page.

        Returns:
            Number of pages restored.
        """
        pages = self._registry.pages()
        current_id = self._registry.current()

        try:
            self._driver.shutdown()
        except BrowserError as e:
            logger.warning(f"Failed to stop browser for restart: {e}")

        try:
            self._launch(config)
        except StartError:
            self._registry.deactivate()
            raise
        self._config = config

        restored = 0
        for page in pages:
            try:
                info = self._driver.open_tab(page.url or BLANK_URL)
            except BrowserError as e:
                logger.warning(f"Failed to restore {page.id} at {page.url}: {e}")
                self._registry.discard(page.id)
                continue
            self._registry.rebind(page.id, info)
            restored += 1
            logger.debug(f"Restored {page.id} at {info.url}")

        if current_id and self._registry.get(current_id) is not None:
            try:
                self._registry.switch_current(current_id)
            except BrowserError as e:
                logger.warning(f"Failed to refocus {current_id} after restart: {e}")
        return restored
