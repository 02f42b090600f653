"""Single chokepoint for script, navigation and screenshot calls."""
import logging
import time

from ..errors import BrowserError, PageNotFoundError, ScriptError
from .driver import Driver
from .page import BLANK_URL, Page, PageStatus, normalize_url
from .registry import PageRegistry
from .script_result import ScriptResult

logger = logging.getLogger(__name__)


class ScriptGateway:
    """Resolves page ids through the registry and delegates to the driver.

    Every method accepts an empty page id, meaning the current page. Calls
    may block for as long as the driver does; bound them with with_timeout.
    """

    def __init__(self, registry: PageRegistry, driver: Driver) -> None:
        self._registry = registry
        self._driver = driver

    def execute(self, page_id: str, script: str) -> ScriptResult:
        """Run a script in a page.

        Args:
            page_id: Target page, "" for the current page.
            script: JavaScript expression or function source.

        Returns:
            The script's value, tagged with its kind.

        Raises:
            NoPagesError: If page_id is empty and no page is open.
            PageNotFoundError: If page_id is unknown.
            ScriptError: If the script threw; the message is kept verbatim.
        """
        page = self._registry.resolve(page_id)
        script = script.strip()
        if not script:
            raise ScriptError("script is empty")

        start = time.monotonic()
        raw = self._driver.evaluate(page.handle, script)
        result = ScriptResult.from_raw(raw)
        duration = (time.monotonic() - start) * 1000
        logger.info(f"Script executed on {page.id} ({duration:.0f}ms, {result.kind.value})")
        return result

    def navigate(self, page_id: str, url: str) -> Page:
        """Navigate a page and refresh its cached URL and title.

        Returns:
            The page with its updated navigation state.
        """
        page = self._registry.resolve(page_id)
        target = normalize_url(url)

        start = time.monotonic()
        info = self._driver.navigate(page.handle, target)
        updated = self._registry.record_navigation(page.id, info.url or target, info.title)
        duration = (time.monotonic() - start) * 1000
        logger.info(f"Navigated {page.id} to {updated.url} ({duration:.0f}ms)")
        return updated

    def screenshot(self, page_id: str, full_page: bool = True) -> bytes:
        """Capture a page as PNG bytes."""
        page = self._registry.resolve(page_id)

        start = time.monotonic()
        image = self._driver.screenshot(page.handle, full_page=full_page)
        duration = (time.monotonic() - start) * 1000
        logger.info(f"Screenshot of {page.id} ({len(image)} bytes, {duration:.0f}ms)")
        return image

    def page_status(self, page_id: str) -> PageStatus:
        """Probe a page's health and refresh its navigation state."""
        page = self._registry.resolve(page_id)
        healthy = self._driver.is_responsive(page.handle)
        error = ""
        if healthy:
            try:
                info = self._driver.tab_info(page.handle)
                page = self._registry.record_navigation(page.id, info.url, info.title)
            except BrowserError as e:
                healthy = False
                error = str(e)
        else:
            error = "page is not responding"

        return PageStatus(
            page_id=page.id,
            url=page.url,
            title=page.title,
            is_healthy=healthy,
            created_at=page.created_at,
            last_active=page.last_active,
            recovery_count=page.recovery_count,
            error=error,
        )

    def recover_page(self, page_id: str) -> Page:
        """Replace a page's tab with a fresh one at its last known URL.

        The page keeps its id; its recovery_count is incremented.

        Raises:
            DriverError: If the replacement tab could not be opened.
        """
        page = self._registry.resolve(page_id)
        logger.info(f"Attempting recovery of {page.id} at {page.url}")

        try:
            self._driver.close_tab(page.handle)
        except BrowserError as e:
            logger.warning(f"Failed to close {page.id} during recovery: {e}")

        info = self._driver.open_tab(page.url or BLANK_URL)
        try:
            recovered = self._registry.rebind(page.id, info, recovered=True)
        except PageNotFoundError:
            # Closed while the replacement tab was opening.
            self._driver.close_tab(info.handle)
            raise
        logger.info(f"Recovered {page.id} (recovery #{recovered.recovery_count})")
        return recovered
