"""Registry of open pages and the current page."""
from __future__ import annotations

import itertools
import logging
import threading
import time
from datetime import datetime
from typing import Optional

from ..errors import (
    BrowserError,
    LastPageError,
    NoPagesError,
    NotRunningError,
    PageNotFoundError,
)
from .driver import Driver, TabHandle, TabInfo
from .page import Page, normalize_url

logger = logging.getLogger(__name__)


class PageRegistry:
    """Maps page ids to open tabs and tracks the current page.

    One lock guards the page map, the current id and the running flag. It
    is held only for dictionary work, never across a driver call.

    Invariant: current_id is "" or a key of the page map. When the current
    page is removed, the most recently created remaining page becomes
    current before the lock is released.
    """

    def __init__(self, driver: Driver) -> None:
        """Initialize an empty, inactive registry.

        Args:
            driver: Driver used to open, focus and close tabs.
        """
        self._driver = driver
        self._lock = threading.Lock()
        self._pages: dict[str, Page] = {}
        self._current_id: str = ""
        self._running: bool = False
        self._seq = itertools.count(1)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def activate(self) -> None:
        """Accept operations. Called once the browser is up."""
        with self._lock:
            self._running = True

    def deactivate(self) -> list[Page]:
        """Stop accepting operations and drop every entry.

        Returns:
            The removed pages, so the caller can release their handles.
        """
        with self._lock:
            self._running = False
            pages = list(self._pages.values())
            self._pages.clear()
            self._current_id = ""
        return pages

    def create(self, url: str) -> str:
        """Open a tab and register it.

        The new page becomes current if there was no current page.

        Args:
            url: Address to open; normalized before use.

        Returns:
            The new page id.

        Raises:
            NotRunningError: If the browser is not started.
            DriverError: If the driver could not open the tab.
        """
        self._require_running()
        target = normalize_url(url)
        start = time.monotonic()

        info = self._driver.open_tab(target)

        with self._lock:
            if self._running:
                seq = next(self._seq)
                page_id = f"page_{seq}"
                self._pages[page_id] = Page(
                    id=page_id,
                    url=info.url or target,
                    title=info.title,
                    handle=info.handle,
                    seq=seq,
                )
                if not self._current_id:
                    self._current_id = page_id
                orphan: Optional[TabHandle] = None
            else:
                orphan = info.handle

        if orphan is not None:
            # Browser was stopped while the tab was opening.
            self._release(orphan, "unregistered tab")
            raise NotRunningError()

        duration = (time.monotonic() - start) * 1000
        logger.info(f"Created {page_id} at {target} ({duration:.0f}ms)")
        return page_id

    def get(self, page_id: str) -> Optional[Page]:
        """Look up a page without touching the driver.

        Returns:
            A copy of the page, or None if the id is unknown.
        """
        with self._lock:
            page = self._pages.get(page_id)
            return page.snapshot() if page else None

    def list(self) -> list[str]:
        """Ids of all open pages in creation order."""
        with self._lock:
            self._check_running()
            return list(self._pages)

    def pages(self) -> list[Page]:
        """Copies of all open pages in creation order."""
        with self._lock:
            self._check_running()
            return [page.snapshot() for page in self._pages.values()]

    def current(self) -> str:
        """Id of the current page, or "" when no page is open."""
        with self._lock:
            self._check_running()
            return self._current_id

    def switch_current(self, page_id: str) -> None:
        """Focus a page and make it current.

        Raises:
            PageNotFoundError: If the id is unknown.
            DriverError: If the driver could not focus the tab.
        """
        handle = self._lookup(page_id).handle
        self._driver.focus_tab(handle)

        with self._lock:
            page = self._pages.get(page_id)
            if page is None:
                raise PageNotFoundError(page_id)
            self._current_id = page_id
            page.last_active = datetime.now()
        logger.info(f"Switched current page to {page_id}")

    def close(self, page_id: str) -> None:
        """Close a page.

        The last remaining page cannot be closed; stop the browser instead.

        Raises:
            PageNotFoundError: If the id is unknown.
            LastPageError: If it is the only open page.
        """
        with self._lock:
            self._check_running()
            page = self._pages.get(page_id)
            if page is None:
                raise PageNotFoundError(page_id)
            if len(self._pages) == 1:
                raise LastPageError(page_id)
            del self._pages[page_id]
            if self._current_id == page_id:
                self._current_id = self._elect_current()
            new_current = self._current_id

        self._release(page.handle, page_id)
        logger.info(f"Closed {page_id} (current: {new_current or 'none'})")

    def resolve(self, page_id: str = "") -> Page:
        """Find the page an operation addresses.

        An empty id means the current page.

        Raises:
            NotRunningError: If the browser is not started.
            NoPagesError: If the id is empty and no page is open.
            PageNotFoundError: If a non-empty id is unknown.
        """
        with self._lock:
            self._check_running()
            if not page_id:
                if not self._pages:
                    raise NoPagesError()
                page_id = self._current_id or self._elect_current()
            page = self._pages.get(page_id)
            if page is None:
                raise PageNotFoundError(page_id)
            page.last_active = datetime.now()
            return page.snapshot()

    def record_navigation(self, page_id: str, url: str, title: str) -> Page:
        """Store the navigation state reported by the driver.

        Raises:
            PageNotFoundError: If the page was closed meanwhile.
        """
        with self._lock:
            page = self._pages.get(page_id)
            if page is None:
                raise PageNotFoundError(page_id)
            page.url = url
            page.title = title
            page.last_active = datetime.now()
            return page.snapshot()

    def rebind(self, page_id: str, info: TabInfo, recovered: bool = False) -> Page:
        """Attach a new driver handle to an existing page id.

        Args:
            page_id: Page whose handle was re-acquired.
            info: Tab opened in place of the old one.
            recovered: Count this as a recovery of an unhealthy page.

        Raises:
            PageNotFoundError: If the page was closed meanwhile.
        """
        with self._lock:
            page = self._pages.get(page_id)
            if page is None:
                raise PageNotFoundError(page_id)
            page.handle = info.handle
            page.url = info.url or page.url
            page.title = info.title or page.title
            page.last_active = datetime.now()
            if recovered:
                page.recovery_count += 1
            return page.snapshot()

    def discard(self, page_id: str) -> None:
        """Drop a page whose tab is already gone, bypassing the last-page rule."""
        with self._lock:
            if self._pages.pop(page_id, None) is None:
                return
            if self._current_id == page_id:
                self._current_id = self._elect_current()
        logger.warning(f"Discarded {page_id}")

    def _lookup(self, page_id: str) -> Page:
        with self._lock:
            self._check_running()
            page = self._pages.get(page_id)
            if page is None:
                raise PageNotFoundError(page_id)
            return page.snapshot()

    def _elect_current(self) -> str:
        # Caller holds the lock.
        if not self._pages:
            return ""
        return max(self._pages.values(), key=lambda p: p.seq).id

    def _require_running(self) -> None:
        with self._lock:
            self._check_running()

    def _check_running(self) -> None:
        # Caller holds the lock.
        if not self._running:
            raise NotRunningError()

    def _release(self, handle: TabHandle, label: str) -> None:
        try:
            self._driver.close_tab(handle)
        except BrowserError as e:
            logger.warning(f"Failed to close tab for {label}: {e}")
