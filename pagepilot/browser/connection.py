"""Playwright-backed driver.

Playwright's sync API binds its objects to the thread that started it, so
PlaywrightDriver owns one worker thread. That thread starts Playwright,
launches Chromium and executes every command. Callers on any thread submit
closures through a queue and block on a Future for the outcome.

Commands run one at a time, so each one is bounded on the driver thread:
navigation by navigation_timeout_ms and scripts by script_timeout_ms. A
script that never settles therefore delays other tabs for at most that long.
"""
from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from queue import Empty, Queue
from typing import Any, Callable, Optional, TypeVar

from playwright.sync_api import Browser, BrowserContext, Error as PlaywrightError
from playwright.sync_api import Page as PlaywrightPage
from playwright.sync_api import Playwright, sync_playwright

from ..core.config import BrowserConfig
from ..errors import BrowserError, DriverError, ScriptError, StartError
from .driver import TabInfo
from .page import BLANK_URL

logger = logging.getLogger(__name__)

T = TypeVar("T")

BROWSER_PATH_ENV = "PAGEPILOT_BROWSER_PATH"
BROWSER_CANDIDATES: list[str] = [
    "/usr/bin/chromium-browser",
    "/usr/bin/chromium",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/snap/bin/chromium",
]

LAUNCH_TIMEOUT_SECONDS: float = 60.0
SHUTDOWN_TIMEOUT_SECONDS: float = 10.0
QUEUE_POLL_TIMEOUT: float = 0.5
VERSION_CHECK_TIMEOUT: float = 5.0
HEALTH_PROBE_TIMEOUT: float = 2.0
RETRY_WAIT_MS: int = 500

FUNCTION_SOURCE = re.compile(r"^(async\s+)?(function\b|\([^()]*\)\s*=>|[A-Za-z_$][\w$]*\s*=>)")
STATEMENT_KEYWORDS = (
    "const ", "let ", "var ", "return", "if ", "if(", "for ", "for(", "while",
    "throw ", "try", "switch", "do ", "do{", "class ",
)


def find_browser_binary(configured: Optional[str] = None) -> Optional[str]:
    """Locate a working Chromium-family binary.

    Checks the configured path, then the PAGEPILOT_BROWSER_PATH environment
    variable, then common system locations.

    Returns:
        Path of a working binary, or None to use Playwright's bundled Chromium.
    """
    candidates = [path for path in (configured, os.environ.get(BROWSER_PATH_ENV)) if path]
    candidates.extend(BROWSER_CANDIDATES)

    for path in candidates:
        if _is_browser_working(path):
            logger.info(f"Using browser binary: {path}")
            return path

    logger.info("No system browser found, using Playwright's bundled Chromium")
    return None


def _is_browser_working(path: str) -> bool:
    """Check that a binary exists and starts with --version."""
    if not os.path.isfile(path):
        logger.debug(f"Browser binary not found: {path}")
        return False
    try:
        subprocess.run(
            [path, "--version"],
            capture_output=True,
            timeout=VERSION_CHECK_TIMEOUT,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Browser binary failed version check: {path}: {e}")
        return False
    return True


def wrap_script(script: str) -> str:
    """Turn script source into a function Playwright can call.

    Function sources pass through. A single expression becomes an arrow
    function returning it. Anything else is used as a function body, and
    a line opening with "({" is returned from it.
    """
    script = script.strip()
    if FUNCTION_SOURCE.match(script):
        return script

    lines = script.split("\n")
    for i, line in enumerate(lines):
        if line.strip().startswith("({"):
            lines[i] = line.replace("({", "return ({", 1)
            return "async () => {\n" + "\n".join(lines) + "\n}"

    expression = script.rstrip(";").rstrip()
    if len(lines) == 1 and ";" not in expression and not expression.startswith(STATEMENT_KEYWORDS):
        return f"async () => ({expression})"
    return "async () => {\n" + script + "\n}"


def bound_script(function_source: str, timeout_ms: int) -> str:
    """Race a script function against a rejection after timeout_ms."""
    return (
        "() => Promise.race([\n"
        f"  Promise.resolve().then({function_source}),\n"
        "  new Promise((_, reject) => setTimeout(\n"
        f"    () => reject(new Error('script timed out after {timeout_ms} ms')), {timeout_ms})),\n"
        "])"
    )


class PlaywrightDriver:
    """Driver implementation on top of Playwright's Chromium.

    Tab handles are Playwright Page objects. They are only ever touched on
    the driver thread.
    """

    def __init__(self) -> None:
        self._commands: Queue[Optional[tuple[Callable[[], Any], Future]]] = Queue()
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._stop_flag = threading.Event()
        self._disconnected = threading.Event()
        self._launch_error: Optional[BaseException] = None
        self._config = BrowserConfig()
        self._submit_lock = threading.Lock()
        self._accepting = False

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    def launch(self, config: BrowserConfig) -> None:
        """Start the driver thread and launch the browser on it.

        Raises:
            StartError: If already running, or the browser failed to launch
                within LAUNCH_TIMEOUT_SECONDS.
        """
        if self._thread is not None and self._thread.is_alive():
            if self._stop_flag.is_set():
                raise StartError("previous browser is still shutting down")
            raise StartError("browser already running")

        self._config = config
        commands: Queue[Optional[tuple[Callable[[], Any], Future]]] = Queue()
        self._commands = commands
        self._ready.clear()
        self._stop_flag.clear()
        self._disconnected.clear()
        self._launch_error = None

        self._thread = threading.Thread(
            target=self._run, args=(config, commands), daemon=True, name="PlaywrightDriver"
        )
        self._thread.start()

        if not self._ready.wait(timeout=LAUNCH_TIMEOUT_SECONDS):
            self._stop_flag.set()
            raise StartError(f"browser did not start within {LAUNCH_TIMEOUT_SECONDS:g} seconds")
        if self._launch_error is not None:
            raise StartError(f"failed to launch browser: {self._launch_error}") from self._launch_error

    def shutdown(self) -> None:
        """Close the browser and stop the driver thread."""
        if self._thread is None:
            return

        logger.info("Shutting down Playwright driver")
        self._stop_flag.set()
        self._commands.put(None)
        self._thread.join(timeout=SHUTDOWN_TIMEOUT_SECONDS)
        if self._thread.is_alive():
            # Kept so launch() refuses to start a second thread beside it.
            logger.warning("Playwright driver thread did not stop in time")
            return
        self._thread = None

    def is_connected(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and self._ready.is_set()
            and self._accepting
            and not self._disconnected.is_set()
        )

    def open_tab(self, url: str) -> TabInfo:
        def command() -> TabInfo:
            page = self._require_context().new_page()
            if url != BLANK_URL:
                try:
                    self._goto(page, url)
                except BrowserError:
                    self._close_quietly(page)
                    raise
            return self._info(page)

        return self._call(command, "open tab")

    def close_tab(self, handle: PlaywrightPage) -> None:
        def command() -> None:
            if not handle.is_closed():
                handle.close()

        self._call(command, "close tab")

    def focus_tab(self, handle: PlaywrightPage) -> None:
        self._call(handle.bring_to_front, "focus tab")

    def navigate(self, handle: PlaywrightPage, url: str) -> TabInfo:
        def command() -> TabInfo:
            self._goto(handle, url)
            return self._info(handle)

        return self._call(command, "navigate")

    def evaluate(self, handle: PlaywrightPage, script: str) -> Any:
        source = bound_script(wrap_script(script), self._config.script_timeout_ms)

        def command() -> Any:
            try:
                return handle.evaluate(source)
            except PlaywrightError as e:
                raise ScriptError(e.message) from e

        return self._call(command, "execute script")

    def screenshot(self, handle: PlaywrightPage, full_page: bool = True) -> bytes:
        def command() -> bytes:
            return handle.screenshot(full_page=full_page, type="png")

        return self._call(command, "take screenshot")

    def tab_info(self, handle: PlaywrightPage) -> TabInfo:
        return self._call(lambda: self._info(handle), "read page info")

    def is_responsive(self, handle: PlaywrightPage) -> bool:
        def command() -> bool:
            return not handle.is_closed() and handle.evaluate("() => true") is True

        try:
            return self._call(command, "health probe", timeout=HEALTH_PROBE_TIMEOUT)
        except BrowserError as e:
            logger.debug(f"Health probe failed: {e}")
            return False

    def _call(self, func: Callable[[], T], operation: str, timeout: Optional[float] = None) -> T:
        """Run func on the driver thread and wait for its outcome.

        Raises:
            DriverError: If the browser is not connected, Playwright failed,
                or timeout elapsed.
        """
        future: Future = Future()
        with self._submit_lock:
            if not self.is_connected():
                raise DriverError(f"{operation} failed: browser not connected")
            self._commands.put((func, future))
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise DriverError(f"{operation} timed out after {timeout:g} seconds") from e
        except BrowserError:
            raise
        except PlaywrightError as e:
            raise DriverError(f"{operation} failed: {e.message}") from e

    def _run(self, config: BrowserConfig, commands: Queue) -> None:
        """Driver thread body."""
        try:
            self._start_browser(config)
        except Exception as e:
            logger.exception(f"Browser launch failed: {e}")
            self._launch_error = e
            self._cleanup()
            self._ready.set()
            return

        with self._submit_lock:
            self._accepting = True
        self._ready.set()
        try:
            self._process_loop(commands)
        finally:
            self._fail_pending(commands)
            self._cleanup()
            logger.info("Playwright driver stopped")

    def _start_browser(self, config: BrowserConfig) -> None:
        executable = find_browser_binary(config.browser_path)
        args = [f"--window-size={config.window_width},{config.window_height}"]
        if config.devtools:
            args.append("--auto-open-devtools-for-tabs")
        launch_options: dict[str, Any] = {
            "headless": config.headless,
            "args": args,
            "slow_mo": config.slow_motion_ms,
        }

        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(
                executable_path=executable, **launch_options
            )
        except PlaywrightError as e:
            if executable is None:
                raise
            logger.warning(f"System browser {executable} failed, trying bundled Chromium: {e.message}")
            self._browser = self._playwright.chromium.launch(**launch_options)

        self._browser.on("disconnected", lambda _: self._on_disconnected())
        self._context = self._browser.new_context(
            viewport={"width": config.window_width, "height": config.window_height}
        )
        self._context.set_default_navigation_timeout(config.navigation_timeout_ms)
        logger.info(f"Chromium {self._browser.version} launched")

    def _process_loop(self, commands: Queue) -> None:
        """Execute commands until shutdown."""
        while not self._stop_flag.is_set():
            try:
                command = commands.get(timeout=QUEUE_POLL_TIMEOUT)
            except Empty:
                continue

            if command is None:
                logger.debug("Received shutdown command")
                break

            func, future = command
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(func())
            except Exception as e:
                future.set_exception(e)

    def _fail_pending(self, commands: Queue) -> None:
        """Stop accepting commands and fail the ones still queued."""
        with self._submit_lock:
            self._accepting = False
        while True:
            try:
                command = commands.get_nowait()
            except Empty:
                return
            if command is None:
                continue
            _, future = command
            if future.set_running_or_notify_cancel():
                future.set_exception(DriverError("browser shut down"))

    def _on_disconnected(self) -> None:
        logger.warning("Browser disconnected")
        self._disconnected.set()

    def _require_context(self) -> BrowserContext:
        if self._context is None:
            raise DriverError("browser context not available")
        return self._context

    def _goto(self, page: PlaywrightPage, url: str) -> None:
        """Navigate with retry.

        An aborted navigation that still landed on the target counts as
        success.
        """
        retries = self._config.max_navigation_retries
        for attempt in range(retries):
            try:
                logger.debug(f"Navigating to: {url} (attempt {attempt + 1})")
                page.goto(url, wait_until="domcontentloaded", timeout=self._config.navigation_timeout_ms)
                return
            except PlaywrightError as e:
                if "aborted" in e.message.lower() and url.split("?")[0] in page.url:
                    logger.info("Navigation succeeded despite abort")
                    return
                if attempt < retries - 1:
                    logger.warning(f"Navigation failed (attempt {attempt + 1}): {e.message}")
                    page.wait_for_timeout(RETRY_WAIT_MS)
                    continue
                raise DriverError(f"failed to navigate to {url}: {e.message}") from e

    def _info(self, page: PlaywrightPage) -> TabInfo:
        try:
            title = page.title()
        except PlaywrightError as e:
            logger.debug(f"Failed to read page title: {e.message}")
            title = ""
        return TabInfo(handle=page, url=page.url, title=title)

    def _close_quietly(self, page: PlaywrightPage) -> None:
        try:
            page.close()
        except PlaywrightError as e:
            logger.debug(f"Failed to close page: {e.message}")

    def _cleanup(self) -> None:
        """Release Playwright resources. Runs on the driver thread."""
        for name, closer in (
            ("context", self._context.close if self._context else None),
            ("browser", self._browser.close if self._browser else None),
            ("playwright", self._playwright.stop if self._playwright else None),
        ):
            if closer is None:
                continue
            try:
                closer()
            except Exception as e:
                logger.debug(f"Failed to close {name}: {e}")
        self._context = None
        self._browser = None
        self._playwright = None
