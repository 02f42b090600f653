"""Error taxonomy shared by the registry, gateway, wrapper and harness."""
from typing import Any


class BrowserError(Exception):
    """Base class for every error raised by pagepilot."""


class PageNotFoundError(BrowserError):
    """Unknown page id."""

    def __init__(self, page_id: str) -> None:
        self.page_id = page_id
        super().__init__(f"page not found: {page_id}")


class NoPagesError(BrowserError):
    """An operation needs a page but none are open."""

    def __init__(self) -> None:
        super().__init__("no pages available")


class LastPageError(BrowserError):
    """Attempt to close the only remaining page."""

    def __init__(self, page_id: str) -> None:
        self.page_id = page_id
        super().__init__(
            f"cannot close the last page ({page_id}); stop the browser instead"
        )


class NotRunningError(BrowserError):
    """Browser accessed before start() or after stop()."""

    def __init__(self) -> None:
        super().__init__("browser not started")


class StartError(BrowserError):
    """The browser process could not be launched."""


class DriverError(BrowserError):
    """Open, navigate, focus or screenshot failed inside the driver."""


class ScriptError(BrowserError):
    """A script raised inside the page. The message is kept verbatim."""


class InvalidArgumentError(BrowserError):
    """A tool was called with a missing or malformed argument."""


class TimeoutExceededError(BrowserError):
    """Synthetic result returned when an operation outlives its deadline."""

    def __init__(self, name: str, deadline: float) -> None:
        self.name = name
        self.deadline = deadline
        super().__init__(f"{name} timed out after {deadline:g} seconds")


class PanickedError(BrowserError):
    """Unexpected fault intercepted at the handler boundary.

    Attributes:
        name: Operation name the fault occurred in.
        fault: The original exception.
        stack: Formatted stack trace captured when the fault was caught.
    """

    def __init__(self, name: str, fault: Any, stack: str = "") -> None:
        self.name = name
        self.fault = fault
        self.stack = stack
        super().__init__(f"{name} failed unexpectedly: {fault!r}")
