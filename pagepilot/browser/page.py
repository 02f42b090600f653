"""Page record and URL normalization."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path

from .driver import TabHandle

BLANK_URL = "about:blank"
PASSTHROUGH_PREFIXES: tuple[str, ...] = ("http://", "https://", "file://", "about:", "data:")
LOCAL_PATH_PREFIXES: tuple[str, ...] = ("/", "./", "../", "~")


def normalize_url(url: str) -> str:
    """Give a user-supplied URL an explicit scheme.

    Empty input opens a blank tab, local paths become file:// URIs and bare
    hosts get https://.
    """
    url = url.strip()
    if not url:
        return BLANK_URL
    if url.lower().startswith(PASSTHROUGH_PREFIXES):
        return url
    if url.startswith(LOCAL_PATH_PREFIXES):
        return Path(url).expanduser().resolve().as_uri()
    return f"https://{url}"


@dataclass
class Page:
    """One open tab.

    Attributes:
        id: Opaque id, stable for the tab's life and never reused.
        url: Last known URL.
        title: Last known document title.
        handle: Driver handle backing the tab; may be re-acquired.
        seq: Creation order within the registry.
        created_at: When the page was created.
        last_active: Last time an operation addressed the page.
        recovery_count: Times the handle was re-acquired by recovery.
    """

    id: str
    url: str
    title: str
    handle: TabHandle
    seq: int
    created_at: datetime = field(default_factory=datetime.now)
    last_active: datetime = field(default_factory=datetime.now)
    recovery_count: int = 0

    def snapshot(self) -> "Page":
        """Copy safe to hand out of the registry lock."""
        return replace(self)


@dataclass
class PageStatus:
    """Health report for a single page."""

    page_id: str
    url: str
    title: str
    is_healthy: bool
    created_at: datetime
    last_active: datetime
    recovery_count: int
    error: str = ""

    def to_dict(self) -> dict:
        return {
            "page_id": self.page_id,
            "url": self.url,
            "title": self.title,
            "is_healthy": self.is_healthy,
            "created_at": self.created_at.isoformat(),
            "last_active": self.last_active.isoformat(),
            "recovery_count": self.recovery_count,
            "error": self.error,
        }
