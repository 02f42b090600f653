"""Tool handlers exposed to automation clients.

Each handler is a thin translation from tool arguments to BrowserManager
calls. ToolBox.call() is the single entry point: it runs every handler
under guarded() and with_timeout(), so a slow or crashing handler turns into
an error response instead of hanging or killing the process.
"""
from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

from .core.config import TimeoutConfig
from .errors import BrowserError, DriverError, InvalidArgumentError, PanickedError, TimeoutExceededError
from .manager import BrowserManager
from .runtime import OperationResult, guarded, with_timeout

logger = logging.getLogger(__name__)


@dataclass
class ToolResponse:
    """Result of one tool call, fit for direct display."""

    text: str
    is_error: bool = False
    data: Any = None


def _require_str(args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(f"{key} is required")
    return value


def _optional_str(args: dict[str, Any], key: str) -> str:
    value = args.get(key, "")
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{key} must be a string")
    return value


def _page_data(page) -> dict[str, Any]:
    return {"page_id": page.id, "url": page.url, "title": page.title}


class ToolBox:
    """Named tool handlers bound to one BrowserManager."""

    def __init__(self, manager: BrowserManager, timeouts: Optional[TimeoutConfig] = None) -> None:
        """Initialize the tool box.

        Args:
            manager: Manager every handler operates on.
            timeouts: Per-tool deadlines.
        """
        self._manager = manager
        self._timeouts = timeouts or TimeoutConfig()
        t = self._timeouts
        handlers: dict[str, tuple[Callable[[dict[str, Any]], ToolResponse], float]] = {
            "create_page": (self._create_page, t.create),
            "navigate_page": (self._navigate_page, t.navigate),
            "execute_script": (self._execute_script, t.execute),
            "take_screenshot": (self._take_screenshot, t.screenshot),
            "list_pages": (self._list_pages, t.default),
            "switch_page": (self._switch_page, t.default),
            "close_page": (self._close_page, t.default),
            "set_browser_visibility": (self._set_visibility, t.visibility),
            "page_status": (self._page_status, t.default),
            "recover_page": (self._recover_page, t.create),
            "browser_health": (self._browser_health, t.visibility),
        }
        self._handlers: dict[str, tuple[Callable[[dict[str, Any]], OperationResult[ToolResponse]], float]] = {
            name: (guarded(name)(handler), deadline) for name, (handler, deadline) in handlers.items()
        }

    @property
    def names(self) -> list[str]:
        return sorted(self._handlers)

    def call(self, name: str, args: Optional[dict[str, Any]] = None) -> ToolResponse:
        """Invoke a tool by name.

        Never raises: unknown tools, handler errors, timeouts and unexpected
        faults all come back as error responses.
        """
        entry = self._handlers.get(name)
        if entry is None:
            return ToolResponse(text=f"Unknown tool: {name}", is_error=True)

        handler, deadline = entry
        arguments = dict(args or {})
        start = time.monotonic()
        result = with_timeout(deadline, lambda: handler(arguments).unwrap(), name=name)
        duration = (time.monotonic() - start) * 1000
        logger.info(f"Tool {name} {'ok' if result.ok else 'failed'} ({duration:.0f}ms)")

        if result.error is not None:
            return ToolResponse(text=self._error_text(name, result.error), is_error=True)
        return result.value

    def _error_text(self, name: str, error: BrowserError) -> str:
        if isinstance(error, (TimeoutExceededError, PanickedError)):
            return str(error)
        return f"{name} failed: {error}"

    def _create_page(self, args: dict[str, Any]) -> ToolResponse:
        page_id = self._manager.create(_optional_str(args, "url"))
        page = self._manager.get(page_id)
        data = _page_data(page) if page else {"page_id": page_id}
        return ToolResponse(text=f"Created page {page_id} at {data.get('url', '')}", data=data)

    def _navigate_page(self, args: dict[str, Any]) -> ToolResponse:
        url = _require_str(args, "url")
        page_id = _optional_str(args, "page_id")
        if not page_id and not self._manager.list():
            created = self._manager.create(url)
            page = self._manager.get(created)
            data = _page_data(page) if page else {"page_id": created}
        else:
            data = _page_data(self._manager.navigate(page_id, url))
        return ToolResponse(
            text=f"Navigated to {data.get('url', url)} (Page ID: {data['page_id']})",
            data=data,
        )

    def _execute_script(self, args: dict[str, Any]) -> ToolResponse:
        script = _require_str(args, "script")
        result = self._manager.execute(_optional_str(args, "page_id"), script)
        return ToolResponse(
            text=f"Script executed successfully. Result: {result}",
            data={"kind": result.kind.value, "value": result.value},
        )

    def _take_screenshot(self, args: dict[str, Any]) -> ToolResponse:
        full_page = bool(args.get("full_page", True))
        image = self._manager.screenshot(_optional_str(args, "page_id"), full_page=full_page)
        path = _optional_str(args, "path")
        if path:
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(image)
            return ToolResponse(
                text=f"Screenshot saved to {target} ({len(image)} bytes)",
                data={"path": str(target), "size": len(image)},
            )
        return ToolResponse(
            text=f"Screenshot captured ({len(image)} bytes)",
            data={"image_base64": base64.b64encode(image).decode("ascii"), "size": len(image)},
        )

    def _list_pages(self, args: dict[str, Any]) -> ToolResponse:
        current = self._manager.current()
        pages = self._manager.pages()
        if not pages:
            return ToolResponse(text="No pages open", data={"pages": [], "current": ""})

        lines = [
            f"{'*' if page.id == current else ' '} {page.id}: {page.title or '(untitled)'} - {page.url}"
            for page in pages
        ]
        return ToolResponse(
            text="\n".join(lines),
            data={"pages": [_page_data(page) for page in pages], "current": current},
        )

    def _switch_page(self, args: dict[str, Any]) -> ToolResponse:
        page_id = _require_str(args, "page_id")
        self._manager.switch_current(page_id)
        return ToolResponse(text=f"Switched to page {page_id}", data={"current": page_id})

    def _close_page(self, args: dict[str, Any]) -> ToolResponse:
        page_id = _require_str(args, "page_id")
        self._manager.close(page_id)
        current = self._manager.current()
        return ToolResponse(
            text=f"Closed page {page_id}; current page is {current}",
            data={"closed": page_id, "current": current},
        )

    def _set_visibility(self, args: dict[str, Any]) -> ToolResponse:
        visible = args.get("visible")
        if not isinstance(visible, bool):
            raise InvalidArgumentError("visible must be true or false")
        self._manager.set_visibility(visible)
        mode = "visible" if visible else "headless"
        return ToolResponse(
            text=f"Browser is now {mode} with {len(self._manager.list())} pages open",
            data={"mode": mode},
        )

    def _page_status(self, args: dict[str, Any]) -> ToolResponse:
        status = self._manager.page_status(_optional_str(args, "page_id"))
        state = "healthy" if status.is_healthy else f"unhealthy ({status.error})"
        return ToolResponse(text=f"Page {status.page_id} is {state}: {status.url}", data=status.to_dict())

    def _recover_page(self, args: dict[str, Any]) -> ToolResponse:
        page = self._manager.recover_page(_optional_str(args, "page_id"))
        return ToolResponse(text=f"Recovered page {page.id} at {page.url}", data=_page_data(page))

    def _browser_health(self, args: dict[str, Any]) -> ToolResponse:
        restart = args.get("restart", True)
        if not isinstance(restart, bool):
            raise InvalidArgumentError("restart must be true or false")

        error = ""
        try:
            self._manager.check_health()
            healthy = True
        except DriverError as e:
            healthy = False
            error = str(e)

        restarted = False
        if not healthy and restart:
            restarted = self._manager.ensure_healthy()
            healthy = True

        page_count = len(self._manager.list())
        checked_at = datetime.now()
        if restarted:
            state = f"restarted after failure ({error})"
        elif healthy:
            state = "healthy"
        else:
            state = f"unhealthy ({error})"
        return ToolResponse(
            text=(
                f"Browser is {state} at {checked_at:%Y-%m-%d %H:%M:%S}; "
                f"{page_count} pages open"
            ),
            data={
                "is_healthy": healthy,
                "restarted": restarted,
                "error": error,
                "page_count": page_count,
                "checked_at": checked_at.isoformat(),
            },
        )
