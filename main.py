"""CLI entry point: open a page, optionally run a script and take a screenshot."""
import argparse
import json
import logging
import sys
from pathlib import Path

from pagepilot.core.config import Settings
from pagepilot.core.logging import setup_logging
from pagepilot.errors import BrowserError
from pagepilot.manager import BrowserManager
from pagepilot.tools import ToolBox

logger = logging.getLogger(__name__)


def main() -> int:
    """Run one browsing session."""
    parser = argparse.ArgumentParser(
        description="Open a URL in a managed browser tab and interact with it"
    )
    parser.add_argument(
        "url",
        help="URL or local file to open"
    )
    parser.add_argument(
        "--config", "-c",
        default="config/settings.yaml",
        help="Path to settings YAML file"
    )
    parser.add_argument(
        "--script", "-s",
        help="JavaScript to evaluate in the page"
    )
    parser.add_argument(
        "--screenshot",
        help="Save a PNG screenshot to this path"
    )
    parser.add_argument(
        "--visible",
        action="store_true",
        help="Show the browser window instead of running headless"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    config_path = Path(args.config)
    settings = Settings.from_yaml(config_path) if config_path.exists() else Settings()
    if args.visible:
        settings.browser.headless = False

    level = "DEBUG" if args.debug else settings.logging.level
    setup_logging(
        level,
        log_file=settings.logging.file,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
    )

    logger.info("=== pagepilot ===")
    logger.info(f"Target: {args.url}")

    manager = BrowserManager(config=settings.browser)
    try:
        manager.start()
    except BrowserError as e:
        logger.error(f"Failed to start browser: {e}")
        return 1

    tools = ToolBox(manager, settings.timeouts)
    exit_code = 0
    try:
        calls = [("create_page", {"url": args.url})]
        if args.script:
            calls.append(("execute_script", {"script": args.script}))
        if args.screenshot:
            calls.append(("take_screenshot", {"path": args.screenshot}))
        calls.append(("list_pages", {}))

        for name, tool_args in calls:
            response = tools.call(name, tool_args)
            print(response.text)
            if name == "execute_script" and not response.is_error:
                print(json.dumps(response.data["value"], indent=2))
            if response.is_error:
                exit_code = 1
                break
    finally:
        manager.stop()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
