"""
Command-line smoke runner.

Opens one session against a URL, reports what happened and closes everything.
"""

import argparse
import asyncio
import logging
import sys
import time
from typing import Any, Dict, Mapping, Optional

from .config import DEFAULT_CONFIG_FILE, FrameworkConfig
from .core.browser import BrowserDriver, BrowserOptions, PlaywrightDriver
from .core.session import SessionEventType, SessionOptions, SessionRegistry, SessionStatus
from .utils.logging_config import setup_logging_from_config

logger = logging.getLogger(__name__)


async def run_smoke(url: str, config: FrameworkConfig, screenshot: bool = False,
                    save_state: Optional[str] = None,
                    driver: Optional[BrowserDriver] = None) -> Dict[str, Any]:
    """
    Visit ``url`` in a fresh session.

    Returns:
        The closed session's snapshot as a dictionary plus the navigation
        status code and an ``ok`` flag, which also requires the session to have
        closed cleanly
    """
    registry = SessionRegistry(driver or PlaywrightDriver(), config=config)
    console_errors = []
    result: Dict[str, Any] = {'ok': False}

    try:
        session = await registry.create(SessionOptions(
            browser=BrowserOptions.from_config(config),
            metadata={'source': 'cli', 'url': url},
        ))
        session.on(SessionEventType.CONSOLE_ERROR, lambda event: console_errors.append(event.text))

        status_code = await session.execute_with_retry(
            lambda s: s.navigation().goto(url),
            max_retries=config.get("retry.max_attempts", 3),
            delay_ms=config.get("retry.delay", 1000),
            backoff=config.get("retry.backoff", True),
            description=f"open {url}",
        )
        result['status_code'] = status_code
        result['title'] = await session.navigation().title()

        if screenshot:
            result['screenshot'] = await session.take_screenshot("smoke")
        if save_state:
            result['state_file'] = await session.save_state(save_state)

        await session.close()
        result.update(session.snapshot().to_dict())
        result['console_errors'] = console_errors
        closed_cleanly = session.status is SessionStatus.CLOSED
        result['ok'] = closed_cleanly and (status_code is None or status_code < 400)
    finally:
        await registry.close_all()

    return result


def print_summary(result: Dict[str, Any]) -> None:
    print("\n" + "=" * 60)
    print("🧪 SESSION SMOKE RUN")
    print("=" * 60)
    print(f"  • Session: {result.get('id', 'n/a')}")
    print(f"  • Final status: {result.get('status', 'n/a')}")
    print(f"  • HTTP status: {result.get('status_code', 'n/a')}")
    print(f"  • Title: {result.get('title', '')}")
    duration = result.get('duration')
    if duration is not None:
        print(f"  • Duration: {duration:.1f}s")
    metrics = result.get('metrics', {})
    print(f"  • Pages visited: {metrics.get('pagesVisited', 0)}")
    print(f"  • Actions performed: {metrics.get('actionsPerformed', 0)}")
    for error in result.get('errors', []):
        print(f"  ❌ {error}")
    for text in result.get('console_errors', []):
        print(f"  ⚠️ console: {text}")
    if result.get('screenshot'):
        print(f"  📸 Screenshot: {result['screenshot']}")
    if result.get('state_file'):
        print(f"  💾 State: {result['state_file']}")
    print("=" * 60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='playsession-cli',
        description='Open a browser session against a URL and report on it',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  playsession-cli https://example.com
  playsession-cli https://example.com --headed --screenshot
  playsession-cli https://example.com --save-state states/example.json
        """
    )
    parser.add_argument('url', help='URL to open')
    parser.add_argument('--screenshot', action='store_true',
                        help='Capture a screenshot after the page loads')
    parser.add_argument('--save-state', metavar='PATH',
                        help='Save cookies, local storage and the session snapshot to PATH')
    parser.add_argument('--headed', action='store_true',
                        help='Show the browser window (default: headless)')
    parser.add_argument('--config', default=DEFAULT_CONFIG_FILE,
                        help=f'YAML configuration file (default: {DEFAULT_CONFIG_FILE})')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')
    return parser


def build_config(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> FrameworkConfig:
    """Load configuration, then apply command-line flags over every other layer."""
    config = FrameworkConfig(config_path=args.config, environ=environ)
    if args.headed:
        config.set("browser.headless", False)
    if args.verbose:
        config.set("logging.level", "debug")
    return config


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = build_config(args)
    setup_logging_from_config(config)

    try:
        start_time = time.time()
        result = asyncio.run(run_smoke(args.url, config, args.screenshot, args.save_state))
        print_summary(result)
        print(f"\n⏱️ Total execution time: {time.time() - start_time:.1f} seconds")
        return 0 if result.get('ok') else 1
    except KeyboardInterrupt:
        print("\n🛑 Interrupted by user")
        return 1
    except Exception as e:
        print(f"\n❌ Smoke run failed: {e}")
        logger.error(f"Smoke run failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
