#!/usr/bin/env python3
"""Entry point for the Safe watcher service.

Loads configuration from the environment and watches every configured safe
until interrupted.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys


# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


# Get logger for this module
logger = logging.getLogger(__name__)

from safe_watcher.service import SafeWatcherService


async def main() -> None:
    """Main entry point for the Safe watcher.

    Raises:
        SystemExit: On configuration or runtime errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Safe Watcher - notify about Safe multisig transaction changes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  SAFE_ADDRESSES   - Safes to watch, e.g. eth:0x1234...=Treasury,rsk:0xabcd...=Ops
  SIGNERS          - Owner aliases, e.g. 0x1234...=Alice,0xabcd...=Bob (optional)
  POLL_INTERVAL    - Seconds between polls (default: 20)
  SAFE_API         - classic, alt or fallback (default: fallback)
  REQUEST_TIMEOUT  - HTTP timeout in seconds (default: 30)
  RETRY_COUNT      - Extra attempts per request (default: 3)
  STARTUP_STAGGER  - Seconds between watcher starts (default: 1)
  SAFE_URL         - Safe web app URL for links (default: https://app.safe.global)
  LOG_LEVEL        - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    parser.add_argument(
        "--mode",
        choices=["classic", "alt", "fallback"],
        default=None,
        help="Override SAFE_API"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)
    logger.info("=== Safe Watcher Starting ===")

    try:
        service: SafeWatcherService = SafeWatcherService.from_env(api_mode=args.mode)
    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - SAFE_ADDRESSES: prefix:0xADDRESS=Alias entries, comma separated")
        logger.error("  - SIGNERS: 0xADDRESS=Alias entries, comma separated (optional)")
        logger.error("  - POLL_INTERVAL: seconds between polls (default: 20)")
        logger.error("  - SAFE_API: classic, alt or fallback (default: fallback)")
        sys.exit(1)

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGTERM, service.stop)

    try:
        await service.run()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        service.stop()
    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
