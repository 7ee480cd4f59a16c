"""zcnotify entry point.

Usage::

    python -m zcnotify [--config PATH] [--debug]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from zcnotify.config import ConfigError, ZCNotifyConfig
from zcnotify.discovery import DiscoveryError
from zcnotify.notifiers import NotifierError

logger = logging.getLogger("zcnotify")

EXIT_OK = 0
EXIT_DISCOVERY_ERROR = 1
EXIT_CONFIG_ERROR = 2


async def _run(config: ZCNotifyConfig) -> None:
    from zcnotify.service import ZCNotifyService

    service = ZCNotifyService(config)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _shutdown(sig: int) -> None:
        logger.info("Received signal %d, stopping after the current scan", sig)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _shutdown, sig)

    await service.run(stop)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="zcnotify",
        description="Report zeroconf services appearing, disappearing or changing",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Configuration TOML file (default: $ZCNOTIFY_CONFIG or zcnotify.toml)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config_path = args.config or ZCNotifyConfig.default_path()
    try:
        config = ZCNotifyConfig.load(config_path)
        logger.info("Loaded config from %s", config_path)
        asyncio.run(_run(config))
    except (ConfigError, NotifierError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_CONFIG_ERROR
    except DiscoveryError as exc:
        logger.error("Exited: %s", exc)
        return EXIT_DISCOVERY_ERROR

    logger.info("Exited")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
