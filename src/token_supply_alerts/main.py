from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from .chain import ChainQueryError
from .config import ConfigError, load_settings
from .service import MonitorService

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="token-supply-alerts",
        description="Watch token total supply and send alerts on large moves.",
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to the YAML configuration file (default: config.yaml)",
    )
    return parser.parse_args(argv)


async def _main(config_path: str) -> None:
    settings = load_settings(config_path)
    configure_logging(settings.log_level)
    service = MonitorService(settings)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still ends the run.
            pass

    await service.run(stop)
    logger.info("shutdown complete")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        asyncio.run(_main(args.config))
    except KeyboardInterrupt:
        pass
    except ConfigError as exc:
        configure_logging("INFO")
        logger.error("configuration error: %s", exc)
        return 1
    except ChainQueryError as exc:
        configure_logging("INFO")
        logger.error("connect RPC: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
