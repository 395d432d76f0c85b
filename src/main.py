"""Supervisor entry point."""

import asyncio
import logging
import sys

from src.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


async def _run() -> int:
    from src.app import Supervisor

    logger.info("Starting supervisor on port %d...", settings.port)
    return await Supervisor().run()


def main() -> None:
    """Run until a termination signal completes the shutdown sequence."""
    from src.supervisor.errors import ConfigurationError

    try:
        code = asyncio.run(_run())
    except ConfigurationError as exc:
        logger.critical("Invalid task configuration: %s", exc)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
