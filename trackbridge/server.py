"""Bridge process: line protocol on stdin/stdout, diagnostics on stderr."""

import asyncio
import sys
from datetime import datetime, timezone

import structlog

from trackbridge.dispatcher import Dispatcher
from trackbridge.log import configure_logging
from trackbridge.settings import get_settings
from trackbridge.transport import serve, stdin_lines

logger = structlog.get_logger()


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info(f"Bridge started at {datetime.now(timezone.utc).isoformat()}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log level: {settings.log_level}")

    try:
        asyncio.run(serve(Dispatcher(settings), stdin_lines(), sys.stdout))
    except KeyboardInterrupt:
        logger.info("Shutting down bridge...")
        sys.exit(0)
    except Exception as exc:
        logger.critical(f"Uncaught exception: {exc}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
