"""Main entry point - loads config and serves the webhook, sockets and player page."""

from __future__ import annotations

import logging
import sys

from .config import load_config
from .web.app import run_web_server

logger = logging.getLogger(__name__)


def main() -> int:
    """Run the relay service."""
    config = load_config()
    logging.basicConfig(
        level=logging.DEBUG if config.debug_mode else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger.info("Server is running on port %d", config.web_port)
    try:
        run_web_server(host="0.0.0.0", port=config.web_port, config=config)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
