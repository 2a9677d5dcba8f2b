"""Run the Pathao courier service."""

from __future__ import annotations

import logging

from aiohttp import web

from .config import CourierConfig
from .server import create_app


def main() -> None:
    """Start the HTTP service using environment configuration."""
    config = CourierConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    web.run_app(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
