"""Entrypoint for running the pricing server from the package.

This module sets up logging, builds the FastAPI application and serves it.
"""

from __future__ import annotations

import logging

import uvicorn

from . import config
from .logger import setup_logging
from .server import create_app

logger = logging.getLogger(__name__)


def run() -> None:
    setup_logging()
    config.validate_settings()
    settings = config.settings
    logger.info("Starting fairfence_pricing on %s:%d", settings.HOST, settings.PORT)
    app = create_app(settings)
    # log_config=None keeps uvicorn on the root handler from setup_logging
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
