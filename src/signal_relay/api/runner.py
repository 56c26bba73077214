"""FastAPI server runner."""

from __future__ import annotations

import structlog
import uvicorn

from signal_relay.api.app import create_app
from signal_relay.config.loader import load_config
from signal_relay.logging.setup import LogBuffer, setup_logging

logger = structlog.get_logger()


def main(config_path: str | None = None) -> None:
    """Load config, set up logging with the replay buffer, serve the app."""
    config = load_config(config_path)
    buffer = LogBuffer(
        max_entries=config.logging.buffer_size,
        retention_s=config.logging.buffer_retention_s,
    )
    setup_logging(level=config.logging.level, log_format=config.logging.format, buffer=buffer)
    app = create_app(config, log_buffer=buffer)

    logger.info("server_starting", host=config.api.host, port=config.api.port)

    try:
        uvicorn.run(
            app,
            host=config.api.host,
            port=config.api.port,
            log_config=None,  # Use our structlog setup
        )
    except Exception as e:
        logger.error("server_failed", error=str(e))
        raise
