"""Logging configuration."""

import logging
import os
import sys

from pydantic import BaseModel


class LogConfig(BaseModel):
    """Logging configuration.

    Every line carries the service name so output from several services can
    share one log stream.
    """

    level: str = "INFO"
    service_name: str = "patient-service"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @property
    def format(self) -> str:
        return f"%(asctime)s {self.service_name} %(levelname)s [%(name)s] %(message)s"


def setup_logging(config: LogConfig | None = None) -> None:
    """Set up logging configuration for the application."""
    if config is None:
        config = LogConfig()

    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    # Collaborator libraries only report warnings
    for noisy in ("httpx", "httpcore", "sqlalchemy.engine", "redis", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger at the LOG_LEVEL threshold (INFO when unset)."""
    logger = logging.getLogger(name)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    return logger
