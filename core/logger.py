"""
Service logger setup

Configures the standard library logging tree for one microservice from
LoggingConfig. Modules keep using logging.getLogger(__name__).
"""

import logging
import sys
from typing import Optional

from core.config import LoggingConfig, get_settings

_configured_services = set()


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure root handlers once per service and return the service logger.

    Args:
        service_name: Logger name, usually the microservice name
        level: Overrides the configured log level
        config: Logging configuration (defaults to loaded settings)
    """
    config = config or get_settings().logging
    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)

    if service_name not in _configured_services:
        formatter = logging.Formatter(config.log_format)
        root = logging.getLogger()
        root.setLevel(log_level)

        if config.enable_console and not any(
            isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout
            for h in root.handlers
        ):
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            root.addHandler(console)

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        # Quiet chatty transports
        logging.getLogger("asyncpg").setLevel(logging.WARNING)
        logging.getLogger("nats").setLevel(logging.WARNING)

        _configured_services.add(service_name)

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    return logger
