#!/usr/bin/env python3
"""
Core Module for the collaboration microservices

Shared infrastructure for the access, invitation, deliverable and realtime
services.

COMPONENTS:
    - config/: dataclass configuration loaded from the environment
    - config_manager.py: per-service configuration and endpoint discovery
    - logger.py: service logger setup
    - postgres_client.py: asyncpg store client (select / insert / update_if / transaction)
    - nats_client.py: NATS JetStream event bus
    - results.py: OperationResult, ErrorKind, TransportError
    - auth_dependencies.py: explicit Principal extraction for FastAPI

USAGE:
    from core.config_manager import ConfigManager

    config = ConfigManager("invitation_service")
"""

from .config_manager import ConfigManager, Environment, ServiceConfig, create_config
from .results import ErrorKind, OperationResult, TransportError

__all__ = [
    "ConfigManager",
    "Environment",
    "ServiceConfig",
    "create_config",
    "ErrorKind",
    "OperationResult",
    "TransportError",
]

__version__ = "1.0.0"
