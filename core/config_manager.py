#!/usr/bin/env python3
"""
Centralized configuration management for collaboration microservices

Each service creates one ConfigManager with its own name. Endpoints are
resolved with the priority: explicit environment variable -> loaded settings
-> hard-coded default.

USAGE:
    from core.config_manager import ConfigManager

    config_manager = ConfigManager("invitation_service")
    config = config_manager.get_service_config()
    host, port = config_manager.discover_service(
        service_name="postgres_service",
        default_host="localhost",
        default_port=5432,
        env_host_key="POSTGRES_HOST",
        env_port_key="POSTGRES_PORT",
    )
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from core.config import CollabConfig, CollabPolicyConfig, DEFAULT_SERVICE_PORTS, get_settings

logger = logging.getLogger(__name__)


class Environment(Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class ServiceConfig:
    """Resolved settings for a single microservice"""
    service_name: str
    service_host: str = "0.0.0.0"
    service_port: int = 8000
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False
    log_level: str = "INFO"
    nats_enabled: bool = True
    policy: CollabPolicyConfig = field(default_factory=CollabPolicyConfig)


class ConfigManager:
    """Configuration manager bound to one service"""

    def __init__(self, service_name: str, settings: Optional[CollabConfig] = None):
        self.service_name = service_name
        self.settings = settings or get_settings()
        self._service_config: Optional[ServiceConfig] = None

    def discover_service(
        self,
        service_name: str,
        default_host: str,
        default_port: int,
        env_host_key: Optional[str] = None,
        env_port_key: Optional[str] = None,
    ) -> Tuple[str, int]:
        """
        Resolve host/port for a dependency.

        Args:
            service_name: Logical name of the dependency (for logging)
            default_host: Host used when nothing else is configured
            default_port: Port used when nothing else is configured
            env_host_key: Environment variable overriding the host
            env_port_key: Environment variable overriding the port

        Returns:
            (host, port) tuple
        """
        host = os.getenv(env_host_key) if env_host_key else None
        port_value = os.getenv(env_port_key) if env_port_key else None

        infra = self.settings.infrastructure
        if host is None:
            if service_name == "postgres_service":
                host = infra.postgres_host
            elif service_name == "nats_service":
                host = infra.nats_host
            else:
                host = default_host

        port = default_port
        if port_value:
            try:
                port = int(port_value)
            except ValueError:
                logger.warning(f"Invalid port '{port_value}' for {service_name}, using {default_port}")
        elif service_name == "postgres_service":
            port = infra.postgres_port
        elif service_name == "nats_service":
            port = infra.nats_port

        logger.debug(f"[{self.service_name}] discovered {service_name} at {host}:{port}")
        return host, port

    def get_service_config(self) -> ServiceConfig:
        """Build (once) the settings for this service"""
        if self._service_config is None:
            env_name = self.settings.environment
            try:
                environment = Environment(env_name)
            except ValueError:
                environment = Environment.DEVELOPMENT

            port_key = f"{self.service_name.upper()}_PORT"
            default_port = DEFAULT_SERVICE_PORTS.get(self.service_name, self.settings.default_port)
            try:
                service_port = int(os.getenv(port_key) or os.getenv("SERVICE_PORT") or default_port)
            except ValueError:
                service_port = default_port

            self._service_config = ServiceConfig(
                service_name=self.service_name,
                service_host=self.settings.default_host,
                service_port=service_port,
                environment=environment,
                debug=self.settings.debug,
                log_level=self.settings.logging.log_level,
                nats_enabled=self.settings.nats_enabled,
                policy=self.settings.policy,
            )
        return self._service_config

    @property
    def policy(self) -> CollabPolicyConfig:
        return self.settings.policy

    def print_config_summary(self, show_secrets: bool = False) -> None:
        """Log the resolved configuration (development aid)"""
        config = self.get_service_config()
        infra = self.settings.infrastructure
        password = infra.postgres_password if show_secrets else "***"
        logger.info(f"=== {self.service_name} configuration ===")
        logger.info(f"  environment: {config.environment.value}  debug: {config.debug}")
        logger.info(f"  listen: {config.service_host}:{config.service_port}")
        logger.info(
            f"  postgres: {infra.postgres_user}:{password}@{infra.postgres_host}:{infra.postgres_port}/{infra.postgres_db}"
        )
        logger.info(f"  nats: {infra.nats_servers} (enabled={config.nats_enabled})")
        logger.info(f"  schema: {config.policy.store_schema}")


def create_config(service_name: str) -> ConfigManager:
    return ConfigManager(service_name)
