#!/usr/bin/env python3
"""Store and event bus endpoints

PostgreSQL is reached through an asyncpg pool, NATS through nats-py. Hosts
and ports can still be overridden per call by ConfigManager.discover_service.
"""
from dataclasses import dataclass
from typing import Optional

from .env import env_int, env_str


@dataclass
class InfraConfig:
    # Transactional store
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "postgres"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_pool_min: int = 1
    postgres_pool_max: int = 10

    # Event bus; nats_url wins over host/port when set
    nats_host: str = "localhost"
    nats_port: int = 4222
    nats_url: Optional[str] = None

    @property
    def nats_servers(self) -> str:
        return self.nats_url or f"nats://{self.nats_host}:{self.nats_port}"

    @classmethod
    def from_env(cls) -> 'InfraConfig':
        return cls(
            postgres_host=env_str("POSTGRES_HOST", "localhost"),
            postgres_port=env_int("POSTGRES_PORT", 5432),
            postgres_db=env_str("POSTGRES_DB", "postgres"),
            postgres_user=env_str("POSTGRES_USER", "postgres"),
            postgres_password=env_str("POSTGRES_PASSWORD", "postgres"),
            postgres_pool_min=env_int("POSTGRES_POOL_MIN", 1),
            postgres_pool_max=env_int("POSTGRES_POOL_MAX", 10),
            nats_host=env_str("NATS_HOST", "localhost"),
            nats_port=env_int("NATS_PORT", 4222),
            nats_url=env_str("NATS_URL") or None,
        )
