#!/usr/bin/env python3
"""Configuration for the collaboration services

- infra_config: store and event bus endpoints
- collab_config: workflow policy and the service port registry
- logging_config: logger settings

The env file for the current ENV is loaded once at import; variables already
set in the process win over the file.
"""
from dotenv import load_dotenv

from .env import current_env
from .logging_config import LoggingConfig
from .infra_config import InfraConfig
from .collab_config import (
    CollabConfig,
    CollabPolicyConfig,
    DEFAULT_SERVICE_PORTS,
)

ENV_FILES = {
    "development": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
ENV_ALIASES = {"dev": "development", "test": "testing", "prod": "production"}

_env = current_env()
load_dotenv(ENV_FILES.get(ENV_ALIASES.get(_env, _env), ENV_FILES["development"]), override=False)

settings = CollabConfig.from_env()


def get_settings() -> CollabConfig:
    return settings


__all__ = [
    'CollabConfig',
    'CollabPolicyConfig',
    'DEFAULT_SERVICE_PORTS',
    'InfraConfig',
    'LoggingConfig',
    'get_settings',
    'settings',
]
