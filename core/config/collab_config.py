#!/usr/bin/env python3
"""Collaboration platform configuration

Workflow policy knobs (invitation expiry, tracking links, store timeouts,
access cache window, finance visibility) plus the per-service port registry.
"""
from dataclasses import dataclass, field
from typing import Dict

from .env import current_env, env_bool, env_float, env_int, env_str
from .logging_config import LoggingConfig
from .infra_config import InfraConfig


# Port registry for the collaboration services
DEFAULT_SERVICE_PORTS: Dict[str, int] = {
    "access_service": 8261,
    "invitation_service": 8262,
    "deliverable_service": 8263,
    "realtime_service": 8264,
}


@dataclass
class CollabPolicyConfig:
    """Workflow policy settings shared by every collaboration service"""

    # Invitations
    invitation_expiry_days: int = 7
    tracking_base_url: str = "http://localhost:8262/api/v1/track"
    tracking_code_length: int = 8
    tracking_code_attempts: int = 5
    qr_code_size: int = 300

    # Store transport
    store_schema: str = "collab"
    store_timeout_seconds: float = 10.0
    store_retry_attempts: int = 3
    store_retry_backoff_seconds: float = 0.2

    # Access
    access_cache_ttl_seconds: int = 300
    finance_operational_access: bool = False

    @classmethod
    def from_env(cls) -> 'CollabPolicyConfig':
        return cls(
            invitation_expiry_days=env_int("INVITATION_EXPIRY_DAYS", 7),
            tracking_base_url=env_str("TRACKING_BASE_URL", "http://localhost:8262/api/v1/track"),
            tracking_code_length=env_int("TRACKING_CODE_LENGTH", 8),
            tracking_code_attempts=env_int("TRACKING_CODE_ATTEMPTS", 5),
            qr_code_size=env_int("QR_CODE_SIZE", 300),
            store_schema=env_str("COLLAB_SCHEMA", "collab"),
            store_timeout_seconds=env_float("STORE_TIMEOUT_SECONDS", 10.0),
            store_retry_attempts=env_int("STORE_RETRY_ATTEMPTS", 3),
            store_retry_backoff_seconds=env_float("STORE_RETRY_BACKOFF_SECONDS", 0.2),
            access_cache_ttl_seconds=env_int("ACCESS_CACHE_TTL_SECONDS", 300),
            finance_operational_access=env_bool("FINANCE_OPERATIONAL_ACCESS"),
        )


# ===========================================
# Main Collaboration Configuration
# ===========================================

@dataclass
class CollabConfig:
    """Main collaboration platform configuration with all sub-configs"""

    # Environment
    environment: str = "development"
    debug: bool = False

    # Default service settings (each microservice overrides these)
    default_host: str = "0.0.0.0"
    default_port: int = 8000
    nats_enabled: bool = True

    # Sub-configurations
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    infrastructure: InfraConfig = field(default_factory=InfraConfig)
    policy: CollabPolicyConfig = field(default_factory=CollabPolicyConfig)

    @classmethod
    def from_env(cls) -> 'CollabConfig':
        """Load complete configuration from environment"""
        env = current_env()
        return cls(
            # Environment
            environment=env,
            debug=env_bool("DEBUG", env == "development"),

            # Default service settings
            default_host=env_str("HOST", "0.0.0.0"),
            default_port=env_int("PORT", 8000),
            nats_enabled=env_bool("NATS_ENABLED", True),

            # Load sub-configs
            logging=LoggingConfig.from_env(),
            infrastructure=InfraConfig.from_env(),
            policy=CollabPolicyConfig.from_env(),
        )
