"""
Access Service Factory

Factory for creating access service instances with proper dependency injection.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager
from core.nats_client import NATSEventBus
from core.results import TransportError

from .access_repository import AccessRepository
from .access_service import AccessService, CachedAccessEvaluator
from .protocols import AccessRepositoryProtocol, EventBusProtocol

logger = logging.getLogger(__name__)


class AccessServiceFactory:
    """Factory for creating access service components"""

    def __init__(self, config: Optional[ConfigManager] = None):
        self.config = config or ConfigManager("access_service")
        self._repository: Optional[AccessRepository] = None
        self._service: Optional[AccessService] = None
        self._nats_client: Optional[NATSEventBus] = None

    async def initialize(self) -> None:
        """Initialize all components"""
        logger.info("Initializing Access Service components...")
        service_config = self.config.get_service_config()

        self._repository = AccessRepository(self.config)
        await self._repository.initialize()

        if service_config.nats_enabled:
            try:
                self._nats_client = NATSEventBus(service_name="access_service", config=self.config)
                await self._nats_client.connect()
                logger.info("NATS client connected")
            except TransportError as e:
                logger.warning(f"NATS client initialization failed: {e}")
                self._nats_client = None

        self._service = AccessService(
            repository=self._repository,
            event_bus=self._nats_client,
            finance_operational_access=service_config.policy.finance_operational_access,
        )

        logger.info("Access Service components initialized")

    async def close(self) -> None:
        logger.info("Closing Access Service components...")
        if self._nats_client:
            await self._nats_client.close()
        if self._repository:
            await self._repository.close()
        logger.info("Access Service components closed")

    @property
    def repository(self) -> AccessRepository:
        if not self._repository:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._repository

    @property
    def service(self) -> AccessService:
        if not self._service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._service

    @property
    def nats_client(self) -> Optional[NATSEventBus]:
        return self._nats_client

    @staticmethod
    def create_for_testing(
        mock_repository: AccessRepositoryProtocol,
        mock_event_bus: Optional[EventBusProtocol] = None,
        finance_operational_access: bool = False,
    ) -> AccessService:
        """Create service with mock dependencies for testing"""
        return AccessService(
            repository=mock_repository,
            event_bus=mock_event_bus,
            finance_operational_access=finance_operational_access,
        )

    @staticmethod
    def create_cached(service: AccessService, ttl_seconds: float = 300) -> CachedAccessEvaluator:
        return CachedAccessEvaluator(service, ttl_seconds=ttl_seconds)


__all__ = [
    "AccessServiceFactory",
]
