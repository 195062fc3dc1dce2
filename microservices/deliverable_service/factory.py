"""
Deliverable Service Factory

Factory for creating deliverable service instances with proper dependency injection.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager
from core.nats_client import NATSEventBus
from core.results import TransportError
from microservices.access_service.access_service import CachedAccessEvaluator
from microservices.access_service.client import AccessServiceClient

from .deliverable_repository import DeliverableRepository
from .deliverable_service import DeliverableService
from .protocols import AccessEvaluatorProtocol, EventBusProtocol, DeliverableRepositoryProtocol

logger = logging.getLogger(__name__)


class DeliverableServiceFactory:
    """Factory for creating deliverable service components"""

    def __init__(self, config: Optional[ConfigManager] = None):
        self.config = config or ConfigManager("deliverable_service")
        self._repository: Optional[DeliverableRepository] = None
        self._service: Optional[DeliverableService] = None
        self._access_client: Optional[AccessServiceClient] = None
        self._nats_client: Optional[NATSEventBus] = None

    async def initialize(self) -> None:
        """Initialize all components"""
        logger.info("Initializing Deliverable Service components...")
        service_config = self.config.get_service_config()
        policy = service_config.policy

        self._repository = DeliverableRepository(self.config)
        await self._repository.initialize()

        self._access_client = AccessServiceClient(
            config=self.config,
            timeout=policy.store_timeout_seconds,
            retry_attempts=policy.store_retry_attempts,
        )

        if service_config.nats_enabled:
            try:
                self._nats_client = NATSEventBus(service_name="deliverable_service", config=self.config)
                await self._nats_client.connect()
                logger.info("NATS client connected")
            except TransportError as e:
                logger.warning(f"NATS client initialization failed: {e}")
                self._nats_client = None

        access = CachedAccessEvaluator(self._access_client, ttl_seconds=policy.access_cache_ttl_seconds)
        if self._nats_client:
            await access.attach(self._nats_client)
        else:
            logger.warning("No event bus, access cache relies on its TTL only")

        self._service = DeliverableService(
            repository=self._repository,
            access=access,
            event_bus=self._nats_client,
        )

        logger.info("Deliverable Service components initialized")

    async def close(self) -> None:
        logger.info("Closing Deliverable Service components...")
        if self._nats_client:
            await self._nats_client.close()
        if self._access_client:
            await self._access_client.close()
        if self._repository:
            await self._repository.close()
        logger.info("Deliverable Service components closed")

    @property
    def repository(self) -> DeliverableRepository:
        if not self._repository:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._repository

    @property
    def service(self) -> DeliverableService:
        if not self._service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._service

    @property
    def nats_client(self) -> Optional[NATSEventBus]:
        return self._nats_client

    @staticmethod
    def create_for_testing(
        mock_repository: DeliverableRepositoryProtocol,
        access: AccessEvaluatorProtocol,
        mock_event_bus: Optional[EventBusProtocol] = None,
        clock=None,
    ) -> DeliverableService:
        """Create service with mock dependencies for testing"""
        kwargs = {"clock": clock} if clock else {}
        return DeliverableService(
            repository=mock_repository,
            access=access,
            event_bus=mock_event_bus,
            **kwargs,
        )


__all__ = [
    "DeliverableServiceFactory",
]
