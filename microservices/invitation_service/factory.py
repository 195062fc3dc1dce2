"""
Invitation Service Factory

Factory for creating invitation service instances with proper dependency injection.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager
from core.nats_client import NATSEventBus
from core.results import TransportError
from microservices.access_service.access_service import CachedAccessEvaluator
from microservices.access_service.client import AccessServiceClient

from .invitation_repository import InvitationRepository
from .invitation_service import InvitationService
from .protocols import AccessEvaluatorProtocol, EventBusProtocol, InvitationRepositoryProtocol

logger = logging.getLogger(__name__)


class InvitationServiceFactory:
    """Factory for creating invitation service components"""

    def __init__(self, config: Optional[ConfigManager] = None):
        self.config = config or ConfigManager("invitation_service")
        self._repository: Optional[InvitationRepository] = None
        self._service: Optional[InvitationService] = None
        self._access_client: Optional[AccessServiceClient] = None
        self._nats_client: Optional[NATSEventBus] = None

    async def initialize(self) -> None:
        """Initialize all components"""
        logger.info("Initializing Invitation Service components...")
        service_config = self.config.get_service_config()
        policy = service_config.policy

        self._repository = InvitationRepository(self.config)
        await self._repository.initialize()

        self._access_client = AccessServiceClient(
            config=self.config,
            timeout=policy.store_timeout_seconds,
            retry_attempts=policy.store_retry_attempts,
        )

        if service_config.nats_enabled:
            try:
                self._nats_client = NATSEventBus(service_name="invitation_service", config=self.config)
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

        self._service = InvitationService(
            repository=self._repository,
            access=access,
            event_bus=self._nats_client,
            expiry_days=policy.invitation_expiry_days,
        )

        logger.info("Invitation Service components initialized")

    async def close(self) -> None:
        logger.info("Closing Invitation Service components...")
        if self._nats_client:
            await self._nats_client.close()
        if self._access_client:
            await self._access_client.close()
        if self._repository:
            await self._repository.close()
        logger.info("Invitation Service components closed")

    @property
    def repository(self) -> InvitationRepository:
        if not self._repository:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._repository

    @property
    def service(self) -> InvitationService:
        if not self._service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._service

    @property
    def nats_client(self) -> Optional[NATSEventBus]:
        return self._nats_client

    @staticmethod
    def create_for_testing(
        mock_repository: InvitationRepositoryProtocol,
        access: AccessEvaluatorProtocol,
        mock_event_bus: Optional[EventBusProtocol] = None,
        expiry_days: int = 7,
        clock=None,
    ) -> InvitationService:
        """Create service with mock dependencies for testing"""
        kwargs = {"clock": clock} if clock else {}
        return InvitationService(
            repository=mock_repository,
            access=access,
            event_bus=mock_event_bus,
            expiry_days=expiry_days,
            **kwargs,
        )


__all__ = [
    "InvitationServiceFactory",
]
