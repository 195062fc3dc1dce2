"""
Realtime Service Factory

Wires the event bus, change feed router and the access / invitation clients
used to authorize sockets and refresh projections.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager
from core.nats_client import NATSEventBus
from core.results import TransportError
from microservices.access_service.access_service import CachedAccessEvaluator
from microservices.access_service.client import AccessServiceClient
from microservices.invitation_service.client import InvitationServiceClient

from .router import ChangeFeedRouter

logger = logging.getLogger(__name__)


class RealtimeServiceFactory:
    """Factory for creating realtime service components"""

    def __init__(self, config: Optional[ConfigManager] = None):
        self.config = config or ConfigManager("realtime_service")
        self._router: Optional[ChangeFeedRouter] = None
        self._nats_client: Optional[NATSEventBus] = None
        self._access_client: Optional[AccessServiceClient] = None
        self._invitation_client: Optional[InvitationServiceClient] = None
        self._access: Optional[CachedAccessEvaluator] = None

    async def initialize(self) -> None:
        logger.info("Initializing Realtime Service components...")
        service_config = self.config.get_service_config()
        policy = service_config.policy

        if service_config.nats_enabled:
            try:
                self._nats_client = NATSEventBus(service_name="realtime_service", config=self.config)
                await self._nats_client.connect()
                logger.info("NATS client connected")
            except TransportError as e:
                logger.warning(f"NATS client initialization failed, change feed disabled: {e}")
                self._nats_client = None

        self._router = ChangeFeedRouter(self._nats_client)
        await self._router.start()

        self._access_client = AccessServiceClient(
            config=self.config,
            timeout=policy.store_timeout_seconds,
            retry_attempts=policy.store_retry_attempts,
        )
        self._access = CachedAccessEvaluator(self._access_client, ttl_seconds=policy.access_cache_ttl_seconds)
        if self._nats_client:
            await self._access.attach(self._nats_client)
        self._invitation_client = InvitationServiceClient(
            config=self.config,
            timeout=policy.store_timeout_seconds,
            retry_attempts=policy.store_retry_attempts,
        )
        logger.info("Realtime Service components initialized")

    async def close(self) -> None:
        logger.info("Closing Realtime Service components...")
        if self._router:
            await self._router.stop()
        if self._nats_client:
            await self._nats_client.close()
        if self._access_client:
            await self._access_client.close()
        if self._invitation_client:
            await self._invitation_client.close()
        logger.info("Realtime Service components closed")

    @property
    def router(self) -> ChangeFeedRouter:
        if not self._router:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._router

    @property
    def access(self) -> CachedAccessEvaluator:
        if not self._access:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._access

    @property
    def invitations(self) -> InvitationServiceClient:
        if not self._invitation_client:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._invitation_client

    @property
    def nats_client(self) -> Optional[NATSEventBus]:
        return self._nats_client


__all__ = ["RealtimeServiceFactory"]
