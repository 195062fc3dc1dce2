"""
Access Service Client

Client library for other collaboration services to resolve campaign access
over HTTP. Forwards the caller's principal explicitly on every request.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.auth_dependencies import Principal, principal_headers
from core.results import TransportError

from .models import AccessResult

logger = logging.getLogger(__name__)


class AccessServiceClient:
    """Access Service HTTP client"""

    def __init__(self, base_url: str = None, config=None, timeout: float = 10.0, retry_attempts: int = 3):
        """
        Initialize Access Service client

        Args:
            base_url: Access service base URL, defaults to service discovery via ConfigManager
            config: Optional ConfigManager instance for service discovery
        """
        if base_url:
            self.base_url = base_url.rstrip("/")
            self.config = None
        else:
            if config is None:
                from core.config_manager import ConfigManager
                config = ConfigManager("access_service_client")
            self.config = config
            self.base_url = None

        self.retry_attempts = retry_attempts
        self.client = httpx.AsyncClient(timeout=timeout)

    def _get_base_url(self) -> str:
        if self.base_url:
            return self.base_url

        host, port = self.config.discover_service(
            service_name="access_service",
            default_host="localhost",
            default_port=8261,
            env_host_key="ACCESS_SERVICE_HOST",
            env_port_key="ACCESS_SERVICE_PORT",
        )
        self.base_url = f"http://{host}:{port}"
        return self.base_url

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _post(self, path: str, principal: Principal, payload: Dict[str, Any]) -> httpx.Response:
        url = f"{self._get_base_url()}{path}"
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=0.2, max=2),
                retry=retry_if_exception_type(httpx.TransportError),
            ):
                with attempt:
                    response = await self.client.post(url, json=payload, headers=principal_headers(principal))
        except (httpx.TransportError, RetryError) as e:
            logger.error(f"Access service unreachable at {url}: {e}")
            raise TransportError(f"access service unreachable: {e}", operation=path, attempts=self.retry_attempts) from e

        if response.status_code >= 500:
            raise TransportError(
                f"access service returned {response.status_code}", operation=path, attempts=1
            )
        return response

    async def resolve_access(
        self,
        principal: Principal,
        brand_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> AccessResult:
        """
        Resolve access for principal.

        Returns:
            AccessResult; a negative result on any 4xx answer
        """
        response = await self._post(
            "/api/v1/access/resolve",
            principal,
            {"brand_id": brand_id, "campaign_id": campaign_id},
        )
        if response.status_code != 200:
            logger.warning(f"Access resolve for {principal.user_id} answered {response.status_code}")
            return AccessResult(brand_id=brand_id, campaign_id=campaign_id)
        return AccessResult(**response.json())


__all__ = ["AccessServiceClient"]
