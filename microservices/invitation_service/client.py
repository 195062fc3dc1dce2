"""
Invitation Service Client

Client for other services (realtime projections) to read invitations.
Mirrors the read surface of InvitationService, returning OperationResults.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.auth_dependencies import Principal, principal_headers
from core.results import ErrorKind, OperationResult, TransportError

from .models import Invitation, InvitationStatus

logger = logging.getLogger(__name__)

STATUS_ERRORS = {
    403: ErrorKind.AUTHORIZATION,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    422: ErrorKind.VALIDATION,
}


class InvitationServiceClient:
    """Invitation Service HTTP client"""

    def __init__(self, base_url: str = None, config=None, timeout: float = 10.0, retry_attempts: int = 3):
        if base_url:
            self.base_url = base_url.rstrip("/")
            self.config = None
        else:
            if config is None:
                from core.config_manager import ConfigManager
                config = ConfigManager("invitation_service_client")
            self.config = config
            self.base_url = None

        self.retry_attempts = retry_attempts
        self.client = httpx.AsyncClient(timeout=timeout)

    def _get_base_url(self) -> str:
        if self.base_url:
            return self.base_url

        host, port = self.config.discover_service(
            service_name="invitation_service",
            default_host="localhost",
            default_port=8262,
            env_host_key="INVITATION_SERVICE_HOST",
            env_port_key="INVITATION_SERVICE_PORT",
        )
        self.base_url = f"http://{host}:{port}"
        return self.base_url

    async def close(self):
        await self.client.aclose()

    async def _get(
        self, path: str, principal: Principal, params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        url = f"{self._get_base_url()}{path}"
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=0.2, max=2),
                retry=retry_if_exception_type(httpx.TransportError),
            ):
                with attempt:
                    response = await self.client.get(url, params=params, headers=principal_headers(principal))
        except (httpx.TransportError, RetryError) as e:
            logger.error(f"Invitation service unreachable at {url}: {e}")
            raise TransportError(
                f"invitation service unreachable: {e}", operation=path, attempts=self.retry_attempts
            ) from e

        if response.status_code >= 500:
            raise TransportError(f"invitation service returned {response.status_code}", operation=path, attempts=1)
        return response

    @staticmethod
    def _invitations(response: httpx.Response) -> OperationResult[List[Invitation]]:
        if response.status_code != 200:
            detail = response.json().get("detail", {})
            message = detail.get("message") if isinstance(detail, dict) else str(detail)
            return OperationResult.fail(
                STATUS_ERRORS.get(response.status_code, ErrorKind.VALIDATION),
                message or f"HTTP {response.status_code}",
            )
        data = response.json()
        return OperationResult.ok([Invitation(**item) for item in data.get("invitations", [])])

    async def list_campaign_invitations(
        self,
        principal: Principal,
        campaign_id: str,
        statuses: Optional[List[InvitationStatus]] = None,
    ) -> OperationResult[List[Invitation]]:
        params = {"status": [s.value for s in statuses]} if statuses else None
        response = await self._get(f"/api/v1/campaigns/{campaign_id}/invitations", principal, params)
        return self._invitations(response)

    async def list_brand_negotiations(self, principal: Principal, brand_id: str) -> OperationResult[List[Invitation]]:
        response = await self._get(f"/api/v1/brands/{brand_id}/negotiations", principal)
        return self._invitations(response)

    async def list_creator_invitations(
        self,
        principal: Principal,
        statuses: Optional[List[InvitationStatus]] = None,
    ) -> List[Invitation]:
        params = {"status": [s.value for s in statuses]} if statuses else None
        response = await self._get("/api/v1/invitations/mine", principal, params)
        result = self._invitations(response)
        if not result.success:
            logger.warning(f"Listing invitations for {principal.user_id} failed: {result.message}")
            return []
        return result.value


__all__ = ["InvitationServiceClient"]
