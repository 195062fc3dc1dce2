"""
Unit Tests for the Access Service HTTP client

Requests are answered by httpx.MockTransport; nothing leaves the process.
"""

import json

import httpx
import pytest

from core.auth_dependencies import Principal
from core.results import TransportError
from microservices.access_service.client import AccessServiceClient
from microservices.access_service.models import AccessRole


def _client(handler, retry_attempts: int = 2) -> AccessServiceClient:
    client = AccessServiceClient(base_url="http://access.test/", retry_attempts=retry_attempts)
    client.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


class TestResolveAccess:

    @pytest.mark.asyncio
    async def test_forwards_principal_and_parses_result(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["user"] = request.headers.get("x-user-id")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "role": "campaign_manager",
                "can_access_campaign": True,
                "brand_id": "brd_1",
                "campaign_id": "cmp_1",
            })

        async with _client(handler) as client:
            result = await client.resolve_access(Principal(user_id="usr_m"), campaign_id="cmp_1")

        assert seen == {
            "url": "http://access.test/api/v1/access/resolve",
            "user": "usr_m",
            "body": {"brand_id": None, "campaign_id": "cmp_1"},
        }
        assert result.role == AccessRole.CAMPAIGN_MANAGER
        assert result.can_operate_campaign

    @pytest.mark.asyncio
    async def test_client_error_is_denial(self):
        async with _client(lambda request: httpx.Response(403, json={"detail": "no"})) as client:
            result = await client.resolve_access(Principal(user_id="usr_x"), brand_id="brd_1")

        assert result.role == AccessRole.NONE
        assert result.can_access_campaign is False
        assert result.brand_id == "brd_1"

    @pytest.mark.asyncio
    async def test_server_error_raises_transport_error(self):
        async with _client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(TransportError):
                await client.resolve_access(Principal(user_id="usr_x"), campaign_id="cmp_1")

    @pytest.mark.asyncio
    async def test_unreachable_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler, retry_attempts=2) as client:
            with pytest.raises(TransportError) as exc:
                await client.resolve_access(Principal(user_id="usr_x"), campaign_id="cmp_1")

        assert len(calls) == 2
        assert exc.value.attempts == 2
