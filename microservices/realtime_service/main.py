"""
Realtime Service Main Application

Websocket fan-out of collaboration change signals.
Port: 8264
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from core.auth_dependencies import Principal, websocket_principal
from core.config_manager import ConfigManager
from core.logger import setup_service_logger
from core.results import TransportError

from .change_feed import ChangeKind, ChannelScope, SCOPE_KINDS
from .factory import RealtimeServiceFactory
from .projections import (
    BrandNegotiationQueue,
    CampaignInvitationBoard,
    CreatorInvitationList,
    Projection,
)
from .routes_registry import SERVICE_METADATA, get_routes_metadata

# Initialize config manager
config_manager = ConfigManager("realtime_service")
config = config_manager.get_service_config()

# Configure logger
logger = setup_service_logger("realtime_service", level=config.log_level.upper())

if config.debug:
    config_manager.print_config_summary(show_secrets=False)

SERVICE_NAME = SERVICE_METADATA["service_name"]
SERVICE_PORT = config.service_port
SERVICE_VERSION = SERVICE_METADATA["version"]

# Close codes
WS_UNAUTHENTICATED = 4401
WS_FORBIDDEN = 4403
WS_UNAVAILABLE = 1013

startup_time = time.time()

factory: Optional[RealtimeServiceFactory] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, Any] = Field(default_factory=dict)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global factory

    logger.info(f"Starting {SERVICE_NAME} on port {SERVICE_PORT}")
    factory = RealtimeServiceFactory(config_manager)
    await factory.initialize()

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    await factory.close()


app = FastAPI(
    title="Realtime Service",
    description="Change feed channels for campaigns, brands and creators",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    dependencies = {"routes": get_routes_metadata()["route_count"]}
    if factory:
        dependencies["channels"] = factory.router.channel_count
        dependencies["nats"] = (
            ("healthy" if factory.nats_client.is_connected else "unhealthy")
            if factory.nats_client else "not_configured"
        )
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        port=SERVICE_PORT,
        version=SERVICE_VERSION,
        dependencies=dependencies,
    )


@app.get("/health/live", tags=["Health"])
async def liveness_check():
    return {"alive": True, "uptime_seconds": time.time() - startup_time}


# ====================
# Authorization
# ====================


async def authorize_channel(principal: Principal, scope: ChannelScope, key: str) -> bool:
    """Campaign and brand channels go through access resolution; creators only see themselves"""
    if scope == ChannelScope.CREATOR:
        return principal.user_id == key
    if scope == ChannelScope.CAMPAIGN:
        access = await factory.access.resolve_access(principal, campaign_id=key)
        return access.can_access_campaign
    access = await factory.access.resolve_access(principal, brand_id=key)
    return access.is_admin or access.is_brand_side


async def _accept_authorized(websocket: WebSocket, scope: ChannelScope, key: str) -> Optional[Principal]:
    await websocket.accept()
    if not factory:
        await websocket.close(code=WS_UNAVAILABLE, reason="Service not initialized")
        return None

    principal = websocket_principal(websocket)
    if principal is None:
        await websocket.close(code=WS_UNAUTHENTICATED, reason="User authentication required")
        return None

    try:
        allowed = await authorize_channel(principal, scope, key)
    except TransportError as e:
        logger.error(f"Access check failed for {scope.value}:{key}: {e}")
        await websocket.close(code=WS_UNAVAILABLE, reason="Access service unavailable")
        return None

    if not allowed:
        await websocket.close(code=WS_FORBIDDEN, reason="Access denied")
        return None
    return principal


async def _pump(websocket: WebSocket, queue: "asyncio.Queue[Dict[str, Any]]") -> None:
    """Send queued frames until the client goes away"""
    sender = asyncio.create_task(_send_frames(websocket, queue))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(f"Frame sender stopped: {e}")


async def _send_frames(websocket: WebSocket, queue: "asyncio.Queue[Dict[str, Any]]") -> None:
    while True:
        frame = await queue.get()
        await websocket.send_json(frame)


# ====================
# Signal channels
# ====================


def _signal_handlers(scope: ChannelScope, queue: "asyncio.Queue[Dict[str, Any]]") -> Dict[ChangeKind, Callable[[], None]]:
    def make(kind: ChangeKind) -> Callable[[], None]:
        return lambda: queue.put_nowait({"signal": kind.value})
    return {kind: make(kind) for kind in SCOPE_KINDS[scope]}


async def _signal_stream(websocket: WebSocket, scope: ChannelScope, key: str) -> None:
    principal = await _accept_authorized(websocket, scope, key)
    if principal is None:
        return

    queue: asyncio.Queue = asyncio.Queue()
    handle = await factory.router.open_channel(scope, key, _signal_handlers(scope, queue))
    logger.info(f"{principal.user_id} subscribed to {scope.value}:{key}")
    try:
        await _pump(websocket, queue)
    finally:
        await handle.close()
        logger.info(f"{principal.user_id} left {scope.value}:{key}")


@app.websocket("/ws/campaigns/{campaign_id}")
async def campaign_channel(websocket: WebSocket, campaign_id: str):
    await _signal_stream(websocket, ChannelScope.CAMPAIGN, campaign_id)


@app.websocket("/ws/brands/{brand_id}")
async def brand_channel(websocket: WebSocket, brand_id: str):
    await _signal_stream(websocket, ChannelScope.BRAND, brand_id)


@app.websocket("/ws/creators/{creator_id}")
async def creator_channel(websocket: WebSocket, creator_id: str):
    await _signal_stream(websocket, ChannelScope.CREATOR, creator_id)


# ====================
# Projection streams
# ====================


async def _projection_stream(
    websocket: WebSocket,
    scope: ChannelScope,
    key: str,
    build: Callable[[Principal, Callable[[Projection], Awaitable[None]]], Projection],
    snapshot: Callable[[Projection], Dict[str, Any]],
) -> None:
    principal = await _accept_authorized(websocket, scope, key)
    if principal is None:
        return

    queue: asyncio.Queue = asyncio.Queue()

    async def on_change(projection: Projection) -> None:
        queue.put_nowait(snapshot(projection))

    projection = build(principal, on_change)
    try:
        await projection.attach(factory.router)
        await _pump(websocket, queue)
    finally:
        await projection.detach()


@app.websocket("/ws/brands/{brand_id}/negotiations")
async def brand_negotiation_queue(websocket: WebSocket, brand_id: str):
    await _projection_stream(
        websocket,
        ChannelScope.BRAND,
        brand_id,
        lambda principal, on_change: BrandNegotiationQueue(factory.invitations, principal, brand_id, on_change),
        lambda p: {
            "version": p.version,
            "negotiating": p.count,
            "invitation_ids": [i.id for i in p.invitations],
        },
    )


@app.websocket("/ws/creators/{creator_id}/invitations")
async def creator_invitation_list(websocket: WebSocket, creator_id: str):
    await _projection_stream(
        websocket,
        ChannelScope.CREATOR,
        creator_id,
        lambda principal, on_change: CreatorInvitationList(factory.invitations, principal, creator_id, on_change),
        lambda p: {
            "version": p.version,
            "pending_actions": p.pending_action_count,
            "invitations": [i.model_dump(mode="json") for i in p.invitations],
        },
    )


@app.websocket("/ws/campaigns/{campaign_id}/board")
async def campaign_invitation_board(websocket: WebSocket, campaign_id: str):
    await _projection_stream(
        websocket,
        ChannelScope.CAMPAIGN,
        campaign_id,
        lambda principal, on_change: CampaignInvitationBoard(factory.invitations, principal, campaign_id, on_change),
        lambda p: {
            "version": p.version,
            "counts": p.status_counts(),
            "notices": [n.model_dump(mode="json") for n in p.drain_notices()],
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.service_host, port=SERVICE_PORT)
