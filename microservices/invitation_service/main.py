"""
Invitation Service Main Application

FastAPI application for campaign invitations and negotiation.
Port: 8262
"""

import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from core.auth_dependencies import Principal, require_principal, require_system_principal
from core.config_manager import ConfigManager
from core.http_errors import raise_for_result, register_error_handlers
from core.logger import setup_service_logger

from .factory import InvitationServiceFactory
from .invitation_service import InvitationService
from .models import (
    AcceptanceResult,
    CounterOfferRequest,
    DeclineRequest,
    ExpirySweepResult,
    HealthResponse,
    Invitation,
    InvitationListResponse,
    InvitationStatus,
    InviteRequest,
    NegotiateRequest,
    NegotiationHistoryResponse,
    TrackingLinkListResponse,
    TransitionRequest,
)
from .routes_registry import SERVICE_METADATA, get_routes_metadata

# Initialize config manager
config_manager = ConfigManager("invitation_service")
config = config_manager.get_service_config()

# Configure logger
logger = setup_service_logger("invitation_service", level=config.log_level.upper())

if config.debug:
    config_manager.print_config_summary(show_secrets=False)

SERVICE_NAME = SERVICE_METADATA["service_name"]
SERVICE_PORT = config.service_port
SERVICE_VERSION = SERVICE_METADATA["version"]

startup_time = time.time()

factory: Optional[InvitationServiceFactory] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global factory

    logger.info(f"Starting {SERVICE_NAME} on port {SERVICE_PORT}")
    factory = InvitationServiceFactory(config_manager)
    await factory.initialize()

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    await factory.close()


app = FastAPI(
    title="Invitation Service",
    description="Campaign invitations, negotiation and tracking links",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)
register_error_handlers(app)


def get_service() -> InvitationService:
    if not factory:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return factory.service


# ====================
# Health Endpoints
# ====================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    dependencies = {"routes": get_routes_metadata()["route_count"]}
    if factory:
        dependencies["postgres"] = "healthy" if await factory.repository.health_check() else "unhealthy"
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
# Invitation Endpoints
# ====================


@app.post(
    "/api/v1/invitations",
    response_model=Invitation,
    status_code=status.HTTP_201_CREATED,
    tags=["Invitations"],
)
async def create_invitation(
    request: InviteRequest,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    return raise_for_result(await service.invite(principal, request))


@app.get("/api/v1/invitations/mine", response_model=InvitationListResponse, tags=["Invitations"])
async def list_my_invitations(
    status_filter: Optional[List[InvitationStatus]] = Query(None, alias="status"),
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    invitations = await service.list_creator_invitations(principal, status_filter)
    return InvitationListResponse(invitations=invitations, total=len(invitations))


@app.get("/api/v1/invitations/state", response_model=Optional[Invitation], tags=["Invitations"])
async def get_invitation_state(
    campaign_id: str,
    creator_id: str,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    """Latest invitation for a (campaign, creator) pair, null when none"""
    invitation = await service.get_invitation_state(campaign_id, creator_id)
    if invitation is None:
        return None
    # Visibility follows the single-invitation read
    return raise_for_result(await service.get_invitation(principal, invitation.id))


@app.post("/api/v1/invitations/expire", response_model=ExpirySweepResult, tags=["Invitations"])
async def expire_invitations(
    principal: Principal = Depends(require_system_principal),
    service: InvitationService = Depends(get_service),
):
    return raise_for_result(await service.expire_stale_invitations(principal))


@app.get("/api/v1/invitations/{invitation_id}", response_model=Invitation, tags=["Invitations"])
async def get_invitation(
    invitation_id: str,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    return raise_for_result(await service.get_invitation(principal, invitation_id))


@app.post("/api/v1/invitations/{invitation_id}/negotiate", response_model=Invitation, tags=["Negotiation"])
async def negotiate(
    invitation_id: str,
    request: NegotiateRequest,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    return raise_for_result(await service.negotiate(
        principal,
        invitation_id,
        proposed_delta=request.proposed_delta,
        message=request.message,
        expected_version=request.expected_version,
    ))


@app.post("/api/v1/invitations/{invitation_id}/counter-offer", response_model=Invitation, tags=["Negotiation"])
async def counter_offer(
    invitation_id: str,
    request: CounterOfferRequest,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    return raise_for_result(await service.counter_offer(
        principal,
        invitation_id,
        offered_payout=request.offered_payout,
        message=request.message,
        expected_version=request.expected_version,
    ))


@app.post("/api/v1/invitations/{invitation_id}/accept", response_model=AcceptanceResult, tags=["Invitations"])
async def accept_invitation(
    invitation_id: str,
    request: Optional[TransitionRequest] = None,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    expected_version = request.expected_version if request else None
    return raise_for_result(await service.accept(principal, invitation_id, expected_version=expected_version))


@app.post("/api/v1/invitations/{invitation_id}/decline", response_model=Invitation, tags=["Invitations"])
async def decline_invitation(
    invitation_id: str,
    request: Optional[DeclineRequest] = None,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    request = request or DeclineRequest()
    return raise_for_result(await service.decline(
        principal, invitation_id, reason=request.reason, expected_version=request.expected_version
    ))


@app.post("/api/v1/invitations/{invitation_id}/withdraw", response_model=Invitation, tags=["Invitations"])
async def withdraw_invitation(
    invitation_id: str,
    request: Optional[TransitionRequest] = None,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    expected_version = request.expected_version if request else None
    return raise_for_result(await service.withdraw(principal, invitation_id, expected_version=expected_version))


@app.get(
    "/api/v1/invitations/{invitation_id}/negotiations",
    response_model=NegotiationHistoryResponse,
    tags=["Negotiation"],
)
async def negotiation_history(
    invitation_id: str,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    rounds = raise_for_result(await service.get_negotiation_history(principal, invitation_id))
    return NegotiationHistoryResponse(invitation_id=invitation_id, rounds=rounds)


# ====================
# Campaign / Brand views
# ====================


@app.get(
    "/api/v1/campaigns/{campaign_id}/invitations",
    response_model=InvitationListResponse,
    tags=["Invitations"],
)
async def list_campaign_invitations(
    campaign_id: str,
    status_filter: Optional[List[InvitationStatus]] = Query(None, alias="status"),
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    invitations = raise_for_result(
        await service.list_campaign_invitations(principal, campaign_id, status_filter)
    )
    return InvitationListResponse(invitations=invitations, total=len(invitations))


@app.get(
    "/api/v1/brands/{brand_id}/negotiations",
    response_model=InvitationListResponse,
    tags=["Negotiation"],
)
async def list_brand_negotiations(
    brand_id: str,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    invitations = raise_for_result(await service.list_brand_negotiations(principal, brand_id))
    return InvitationListResponse(invitations=invitations, total=len(invitations))


@app.get(
    "/api/v1/campaigns/{campaign_id}/creators/{creator_id}/tracking-links",
    response_model=TrackingLinkListResponse,
    tags=["Tracking"],
)
async def list_tracking_links(
    campaign_id: str,
    creator_id: str,
    principal: Principal = Depends(require_principal),
    service: InvitationService = Depends(get_service),
):
    links = raise_for_result(await service.get_tracking_links(principal, campaign_id, creator_id))
    return TrackingLinkListResponse(campaign_id=campaign_id, creator_id=creator_id, links=links)


@app.get("/api/v1/track", tags=["Tracking"])
async def follow_tracking_link(
    code: str = Query(..., min_length=1),
    service: InvitationService = Depends(get_service),
):
    """Redirect a short tracking URL to the campaign CTA"""
    link = await service.resolve_tracking_code(code)
    if link is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown tracking code")
    logger.info(f"Tracking code {code} followed for campaign {link.campaign_id}")
    return RedirectResponse(url=link.original_url, status_code=status.HTTP_302_FOUND)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.service_host, port=SERVICE_PORT)
