"""
Access Service Main Application

FastAPI application for campaign access resolution and assignments.
Port: 8261
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status

from core.auth_dependencies import Principal, require_principal
from core.config_manager import ConfigManager
from core.http_errors import raise_for_result, register_error_handlers
from core.logger import setup_service_logger

from .access_service import AccessService
from .factory import AccessServiceFactory
from .models import (
    AccessResult,
    AssignManagerRequest,
    AssignmentListResponse,
    CampaignListResponse,
    CampaignManagerAssignment,
    HealthResponse,
    MembershipListResponse,
    ResolveAccessRequest,
)
from .routes_registry import SERVICE_METADATA, get_routes_metadata

# Initialize config manager
config_manager = ConfigManager("access_service")
config = config_manager.get_service_config()

# Configure logger
logger = setup_service_logger("access_service", level=config.log_level.upper())

if config.debug:
    config_manager.print_config_summary(show_secrets=False)

SERVICE_NAME = SERVICE_METADATA["service_name"]
SERVICE_PORT = config.service_port
SERVICE_VERSION = SERVICE_METADATA["version"]

startup_time = time.time()

factory: Optional[AccessServiceFactory] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global factory

    logger.info(f"Starting {SERVICE_NAME} on port {SERVICE_PORT}")
    factory = AccessServiceFactory(config_manager)
    await factory.initialize()

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    await factory.close()


app = FastAPI(
    title="Access Service",
    description="Role- and assignment-scoped campaign access evaluation",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)
register_error_handlers(app)


# ====================
# Dependencies
# ====================


def get_service() -> AccessService:
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
        if factory.nats_client:
            dependencies["nats"] = "healthy" if factory.nats_client.is_connected else "unhealthy"
        else:
            dependencies["nats"] = "not_configured"

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
# Access Endpoints
# ====================


@app.post("/api/v1/access/resolve", response_model=AccessResult, tags=["Access"])
async def resolve_access(
    request: ResolveAccessRequest,
    principal: Principal = Depends(require_principal),
    service: AccessService = Depends(get_service),
):
    """Resolve role and campaign access for the calling principal"""
    return await service.resolve_access(
        principal,
        brand_id=request.brand_id,
        campaign_id=request.campaign_id,
    )


@app.get("/api/v1/access/memberships", response_model=MembershipListResponse, tags=["Access"])
async def list_memberships(
    principal: Principal = Depends(require_principal),
    service: AccessService = Depends(get_service),
):
    memberships = await service.list_brand_memberships(principal)
    default = await service.get_default_brand(principal)
    return MembershipListResponse(
        memberships=memberships,
        default_brand_id=default.brand_id if default else None,
    )


@app.get("/api/v1/access/campaigns", response_model=CampaignListResponse, tags=["Access"])
async def list_campaigns(
    brand_id: Optional[str] = Query(None, description="Brand to list (defaults to the default brand)"),
    principal: Principal = Depends(require_principal),
    service: AccessService = Depends(get_service),
):
    campaigns = await service.list_accessible_campaigns(principal, brand_id=brand_id)
    return CampaignListResponse(campaigns=campaigns, total=len(campaigns))


# ====================
# Assignment Endpoints
# ====================


@app.get(
    "/api/v1/access/campaigns/{campaign_id}/assignments",
    response_model=AssignmentListResponse,
    tags=["Assignments"],
)
async def list_assignments(
    campaign_id: str,
    principal: Principal = Depends(require_principal),
    service: AccessService = Depends(get_service),
):
    assignments = raise_for_result(await service.list_campaign_assignments(principal, campaign_id))
    return AssignmentListResponse(campaign_id=campaign_id, assignments=assignments)


@app.post(
    "/api/v1/access/campaigns/{campaign_id}/assignments",
    response_model=CampaignManagerAssignment,
    status_code=status.HTTP_201_CREATED,
    tags=["Assignments"],
)
async def assign_manager(
    campaign_id: str,
    request: AssignManagerRequest,
    principal: Principal = Depends(require_principal),
    service: AccessService = Depends(get_service),
):
    return raise_for_result(
        await service.assign_campaign_manager(principal, campaign_id, request.user_id)
    )


@app.delete("/api/v1/access/campaigns/{campaign_id}/assignments/{user_id}", tags=["Assignments"])
async def unassign_manager(
    campaign_id: str,
    user_id: str,
    principal: Principal = Depends(require_principal),
    service: AccessService = Depends(get_service),
):
    raise_for_result(await service.unassign_campaign_manager(principal, campaign_id, user_id))
    return {"success": True, "campaign_id": campaign_id, "user_id": user_id}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.service_host, port=SERVICE_PORT)
