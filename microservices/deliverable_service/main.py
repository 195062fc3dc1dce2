"""
Deliverable Service Main Application

FastAPI application for deliverable submissions and reviews.
Port: 8263
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, status

from core.auth_dependencies import Principal, require_principal
from core.config_manager import ConfigManager
from core.http_errors import raise_for_result, register_error_handlers
from core.logger import setup_service_logger

from .deliverable_service import DeliverableService
from .factory import DeliverableServiceFactory
from .models import (
    DeliverableListResponse,
    DeliverableStatusResponse,
    HealthResponse,
    ReviewHistoryResponse,
    ReviewOutcome,
    ReviewRequest,
    Submission,
    SubmissionListResponse,
    SubmitRequest,
)
from .review_fold import all_approved
from .routes_registry import SERVICE_METADATA, get_routes_metadata

# Initialize config manager
config_manager = ConfigManager("deliverable_service")
config = config_manager.get_service_config()

# Configure logger
logger = setup_service_logger("deliverable_service", level=config.log_level.upper())

if config.debug:
    config_manager.print_config_summary(show_secrets=False)

SERVICE_NAME = SERVICE_METADATA["service_name"]
SERVICE_PORT = config.service_port
SERVICE_VERSION = SERVICE_METADATA["version"]

startup_time = time.time()

factory: Optional[DeliverableServiceFactory] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global factory

    logger.info(f"Starting {SERVICE_NAME} on port {SERVICE_PORT}")
    factory = DeliverableServiceFactory(config_manager)
    await factory.initialize()

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    await factory.close()


app = FastAPI(
    title="Deliverable Service",
    description="Creator deliverable submissions and brand reviews",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)
register_error_handlers(app)


def get_service() -> DeliverableService:
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
# Submissions
# ====================


@app.post(
    "/api/v1/submissions",
    response_model=Submission,
    status_code=status.HTTP_201_CREATED,
    tags=["Submissions"],
)
async def submit_deliverable(
    request: SubmitRequest,
    principal: Principal = Depends(require_principal),
    service: DeliverableService = Depends(get_service),
):
    return raise_for_result(await service.submit(
        principal,
        campaign_id=request.campaign_id,
        deliverable_id=request.deliverable_id,
        submission_url=request.submission_url,
        metadata=request.metadata,
    ))


@app.post(
    "/api/v1/submissions/{submission_id}/reviews",
    response_model=ReviewOutcome,
    status_code=status.HTTP_201_CREATED,
    tags=["Reviews"],
)
async def review_submission(
    submission_id: str,
    request: ReviewRequest,
    principal: Principal = Depends(require_principal),
    service: DeliverableService = Depends(get_service),
):
    return raise_for_result(
        await service.review(principal, submission_id, request.action, feedback=request.feedback)
    )


@app.get(
    "/api/v1/submissions/{submission_id}/reviews",
    response_model=ReviewHistoryResponse,
    tags=["Reviews"],
)
async def review_history(
    submission_id: str,
    principal: Principal = Depends(require_principal),
    service: DeliverableService = Depends(get_service),
):
    reviews = raise_for_result(await service.get_review_history(principal, submission_id))
    return ReviewHistoryResponse(submission_id=submission_id, reviews=reviews)


# ====================
# Campaign views
# ====================


@app.get(
    "/api/v1/campaigns/{campaign_id}/deliverables",
    response_model=DeliverableListResponse,
    tags=["Deliverables"],
)
async def list_deliverables(
    campaign_id: str,
    principal: Principal = Depends(require_principal),
    service: DeliverableService = Depends(get_service),
):
    deliverables = raise_for_result(await service.list_campaign_deliverables(principal, campaign_id))
    return DeliverableListResponse(campaign_id=campaign_id, deliverables=deliverables)


@app.get(
    "/api/v1/campaigns/{campaign_id}/creators/{creator_id}/deliverables/status",
    response_model=DeliverableStatusResponse,
    tags=["Deliverables"],
)
async def deliverable_status(
    campaign_id: str,
    creator_id: str,
    principal: Principal = Depends(require_principal),
    service: DeliverableService = Depends(get_service),
):
    entries = raise_for_result(await service.get_deliverable_status(principal, campaign_id, creator_id))
    return DeliverableStatusResponse(
        campaign_id=campaign_id,
        creator_id=creator_id,
        deliverables=entries,
        all_deliverables_approved=all_approved(entries),
    )


@app.get(
    "/api/v1/campaigns/{campaign_id}/creators/{creator_id}/submissions",
    response_model=SubmissionListResponse,
    tags=["Submissions"],
)
async def list_submissions(
    campaign_id: str,
    creator_id: str,
    principal: Principal = Depends(require_principal),
    service: DeliverableService = Depends(get_service),
):
    submissions = raise_for_result(await service.list_submissions(principal, campaign_id, creator_id))
    return SubmissionListResponse(submissions=submissions, total=len(submissions))


@app.get(
    "/api/v1/campaigns/{campaign_id}/submissions",
    response_model=SubmissionListResponse,
    tags=["Submissions"],
)
async def list_campaign_submissions(
    campaign_id: str,
    principal: Principal = Depends(require_principal),
    service: DeliverableService = Depends(get_service),
):
    submissions = raise_for_result(await service.list_submissions(principal, campaign_id))
    return SubmissionListResponse(submissions=submissions, total=len(submissions))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.service_host, port=SERVICE_PORT)
