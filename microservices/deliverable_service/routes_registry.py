"""
Deliverable Service Routes Registry

Defines service metadata and routes exposed by the deliverable service.
"""

SERVICE_METADATA = {
    "service_name": "deliverable_service",
    "version": "1.0.0",
    "tags": ['deliverable', 'submission', 'review', 'v1'],
    "capabilities": ['submissions', 'reviews', 'deliverable_status', 'payment_eligibility'],
}

ROUTES = [
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/api/v1/submissions", "methods": ["POST"], "description": "Submit a deliverable"},
    {"path": "/api/v1/submissions/{submission_id}/reviews", "methods": ["GET", "POST"], "description": "Review log / review submission"},
    {"path": "/api/v1/campaigns/{campaign_id}/deliverables", "methods": ["GET"], "description": "Campaign deliverables"},
    {"path": "/api/v1/campaigns/{campaign_id}/creators/{creator_id}/deliverables/status", "methods": ["GET"], "description": "Per-deliverable status"},
    {"path": "/api/v1/campaigns/{campaign_id}/creators/{creator_id}/submissions", "methods": ["GET"], "description": "Creator submissions"},
    {"path": "/api/v1/campaigns/{campaign_id}/submissions", "methods": ["GET"], "description": "Campaign submissions (brand side)"},
]


def get_routes_metadata():
    """Route metadata published in health/info responses"""
    return {
        "route_count": str(len(ROUTES)),
        "routes": ",".join([r["path"] for r in ROUTES]),
        "api_version": "v1",
        "base_path": "/api/v1",
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_routes_metadata"]
