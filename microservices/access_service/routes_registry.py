"""
Access Service Routes Registry

Defines service metadata and routes exposed by the access service.
"""

SERVICE_METADATA = {
    "service_name": "access_service",
    "version": "1.0.0",
    "tags": ['access', 'authorization', 'collaboration', 'v1'],
    "capabilities": ['access_resolution', 'campaign_assignments', 'brand_memberships'],
}

ROUTES = [
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/api/v1/access/resolve", "methods": ["POST"], "description": "Resolve principal access"},
    {"path": "/api/v1/access/memberships", "methods": ["GET"], "description": "Brand memberships of principal"},
    {"path": "/api/v1/access/campaigns", "methods": ["GET"], "description": "Campaigns visible to principal"},
    {"path": "/api/v1/access/campaigns/{campaign_id}/assignments", "methods": ["GET", "POST"], "description": "Campaign manager assignments"},
    {"path": "/api/v1/access/campaigns/{campaign_id}/assignments/{user_id}", "methods": ["DELETE"], "description": "Remove assignment"},
]


def get_routes_metadata():
    """Route metadata published in health/info responses"""
    return {
        "route_count": str(len(ROUTES)),
        "routes": ",".join([r["path"] for r in ROUTES]),
        "api_version": "v1",
        "base_path": "/api/v1/access",
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_routes_metadata"]
