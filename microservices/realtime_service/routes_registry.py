"""
Realtime Service Routes Registry

Defines service metadata and websocket routes exposed by the realtime service.
"""

SERVICE_METADATA = {
    "service_name": "realtime_service",
    "version": "1.0.0",
    "tags": ['realtime', 'websocket', 'change-feed', 'v1'],
    "capabilities": ['campaign_channel', 'brand_channel', 'creator_channel', 'projections'],
}

ROUTES = [
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/ws/campaigns/{campaign_id}", "methods": ["WS"], "description": "Campaign change signals"},
    {"path": "/ws/brands/{brand_id}", "methods": ["WS"], "description": "Brand change signals"},
    {"path": "/ws/creators/{creator_id}", "methods": ["WS"], "description": "Creator change signals"},
    {"path": "/ws/campaigns/{campaign_id}/board", "methods": ["WS"], "description": "Invitation board with transition notices"},
    {"path": "/ws/brands/{brand_id}/negotiations", "methods": ["WS"], "description": "Brand negotiation queue"},
    {"path": "/ws/creators/{creator_id}/invitations", "methods": ["WS"], "description": "Creator invitation list"},
]


def get_routes_metadata():
    """Route metadata published in health/info responses"""
    return {
        "route_count": str(len(ROUTES)),
        "routes": ",".join([r["path"] for r in ROUTES]),
        "api_version": "v1",
        "base_path": "/ws",
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_routes_metadata"]
