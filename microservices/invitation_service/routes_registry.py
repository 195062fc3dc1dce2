"""
Invitation Service Routes Registry

Defines service metadata and routes exposed by the invitation service.
"""

SERVICE_METADATA = {
    "service_name": "invitation_service",
    "version": "1.0.0",
    "tags": ['invitation', 'negotiation', 'collaboration', 'v1'],
    "capabilities": ['creator_invitations', 'negotiation', 'tracking_links', 'invitation_expiry'],
}

ROUTES = [
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/api/v1/invitations", "methods": ["POST"], "description": "Invite a creator"},
    {"path": "/api/v1/invitations/mine", "methods": ["GET"], "description": "Invitations of the calling creator"},
    {"path": "/api/v1/invitations/state", "methods": ["GET"], "description": "Latest invitation for campaign and creator"},
    {"path": "/api/v1/invitations/{invitation_id}", "methods": ["GET"], "description": "Get invitation"},
    {"path": "/api/v1/invitations/{invitation_id}/negotiate", "methods": ["POST"], "description": "Creator proposes adjustment"},
    {"path": "/api/v1/invitations/{invitation_id}/counter-offer", "methods": ["POST"], "description": "Brand counter-offer"},
    {"path": "/api/v1/invitations/{invitation_id}/accept", "methods": ["POST"], "description": "Accept invitation"},
    {"path": "/api/v1/invitations/{invitation_id}/decline", "methods": ["POST"], "description": "Decline invitation"},
    {"path": "/api/v1/invitations/{invitation_id}/withdraw", "methods": ["POST"], "description": "Withdraw invitation"},
    {"path": "/api/v1/invitations/{invitation_id}/negotiations", "methods": ["GET"], "description": "Negotiation history"},
    {"path": "/api/v1/invitations/expire", "methods": ["POST"], "description": "Expire stale invitations (internal)"},
    {"path": "/api/v1/campaigns/{campaign_id}/invitations", "methods": ["GET"], "description": "Campaign invitations"},
    {"path": "/api/v1/campaigns/{campaign_id}/creators/{creator_id}/tracking-links", "methods": ["GET"], "description": "Creator tracking links"},
    {"path": "/api/v1/brands/{brand_id}/negotiations", "methods": ["GET"], "description": "Open invitations of a brand"},
    {"path": "/api/v1/track", "methods": ["GET"], "description": "Tracking link redirect"},
]


def get_routes_metadata():
    """Route metadata published in health/info responses"""
    return {
        "route_count": str(len(ROUTES)),
        "routes": ",".join([r["path"] for r in ROUTES]),
        "api_version": "v1",
        "base_path": "/api/v1/invitations",
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_routes_metadata"]
