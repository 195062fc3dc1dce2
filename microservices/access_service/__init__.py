"""
Access Service

Campaign-level access evaluation for brand/creator collaboration:
- Resolves a principal's effective role for a brand/campaign pair
- Global admin override, brand ownership, brand membership roles
- Per-campaign manager assignments (least privilege)
- Creator access through campaign invitations

Port: 8261
"""

__version__ = "1.0.0"
__service__ = "access_service"
