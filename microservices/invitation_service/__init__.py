"""
Invitation Service

Brand-to-creator campaign invitations:
- Invite, negotiate, counter-offer, accept, decline, withdraw, expire
- Optimistic concurrency on every status write
- Tracking link generation on acceptance

Port: 8262
"""

__version__ = "1.0.0"
__service__ = "invitation_service"
