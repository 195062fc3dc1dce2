"""
Invitation Service Events Package

Event payload models and publish functions
"""

from .models import (
    InvitationChangedEventData,
    NegotiationRoundEventData,
    RowChangeEventData,
    TrackingLinkCreatedEventData,
)
from .publishers import (
    publish_invitation_changed,
    publish_negotiation_round,
    publish_tracking_links_created,
)

__all__ = [
    # Event Models
    "RowChangeEventData",
    "InvitationChangedEventData",
    "NegotiationRoundEventData",
    "TrackingLinkCreatedEventData",
    # Publishers
    "publish_invitation_changed",
    "publish_negotiation_round",
    "publish_tracking_links_created",
]
