"""
Invitation Service Event Models

Row-change payloads carried by invitation.*, negotiation.* and
tracking_link.* events.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RowChangeEventData(BaseModel):
    """Common change-feed fields"""
    table: str
    operation: str
    row_id: str
    campaign_id: str
    brand_id: Optional[str] = None
    creator_id: Optional[str] = None
    changed_by: Optional[str] = None
    timestamp: datetime


class InvitationChangedEventData(RowChangeEventData):
    """invitation.<status> payload"""
    table: str = "campaign_invitations"
    status: str
    previous_status: Optional[str] = None
    version: int
    offered_payout: Optional[str] = None


class NegotiationRoundEventData(RowChangeEventData):
    table: str = "campaign_negotiations"
    operation: str = "INSERT"
    invitation_id: str
    proposer_role: str
    proposed_payout: str


class TrackingLinkCreatedEventData(RowChangeEventData):
    table: str = "creator_tracking_links"
    operation: str = "INSERT"
    tracking_code: str
    cta_link_id: Optional[str] = None
