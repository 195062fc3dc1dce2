"""
Invitation Service Models

Invitation, negotiation and tracking link data models.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ====================
# Enums
# ====================


class InvitationStatus(str, Enum):
    """Invitation lifecycle status"""
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({
    InvitationStatus.ACCEPTED,
    InvitationStatus.DECLINED,
    InvitationStatus.WITHDRAWN,
    InvitationStatus.EXPIRED,
})

OPEN_STATUSES = frozenset({InvitationStatus.PENDING, InvitationStatus.NEGOTIATING})


class InvitationAction(str, Enum):
    """Transitions of the invitation state machine"""
    NEGOTIATE = "negotiate"
    COUNTER_OFFER = "counter_offer"
    ACCEPT = "accept"
    DECLINE = "decline"
    WITHDRAW = "withdraw"
    EXPIRE = "expire"


class ProposerRole(str, Enum):
    CREATOR = "creator"
    BRAND = "brand"


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    REVIEWING = "reviewing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ====================
# Core Models
# ====================


class DeliverableTerms(BaseModel):
    """Deliverable terms carried on an invitation"""
    title: str
    deliverable_type: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    description: Optional[str] = None


class Invitation(BaseModel):
    """Campaign invitation to a creator"""
    id: str
    campaign_id: str
    brand_id: str
    creator_id: str
    status: InvitationStatus = InvitationStatus.PENDING
    base_payout: Decimal
    offered_payout: Decimal
    negotiated_delta: Optional[Decimal] = None
    deliverables: List[DeliverableTerms] = Field(default_factory=list)
    timeline_start: Optional[datetime] = None
    timeline_end: Optional[datetime] = None
    special_requirements: Optional[str] = None
    invited_by: Optional[str] = None
    decline_reason: Optional[str] = None
    version: int = 1
    expires_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class NegotiationRound(BaseModel):
    """One proposal in the negotiation history"""
    id: str
    invitation_id: str
    campaign_id: str
    proposed_by: str
    proposer_role: ProposerRole
    proposed_payout: Decimal
    proposed_delta: Optional[Decimal] = None
    message: Optional[str] = None
    created_at: Optional[datetime] = None


class CampaignRef(BaseModel):
    """Campaign fields the invitation flow depends on"""
    id: str
    brand_id: str
    name: Optional[str] = None
    status: str = CampaignStatus.DRAFT.value


class CtaLink(BaseModel):
    """Campaign call-to-action link"""
    id: str
    campaign_id: str
    original_url: str
    label: Optional[str] = None


class TrackingLink(BaseModel):
    """Per-creator tracking link for a campaign CTA"""
    id: str
    campaign_id: str
    creator_id: str
    cta_link_id: Optional[str] = None
    tracking_code: str
    short_url: str
    original_url: str
    qr_code_url: Optional[str] = None
    created_at: Optional[datetime] = None


class AcceptanceResult(BaseModel):
    """Accepted invitation with the tracking links generated for it"""
    invitation: Invitation
    tracking_links: List[TrackingLink] = Field(default_factory=list)


class ExpirySweepResult(BaseModel):
    expired: List[str] = Field(default_factory=list)
    conflicts: int = 0


# ====================
# Request Models
# ====================


class InviteRequest(BaseModel):
    """Invite a creator to a campaign"""
    campaign_id: str
    creator_id: str
    base_payout: Decimal = Field(..., ge=0)
    deliverables: List[DeliverableTerms] = Field(default_factory=list)
    timeline_start: Optional[datetime] = None
    timeline_end: Optional[datetime] = None
    special_requirements: Optional[str] = Field(None, max_length=2000)
    expires_in_days: Optional[int] = Field(None, ge=1, le=90)

    @field_validator("creator_id", "campaign_id")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v


class NegotiateRequest(BaseModel):
    """Creator proposes a payout adjustment"""
    proposed_delta: Decimal
    message: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = None


class CounterOfferRequest(BaseModel):
    """Brand answers with a new offered payout"""
    offered_payout: Decimal = Field(..., ge=0)
    message: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = None


class TransitionRequest(BaseModel):
    """Accept / withdraw body"""
    expected_version: Optional[int] = None


class DeclineRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)
    expected_version: Optional[int] = None


# ====================
# Response Models
# ====================


class InvitationListResponse(BaseModel):
    invitations: List[Invitation]
    total: int


class NegotiationHistoryResponse(BaseModel):
    invitation_id: str
    rounds: List[NegotiationRound]


class TrackingLinkListResponse(BaseModel):
    campaign_id: str
    creator_id: str
    links: List[TrackingLink]


class HealthResponse(BaseModel):
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, Any] = Field(default_factory=dict)
