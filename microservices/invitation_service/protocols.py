"""
Invitation Service Protocols - DI Interfaces

All dependencies defined as Protocol classes for testability.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from core.auth_dependencies import Principal
from microservices.access_service.models import AccessResult

from .models import (
    CampaignRef,
    Invitation,
    InvitationStatus,
    NegotiationRound,
    TrackingLink,
)


@runtime_checkable
class InvitationRepositoryProtocol(Protocol):
    """Repository interface for invitations, negotiation rounds and links"""

    async def get_campaign(self, campaign_id: str) -> Optional[CampaignRef]:
        ...

    async def create_invitation(self, invitation: Invitation) -> Invitation:
        ...

    async def get_invitation(self, invitation_id: str) -> Optional[Invitation]:
        ...

    async def get_latest_invitation(self, campaign_id: str, creator_id: str) -> Optional[Invitation]:
        ...

    async def find_open_invitation(self, campaign_id: str, creator_id: str) -> Optional[Invitation]:
        ...

    async def list_campaign_invitations(
        self, campaign_id: str, statuses: Optional[Sequence[InvitationStatus]] = None
    ) -> List[Invitation]:
        ...

    async def list_creator_invitations(
        self, creator_id: str, statuses: Optional[Sequence[InvitationStatus]] = None
    ) -> List[Invitation]:
        ...

    async def list_brand_invitations(
        self, brand_id: str, statuses: Optional[Sequence[InvitationStatus]] = None
    ) -> List[Invitation]:
        ...

    async def list_expired_pending(self, now: datetime) -> List[Invitation]:
        ...

    async def update_invitation_if(
        self,
        invitation: Invitation,
        changes: Dict[str, Any],
        negotiation_round: Optional[NegotiationRound] = None,
    ) -> bool:
        ...

    async def accept_invitation_if(
        self, invitation: Invitation, changes: Dict[str, Any]
    ) -> Optional[List[TrackingLink]]:
        ...

    async def list_negotiation_rounds(self, invitation_id: str) -> List[NegotiationRound]:
        ...

    async def list_tracking_links(self, campaign_id: str, creator_id: str) -> List[TrackingLink]:
        ...

    async def get_tracking_link_by_code(self, tracking_code: str) -> Optional[TrackingLink]:
        ...


@runtime_checkable
class AccessEvaluatorProtocol(Protocol):
    """Anything that resolves campaign access for a principal"""

    async def resolve_access(
        self,
        principal: Principal,
        brand_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> AccessResult:
        ...


@runtime_checkable
class EventBusProtocol(Protocol):
    """Event bus interface for NATS publishing"""

    async def publish_event(self, event: Any) -> bool:
        ...

    async def close(self) -> None:
        ...


__all__ = [
    "InvitationRepositoryProtocol",
    "AccessEvaluatorProtocol",
    "EventBusProtocol",
]
