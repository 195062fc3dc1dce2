"""
Access Service Protocols - DI Interfaces

All dependencies defined as Protocol classes for testability.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from .models import (
    Brand,
    BrandMembership,
    CampaignManagerAssignment,
    CampaignSummary,
)


@runtime_checkable
class StoreProtocol(Protocol):
    """Transactional store capabilities (see core.postgres_client)"""

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    async def select_one(
        self, table: str, filters: Dict[str, Any], order_by: Optional[Sequence[str]] = None
    ) -> Optional[Dict[str, Any]]:
        ...

    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        ...

    async def insert(self, table: str, row: Dict[str, Any]) -> str:
        ...

    async def delete(self, table: str, filters: Dict[str, Any]) -> int:
        ...


@runtime_checkable
class AccessRepositoryProtocol(Protocol):
    """Repository interface for access data"""

    async def is_global_admin(self, user_id: str) -> bool:
        ...

    async def get_brand(self, brand_id: str) -> Optional[Brand]:
        ...

    async def get_campaign(self, campaign_id: str) -> Optional[CampaignSummary]:
        ...

    async def get_membership(self, brand_id: str, user_id: str) -> Optional[BrandMembership]:
        ...

    async def list_owned_brands(self, user_id: str) -> List[Brand]:
        ...

    async def list_memberships(self, user_id: str) -> List[BrandMembership]:
        ...

    async def get_assignment(self, campaign_id: str, user_id: str) -> Optional[CampaignManagerAssignment]:
        ...

    async def list_user_assignments(self, user_id: str) -> List[CampaignManagerAssignment]:
        ...

    async def list_campaign_assignments(self, campaign_id: str) -> List[CampaignManagerAssignment]:
        ...

    async def create_assignment(
        self, campaign_id: str, user_id: str, assigned_by: str
    ) -> CampaignManagerAssignment:
        ...

    async def delete_assignment(self, campaign_id: str, user_id: str) -> bool:
        ...

    async def has_invitation(self, campaign_id: str, creator_id: str) -> bool:
        ...

    async def list_brand_campaigns(self, brand_id: str) -> List[CampaignSummary]:
        ...

    async def list_campaigns_by_ids(self, campaign_ids: List[str]) -> List[CampaignSummary]:
        ...

    async def list_invited_campaign_ids(self, creator_id: str) -> List[str]:
        ...


@runtime_checkable
class EventBusProtocol(Protocol):
    """Event bus interface for NATS publishing"""

    async def publish_event(self, event: Any) -> bool:
        ...

    async def close(self) -> None:
        ...


__all__ = [
    "StoreProtocol",
    "AccessRepositoryProtocol",
    "EventBusProtocol",
]
