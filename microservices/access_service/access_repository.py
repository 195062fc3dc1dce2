"""
Access Service Data Repository

Reads brand ownership, memberships, global roles, manager assignments and
invitation existence from the collaboration store.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient

from .models import (
    Brand,
    BrandMembership,
    BrandRole,
    CampaignManagerAssignment,
    CampaignSummary,
)
from .protocols import StoreProtocol

logger = logging.getLogger(__name__)


class AccessRepository:
    """Access data repository - PostgreSQL (Async)"""

    def __init__(self, config: Optional[ConfigManager] = None, db: Optional[StoreProtocol] = None):
        if db is None:
            if config is None:
                config = ConfigManager("access_service")
            db = PostgresClient("access_service", config=config)
        self.db = db

        # Table names
        self.brands_table = "brand_profiles"
        self.memberships_table = "brand_user_roles"
        self.user_roles_table = "user_roles"
        self.assignments_table = "campaign_manager_assignments"
        self.campaigns_table = "campaigns"
        self.invitations_table = "campaign_invitations"

    async def initialize(self):
        logger.info("Access repository initialized")

    async def close(self):
        if hasattr(self.db, "close"):
            await self.db.close()

    async def health_check(self) -> bool:
        if hasattr(self.db, "health_check"):
            return await self.db.health_check()
        return True

    # ====================
    # Roles & Brands
    # ====================

    async def is_global_admin(self, user_id: str) -> bool:
        count = await self.db.count(self.user_roles_table, {"user_id": user_id, "role": "admin"})
        return count > 0

    async def get_brand(self, brand_id: str) -> Optional[Brand]:
        row = await self.db.select_one(self.brands_table, {"id": brand_id})
        return self._row_to_brand(row) if row else None

    async def list_owned_brands(self, user_id: str) -> List[Brand]:
        rows = await self.db.select(self.brands_table, {"user_id": user_id}, order_by=["created_at"])
        return [self._row_to_brand(r) for r in rows]

    async def get_membership(self, brand_id: str, user_id: str) -> Optional[BrandMembership]:
        row = await self.db.select_one(self.memberships_table, {"brand_id": brand_id, "user_id": user_id})
        return self._row_to_membership(row) if row else None

    async def list_memberships(self, user_id: str) -> List[BrandMembership]:
        rows = await self.db.select(self.memberships_table, {"user_id": user_id}, order_by=["created_at"])
        return [self._row_to_membership(r) for r in rows]

    # ====================
    # Campaigns
    # ====================

    async def get_campaign(self, campaign_id: str) -> Optional[CampaignSummary]:
        row = await self.db.select_one(self.campaigns_table, {"id": campaign_id})
        return self._row_to_campaign(row) if row else None

    async def list_brand_campaigns(self, brand_id: str) -> List[CampaignSummary]:
        rows = await self.db.select(self.campaigns_table, {"brand_id": brand_id}, order_by=["-created_at"])
        return [self._row_to_campaign(r) for r in rows]

    async def list_campaigns_by_ids(self, campaign_ids: List[str]) -> List[CampaignSummary]:
        if not campaign_ids:
            return []
        rows = await self.db.select(self.campaigns_table, {"id": list(campaign_ids)}, order_by=["-created_at"])
        return [self._row_to_campaign(r) for r in rows]

    # ====================
    # Assignments
    # ====================

    async def get_assignment(self, campaign_id: str, user_id: str) -> Optional[CampaignManagerAssignment]:
        row = await self.db.select_one(self.assignments_table, {"campaign_id": campaign_id, "user_id": user_id})
        return CampaignManagerAssignment(**row) if row else None

    async def list_user_assignments(self, user_id: str) -> List[CampaignManagerAssignment]:
        rows = await self.db.select(self.assignments_table, {"user_id": user_id}, order_by=["created_at"])
        return [CampaignManagerAssignment(**r) for r in rows]

    async def list_campaign_assignments(self, campaign_id: str) -> List[CampaignManagerAssignment]:
        rows = await self.db.select(self.assignments_table, {"campaign_id": campaign_id}, order_by=["created_at"])
        return [CampaignManagerAssignment(**r) for r in rows]

    async def create_assignment(
        self, campaign_id: str, user_id: str, assigned_by: str
    ) -> CampaignManagerAssignment:
        row = {
            "id": str(uuid.uuid4()),
            "campaign_id": campaign_id,
            "user_id": user_id,
            "assigned_by": assigned_by,
            "created_at": datetime.now(timezone.utc),
        }
        await self.db.insert(self.assignments_table, row)
        return CampaignManagerAssignment(**row)

    async def delete_assignment(self, campaign_id: str, user_id: str) -> bool:
        deleted = await self.db.delete(self.assignments_table, {"campaign_id": campaign_id, "user_id": user_id})
        return deleted > 0

    # ====================
    # Invitations
    # ====================

    async def has_invitation(self, campaign_id: str, creator_id: str) -> bool:
        count = await self.db.count(self.invitations_table, {"campaign_id": campaign_id, "creator_id": creator_id})
        return count > 0

    async def list_invited_campaign_ids(self, creator_id: str) -> List[str]:
        rows = await self.db.select(self.invitations_table, {"creator_id": creator_id})
        seen: Dict[str, None] = {}
        for row in rows:
            seen.setdefault(row["campaign_id"], None)
        return list(seen)

    # ====================
    # Row mapping
    # ====================

    @staticmethod
    def _row_to_brand(row: Dict[str, Any]) -> Brand:
        return Brand(id=row["id"], user_id=row["user_id"], name=row.get("name"))

    @staticmethod
    def _row_to_membership(row: Dict[str, Any]) -> BrandMembership:
        return BrandMembership(
            brand_id=row["brand_id"],
            user_id=row["user_id"],
            role=BrandRole(row["role"]),
            is_default=bool(row.get("is_default", False)),
        )

    @staticmethod
    def _row_to_campaign(row: Dict[str, Any]) -> CampaignSummary:
        return CampaignSummary(
            id=row["id"],
            brand_id=row["brand_id"],
            name=row.get("name"),
            status=row.get("status", "draft"),
            created_at=row.get("created_at"),
        )
