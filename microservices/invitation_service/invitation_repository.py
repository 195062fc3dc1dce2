"""
Invitation Repository

Data access layer for campaign invitations, negotiation rounds and creator
tracking links. Every status write is a conditional update guarded by the
expected status and version.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient

from .models import (
    CampaignRef,
    DeliverableTerms,
    Invitation,
    InvitationStatus,
    NegotiationRound,
    OPEN_STATUSES,
    ProposerRole,
    TrackingLink,
)
from .tracking_links import TrackingLinkGenerator

logger = logging.getLogger(__name__)


class InvitationRepository:
    """Invitation repository - PostgreSQL (Async)"""

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        db=None,
        link_generator: Optional[TrackingLinkGenerator] = None,
    ):
        if config is None:
            config = ConfigManager("invitation_service")
        if db is None:
            db = PostgresClient("invitation_service", config=config)
        self.db = db

        if link_generator is None:
            policy = config.policy
            link_generator = TrackingLinkGenerator(
                base_url=policy.tracking_base_url,
                code_length=policy.tracking_code_length,
                max_attempts=policy.tracking_code_attempts,
                qr_code_size=policy.qr_code_size,
            )
        self.link_generator = link_generator

        # Table names
        self.campaigns_table = "campaigns"
        self.invitations_table = "campaign_invitations"
        self.negotiations_table = "campaign_negotiations"
        self.tracking_links_table = "creator_tracking_links"

    async def initialize(self):
        logger.info("Invitation repository initialized")

    async def close(self):
        if hasattr(self.db, "close"):
            await self.db.close()

    async def health_check(self) -> bool:
        if hasattr(self.db, "health_check"):
            return await self.db.health_check()
        return True

    # ====================
    # Campaigns
    # ====================

    async def get_campaign(self, campaign_id: str) -> Optional[CampaignRef]:
        row = await self.db.select_one(self.campaigns_table, {"id": campaign_id})
        if not row:
            return None
        return CampaignRef(
            id=row["id"],
            brand_id=row["brand_id"],
            name=row.get("name"),
            status=row.get("status", "draft"),
        )

    # ====================
    # Invitations
    # ====================

    async def create_invitation(self, invitation: Invitation) -> Invitation:
        await self.db.insert(self.invitations_table, self._invitation_to_row(invitation))
        return invitation

    async def get_invitation(self, invitation_id: str) -> Optional[Invitation]:
        row = await self.db.select_one(self.invitations_table, {"id": invitation_id})
        return self._row_to_invitation(row) if row else None

    async def get_latest_invitation(self, campaign_id: str, creator_id: str) -> Optional[Invitation]:
        row = await self.db.select_one(
            self.invitations_table,
            {"campaign_id": campaign_id, "creator_id": creator_id},
            order_by=["-created_at"],
        )
        return self._row_to_invitation(row) if row else None

    async def find_open_invitation(self, campaign_id: str, creator_id: str) -> Optional[Invitation]:
        row = await self.db.select_one(
            self.invitations_table,
            {
                "campaign_id": campaign_id,
                "creator_id": creator_id,
                "status": [s.value for s in OPEN_STATUSES],
            },
        )
        return self._row_to_invitation(row) if row else None

    async def _list_invitations(
        self, filters: Dict[str, Any], statuses: Optional[Sequence[InvitationStatus]]
    ) -> List[Invitation]:
        if statuses:
            filters["status"] = [InvitationStatus(s).value for s in statuses]
        rows = await self.db.select(self.invitations_table, filters, order_by=["-created_at"])
        return [self._row_to_invitation(r) for r in rows]

    async def list_campaign_invitations(
        self, campaign_id: str, statuses: Optional[Sequence[InvitationStatus]] = None
    ) -> List[Invitation]:
        return await self._list_invitations({"campaign_id": campaign_id}, statuses)

    async def list_creator_invitations(
        self, creator_id: str, statuses: Optional[Sequence[InvitationStatus]] = None
    ) -> List[Invitation]:
        return await self._list_invitations({"creator_id": creator_id}, statuses)

    async def list_brand_invitations(
        self, brand_id: str, statuses: Optional[Sequence[InvitationStatus]] = None
    ) -> List[Invitation]:
        return await self._list_invitations({"brand_id": brand_id}, statuses)

    async def list_expired_pending(self, now: datetime) -> List[Invitation]:
        rows = await self.db.select(
            self.invitations_table,
            {"status": InvitationStatus.PENDING.value, "expires_at__lte": now},
            order_by=["expires_at"],
        )
        return [self._row_to_invitation(r) for r in rows]

    # ====================
    # Guarded writes
    # ====================

    def _guarded_changes(self, invitation: Invitation, changes: Dict[str, Any]) -> Dict[str, Any]:
        new = {
            key: (value.value if isinstance(value, InvitationStatus) else value)
            for key, value in changes.items()
        }
        new["version"] = invitation.version + 1
        new["updated_at"] = datetime.now(timezone.utc)
        return new

    @staticmethod
    def _guard(invitation: Invitation) -> Dict[str, Any]:
        return {"status": invitation.status.value, "version": invitation.version}

    async def update_invitation_if(
        self,
        invitation: Invitation,
        changes: Dict[str, Any],
        negotiation_round: Optional[NegotiationRound] = None,
    ) -> bool:
        """
        Apply changes only while the row still holds the status and version
        the caller read. A negotiation round, when given, is recorded in the
        same transaction. Returns False when the guard trips.
        """
        new = self._guarded_changes(invitation, changes)
        if negotiation_round is None:
            return await self.db.update_if(self.invitations_table, invitation.id, self._guard(invitation), new)

        async with self.db.transaction() as tx:
            updated = await tx.update_if(self.invitations_table, invitation.id, self._guard(invitation), new)
            if not updated:
                return False
            await tx.insert(self.negotiations_table, self._round_to_row(negotiation_round))
        return True

    async def accept_invitation_if(
        self, invitation: Invitation, changes: Dict[str, Any]
    ) -> Optional[List[TrackingLink]]:
        """
        Guarded acceptance plus tracking link generation in one transaction.

        Returns the created links, or None when the guard trips. A failure
        during link generation rolls back the status change.
        """
        new = self._guarded_changes(invitation, changes)
        async with self.db.transaction() as tx:
            updated = await tx.update_if(self.invitations_table, invitation.id, self._guard(invitation), new)
            if not updated:
                return None
            return await self.link_generator.generate(tx, invitation.campaign_id, invitation.creator_id)

    # ====================
    # Negotiation history
    # ====================

    async def list_negotiation_rounds(self, invitation_id: str) -> List[NegotiationRound]:
        rows = await self.db.select(
            self.negotiations_table, {"invitation_id": invitation_id}, order_by=["created_at"]
        )
        return [self._row_to_round(r) for r in rows]

    # ====================
    # Tracking links
    # ====================

    async def list_tracking_links(self, campaign_id: str, creator_id: str) -> List[TrackingLink]:
        rows = await self.db.select(
            self.tracking_links_table,
            {"campaign_id": campaign_id, "creator_id": creator_id},
            order_by=["created_at"],
        )
        return [TrackingLinkGenerator.row_to_link(r) for r in rows]

    async def get_tracking_link_by_code(self, tracking_code: str) -> Optional[TrackingLink]:
        row = await self.db.select_one(self.tracking_links_table, {"tracking_code": tracking_code})
        return TrackingLinkGenerator.row_to_link(row) if row else None

    # ====================
    # Row mapping
    # ====================

    @staticmethod
    def _invitation_to_row(invitation: Invitation) -> Dict[str, Any]:
        row = invitation.model_dump(exclude={"deliverables", "status"})
        row["status"] = invitation.status.value
        row["deliverables"] = [d.model_dump() for d in invitation.deliverables]
        return row

    @staticmethod
    def _row_to_invitation(row: Dict[str, Any]) -> Invitation:
        deliverables = row.get("deliverables") or []
        return Invitation(
            id=row["id"],
            campaign_id=row["campaign_id"],
            brand_id=row["brand_id"],
            creator_id=row["creator_id"],
            status=InvitationStatus(row["status"]),
            base_payout=row["base_payout"],
            offered_payout=row["offered_payout"],
            negotiated_delta=row.get("negotiated_delta"),
            deliverables=[DeliverableTerms(**d) for d in deliverables],
            timeline_start=row.get("timeline_start"),
            timeline_end=row.get("timeline_end"),
            special_requirements=row.get("special_requirements"),
            invited_by=row.get("invited_by"),
            decline_reason=row.get("decline_reason"),
            version=row.get("version") or 1,
            expires_at=row.get("expires_at"),
            responded_at=row.get("responded_at"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    @staticmethod
    def _round_to_row(negotiation_round: NegotiationRound) -> Dict[str, Any]:
        row = negotiation_round.model_dump(exclude={"proposer_role"})
        row["proposer_role"] = negotiation_round.proposer_role.value
        return row

    @staticmethod
    def _row_to_round(row: Dict[str, Any]) -> NegotiationRound:
        return NegotiationRound(
            id=row["id"],
            invitation_id=row["invitation_id"],
            campaign_id=row["campaign_id"],
            proposed_by=row["proposed_by"],
            proposer_role=ProposerRole(row["proposer_role"]),
            proposed_payout=row["proposed_payout"],
            proposed_delta=row.get("proposed_delta"),
            message=row.get("message"),
            created_at=row.get("created_at"),
        )
