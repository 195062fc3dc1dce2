"""
Invitation Service

Business logic for the campaign invitation lifecycle: invite, negotiate,
counter-offer, accept (with tracking link generation), decline, withdraw
and expire. Every operation takes the acting principal explicitly and
returns an OperationResult; only transport failures raise.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from core.auth_dependencies import Principal
from core.results import ErrorKind, OperationResult
from microservices.access_service.models import AccessResult

from .events.publishers import (
    publish_invitation_changed,
    publish_negotiation_round,
    publish_tracking_links_created,
)
from .models import (
    AcceptanceResult,
    CampaignStatus,
    ExpirySweepResult,
    Invitation,
    InvitationAction,
    InvitationStatus,
    InviteRequest,
    NegotiationRound,
    OPEN_STATUSES,
    ProposerRole,
    TrackingLink,
)
from .protocols import AccessEvaluatorProtocol, EventBusProtocol, InvitationRepositoryProtocol
from .state_machine import accepted_payout, next_status
from .tracking_links import TrackingCodeExhaustedError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvitationService:
    """Invitation state machine service"""

    # Campaigns that no longer take new creators
    CLOSED_CAMPAIGN_STATUSES = frozenset({CampaignStatus.COMPLETED.value, CampaignStatus.CANCELLED.value})

    def __init__(
        self,
        repository: InvitationRepositoryProtocol,
        access: AccessEvaluatorProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        expiry_days: int = 7,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.access = access
        self.event_bus = event_bus
        self.expiry_days = expiry_days
        self._clock = clock

    # ====================
    # Authorization helpers
    # ====================

    async def _require_operator(self, principal: Principal, campaign_id: str) -> OperationResult[AccessResult]:
        access = await self.access.resolve_access(principal, campaign_id=campaign_id)
        if not access.can_operate_campaign:
            return OperationResult.fail(
                ErrorKind.AUTHORIZATION,
                f"Principal {principal.user_id} cannot manage invitations for campaign {campaign_id}",
            )
        return OperationResult.ok(access)

    async def _can_view(self, principal: Principal, invitation: Invitation) -> bool:
        if principal.is_system or principal.user_id == invitation.creator_id:
            return True
        access = await self.access.resolve_access(principal, campaign_id=invitation.campaign_id)
        return access.can_access_campaign and access.is_brand_side

    async def _load(
        self, invitation_id: str, expected_version: Optional[int]
    ) -> OperationResult[Invitation]:
        invitation = await self.repository.get_invitation(invitation_id)
        if invitation is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Invitation not found: {invitation_id}")
        if expected_version is not None and expected_version != invitation.version:
            return OperationResult.fail(
                ErrorKind.CONFLICT,
                f"Invitation {invitation_id} changed (version {invitation.version}, expected {expected_version})",
            )
        return OperationResult.ok(invitation)

    def _is_past_expiry(self, invitation: Invitation) -> bool:
        return (
            invitation.status == InvitationStatus.PENDING
            and invitation.expires_at is not None
            and invitation.expires_at <= self._clock()
        )

    # ====================
    # Transition core
    # ====================

    async def _apply(
        self,
        principal: Principal,
        invitation: Invitation,
        action: InvitationAction,
        changes: Dict[str, Any],
        negotiation_round: Optional[NegotiationRound] = None,
    ) -> OperationResult[Invitation]:
        """Guarded write of one transition, then publish"""
        target = next_status(action, invitation.status)
        if target is None:
            return OperationResult.fail(
                ErrorKind.INVALID_TRANSITION,
                f"Cannot {action.value} an invitation that is {invitation.status.value}",
            )

        changes = dict(changes, status=target)
        updated = await self.repository.update_invitation_if(invitation, changes, negotiation_round)
        if not updated:
            logger.info(f"Concurrent change on invitation {invitation.id}, {action.value} rejected")
            return OperationResult.fail(
                ErrorKind.CONFLICT,
                f"Invitation {invitation.id} was modified concurrently; reload and retry",
            )

        result = invitation.model_copy(
            update=dict(changes, version=invitation.version + 1, updated_at=self._clock())
        )
        await publish_invitation_changed(
            self.event_bus,
            result,
            changed_by=principal.user_id,
            previous_status=invitation.status,
            counter_offer=action == InvitationAction.COUNTER_OFFER,
        )
        if negotiation_round is not None:
            await publish_negotiation_round(self.event_bus, negotiation_round, result)

        logger.info(
            f"Invitation {invitation.id}: {invitation.status.value} -> {target.value} "
            f"({action.value} by {principal.user_id})"
        )
        return OperationResult.ok(result)

    def _round(
        self,
        invitation: Invitation,
        principal: Principal,
        role: ProposerRole,
        payout: Decimal,
        delta: Optional[Decimal],
        message: Optional[str],
    ) -> NegotiationRound:
        return NegotiationRound(
            id=str(uuid.uuid4()),
            invitation_id=invitation.id,
            campaign_id=invitation.campaign_id,
            proposed_by=principal.user_id,
            proposer_role=role,
            proposed_payout=payout,
            proposed_delta=delta,
            message=message,
            created_at=self._clock(),
        )

    # ====================
    # Operations
    # ====================

    async def invite(self, principal: Principal, request: InviteRequest) -> OperationResult[Invitation]:
        """Brand invites a creator; the invitation starts pending"""
        check = await self._require_operator(principal, request.campaign_id)
        if not check.success:
            return OperationResult.fail(check.error, check.message)

        campaign = await self.repository.get_campaign(request.campaign_id)
        if campaign is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Campaign not found: {request.campaign_id}")
        if campaign.status in self.CLOSED_CAMPAIGN_STATUSES:
            return OperationResult.fail(
                ErrorKind.PRECONDITION, f"Campaign {campaign.id} is {campaign.status}"
            )
        if request.timeline_start and request.timeline_end and request.timeline_end < request.timeline_start:
            return OperationResult.fail(ErrorKind.VALIDATION, "timeline_end is before timeline_start")

        existing = await self.repository.find_open_invitation(request.campaign_id, request.creator_id)
        if existing is not None:
            return OperationResult.fail(
                ErrorKind.PRECONDITION,
                f"Creator {request.creator_id} already has an open invitation ({existing.id})",
            )

        now = self._clock()
        invitation = Invitation(
            id=str(uuid.uuid4()),
            campaign_id=campaign.id,
            brand_id=campaign.brand_id,
            creator_id=request.creator_id,
            status=InvitationStatus.PENDING,
            base_payout=request.base_payout,
            offered_payout=request.base_payout,
            deliverables=request.deliverables,
            timeline_start=request.timeline_start,
            timeline_end=request.timeline_end,
            special_requirements=request.special_requirements,
            invited_by=principal.user_id,
            version=1,
            expires_at=now + timedelta(days=request.expires_in_days or self.expiry_days),
            created_at=now,
            updated_at=now,
        )
        await self.repository.create_invitation(invitation)
        await publish_invitation_changed(self.event_bus, invitation, changed_by=principal.user_id)

        logger.info(f"Invitation {invitation.id} created for creator {invitation.creator_id} on {campaign.id}")
        return OperationResult.ok(invitation, "Invitation created")

    async def negotiate(
        self,
        principal: Principal,
        invitation_id: str,
        proposed_delta: Decimal,
        message: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> OperationResult[Invitation]:
        """Creator proposes a payout adjustment; pending -> negotiating"""
        loaded = await self._load(invitation_id, expected_version)
        if not loaded.success:
            return loaded
        invitation = loaded.value

        if principal.user_id != invitation.creator_id:
            return OperationResult.fail(ErrorKind.AUTHORIZATION, "Only the invited creator can negotiate")
        if self._is_past_expiry(invitation):
            return OperationResult.fail(ErrorKind.PRECONDITION, f"Invitation {invitation_id} has expired")
        if proposed_delta == 0:
            return OperationResult.fail(ErrorKind.VALIDATION, "Proposed adjustment must not be zero")
        if invitation.base_payout + proposed_delta < 0:
            return OperationResult.fail(ErrorKind.VALIDATION, "Proposed payout cannot be negative")

        negotiation_round = self._round(
            invitation, principal, ProposerRole.CREATOR,
            invitation.base_payout + proposed_delta, proposed_delta, message,
        )
        return await self._apply(
            principal,
            invitation,
            InvitationAction.NEGOTIATE,
            {"negotiated_delta": proposed_delta},
            negotiation_round,
        )

    async def counter_offer(
        self,
        principal: Principal,
        invitation_id: str,
        offered_payout: Decimal,
        message: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> OperationResult[Invitation]:
        """Brand answers a negotiation with a new offer; stays negotiating"""
        loaded = await self._load(invitation_id, expected_version)
        if not loaded.success:
            return loaded
        invitation = loaded.value

        check = await self._require_operator(principal, invitation.campaign_id)
        if not check.success:
            return OperationResult.fail(check.error, check.message)
        if offered_payout < 0:
            return OperationResult.fail(ErrorKind.VALIDATION, "Offered payout cannot be negative")

        negotiation_round = self._round(
            invitation, principal, ProposerRole.BRAND, offered_payout, None, message
        )
        return await self._apply(
            principal,
            invitation,
            InvitationAction.COUNTER_OFFER,
            {"offered_payout": offered_payout},
            negotiation_round,
        )

    async def accept(
        self,
        principal: Principal,
        invitation_id: str,
        expected_version: Optional[int] = None,
    ) -> OperationResult[AcceptanceResult]:
        """
        Accept the invitation.

        The creator accepts the current offer; the brand may accept the
        creator's proposed terms while negotiating. Tracking links are
        generated in the same transaction as the status change.
        """
        loaded = await self._load(invitation_id, expected_version)
        if not loaded.success:
            return OperationResult.fail(loaded.error, loaded.message)
        invitation = loaded.value

        by_creator = principal.user_id == invitation.creator_id
        if not by_creator:
            check = await self._require_operator(principal, invitation.campaign_id)
            if not check.success:
                return OperationResult.fail(check.error, check.message)

        target = next_status(InvitationAction.ACCEPT, invitation.status)
        if target is None:
            return OperationResult.fail(
                ErrorKind.INVALID_TRANSITION,
                f"Cannot accept an invitation that is {invitation.status.value}",
            )
        if not by_creator and invitation.status != InvitationStatus.NEGOTIATING:
            return OperationResult.fail(
                ErrorKind.INVALID_TRANSITION,
                "The brand can only accept terms proposed during negotiation",
            )
        if by_creator and self._is_past_expiry(invitation):
            return OperationResult.fail(ErrorKind.PRECONDITION, f"Invitation {invitation_id} has expired")

        now = self._clock()
        changes = {
            "status": target,
            "offered_payout": accepted_payout(invitation, accepted_by_creator=by_creator),
            "negotiated_delta": None,
            "responded_at": now,
        }
        try:
            links = await self.repository.accept_invitation_if(invitation, changes)
        except TrackingCodeExhaustedError as e:
            logger.error(f"Accept of invitation {invitation_id} rolled back: {e}")
            return OperationResult.fail(ErrorKind.CONFLICT, "Could not allocate a unique tracking code; retry")

        if links is None:
            return OperationResult.fail(
                ErrorKind.CONFLICT,
                f"Invitation {invitation_id} was modified concurrently; reload and retry",
            )

        accepted = invitation.model_copy(
            update=dict(changes, version=invitation.version + 1, updated_at=now)
        )
        await publish_invitation_changed(
            self.event_bus, accepted, changed_by=principal.user_id, previous_status=invitation.status
        )
        await publish_tracking_links_created(self.event_bus, links, accepted)

        logger.info(f"Invitation {invitation_id} accepted at payout {accepted.offered_payout}")
        return OperationResult.ok(AcceptanceResult(invitation=accepted, tracking_links=links))

    async def decline(
        self,
        principal: Principal,
        invitation_id: str,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> OperationResult[Invitation]:
        loaded = await self._load(invitation_id, expected_version)
        if not loaded.success:
            return loaded
        invitation = loaded.value

        if principal.user_id != invitation.creator_id:
            return OperationResult.fail(ErrorKind.AUTHORIZATION, "Only the invited creator can decline")

        return await self._apply(
            principal,
            invitation,
            InvitationAction.DECLINE,
            {"negotiated_delta": None, "decline_reason": reason, "responded_at": self._clock()},
        )

    async def withdraw(
        self,
        principal: Principal,
        invitation_id: str,
        expected_version: Optional[int] = None,
    ) -> OperationResult[Invitation]:
        loaded = await self._load(invitation_id, expected_version)
        if not loaded.success:
            return loaded
        invitation = loaded.value

        check = await self._require_operator(principal, invitation.campaign_id)
        if not check.success:
            return OperationResult.fail(check.error, check.message)

        return await self._apply(principal, invitation, InvitationAction.WITHDRAW, {"negotiated_delta": None})

    async def expire(
        self,
        principal: Principal,
        invitation_id: str,
        expected_version: Optional[int] = None,
    ) -> OperationResult[Invitation]:
        """System-only: pending invitation past its expiry becomes expired"""
        if not principal.is_system:
            return OperationResult.fail(ErrorKind.AUTHORIZATION, "Only the system can expire invitations")

        loaded = await self._load(invitation_id, expected_version)
        if not loaded.success:
            return loaded
        invitation = loaded.value

        if invitation.status == InvitationStatus.PENDING and not self._is_past_expiry(invitation):
            return OperationResult.fail(
                ErrorKind.PRECONDITION, f"Invitation {invitation_id} has not reached its expiry"
            )
        return await self._apply(principal, invitation, InvitationAction.EXPIRE, {})

    async def expire_stale_invitations(self, principal: Principal) -> OperationResult[ExpirySweepResult]:
        """Expire every pending invitation whose expiry has passed"""
        if not principal.is_system:
            return OperationResult.fail(ErrorKind.AUTHORIZATION, "Only the system can expire invitations")

        sweep = ExpirySweepResult()
        for invitation in await self.repository.list_expired_pending(self._clock()):
            result = await self._apply(principal, invitation, InvitationAction.EXPIRE, {})
            if result.success:
                sweep.expired.append(invitation.id)
            else:
                sweep.conflicts += 1

        if sweep.expired:
            logger.info(f"Expired {len(sweep.expired)} invitations ({sweep.conflicts} skipped)")
        return OperationResult.ok(sweep)

    # ====================
    # Queries
    # ====================

    async def get_invitation_state(self, campaign_id: str, creator_id: str) -> Optional[Invitation]:
        """Latest invitation for (campaign, creator), or None"""
        return await self.repository.get_latest_invitation(campaign_id, creator_id)

    async def get_invitation(self, principal: Principal, invitation_id: str) -> OperationResult[Invitation]:
        invitation = await self.repository.get_invitation(invitation_id)
        if invitation is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Invitation not found: {invitation_id}")
        if not await self._can_view(principal, invitation):
            return OperationResult.fail(ErrorKind.AUTHORIZATION, "Not allowed to view this invitation")
        return OperationResult.ok(invitation)

    async def list_campaign_invitations(
        self,
        principal: Principal,
        campaign_id: str,
        statuses: Optional[List[InvitationStatus]] = None,
    ) -> OperationResult[List[Invitation]]:
        access = await self.access.resolve_access(principal, campaign_id=campaign_id)
        if not (access.can_access_campaign and access.is_brand_side):
            return OperationResult.fail(
                ErrorKind.AUTHORIZATION, f"Principal {principal.user_id} cannot view campaign {campaign_id}"
            )
        return OperationResult.ok(await self.repository.list_campaign_invitations(campaign_id, statuses))

    async def list_creator_invitations(
        self,
        principal: Principal,
        statuses: Optional[List[InvitationStatus]] = None,
    ) -> List[Invitation]:
        """The principal's own invitations, newest first"""
        return await self.repository.list_creator_invitations(principal.user_id, statuses)

    async def list_brand_negotiations(
        self, principal: Principal, brand_id: str
    ) -> OperationResult[List[Invitation]]:
        """Open invitations of a brand, limited to campaigns the principal can operate"""
        access = await self.access.resolve_access(principal, brand_id=brand_id)
        if not (access.is_admin or access.is_brand_side):
            return OperationResult.fail(
                ErrorKind.AUTHORIZATION, f"Principal {principal.user_id} is not a member of brand {brand_id}"
            )

        invitations = await self.repository.list_brand_invitations(brand_id, sorted(OPEN_STATUSES))
        visible: List[Invitation] = []
        allowed: Dict[str, bool] = {}
        for invitation in invitations:
            if invitation.campaign_id not in allowed:
                campaign_access = await self.access.resolve_access(principal, campaign_id=invitation.campaign_id)
                allowed[invitation.campaign_id] = campaign_access.can_operate_campaign
            if allowed[invitation.campaign_id]:
                visible.append(invitation)
        return OperationResult.ok(visible)

    async def get_negotiation_history(
        self, principal: Principal, invitation_id: str
    ) -> OperationResult[List[NegotiationRound]]:
        found = await self.get_invitation(principal, invitation_id)
        if not found.success:
            return OperationResult.fail(found.error, found.message)
        return OperationResult.ok(await self.repository.list_negotiation_rounds(invitation_id))

    async def get_tracking_links(
        self, principal: Principal, campaign_id: str, creator_id: str
    ) -> OperationResult[List[TrackingLink]]:
        if not principal.is_system and principal.user_id != creator_id:
            access = await self.access.resolve_access(principal, campaign_id=campaign_id)
            if not (access.can_access_campaign and access.is_brand_side):
                return OperationResult.fail(ErrorKind.AUTHORIZATION, "Not allowed to view tracking links")
        return OperationResult.ok(await self.repository.list_tracking_links(campaign_id, creator_id))

    async def resolve_tracking_code(self, tracking_code: str) -> Optional[TrackingLink]:
        return await self.repository.get_tracking_link_by_code(tracking_code)


__all__ = ["InvitationService"]
