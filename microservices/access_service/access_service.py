"""
Access Service Business Logic

Resolves the effective permissions of an explicitly passed principal for a
brand/campaign pair and manages campaign manager assignments.
"""

import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from core.auth_dependencies import Principal
from core.results import ErrorKind, OperationResult

from .events.publishers import AccessEventPublisher
from .models import (
    AccessResult,
    AccessRole,
    BrandMembership,
    BrandRole,
    CampaignManagerAssignment,
    CampaignSummary,
)
from .protocols import AccessRepositoryProtocol, EventBusProtocol

logger = logging.getLogger(__name__)


class AccessService:
    """Access evaluator and assignment management"""

    def __init__(
        self,
        repository: AccessRepositoryProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        finance_operational_access: bool = False,
    ):
        self.repository = repository
        self.event_bus = event_bus
        self.publisher = AccessEventPublisher(event_bus)
        self.finance_operational_access = finance_operational_access

    # ====================
    # Evaluation
    # ====================

    async def resolve_access(
        self,
        principal: Principal,
        brand_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> AccessResult:
        """
        Resolve role and campaign access.

        1. Global admin (or an internal system principal) is granted everything.
        2. Brand owner resolves to agency_admin; otherwise the membership role.
        3. agency_admin and finance reach every campaign of the brand.
        4. campaign_manager reaches a campaign only with an assignment row.
        5. Without a brand relation the principal is a creator, with access
           to campaigns they hold an invitation for.

        Denial is returned, never raised. Store failures raise TransportError.
        """
        if principal.is_system or await self.repository.is_global_admin(principal.user_id):
            return AccessResult(
                role=AccessRole.ADMIN,
                can_access_campaign=True,
                is_admin=True,
                brand_id=brand_id,
                campaign_id=campaign_id,
            )

        campaign: Optional[CampaignSummary] = None
        if campaign_id:
            campaign = await self.repository.get_campaign(campaign_id)
            if campaign is None:
                return AccessResult(brand_id=brand_id, campaign_id=campaign_id)

        resolved_brand_id = brand_id or (campaign.brand_id if campaign else None)
        # A campaign outside the requested brand is never reachable through it
        campaign_in_brand = campaign is None or campaign.brand_id == resolved_brand_id

        role = AccessRole.NONE
        is_owner = False
        if resolved_brand_id:
            brand = await self.repository.get_brand(resolved_brand_id)
            if brand is not None and brand.user_id == principal.user_id:
                role = AccessRole.AGENCY_ADMIN
                is_owner = True
            else:
                membership = await self.repository.get_membership(resolved_brand_id, principal.user_id)
                if membership is not None:
                    role = AccessRole(membership.role.value)

        result = AccessResult(
            role=role,
            is_owner=is_owner,
            brand_id=resolved_brand_id,
            campaign_id=campaign_id,
        )

        if role in (AccessRole.AGENCY_ADMIN, AccessRole.FINANCE):
            result.can_access_campaign = campaign_in_brand
            result.financial_only = role == AccessRole.FINANCE and not self.finance_operational_access
            return result

        if role == AccessRole.CAMPAIGN_MANAGER:
            if campaign is not None and campaign_in_brand:
                assignment = await self.repository.get_assignment(campaign.id, principal.user_id)
                result.can_access_campaign = assignment is not None
            if not result.can_access_campaign:
                logger.debug(f"Campaign manager {principal.user_id} has no assignment for {campaign_id}")
            return result

        if campaign is not None and await self.repository.has_invitation(campaign.id, principal.user_id):
            result.role = AccessRole.CREATOR
            result.can_access_campaign = True
            result.via_invitation = True

        return result

    async def require_campaign_access(
        self,
        principal: Principal,
        campaign_id: str,
        operational: bool = True,
    ) -> OperationResult[AccessResult]:
        """Brand-side campaign access or an authorization failure"""
        access = await self.resolve_access(principal, campaign_id=campaign_id)
        allowed = access.can_operate_campaign if operational else (
            access.can_access_campaign and access.is_brand_side
        )
        if not allowed:
            return OperationResult.fail(
                ErrorKind.AUTHORIZATION,
                f"Principal {principal.user_id} cannot access campaign {campaign_id}",
            )
        return OperationResult.ok(access)

    # ====================
    # Listings
    # ====================

    async def list_brand_memberships(self, principal: Principal) -> List[BrandMembership]:
        """Owned brands first (as agency_admin), then memberships"""
        memberships: List[BrandMembership] = []
        seen = set()

        for brand in await self.repository.list_owned_brands(principal.user_id):
            memberships.append(BrandMembership(
                brand_id=brand.id,
                user_id=principal.user_id,
                role=BrandRole.AGENCY_ADMIN,
                is_owner=True,
                brand_name=brand.name,
            ))
            seen.add(brand.id)

        for membership in await self.repository.list_memberships(principal.user_id):
            if membership.brand_id not in seen:
                memberships.append(membership)
                seen.add(membership.brand_id)

        return memberships

    async def get_default_brand(self, principal: Principal) -> Optional[BrandMembership]:
        """Brand shown on ambiguous entry: owned, then is_default, then first"""
        memberships = await self.list_brand_memberships(principal)
        if not memberships:
            return None
        for membership in memberships:
            if membership.is_owner:
                return membership
        for membership in memberships:
            if membership.is_default:
                return membership
        return memberships[0]

    async def list_accessible_campaigns(
        self,
        principal: Principal,
        brand_id: Optional[str] = None,
    ) -> List[CampaignSummary]:
        """
        Campaign list for a principal.

        owner/agency_admin/admin see every brand campaign, campaign managers
        only assigned ones, finance none unless granted operational access,
        creators the campaigns they were invited to.
        """
        if brand_id is None:
            default = await self.get_default_brand(principal)
            brand_id = default.brand_id if default else None

        if brand_id is None:
            if principal.is_system or await self.repository.is_global_admin(principal.user_id):
                return []
            campaign_ids = await self.repository.list_invited_campaign_ids(principal.user_id)
            return await self.repository.list_campaigns_by_ids(campaign_ids)

        access = await self.resolve_access(principal, brand_id=brand_id)

        if access.is_admin or access.role == AccessRole.AGENCY_ADMIN:
            return await self.repository.list_brand_campaigns(brand_id)

        if access.role == AccessRole.FINANCE:
            if self.finance_operational_access:
                return await self.repository.list_brand_campaigns(brand_id)
            return []

        if access.role == AccessRole.CAMPAIGN_MANAGER:
            assignments = await self.repository.list_user_assignments(principal.user_id)
            assigned = {a.campaign_id for a in assignments}
            campaigns = await self.repository.list_brand_campaigns(brand_id)
            return [c for c in campaigns if c.id in assigned]

        campaign_ids = await self.repository.list_invited_campaign_ids(principal.user_id)
        campaigns = await self.repository.list_campaigns_by_ids(campaign_ids)
        return [c for c in campaigns if c.brand_id == brand_id]

    # ====================
    # Assignments
    # ====================

    async def _require_team_admin(
        self, principal: Principal, campaign_id: str
    ) -> OperationResult[AccessResult]:
        access = await self.resolve_access(principal, campaign_id=campaign_id)
        if access.brand_id is None and not access.is_admin:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Campaign not found: {campaign_id}")
        if not access.can_manage_team:
            return OperationResult.fail(
                ErrorKind.AUTHORIZATION,
                "Only brand owners and agency admins can manage campaign assignments",
            )
        return OperationResult.ok(access)

    async def assign_campaign_manager(
        self,
        principal: Principal,
        campaign_id: str,
        user_id: str,
    ) -> OperationResult[CampaignManagerAssignment]:
        """Grant a campaign manager access to exactly one campaign"""
        check = await self._require_team_admin(principal, campaign_id)
        if not check.success:
            return OperationResult.fail(check.error, check.message)

        campaign = await self.repository.get_campaign(campaign_id)
        if campaign is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Campaign not found: {campaign_id}")

        membership = await self.repository.get_membership(campaign.brand_id, user_id)
        if membership is None or membership.role != BrandRole.CAMPAIGN_MANAGER:
            return OperationResult.fail(
                ErrorKind.PRECONDITION,
                f"User {user_id} is not a campaign manager of brand {campaign.brand_id}",
            )

        existing = await self.repository.get_assignment(campaign_id, user_id)
        if existing is not None:
            return OperationResult.ok(existing, "Already assigned")

        assignment = await self.repository.create_assignment(campaign_id, user_id, principal.user_id)
        await self.publisher.publish_assignment_created(
            assignment_id=assignment.id,
            campaign_id=campaign_id,
            brand_id=campaign.brand_id,
            user_id=user_id,
            assigned_by=principal.user_id,
        )
        logger.info(f"Assigned campaign manager {user_id} to campaign {campaign_id}")
        return OperationResult.ok(assignment, "Campaign manager assigned")

    async def unassign_campaign_manager(
        self,
        principal: Principal,
        campaign_id: str,
        user_id: str,
    ) -> OperationResult[bool]:
        check = await self._require_team_admin(principal, campaign_id)
        if not check.success:
            return OperationResult.fail(check.error, check.message)

        removed = await self.repository.delete_assignment(campaign_id, user_id)
        if not removed:
            return OperationResult.fail(
                ErrorKind.NOT_FOUND,
                f"No assignment for user {user_id} on campaign {campaign_id}",
            )

        await self.publisher.publish_assignment_removed(
            campaign_id=campaign_id,
            brand_id=check.value.brand_id,
            user_id=user_id,
            removed_by=principal.user_id,
        )
        logger.info(f"Removed campaign manager {user_id} from campaign {campaign_id}")
        return OperationResult.ok(True, "Campaign manager unassigned")

    async def list_campaign_assignments(
        self,
        principal: Principal,
        campaign_id: str,
    ) -> OperationResult[List[CampaignManagerAssignment]]:
        check = await self._require_team_admin(principal, campaign_id)
        if not check.success:
            return OperationResult.fail(check.error, check.message)
        return OperationResult.ok(await self.repository.list_campaign_assignments(campaign_id))


class CachedAccessEvaluator:
    """
    Caller-side access cache with a staleness window.

    Wraps any object exposing resolve_access(); entries expire after
    ttl_seconds and can be dropped explicitly when roles or assignments change.
    """

    def __init__(
        self,
        evaluator,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.evaluator = evaluator
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, Optional[str], Optional[str]], Tuple[float, AccessResult]] = {}

    async def resolve_access(
        self,
        principal: Principal,
        brand_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> AccessResult:
        key = (principal.user_id, brand_id, campaign_id)
        now = self._clock()
        cached = self._entries.get(key)
        if cached is not None and cached[0] > now:
            return cached[1]

        result = await self.evaluator.resolve_access(principal, brand_id=brand_id, campaign_id=campaign_id)
        self._entries[key] = (now + self.ttl_seconds, result)
        return result

    def invalidate(self, user_id: Optional[str] = None, campaign_id: Optional[str] = None) -> int:
        """Drop entries for a user and/or campaign (everything when both are None)"""
        if user_id is None and campaign_id is None:
            dropped = len(self._entries)
            self._entries.clear()
            return dropped

        stale = [
            key for key in self._entries
            if (user_id is None or key[0] == user_id) and (campaign_id is None or key[2] == campaign_id)
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    # ====================
    # Event-driven invalidation
    # ====================

    # Events after which a cached decision for (user, campaign) is stale
    INVALIDATING_PATTERNS = ("access.assignment.>", "invitation.created")

    async def attach(self, event_bus) -> List[str]:
        """Drop entries as assignment and invitation events arrive on the bus"""
        subscribed = []
        for pattern in self.INVALIDATING_PATTERNS:
            # Live fan-out: every process holds its own cache
            if await event_bus.subscribe_to_events(pattern, self.handle_event):
                subscribed.append(pattern)
        return subscribed

    async def handle_event(self, event) -> int:
        data = getattr(event, "data", None) or {}
        campaign_id = data.get("campaign_id")
        user_id = data.get("user_id") or data.get("creator_id")
        if campaign_id is None and user_id is None:
            return 0
        dropped = self.invalidate(user_id=user_id, campaign_id=campaign_id)
        if dropped:
            logger.debug(f"Access cache dropped {dropped} entries after {getattr(event, 'type', 'event')}")
        return dropped
