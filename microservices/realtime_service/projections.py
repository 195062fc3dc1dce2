"""
Invitation projections

Views that rebuild themselves by re-querying their own scope whenever the
change feed signals. Event payloads are never applied to local state.
"""

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from core.auth_dependencies import Principal
from core.results import OperationResult
from microservices.invitation_service.models import OPEN_STATUSES, Invitation, InvitationStatus

from .change_feed import ChangeKind, ChannelScope
from .router import ChangeFeedRouter, SubscriptionHandle

logger = logging.getLogger(__name__)

# Status changes that produce a user-facing notice
NOTICE_STATUSES = frozenset({
    InvitationStatus.ACCEPTED,
    InvitationStatus.DECLINED,
    InvitationStatus.NEGOTIATING,
    InvitationStatus.WITHDRAWN,
    InvitationStatus.EXPIRED,
})


@runtime_checkable
class InvitationQueryProtocol(Protocol):
    """Read surface shared by InvitationService and InvitationServiceClient"""

    async def list_campaign_invitations(
        self, principal: Principal, campaign_id: str, statuses: Optional[List[InvitationStatus]] = None
    ) -> OperationResult[List[Invitation]]:
        ...

    async def list_brand_negotiations(self, principal: Principal, brand_id: str) -> OperationResult[List[Invitation]]:
        ...

    async def list_creator_invitations(
        self, principal: Principal, statuses: Optional[List[InvitationStatus]] = None
    ) -> List[Invitation]:
        ...


class TransitionNotice(BaseModel):
    """Invitation status change observed between two refreshes"""
    invitation_id: str
    campaign_id: str
    creator_id: str
    previous: Optional[InvitationStatus] = None
    current: InvitationStatus
    observed_at: datetime


class Projection:
    """Base class: attach to a channel, refresh on every relevant signal"""

    scope: ChannelScope
    kinds = frozenset({ChangeKind.INVITATION})

    def __init__(
        self,
        source: InvitationQueryProtocol,
        principal: Principal,
        key: str,
        on_change: Optional[Callable[["Projection"], Any]] = None,
    ):
        self.source = source
        self.principal = principal
        self.key = key
        self.on_change = on_change
        self.version = 0
        self.last_error: Optional[str] = None
        self._handle: Optional[SubscriptionHandle] = None
        self._lock = asyncio.Lock()

    async def attach(self, router: ChangeFeedRouter) -> SubscriptionHandle:
        """Open the channel and load the initial view"""
        handlers = {kind: self.refresh for kind in self.kinds}
        self._handle = await router.open_channel(self.scope, self.key, handlers)
        await self.refresh()
        return self._handle

    async def detach(self) -> None:
        if self._handle is not None:
            await self._handle.close()
            self._handle = None

    @property
    def attached(self) -> bool:
        return self._handle is not None and self._handle.active

    async def refresh(self) -> bool:
        """Re-query the scope; refreshes never interleave"""
        async with self._lock:
            result = await self._load()
            if not result.success:
                self.last_error = result.message
                logger.warning(f"{type(self).__name__}({self.key}) refresh failed: {result.message}")
                return False
            self.last_error = None
            self._apply(result.value)
            self.version += 1

        if self.on_change is not None:
            outcome = self.on_change(self)
            if inspect.isawaitable(outcome):
                await outcome
        return True

    async def _load(self) -> OperationResult[List[Invitation]]:
        raise NotImplementedError

    def _apply(self, invitations: List[Invitation]) -> None:
        raise NotImplementedError


class BrandNegotiationQueue(Projection):
    """Invitations currently negotiating across a brand's campaigns"""

    scope = ChannelScope.BRAND
    kinds = frozenset({ChangeKind.INVITATION, ChangeKind.NEGOTIATION})

    def __init__(self, source, principal, brand_id: str, on_change=None):
        super().__init__(source, principal, brand_id, on_change)
        self.invitations: List[Invitation] = []

    @property
    def count(self) -> int:
        return len(self.invitations)

    async def _load(self):
        return await self.source.list_brand_negotiations(self.principal, self.key)

    def _apply(self, invitations):
        self.invitations = [i for i in invitations if i.status == InvitationStatus.NEGOTIATING]


class CreatorInvitationList(Projection):
    """A creator's invitations, newest first"""

    scope = ChannelScope.CREATOR

    def __init__(self, source, principal, creator_id: str, on_change=None):
        super().__init__(source, principal, creator_id, on_change)
        self.invitations: List[Invitation] = []

    @property
    def pending_action_count(self) -> int:
        """Invitations still waiting on the creator or the brand"""
        return sum(1 for i in self.invitations if i.status in OPEN_STATUSES)

    async def _load(self):
        return OperationResult.ok(await self.source.list_creator_invitations(self.principal))

    def _apply(self, invitations):
        self.invitations = sorted(
            invitations,
            key=lambda i: (i.created_at is not None, i.created_at),
            reverse=True,
        )


class CampaignInvitationBoard(Projection):
    """
    A campaign's invitations with transition notices.

    Each refresh compares statuses with the previous view; changes into
    NOTICE_STATUSES become TransitionNotice entries. The first load only
    sets the baseline.
    """

    scope = ChannelScope.CAMPAIGN
    kinds = frozenset({ChangeKind.INVITATION, ChangeKind.NEGOTIATION})

    def __init__(self, source, principal, campaign_id: str, on_change=None, clock=None):
        super().__init__(source, principal, campaign_id, on_change)
        self.invitations: List[Invitation] = []
        self._seen: Optional[Dict[str, InvitationStatus]] = None
        self._notices: List[TransitionNotice] = []
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def status_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for invitation in self.invitations:
            counts[invitation.status.value] = counts.get(invitation.status.value, 0) + 1
        return counts

    def drain_notices(self) -> List[TransitionNotice]:
        notices, self._notices = self._notices, []
        return notices

    async def _load(self):
        return await self.source.list_campaign_invitations(self.principal, self.key)

    def _apply(self, invitations):
        current = {i.id: i.status for i in invitations}
        if self._seen is not None:
            for invitation in invitations:
                previous = self._seen.get(invitation.id)
                if invitation.status != previous and invitation.status in NOTICE_STATUSES:
                    self._notices.append(TransitionNotice(
                        invitation_id=invitation.id,
                        campaign_id=invitation.campaign_id,
                        creator_id=invitation.creator_id,
                        previous=previous,
                        current=invitation.status,
                        observed_at=self._clock(),
                    ))
        self._seen = current
        self.invitations = invitations


__all__ = [
    "InvitationQueryProtocol",
    "TransitionNotice",
    "Projection",
    "BrandNegotiationQueue",
    "CreatorInvitationList",
    "CampaignInvitationBoard",
]
