"""
Component Tests for invitation projections

Projections read through the real invitation service and refresh from the
change feed fed by that same service's events.
"""

from decimal import Decimal

import pytest

from core.auth_dependencies import Principal
from microservices.invitation_service.models import InvitationStatus, InviteRequest
from microservices.realtime_service.projections import (
    BrandNegotiationQueue,
    CampaignInvitationBoard,
    CreatorInvitationList,
)


@pytest.fixture
def feed_setup(world, make_principal):
    brand = world.brand()
    campaign_id = world.campaign(brand["brand_id"], status="active")
    world.cta_link(campaign_id)
    return {
        "brand_id": brand["brand_id"],
        "campaign_id": campaign_id,
        "owner": Principal(user_id=brand["owner_id"]),
        "creator": make_principal(),
    }


@pytest.fixture
def invite_creator(invitation_service, feed_setup, assertions):
    async def _invite(creator=None):
        creator = creator or feed_setup["creator"]
        request = InviteRequest(
            campaign_id=feed_setup["campaign_id"], creator_id=creator.user_id, base_payout=Decimal("500")
        )
        return assertions.assert_ok(await invitation_service.invite(feed_setup["owner"], request))
    return _invite


class TestBrandNegotiationQueue:
    """Negotiating invitations across a brand"""

    @pytest.mark.asyncio
    async def test_queue_follows_negotiation(self, router, invitation_service, feed_setup, invite_creator):
        # Given: an attached queue with nothing negotiating
        queue = BrandNegotiationQueue(invitation_service, feed_setup["owner"], feed_setup["brand_id"])
        await queue.attach(router)
        assert queue.count == 0
        assert queue.version == 1

        # When: a creator opens negotiation
        invitation = await invite_creator()
        assert queue.count == 0
        await invitation_service.negotiate(feed_setup["creator"], invitation.id, Decimal("50"))

        # Then: the queue refreshed itself from the service
        assert queue.count == 1
        assert queue.invitations[0].id == invitation.id
        assert queue.invitations[0].negotiated_delta == Decimal("50")

        # When: the brand accepts
        await invitation_service.accept(feed_setup["owner"], invitation.id)

        # Then: the invitation leaves the queue
        assert queue.count == 0
        assert queue.last_error is None

    @pytest.mark.asyncio
    async def test_detach_releases_channel(self, router, invitation_service, feed_setup):
        queue = BrandNegotiationQueue(invitation_service, feed_setup["owner"], feed_setup["brand_id"])
        await queue.attach(router)
        assert queue.attached
        assert router.channel_count == 1

        await queue.detach()

        assert not queue.attached
        assert router.channel_count == 0

    @pytest.mark.asyncio
    async def test_outsider_load_fails_softly(self, router, invitation_service, feed_setup, make_principal):
        queue = BrandNegotiationQueue(invitation_service, make_principal(), feed_setup["brand_id"])

        await queue.attach(router)

        assert queue.version == 0
        assert queue.count == 0
        assert queue.last_error is not None


class TestCreatorInvitationList:
    """A creator's own invitations"""

    @pytest.mark.asyncio
    async def test_pending_action_count(self, router, invitation_service, feed_setup, invite_creator):
        creator = feed_setup["creator"]
        inbox = CreatorInvitationList(invitation_service, creator, creator.user_id)
        await inbox.attach(router)
        assert inbox.pending_action_count == 0

        first = await invite_creator()
        assert inbox.pending_action_count == 1

        await invitation_service.decline(creator, first.id, "schedule clash")

        assert inbox.pending_action_count == 0
        assert [i.status for i in inbox.invitations] == [InvitationStatus.DECLINED]

    @pytest.mark.asyncio
    async def test_other_creators_do_not_refresh(
        self, router, invitation_service, feed_setup, invite_creator, make_principal
    ):
        creator = feed_setup["creator"]
        inbox = CreatorInvitationList(invitation_service, creator, creator.user_id)
        await inbox.attach(router)

        await invite_creator(make_principal())

        assert inbox.version == 1
        assert inbox.invitations == []


class TestCampaignInvitationBoard:
    """Campaign board with transition notices"""

    @pytest.mark.asyncio
    async def test_notices_for_status_changes(self, router, invitation_service, feed_setup, invite_creator):
        changes = []
        board = CampaignInvitationBoard(
            invitation_service, feed_setup["owner"], feed_setup["campaign_id"],
            on_change=lambda projection: changes.append(projection.version),
        )
        await board.attach(router)
        assert board.drain_notices() == []

        # Pending is the baseline, not a notice
        invitation = await invite_creator()
        assert board.status_counts() == {"pending": 1}
        assert board.drain_notices() == []

        await invitation_service.negotiate(feed_setup["creator"], invitation.id, Decimal("25"))
        await invitation_service.accept(feed_setup["creator"], invitation.id)

        notices = board.drain_notices()
        assert [(n.previous, n.current) for n in notices] == [
            (InvitationStatus.PENDING, InvitationStatus.NEGOTIATING),
            (InvitationStatus.NEGOTIATING, InvitationStatus.ACCEPTED),
        ]
        assert all(n.invitation_id == invitation.id for n in notices)
        assert board.status_counts() == {"accepted": 1}
        assert board.drain_notices() == []
        assert changes == sorted(changes)
        assert changes[-1] == board.version

    @pytest.mark.asyncio
    async def test_initial_load_sets_baseline(self, router, invitation_service, feed_setup, invite_creator):
        invitation = await invite_creator()
        await invitation_service.withdraw(feed_setup["owner"], invitation.id)

        board = CampaignInvitationBoard(invitation_service, feed_setup["owner"], feed_setup["campaign_id"])
        await board.attach(router)

        assert board.status_counts() == {"withdrawn": 1}
        assert board.drain_notices() == []
