"""
Component Tests for access cache invalidation

A CachedAccessEvaluator attached to the event bus drops its decisions when
assignments change or a creator is invited, instead of waiting for the TTL.
"""

from decimal import Decimal

import pytest
import pytest_asyncio

from core.auth_dependencies import Principal
from core.results import ErrorKind
from microservices.access_service.access_service import CachedAccessEvaluator
from microservices.deliverable_service.deliverable_repository import DeliverableRepository
from microservices.deliverable_service.factory import DeliverableServiceFactory
from microservices.deliverable_service.models import ReviewAction
from microservices.invitation_service.models import DeliverableTerms, InviteRequest


@pytest_asyncio.fixture
async def cached_access(access_service, event_bus):
    cache = CachedAccessEvaluator(access_service, ttl_seconds=300)
    await cache.attach(event_bus)
    return cache


@pytest.fixture
def team_setup(world, make_principal):
    """Active campaign with one deliverable, a submitting creator and a brand manager"""
    brand = world.brand()
    campaign_id = world.campaign(brand["brand_id"], status="active")
    (deliverable_id,) = world.deliverables(campaign_id, "Launch reel")
    creator = make_principal()
    world.accepted_invitation(campaign_id, brand["brand_id"], creator.user_id)
    manager_id = world.member(brand["brand_id"], "campaign_manager")
    return {
        "brand_id": brand["brand_id"],
        "campaign_id": campaign_id,
        "deliverable_id": deliverable_id,
        "creator": creator,
        "owner": Principal(user_id=brand["owner_id"]),
        "manager": Principal(user_id=manager_id),
    }


class TestAssignmentInvalidation:
    """Assignment events evict cached decisions"""

    @pytest.mark.asyncio
    async def test_unassigned_manager_loses_review_rights(
        self, cached_access, access_service, store, event_bus, clock, team_setup, assertions
    ):
        deliverables = DeliverableServiceFactory.create_for_testing(
            DeliverableRepository(db=store), cached_access, event_bus, clock=clock
        )
        campaign_id = team_setup["campaign_id"]
        manager = team_setup["manager"]

        # Given: an assigned manager whose grant is already cached
        assertions.assert_ok(await access_service.assign_campaign_manager(
            team_setup["owner"], campaign_id, manager.user_id
        ))
        granted = await cached_access.resolve_access(manager, campaign_id=campaign_id)
        assert granted.can_operate_campaign
        submission = assertions.assert_ok(await deliverables.submit(
            team_setup["creator"], campaign_id, team_setup["deliverable_id"], "https://video.example/v/1"
        ))

        # When: the owner removes the assignment
        assertions.assert_ok(await access_service.unassign_campaign_manager(
            team_setup["owner"], campaign_id, manager.user_id
        ))

        # Then: the next review is refused without waiting for the TTL
        result = await deliverables.review(manager, submission.id, ReviewAction.APPROVED)
        assertions.assert_fails(result, ErrorKind.AUTHORIZATION)

    @pytest.mark.asyncio
    async def test_new_assignment_is_seen_immediately(
        self, cached_access, access_service, team_setup, assertions
    ):
        campaign_id = team_setup["campaign_id"]
        manager = team_setup["manager"]
        denied = await cached_access.resolve_access(manager, campaign_id=campaign_id)
        assert not denied.can_access_campaign

        assertions.assert_ok(await access_service.assign_campaign_manager(
            team_setup["owner"], campaign_id, manager.user_id
        ))

        granted = await cached_access.resolve_access(manager, campaign_id=campaign_id)
        assert granted.can_access_campaign

    @pytest.mark.asyncio
    async def test_other_entries_survive(self, cached_access, access_service, team_setup, assertions):
        campaign_id = team_setup["campaign_id"]
        await cached_access.resolve_access(team_setup["owner"], campaign_id=campaign_id)
        await cached_access.resolve_access(team_setup["manager"], campaign_id=campaign_id)

        assertions.assert_ok(await access_service.assign_campaign_manager(
            team_setup["owner"], campaign_id, team_setup["manager"].user_id
        ))

        # The owner's entry is untouched; a second invalidation of the owner finds it
        assert cached_access.invalidate(user_id=team_setup["owner"].user_id) == 1


class TestInvitationInvalidation:
    """invitation.created evicts the creator's negative decision"""

    @pytest.mark.asyncio
    async def test_invited_creator_reaches_campaign(
        self, cached_access, invitation_service, world, make_principal, assertions
    ):
        brand = world.brand()
        campaign_id = world.campaign(brand["brand_id"], status="active")
        creator = make_principal()

        # Given: a cached denial from before the invitation
        before = await cached_access.resolve_access(creator, campaign_id=campaign_id)
        assert not before.can_access_campaign

        # When: the brand invites the creator
        assertions.assert_ok(await invitation_service.invite(
            Principal(user_id=brand["owner_id"]),
            InviteRequest(
                campaign_id=campaign_id,
                creator_id=creator.user_id,
                base_payout=Decimal("500"),
                deliverables=[DeliverableTerms(title="Launch reel", deliverable_type="video")],
            ),
        ))

        # Then: the creator's access is re-resolved
        after = await cached_access.resolve_access(creator, campaign_id=campaign_id)
        assert after.can_access_campaign

    @pytest.mark.asyncio
    async def test_event_without_keys_is_ignored(self, cached_access, event_bus, team_setup):
        await cached_access.resolve_access(team_setup["owner"], campaign_id=team_setup["campaign_id"])

        await event_bus.simulate_event("access.assignment.removed", {})

        assert cached_access.invalidate() == 1
