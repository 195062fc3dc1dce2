"""
Component Tests for the Deliverable Workflow

Submission gating, review folding and the campaign-wide approval signal.
"""

import asyncio

import pytest

from core.auth_dependencies import Principal
from core.results import ErrorKind
from microservices.deliverable_service.models import REVIEW_OUTCOMES, ReviewAction, SubmissionStatus
from microservices.deliverable_service.review_fold import fold_submission_status


@pytest.fixture
def deliverable_setup(world, make_principal):
    """Active campaign with two deliverables and a creator holding an accepted invitation"""
    brand = world.brand()
    campaign_id = world.campaign(brand["brand_id"], status="active")
    first, second = world.deliverables(campaign_id, "Teaser", "Launch reel")
    creator = make_principal()
    invitation_id = world.accepted_invitation(campaign_id, brand["brand_id"], creator.user_id)
    return {
        "brand_id": brand["brand_id"],
        "campaign_id": campaign_id,
        "first": first,
        "second": second,
        "creator": creator,
        "owner": Principal(user_id=brand["owner_id"]),
        "invitation_id": invitation_id,
    }


@pytest.fixture
def submit(deliverable_service, deliverable_setup, assertions):
    async def _submit(deliverable_id: str, url: str = "https://video.example/v/1"):
        result = await deliverable_service.submit(
            deliverable_setup["creator"], deliverable_setup["campaign_id"], deliverable_id, url
        )
        return assertions.assert_ok(result)
    return _submit


class TestSubmit:
    """Creator submissions"""

    @pytest.mark.asyncio
    async def test_submit_records_submission(self, submit, deliverable_setup, event_bus):
        submission = await submit(deliverable_setup["first"])

        assert submission.status == SubmissionStatus.SUBMITTED
        assert submission.invitation_id == deliverable_setup["invitation_id"]
        event_bus.assert_event_published(
            "submission.created", {"row_id": submission.id, "brand_id": deliverable_setup["brand_id"]}
        )

    @pytest.mark.asyncio
    async def test_pending_submission_blocks_resubmit(self, submit, deliverable_service, deliverable_setup, assertions):
        await submit(deliverable_setup["first"])

        result = await deliverable_service.submit(
            deliverable_setup["creator"], deliverable_setup["campaign_id"], deliverable_setup["first"],
            "https://video.example/v/2",
        )

        assertions.assert_fails(result, ErrorKind.PRECONDITION)

    @pytest.mark.asyncio
    async def test_approved_submission_blocks_resubmit(
        self, submit, deliverable_service, deliverable_setup, assertions
    ):
        submission = await submit(deliverable_setup["first"])
        await deliverable_service.review(deliverable_setup["owner"], submission.id, ReviewAction.APPROVED)

        result = await deliverable_service.submit(
            deliverable_setup["creator"], deliverable_setup["campaign_id"], deliverable_setup["first"],
            "https://video.example/v/2",
        )

        assertions.assert_fails(result, ErrorKind.PRECONDITION)

    @pytest.mark.asyncio
    async def test_revision_allows_resubmit(self, submit, deliverable_service, deliverable_setup, assertions):
        submission = await submit(deliverable_setup["first"])
        await deliverable_service.review(
            deliverable_setup["owner"], submission.id, ReviewAction.REVISION_REQUESTED, "brighter intro"
        )

        again = await submit(deliverable_setup["first"], "https://video.example/v/2")

        assert again.id != submission.id
        attempts = assertions.assert_ok(await deliverable_service.list_submissions(
            deliverable_setup["creator"], deliverable_setup["campaign_id"], deliverable_setup["creator"].user_id
        ))
        assert [s.id for s in attempts] == [submission.id, again.id]

    @pytest.mark.asyncio
    async def test_requires_accepted_invitation(self, deliverable_service, deliverable_setup, make_principal, assertions):
        result = await deliverable_service.submit(
            make_principal(), deliverable_setup["campaign_id"], deliverable_setup["first"], "https://video.example/v/1"
        )

        assertions.assert_fails(result, ErrorKind.PRECONDITION)

    @pytest.mark.asyncio
    async def test_campaign_must_accept_submissions(self, deliverable_service, world, deliverable_setup, assertions):
        draft = world.campaign(deliverable_setup["brand_id"], status="draft")
        (deliverable_id,) = world.deliverables(draft, "Teaser")
        world.accepted_invitation(draft, deliverable_setup["brand_id"], deliverable_setup["creator"].user_id)

        result = await deliverable_service.submit(
            deliverable_setup["creator"], draft, deliverable_id, "https://video.example/v/1"
        )

        assertions.assert_fails(result, ErrorKind.PRECONDITION)

    @pytest.mark.asyncio
    async def test_deliverable_must_belong_to_campaign(self, deliverable_service, world, deliverable_setup, assertions):
        other = world.campaign(deliverable_setup["brand_id"])
        (foreign,) = world.deliverables(other, "Elsewhere")

        result = await deliverable_service.submit(
            deliverable_setup["creator"], deliverable_setup["campaign_id"], foreign, "https://video.example/v/1"
        )

        assertions.assert_fails(result, ErrorKind.NOT_FOUND)

    @pytest.mark.asyncio
    async def test_unknown_campaign(self, deliverable_service, deliverable_setup, assertions):
        result = await deliverable_service.submit(
            deliverable_setup["creator"], "cmp_missing", deliverable_setup["first"], "https://video.example/v/1"
        )

        assertions.assert_fails(result, ErrorKind.NOT_FOUND)


class TestReview:
    """Brand reviews"""

    @pytest.mark.asyncio
    async def test_two_deliverable_approval_flow(
        self, submit, deliverable_service, deliverable_setup, event_bus, assertions
    ):
        """Approval of both deliverables flips the campaign-wide flag, a revision flips it back"""
        owner = deliverable_setup["owner"]
        campaign_id = deliverable_setup["campaign_id"]
        creator_id = deliverable_setup["creator"].user_id

        # Given: both deliverables submitted
        first = await submit(deliverable_setup["first"])
        second = await submit(deliverable_setup["second"])

        # When: the first is approved
        outcome = assertions.assert_ok(await deliverable_service.review(owner, first.id, ReviewAction.APPROVED))

        # Then: not yet all approved
        assert outcome.submission.status == SubmissionStatus.APPROVED
        assert outcome.all_deliverables_approved is False
        assert await deliverable_service.all_deliverables_approved(campaign_id, creator_id) is False

        # When: the second is approved
        outcome = assertions.assert_ok(await deliverable_service.review(owner, second.id, ReviewAction.APPROVED))

        # Then: every deliverable is approved and the signal is published once
        assert outcome.all_deliverables_approved is True
        assert await deliverable_service.all_deliverables_approved(campaign_id, creator_id) is True
        signals = event_bus.get_published("deliverable.all_approved")
        assert len(signals) == 1
        assert signals[0]["data"]["deliverable_count"] == 2
        assert signals[0]["data"]["invitation_id"] == deliverable_setup["invitation_id"]

        # When: the brand asks for a revision on the already-approved first deliverable
        flipped = assertions.assert_ok(
            await deliverable_service.review(owner, first.id, ReviewAction.REVISION_REQUESTED, "new cut")
        )

        # Then: the flag drops until the resubmission is approved
        assert flipped.submission.status == SubmissionStatus.REVISION_REQUESTED
        assert await deliverable_service.all_deliverables_approved(campaign_id, creator_id) is False

        resubmitted = await submit(deliverable_setup["first"], "https://video.example/v/3")
        final = assertions.assert_ok(await deliverable_service.review(owner, resubmitted.id, ReviewAction.APPROVED))
        assert final.all_deliverables_approved is True
        assert len(event_bus.get_published("deliverable.all_approved")) == 2

    @pytest.mark.asyncio
    async def test_superseded_submission_cannot_be_reviewed(
        self, submit, deliverable_service, deliverable_setup, assertions
    ):
        owner = deliverable_setup["owner"]
        old = await submit(deliverable_setup["first"])
        await deliverable_service.review(owner, old.id, ReviewAction.REJECTED, "off brief")
        await submit(deliverable_setup["first"], "https://video.example/v/2")

        result = await deliverable_service.review(owner, old.id, ReviewAction.APPROVED)

        assertions.assert_fails(result, ErrorKind.PRECONDITION)

    @pytest.mark.asyncio
    async def test_unassigned_manager_cannot_review(
        self, submit, deliverable_service, world, deliverable_setup, assertions
    ):
        submission = await submit(deliverable_setup["first"])
        manager = Principal(user_id=world.member(deliverable_setup["brand_id"], "campaign_manager"))
        finance = Principal(user_id=world.member(deliverable_setup["brand_id"], "finance"))

        for reviewer in (manager, finance, deliverable_setup["creator"]):
            result = await deliverable_service.review(reviewer, submission.id, ReviewAction.APPROVED)
            assertions.assert_fails(result, ErrorKind.AUTHORIZATION)

    @pytest.mark.asyncio
    async def test_assigned_manager_reviews(self, submit, deliverable_service, world, deliverable_setup, assertions):
        submission = await submit(deliverable_setup["first"])
        manager_id = world.member(deliverable_setup["brand_id"], "campaign_manager")
        world.assign(deliverable_setup["campaign_id"], manager_id)

        outcome = assertions.assert_ok(
            await deliverable_service.review(Principal(user_id=manager_id), submission.id, ReviewAction.APPROVED)
        )

        assert outcome.review.reviewer_id == manager_id

    @pytest.mark.asyncio
    async def test_concurrent_reviews_both_land(
        self, submit, deliverable_service, deliverable_setup, store, assertions
    ):
        submission = await submit(deliverable_setup["first"])
        owner = deliverable_setup["owner"]

        # When: two reviewers act on the same submission at once
        approved, rejected = await asyncio.gather(
            deliverable_service.review(owner, submission.id, ReviewAction.APPROVED),
            deliverable_service.review(owner, submission.id, ReviewAction.REJECTED),
        )

        # Then: neither is refused and both rows are in the log
        assert approved.success and rejected.success
        history = assertions.assert_ok(await deliverable_service.get_review_history(owner, submission.id))
        assert len(history) == 2

        # And: the cached status is the fold of the log, decided by the last review
        (row,) = store.rows("creator_submissions", id=submission.id)
        assert row["status"] == fold_submission_status(history).value
        assert row["status"] == REVIEW_OUTCOMES[history[-1].action].value

    @pytest.mark.asyncio
    async def test_identical_concurrent_approvals(self, submit, deliverable_service, deliverable_setup, store):
        submission = await submit(deliverable_setup["first"])
        owner = deliverable_setup["owner"]

        first, second = await asyncio.gather(
            deliverable_service.review(owner, submission.id, ReviewAction.APPROVED),
            deliverable_service.review(owner, submission.id, ReviewAction.APPROVED),
        )

        assert first.success and second.success
        assert first.value.submission.status == SubmissionStatus.APPROVED
        assert second.value.submission.status == SubmissionStatus.APPROVED
        assert len(store.rows("submission_reviews", submission_id=submission.id)) == 2

    @pytest.mark.asyncio
    async def test_review_history_in_order(self, submit, deliverable_service, deliverable_setup, assertions):
        owner = deliverable_setup["owner"]
        submission = await submit(deliverable_setup["first"])
        await deliverable_service.review(owner, submission.id, ReviewAction.APPROVED)
        await deliverable_service.review(owner, submission.id, ReviewAction.REJECTED, "license issue")

        reviews = assertions.assert_ok(
            await deliverable_service.get_review_history(deliverable_setup["creator"], submission.id)
        )

        assert [r.action for r in reviews] == [ReviewAction.APPROVED, ReviewAction.REJECTED]
        assert fold_submission_status(reviews) == SubmissionStatus.REJECTED

    @pytest.mark.asyncio
    async def test_unknown_submission(self, deliverable_service, deliverable_setup, assertions):
        result = await deliverable_service.review(deliverable_setup["owner"], "sub_missing", ReviewAction.APPROVED)

        assertions.assert_fails(result, ErrorKind.NOT_FOUND)


class TestDeliverableStatus:
    """Per-deliverable status view"""

    @pytest.mark.asyncio
    async def test_status_in_index_order(self, submit, deliverable_service, deliverable_setup, assertions):
        await submit(deliverable_setup["second"])

        entries = assertions.assert_ok(await deliverable_service.get_deliverable_status(
            deliverable_setup["owner"], deliverable_setup["campaign_id"], deliverable_setup["creator"].user_id
        ))

        assert [e.deliverable.title for e in entries] == ["Teaser", "Launch reel"]
        assert entries[0].status is None
        assert entries[0].submission_count == 0
        assert entries[1].status == SubmissionStatus.SUBMITTED
        assert entries[1].submission_count == 1

    @pytest.mark.asyncio
    async def test_campaign_without_deliverables_is_not_approved(
        self, deliverable_service, world, deliverable_setup
    ):
        empty = world.campaign(deliverable_setup["brand_id"])

        assert await deliverable_service.all_deliverables_approved(
            empty, deliverable_setup["creator"].user_id
        ) is False

    @pytest.mark.asyncio
    async def test_stranger_cannot_view_status(
        self, deliverable_service, deliverable_setup, make_principal, assertions
    ):
        result = await deliverable_service.get_deliverable_status(
            make_principal(), deliverable_setup["campaign_id"], deliverable_setup["creator"].user_id
        )

        assertions.assert_fails(result, ErrorKind.AUTHORIZATION)

    @pytest.mark.asyncio
    async def test_invited_creator_lists_deliverables(self, deliverable_service, deliverable_setup, assertions):
        deliverables = assertions.assert_ok(await deliverable_service.list_campaign_deliverables(
            deliverable_setup["creator"], deliverable_setup["campaign_id"]
        ))

        assert [d.deliverable_index for d in deliverables] == [1, 2]


class TestCampaignSubmissions:
    """Campaign-wide submission listing"""

    @pytest.mark.asyncio
    async def test_owner_sees_every_creator(
        self, submit, deliverable_service, world, deliverable_setup, make_principal, assertions
    ):
        # Given: a second creator with an accepted invitation
        other = make_principal()
        world.accepted_invitation(deliverable_setup["campaign_id"], deliverable_setup["brand_id"], other.user_id)
        await submit(deliverable_setup["first"])
        assertions.assert_ok(await deliverable_service.submit(
            other, deliverable_setup["campaign_id"], deliverable_setup["first"], "https://video.example/v/2"
        ))

        # When: the owner lists without a creator filter
        submissions = assertions.assert_ok(await deliverable_service.list_submissions(
            deliverable_setup["owner"], deliverable_setup["campaign_id"]
        ))

        # Then: both creators' submissions are returned
        assert {s.creator_id for s in submissions} == {deliverable_setup["creator"].user_id, other.user_id}

    @pytest.mark.asyncio
    async def test_creator_cannot_list_campaign_wide(self, deliverable_service, deliverable_setup, assertions):
        result = await deliverable_service.list_submissions(
            deliverable_setup["creator"], deliverable_setup["campaign_id"]
        )

        assertions.assert_fails(result, ErrorKind.AUTHORIZATION)
