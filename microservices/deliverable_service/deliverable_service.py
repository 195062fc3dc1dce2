"""
Deliverable Service Business Logic

Submission and review lifecycle per (deliverable, creator):
none-submitted -> submitted -> {approved, revision_requested, rejected};
revision_requested / rejected -> submitted through a new submission row.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from core.auth_dependencies import Principal
from core.results import ErrorKind, OperationResult

from .deliverable_repository import SubmissionBlockedError
from .events.publishers import DeliverableEventPublisher
from .models import (
    Deliverable,
    DeliverableStatusEntry,
    Review,
    ReviewAction,
    ReviewOutcome,
    Submission,
    SubmissionStatus,
)
from .protocols import AccessEvaluatorProtocol, DeliverableRepositoryProtocol, EventBusProtocol
from .review_fold import all_approved, fold_deliverable_status, latest_submission

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeliverableService:
    """Deliverable submission and review workflow"""

    # Campaign statuses that take submissions
    ACCEPTING_CAMPAIGN_STATUSES = frozenset({"active", "reviewing"})

    def __init__(
        self,
        repository: DeliverableRepositoryProtocol,
        access: AccessEvaluatorProtocol,
        event_bus: Optional[EventBusProtocol] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.access = access
        self.publisher = DeliverableEventPublisher(event_bus)
        self._clock = clock

    async def _can_view(self, principal: Principal, campaign_id: str, creator_id: str) -> bool:
        if principal.is_system or principal.user_id == creator_id:
            return True
        access = await self.access.resolve_access(principal, campaign_id=campaign_id)
        return access.can_access_campaign and access.is_brand_side

    # ====================
    # Submit
    # ====================

    async def submit(
        self,
        principal: Principal,
        campaign_id: str,
        deliverable_id: str,
        submission_url: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> OperationResult[Submission]:
        """Creator appends a submission for one deliverable"""
        campaign = await self.repository.get_campaign(campaign_id)
        if campaign is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Campaign not found: {campaign_id}")

        invitation_id = await self.repository.get_accepted_invitation_id(campaign_id, principal.user_id)
        if invitation_id is None:
            return OperationResult.fail(
                ErrorKind.PRECONDITION,
                f"Creator {principal.user_id} has no accepted invitation for campaign {campaign_id}",
            )
        if campaign.status not in self.ACCEPTING_CAMPAIGN_STATUSES:
            return OperationResult.fail(
                ErrorKind.PRECONDITION,
                f"Campaign {campaign_id} is {campaign.status} and does not accept submissions",
            )

        deliverable = await self.repository.get_deliverable(deliverable_id)
        if deliverable is None or deliverable.campaign_id != campaign_id:
            return OperationResult.fail(
                ErrorKind.NOT_FOUND, f"Deliverable {deliverable_id} not found in campaign {campaign_id}"
            )

        now = self._clock()
        submission = Submission(
            id=str(uuid.uuid4()),
            campaign_id=campaign_id,
            deliverable_id=deliverable_id,
            creator_id=principal.user_id,
            invitation_id=invitation_id,
            submission_url=submission_url,
            metadata=metadata or {},
            status=SubmissionStatus.SUBMITTED,
            submitted_at=now,
            updated_at=now,
        )
        try:
            await self.repository.create_submission(submission)
        except SubmissionBlockedError as e:
            return OperationResult.fail(
                ErrorKind.PRECONDITION,
                f"Deliverable {deliverable_id} already has a submission that is {e.status.value}",
            )

        await self.publisher.publish_submission_created(submission, campaign.brand_id)
        logger.info(
            f"Submission {submission.id} for deliverable #{deliverable.deliverable_index} "
            f"of campaign {campaign_id} by {principal.user_id}"
        )
        return OperationResult.ok(submission, "Submission received")

    # ====================
    # Review
    # ====================

    async def review(
        self,
        principal: Principal,
        submission_id: str,
        action: ReviewAction,
        feedback: Optional[str] = None,
    ) -> OperationResult[ReviewOutcome]:
        """
        Append a review for the latest submission of a deliverable.

        Reviews are never guarded against each other: the cached status is
        refolded from the whole review log in the append transaction, so the
        last review to commit decides. An approval recomputes the
        campaign-wide approval flag for the creator and publishes the
        payment-eligibility signal when every deliverable is approved.
        """
        submission = await self.repository.get_submission(submission_id)
        if submission is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Submission not found: {submission_id}")

        access = await self.access.resolve_access(principal, campaign_id=submission.campaign_id)
        if not access.can_operate_campaign:
            return OperationResult.fail(
                ErrorKind.AUTHORIZATION,
                f"Principal {principal.user_id} cannot review submissions for campaign {submission.campaign_id}",
            )

        siblings = await self.repository.list_submissions(
            submission.campaign_id, submission.creator_id, [submission.deliverable_id]
        )
        latest = latest_submission(siblings)
        if latest is not None and latest.id != submission.id:
            return OperationResult.fail(
                ErrorKind.PRECONDITION,
                f"Submission {submission_id} was superseded by {latest.id}",
            )

        review = Review(
            id=str(uuid.uuid4()),
            submission_id=submission.id,
            campaign_id=submission.campaign_id,
            deliverable_id=submission.deliverable_id,
            creator_id=submission.creator_id,
            reviewer_id=principal.user_id,
            action=action,
            feedback=feedback,
            created_at=self._clock(),
        )
        new_status = await self.repository.append_review(review)
        if new_status is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Submission not found: {submission_id}")

        reviewed = submission.model_copy(update={"status": new_status, "updated_at": review.created_at})
        await self.publisher.publish_submission_reviewed(review, reviewed, access.brand_id)
        logger.info(f"Submission {submission_id} reviewed by {principal.user_id}: {action.value}")

        outcome = ReviewOutcome(review=review, submission=reviewed)
        if action == ReviewAction.APPROVED:
            entries = await self._status_entries(submission.campaign_id, submission.creator_id)
            outcome.all_deliverables_approved = all_approved(entries)
            if outcome.all_deliverables_approved:
                await self.publisher.publish_all_approved(
                    campaign_id=submission.campaign_id,
                    brand_id=access.brand_id,
                    creator_id=submission.creator_id,
                    invitation_id=submission.invitation_id,
                    deliverable_count=len(entries),
                )
                logger.info(
                    f"All deliverables approved for creator {submission.creator_id} "
                    f"on campaign {submission.campaign_id}"
                )
        return OperationResult.ok(outcome)

    # ====================
    # Status queries
    # ====================

    async def _status_entries(self, campaign_id: str, creator_id: str) -> List[DeliverableStatusEntry]:
        deliverables = await self.repository.list_deliverables(campaign_id)
        submissions = await self.repository.list_submissions(campaign_id, creator_id)

        by_deliverable: Dict[str, List[Submission]] = {}
        for submission in submissions:
            by_deliverable.setdefault(submission.deliverable_id, []).append(submission)

        entries = []
        for deliverable in deliverables:
            attempts = by_deliverable.get(deliverable.id, [])
            latest = latest_submission(attempts)
            reviews = {latest.id: await self.repository.list_reviews(latest.id)} if latest else {}
            entries.append(DeliverableStatusEntry(
                deliverable=deliverable,
                status=fold_deliverable_status(attempts, reviews),
                latest_submission=latest,
                submission_count=len(attempts),
            ))
        return entries

    async def get_deliverable_status(
        self, principal: Principal, campaign_id: str, creator_id: str
    ) -> OperationResult[List[DeliverableStatusEntry]]:
        """Per-deliverable status in deliverable_index order"""
        if not await self._can_view(principal, campaign_id, creator_id):
            return OperationResult.fail(ErrorKind.AUTHORIZATION, "Not allowed to view deliverable status")
        return OperationResult.ok(await self._status_entries(campaign_id, creator_id))

    async def all_deliverables_approved(self, campaign_id: str, creator_id: str) -> bool:
        return all_approved(await self._status_entries(campaign_id, creator_id))

    async def list_campaign_deliverables(
        self, principal: Principal, campaign_id: str
    ) -> OperationResult[List[Deliverable]]:
        access = await self.access.resolve_access(principal, campaign_id=campaign_id)
        if not (principal.is_system or access.can_access_campaign):
            return OperationResult.fail(ErrorKind.AUTHORIZATION, f"No access to campaign {campaign_id}")
        return OperationResult.ok(await self.repository.list_deliverables(campaign_id))

    async def list_submissions(
        self, principal: Principal, campaign_id: str, creator_id: Optional[str] = None
    ) -> OperationResult[List[Submission]]:
        """One creator's attempts, or every creator's when creator_id is None (brand side only)"""
        if creator_id is None:
            access = await self.access.resolve_access(principal, campaign_id=campaign_id)
            allowed = principal.is_system or (access.can_access_campaign and access.is_brand_side)
        else:
            allowed = await self._can_view(principal, campaign_id, creator_id)
        if not allowed:
            return OperationResult.fail(ErrorKind.AUTHORIZATION, "Not allowed to view submissions")
        return OperationResult.ok(await self.repository.list_submissions(campaign_id, creator_id))

    async def get_review_history(
        self, principal: Principal, submission_id: str
    ) -> OperationResult[List[Review]]:
        submission = await self.repository.get_submission(submission_id)
        if submission is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Submission not found: {submission_id}")
        if not await self._can_view(principal, submission.campaign_id, submission.creator_id):
            return OperationResult.fail(ErrorKind.AUTHORIZATION, "Not allowed to view reviews")
        return OperationResult.ok(await self.repository.list_reviews(submission_id))


__all__ = ["DeliverableService"]
