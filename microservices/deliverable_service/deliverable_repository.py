"""
Deliverable Repository

Data access layer for campaign deliverables, creator submissions and the
submission review log.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClient
from microservices.access_service.models import CampaignSummary

from .models import (
    BLOCKING_STATUSES,
    Deliverable,
    Review,
    ReviewAction,
    Submission,
    SubmissionStatus,
)
from .review_fold import fold_submission_status

logger = logging.getLogger(__name__)


class SubmissionBlockedError(Exception):
    """Latest submission for the deliverable is still pending or approved"""

    def __init__(self, submission_id: str, status: SubmissionStatus):
        super().__init__(f"Submission {submission_id} is {status.value}")
        self.submission_id = submission_id
        self.status = status


class DeliverableRepository:
    """Deliverable repository - PostgreSQL (Async)"""

    def __init__(self, config: Optional[ConfigManager] = None, db=None):
        if db is None:
            if config is None:
                config = ConfigManager("deliverable_service")
            db = PostgresClient("deliverable_service", config=config)
        self.db = db

        # Table names
        self.campaigns_table = "campaigns"
        self.invitations_table = "campaign_invitations"
        self.deliverables_table = "campaign_deliverables"
        self.submissions_table = "creator_submissions"
        self.reviews_table = "submission_reviews"

    async def initialize(self):
        logger.info("Deliverable repository initialized")

    async def close(self):
        if hasattr(self.db, "close"):
            await self.db.close()

    async def health_check(self) -> bool:
        if hasattr(self.db, "health_check"):
            return await self.db.health_check()
        return True

    # ====================
    # Campaign context
    # ====================

    async def get_campaign(self, campaign_id: str) -> Optional[CampaignSummary]:
        row = await self.db.select_one(self.campaigns_table, {"id": campaign_id})
        if not row:
            return None
        return CampaignSummary(
            id=row["id"],
            brand_id=row["brand_id"],
            name=row.get("name"),
            status=row.get("status", "draft"),
            created_at=row.get("created_at"),
        )

    async def get_accepted_invitation_id(self, campaign_id: str, creator_id: str) -> Optional[str]:
        row = await self.db.select_one(
            self.invitations_table,
            {"campaign_id": campaign_id, "creator_id": creator_id, "status": "accepted"},
        )
        return row["id"] if row else None

    # ====================
    # Deliverables
    # ====================

    async def get_deliverable(self, deliverable_id: str) -> Optional[Deliverable]:
        row = await self.db.select_one(self.deliverables_table, {"id": deliverable_id})
        return Deliverable(**row) if row else None

    async def list_deliverables(self, campaign_id: str) -> List[Deliverable]:
        rows = await self.db.select(
            self.deliverables_table, {"campaign_id": campaign_id}, order_by=["deliverable_index"]
        )
        return [Deliverable(**r) for r in rows]

    # ====================
    # Submissions
    # ====================

    async def get_submission(self, submission_id: str) -> Optional[Submission]:
        row = await self.db.select_one(self.submissions_table, {"id": submission_id})
        return self._row_to_submission(row) if row else None

    async def list_submissions(
        self,
        campaign_id: str,
        creator_id: Optional[str] = None,
        deliverable_ids: Optional[Sequence[str]] = None,
    ) -> List[Submission]:
        """Submissions for a campaign, oldest first; one creator when creator_id is given"""
        filters: Dict[str, Any] = {"campaign_id": campaign_id}
        if creator_id is not None:
            filters["creator_id"] = creator_id
        if deliverable_ids is not None:
            filters["deliverable_id"] = list(deliverable_ids)
        rows = await self.db.select(self.submissions_table, filters, order_by=["submitted_at"])
        return [self._row_to_submission(r) for r in rows]

    async def create_submission(self, submission: Submission) -> Submission:
        """
        Append a submission row.

        The latest existing submission for the (deliverable, creator) pair is
        re-read inside the transaction; a pending or approved one blocks the
        insert with SubmissionBlockedError.
        """
        async with self.db.transaction() as tx:
            latest = await tx.select_one(
                self.submissions_table,
                {"deliverable_id": submission.deliverable_id, "creator_id": submission.creator_id},
                order_by=["-submitted_at"],
            )
            if latest is not None:
                status = SubmissionStatus(latest["status"])
                if status in BLOCKING_STATUSES:
                    raise SubmissionBlockedError(latest["id"], status)
            await tx.insert(self.submissions_table, self._submission_to_row(submission))
        return submission

    # ====================
    # Reviews
    # ====================

    async def list_reviews(self, submission_id: str) -> List[Review]:
        rows = await self.db.select(self.reviews_table, {"submission_id": submission_id}, order_by=["created_at"])
        return [self._row_to_review(r) for r in rows]

    async def append_review(self, review: Review) -> Optional[SubmissionStatus]:
        """
        Append a review and refresh the cached submission status from the
        fold of the whole review log, in one transaction. Reviews are never
        guarded: concurrent reviews all land and the last one to commit sets
        the visible status. Returns None when the submission does not exist.
        """
        async with self.db.transaction() as tx:
            # Row lock first so the re-read below sees every committed review
            if not await tx.update_if(
                self.submissions_table, review.submission_id, {}, {"updated_at": review.created_at}
            ):
                return None
            await tx.insert(self.reviews_table, self._review_to_row(review))
            rows = await tx.select(
                self.reviews_table, {"submission_id": review.submission_id}, order_by=["created_at"]
            )
            status = fold_submission_status(self._row_to_review(r) for r in rows)
            await tx.update_if(self.submissions_table, review.submission_id, {}, {"status": status.value})
        return status

    # ====================
    # Row mapping
    # ====================

    @staticmethod
    def _submission_to_row(submission: Submission) -> Dict[str, Any]:
        row = submission.model_dump(exclude={"status"})
        row["status"] = submission.status.value
        return row

    @staticmethod
    def _row_to_submission(row: Dict[str, Any]) -> Submission:
        return Submission(
            id=row["id"],
            campaign_id=row["campaign_id"],
            deliverable_id=row["deliverable_id"],
            creator_id=row["creator_id"],
            invitation_id=row.get("invitation_id"),
            submission_url=row["submission_url"],
            metadata=row.get("metadata") or {},
            status=SubmissionStatus(row["status"]),
            submitted_at=row.get("submitted_at"),
            updated_at=row.get("updated_at"),
        )

    @staticmethod
    def _review_to_row(review: Review) -> Dict[str, Any]:
        row = review.model_dump(exclude={"action"})
        row["action"] = review.action.value
        return row

    @staticmethod
    def _row_to_review(row: Dict[str, Any]) -> Review:
        return Review(
            id=row["id"],
            submission_id=row["submission_id"],
            campaign_id=row["campaign_id"],
            deliverable_id=row["deliverable_id"],
            creator_id=row["creator_id"],
            reviewer_id=row["reviewer_id"],
            action=ReviewAction(row["action"]),
            feedback=row.get("feedback"),
            created_at=row.get("created_at"),
        )
