"""
Deliverable Service Models

Deliverables, submissions and reviews.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class SubmissionStatus(str, Enum):
    """Displayed status of a submission, derived from its review log"""
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"
    REJECTED = "rejected"


class ReviewAction(str, Enum):
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"
    REJECTED = "rejected"


# Submission status produced by each review action
REVIEW_OUTCOMES: Dict[ReviewAction, SubmissionStatus] = {
    ReviewAction.APPROVED: SubmissionStatus.APPROVED,
    ReviewAction.REVISION_REQUESTED: SubmissionStatus.REVISION_REQUESTED,
    ReviewAction.REJECTED: SubmissionStatus.REJECTED,
}

# A new submission is refused while the latest one is in these states
BLOCKING_STATUSES = frozenset({SubmissionStatus.SUBMITTED, SubmissionStatus.APPROVED})


class Deliverable(BaseModel):
    """Required content item of a campaign"""
    id: str
    campaign_id: str
    deliverable_index: int
    title: str
    deliverable_type: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class Submission(BaseModel):
    """One creator attempt at a deliverable"""
    id: str
    campaign_id: str
    deliverable_id: str
    creator_id: str
    invitation_id: Optional[str] = None
    submission_url: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Review(BaseModel):
    """Immutable review log entry"""
    id: str
    submission_id: str
    campaign_id: str
    deliverable_id: str
    creator_id: str
    reviewer_id: str
    action: ReviewAction
    feedback: Optional[str] = None
    created_at: Optional[datetime] = None


class DeliverableStatusEntry(BaseModel):
    """Per-deliverable state for a (campaign, creator) pair"""
    deliverable: Deliverable
    status: Optional[SubmissionStatus] = None
    latest_submission: Optional[Submission] = None
    submission_count: int = 0

    @property
    def is_approved(self) -> bool:
        return self.status == SubmissionStatus.APPROVED


class ReviewOutcome(BaseModel):
    review: Review
    submission: Submission
    all_deliverables_approved: bool = False


# ====================
# Request/Response Models
# ====================


class SubmitRequest(BaseModel):
    campaign_id: str
    deliverable_id: str
    submission_url: str = Field(..., min_length=1, max_length=2048)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("submission_url")
    @classmethod
    def validate_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("submission_url must be an http(s) URL")
        return v


class ReviewRequest(BaseModel):
    action: ReviewAction
    feedback: Optional[str] = Field(None, max_length=4000)


class DeliverableListResponse(BaseModel):
    campaign_id: str
    deliverables: List[Deliverable]


class DeliverableStatusResponse(BaseModel):
    campaign_id: str
    creator_id: str
    deliverables: List[DeliverableStatusEntry]
    all_deliverables_approved: bool


class SubmissionListResponse(BaseModel):
    submissions: List[Submission]
    total: int


class ReviewHistoryResponse(BaseModel):
    submission_id: str
    reviews: List[Review]


class HealthResponse(BaseModel):
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, Any] = Field(default_factory=dict)
