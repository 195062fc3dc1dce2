"""
Deliverable Service Event Models
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SubmissionCreatedEventData(BaseModel):
    table: str = "creator_submissions"
    operation: str = "INSERT"
    row_id: str
    campaign_id: str
    brand_id: Optional[str] = None
    creator_id: str
    deliverable_id: str
    status: str
    timestamp: datetime


class SubmissionReviewedEventData(BaseModel):
    table: str = "submission_reviews"
    operation: str = "INSERT"
    row_id: str
    submission_id: str
    campaign_id: str
    brand_id: Optional[str] = None
    creator_id: str
    deliverable_id: str
    action: str
    status: str
    reviewer_id: str
    timestamp: datetime


class AllDeliverablesApprovedEventData(BaseModel):
    """Payment eligibility signal for a (campaign, creator) pair"""
    campaign_id: str
    brand_id: Optional[str] = None
    creator_id: str
    invitation_id: Optional[str] = None
    deliverable_count: int
    timestamp: datetime
