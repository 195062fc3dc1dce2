"""
Deliverable Event Publishers

Publishes submission, review and payment-eligibility events to NATS.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.nats_client import Event, EventType, ServiceSource

from ..models import Review, Submission
from .models import (
    AllDeliverablesApprovedEventData,
    SubmissionCreatedEventData,
    SubmissionReviewedEventData,
)

logger = logging.getLogger(__name__)


class DeliverableEventPublisher:
    """Publisher for deliverable service events"""

    def __init__(self, event_bus=None):
        self.event_bus = event_bus

    async def publish(self, event_type: EventType, data: Dict[str, Any], subject: Optional[str] = None) -> bool:
        if not self.event_bus:
            logger.debug(f"Event bus not configured, skipping publish: {event_type.value}")
            return False

        try:
            event = Event(
                event_type=event_type,
                source=ServiceSource.DELIVERABLE_SERVICE,
                data=data,
                subject=subject,
            )
            await self.event_bus.publish_event(event)
            logger.debug(f"Published event: {event_type.value}")
            return True
        except Exception as e:
            logger.error(f"Failed to publish event {event_type.value}: {e}")
            return False

    async def publish_submission_created(self, submission: Submission, brand_id: Optional[str]) -> bool:
        data = SubmissionCreatedEventData(
            row_id=submission.id,
            campaign_id=submission.campaign_id,
            brand_id=brand_id,
            creator_id=submission.creator_id,
            deliverable_id=submission.deliverable_id,
            status=submission.status.value,
            timestamp=datetime.now(timezone.utc),
        )
        return await self.publish(EventType.SUBMISSION_CREATED, data.model_dump(mode="json"), subject=submission.id)

    async def publish_submission_reviewed(
        self, review: Review, submission: Submission, brand_id: Optional[str]
    ) -> bool:
        data = SubmissionReviewedEventData(
            row_id=review.id,
            submission_id=submission.id,
            campaign_id=submission.campaign_id,
            brand_id=brand_id,
            creator_id=submission.creator_id,
            deliverable_id=submission.deliverable_id,
            action=review.action.value,
            status=submission.status.value,
            reviewer_id=review.reviewer_id,
            timestamp=datetime.now(timezone.utc),
        )
        return await self.publish(EventType.SUBMISSION_REVIEWED, data.model_dump(mode="json"), subject=submission.id)

    async def publish_all_approved(
        self,
        campaign_id: str,
        brand_id: Optional[str],
        creator_id: str,
        invitation_id: Optional[str],
        deliverable_count: int,
    ) -> bool:
        data = AllDeliverablesApprovedEventData(
            campaign_id=campaign_id,
            brand_id=brand_id,
            creator_id=creator_id,
            invitation_id=invitation_id,
            deliverable_count=deliverable_count,
            timestamp=datetime.now(timezone.utc),
        )
        return await self.publish(
            EventType.DELIVERABLES_ALL_APPROVED, data.model_dump(mode="json"), subject=f"{campaign_id}.{creator_id}"
        )
