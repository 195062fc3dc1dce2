"""
Deliverable Service Events
"""

from .models import (
    AllDeliverablesApprovedEventData,
    SubmissionCreatedEventData,
    SubmissionReviewedEventData,
)
from .publishers import DeliverableEventPublisher

__all__ = [
    "SubmissionCreatedEventData",
    "SubmissionReviewedEventData",
    "AllDeliverablesApprovedEventData",
    "DeliverableEventPublisher",
]
