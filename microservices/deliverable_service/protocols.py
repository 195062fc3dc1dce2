"""
Deliverable Service Protocols - DI Interfaces

All dependencies defined as Protocol classes for testability.
"""

from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable

from core.auth_dependencies import Principal
from microservices.access_service.models import AccessResult, CampaignSummary

from .models import Deliverable, Review, Submission, SubmissionStatus


@runtime_checkable
class DeliverableRepositoryProtocol(Protocol):
    """Repository interface for deliverables, submissions and reviews"""

    async def get_campaign(self, campaign_id: str) -> Optional[CampaignSummary]:
        ...

    async def get_accepted_invitation_id(self, campaign_id: str, creator_id: str) -> Optional[str]:
        ...

    async def get_deliverable(self, deliverable_id: str) -> Optional[Deliverable]:
        ...

    async def list_deliverables(self, campaign_id: str) -> List[Deliverable]:
        ...

    async def get_submission(self, submission_id: str) -> Optional[Submission]:
        ...

    async def list_submissions(
        self,
        campaign_id: str,
        creator_id: Optional[str] = None,
        deliverable_ids: Optional[Sequence[str]] = None,
    ) -> List[Submission]:
        ...

    async def create_submission(self, submission: Submission) -> Submission:
        ...

    async def list_reviews(self, submission_id: str) -> List[Review]:
        ...

    async def append_review(self, review: Review) -> Optional[SubmissionStatus]:
        ...


@runtime_checkable
class AccessEvaluatorProtocol(Protocol):
    async def resolve_access(
        self,
        principal: Principal,
        brand_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> AccessResult:
        ...


@runtime_checkable
class EventBusProtocol(Protocol):
    """Event bus interface for NATS publishing"""

    async def publish_event(self, event: Any) -> bool:
        ...

    async def close(self) -> None:
        ...


__all__ = [
    "DeliverableRepositoryProtocol",
    "AccessEvaluatorProtocol",
    "EventBusProtocol",
]
