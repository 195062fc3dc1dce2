"""
Review log folds

Submission and deliverable status are derived from the append-only review
log rather than stored independently. The cached submission status column
is written from these folds.
"""

from typing import Iterable, List, Mapping, Optional, Sequence

from .models import (
    REVIEW_OUTCOMES,
    DeliverableStatusEntry,
    Review,
    Submission,
    SubmissionStatus,
)


def fold_submission_status(reviews: Iterable[Review]) -> SubmissionStatus:
    """Latest review wins; no review means submitted"""
    status = SubmissionStatus.SUBMITTED
    for review in reviews:
        status = REVIEW_OUTCOMES[review.action]
    return status


def latest_submission(submissions: Sequence[Submission]) -> Optional[Submission]:
    """Most recent submission; order of the input does not matter"""
    if not submissions:
        return None
    return max(
        enumerate(submissions),
        key=lambda pair: (pair[1].submitted_at is not None, pair[1].submitted_at, pair[0]),
    )[1]


def fold_deliverable_status(
    submissions: Sequence[Submission],
    reviews: Mapping[str, Iterable[Review]],
) -> Optional[SubmissionStatus]:
    """Status of a (deliverable, creator) pair: the fold of its latest submission, None before any"""
    latest = latest_submission(submissions)
    if latest is None:
        return None
    return fold_submission_status(reviews.get(latest.id, ()))


def all_approved(entries: List[DeliverableStatusEntry]) -> bool:
    """True only when the campaign has deliverables and every one is approved"""
    return bool(entries) and all(entry.is_approved for entry in entries)
