"""
Deliverable Service

Creator deliverable submissions and brand reviews:
- Submission rows are appended, never mutated by resubmission
- Reviews form an append-only log; submission status is its fold
- All-deliverables-approved signal for payment eligibility

Port: 8263
"""

__version__ = "1.0.0"
__service__ = "deliverable_service"
