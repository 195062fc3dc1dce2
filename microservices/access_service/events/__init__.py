"""
Access Service Events
"""

from .models import AssignmentEventData
from .publishers import AccessEventPublisher

__all__ = [
    "AssignmentEventData",
    "AccessEventPublisher",
]
