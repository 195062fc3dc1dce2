"""
Access Service Event Models

Data carried by access.* events.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AssignmentEventData(BaseModel):
    """Payload for access.assignment.created / access.assignment.removed"""
    table: str = "campaign_manager_assignments"
    operation: str
    row_id: Optional[str] = None
    campaign_id: str
    brand_id: Optional[str] = None
    user_id: str
    changed_by: str
    timestamp: datetime
