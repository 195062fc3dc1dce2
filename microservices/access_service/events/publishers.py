"""
Access Event Publishers

Publishes assignment changes to NATS JetStream.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.nats_client import Event, EventType, ServiceSource

from .models import AssignmentEventData

logger = logging.getLogger(__name__)


class AccessEventPublisher:
    """Publisher for access service events"""

    def __init__(self, event_bus=None):
        self.event_bus = event_bus

    async def publish(self, event_type: EventType, data: Dict[str, Any]) -> bool:
        if not self.event_bus:
            logger.debug(f"Event bus not configured, skipping publish: {event_type.value}")
            return False

        try:
            event = Event(
                event_type=event_type,
                source=ServiceSource.ACCESS_SERVICE,
                data=data,
            )
            await self.event_bus.publish_event(event)
            logger.debug(f"Published event: {event_type.value}")
            return True
        except Exception as e:
            logger.error(f"Failed to publish event {event_type.value}: {e}")
            return False

    async def publish_assignment_created(
        self,
        assignment_id: str,
        campaign_id: str,
        brand_id: Optional[str],
        user_id: str,
        assigned_by: str,
    ) -> bool:
        data = AssignmentEventData(
            operation="INSERT",
            row_id=assignment_id,
            campaign_id=campaign_id,
            brand_id=brand_id,
            user_id=user_id,
            changed_by=assigned_by,
            timestamp=datetime.now(timezone.utc),
        )
        return await self.publish(EventType.ASSIGNMENT_CREATED, data.model_dump(mode="json"))

    async def publish_assignment_removed(
        self,
        campaign_id: str,
        brand_id: Optional[str],
        user_id: str,
        removed_by: str,
    ) -> bool:
        data = AssignmentEventData(
            operation="DELETE",
            campaign_id=campaign_id,
            brand_id=brand_id,
            user_id=user_id,
            changed_by=removed_by,
            timestamp=datetime.now(timezone.utc),
        )
        return await self.publish(EventType.ASSIGNMENT_REMOVED, data.model_dump(mode="json"))
