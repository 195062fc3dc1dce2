"""
Invitation Service Event Publishers

Publish functions for invitation, negotiation and tracking link changes.
Called after the store write has committed; failures are logged, never raised.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from core.nats_client import Event, EventType, ServiceSource

from ..models import Invitation, InvitationStatus, NegotiationRound, TrackingLink
from .models import (
    InvitationChangedEventData,
    NegotiationRoundEventData,
    TrackingLinkCreatedEventData,
)

logger = logging.getLogger(__name__)

STATUS_EVENT_TYPES = {
    InvitationStatus.PENDING: EventType.INVITATION_CREATED,
    InvitationStatus.NEGOTIATING: EventType.INVITATION_NEGOTIATING,
    InvitationStatus.ACCEPTED: EventType.INVITATION_ACCEPTED,
    InvitationStatus.DECLINED: EventType.INVITATION_DECLINED,
    InvitationStatus.WITHDRAWN: EventType.INVITATION_WITHDRAWN,
    InvitationStatus.EXPIRED: EventType.INVITATION_EXPIRED,
}


async def _publish(event_bus, event_type: EventType, data: dict, subject: Optional[str] = None) -> bool:
    if not event_bus:
        logger.debug(f"Event bus not available, skipping {event_type.value}")
        return False

    try:
        event = Event(
            event_type=event_type,
            source=ServiceSource.INVITATION_SERVICE,
            data=data,
            subject=subject,
        )
        await event_bus.publish_event(event)
        logger.info(f"Published {event_type.value} event for {subject}")
        return True
    except Exception as e:
        logger.error(f"Failed to publish {event_type.value} event: {e}")
        return False


async def publish_invitation_changed(
    event_bus,
    invitation: Invitation,
    changed_by: Optional[str],
    previous_status: Optional[InvitationStatus] = None,
    counter_offer: bool = False,
) -> bool:
    """
    Publish the invitation row change.

    The event type follows the new status; a counter-offer (which keeps the
    invitation negotiating) publishes invitation.counter_offered.
    """
    if counter_offer:
        event_type = EventType.INVITATION_COUNTER_OFFERED
    else:
        event_type = STATUS_EVENT_TYPES[invitation.status]

    data = InvitationChangedEventData(
        operation="INSERT" if previous_status is None else "UPDATE",
        row_id=invitation.id,
        campaign_id=invitation.campaign_id,
        brand_id=invitation.brand_id,
        creator_id=invitation.creator_id,
        changed_by=changed_by,
        timestamp=datetime.now(timezone.utc),
        status=invitation.status.value,
        previous_status=previous_status.value if previous_status else None,
        version=invitation.version,
        offered_payout=str(invitation.offered_payout),
    )
    return await _publish(event_bus, event_type, data.model_dump(mode="json"), subject=invitation.id)


async def publish_negotiation_round(
    event_bus,
    negotiation_round: NegotiationRound,
    invitation: Invitation,
) -> bool:
    data = NegotiationRoundEventData(
        row_id=negotiation_round.id,
        campaign_id=invitation.campaign_id,
        brand_id=invitation.brand_id,
        creator_id=invitation.creator_id,
        changed_by=negotiation_round.proposed_by,
        timestamp=datetime.now(timezone.utc),
        invitation_id=invitation.id,
        proposer_role=negotiation_round.proposer_role.value,
        proposed_payout=str(negotiation_round.proposed_payout),
    )
    return await _publish(
        event_bus, EventType.NEGOTIATION_ROUND_RECORDED, data.model_dump(mode="json"), subject=invitation.id
    )


async def publish_tracking_links_created(
    event_bus,
    links: Iterable[TrackingLink],
    invitation: Invitation,
) -> int:
    """One tracking_link.created event per new link; returns the number published"""
    published = 0
    for link in links:
        data = TrackingLinkCreatedEventData(
            row_id=link.id,
            campaign_id=link.campaign_id,
            brand_id=invitation.brand_id,
            creator_id=link.creator_id,
            timestamp=datetime.now(timezone.utc),
            tracking_code=link.tracking_code,
            cta_link_id=link.cta_link_id,
        )
        if await _publish(event_bus, EventType.TRACKING_LINK_CREATED, data.model_dump(mode="json"), subject=link.id):
            published += 1
    return published
