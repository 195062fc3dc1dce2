"""
Invitation state machine

Transition table and payout rules. Pure functions, no I/O.
"""

from decimal import Decimal
from typing import Dict, FrozenSet, Optional, Tuple

from .models import Invitation, InvitationAction, InvitationStatus

# action -> (allowed source statuses, target status)
TRANSITIONS: Dict[InvitationAction, Tuple[FrozenSet[InvitationStatus], InvitationStatus]] = {
    InvitationAction.NEGOTIATE: (
        frozenset({InvitationStatus.PENDING}),
        InvitationStatus.NEGOTIATING,
    ),
    InvitationAction.COUNTER_OFFER: (
        frozenset({InvitationStatus.NEGOTIATING}),
        InvitationStatus.NEGOTIATING,
    ),
    InvitationAction.ACCEPT: (
        frozenset({InvitationStatus.PENDING, InvitationStatus.NEGOTIATING}),
        InvitationStatus.ACCEPTED,
    ),
    InvitationAction.DECLINE: (
        frozenset({InvitationStatus.PENDING, InvitationStatus.NEGOTIATING}),
        InvitationStatus.DECLINED,
    ),
    InvitationAction.WITHDRAW: (
        frozenset({InvitationStatus.PENDING, InvitationStatus.NEGOTIATING}),
        InvitationStatus.WITHDRAWN,
    ),
    InvitationAction.EXPIRE: (
        frozenset({InvitationStatus.PENDING}),
        InvitationStatus.EXPIRED,
    ),
}

# Reachable targets per status, derived from TRANSITIONS
VALID_TRANSITIONS: Dict[InvitationStatus, FrozenSet[InvitationStatus]] = {
    status: frozenset(
        target for sources, target in TRANSITIONS.values() if status in sources
    )
    for status in InvitationStatus
}

CREATOR_ACTIONS = frozenset({InvitationAction.NEGOTIATE, InvitationAction.DECLINE})
BRAND_ACTIONS = frozenset({InvitationAction.COUNTER_OFFER, InvitationAction.WITHDRAW})


def next_status(action: InvitationAction, current: InvitationStatus) -> Optional[InvitationStatus]:
    """Target status for an action, or None when the action is not allowed"""
    sources, target = TRANSITIONS[action]
    if current not in sources:
        return None
    return target


def can_transition(current: InvitationStatus, target: InvitationStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, frozenset())


def accepted_payout(invitation: Invitation, accepted_by_creator: bool) -> Decimal:
    """
    Final payout on acceptance.

    The creator accepts the brand's current offer. The brand accepts the
    creator's proposed terms: base payout plus the negotiated delta.
    """
    if accepted_by_creator or invitation.negotiated_delta is None:
        return invitation.offered_payout
    return invitation.base_payout + invitation.negotiated_delta
