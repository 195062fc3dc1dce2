"""
Change feed vocabulary

Maps bus events to table-level change signals and defines which kinds of
change each channel scope carries.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel


class ChangeKind(str, Enum):
    INVITATION = "invitation"
    NEGOTIATION = "negotiation"
    TRACKING_LINK = "tracking_link"
    SUBMISSION = "submission"


class ChannelScope(str, Enum):
    CAMPAIGN = "campaign"
    BRAND = "brand"
    CREATOR = "creator"


TABLE_KINDS: Dict[str, ChangeKind] = {
    "campaign_invitations": ChangeKind.INVITATION,
    "campaign_negotiations": ChangeKind.NEGOTIATION,
    "creator_tracking_links": ChangeKind.TRACKING_LINK,
    "creator_submissions": ChangeKind.SUBMISSION,
    "submission_reviews": ChangeKind.SUBMISSION,
}

# Bus subject patterns the router listens on
SUBJECT_PATTERNS = ("invitation.>", "negotiation.>", "tracking_link.>", "submission.>")

SCOPE_KINDS: Dict[ChannelScope, FrozenSet[ChangeKind]] = {
    ChannelScope.CAMPAIGN: frozenset({
        ChangeKind.INVITATION,
        ChangeKind.NEGOTIATION,
        ChangeKind.TRACKING_LINK,
        ChangeKind.SUBMISSION,
    }),
    ChannelScope.BRAND: frozenset({ChangeKind.INVITATION, ChangeKind.NEGOTIATION}),
    ChannelScope.CREATOR: frozenset({ChangeKind.INVITATION, ChangeKind.SUBMISSION}),
}

SCOPE_KEY_FIELDS: Dict[ChannelScope, str] = {
    ChannelScope.CAMPAIGN: "campaign_id",
    ChannelScope.BRAND: "brand_id",
    ChannelScope.CREATOR: "creator_id",
}


class ChangeEvent(BaseModel):
    """Routing keys of one row change; never treated as authoritative state"""
    table: str
    kind: ChangeKind
    operation: Optional[str] = None
    row_id: Optional[str] = None
    campaign_id: Optional[str] = None
    brand_id: Optional[str] = None
    creator_id: Optional[str] = None

    @classmethod
    def from_data(cls, data: dict) -> Optional["ChangeEvent"]:
        """None for events that do not describe a routed table"""
        table = (data or {}).get("table")
        kind = TABLE_KINDS.get(table)
        if kind is None:
            return None
        return cls(
            table=table,
            kind=kind,
            operation=data.get("operation"),
            row_id=data.get("row_id"),
            campaign_id=data.get("campaign_id"),
            brand_id=data.get("brand_id"),
            creator_id=data.get("creator_id"),
        )

    def key_for(self, scope: ChannelScope) -> Optional[str]:
        return getattr(self, SCOPE_KEY_FIELDS[scope])


def fired_kinds(scope: ChannelScope, kind: ChangeKind) -> FrozenSet[ChangeKind]:
    """
    Callbacks triggered by one change on a channel.

    Negotiation state is denormalized onto the invitation row, so a
    negotiation change always fires the invitation callback as well. On the
    brand channel an invitation change also refreshes negotiation views.
    """
    if kind == ChangeKind.NEGOTIATION:
        return frozenset({ChangeKind.NEGOTIATION, ChangeKind.INVITATION})
    if scope == ChannelScope.BRAND and kind == ChangeKind.INVITATION:
        return frozenset({ChangeKind.INVITATION, ChangeKind.NEGOTIATION})
    return frozenset({kind})
