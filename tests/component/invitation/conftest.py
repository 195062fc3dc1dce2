"""
Component Test Fixtures for Invitation Service
"""

from decimal import Decimal

import pytest

from core.auth_dependencies import Principal
from microservices.invitation_service.models import DeliverableTerms, InviteRequest


@pytest.fixture
def campaign_setup(world, make_principal):
    """Active campaign with one CTA link, its owner and a creator"""
    brand = world.brand()
    campaign_id = world.campaign(brand["brand_id"], status="active")
    cta_id = world.cta_link(campaign_id)
    return {
        "brand_id": brand["brand_id"],
        "campaign_id": campaign_id,
        "cta_id": cta_id,
        "owner": Principal(user_id=brand["owner_id"]),
        "creator": make_principal(),
    }


@pytest.fixture
def invite(invitation_service, campaign_setup):
    """Invite the setup creator (or another one) and return the invitation"""
    async def _invite(base_payout: Decimal = Decimal("500"), creator=None, **kwargs):
        creator = creator or campaign_setup["creator"]
        request = InviteRequest(
            campaign_id=campaign_setup["campaign_id"],
            creator_id=creator.user_id,
            base_payout=base_payout,
            deliverables=[DeliverableTerms(title="Launch reel", deliverable_type="video")],
            **kwargs,
        )
        result = await invitation_service.invite(campaign_setup["owner"], request)
        assert result.success, result.message
        return result.value
    return _invite
