"""
Shared test fixtures

Usage:
    from tests.fixtures import CollabWorld, SteppingClock, make_user_id
"""
from .common import (
    SteppingClock,
    make_brand_id,
    make_campaign_id,
    make_id,
    make_user_id,
)
from .collab_fixtures import CollabWorld

__all__ = [
    "SteppingClock",
    "make_brand_id",
    "make_campaign_id",
    "make_id",
    "make_user_id",
    "CollabWorld",
]
