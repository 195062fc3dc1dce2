"""
Common/Shared Fixtures

Id generators and a deterministic clock used across test layers.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional


def make_user_id() -> str:
    """Generate a unique user ID"""
    return f"usr_test_{uuid.uuid4().hex[:12]}"


def make_brand_id() -> str:
    return f"brd_test_{uuid.uuid4().hex[:12]}"


def make_campaign_id() -> str:
    return f"cmp_test_{uuid.uuid4().hex[:12]}"


def make_id(prefix: str = "id") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class SteppingClock:
    """
    Clock that advances by a fixed step on every read, so rows written in
    sequence always carry strictly increasing timestamps.
    """

    def __init__(self, start: Optional[datetime] = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        self.now = self.now + self.step
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta
