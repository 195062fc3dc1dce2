"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (store, NATS).
"""

from .db_mock import MockStore
from .nats_mock import MockEvent, MockEventBus

__all__ = [
    'MockStore',
    'MockEvent',
    'MockEventBus',
]
