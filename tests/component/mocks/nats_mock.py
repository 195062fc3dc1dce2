"""
NATS Event Bus Mock for Component Testing

Records published events and delivers them to matching subscribers, so the
change feed router can be driven by the services under test.
"""
import fnmatch
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional


class MockEvent:
    """Stand-in for core.nats_client.Event when simulating inbound events"""

    def __init__(self, subject: str, data: Dict[str, Any]):
        self.data = data
        self.type = subject
        self.subject = None
        self.source = "test"
        self.id = "mock_id"
        self.timestamp = datetime.now(timezone.utc).isoformat()


class MockEventBus:
    """Mock for NATS event bus"""

    def __init__(self):
        self.published_events: List[Dict[str, Any]] = []
        self.subscriptions: Dict[str, List[Callable]] = {}
        self._should_raise: Optional[Exception] = None
        self.is_connected = True

    async def publish_event(self, event: Any):
        """Record the event, then deliver it to matching subscribers"""
        if self._should_raise:
            raise self._should_raise

        event_type = getattr(event, "type", "unknown")
        self.published_events.append({
            "id": getattr(event, "id", "mock_event_id"),
            "type": event_type,
            "source": str(getattr(event, "source", "unknown")),
            "subject": getattr(event, "subject", None),
            "data": getattr(event, "data", {}),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        await self._deliver(event_type, event)
        return True

    async def subscribe_to_events(self, pattern: str, handler: Callable, durable: Optional[str] = None):
        """Mock event subscription"""
        self.subscriptions.setdefault(pattern, []).append(handler)
        return durable or pattern

    async def unsubscribe(self, pattern: str) -> bool:
        return self.subscriptions.pop(pattern, None) is not None

    async def close(self):
        """Mock close"""
        self.is_connected = False

    # Test helper methods

    def get_published(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get published events, optionally filtered by type"""
        if event_type:
            return [e for e in self.published_events if e.get("type") == event_type]
        return self.published_events

    def get_published_types(self) -> List[str]:
        return [e["type"] for e in self.published_events]

    def get_last_event(self) -> Optional[Dict[str, Any]]:
        """Get the last published event"""
        return self.published_events[-1] if self.published_events else None

    def clear(self):
        """Clear published events"""
        self.published_events.clear()

    def set_error(self, error: Exception):
        """Set an error to be raised on publish"""
        self._should_raise = error

    def clear_error(self):
        """Clear any pending error"""
        self._should_raise = None

    def assert_event_published(self, event_type: str, data_match: Optional[Dict] = None):
        """Assert that an event was published"""
        events = self.get_published(event_type)
        assert len(events) > 0, f"No events of type '{event_type}' were published. Published: {self.get_published_types()}"

        if data_match:
            for event in events:
                if all(event.get("data", {}).get(k) == v for k, v in data_match.items()):
                    return event
            raise AssertionError(
                f"No event of type '{event_type}' matched data {data_match}. Events: {events}"
            )
        return events[0]

    def assert_no_events_published(self, event_type: Optional[str] = None):
        """Assert that no events were published"""
        if event_type:
            events = self.get_published(event_type)
            assert len(events) == 0, f"Expected no events of type '{event_type}', but got: {events}"
        else:
            assert len(self.published_events) == 0, f"Expected no events, but got: {self.published_events}"

    async def simulate_event(self, subject: str, data: Dict[str, Any]):
        """Simulate receiving an event for handler testing"""
        await self._deliver(subject, MockEvent(subject, data))

    async def _deliver(self, subject: str, event: Any):
        for pattern, handlers in list(self.subscriptions.items()):
            if self._matches_pattern(pattern, subject):
                for handler in list(handlers):
                    await handler(event)

    def _matches_pattern(self, pattern: str, subject: str) -> bool:
        """Check if subject matches pattern (NATS-style wildcards)"""
        fnmatch_pattern = pattern.replace(".", "/").replace(">", "**")
        fnmatch_subject = subject.replace(".", "/")
        return fnmatch.fnmatch(fnmatch_subject, fnmatch_pattern)
