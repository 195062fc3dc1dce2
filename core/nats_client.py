"""
NATS JetStream Client for the collaboration microservices

Every committed write in the collaboration services is announced on the bus
as an Event whose subject is its dotted type (e.g. "invitation.accepted").
Events are persisted in one JetStream stream per subject prefix; live
consumers such as the change feed router attach with plain (ephemeral)
subscriptions, durable consumers with JetStream push subscriptions.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, TYPE_CHECKING

import nats
from nats.errors import Error as NATSError

from core.results import TransportError

if TYPE_CHECKING:
    from core.config_manager import ConfigManager


class DecimalEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles Decimal types"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Event types published by the collaboration services"""

    # Invitation Events
    INVITATION_CREATED = "invitation.created"
    INVITATION_NEGOTIATING = "invitation.negotiating"
    INVITATION_COUNTER_OFFERED = "invitation.counter_offered"
    INVITATION_ACCEPTED = "invitation.accepted"
    INVITATION_DECLINED = "invitation.declined"
    INVITATION_WITHDRAWN = "invitation.withdrawn"
    INVITATION_EXPIRED = "invitation.expired"

    # Negotiation Events
    NEGOTIATION_ROUND_RECORDED = "negotiation.round_recorded"

    # Tracking Link Events
    TRACKING_LINK_CREATED = "tracking_link.created"

    # Deliverable Events
    SUBMISSION_CREATED = "submission.created"
    SUBMISSION_REVIEWED = "submission.reviewed"
    DELIVERABLES_ALL_APPROVED = "deliverable.all_approved"

    # Access Events
    ASSIGNMENT_CREATED = "access.assignment.created"
    ASSIGNMENT_REMOVED = "access.assignment.removed"


class ServiceSource(Enum):
    """Service sources"""

    ACCESS_SERVICE = "access_service"
    INVITATION_SERVICE = "invitation_service"
    DELIVERABLE_SERVICE = "deliverable_service"
    REALTIME_SERVICE = "realtime_service"


class Event:
    """Event model"""

    def __init__(
        self,
        event_type: EventType,
        source: ServiceSource,
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value
        self.source = source.value
        self.data = data
        self.subject = subject
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        event = cls.__new__(cls)
        event.id = data.get("id")
        event.type = data.get("type")
        event.source = data.get("source")
        event.subject = data.get("subject")
        event.timestamp = data.get("timestamp")
        event.data = data.get("data", {})
        event.metadata = data.get("metadata", {})
        event.version = data.get("version", "1.0.0")
        return event


EventHandler = Callable[[Event], Awaitable[None]]


class NATSEventBus:
    """
    NATS JetStream event bus.

    publish_event() persists to the stream for the event's prefix;
    subscribe_to_events() attaches an async handler to a subject pattern.
    """

    def __init__(
        self,
        service_name: str,
        config: Optional["ConfigManager"] = None,
        servers: Optional[str] = None,
    ):
        """
        Initialize NATS Event Bus.

        Args:
            service_name: Name of the service (used as the connection name)
            config: Optional ConfigManager instance for service discovery
            servers: Explicit NATS URL, overriding discovery
        """
        from core.config_manager import ConfigManager

        self.service_name = service_name

        if config is None:
            config = ConfigManager(service_name)

        if servers:
            self.servers = servers
        elif config.settings.infrastructure.nats_url:
            self.servers = config.settings.infrastructure.nats_url
        else:
            host, port = config.discover_service(
                service_name="nats_service",
                default_host="localhost",
                default_port=4222,
                env_host_key="NATS_HOST",
                env_port_key="NATS_PORT",
            )
            self.servers = f"nats://{host}:{port}"

        self._nc = None
        self._js = None
        self._streams: Set[str] = set()
        self._subscriptions: Dict[str, List[Any]] = {}  # pattern -> nats subscriptions
        self._is_connected = False

        logger.info(f"NATS EventBus initialized: {self.servers}")

    async def connect(self):
        """Connect to NATS and open the JetStream context"""
        try:
            self._nc = await nats.connect(
                servers=[self.servers],
                name=self.service_name,
                max_reconnect_attempts=-1,
            )
            self._js = self._nc.jetstream()
            self._is_connected = True
            logger.info(f"Connected to NATS as {self.service_name}")
        except (NATSError, OSError) as e:
            logger.error(f"Failed to connect to NATS: {e}")
            raise TransportError(f"NATS connect failed: {e}", operation="nats.connect") from e

    def _get_stream_name_for_event(self, event_type: str) -> str:
        """
        Determine the JetStream stream name based on event type.

        - invitation.* -> invitation-stream
        - negotiation.* -> negotiation-stream
        - tracking_link.* -> tracking-link-stream
        - submission.* / deliverable.* -> deliverable-stream
        - access.* -> access-stream
        """
        prefix = event_type.split('.')[0]

        stream_mappings = {
            "invitation": "invitation-stream",
            "negotiation": "negotiation-stream",
            "tracking_link": "tracking-link-stream",
            "submission": "deliverable-stream",
            "deliverable": "deliverable-stream",
            "access": "access-stream",
        }

        return stream_mappings.get(prefix, f"{prefix.replace('_', '-')}-stream")

    async def _ensure_stream(self, event_type: str) -> str:
        stream_name = self._get_stream_name_for_event(event_type)
        if stream_name in self._streams:
            return stream_name

        prefixes = [
            p for p in ("invitation", "negotiation", "tracking_link", "submission", "deliverable", "access")
            if self._get_stream_name_for_event(p) == stream_name
        ] or [event_type.split('.')[0]]
        try:
            await self._js.add_stream(name=stream_name, subjects=[f"{p}.>" for p in prefixes])
        except NATSError as e:
            # Stream already exists with a compatible configuration
            logger.debug(f"Stream creation note: {e}")
        self._streams.add(stream_name)
        return stream_name

    async def publish_event(self, event: Event) -> bool:
        """
        Publish an event to NATS JetStream.

        Returns False (and logs) when the bus is unavailable; publication
        never undoes the write that produced the event.
        """
        if not self._is_connected or not self._js:
            logger.error("Not connected to NATS")
            return False

        try:
            subject = event.type
            data = json.dumps(event.to_dict(), cls=DecimalEncoder).encode()
            stream_name = await self._ensure_stream(event.type)

            ack = await self._js.publish(subject, data)
            logger.info(f"Published event {event.type} [{event.id}] to stream {stream_name}, seq={ack.seq}")
            return True

        except NATSError as e:
            logger.error(f"Error publishing event {event.id}: {e}")
            return False

    async def subscribe_to_events(
        self, pattern: str, handler: EventHandler, durable: Optional[str] = None
    ) -> Optional[str]:
        """
        Subscribe to events with a subject pattern.

        Args:
            pattern: Subject pattern (e.g. "invitation.>")
            handler: Async callback receiving an Event
            durable: Durable consumer name; omitted for live-only fan-out
        """
        if not self._is_connected or not self._nc:
            logger.error("Not connected to NATS")
            return None

        async def _on_message(msg):
            try:
                event = Event.from_dict(json.loads(msg.data.decode()))
                await handler(event)
            except Exception as e:
                logger.error(f"Error processing message on {msg.subject}: {e}", exc_info=True)
            finally:
                if durable:
                    await msg.ack()

        try:
            if durable:
                await self._ensure_stream(pattern)
                subscription = await self._js.subscribe(pattern, durable=durable, cb=_on_message, manual_ack=True)
            else:
                subscription = await self._nc.subscribe(pattern, cb=_on_message)
        except NATSError as e:
            logger.error(f"Error subscribing to {pattern}: {e}")
            return None

        self._subscriptions.setdefault(pattern, []).append(subscription)
        logger.info(f"Subscribed to {pattern}" + (f" (durable={durable})" if durable else ""))
        return durable or pattern

    async def unsubscribe(self, pattern: str) -> bool:
        """Unsubscribe every handler attached to a pattern"""
        subscriptions = self._subscriptions.pop(pattern, [])
        for subscription in subscriptions:
            try:
                await subscription.unsubscribe()
            except NATSError as e:
                logger.warning(f"Unsubscribe from {pattern} failed: {e}")
        if subscriptions:
            logger.info(f"Unsubscribed from {pattern}")
        return bool(subscriptions)

    async def close(self):
        """Drain subscriptions and close the connection"""
        for pattern in list(self._subscriptions.keys()):
            await self.unsubscribe(pattern)

        if self._nc:
            try:
                await self._nc.drain()
            except NATSError as e:
                logger.warning(f"NATS drain failed: {e}")
            self._nc = None
            self._js = None

        self._is_connected = False
        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS"""
        return self._is_connected
