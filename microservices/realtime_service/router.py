"""
Change Feed Router

Multiplexes bus change events onto a small set of long-lived logical
channels keyed by campaign, brand or creator id. Consumers hold a
SubscriptionHandle whose handler slot can be replaced without reopening
the channel.
"""

import inspect
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Set, Tuple

from core.nats_client import Event

from .change_feed import (
    SCOPE_KINDS,
    SUBJECT_PATTERNS,
    ChangeEvent,
    ChangeKind,
    ChannelScope,
    fired_kinds,
)

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[], Any]
Handlers = Mapping[ChangeKind, ChangeHandler]


class SubscriptionHandle:
    """
    A consumer's membership in one channel.

    The handler slot is read at dispatch time, so set_handlers() takes
    effect for the next signal without touching the channel.
    """

    def __init__(self, router: "ChangeFeedRouter", scope: ChannelScope, key: Optional[str], handlers: Handlers):
        self._router = router
        self.scope = scope
        self.key = key
        self._handlers: Dict[ChangeKind, ChangeHandler] = dict(handlers)
        self.closed = False

    @property
    def active(self) -> bool:
        """False for inert handles (no key) and closed handles"""
        return not self.closed and self.key is not None

    @property
    def handlers(self) -> Dict[ChangeKind, ChangeHandler]:
        return self._handlers

    def set_handlers(self, handlers: Handlers) -> None:
        self._handlers = dict(handlers)

    async def rekey(self, key: Optional[str]) -> None:
        """Move to another key's channel; None leaves the handle inert"""
        if self.closed:
            raise RuntimeError("Subscription handle is closed")
        if key == self.key:
            return
        self._router._release(self)
        self.key = key
        self._router._join(self)

    async def close(self) -> None:
        if self.closed:
            return
        self._router._release(self)
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class _Channel:
    """Shared channel for one (scope, key); lives while it has handles"""

    def __init__(self, scope: ChannelScope, key: str):
        self.scope = scope
        self.key = key
        self.handles: Set[SubscriptionHandle] = set()

    async def dispatch(self, kinds) -> int:
        invoked = 0
        for handle in list(self.handles):
            called = []
            for kind in kinds:
                handler = handle.handlers.get(kind)
                if handler is None or handler in called:
                    continue
                called.append(handler)
                try:
                    result = handler()
                    if inspect.isawaitable(result):
                        await result
                    invoked += 1
                except Exception as e:
                    logger.error(
                        f"Change handler failed on {self.scope.value}:{self.key} ({kind.value}): {e}",
                        exc_info=True,
                    )
        return invoked


class ChangeFeedRouter:
    """Routes bus events to campaign, brand and creator channels"""

    def __init__(self, event_bus=None):
        self.event_bus = event_bus
        self._channels: Dict[Tuple[ChannelScope, str], _Channel] = {}
        self._started = False

    # ====================
    # Lifecycle
    # ====================

    async def start(self) -> None:
        """Subscribe once per subject pattern for the router's lifetime"""
        if self._started:
            return
        if self.event_bus is not None:
            for pattern in SUBJECT_PATTERNS:
                await self.event_bus.subscribe_to_events(pattern, self.handle_event)
        self._started = True
        logger.info(f"Change feed router listening on {', '.join(SUBJECT_PATTERNS)}")

    async def stop(self) -> None:
        if not self._started:
            return
        if self.event_bus is not None and hasattr(self.event_bus, "unsubscribe"):
            for pattern in SUBJECT_PATTERNS:
                await self.event_bus.unsubscribe(pattern)
        self._started = False
        self._channels.clear()
        logger.info("Change feed router stopped")

    @property
    def channel_count(self) -> int:
        return len(self._channels)

    def subscriber_count(self, scope: ChannelScope, key: str) -> int:
        channel = self._channels.get((scope, key))
        return len(channel.handles) if channel else 0

    # ====================
    # Channels
    # ====================

    async def open_channel(
        self, scope: ChannelScope, key: Optional[str], handlers: Handlers
    ) -> SubscriptionHandle:
        await self.start()
        handle = SubscriptionHandle(self, scope, key, handlers)
        self._join(handle)
        return handle

    async def open_campaign_channel(self, campaign_id: Optional[str], handlers: Handlers) -> SubscriptionHandle:
        return await self.open_channel(ChannelScope.CAMPAIGN, campaign_id, handlers)

    async def open_brand_channel(self, brand_id: Optional[str], handlers: Handlers) -> SubscriptionHandle:
        return await self.open_channel(ChannelScope.BRAND, brand_id, handlers)

    async def open_creator_channel(self, creator_id: Optional[str], handlers: Handlers) -> SubscriptionHandle:
        return await self.open_channel(ChannelScope.CREATOR, creator_id, handlers)

    def _join(self, handle: SubscriptionHandle) -> None:
        if handle.key is None:
            return
        channel_key = (handle.scope, handle.key)
        channel = self._channels.get(channel_key)
        if channel is None:
            channel = _Channel(handle.scope, handle.key)
            self._channels[channel_key] = channel
            logger.debug(f"Opened channel {handle.scope.value}:{handle.key}")
        channel.handles.add(handle)

    def _release(self, handle: SubscriptionHandle) -> None:
        if handle.key is None:
            return
        channel_key = (handle.scope, handle.key)
        channel = self._channels.get(channel_key)
        if channel is None:
            return
        channel.handles.discard(handle)
        if not channel.handles:
            del self._channels[channel_key]
            logger.debug(f"Closed channel {handle.scope.value}:{handle.key}")

    # ====================
    # Dispatch
    # ====================

    async def handle_event(self, event: Event) -> int:
        """Bus callback; returns the number of handlers invoked"""
        change = ChangeEvent.from_data(getattr(event, "data", None) or {})
        if change is None:
            return 0
        return await self.route(change)

    async def route(self, change: ChangeEvent) -> int:
        invoked = 0
        for scope, kinds in SCOPE_KINDS.items():
            if change.kind not in kinds:
                continue
            key = change.key_for(scope)
            if key is None:
                continue
            channel = self._channels.get((scope, key))
            if channel is None:
                continue
            invoked += await channel.dispatch(fired_kinds(scope, change.kind))
        return invoked


__all__ = [
    "ChangeFeedRouter",
    "SubscriptionHandle",
    "ChangeHandler",
    "Handlers",
]
