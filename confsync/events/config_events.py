# confsync/events/config_events.py
"""
Cluster propagation of configuration changes.

Design decisions:
- Notifications carry no configuration data; receivers always re-read the
  settings store, so a duplicated or reordered notification is harmless.
- Every node, including the publisher, receives its own notifications.
- Handler failures are logged and never stop the listener.
- If the subscription itself drops, the listener resubscribes after a delay.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
import contextlib
import json
import logging
from typing import Awaitable, Callable, DefaultDict, List, Optional, Protocol

from broadcaster import Broadcast

from ..services.config_service import RELOAD_CONFIG_EVENT, ConfigService
from ..services.runtime_applier import RuntimeApplier

logger = logging.getLogger(__name__)

EventHandler = Callable[[], Awaitable[None]]


class ConfigEventPublisher(Protocol):
    """Anything that can broadcast a named event to the cluster."""

    async def publish(self, event_name: str) -> None:
        ...


class ConfigEventBus:
    """Named-event fan-out on top of a single Broadcaster channel."""

    def __init__(
        self,
        broadcast: Broadcast,
        *,
        channel: str,
        node_id: str,
        retry_delay_s: float = 1.0,
    ) -> None:
        self.broadcast = broadcast
        self.channel = channel
        self.node_id = node_id
        self.retry_delay_s = retry_delay_s
        self._handlers: DefaultDict[str, List[EventHandler]] = defaultdict(list)
        self._task: Optional[asyncio.Task[None]] = None
        self._ready = asyncio.Event()

    def on(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name].append(handler)

    async def publish(self, event_name: str) -> None:
        payload = json.dumps({"event": event_name, "source": self.node_id})
        await self.broadcast.publish(channel=self.channel, message=payload)
        logger.debug(f"[CONFIG-EVENTS] Published {event_name} on {self.channel}")

    @property
    def is_listening(self) -> bool:
        return self._ready.is_set()

    async def start(self, timeout: float = 5.0) -> None:
        """Start the listener task and wait (up to ``timeout``) until it is subscribed."""
        if self._task is None:
            self._task = asyncio.create_task(self._listen(), name="confsync-config-events")
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"[CONFIG-EVENTS] Not subscribed to {self.channel} after {timeout}s, "
                "listener keeps retrying in the background"
            )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._ready.clear()

    async def _listen(self) -> None:
        while True:
            try:
                async with self.broadcast.subscribe(channel=self.channel) as subscriber:
                    self._ready.set()
                    logger.info(f"[CONFIG-EVENTS] Subscribed to channel: {self.channel}")
                    async for event in subscriber:
                        await self._dispatch(event.message)
                logger.warning(f"[CONFIG-EVENTS] Subscription to {self.channel} ended, resubscribing")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[CONFIG-EVENTS] Listener error on {self.channel}: {e}")
            self._ready.clear()
            await asyncio.sleep(self.retry_delay_s)

    async def _dispatch(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"[CONFIG-EVENTS] Invalid JSON in message: {e}")
            return
        if not isinstance(message, dict):
            return

        event_name = message.get("event")
        handlers = list(self._handlers.get(event_name, ()))
        logger.debug(
            f"[CONFIG-EVENTS] Received {event_name} from {message.get('source')} "
            f"({len(handlers)} handler(s))"
        )
        for handler in handlers:
            try:
                await handler()
            except Exception as e:
                logger.error(f"[CONFIG-EVENTS] Handler for {event_name} failed: {e}", exc_info=True)


class ConfigPropagationService:
    """Keeps this node's snapshot in sync with the store after any node writes to it."""

    def __init__(
        self,
        config_service: ConfigService,
        applier: RuntimeApplier,
        bus: ConfigEventBus,
    ) -> None:
        self.config_service = config_service
        self.applier = applier
        self.bus = bus
        self.reload_count = 0
        self.failure_count = 0

    def subscribe(self) -> None:
        """Register the reload handler for ``reloadConfig`` notifications."""
        self.bus.on(RELOAD_CONFIG_EVENT, self.handle_reload)

    async def publish(self) -> None:
        await self.bus.publish(RELOAD_CONFIG_EVENT)

    async def handle_reload(self) -> None:
        """Re-read the store, then re-apply runtime flags; failures keep the old snapshot."""
        try:
            await self.config_service.load_from_db()
            self.applier.apply_flags()
        except Exception as e:
            self.failure_count += 1
            logger.error(f"[CONFIG-EVENTS] Failed to reload configuration: {e}", exc_info=True)
            return
        self.reload_count += 1
        logger.info("[CONFIG-EVENTS] Configuration reloaded")

    async def run_reconciliation(self, interval_s: float) -> None:
        """Reload periodically in case a notification was missed."""
        while True:
            await asyncio.sleep(interval_s)
            logger.debug("[CONFIG-EVENTS] Periodic reconciliation reload")
            await self.handle_reload()
