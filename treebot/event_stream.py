"""
Event Stream - carries lifecycle events from controllers to their consumers

Publishers only enqueue; handlers run when the stream is drained, so a slow
or failing consumer never runs inside a controller step.
"""
import asyncio
from collections import defaultdict, deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Union

from .logging_config import get_logger
from .schemas.events import EventKind, LifecycleEvent

logger = get_logger(__name__)

EventHandler = Callable[[LifecycleEvent], Union[None, Awaitable[None]]]


class EventStream:
    """Queue of lifecycle events with registered handlers and a bounded history"""

    def __init__(self, max_history_size: int = 1000):
        self.handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self.event_history: Deque[LifecycleEvent] = deque(maxlen=max_history_size)
        self._queue: "asyncio.Queue[LifecycleEvent]" = asyncio.Queue()
        self._running = False

    def publish(self, event: LifecycleEvent) -> None:
        """Enqueue an event; never blocks and never calls handlers"""
        self.event_history.append(event)
        self._queue.put_nowait(event)

    def emit(self, kind: EventKind, source: str, **fields: Any) -> LifecycleEvent:
        """Build and publish an event in one call"""
        event = LifecycleEvent(kind=kind, source=source, **fields)
        self.publish(event)
        return event

    def register_handler(self, event_kind: str, handler: EventHandler) -> None:
        """Register an event handler

        Args:
            event_kind: EventKind value to handle (use "*" for all events)
            handler: Function or coroutine function called with the event
        """
        self.handlers[str(getattr(event_kind, "value", event_kind))].append(handler)
        logger.debug("Registered event handler", event_kind=str(event_kind))

    def unregister_handler(self, event_kind: str, handler: EventHandler) -> None:
        key = str(getattr(event_kind, "value", event_kind))
        if handler in self.handlers.get(key, []):
            self.handlers[key].remove(handler)

    async def _dispatch_event(self, event: LifecycleEvent) -> None:
        for handler in self.handlers.get("*", []):
            await self._call_handler(handler, event)
        for handler in self.handlers.get(event.kind.value, []):
            await self._call_handler(handler, event)

    async def _call_handler(self, handler: EventHandler, event: LifecycleEvent) -> None:
        """Call an event handler safely"""
        try:
            result = handler(event)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error("Error in event handler", event_kind=event.kind.value, source=event.source, error=str(e))

    async def drain(self) -> int:
        """Dispatch every queued event; returns how many were handled"""
        handled = 0
        while not self._queue.empty():
            event = self._queue.get_nowait()
            await self._dispatch_event(event)
            handled += 1
        return handled

    async def run(self) -> None:
        """Consume events until stopped"""
        self._running = True
        logger.info("Event stream consumer started")
        try:
            while self._running:
                event = await self._queue.get()
                await self._dispatch_event(event)
        finally:
            self._running = False
            logger.info("Event stream consumer stopped")

    def stop(self) -> None:
        self._running = False

    def get_recent_events(self, event_kind: Optional[EventKind] = None, limit: int = 10) -> List[LifecycleEvent]:
        """Get recent events from history"""
        events = list(self.event_history)
        if event_kind is not None:
            events = [e for e in events if e.kind is event_kind]
        return events[-limit:]


def log_event(event: LifecycleEvent) -> None:
    """Handler that writes every event to the structured log"""
    fields = {
        "source": event.source,
        "tick": event.tick,
        "success": event.success,
        "reason": event.reason,
        **event.data,
    }
    if event.kind in (EventKind.DISPATCH_ERROR, EventKind.RESOLUTION_FAILURE) or event.success is False:
        logger.warning(f"task_{event.kind.value}", **fields)
    else:
        logger.info(f"task_{event.kind.value}", **fields)


class OutcomeAnnouncer:
    """Sends each event's natural-language message to chat"""

    def __init__(self, chat: Callable[[str], Awaitable[None]]):
        self._chat = chat

    async def __call__(self, event: LifecycleEvent) -> None:
        if event.message:
            await self._chat(event.message)

    def attach(self, stream: EventStream) -> None:
        stream.register_handler("*", self)
