"""In-process fan-out of run updates to live observers.

Publishing never waits on subscribers: every subscription owns a bounded
queue and ``publish`` only enqueues. Subscribers see events published after
they subscribed, never a backlog; the current state comes from the run
listing queries instead.
"""

import queue
import threading
import uuid
from functools import lru_cache
from typing import Callable, Iterator, Optional

from found.agents.schemas import AgentRunRecord, AutomationEvent, AutomationRunRecord, BrowserRunRecord
from found.core.config import get_settings
from found.core.enums import EventSource
from found.core.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[AutomationEvent], None]

_CLOSED = object()


class Subscription:
    def __init__(self, bus: "AutomationBus", handler: Optional[EventHandler], maxsize: int) -> None:
        self.id = uuid.uuid4().hex
        self._bus = bus
        self._handler = handler
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self._thread: Optional[threading.Thread] = None
        if handler is not None:
            self._thread = threading.Thread(
                target=self._dispatch,
                name=f"automation-bus-{self.id[:8]}",
                daemon=True,
            )
            self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, event: AutomationEvent) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            return False
        return True

    def get(self, timeout: float | None = None) -> Optional[AutomationEvent]:
        """Next event, or ``None`` on timeout or once the subscription is closed."""
        if self.closed and self._queue.empty():
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        return None if item is _CLOSED else item

    def stream(self, heartbeat_seconds: float | None = None) -> Iterator[Optional[AutomationEvent]]:
        """Yield events as they arrive; ``None`` is a keep-alive tick after an idle interval."""
        while True:
            try:
                item = self._queue.get(timeout=heartbeat_seconds)
            except queue.Empty:
                if self.closed:
                    return
                yield None
                continue
            if item is _CLOSED:
                return
            yield item

    def close(self) -> None:
        if self.closed:
            return
        self._closed.set()
        self._bus.unsubscribe(self)
        while True:
            try:
                self._queue.put_nowait(_CLOSED)
                break
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)

    def _dispatch(self) -> None:
        for event in self.stream():
            try:
                self._handler(event)
            except Exception:
                logger.exception(
                    "automation_bus_handler_failed",
                    extra={"extra": {"subscription_id": self.id}},
                )

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class AutomationBus:
    def __init__(self, max_subscribers: int = 50, queue_size: int = 100) -> None:
        self.max_subscribers = max_subscribers
        self.queue_size = queue_size
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self, handler: Optional[EventHandler] = None) -> Subscription:
        subscription = Subscription(self, handler, self.queue_size)
        with self._lock:
            if len(self._subscriptions) >= self.max_subscribers:
                logger.error(
                    "automation_bus_capacity_exceeded",
                    extra={
                        "extra": {
                            "max_subscribers": self.max_subscribers,
                            "subscribers": len(self._subscriptions) + 1,
                        }
                    },
                )
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        if not subscription.closed:
            subscription.close()

    def publish(self, event: AutomationEvent) -> None:
        with self._lock:
            targets = list(self._subscriptions)
        for subscription in targets:
            try:
                delivered = subscription.offer(event)
            except Exception:
                logger.exception(
                    "automation_bus_publish_failed",
                    extra={"extra": {"subscription_id": subscription.id}},
                )
                continue
            if not delivered:
                logger.warning(
                    "automation_bus_event_dropped",
                    extra={"extra": {"subscription_id": subscription.id, "run_id": event.run.id}},
                )

    def publish_run(
        self,
        source: EventSource,
        run: AgentRunRecord | BrowserRunRecord | AutomationRunRecord,
    ) -> None:
        try:
            # Snapshot, so later in-place updates to the run don't rewrite delivered events.
            event = AutomationEvent(source=source, run=run.model_copy(deep=True))
        except Exception:
            logger.exception(
                "automation_bus_snapshot_failed",
                extra={"extra": {"source": getattr(source, "value", source), "run_id": getattr(run, "id", None)}},
            )
            return
        self.publish(event)


@lru_cache(maxsize=1)
def get_automation_bus() -> AutomationBus:
    settings = get_settings()
    return AutomationBus(
        max_subscribers=settings.automation_bus_max_subscribers,
        queue_size=settings.automation_bus_queue_size,
    )
