"""
Fire-and-forget event dispatch for relationship changes.

Services call ``emit`` (or one of the typed helpers) after their transaction
has committed. Events go onto a bounded queue and a background task hands
them to every registered handler. Nothing on this path can raise back into
the caller: a full queue drops the event, a failing handler is logged and
the next handler still runs.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable

log = logging.getLogger("notifier")

FRIEND_REQUEST_SENT = "friend_request_sent"
FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"
CIRCLE_BECAME_SUBSCRIBABLE = "circle_became_subscribable"


@dataclass
class NotificationEvent:
    kind: str
    payload: dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventHandler = Callable[[NotificationEvent], Awaitable[None]]


async def log_event(event: NotificationEvent) -> None:
    log.info("[notifier] %s %s", event.kind, event.payload)


class Notifier:

    def __init__(self, maxsize: int = 1000, handlers: Iterable[EventHandler] = ()):
        self._queue: asyncio.Queue[NotificationEvent] = asyncio.Queue(maxsize=maxsize)
        self._handlers: list[EventHandler] = list(handlers)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def emit(self, kind: str, **payload: Any) -> bool:
        try:
            self._queue.put_nowait(NotificationEvent(kind=kind, payload=payload))
            return True
        except asyncio.QueueFull:
            log.warning("[notifier] queue full, dropping %s event", kind)
        except Exception as exc:
            log.warning("[notifier] failed to enqueue %s event: %s", kind, exc)
        return False

    def friend_request_sent(self, *, requester_id: int, addressee_id: int, friendship_id: int) -> bool:
        return self.emit(
            FRIEND_REQUEST_SENT,
            requester_id=requester_id,
            addressee_id=addressee_id,
            friendship_id=friendship_id,
        )

    def friend_request_accepted(self, *, accepter_id: int, requester_id: int, friendship_id: int) -> bool:
        return self.emit(
            FRIEND_REQUEST_ACCEPTED,
            accepter_id=accepter_id,
            requester_id=requester_id,
            friendship_id=friendship_id,
        )

    def circle_became_subscribable(
        self,
        *,
        circle_id: int,
        already_member_ids: Iterable[int],
        eligible_recipient_ids: Iterable[int],
    ) -> bool:
        return self.emit(
            CIRCLE_BECAME_SUBSCRIBABLE,
            circle_id=circle_id,
            already_member_ids=sorted(already_member_ids),
            eligible_recipient_ids=sorted(eligible_recipient_ids),
        )

    def start(self) -> None:
        if self.running:
            log.warning("[notifier] dispatcher already running")
            return
        self._task = asyncio.create_task(self._run())
        log.info("[notifier] dispatcher started")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            log.info("[notifier] dispatcher stopped")
        dropped = self._discard_pending()
        if dropped:
            log.warning("[notifier] dropped %d undelivered event(s) on stop", dropped)

    async def drain(self) -> None:
        """Wait until every queued event has been handed to the handlers.

        Returns at once when the dispatcher is not running.
        """
        if not self.running:
            return
        await self._queue.join()

    def _discard_pending(self) -> int:
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return dropped
            self._queue.task_done()
            dropped += 1

    async def _dispatch(self, event: NotificationEvent) -> None:
        for handler in self._handlers:
            try:
                await handler(event)
            except Exception:
                log.exception("[notifier] handler %r failed for %s", handler, event.kind)

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
            finally:
                self._queue.task_done()


def notify(notifier: "Notifier | None", method: str, **kwargs: Any) -> None:
    """Call ``notifier.<method>`` if a notifier is wired, swallowing failures."""
    if notifier is None:
        return
    try:
        getattr(notifier, method)(**kwargs)
    except Exception as exc:
        log.warning("[notifier] %s failed: %s", method, exc)
