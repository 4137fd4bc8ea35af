"""
Tests for the fire-and-forget notifier.
"""

import asyncio

import pytest

from circleshare.services.notifier import (
    CIRCLE_BECAME_SUBSCRIBABLE,
    FRIEND_REQUEST_SENT,
    Notifier,
    notify,
)


@pytest.mark.asyncio
class TestNotifier:

    async def test_events_reach_every_handler(self, notifier, recorder):
        second = []

        async def collect(event):
            second.append(event.kind)

        notifier.subscribe(collect)
        assert notifier.friend_request_sent(requester_id=1, addressee_id=2, friendship_id=3)
        await notifier.drain()

        assert recorder.kinds() == [FRIEND_REQUEST_SENT]
        assert recorder.events[0].payload == {"requester_id": 1, "addressee_id": 2, "friendship_id": 3}
        assert second == [FRIEND_REQUEST_SENT]

    async def test_failing_handler_does_not_stop_others(self, recorder):
        async def broken(event):
            raise RuntimeError("push gateway down")

        notifier = Notifier(handlers=[broken, recorder])
        notifier.start()
        try:
            notifier.emit("friend_request_accepted", friendship_id=9)
            notifier.emit("friend_request_accepted", friendship_id=10)
            await notifier.drain()
        finally:
            await notifier.stop()

        assert [e.payload["friendship_id"] for e in recorder.events] == [9, 10]

    async def test_full_queue_drops_event(self, recorder):
        notifier = Notifier(maxsize=1, handlers=[recorder])

        assert notifier.emit("first") is True
        assert notifier.emit("second") is False

        notifier.start()
        await notifier.drain()
        await notifier.stop()
        assert recorder.kinds() == ["first"]

    async def test_subscribable_payload_is_sorted(self, notifier, recorder):
        notifier.circle_became_subscribable(
            circle_id=5, already_member_ids={3, 1}, eligible_recipient_ids={9, 7}
        )
        await notifier.drain()

        assert recorder.events[0].kind == CIRCLE_BECAME_SUBSCRIBABLE
        assert recorder.events[0].payload["already_member_ids"] == [1, 3]
        assert recorder.events[0].payload["eligible_recipient_ids"] == [7, 9]

    async def test_stop_and_restart(self, recorder):
        notifier = Notifier(handlers=[recorder])
        notifier.start()
        assert notifier.running
        await notifier.stop()
        assert not notifier.running

        notifier.start()
        notifier.emit("again")
        await asyncio.wait_for(notifier.drain(), timeout=1)
        await notifier.stop()
        assert recorder.kinds() == ["again"]

    async def test_stop_discards_undelivered_events(self, recorder):
        notifier = Notifier(handlers=[recorder])
        notifier.emit("queued")
        notifier.emit("also_queued")

        await notifier.stop()
        await asyncio.wait_for(notifier.drain(), timeout=1)

        assert recorder.events == []
        notifier.start()
        await asyncio.wait_for(notifier.drain(), timeout=1)
        await notifier.stop()
        assert recorder.events == []

    async def test_drain_after_stop_returns(self, recorder):
        notifier = Notifier(handlers=[recorder])
        notifier.start()
        await notifier.stop()
        notifier.emit("late")

        await asyncio.wait_for(notifier.drain(), timeout=1)
        await notifier.stop()


class TestNotifyHelper:

    def test_none_notifier_is_ignored(self):
        notify(None, "friend_request_sent", requester_id=1, addressee_id=2, friendship_id=3)

    def test_bad_call_is_swallowed(self):
        notifier = Notifier()
        # wrong keyword arguments must never reach the caller
        notify(notifier, "friend_request_sent", nope=True)
        notify(notifier, "no_such_event")
