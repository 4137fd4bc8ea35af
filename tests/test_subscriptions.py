"""
Tests for following and unfollowing subscribable circles.
"""

import pytest
from sqlalchemy import select

from circleshare.core.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from circleshare.db.models import Notification, NotificationKind
from circleshare.services import subscriptions as svc
from circleshare.services.audience import resolve_circle_audience
from circleshare.services.circles import create_circle


async def _invite_id(db, user_id, circle_id) -> int:
    result = await db.execute(
        select(Notification.id).where(
            Notification.user_id == user_id,
            Notification.circle_id == circle_id,
            Notification.kind == NotificationKind.CIRCLE_INVITE,
        )
    )
    return result.scalar_one()


@pytest.fixture
def open_circle(db, make_users, make_friends):
    """A subscribable circle whose owner is friends with ``fan`` but not ``stranger``."""

    async def _build(**kwargs) -> dict:
        owner, fan, stranger = await make_users("owner", "fan", "stranger")
        await make_friends(owner, fan)
        options = {"is_shared": True, "is_subscribable": True}
        options.update(kwargs)
        circle = await create_circle(db, owner_id=owner, name="Open", **options)
        return {"owner": owner, "fan": fan, "stranger": stranger, "circle": circle.id}

    return _build


@pytest.mark.asyncio
class TestFollow:

    async def test_friend_can_follow(self, db, open_circle):
        s = await open_circle()

        membership = await svc.follow(db, user_id=s["fan"], circle_id=s["circle"])

        assert membership.is_moderator is False
        assert s["fan"] in await resolve_circle_audience(db, s["circle"])

    async def test_follow_consumes_invite(self, db, open_circle):
        s = await open_circle()
        invite_id = await _invite_id(db, s["fan"], s["circle"])

        await svc.follow(db, user_id=s["fan"], circle_id=s["circle"], invite_id=invite_id)

        assert await db.get(Notification, invite_id) is None
        assert await svc.list_follow_invites(db, s["fan"]) == []

    async def test_follow_ignores_foreign_invite(self, db, open_circle, make_users, make_friends):
        s = await open_circle()
        (other,) = await make_users("other")
        await make_friends(s["owner"], other)
        fan_invite = (
            await db.execute(
                select(Notification).where(
                    Notification.user_id == s["fan"],
                    Notification.kind == NotificationKind.CIRCLE_INVITE,
                )
            )
        ).scalar_one()
        fan_invite_id = fan_invite.id

        await svc.follow(db, user_id=other, circle_id=s["circle"], invite_id=fan_invite_id)

        assert await db.get(Notification, fan_invite_id) is not None

    async def test_invite_for_another_circle_is_kept(self, db, open_circle):
        s = await open_circle()
        second = await create_circle(
            db, owner_id=s["owner"], name="Second", is_shared=True, is_subscribable=True
        )
        second_id = second.id
        second_invite_id = await _invite_id(db, s["fan"], second_id)

        await svc.follow(db, user_id=s["fan"], circle_id=s["circle"], invite_id=second_invite_id)

        remaining = await svc.list_follow_invites(db, s["fan"])
        assert [i.circle_id for i in remaining] == [second_id]
        assert s["fan"] not in await resolve_circle_audience(db, second_id)

    async def test_owner_cannot_follow_own_circle(self, db, open_circle):
        s = await open_circle()

        with pytest.raises(InvalidStateError) as exc:
            await svc.follow(db, user_id=s["owner"], circle_id=s["circle"])
        assert exc.value.detail["message"] == "Owners cannot follow their own circle"

    async def test_owner_rule_checked_before_subscribable(self, db, open_circle):
        s = await open_circle(is_subscribable=False)

        with pytest.raises(InvalidStateError) as exc:
            await svc.follow(db, user_id=s["owner"], circle_id=s["circle"])
        assert exc.value.detail["message"] == "Owners cannot follow their own circle"

    async def test_not_subscribable(self, db, open_circle):
        s = await open_circle(is_subscribable=False)

        with pytest.raises(InvalidStateError):
            await svc.follow(db, user_id=s["fan"], circle_id=s["circle"])

    async def test_requires_friendship(self, db, open_circle):
        s = await open_circle()

        with pytest.raises(UnauthorizedError):
            await svc.follow(db, user_id=s["stranger"], circle_id=s["circle"])
        assert s["stranger"] not in await resolve_circle_audience(db, s["circle"])

    async def test_second_follow_conflicts(self, db, open_circle):
        s = await open_circle()
        await svc.follow(db, user_id=s["fan"], circle_id=s["circle"])

        with pytest.raises(ConflictError):
            await svc.follow(db, user_id=s["fan"], circle_id=s["circle"])

    async def test_unknown_circle(self, db, make_users):
        (user,) = await make_users("user")

        with pytest.raises(NotFoundError):
            await svc.follow(db, user_id=user, circle_id=31337)


@pytest.mark.asyncio
class TestDenyAndUnfollow:

    async def test_deny_deletes_invite(self, db, open_circle):
        s = await open_circle()
        invite_id = await _invite_id(db, s["fan"], s["circle"])

        await svc.deny_follow(db, user_id=s["fan"], invite_id=invite_id)

        assert await db.get(Notification, invite_id) is None
        assert s["fan"] not in await resolve_circle_audience(db, s["circle"])

    async def test_deny_someone_elses_invite(self, db, open_circle):
        s = await open_circle()
        invite_id = await _invite_id(db, s["fan"], s["circle"])

        with pytest.raises(NotFoundError):
            await svc.deny_follow(db, user_id=s["stranger"], invite_id=invite_id)

    async def test_deny_other_notification_kind(self, db, make_users):
        (user,) = await make_users("user")
        notification = Notification(
            user_id=user,
            kind="friend_request",
            title="Friend request",
            message="Someone wants to be friends",
        )
        db.add(notification)
        await db.commit()
        notification_id = notification.id

        with pytest.raises(InvalidStateError):
            await svc.deny_follow(db, user_id=user, invite_id=notification_id)

    async def test_unfollow(self, db, open_circle):
        s = await open_circle()
        await svc.follow(db, user_id=s["fan"], circle_id=s["circle"])

        await svc.unfollow(db, user_id=s["fan"], circle_id=s["circle"])

        assert s["fan"] not in await resolve_circle_audience(db, s["circle"])

    async def test_owner_cannot_unfollow(self, db, open_circle):
        s = await open_circle()

        with pytest.raises(InvalidStateError) as exc:
            await svc.unfollow(db, user_id=s["owner"], circle_id=s["circle"])
        assert exc.value.detail["message"] == "Owners cannot unfollow their own circle"

    async def test_unfollow_without_membership(self, db, open_circle):
        s = await open_circle()

        with pytest.raises(InvalidStateError):
            await svc.unfollow(db, user_id=s["fan"], circle_id=s["circle"])

    async def test_unfollow_unknown_circle(self, db, make_users):
        (user,) = await make_users("user")

        with pytest.raises(NotFoundError):
            await svc.unfollow(db, user_id=user, circle_id=404)


@pytest.mark.asyncio
class TestListings:

    async def test_invites_listed(self, db, open_circle):
        s = await open_circle()

        invites = await svc.list_follow_invites(db, s["fan"])

        assert [i.circle_id for i in invites] == [s["circle"]]
        assert await svc.list_follow_invites(db, s["stranger"]) == []

    async def test_available_circles(self, db, open_circle):
        s = await open_circle()
        closed = await create_circle(db, owner_id=s["owner"], name="Closed", is_shared=True)
        closed_id = closed.id

        available = await svc.list_available_circles(db, s["fan"])
        assert [c.id for c in available] == [s["circle"]]
        assert closed_id not in [c.id for c in available]

        await svc.follow(db, user_id=s["fan"], circle_id=s["circle"])
        assert await svc.list_available_circles(db, s["fan"]) == []
        assert await svc.list_available_circles(db, s["stranger"]) == []
