"""
Self-service follow / unfollow of subscribable circles.

The owner's membership is created with the circle and can never be added or
removed through this path, so owner checks come before every other rule.
"""

import logging

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.core.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from circleshare.db.models import Circle, CircleMembership, Notification, NotificationKind
from circleshare.services.friendship import are_friends, friend_ids
from circleshare.utils.transaction import run_in_transaction

log = logging.getLogger(__name__)

OWNER_FOLLOW_MESSAGE = "Owners cannot follow their own circle"
OWNER_UNFOLLOW_MESSAGE = "Owners cannot unfollow their own circle"


async def _get_membership(db: AsyncSession, circle_id: int, user_id: int) -> CircleMembership | None:
    return await db.get(CircleMembership, (circle_id, user_id))


async def follow(
    db: AsyncSession,
    *,
    user_id: int,
    circle_id: int,
    invite_id: int | None = None,
) -> CircleMembership:
    async def _follow() -> CircleMembership:
        circle = await db.get(Circle, circle_id)
        if circle is None:
            raise NotFoundError(f"Circle {circle_id} not found")
        if circle.owner_id == user_id:
            raise InvalidStateError(OWNER_FOLLOW_MESSAGE)
        if not circle.is_subscribable:
            raise InvalidStateError("This circle is not open for following")
        if not await are_friends(db, circle.owner_id, user_id):
            raise UnauthorizedError("You must be friends with the circle owner to follow this circle")
        if await _get_membership(db, circle_id, user_id) is not None:
            raise ConflictError("Already a member of this circle")

        membership = CircleMembership(circle_id=circle_id, user_id=user_id, is_moderator=False)
        db.add(membership)

        if invite_id is not None:
            invite = await db.get(Notification, invite_id)
            if (
                invite is None
                or invite.user_id != user_id
                or invite.kind != NotificationKind.CIRCLE_INVITE
                or invite.circle_id != circle_id
            ):
                log.info("Ignoring invite %s that does not prompt user %s to circle %s", invite_id, user_id, circle_id)

        # only prompts for this circle are consumed
        await db.execute(
            delete(Notification).where(
                Notification.user_id == user_id,
                Notification.kind == NotificationKind.CIRCLE_INVITE,
                Notification.circle_id == circle_id,
            )
        )

        await db.flush()
        return membership

    membership = await run_in_transaction(db, _follow, name="follow_circle")
    log.info("User %s followed circle %s", user_id, circle_id)
    return membership


async def deny_follow(db: AsyncSession, *, user_id: int, invite_id: int) -> None:
    async def _deny() -> None:
        invite = await db.get(Notification, invite_id)
        if invite is None or invite.user_id != user_id:
            raise NotFoundError(f"Invitation {invite_id} not found")
        if invite.kind != NotificationKind.CIRCLE_INVITE:
            raise InvalidStateError("Notification is not a circle invitation")
        await db.delete(invite)

    await run_in_transaction(db, _deny, name="deny_follow")
    log.info("User %s denied circle invitation %s", user_id, invite_id)


async def unfollow(db: AsyncSession, *, user_id: int, circle_id: int) -> None:
    async def _unfollow() -> None:
        circle = await db.get(Circle, circle_id)
        if circle is None:
            raise NotFoundError(f"Circle {circle_id} not found")
        if circle.owner_id == user_id:
            raise InvalidStateError(OWNER_UNFOLLOW_MESSAGE)
        if not circle.is_subscribable:
            raise InvalidStateError("This circle is not open for following")
        membership = await _get_membership(db, circle_id, user_id)
        if membership is None:
            raise InvalidStateError("Not a member of this circle")
        await db.delete(membership)

    await run_in_transaction(db, _unfollow, name="unfollow_circle")
    log.info("User %s unfollowed circle %s", user_id, circle_id)


async def list_follow_invites(db: AsyncSession, user_id: int) -> list[Notification]:
    result = await db.execute(
        select(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.kind == NotificationKind.CIRCLE_INVITE,
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    return list(result.scalars().all())


async def list_available_circles(db: AsyncSession, user_id: int) -> list[Circle]:
    """Subscribable circles owned by friends that the user has not joined yet."""
    friends = await friend_ids(db, user_id)
    if not friends:
        return []

    joined = select(CircleMembership.circle_id).where(CircleMembership.user_id == user_id)
    result = await db.execute(
        select(Circle)
        .where(
            Circle.is_subscribable.is_(True),
            Circle.owner_id.in_(friends),
            Circle.id.not_in(joined),
        )
        .order_by(Circle.id)
    )
    return list(result.scalars().all())
