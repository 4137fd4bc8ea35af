"""
Circle lifecycle and membership.

Bulk member changes are all-or-nothing: every candidate id is checked for
existence and accepted friendship with the owner before the first row is
written, and a single ``ValidationFailedError`` names every offender.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import select, delete, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.core.errors import NotFoundError, UnauthorizedError, ValidationFailedError
from circleshare.db.models import (
    Circle,
    CircleMembership,
    ContentShare,
    Friendship,
    FriendshipStatus,
    Notification,
    NotificationKind,
    User,
)
from circleshare.services.audience import resolve_circle_audience
from circleshare.services.friendship import friend_ids
from circleshare.services.identity import existing_user_ids, get_users, user_exists
from circleshare.services.notifier import Notifier, notify
from circleshare.utils.transaction import run_in_transaction

log = logging.getLogger(__name__)

MAX_NAME_LENGTH = 120


@dataclass
class CircleWithMembers:
    circle: Circle
    is_owner: bool
    owner: User | None = None
    members: list[User] = field(default_factory=list)


@dataclass
class _SubscribableAnnouncement:
    circle_id: int
    already_member_ids: set[int]
    eligible_recipient_ids: set[int]


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationFailedError("Circle name cannot be empty")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationFailedError(f"Circle name cannot exceed {MAX_NAME_LENGTH} characters")
    return cleaned


async def _get_circle_or_404(db: AsyncSession, circle_id: int) -> Circle:
    circle = await db.get(Circle, circle_id)
    if circle is None:
        raise NotFoundError(f"Circle {circle_id} not found")
    return circle


async def _get_owned_circle(db: AsyncSession, requestor_id: int, circle_id: int, action: str) -> Circle:
    circle = await _get_circle_or_404(db, circle_id)
    if circle.owner_id != requestor_id:
        raise UnauthorizedError(f"User {requestor_id} is not authorized to {action} circle {circle_id}")
    return circle


async def _accepted_friends_among(db: AsyncSession, owner_id: int, candidate_ids: set[int]) -> set[int]:
    if not candidate_ids:
        return set()
    result = await db.execute(
        select(Friendship.requester_id, Friendship.addressee_id).where(
            Friendship.status == FriendshipStatus.ACCEPTED.value,
            or_(
                and_(Friendship.requester_id == owner_id, Friendship.addressee_id.in_(candidate_ids)),
                and_(Friendship.addressee_id == owner_id, Friendship.requester_id.in_(candidate_ids)),
            ),
        )
    )
    return {
        addressee if requester == owner_id else requester
        for requester, addressee in result.all()
    }


async def validate_new_members(db: AsyncSession, owner_id: int, user_ids: Iterable[int]) -> None:
    """Raise one ``ValidationFailedError`` for every id that is not an existing friend of the owner."""
    candidates = set(user_ids) - {owner_id}
    if not candidates:
        return
    existing = await existing_user_ids(db, candidates)
    friends = await _accepted_friends_among(db, owner_id, existing)
    invalid = candidates - existing
    non_friends = existing - friends
    if invalid or non_friends:
        raise ValidationFailedError.for_members(
            invalid_user_ids=invalid,
            non_friend_user_ids=non_friends,
        )


async def _issue_follow_invites(db: AsyncSession, circle: Circle) -> _SubscribableAnnouncement:
    """Insert a circle invite for every friend of the owner who is not yet a member.

    Friends already holding a pending invite are skipped and left out of the
    announcement.
    """
    members = await resolve_circle_audience(db, circle.id)
    already_invited = await db.execute(
        select(Notification.user_id).where(
            Notification.circle_id == circle.id,
            Notification.kind == NotificationKind.CIRCLE_INVITE,
        )
    )
    invited = set(already_invited.scalars().all())
    eligible = await friend_ids(db, circle.owner_id) - members

    owner = await db.get(User, circle.owner_id)
    owner_name = owner.display_name if owner else "A friend"
    newly_invited = eligible - invited
    for user_id in sorted(newly_invited):
        db.add(Notification(
            user_id=user_id,
            kind=NotificationKind.CIRCLE_INVITE,
            circle_id=circle.id,
            title="New circle to follow",
            message=f"{owner_name} opened the circle \"{circle.name}\" to friends",
            payload={"circle_id": circle.id, "owner_id": circle.owner_id},
        ))

    return _SubscribableAnnouncement(
        circle_id=circle.id,
        already_member_ids=members - {circle.owner_id},
        eligible_recipient_ids=newly_invited,
    )


def _announce(notifier: Notifier | None, announcement: _SubscribableAnnouncement | None) -> None:
    if announcement is None:
        return
    notify(
        notifier,
        "circle_became_subscribable",
        circle_id=announcement.circle_id,
        already_member_ids=announcement.already_member_ids,
        eligible_recipient_ids=announcement.eligible_recipient_ids,
    )


async def create_circle(
    db: AsyncSession,
    *,
    owner_id: int,
    name: str,
    is_shared: bool,
    is_subscribable: bool = False,
    member_ids: Iterable[int] = (),
    notifier: Notifier | None = None,
) -> Circle:
    name = _clean_name(name)
    if not await user_exists(db, owner_id):
        raise NotFoundError(f"Cannot create circle for invalid user {owner_id}")

    to_add = [uid for uid in dict.fromkeys(member_ids) if uid != owner_id]

    async def _create() -> tuple[Circle, _SubscribableAnnouncement | None]:
        await validate_new_members(db, owner_id, to_add)

        circle = Circle(
            owner_id=owner_id,
            name=name,
            is_shared=is_shared,
            is_subscribable=is_subscribable,
        )
        db.add(circle)
        await db.flush()

        db.add(CircleMembership(circle_id=circle.id, user_id=owner_id, is_moderator=True))
        for uid in to_add:
            db.add(CircleMembership(circle_id=circle.id, user_id=uid, is_moderator=False))
        await db.flush()

        announcement = await _issue_follow_invites(db, circle) if is_subscribable else None
        return circle, announcement

    circle, announcement = await run_in_transaction(db, _create, name="create_circle")
    log.info("Circle %s created by user %s with %d member(s)", circle.id, owner_id, len(to_add))
    _announce(notifier, announcement)
    return circle


async def get_circle(db: AsyncSession, *, requestor_id: int, circle_id: int) -> Circle:
    circle = await _get_circle_or_404(db, circle_id)
    if circle.owner_id == requestor_id:
        return circle
    if circle.is_shared and requestor_id in await resolve_circle_audience(db, circle_id):
        return circle
    raise UnauthorizedError(f"User {requestor_id} is not authorized to view circle {circle_id}")


async def update_circle(
    db: AsyncSession,
    *,
    requestor_id: int,
    circle_id: int,
    name: str | None = None,
    is_shared: bool | None = None,
    is_subscribable: bool | None = None,
    notifier: Notifier | None = None,
) -> Circle:
    new_name = _clean_name(name) if name is not None else None

    async def _update() -> tuple[Circle, _SubscribableAnnouncement | None]:
        circle = await _get_owned_circle(db, requestor_id, circle_id, "update")
        became_subscribable = bool(is_subscribable) and not circle.is_subscribable
        closed = is_subscribable is False and circle.is_subscribable

        if new_name is not None:
            circle.name = new_name
        if is_shared is not None:
            circle.is_shared = is_shared
        if is_subscribable is not None:
            circle.is_subscribable = is_subscribable
        if closed:
            await db.execute(
                delete(Notification).where(
                    Notification.circle_id == circle_id,
                    Notification.kind == NotificationKind.CIRCLE_INVITE,
                )
            )
        await db.flush()

        announcement = await _issue_follow_invites(db, circle) if became_subscribable else None
        return circle, announcement

    circle, announcement = await run_in_transaction(db, _update, name="update_circle")
    log.info("Circle %s updated by user %s", circle_id, requestor_id)
    _announce(notifier, announcement)
    return circle


async def delete_circle(db: AsyncSession, *, requestor_id: int, circle_id: int) -> None:
    async def _delete() -> None:
        circle = await _get_owned_circle(db, requestor_id, circle_id, "delete")
        await db.execute(delete(ContentShare).where(ContentShare.circle_id == circle_id))
        await db.execute(delete(CircleMembership).where(CircleMembership.circle_id == circle_id))
        await db.execute(delete(Notification).where(Notification.circle_id == circle_id))
        await db.delete(circle)

    await run_in_transaction(db, _delete, name="delete_circle")
    log.info("Circle %s deleted by user %s", circle_id, requestor_id)


async def add_members(
    db: AsyncSession,
    *,
    requestor_id: int,
    circle_id: int,
    user_ids: Iterable[int],
) -> list[int]:
    requested = list(dict.fromkeys(user_ids))

    async def _add() -> list[int]:
        await _get_owned_circle(db, requestor_id, circle_id, "add users to")
        if not requested:
            return []
        members = await resolve_circle_audience(db, circle_id)
        new_ids = [uid for uid in requested if uid not in members]
        if not new_ids:
            return []
        await validate_new_members(db, requestor_id, new_ids)
        for uid in new_ids:
            db.add(CircleMembership(circle_id=circle_id, user_id=uid, is_moderator=False))
        await db.flush()
        return new_ids

    added = await run_in_transaction(db, _add, name="add_circle_members")
    if added:
        log.info("Added %d users to circle %s by user %s", len(added), circle_id, requestor_id)
    return added


async def remove_members(
    db: AsyncSession,
    *,
    requestor_id: int,
    circle_id: int,
    user_ids: Iterable[int],
) -> list[int]:
    """Remove the given ids that are members; ids that are not members are skipped.

    The owner's own membership is never removed here.
    """
    requested = list(dict.fromkeys(user_ids))

    async def _remove() -> list[int]:
        circle = await _get_owned_circle(db, requestor_id, circle_id, "remove users from")
        if not requested:
            return []
        members = await resolve_circle_audience(db, circle_id)
        to_remove = [uid for uid in requested if uid in members and uid != circle.owner_id]
        if not to_remove:
            return []
        await db.execute(
            delete(CircleMembership).where(
                CircleMembership.circle_id == circle_id,
                CircleMembership.user_id.in_(to_remove),
            )
        )
        return to_remove

    removed = await run_in_transaction(db, _remove, name="remove_circle_members")
    if removed:
        log.info("Removed %d users from circle %s by user %s", len(removed), circle_id, requestor_id)
    return removed


async def get_owned_circles(db: AsyncSession, user_id: int) -> list[Circle]:
    result = await db.execute(
        select(Circle).where(Circle.owner_id == user_id).order_by(Circle.id)
    )
    return list(result.scalars().all())


async def get_member_circles(db: AsyncSession, user_id: int) -> list[Circle]:
    """Shared circles the user belongs to but does not own."""
    result = await db.execute(
        select(Circle)
        .join(CircleMembership, CircleMembership.circle_id == Circle.id)
        .where(
            CircleMembership.user_id == user_id,
            Circle.is_shared.is_(True),
            Circle.owner_id != user_id,
        )
        .order_by(Circle.id)
    )
    return list(result.scalars().all())


async def get_circles_with_members(db: AsyncSession, user_id: int) -> list[CircleWithMembers]:
    if not await user_exists(db, user_id):
        raise NotFoundError(f"Cannot get circles for invalid user {user_id}")

    owned = await get_owned_circles(db, user_id)
    member_of = await get_member_circles(db, user_id)
    circles = owned + member_of
    if not circles:
        return []

    membership_rows = await db.execute(
        select(CircleMembership.circle_id, CircleMembership.user_id)
        .where(CircleMembership.circle_id.in_([c.id for c in circles]))
        .order_by(CircleMembership.circle_id, CircleMembership.joined_at, CircleMembership.user_id)
    )
    members_by_circle: dict[int, list[int]] = {}
    for circle_id, member_id in membership_rows.all():
        members_by_circle.setdefault(circle_id, []).append(member_id)

    user_ids = {uid for ids in members_by_circle.values() for uid in ids}
    user_ids.update(c.owner_id for c in member_of)
    users = await get_users(db, user_ids)

    def _summaries(circle_id: int) -> list[User]:
        return [users[uid] for uid in members_by_circle.get(circle_id, []) if uid in users]

    result = [
        CircleWithMembers(circle=c, is_owner=True, members=_summaries(c.id))
        for c in owned
    ]
    result.extend(
        CircleWithMembers(
            circle=c,
            is_owner=False,
            owner=users.get(c.owner_id),
            members=_summaries(c.id),
        )
        for c in member_of
    )
    return result
