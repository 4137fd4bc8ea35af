"""
Friendship state machine.

Every pair of users has at most one ``Friendship`` row. The row is looked up
by its canonical (low, high) pair, so both storage directions are checked in
one lookup, and the unique constraint on that pair turns a concurrent double
insert into an ``IntegrityError`` that ``run_in_transaction`` retries against
the committed row.
"""

import enum
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.core.errors import ConflictError, InvalidStateError, NotFoundError, UnauthorizedError
from circleshare.db.models import Friendship, FriendshipStatus, User
from circleshare.services.identity import existing_user_ids, get_users
from circleshare.services.notifier import Notifier, notify
from circleshare.utils.transaction import run_in_transaction

log = logging.getLogger(__name__)


class VisibleStatus(str, enum.Enum):
    NONE = "none"
    FRIENDS = "friends"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    BLOCKED = "blocked"
    BLOCKED_BY = "blocked_by"


@dataclass
class FriendshipStatusView:
    status: VisibleStatus
    friendship_id: int | None = None


@dataclass
class RecommendedFriend:
    user: User
    mutual_friend_count: int


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _pair(user_a: int, user_b: int) -> tuple[int, int]:
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


def _involves(user_id: int):
    return or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id)


async def get_friendship(db: AsyncSession, friendship_id: int) -> Friendship | None:
    return await db.get(Friendship, friendship_id)


async def get_friendship_between(db: AsyncSession, user_a: int, user_b: int) -> Friendship | None:
    low, high = _pair(user_a, user_b)
    result = await db.execute(
        select(Friendship).where(
            Friendship.user_low_id == low,
            Friendship.user_high_id == high,
        )
    )
    return result.scalar_one_or_none()


async def are_friends(db: AsyncSession, user_a: int, user_b: int) -> bool:
    if user_a == user_b:
        return False
    friendship = await get_friendship_between(db, user_a, user_b)
    return friendship is not None and friendship.status == FriendshipStatus.ACCEPTED.value


async def friend_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(
        select(Friendship.requester_id, Friendship.addressee_id).where(
            _involves(user_id),
            Friendship.status == FriendshipStatus.ACCEPTED.value,
        )
    )
    return {
        addressee if requester == user_id else requester
        for requester, addressee in result.all()
    }


async def send_request(
    db: AsyncSession,
    *,
    requester_id: int,
    addressee_id: int,
    notifier: Notifier | None = None,
) -> Friendship:
    if requester_id == addressee_id:
        raise InvalidStateError("Cannot send a friend request to yourself")

    missing = {requester_id, addressee_id} - await existing_user_ids(db, [requester_id, addressee_id])
    if missing:
        raise NotFoundError(
            "User(s) not found: " + ", ".join(str(i) for i in sorted(missing)),
            user_ids=sorted(missing),
        )

    async def _transition() -> tuple[Friendship, str]:
        existing = await get_friendship_between(db, requester_id, addressee_id)

        if existing is None:
            friendship = Friendship.create(requester_id, addressee_id, FriendshipStatus.PENDING)
            db.add(friendship)
            await db.flush()
            return friendship, "sent"

        if existing.status == FriendshipStatus.BLOCKED.value:
            raise UnauthorizedError("Cannot send a friend request to this user")

        if existing.status == FriendshipStatus.ACCEPTED.value:
            raise ConflictError("Already friends with this user")

        if existing.status == FriendshipStatus.PENDING.value:
            # crossed request: the other side already asked
            if existing.requester_id == addressee_id:
                existing.status = FriendshipStatus.ACCEPTED.value
                existing.accepted_at = _now()
                return existing, "accepted"
            raise ConflictError("Friend request already sent")

        # rejected: start over as a fresh request from the current caller
        existing.status = FriendshipStatus.PENDING.value
        existing.created_at = _now()
        existing.accepted_at = None
        if existing.requester_id != requester_id:
            existing.set_parties(requester_id, addressee_id)
        return existing, "sent"

    friendship, outcome = await run_in_transaction(db, _transition, name="send_friend_request")

    if outcome == "accepted":
        log.info("Crossed friend request between %s and %s auto-accepted", requester_id, addressee_id)
        notify(
            notifier,
            "friend_request_accepted",
            accepter_id=requester_id,
            requester_id=addressee_id,
            friendship_id=friendship.id,
        )
    else:
        log.info("Friend request %s sent from %s to %s", friendship.id, requester_id, addressee_id)
        notify(
            notifier,
            "friend_request_sent",
            requester_id=requester_id,
            addressee_id=addressee_id,
            friendship_id=friendship.id,
        )
    return friendship


async def _load_for_addressee(db: AsyncSession, friendship_id: int, user_id: int, action: str) -> Friendship:
    friendship = await get_friendship(db, friendship_id)
    if friendship is None:
        raise NotFoundError(f"Friend request {friendship_id} not found")
    if friendship.addressee_id != user_id:
        raise UnauthorizedError(f"Only the recipient can {action} this friend request")
    if friendship.status != FriendshipStatus.PENDING.value:
        raise InvalidStateError(f"This request cannot be {action}ed")
    return friendship


async def accept_request(
    db: AsyncSession,
    *,
    friendship_id: int,
    user_id: int,
    notifier: Notifier | None = None,
) -> Friendship:
    async def _accept() -> Friendship:
        friendship = await _load_for_addressee(db, friendship_id, user_id, "accept")
        friendship.status = FriendshipStatus.ACCEPTED.value
        friendship.accepted_at = _now()
        return friendship

    friendship = await run_in_transaction(db, _accept, name="accept_friend_request")
    log.info("Friend request %s accepted by %s", friendship_id, user_id)
    notify(
        notifier,
        "friend_request_accepted",
        accepter_id=user_id,
        requester_id=friendship.requester_id,
        friendship_id=friendship.id,
    )
    return friendship


async def reject_request(db: AsyncSession, *, friendship_id: int, user_id: int) -> Friendship:
    async def _reject() -> Friendship:
        friendship = await _load_for_addressee(db, friendship_id, user_id, "reject")
        friendship.status = FriendshipStatus.REJECTED.value
        return friendship

    friendship = await run_in_transaction(db, _reject, name="reject_friend_request")
    log.info("Friend request %s rejected by %s", friendship_id, user_id)
    return friendship


async def cancel_request(db: AsyncSession, *, friendship_id: int, user_id: int) -> None:
    async def _cancel() -> None:
        friendship = await get_friendship(db, friendship_id)
        if friendship is None:
            raise NotFoundError(f"Friend request {friendship_id} not found")
        if friendship.requester_id != user_id:
            raise UnauthorizedError("Only the sender can cancel this friend request")
        if friendship.status != FriendshipStatus.PENDING.value:
            raise InvalidStateError("Only pending requests can be cancelled")
        await db.delete(friendship)

    await run_in_transaction(db, _cancel, name="cancel_friend_request")
    log.info("Friend request %s cancelled by %s", friendship_id, user_id)


async def remove_friendship(db: AsyncSession, *, user_id: int, friend_id: int) -> None:
    async def _remove() -> None:
        friendship = await get_friendship_between(db, user_id, friend_id)
        if friendship is None:
            raise NotFoundError(f"No friendship between {user_id} and {friend_id}")
        if friendship.status != FriendshipStatus.ACCEPTED.value:
            raise InvalidStateError("Users are not friends")
        await db.delete(friendship)

    await run_in_transaction(db, _remove, name="remove_friendship")
    log.info("Friendship between %s and %s removed", user_id, friend_id)


async def block_user(db: AsyncSession, *, blocker_id: int, target_id: int) -> Friendship:
    if blocker_id == target_id:
        raise InvalidStateError("Cannot block yourself")

    missing = {blocker_id, target_id} - await existing_user_ids(db, [blocker_id, target_id])
    if missing:
        raise NotFoundError(
            "User(s) not found: " + ", ".join(str(i) for i in sorted(missing)),
            user_ids=sorted(missing),
        )

    async def _block() -> Friendship:
        existing = await get_friendship_between(db, blocker_id, target_id)
        if existing is None:
            friendship = Friendship.create(blocker_id, target_id, FriendshipStatus.BLOCKED)
            db.add(friendship)
            await db.flush()
            return friendship
        existing.status = FriendshipStatus.BLOCKED.value
        existing.accepted_at = None
        # the blocker is always stored as requester
        existing.set_parties(blocker_id, target_id)
        return existing

    friendship = await run_in_transaction(db, _block, name="block_user")
    log.info("User %s blocked %s", blocker_id, target_id)
    return friendship


async def unblock_user(db: AsyncSession, *, blocker_id: int, target_id: int) -> None:
    async def _unblock() -> None:
        friendship = await get_friendship_between(db, blocker_id, target_id)
        if (
            friendship is None
            or friendship.status != FriendshipStatus.BLOCKED.value
            or friendship.requester_id != blocker_id
        ):
            raise NotFoundError(f"User {target_id} is not blocked")
        await db.delete(friendship)

    await run_in_transaction(db, _unblock, name="unblock_user")
    log.info("User %s unblocked %s", blocker_id, target_id)


async def get_status(db: AsyncSession, *, viewer_id: int, target_id: int) -> FriendshipStatusView:
    if viewer_id == target_id:
        return FriendshipStatusView(VisibleStatus.NONE)

    friendship = await get_friendship_between(db, viewer_id, target_id)
    if friendship is None:
        return FriendshipStatusView(VisibleStatus.NONE)

    viewer_is_requester = friendship.requester_id == viewer_id

    if friendship.status == FriendshipStatus.ACCEPTED.value:
        return FriendshipStatusView(VisibleStatus.FRIENDS, friendship.id)
    if friendship.status == FriendshipStatus.PENDING.value:
        status = VisibleStatus.PENDING_SENT if viewer_is_requester else VisibleStatus.PENDING_RECEIVED
        return FriendshipStatusView(status, friendship.id)
    if friendship.status == FriendshipStatus.BLOCKED.value:
        if viewer_is_requester:
            return FriendshipStatusView(VisibleStatus.BLOCKED, friendship.id)
        return FriendshipStatusView(VisibleStatus.BLOCKED_BY)
    return FriendshipStatusView(VisibleStatus.NONE)


async def list_friends(db: AsyncSession, user_id: int) -> list[User]:
    ids = await friend_ids(db, user_id)
    users = await get_users(db, ids)
    return sorted(users.values(), key=lambda u: u.display_name.lower())


async def list_friend_requests(db: AsyncSession, user_id: int) -> list[Friendship]:
    result = await db.execute(
        select(Friendship)
        .where(
            Friendship.addressee_id == user_id,
            Friendship.status == FriendshipStatus.PENDING.value,
        )
        .order_by(Friendship.created_at.desc(), Friendship.id.desc())
    )
    return list(result.scalars().all())


async def count_friend_requests(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(Friendship).where(
            Friendship.addressee_id == user_id,
            Friendship.status == FriendshipStatus.PENDING.value,
        )
    )
    return int(result.scalar() or 0)


async def recommend_friends(
    db: AsyncSession,
    user_id: int,
    *,
    limit: int = 5,
    minimum_mutual: int = 2,
) -> list[RecommendedFriend]:
    """Friends of friends ranked by how many distinct mutual friends they share."""
    my_friends = await friend_ids(db, user_id)
    if not my_friends:
        return []

    related = await db.execute(
        select(Friendship.requester_id, Friendship.addressee_id).where(_involves(user_id))
    )
    excluded = {user_id}
    for requester, addressee in related.all():
        excluded.add(requester)
        excluded.add(addressee)

    fof_rows = await db.execute(
        select(Friendship.requester_id, Friendship.addressee_id).where(
            Friendship.status == FriendshipStatus.ACCEPTED.value,
            or_(
                Friendship.requester_id.in_(my_friends),
                Friendship.addressee_id.in_(my_friends),
            ),
            # skip rows between two of my friends and rows with me
            ~and_(
                Friendship.requester_id.in_(excluded),
                Friendship.addressee_id.in_(excluded),
            ),
        )
    )

    mutuals: dict[int, set[int]] = defaultdict(set)
    for requester, addressee in fof_rows.all():
        if requester in my_friends and addressee not in excluded:
            mutuals[addressee].add(requester)
        elif addressee in my_friends and requester not in excluded:
            mutuals[requester].add(addressee)

    ranked = sorted(
        ((uid, len(via)) for uid, via in mutuals.items() if len(via) >= minimum_mutual),
        key=lambda item: (-item[1], item[0]),
    )[:limit]
    if not ranked:
        return []

    users = await get_users(db, [uid for uid, _ in ranked])
    return [
        RecommendedFriend(user=users[uid], mutual_friend_count=count)
        for uid, count in ranked
        if uid in users
    ]
