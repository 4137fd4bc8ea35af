"""Content lookups and circle sharing."""

import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.core.errors import NotFoundError, UnauthorizedError, ValidationFailedError
from circleshare.db.models import Circle, CircleMembership, ContentItem, ContentShare
from circleshare.services.identity import user_exists
from circleshare.utils.transaction import run_in_transaction

log = logging.getLogger(__name__)

CONTENT_KINDS = {"post", "event"}


async def get_content(db: AsyncSession, content_id: int) -> ContentItem | None:
    return await db.get(ContentItem, content_id)


async def get_content_circle_ids(db: AsyncSession, content_id: int) -> list[int]:
    result = await db.execute(
        select(ContentShare.circle_id)
        .where(ContentShare.content_id == content_id)
        .order_by(ContentShare.circle_id)
    )
    return list(result.scalars().all())


async def _validate_circles_for_author(db: AsyncSession, author_id: int, circle_ids: list[int]) -> None:
    result = await db.execute(
        select(Circle.id, Circle.owner_id, CircleMembership.user_id)
        .outerjoin(
            CircleMembership,
            (CircleMembership.circle_id == Circle.id) & (CircleMembership.user_id == author_id),
        )
        .where(Circle.id.in_(circle_ids))
    )
    rows = result.all()

    found = {row.id for row in rows}
    missing = [cid for cid in circle_ids if cid not in found]
    if missing:
        raise NotFoundError(
            "Cannot share to invalid circle(s): " + ", ".join(str(c) for c in missing),
            circle_ids=missing,
        )

    unauthorized = [
        row.id for row in rows
        if row.owner_id != author_id and row.user_id is None
    ]
    if unauthorized:
        raise UnauthorizedError(
            "User is not a member of circle(s): " + ", ".join(str(c) for c in unauthorized),
            circle_ids=unauthorized,
        )


async def _add_shares(db: AsyncSession, content_id: int, circle_ids: list[int]) -> list[int]:
    existing = set(await get_content_circle_ids(db, content_id))
    now = datetime.now(timezone.utc)
    new_ids = [cid for cid in circle_ids if cid not in existing]
    for cid in new_ids:
        db.add(ContentShare(content_id=content_id, circle_id=cid, shared_at=now))
    return new_ids


async def create_content(
    db: AsyncSession,
    *,
    author_id: int,
    kind: str = "post",
    circle_ids: Iterable[int] = (),
) -> ContentItem:
    if kind not in CONTENT_KINDS:
        raise ValidationFailedError(f"Unknown content kind: {kind}")
    if not await user_exists(db, author_id):
        raise NotFoundError(f"User {author_id} not found")

    ids = list(dict.fromkeys(circle_ids))

    async def _create() -> ContentItem:
        if ids:
            await _validate_circles_for_author(db, author_id, ids)
        item = ContentItem(author_id=author_id, kind=kind)
        db.add(item)
        await db.flush()
        await _add_shares(db, item.id, ids)
        return item

    item = await run_in_transaction(db, _create, name="create_content")
    log.info("Content %s created by user %s, shared to %d circle(s)", item.id, author_id, len(ids))
    return item


async def share_content(
    db: AsyncSession,
    *,
    author_id: int,
    content_id: int,
    circle_ids: Iterable[int],
) -> list[int]:
    """Share existing content to more circles; returns the newly shared circle ids."""
    ids = list(dict.fromkeys(circle_ids))

    async def _share() -> list[int]:
        item = await get_content(db, content_id)
        if item is None:
            raise NotFoundError(f"Content {content_id} not found")
        if item.author_id != author_id:
            raise UnauthorizedError(f"User {author_id} is not the author of content {content_id}")
        if not ids:
            return []
        await _validate_circles_for_author(db, author_id, ids)
        return await _add_shares(db, content_id, ids)

    added = await run_in_transaction(db, _share, name="share_content")
    if added:
        log.info("Content %s shared to circles %s by user %s", content_id, added, author_id)
    return added
