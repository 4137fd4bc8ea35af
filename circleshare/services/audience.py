"""
Audience resolution: who may see a piece of content.

A viewer is authorized for a content item when they authored it or belong
to at least one circle it was shared to. ``resolve_batch`` answers that for a
whole feed page with two queries, independent of page size.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.core.errors import NotFoundError
from circleshare.db.models import Circle, CircleMembership, ContentItem, ContentShare
from circleshare.services.content import get_content


@dataclass
class AudienceCircle:
    circle_id: int
    name: str
    is_shared: bool
    shared_at: datetime


@dataclass
class AudienceVerdict:
    content_id: int
    author_id: int
    authorized: bool
    circles: list[AudienceCircle] = field(default_factory=list)


async def is_authorized(db: AsyncSession, *, viewer_id: int, content_id: int) -> bool:
    content = await get_content(db, content_id)
    if content is None:
        raise NotFoundError(f"Content {content_id} not found")

    if content.author_id == viewer_id:
        return True

    result = await db.execute(
        select(ContentShare.circle_id)
        .join(CircleMembership, CircleMembership.circle_id == ContentShare.circle_id)
        .where(
            ContentShare.content_id == content_id,
            CircleMembership.user_id == viewer_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def resolve_batch(
    db: AsyncSession,
    *,
    viewer_id: int,
    content_ids: Iterable[int],
) -> dict[int, AudienceVerdict]:
    """
    Verdicts for many content items at once.

    Returns one ``AudienceVerdict`` per known content id, carrying the
    circles of that item the viewer belongs to. Unknown ids are left out.
    """
    ids = list(dict.fromkeys(content_ids))
    if not ids:
        return {}

    authors = await db.execute(
        select(ContentItem.id, ContentItem.author_id).where(ContentItem.id.in_(ids))
    )
    verdicts = {
        row.id: AudienceVerdict(
            content_id=row.id,
            author_id=row.author_id,
            authorized=row.author_id == viewer_id,
        )
        for row in authors.all()
    }
    if not verdicts:
        return {}

    visible = await db.execute(
        select(
            ContentShare.content_id,
            Circle.id.label("circle_id"),
            Circle.name,
            Circle.is_shared,
            ContentShare.shared_at,
        )
        .join(Circle, Circle.id == ContentShare.circle_id)
        .join(CircleMembership, CircleMembership.circle_id == Circle.id)
        .where(
            ContentShare.content_id.in_(list(verdicts)),
            CircleMembership.user_id == viewer_id,
        )
        .order_by(ContentShare.content_id, Circle.id)
    )
    for row in visible.all():
        verdict = verdicts[row.content_id]
        verdict.authorized = True
        verdict.circles.append(
            AudienceCircle(
                circle_id=row.circle_id,
                name=row.name,
                is_shared=row.is_shared,
                shared_at=row.shared_at,
            )
        )
    return verdicts


async def filter_authorized(
    db: AsyncSession,
    *,
    viewer_id: int,
    content_ids: Iterable[int],
) -> list[int]:
    ids = list(dict.fromkeys(content_ids))
    verdicts = await resolve_batch(db, viewer_id=viewer_id, content_ids=ids)
    return [cid for cid in ids if cid in verdicts and verdicts[cid].authorized]


async def resolve_circle_audience(db: AsyncSession, circle_id: int) -> set[int]:
    circle = await db.get(Circle, circle_id)
    if circle is None:
        raise NotFoundError(f"Circle {circle_id} not found")
    result = await db.execute(
        select(CircleMembership.user_id).where(CircleMembership.circle_id == circle_id)
    )
    return set(result.scalars().all())


async def resolve_content_audience(db: AsyncSession, content_id: int) -> set[int]:
    content = await get_content(db, content_id)
    if content is None:
        raise NotFoundError(f"Content {content_id} not found")
    result = await db.execute(
        select(CircleMembership.user_id)
        .join(ContentShare, ContentShare.circle_id == CircleMembership.circle_id)
        .where(ContentShare.content_id == content_id)
        .distinct()
    )
    return {content.author_id, *result.scalars().all()}
