"""
Paginated content feed.

A viewer's feed holds everything they authored plus everything shared to a
circle they belong to, newest first. An optional circle filter narrows the
shared part to those circles; the viewer's own content always stays in.
Each page is fetched with one id query plus the two ``resolve_batch``
queries, so cost does not grow with page size.
"""

from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.core.errors import ValidationFailedError
from circleshare.db.models import Circle, CircleMembership, ContentItem, ContentShare
from circleshare.services.audience import AudienceCircle, resolve_batch
from circleshare.services.subscriptions import list_available_circles

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass
class FeedItem:
    content: ContentItem
    circles: list[AudienceCircle] = field(default_factory=list)


@dataclass
class FeedPage:
    page: int
    page_size: int
    items: list[FeedItem]
    available_circles: list[Circle]


async def get_feed(
    db: AsyncSession,
    *,
    viewer_id: int,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    circle_ids: Iterable[int] | None = None,
) -> FeedPage:
    if page < 1:
        raise ValidationFailedError("Page must be at least 1")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationFailedError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")

    shared_with_viewer = (
        select(ContentShare.content_id)
        .join(CircleMembership, CircleMembership.circle_id == ContentShare.circle_id)
        .where(CircleMembership.user_id == viewer_id)
    )
    wanted = list(dict.fromkeys(circle_ids or ()))
    if wanted:
        shared_with_viewer = shared_with_viewer.where(ContentShare.circle_id.in_(wanted))

    result = await db.execute(
        select(ContentItem)
        .where(or_(ContentItem.author_id == viewer_id, ContentItem.id.in_(shared_with_viewer)))
        .order_by(ContentItem.created_at.desc(), ContentItem.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    contents = list(result.scalars().all())

    verdicts = await resolve_batch(db, viewer_id=viewer_id, content_ids=[c.id for c in contents])
    items = [
        FeedItem(content=c, circles=verdicts[c.id].circles if c.id in verdicts else [])
        for c in contents
    ]

    return FeedPage(
        page=page,
        page_size=page_size,
        items=items,
        available_circles=await list_available_circles(db, viewer_id),
    )
