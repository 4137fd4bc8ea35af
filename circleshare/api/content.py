from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.db.models import User
from circleshare.db.session import get_db
from circleshare.schemas.audience import AudienceCircleOut
from circleshare.schemas.circle import CircleOut
from circleshare.schemas.content import (
    ContentCreate,
    ContentOut,
    ContentShareRequest,
    ContentShareResponse,
    FeedItemOut,
    FeedResponse,
)
from circleshare.services import content as content_service
from circleshare.services.feed import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, get_feed
from circleshare.utils.deps import get_current_user

router = APIRouter(prefix="/content", tags=["content"])


@router.get("/feed", response_model=FeedResponse)
async def content_feed(
    page: int = Query(1, ge=1, description="1-based page number"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
    circle_ids: list[int] | None = Query(None, description="Only content shared to these circles, plus your own"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    feed = await get_feed(db, viewer_id=user.id, page=page, page_size=page_size, circle_ids=circle_ids)
    return FeedResponse(
        page=feed.page,
        page_size=feed.page_size,
        count=len(feed.items),
        items=[
            FeedItemOut(
                id=item.content.id,
                author_id=item.content.author_id,
                kind=item.content.kind,
                created_at=item.content.created_at,
                circles=[AudienceCircleOut.model_validate(c) for c in item.circles],
            )
            for item in feed.items
        ],
        available_circles=[CircleOut.model_validate(c) for c in feed.available_circles],
    )


@router.post("", response_model=ContentOut, status_code=201)
async def create_content(
    data: ContentCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    item = await content_service.create_content(
        db, author_id=user.id, kind=data.kind, circle_ids=data.circle_ids
    )
    circle_ids = await content_service.get_content_circle_ids(db, item.id)
    return ContentOut(
        id=item.id,
        author_id=item.author_id,
        kind=item.kind,
        created_at=item.created_at,
        circle_ids=circle_ids,
    )


@router.post("/{content_id}/share", response_model=ContentShareResponse)
async def share_content(
    data: ContentShareRequest,
    content_id: int = Path(..., description="ID of the content item"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    added = await content_service.share_content(
        db, author_id=user.id, content_id=content_id, circle_ids=data.circle_ids
    )
    return ContentShareResponse(
        content_id=content_id,
        added_circle_ids=added,
        circle_ids=await content_service.get_content_circle_ids(db, content_id),
    )
