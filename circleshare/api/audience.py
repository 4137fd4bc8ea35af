from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.db.models import User
from circleshare.db.session import get_db
from circleshare.schemas.audience import (
    AudienceBatchRequest,
    AudienceBatchResponse,
    AudienceVerdictOut,
    AuthorizationResponse,
)
from circleshare.services import audience as audience_service
from circleshare.utils.deps import get_current_user

router = APIRouter(prefix="/audience", tags=["audience"])


@router.post("/resolve", response_model=AudienceBatchResponse)
async def resolve_feed_page(
    data: AudienceBatchRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    verdicts = await audience_service.resolve_batch(db, viewer_id=user.id, content_ids=data.content_ids)
    ordered = [verdicts[cid] for cid in dict.fromkeys(data.content_ids) if cid in verdicts]
    return AudienceBatchResponse(
        viewer_id=user.id,
        items=[AudienceVerdictOut.model_validate(v) for v in ordered],
        authorized_ids=[v.content_id for v in ordered if v.authorized],
    )


@router.get("/content/{content_id}", response_model=AuthorizationResponse)
async def check_content_access(
    content_id: int = Path(..., description="ID of the content item"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    authorized = await audience_service.is_authorized(db, viewer_id=user.id, content_id=content_id)
    return AuthorizationResponse(content_id=content_id, viewer_id=user.id, authorized=authorized)
