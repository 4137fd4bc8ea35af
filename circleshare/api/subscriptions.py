from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.db.models import User
from circleshare.db.session import get_db
from circleshare.schemas.circle import CircleOut
from circleshare.schemas.subscription import (
    AvailableCircleListResponse,
    FollowActionResponse,
    FollowInviteListResponse,
    FollowInviteOut,
    FollowRequest,
)
from circleshare.services import subscriptions as subscription_service
from circleshare.utils.deps import get_current_user

# Mounted before the circles router so these literal paths win over /circles/{circle_id}.
router = APIRouter(prefix="/circles", tags=["subscriptions"])


@router.get("/invites", response_model=FollowInviteListResponse)
async def list_invites(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    invites = await subscription_service.list_follow_invites(db, user.id)
    return FollowInviteListResponse(
        count=len(invites),
        items=[FollowInviteOut.model_validate(i) for i in invites],
    )


@router.get("/available", response_model=AvailableCircleListResponse)
async def list_available(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    circles = await subscription_service.list_available_circles(db, user.id)
    return AvailableCircleListResponse(
        count=len(circles),
        items=[CircleOut.model_validate(c) for c in circles],
    )


@router.post("/follow/{circle_id}", response_model=FollowActionResponse, status_code=201)
async def follow_circle(
    data: FollowRequest | None = None,
    circle_id: int = Path(..., description="ID of the circle to follow"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    membership = await subscription_service.follow(
        db,
        user_id=user.id,
        circle_id=circle_id,
        invite_id=data.invite_id if data else None,
    )
    return FollowActionResponse(
        circle_id=circle_id,
        user_id=user.id,
        following=True,
        joined_at=membership.joined_at,
    )


@router.post("/deny/{invite_id}", status_code=204)
async def deny_invite(
    invite_id: int = Path(..., description="ID of the circle invitation"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await subscription_service.deny_follow(db, user_id=user.id, invite_id=invite_id)


@router.post("/unfollow/{circle_id}", response_model=FollowActionResponse)
async def unfollow_circle(
    circle_id: int = Path(..., description="ID of the circle to leave"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await subscription_service.unfollow(db, user_id=user.id, circle_id=circle_id)
    return FollowActionResponse(circle_id=circle_id, user_id=user.id, following=False)
