from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.db.models import User
from circleshare.db.session import get_db
from circleshare.schemas.friendship import (
    FriendListResponse,
    FriendRequestCount,
    FriendRequestCreate,
    FriendRequestListResponse,
    FriendshipOut,
    FriendshipStatusResponse,
    RecommendedFriendOut,
)
from circleshare.schemas.user import UserSummary
from circleshare.services import friendship as friendship_service
from circleshare.services.notifier import Notifier
from circleshare.utils.deps import get_current_user, get_notifier

router = APIRouter(prefix="/friends", tags=["friends"])


@router.get("", response_model=FriendListResponse)
async def list_friends(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    friends = await friendship_service.list_friends(db, user.id)
    return FriendListResponse(
        count=len(friends),
        items=[UserSummary.model_validate(f) for f in friends],
    )


@router.get("/requests", response_model=FriendRequestListResponse)
async def list_incoming_requests(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    requests = await friendship_service.list_friend_requests(db, user.id)
    return FriendRequestListResponse(
        count=len(requests),
        items=[FriendshipOut.model_validate(r) for r in requests],
    )


@router.get("/requests/count", response_model=FriendRequestCount)
async def count_incoming_requests(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return FriendRequestCount(count=await friendship_service.count_friend_requests(db, user.id))


@router.post("/requests", response_model=FriendshipOut, status_code=201)
async def send_friend_request(
    data: FriendRequestCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier | None = Depends(get_notifier),
):
    friendship = await friendship_service.send_request(
        db,
        requester_id=user.id,
        addressee_id=data.addressee_id,
        notifier=notifier,
    )
    return FriendshipOut.model_validate(friendship)


@router.post("/requests/{friendship_id}/accept", response_model=FriendshipOut)
async def accept_friend_request(
    friendship_id: int = Path(..., description="ID of the pending friend request"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier | None = Depends(get_notifier),
):
    friendship = await friendship_service.accept_request(
        db, friendship_id=friendship_id, user_id=user.id, notifier=notifier
    )
    return FriendshipOut.model_validate(friendship)


@router.post("/requests/{friendship_id}/reject", response_model=FriendshipOut)
async def reject_friend_request(
    friendship_id: int = Path(..., description="ID of the pending friend request"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    friendship = await friendship_service.reject_request(db, friendship_id=friendship_id, user_id=user.id)
    return FriendshipOut.model_validate(friendship)


@router.delete("/requests/{friendship_id}", status_code=204)
async def cancel_friend_request(
    friendship_id: int = Path(..., description="ID of the pending friend request"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await friendship_service.cancel_request(db, friendship_id=friendship_id, user_id=user.id)


@router.get("/recommended", response_model=list[RecommendedFriendOut])
async def recommended_friends(
    limit: int = Query(5, ge=1, le=50, description="Max suggestions to return"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    suggestions = await friendship_service.recommend_friends(db, user.id, limit=limit)
    return [RecommendedFriendOut.model_validate(s) for s in suggestions]


@router.get("/{user_id}/status", response_model=FriendshipStatusResponse)
async def friendship_status(
    user_id: int = Path(..., description="The other user"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    view = await friendship_service.get_status(db, viewer_id=user.id, target_id=user_id)
    return FriendshipStatusResponse(
        user_id=user_id,
        status=view.status.value,
        friendship_id=view.friendship_id,
    )


@router.delete("/{user_id}", status_code=204)
async def remove_friend(
    user_id: int = Path(..., description="The friend to remove"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await friendship_service.remove_friendship(db, user_id=user.id, friend_id=user_id)


@router.post("/{user_id}/block", response_model=FriendshipOut)
async def block_user(
    user_id: int = Path(..., description="The user to block"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    friendship = await friendship_service.block_user(db, blocker_id=user.id, target_id=user_id)
    return FriendshipOut.model_validate(friendship)


@router.delete("/{user_id}/block", status_code=204)
async def unblock_user(
    user_id: int = Path(..., description="The user to unblock"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await friendship_service.unblock_user(db, blocker_id=user.id, target_id=user_id)
