from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from circleshare.db.models import User
from circleshare.db.session import get_db
from circleshare.schemas.circle import (
    CircleAudienceResponse,
    CircleCreate,
    CircleListResponse,
    CircleOut,
    CircleUpdate,
    CircleWithMembersOut,
    MemberIds,
    MembershipChangeResponse,
)
from circleshare.services import circles as circle_service
from circleshare.services.audience import resolve_circle_audience
from circleshare.services.notifier import Notifier
from circleshare.utils.deps import get_current_user, get_notifier

router = APIRouter(prefix="/circles", tags=["circles"])


def _circle_list(circles) -> CircleListResponse:
    return CircleListResponse(
        count=len(circles),
        items=[CircleOut.model_validate(c) for c in circles],
    )


@router.get("", response_model=list[CircleWithMembersOut])
async def list_my_circles(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    entries = await circle_service.get_circles_with_members(db, user.id)
    return [CircleWithMembersOut.model_validate(e) for e in entries]


@router.get("/owned", response_model=CircleListResponse)
async def list_owned_circles(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _circle_list(await circle_service.get_owned_circles(db, user.id))


@router.get("/member", response_model=CircleListResponse)
async def list_member_circles(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _circle_list(await circle_service.get_member_circles(db, user.id))


@router.post("", response_model=CircleOut, status_code=201)
async def create_circle(
    data: CircleCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier | None = Depends(get_notifier),
):
    circle = await circle_service.create_circle(
        db,
        owner_id=user.id,
        name=data.name,
        is_shared=data.is_shared,
        is_subscribable=data.is_subscribable,
        member_ids=data.member_ids,
        notifier=notifier,
    )
    return CircleOut.model_validate(circle)


@router.get("/{circle_id}", response_model=CircleOut)
async def get_circle(
    circle_id: int = Path(..., description="ID of the circle"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    circle = await circle_service.get_circle(db, requestor_id=user.id, circle_id=circle_id)
    return CircleOut.model_validate(circle)


@router.patch("/{circle_id}", response_model=CircleOut)
async def update_circle(
    data: CircleUpdate,
    circle_id: int = Path(..., description="ID of the circle"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier | None = Depends(get_notifier),
):
    circle = await circle_service.update_circle(
        db,
        requestor_id=user.id,
        circle_id=circle_id,
        name=data.name,
        is_shared=data.is_shared,
        is_subscribable=data.is_subscribable,
        notifier=notifier,
    )
    return CircleOut.model_validate(circle)


@router.delete("/{circle_id}", status_code=204)
async def delete_circle(
    circle_id: int = Path(..., description="ID of the circle"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await circle_service.delete_circle(db, requestor_id=user.id, circle_id=circle_id)


@router.post("/{circle_id}/members", response_model=MembershipChangeResponse)
async def add_members(
    data: MemberIds,
    circle_id: int = Path(..., description="ID of the circle"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    added = await circle_service.add_members(
        db, requestor_id=user.id, circle_id=circle_id, user_ids=data.user_ids
    )
    return MembershipChangeResponse(circle_id=circle_id, user_ids=added)


@router.post("/{circle_id}/members/remove", response_model=MembershipChangeResponse)
async def remove_members(
    data: MemberIds,
    circle_id: int = Path(..., description="ID of the circle"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    removed = await circle_service.remove_members(
        db, requestor_id=user.id, circle_id=circle_id, user_ids=data.user_ids
    )
    return MembershipChangeResponse(circle_id=circle_id, user_ids=removed)


@router.get("/{circle_id}/audience", response_model=CircleAudienceResponse)
async def circle_audience(
    circle_id: int = Path(..., description="ID of the circle"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # visibility rules are the same as for reading the circle itself
    await circle_service.get_circle(db, requestor_id=user.id, circle_id=circle_id)
    members = await resolve_circle_audience(db, circle_id)
    return CircleAudienceResponse(circle_id=circle_id, user_ids=sorted(members))
