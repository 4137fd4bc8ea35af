from datetime import datetime
from pydantic import BaseModel

from circleshare.schemas.circle import CircleOut


class FollowRequest(BaseModel):
    invite_id: int | None = None


class FollowActionResponse(BaseModel):
    circle_id: int
    user_id: int
    following: bool
    joined_at: datetime | None = None


class FollowInviteOut(BaseModel):
    id: int
    circle_id: int | None
    title: str
    message: str
    created_at: datetime

    class Config:
        from_attributes = True


class FollowInviteListResponse(BaseModel):
    count: int
    items: list[FollowInviteOut]


class AvailableCircleListResponse(BaseModel):
    count: int
    items: list[CircleOut]
