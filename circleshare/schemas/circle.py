from datetime import datetime
from pydantic import BaseModel, Field

from circleshare.schemas.user import UserSummary


class CircleCreate(BaseModel):
    name: str
    is_shared: bool = False
    is_subscribable: bool = False
    member_ids: list[int] = Field(default_factory=list)


class CircleUpdate(BaseModel):
    name: str | None = None
    is_shared: bool | None = None
    is_subscribable: bool | None = None


class CircleOut(BaseModel):
    id: int
    owner_id: int
    name: str
    is_shared: bool
    is_subscribable: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CircleListResponse(BaseModel):
    count: int
    items: list[CircleOut]


class CircleWithMembersOut(BaseModel):
    circle: CircleOut
    is_owner: bool
    owner: UserSummary | None = None
    members: list[UserSummary] = []

    class Config:
        from_attributes = True


class MemberIds(BaseModel):
    user_ids: list[int] = Field(..., min_length=1)


class MembershipChangeResponse(BaseModel):
    circle_id: int
    user_ids: list[int]


class CircleAudienceResponse(BaseModel):
    circle_id: int
    user_ids: list[int]
