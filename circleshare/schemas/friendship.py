from datetime import datetime
from pydantic import BaseModel

from circleshare.schemas.user import UserSummary


class FriendRequestCreate(BaseModel):
    addressee_id: int


class FriendshipOut(BaseModel):
    id: int
    requester_id: int
    addressee_id: int
    status: str
    created_at: datetime
    accepted_at: datetime | None = None

    class Config:
        from_attributes = True


class FriendshipStatusResponse(BaseModel):
    user_id: int
    status: str
    friendship_id: int | None = None


class FriendListResponse(BaseModel):
    count: int
    items: list[UserSummary]


class FriendRequestListResponse(BaseModel):
    count: int
    items: list[FriendshipOut]


class FriendRequestCount(BaseModel):
    count: int


class RecommendedFriendOut(BaseModel):
    user: UserSummary
    mutual_friend_count: int

    class Config:
        from_attributes = True
