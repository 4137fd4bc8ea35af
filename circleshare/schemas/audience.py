from datetime import datetime
from pydantic import BaseModel, Field


class AudienceBatchRequest(BaseModel):
    content_ids: list[int] = Field(..., max_length=500)


class AudienceCircleOut(BaseModel):
    circle_id: int
    name: str
    is_shared: bool
    shared_at: datetime

    class Config:
        from_attributes = True


class AudienceVerdictOut(BaseModel):
    content_id: int
    author_id: int
    authorized: bool
    circles: list[AudienceCircleOut] = []

    class Config:
        from_attributes = True


class AudienceBatchResponse(BaseModel):
    viewer_id: int
    items: list[AudienceVerdictOut]
    authorized_ids: list[int]


class AuthorizationResponse(BaseModel):
    content_id: int
    viewer_id: int
    authorized: bool
