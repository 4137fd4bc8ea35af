from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

from circleshare.schemas.audience import AudienceCircleOut
from circleshare.schemas.circle import CircleOut


class ContentCreate(BaseModel):
    kind: Literal["post", "event"] = "post"
    circle_ids: list[int] = Field(default_factory=list)


class ContentShareRequest(BaseModel):
    circle_ids: list[int] = Field(..., min_length=1)


class ContentOut(BaseModel):
    id: int
    author_id: int
    kind: str
    created_at: datetime
    circle_ids: list[int] = []


class ContentShareResponse(BaseModel):
    content_id: int
    added_circle_ids: list[int]
    circle_ids: list[int]


class FeedItemOut(BaseModel):
    id: int
    author_id: int
    kind: str
    created_at: datetime
    circles: list[AudienceCircleOut] = []


class FeedResponse(BaseModel):
    page: int
    page_size: int
    count: int
    items: list[FeedItemOut]
    available_circles: list[CircleOut]
