"""Friendship models."""

import enum
from datetime import datetime, timezone

from sqlalchemy import Integer, String, ForeignKey, DateTime, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class FriendshipStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class Friendship(Base):
    """One row per unordered pair of users.

    ``requester_id``/``addressee_id`` keep the direction of the relationship
    (who asked, who blocked). ``user_low_id``/``user_high_id`` hold the same
    pair in canonical order and carry the uniqueness constraint, so the
    reverse pair can never be inserted next to an existing row.
    """

    __tablename__ = "friendships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    requester_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    addressee_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    user_low_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_high_id: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default=FriendshipStatus.PENDING.value, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="uq_friendships_pair"),
        CheckConstraint("requester_id <> addressee_id", name="ck_friendships_not_self"),
        Index("ix_friendships_status", "status"),
    )

    def set_parties(self, requester_id: int, addressee_id: int) -> None:
        self.requester_id = requester_id
        self.addressee_id = addressee_id
        self.user_low_id = min(requester_id, addressee_id)
        self.user_high_id = max(requester_id, addressee_id)

    @classmethod
    def create(cls, requester_id: int, addressee_id: int, status: FriendshipStatus) -> "Friendship":
        friendship = cls(status=status.value, created_at=datetime.now(timezone.utc))
        friendship.set_parties(requester_id, addressee_id)
        return friendship
