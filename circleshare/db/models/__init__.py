"""
SQLAlchemy database models.

Models are organized by domain:
- base: Base declarative class
- user: User records referenced by id
- friendship: Pairwise friendship rows
- circle: Circles and their memberships
- content: Content items and circle shares
- notification: Notifications, including pending circle invites

Import any model from this module:
    from circleshare.db.models import User, Friendship, Circle
"""

# Base class (must be imported first)
from .base import Base

from .user import User
from .friendship import Friendship, FriendshipStatus
from .circle import Circle, CircleMembership
from .content import ContentItem, ContentShare
from .notification import Notification, NotificationKind

__all__ = [
    "Base",
    "User",
    "Friendship",
    "FriendshipStatus",
    "Circle",
    "CircleMembership",
    "ContentItem",
    "ContentShare",
    "Notification",
    "NotificationKind",
]
