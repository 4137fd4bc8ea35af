"""Error taxonomy for relationship and audience operations.

Services raise these directly; they are ``HTTPException`` subclasses so the
API layer needs no translation. ``detail`` always carries an ``error`` code
and a human readable ``message``.
"""

from typing import Any, Iterable

from fastapi import HTTPException


class RelationshipError(HTTPException):
    status_code = 400
    code = "ERROR"

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(
            status_code=type(self).status_code,
            detail={"error": self.code, "message": message, **extra},
        )

    def __str__(self) -> str:
        return self.message


class NotFoundError(RelationshipError):
    status_code = 404
    code = "NOT_FOUND"


class UnauthorizedError(RelationshipError):
    status_code = 403
    code = "UNAUTHORIZED"


class ConflictError(RelationshipError):
    status_code = 409
    code = "CONFLICT"


class InvalidStateError(RelationshipError):
    status_code = 409
    code = "INVALID_STATE"


class ValidationFailedError(RelationshipError):
    status_code = 422
    code = "VALIDATION_FAILED"

    @classmethod
    def for_members(
        cls,
        *,
        invalid_user_ids: Iterable[int] = (),
        non_friend_user_ids: Iterable[int] = (),
    ) -> "ValidationFailedError":
        invalid = sorted(set(invalid_user_ids))
        non_friends = sorted(set(non_friend_user_ids))
        parts = []
        if invalid:
            parts.append("non-existent users: " + ", ".join(str(i) for i in invalid))
        if non_friends:
            parts.append("non-friend users: " + ", ".join(str(i) for i in non_friends))
        return cls(
            "Cannot add " + "; ".join(parts) + " to circle",
            invalid_user_ids=invalid,
            non_friend_user_ids=non_friends,
        )

    @property
    def offending_ids(self) -> list[int]:
        ids = set(self.extra.get("invalid_user_ids", ())) | set(self.extra.get("non_friend_user_ids", ()))
        return sorted(ids)
