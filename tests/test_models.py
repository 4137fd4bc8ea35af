"""
Schema checks for the ORM models.
"""

import pytest

from circleshare.db.models import Base

TIMESTAMP_COLUMNS = [
    ("users", "created_at"),
    ("friendships", "created_at"),
    ("circles", "created_at"),
    ("circle_memberships", "joined_at"),
    ("content_items", "created_at"),
    ("content_shares", "shared_at"),
    ("notifications", "created_at"),
]


@pytest.mark.parametrize("table,column", TIMESTAMP_COLUMNS)
def test_timestamps_are_required(table, column):
    col = Base.metadata.tables[table].c[column]

    assert col.nullable is False
    assert col.type.timezone is True
    assert col.default is not None
