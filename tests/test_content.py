"""
Tests for content creation and circle sharing.
"""

import pytest

from circleshare.core.errors import NotFoundError, UnauthorizedError, ValidationFailedError
from circleshare.services import content as svc
from circleshare.services.circles import create_circle


@pytest.mark.asyncio
class TestContent:

    async def test_create_shared_to_own_and_member_circles(self, db, make_users, make_friends):
        alice, bob = await make_users("alice", "bob")
        await make_friends(bob, alice)
        mine = await create_circle(db, owner_id=alice, name="Mine", is_shared=False)
        theirs = await create_circle(db, owner_id=bob, name="Theirs", is_shared=True, member_ids=[alice])
        mine_id, theirs_id = mine.id, theirs.id

        item = await svc.create_content(db, author_id=alice, kind="event", circle_ids=[theirs_id, mine_id])

        assert item.kind == "event"
        assert await svc.get_content_circle_ids(db, item.id) == sorted([mine_id, theirs_id])

    async def test_cannot_share_to_foreign_circle(self, db, make_users):
        alice, bob = await make_users("alice", "bob")
        theirs = await create_circle(db, owner_id=bob, name="Theirs", is_shared=True)
        theirs_id = theirs.id

        with pytest.raises(UnauthorizedError) as exc:
            await svc.create_content(db, author_id=alice, circle_ids=[theirs_id])
        assert exc.value.detail["circle_ids"] == [theirs_id]

    async def test_missing_circle(self, db, make_users):
        (alice,) = await make_users("alice")

        with pytest.raises(NotFoundError) as exc:
            await svc.create_content(db, author_id=alice, circle_ids=[8080])
        assert exc.value.detail["circle_ids"] == [8080]

    async def test_unknown_kind(self, db, make_users):
        (alice,) = await make_users("alice")

        with pytest.raises(ValidationFailedError):
            await svc.create_content(db, author_id=alice, kind="poll")

    async def test_share_is_idempotent(self, db, make_users):
        (alice,) = await make_users("alice")
        first = await create_circle(db, owner_id=alice, name="One", is_shared=False)
        second = await create_circle(db, owner_id=alice, name="Two", is_shared=False)
        first_id, second_id = first.id, second.id
        item = await svc.create_content(db, author_id=alice, circle_ids=[first_id])
        item_id = item.id

        added = await svc.share_content(db, author_id=alice, content_id=item_id, circle_ids=[first_id, second_id])
        again = await svc.share_content(db, author_id=alice, content_id=item_id, circle_ids=[second_id])

        assert added == [second_id]
        assert again == []
        assert await svc.get_content_circle_ids(db, item_id) == sorted([first_id, second_id])

    async def test_only_author_can_share(self, db, make_users):
        alice, bob = await make_users("alice", "bob")
        circle = await create_circle(db, owner_id=bob, name="Bob's", is_shared=False)
        circle_id = circle.id
        item = await svc.create_content(db, author_id=alice)
        item_id = item.id

        with pytest.raises(UnauthorizedError):
            await svc.share_content(db, author_id=bob, content_id=item_id, circle_ids=[circle_id])

    async def test_share_unknown_content(self, db, make_users):
        (alice,) = await make_users("alice")

        with pytest.raises(NotFoundError):
            await svc.share_content(db, author_id=alice, content_id=1234, circle_ids=[1])
