"""
Tests for audience resolution.

Tests cover:
- Author and circle-member authorization
- Revocation when a member is removed
- Batch verdicts matching single verdicts
"""

import pytest

from circleshare.core.errors import NotFoundError
from circleshare.services import audience as svc
from circleshare.services.circles import create_circle, remove_members
from circleshare.services.content import create_content


@pytest.fixture
def scenario(db, make_users, make_friends):
    """Owner with two circles, a post shared to each, one unshared post."""

    async def _build() -> dict:
        owner, inner, outer, stranger = await make_users("owner", "inner", "outer", "stranger")
        await make_friends(owner, inner, outer)
        close = await create_circle(db, owner_id=owner, name="Close", is_shared=True, member_ids=[inner])
        wide = await create_circle(db, owner_id=owner, name="Wide", is_shared=False, member_ids=[inner, outer])
        close_post = await create_content(db, author_id=owner, circle_ids=[close.id])
        wide_post = await create_content(db, author_id=owner, circle_ids=[wide.id])
        private_post = await create_content(db, author_id=owner)
        return {
            "owner": owner,
            "inner": inner,
            "outer": outer,
            "stranger": stranger,
            "close": close.id,
            "wide": wide.id,
            "close_post": close_post.id,
            "wide_post": wide_post.id,
            "private_post": private_post.id,
        }

    return _build


@pytest.mark.asyncio
class TestIsAuthorized:

    async def test_author_sees_everything(self, db, scenario):
        s = await scenario()

        for post in ("close_post", "wide_post", "private_post"):
            assert await svc.is_authorized(db, viewer_id=s["owner"], content_id=s[post])

    async def test_members_see_shared_content(self, db, scenario):
        s = await scenario()

        assert await svc.is_authorized(db, viewer_id=s["inner"], content_id=s["close_post"])
        assert await svc.is_authorized(db, viewer_id=s["outer"], content_id=s["wide_post"])
        assert not await svc.is_authorized(db, viewer_id=s["outer"], content_id=s["close_post"])
        assert not await svc.is_authorized(db, viewer_id=s["inner"], content_id=s["private_post"])
        assert not await svc.is_authorized(db, viewer_id=s["stranger"], content_id=s["wide_post"])

    async def test_unknown_content(self, db, scenario):
        s = await scenario()

        with pytest.raises(NotFoundError):
            await svc.is_authorized(db, viewer_id=s["owner"], content_id=424242)

    async def test_removal_revokes_access(self, db, scenario):
        s = await scenario()
        assert await svc.is_authorized(db, viewer_id=s["outer"], content_id=s["wide_post"])

        await remove_members(db, requestor_id=s["owner"], circle_id=s["wide"], user_ids=[s["outer"]])

        assert not await svc.is_authorized(db, viewer_id=s["outer"], content_id=s["wide_post"])
        # still reachable through another circle
        await remove_members(db, requestor_id=s["owner"], circle_id=s["close"], user_ids=[s["inner"]])
        assert await svc.is_authorized(db, viewer_id=s["inner"], content_id=s["wide_post"])
        assert not await svc.is_authorized(db, viewer_id=s["inner"], content_id=s["close_post"])


@pytest.mark.asyncio
class TestResolveBatch:

    async def test_batch_matches_single_verdicts(self, db, scenario):
        s = await scenario()
        posts = [s["close_post"], s["wide_post"], s["private_post"]]

        for viewer in ("owner", "inner", "outer", "stranger"):
            verdicts = await svc.resolve_batch(db, viewer_id=s[viewer], content_ids=posts)
            for post in posts:
                single = await svc.is_authorized(db, viewer_id=s[viewer], content_id=post)
                assert verdicts[post].authorized == single, (viewer, post)

    async def test_batch_reports_visible_circles(self, db, scenario):
        s = await scenario()

        verdicts = await svc.resolve_batch(
            db, viewer_id=s["inner"], content_ids=[s["close_post"], s["wide_post"]]
        )

        close = verdicts[s["close_post"]]
        assert close.author_id == s["owner"]
        assert [(c.circle_id, c.name, c.is_shared) for c in close.circles] == [(s["close"], "Close", True)]
        assert close.circles[0].shared_at is not None
        assert [c.circle_id for c in verdicts[s["wide_post"]].circles] == [s["wide"]]

    async def test_unknown_ids_are_omitted(self, db, scenario):
        s = await scenario()

        verdicts = await svc.resolve_batch(db, viewer_id=s["inner"], content_ids=[s["close_post"], 999])

        assert set(verdicts) == {s["close_post"]}

    async def test_empty_batch(self, db):
        assert await svc.resolve_batch(db, viewer_id=1, content_ids=[]) == {}

    async def test_filter_authorized_keeps_order(self, db, scenario):
        s = await scenario()
        ids = [s["private_post"], s["wide_post"], 999, s["close_post"], s["wide_post"]]

        allowed = await svc.filter_authorized(db, viewer_id=s["inner"], content_ids=ids)

        assert allowed == [s["wide_post"], s["close_post"]]


@pytest.mark.asyncio
class TestAudienceSets:

    async def test_circle_audience(self, db, scenario):
        s = await scenario()

        assert await svc.resolve_circle_audience(db, s["wide"]) == {s["owner"], s["inner"], s["outer"]}
        with pytest.raises(NotFoundError):
            await svc.resolve_circle_audience(db, 999)

    async def test_content_audience(self, db, scenario):
        s = await scenario()

        assert await svc.resolve_content_audience(db, s["close_post"]) == {s["owner"], s["inner"]}
        assert await svc.resolve_content_audience(db, s["private_post"]) == {s["owner"]}
