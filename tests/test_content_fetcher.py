import pytest
from unittest.mock import AsyncMock

from postcast.core.config import ContentConfig
from postcast.core.exceptions import IndexOutOfRange, InvalidParameter, MalformedResponse
from postcast.core.managers.content_fetcher import ContentFetcher, normalize_category
from postcast.core.models.post import Post, TimeHorizon, compose_script


def listing(*posts):
    return {"data": {"children": [{"data": {"title": t, "selftext": b}} for t, b in posts]}}


@pytest.fixture
def http_client():
    return AsyncMock()


@pytest.fixture
def fetcher(http_client):
    return ContentFetcher(http_client, ContentConfig(api_root="https://reddit.test/", user_agent="postcast-tests"))


class TestComposeScript:

    def test_inserts_period_after_title(self):
        assert (
            compose_script("Two sentences walk into a bar", "They order drinks.")
            == "Two sentences walk into a bar. They order drinks."
        )

    def test_keeps_existing_period(self):
        assert compose_script("It was late.", "Nobody came.") == "It was late. Nobody came."

    def test_empty_body_has_no_trailing_space(self):
        assert compose_script("Just a title", "") == "Just a title."

    def test_missing_title(self):
        assert compose_script(None, "  Only body. ") == "Only body."

    def test_post_script_property(self):
        post = Post(category="x", title="Hello", selftext=None)
        assert post.script == "Hello."


def test_normalize_category():
    assert normalize_category("/r/TwoSentenceComedy") == "TwoSentenceComedy"
    assert normalize_category("r/tifu/") == "tifu"
    assert normalize_category("tifu") == "tifu"
    with pytest.raises(InvalidParameter):
        normalize_category("/r/")


class TestFetch:

    @pytest.mark.asyncio
    async def test_picks_post_by_ordinal(self, fetcher, http_client):
        http_client.get.return_value = listing(
            ("first", "a"), ("second", "b"), ("Two sentences walk into a bar", "They order drinks.")
        )

        post = await fetcher.fetch("/r/TwoSentenceComedy", TimeHorizon.week, 2)

        assert post.position == 2
        assert post.script == "Two sentences walk into a bar. They order drinks."
        args, kwargs = http_client.get.call_args
        assert args[0] == "https://reddit.test/r/TwoSentenceComedy/top.json"
        assert kwargs["params"] == {"t": "week", "limit": 3}
        assert kwargs["headers"] == {"User-Agent": "postcast-tests"}

    @pytest.mark.asyncio
    async def test_index_past_end_raises(self, fetcher, http_client):
        http_client.get.return_value = listing(("only", "one"))

        with pytest.raises(IndexOutOfRange) as excinfo:
            await fetcher.fetch("tifu", "day", 3)

        assert excinfo.value.available == 1
        assert excinfo.value.index == 3

    @pytest.mark.asyncio
    async def test_negative_index_raises(self, fetcher, http_client):
        http_client.get.return_value = listing(("only", "one"))

        with pytest.raises(IndexOutOfRange):
            await fetcher.fetch("tifu", "day", -1)

    @pytest.mark.asyncio
    async def test_unexpected_listing_shape(self, fetcher, http_client):
        http_client.get.return_value = {"kind": "Listing"}

        with pytest.raises(MalformedResponse):
            await fetcher.fetch("tifu", "day", 0)

    @pytest.mark.asyncio
    async def test_invalid_horizon(self, fetcher, http_client):
        with pytest.raises(InvalidParameter) as excinfo:
            await fetcher.fetch("tifu", "decade", 0)

        assert "decade" in str(excinfo.value)
        http_client.get.assert_not_awaited()
