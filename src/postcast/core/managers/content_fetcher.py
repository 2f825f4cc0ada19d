"""ContentFetcher: reads one post from a ranked subreddit listing."""

from __future__ import annotations

from typing import Any, Dict, List

from postcast.core.config import ContentConfig
from postcast.core.exceptions import IndexOutOfRange, InvalidParameter, MalformedResponse
from postcast.core.interfaces.http_client import HttpClientPort
from postcast.core.models.post import Post, TimeHorizon
from postcast.core.settings import logger

# Reddit caps one listing page at 100 entries.
MAX_LISTING_LIMIT = 100


def normalize_category(category: str) -> str:
    """Accept 'name', 'r/name' or '/r/name' and return 'name'."""
    name = category.strip().strip("/")
    if name.lower().startswith("r/"):
        name = name[2:]
    if not name:
        raise InvalidParameter(f"Invalid category: {category!r}")
    return name


class ContentFetcher:
    """Single GET against the content listing API; no state, no retries."""

    def __init__(self, http_client: HttpClientPort, config: ContentConfig) -> None:
        self._http = http_client
        self.config = config

    def listing_url(self, category: str) -> str:
        return f"{self.config.api_root.rstrip('/')}/r/{normalize_category(category)}/top.json"

    async def fetch(self, category: str, horizon: TimeHorizon | str, index: int) -> Post:
        """Return the post at zero-based `index` of the top listing for `horizon`."""
        try:
            horizon = TimeHorizon(horizon)
        except ValueError:
            choices = ", ".join(h.value for h in TimeHorizon)
            raise InvalidParameter(f"Invalid time horizon {horizon!r}, expected one of: {choices}") from None
        url = self.listing_url(category)
        params = {"t": str(horizon), "limit": min(max(index + 1, 1), MAX_LISTING_LIMIT)}
        logger.info(f"[content:fetch] GET {url} t={horizon} index={index}")

        body = await self._http.get(
            url,
            params=params,
            headers={"User-Agent": self.config.user_agent},
            timeout=self.config.request_timeout,
        )
        children = self._extract_children(body, url)

        if index < 0 or index >= len(children):
            raise IndexOutOfRange(index, len(children), f"r/{normalize_category(category)}")

        data = children[index].get("data") or {}
        post = Post(
            category=normalize_category(category),
            title=data.get("title"),
            selftext=data.get("selftext"),
            position=index,
            permalink=data.get("permalink"),
        )
        logger.debug(
            f"[content:fetch] picked post position={index} title_len={len(post.title)} body_len={len(post.selftext)}"
        )
        return post

    @staticmethod
    def _extract_children(body: Dict[str, Any], url: str) -> List[Dict[str, Any]]:
        listing = body.get("data") if isinstance(body, dict) else None
        children = listing.get("children") if isinstance(listing, dict) else None
        if not isinstance(children, list):
            raise MalformedResponse(
                f"Listing from {url} has no data.children array",
                diagnostic=str(body)[:200],
            )
        return children
