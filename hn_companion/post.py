import asyncio
import webbrowser
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, Union

from loguru import logger

from hn_companion.models import Comment, Item, ItemType
from hn_companion.tree import build_tree, find_comment, flatten_all

if TYPE_CHECKING:
    from hn_companion.hn import HackerNewsAPI

HN_ITEM_URL = "https://news.ycombinator.com/item?id={}"


def open_url(url: str) -> None:
    """
    Open a URL in the default browser.

    Raises:
        RuntimeError: If no browser could be launched
    """
    logger.info("Opening {} in browser", url)
    if not webbrowser.open(url):
        raise RuntimeError(f"Failed to open URL in browser: {url}")


class HackerNewsPost:
    """
    A single Hacker News post (story, job or poll).

    Comments are fetched on the first call to ``get_comments`` and kept until
    ``clear_comments_cache`` is called.
    """

    def __init__(self, item: Union[Item, dict[str, Any]], api: Optional["HackerNewsAPI"] = None):
        """
        Initialize the post from an API item.

        Args:
            item: The item payload or parsed item
            api: Client used to resolve comments

        Raises:
            ValueError: If the payload has no id
        """
        if isinstance(item, dict):
            if item.get("id") is None:
                raise ValueError("Item must have an id")
            item = Item.model_validate(item)

        self.id = item.id
        self.title = item.title or ""
        self.url = item.url
        self.author = item.by or "unknown"
        self.score = item.score or 0
        self.time = item.time or 0
        self.comment_count = item.descendants or 0
        self.text = item.text
        self.type = item.type or ItemType.STORY
        self.comment_ids = list(item.kids)
        self.api = api
        self._comments_cache: Optional[list[Comment]] = None
        self._comments_pending: Optional["asyncio.Future[list[Comment]]"] = None

    def __repr__(self) -> str:
        return f"HackerNewsPost(id={self.id}, title={self.title!r})"

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.time, tz=timezone.utc)

    @property
    def hacker_news_url(self) -> str:
        return HN_ITEM_URL.format(self.id)

    @property
    def article_url(self) -> Optional[str]:
        return self.url

    @property
    def top_level_comment_count(self) -> int:
        return len(self.comment_ids)

    def comment_url(self, comment_id: int) -> str:
        return HN_ITEM_URL.format(comment_id)

    def open_in_browser(self) -> None:
        """Open the discussion page in the default browser."""
        open_url(self.hacker_news_url)

    def open_article_in_browser(self) -> None:
        """
        Open the linked article in the default browser.

        Raises:
            ValueError: If the post has no external URL
        """
        if self.url is None:
            raise ValueError("This post does not have an external URL")
        open_url(self.url)

    def open_comment_in_browser(self, comment_id: int) -> None:
        """Open a single comment's page in the default browser."""
        open_url(self.comment_url(comment_id))

    async def get_comments(self) -> list[Comment]:
        """
        Get the resolved top-level comments of this post.

        The first call fetches the whole tree; later calls return the same
        list object until the cache is cleared. Calls made while a fetch is
        running wait for that fetch instead of starting another.
        """
        if self._comments_cache is not None:
            return self._comments_cache

        if self.api is None:
            raise RuntimeError("Post has no API client to fetch comments with")

        if self._comments_pending is None:
            self._comments_pending = asyncio.ensure_future(self._fetch_comments())
        pending = self._comments_pending

        try:
            comments = await asyncio.shield(pending)
        except BaseException:
            # A cancelled caller leaves the shared fetch running for the others
            if self._comments_pending is pending and pending.done():
                self._comments_pending = None
            raise

        # A cache cleared during the fetch stays cleared
        if self._comments_pending is pending:
            self._comments_cache = comments
            self._comments_pending = None
        return comments

    async def _fetch_comments(self) -> list[Comment]:
        logger.info("Fetching comments for post {} ({} top-level)", self.id, len(self.comment_ids))
        return await build_tree(
            self.api.resolve,
            self.comment_ids,
            exclude=(self.id,),
            concurrent=self.api.context.concurrent_comments,
        )

    def clear_comments_cache(self) -> None:
        """Forget the resolved comments so the next fetch starts over."""
        self._comments_cache = None
        self._comments_pending = None

    async def get_all_comments_flat(self) -> list[Comment]:
        """Get every comment of the post in pre-order, regardless of nesting."""
        return flatten_all(await self.get_comments())

    async def find_comment(self, comment_id: int) -> Optional[Comment]:
        """Find a comment of this post by id."""
        return find_comment(await self.get_comments(), comment_id)

    def summary(self) -> str:
        """Get a short, multi-line description of the post."""
        article = f" ({self.url})" if self.url is not None else ""
        preview = f"\n{self.text[:100]}..." if self.text is not None else ""
        return (
            f"[{self.score} points] {self.title}{article}\n"
            f"By {self.author} | {self.comment_count} comments{preview}"
        )
