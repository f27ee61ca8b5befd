import asyncio
from typing import Any, Optional, Protocol

import requests
from loguru import logger

from hn_companion.events import EventLogger
from hn_companion.models import FeedType, Item, ItemType, User
from hn_companion.post import HackerNewsPost

MAX_FEED_LIMIT = 500


class HNError(Exception):
    """Raised when the Hacker News API cannot satisfy a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ApiClient(Protocol):
    """Protocol defining the interface for an API client."""

    def get(self, url: str) -> Any:
        """Make a GET request to the specified URL."""
        ...


class RequestsClient:
    """Implementation of ApiClient using the requests library."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    def get(self, url: str) -> Any:
        """Make a GET request to the specified URL."""
        response = requests.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()


class HNContext:
    """
    Context object for Hacker News API operations.
    Contains all dependencies needed by the API client and the browser.
    """

    def __init__(
        self,
        api_client: Optional[ApiClient] = None,
        events: Optional[EventLogger] = None,
        request_delay: float = 0.0,
        base_url: str = "https://hacker-news.firebaseio.com/v0",
        concurrent_comments: bool = False,
    ):
        """
        Initialize the Hacker News context.

        Args:
            api_client: Client for making HTTP requests
            events: Session event logger, if interactions should be recorded
            request_delay: Time to wait after each API request in seconds
            base_url: Base URL for the Hacker News API
            concurrent_comments: Resolve sibling comments concurrently
        """
        self.api_client = api_client or RequestsClient()
        self.events = events
        self.request_delay = request_delay
        self.base_url = base_url.rstrip("/")
        self.concurrent_comments = concurrent_comments

    def close(self) -> None:
        """Flush the session event log, if one is attached."""
        if self.events is not None:
            self.events.save()


def _check_limit(limit: int) -> None:
    if limit <= 0:
        raise ValueError("Limit must be greater than 0")
    if limit > MAX_FEED_LIMIT:
        raise ValueError(f"Limit cannot exceed {MAX_FEED_LIMIT}")


class HackerNewsAPI:
    """
    An asynchronous client for the Hacker News API.

    Blocking HTTP calls run in a worker thread, so awaiting any method here
    never stalls the event loop.
    """

    def __init__(self, context: Optional[HNContext] = None) -> None:
        """
        Initialize the HackerNews API client.

        Args:
            context: Context object containing dependencies
        """
        self.context = context or HNContext()

    async def _get(self, path: str) -> Any:
        url = f"{self.context.base_url}/{path}"
        logger.debug("GET {}", url)
        result = await asyncio.to_thread(self.context.api_client.get, url)
        if self.context.request_delay:
            await asyncio.sleep(self.context.request_delay)  # Be nice to the API
        return result

    async def get_item(self, item_id: int) -> Optional[dict[str, Any]]:
        """
        Retrieve an item (story, comment, etc.) from the HackerNews API.

        Args:
            item_id: The ID of the item to retrieve

        Returns:
            The item data as a dictionary, or None if the item doesn't exist
        """
        if item_id <= 0:
            raise ValueError(f"Item id must be positive, got {item_id}")
        return await self._get(f"item/{item_id}.json")

    async def resolve(self, item_id: int) -> Optional[Item]:
        """
        Retrieve an item and classify it.

        Missing, deleted and dead items all come back as None. Transport
        errors and malformed payloads propagate to the caller.

        Args:
            item_id: The ID of the item to resolve

        Returns:
            The parsed item, or None if it is absent
        """
        payload = await self.get_item(item_id)
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise ValueError(f"Malformed payload for item {item_id}: {payload!r}")

        item = Item.model_validate(payload)
        if not item.is_live:
            return None
        return item

    async def fetch_feed_ids(self, feed_type: FeedType) -> list[int]:
        """
        Retrieve the ranked item ids of a feed.

        Raises:
            HNError: If the listing cannot be fetched or is malformed
        """
        feed_type = FeedType(feed_type)
        try:
            ids = await self._get(f"{feed_type.value}stories.json")
        except requests.RequestException as e:
            status = getattr(e.response, "status_code", None)
            raise HNError(f"Failed to fetch story IDs for {feed_type.value}: {e}", status) from e

        if not isinstance(ids, list):
            raise HNError(f"Failed to fetch {feed_type.value} stories")
        return ids

    async def get_post(self, post_id: int) -> Optional[HackerNewsPost]:
        """
        Get a specific post by ID.

        Returns:
            The post, or None if it is missing, deleted or dead
        """
        item = await self.resolve(post_id)
        if item is None:
            return None
        return HackerNewsPost(item, api=self)

    async def get_posts_by_ids(self, post_ids: list[int]) -> list[HackerNewsPost]:
        """
        Get multiple posts by ID, skipping absent ones and ones that fail to load.
        """
        posts = []
        for post_id in post_ids:
            try:
                post = await self.get_post(post_id)
            except (requests.RequestException, ValueError) as e:
                logger.warning("Failed to fetch post {}: {}", post_id, e)
                continue
            if post is not None:
                posts.append(post)
        return posts

    async def get_posts(self, feed_type: FeedType, limit: int = 30) -> list[HackerNewsPost]:
        """
        Fetch the first ``limit`` posts of a feed.

        Args:
            feed_type: The feed to read (top, new, best, ask, show, job)
            limit: Maximum number of posts, between 1 and 500

        Returns:
            The resolvable posts, in feed order
        """
        _check_limit(limit)
        ids = await self.fetch_feed_ids(feed_type)
        return await self.get_posts_by_ids(ids[:limit])

    async def search_posts(
        self, feed_type: FeedType, query: str, limit: int = 100
    ) -> list[HackerNewsPost]:
        """Return the posts of a feed whose title contains ``query``, ignoring case."""
        posts = await self.get_posts(feed_type, limit)
        needle = query.lower()
        return [post for post in posts if needle in post.title.lower()]

    async def get_max_item_id(self) -> int:
        """Get the largest item id currently assigned."""
        try:
            return int(await self._get("maxitem.json"))
        except (requests.RequestException, TypeError, ValueError) as e:
            raise HNError(f"Failed to fetch max item ID: {e}") from e

    async def get_user(self, username: str) -> Optional[User]:
        """
        Get a user profile by handle.

        Returns:
            The user, or None if no such user exists
        """
        payload = await self._get(f"user/{username}.json")
        if payload is None:
            return None
        payload.setdefault("id", username)
        return User.model_validate(payload)

    async def get_posts_by_user(self, username: str, limit: int = 30) -> list[HackerNewsPost]:
        """
        Get stories, jobs and polls submitted by a user, newest first.

        Raises:
            HNError: If the user does not exist
        """
        _check_limit(limit)
        user = await self.get_user(username)
        if user is None:
            raise HNError(f'User "{username}" not found')

        posts = []
        for post in await self.get_posts_by_ids(user.submitted[:limit]):
            if post.type in (ItemType.STORY, ItemType.JOB, ItemType.POLL):
                posts.append(post)
        return posts


async def get_posts(
    feed_type: FeedType, limit: int = 30, context: Optional[HNContext] = None
) -> list[HackerNewsPost]:
    """
    Convenience function to fetch the posts of a feed.

    Args:
        feed_type: The feed to read
        limit: Maximum number of posts
        context: Context containing dependencies

    Returns:
        The resolvable posts, in feed order
    """
    api = HackerNewsAPI(context)
    return await api.get_posts(feed_type, limit)
