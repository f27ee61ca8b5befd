"""
Workflow module coordinating the navigation state machine with the
Hacker News API, the browser and the session event log.
"""

import asyncio
import time
from collections.abc import Callable
from typing import Optional

import requests
from loguru import logger

from hn_companion.events import EventType
from hn_companion.hn import HackerNewsAPI, HNContext, HNError
from hn_companion.models import FeedType
from hn_companion.post import HackerNewsPost, open_url
from hn_companion.state import (
    AppState,
    CommentsFailed,
    CommentsLoaded,
    ErrorOccurred,
    Event,
    FeedFailed,
    FeedLoaded,
    LoadComments,
    LoadFeed,
    OpenUrl,
    Record,
    SwitchFeed,
    dispatch,
)


class BrowserSession:
    """
    Runs one interactive browsing session.

    Events go through ``dispatch``; the effects of each resulting state are
    carried out here. Network loads run as tasks on the current event loop
    and report back by dispatching their outcome.
    """

    def __init__(
        self,
        context: HNContext,
        feed_type: FeedType = FeedType.TOP,
        limit: int = 30,
        opener: Callable[[str], None] = open_url,
    ):
        """
        Initialize the session.

        Args:
            context: The HN context containing all dependencies
            feed_type: Feed shown on start
            limit: Number of posts fetched per feed
            opener: Callable opening a URL in a browser
        """
        self.context = context
        self.hn_api = HackerNewsAPI(context)
        self.limit = limit
        self.opener = opener
        self.state = AppState(feed_type=feed_type)
        self.started_at = time.monotonic()
        self._tasks: set[asyncio.Task] = set()

    def start(self, width: int = 0, height: int = 0) -> AppState:
        """Record the session start and begin loading the initial feed."""
        self._record(Record(
            type=EventType.APP_STARTED,
            metadata={"terminalWidth": width, "terminalHeight": height},
        ))
        return self.dispatch(SwitchFeed(feed_type=self.state.feed_type))

    def dispatch(self, event: Event) -> AppState:
        """Apply an event and carry out the effects it produced."""
        self.state = dispatch(self.state, event)
        for effect in self.state.effects:
            if isinstance(effect, Record):
                self._record(effect)
            elif isinstance(effect, LoadFeed):
                self._spawn(self.load_feed(effect.feed_type))
            elif isinstance(effect, LoadComments):
                self._spawn(self.load_comments(effect.post))
            elif isinstance(effect, OpenUrl):
                self._open(effect.url)
        return self.state

    async def load_feed(self, feed_type: FeedType) -> None:
        started = time.monotonic()
        try:
            posts = await self.hn_api.get_posts(feed_type, self.limit)
        except (HNError, requests.RequestException, ValueError) as e:
            logger.error("Failed to load {} feed: {}", feed_type.value, e)
            self.dispatch(FeedFailed(feed_type=feed_type, error=str(e) or "Failed to load posts"))
            return

        elapsed = int((time.monotonic() - started) * 1000)
        logger.info("Loaded {} posts from {} in {}ms", len(posts), feed_type.value, elapsed)
        self.dispatch(FeedLoaded(feed_type=feed_type, posts=tuple(posts), load_time_ms=elapsed))

    async def load_comments(self, post: HackerNewsPost) -> None:
        if post.api is None:
            post.api = self.hn_api
        try:
            comments = await post.get_comments()
        except (HNError, requests.RequestException, RuntimeError, ValueError) as e:
            logger.error("Failed to load comments for post {}: {}", post.id, e)
            self.dispatch(CommentsFailed(post_id=post.id, error=str(e) or "Failed to load comments"))
            return
        self.dispatch(CommentsLoaded(post_id=post.id, comments=tuple(comments)))

    async def wait(self) -> None:
        """Wait until every background load has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def close(self) -> None:
        """Record the session end, cancel pending loads and flush the event log."""
        for task in self._tasks:
            task.cancel()

        events = self.context.events
        self._record(Record(
            type=EventType.APP_EXITED,
            metadata={
                "sessionDurationSeconds": int(time.monotonic() - self.started_at),
                "totalEvents": len(events.get_events()) if events is not None else 0,
            },
        ))
        self.context.close()

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _open(self, url: str) -> None:
        try:
            self.opener(url)
        except RuntimeError as e:
            logger.warning("{}", e)
            self.dispatch(ErrorOccurred(error=str(e)))

    def _record(self, record: Record) -> None:
        events = self.context.events
        if events is None:
            return

        metadata = dict(record.metadata)
        if record.type == EventType.POST_VIEWED:
            events.track_post_opened(metadata["postId"])
        elif record.type == EventType.POST_CLOSED:
            metadata["timeSpentSeconds"] = events.track_post_closed()
        events.log(record.type, metadata)


async def fetch_comment_tree(post_id: int, context: Optional[HNContext] = None):
    """
    Convenience coroutine resolving a post and its full comment tree.

    Args:
        post_id: The ID of the HN item (story, poll, etc.)
        context: Context containing dependencies

    Returns:
        ``(post, comments)``, or ``(None, [])`` if the post is absent
    """
    api = HackerNewsAPI(context)
    post = await api.get_post(post_id)
    if post is None:
        return None, []
    return post, await post.get_comments()
