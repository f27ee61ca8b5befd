"""
Navigation state machine for the terminal browser.

``dispatch`` is a pure function: it takes the current ``AppState`` and one
event and returns the next state. Work that has to happen outside the state
(network loads, opening a browser, recording to the event log) is described
by the ``effects`` of the returned state and carried out by the caller.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

from hn_companion.events import EventType
from hn_companion.models import Comment, FeedType, FlatComment
from hn_companion.post import HackerNewsPost
from hn_companion.tree import clamp_index, project
from hn_companion.utils import get_domain


class View(str, Enum):
    FEED = "feed"
    POST = "post"
    HELP = "help"


class Action(str, Enum):
    """Discrete user commands, independent of the key that produced them."""

    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    JUMP_TOP = "jump_top"
    JUMP_BOTTOM = "jump_bottom"
    OPEN = "open"
    BACK = "back"
    TOGGLE_COLLAPSE = "toggle_collapse"
    TOGGLE_HELP = "toggle_help"
    REFRESH = "refresh"
    OPEN_ARTICLE = "open_article"
    OPEN_DISCUSSION = "open_discussion"
    SEARCH_START = "search_start"
    SEARCH_BACKSPACE = "search_backspace"
    SEARCH_SUBMIT = "search_submit"
    QUIT = "quit"


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


# Events


class Input(_Message):
    action: Action


class SwitchFeed(_Message):
    feed_type: FeedType


class SearchInput(_Message):
    text: str


class FeedLoaded(_Message):
    feed_type: FeedType
    posts: tuple[HackerNewsPost, ...]
    load_time_ms: int = 0


class FeedFailed(_Message):
    feed_type: FeedType
    error: str


class CommentsLoaded(_Message):
    post_id: int
    comments: tuple[Comment, ...]


class CommentsFailed(_Message):
    post_id: int
    error: str


class ErrorOccurred(_Message):
    error: str


Event = Union[
    Input, SwitchFeed, SearchInput, FeedLoaded, FeedFailed,
    CommentsLoaded, CommentsFailed, ErrorOccurred,
]


# Effects


class LoadFeed(_Message):
    feed_type: FeedType


class LoadComments(_Message):
    post: HackerNewsPost


class OpenUrl(_Message):
    url: str


class Record(_Message):
    type: EventType
    metadata: dict[str, Any] = {}


Effect = Union[LoadFeed, LoadComments, OpenUrl, Record]


class AppState(BaseModel):
    """An immutable snapshot of everything the browser shows."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    view: View = View.FEED
    help_return: View = View.FEED
    running: bool = True

    feed_type: FeedType = FeedType.TOP
    posts: tuple[HackerNewsPost, ...] = ()
    selected_post_index: int = 0
    feed_loading: bool = False
    requested_feed: Optional[FeedType] = None
    search_query: str = ""
    search_mode: bool = False

    current_post: Optional[HackerNewsPost] = None
    comments: tuple[Comment, ...] = ()
    flat_comments: tuple[FlatComment, ...] = ()
    selected_comment_index: int = 0
    collapsed: frozenset[int] = frozenset()
    comments_loading: bool = False

    error: Optional[str] = None
    effects: tuple[Effect, ...] = ()

    @property
    def visible_posts(self) -> list[HackerNewsPost]:
        """Posts matching the search filter, by title, author or domain."""
        if not self.search_query:
            return list(self.posts)
        needle = self.search_query.lower()
        return [
            post
            for post in self.posts
            if needle in post.title.lower()
            or needle in post.author.lower()
            or needle in get_domain(post.url).lower()
        ]

    @property
    def selected_post(self) -> Optional[HackerNewsPost]:
        posts = self.visible_posts
        if 0 <= self.selected_post_index < len(posts):
            return posts[self.selected_post_index]
        return None

    @property
    def selected_comment(self) -> Optional[FlatComment]:
        if 0 <= self.selected_comment_index < len(self.flat_comments):
            return self.flat_comments[self.selected_comment_index]
        return None


def _update(state: AppState, *effects: Effect, **changes: Any) -> AppState:
    changes["effects"] = state.effects + effects
    return state.model_copy(update=changes)


def toggle_membership(collapsed: frozenset[int], comment_id: int) -> frozenset[int]:
    """Remove ``comment_id`` from the set if present, add it otherwise."""
    if comment_id in collapsed:
        return collapsed - {comment_id}
    return collapsed | {comment_id}


def _move(index: int, length: int, action: Action) -> int:
    if action == Action.MOVE_DOWN:
        index += 1
    elif action == Action.MOVE_UP:
        index -= 1
    elif action == Action.JUMP_TOP:
        index = 0
    elif action == Action.JUMP_BOTTOM:
        index = length - 1
    return clamp_index(index, length)


_MOVES = (Action.MOVE_UP, Action.MOVE_DOWN, Action.JUMP_TOP, Action.JUMP_BOTTOM)


def dispatch(state: AppState, event: Event) -> AppState:
    """
    Apply one event to the state.

    Args:
        state: The current snapshot
        event: A user input or the completion of a background load

    Returns:
        The next snapshot; its ``effects`` list what the caller must carry out
    """
    state = state.model_copy(update={"effects": ()})

    if isinstance(event, Input):
        return _handle_input(state, event.action)
    if isinstance(event, SwitchFeed):
        if state.view != View.FEED:
            return state
        return _update(
            state,
            LoadFeed(feed_type=event.feed_type),
            feed_loading=True,
            requested_feed=event.feed_type,
            error=None,
        )
    if isinstance(event, SearchInput):
        return _set_query(state, state.search_query + event.text)
    if isinstance(event, FeedLoaded):
        return _feed_loaded(state, event)
    if isinstance(event, FeedFailed):
        if _superseded(state, event.feed_type):
            return state
        return _update(
            state,
            Record(type=EventType.LOAD_FAILED, metadata={"what": "feed", "error": event.error}),
            feed_loading=False,
            error=event.error,
        )
    if isinstance(event, CommentsLoaded):
        return _comments_loaded(state, event)
    if isinstance(event, CommentsFailed):
        if state.current_post is None or state.current_post.id != event.post_id:
            return state
        return _update(
            state,
            Record(type=EventType.LOAD_FAILED, metadata={"what": "comments", "error": event.error}),
            comments_loading=False,
            error=event.error,
        )
    if isinstance(event, ErrorOccurred):
        return _update(
            state,
            Record(type=EventType.ERROR_OCCURRED, metadata={"error": event.error}),
            error=event.error,
        )
    raise TypeError(f"Unknown event: {event!r}")


def _handle_input(state: AppState, action: Action) -> AppState:
    if action == Action.QUIT:
        if state.view == View.HELP:
            return state
        return _update(state, running=False)

    if action == Action.TOGGLE_HELP:
        if state.view == View.HELP:
            return _update(state, Record(type=EventType.HELP_CLOSED), view=state.help_return)
        return _update(
            state,
            Record(type=EventType.HELP_OPENED, metadata={"fromView": state.view.value}),
            view=View.HELP,
            help_return=state.view,
        )

    if state.view == View.HELP:
        if action == Action.BACK:
            return _update(state, Record(type=EventType.HELP_CLOSED), view=state.help_return)
        return state

    if state.view == View.FEED:
        return _feed_input(state, action)
    return _post_input(state, action)


def _set_query(state: AppState, query: str) -> AppState:
    state = state.model_copy(update={"search_query": query})
    index = clamp_index(state.selected_post_index, len(state.visible_posts))
    return state.model_copy(update={"selected_post_index": index})


def _feed_input(state: AppState, action: Action) -> AppState:
    if state.search_mode:
        if action == Action.SEARCH_BACKSPACE:
            return _set_query(state, state.search_query[:-1])
        if action == Action.BACK:
            return _update(state, search_mode=False, search_query="", selected_post_index=0)
        if action in (Action.SEARCH_SUBMIT,) + _MOVES:
            record = Record(
                type=EventType.SEARCH_PERFORMED,
                metadata={
                    "query": state.search_query,
                    "resultCount": len(state.visible_posts),
                    "feedType": state.feed_type.value,
                },
            )
            state = _update(state, record, search_mode=False)
            if action == Action.SEARCH_SUBMIT:
                return state
        else:
            return state

    posts = state.visible_posts

    if action in _MOVES:
        return _update(state, selected_post_index=_move(state.selected_post_index, len(posts), action))

    if action == Action.SEARCH_START:
        return _update(state, search_mode=True)

    if action == Action.BACK:
        if state.search_query:
            return _update(state, search_query="", selected_post_index=0)
        return state

    if action == Action.REFRESH:
        return _update(
            state,
            Record(type=EventType.FEED_REFRESHED, metadata={"feedType": state.feed_type.value}),
            LoadFeed(feed_type=state.feed_type),
            feed_loading=True,
            requested_feed=state.feed_type,
            error=None,
        )

    post = state.selected_post
    if post is None:
        return state

    if action == Action.OPEN:
        viewed = Record(
            type=EventType.POST_VIEWED,
            metadata={
                "postId": post.id,
                "postTitle": post.title,
                "postAuthor": post.author,
                "postScore": post.score,
                "commentCount": post.comment_count,
            },
        )
        return _update(
            state,
            viewed,
            LoadComments(post=post),
            view=View.POST,
            current_post=post,
            comments=(),
            flat_comments=(),
            selected_comment_index=0,
            collapsed=frozenset(),
            comments_loading=True,
            error=None,
        )

    if action == Action.OPEN_ARTICLE:
        return _open_article(state, post)

    if action == Action.OPEN_DISCUSSION:
        record = Record(
            type=EventType.POST_OPENED_BROWSER,
            metadata={"postId": post.id, "postTitle": post.title, "url": post.hacker_news_url},
        )
        return _update(state, record, OpenUrl(url=post.hacker_news_url))

    return state


def _open_article(state: AppState, post: HackerNewsPost) -> AppState:
    url = post.url or post.hacker_news_url
    record = Record(
        type=EventType.ARTICLE_OPENED_BROWSER,
        metadata={"postId": post.id, "postTitle": post.title, "url": url},
    )
    return _update(state, record, OpenUrl(url=url))


def _post_input(state: AppState, action: Action) -> AppState:
    post = state.current_post
    if post is None:
        return state

    if action in _MOVES:
        index = _move(state.selected_comment_index, len(state.flat_comments), action)
        return _update(state, selected_comment_index=index)

    if action == Action.TOGGLE_COLLAPSE:
        comment = state.selected_comment
        if comment is None:
            return state
        event_type = EventType.COMMENT_EXPANDED if comment.is_collapsed else EventType.COMMENT_COLLAPSED
        record = Record(
            type=event_type,
            metadata={
                "commentId": comment.id,
                "commentAuthor": comment.author,
                "replyCount": comment.reply_count,
            },
        )
        collapsed = toggle_membership(state.collapsed, comment.id)
        flat = tuple(project(state.comments, collapsed))
        return _update(
            state,
            record,
            collapsed=collapsed,
            flat_comments=flat,
            selected_comment_index=clamp_index(state.selected_comment_index, len(flat)),
        )

    if action == Action.BACK:
        record = Record(
            type=EventType.POST_CLOSED, metadata={"postId": post.id, "postTitle": post.title}
        )
        return _update(
            state,
            record,
            view=View.FEED,
            current_post=None,
            comments=(),
            flat_comments=(),
            selected_comment_index=0,
            collapsed=frozenset(),
            comments_loading=False,
        )

    if action == Action.OPEN_ARTICLE:
        return _open_article(state, post)

    if action == Action.OPEN_DISCUSSION:
        comment = state.selected_comment
        if comment is None:
            record = Record(
                type=EventType.POST_OPENED_BROWSER,
                metadata={"postId": post.id, "postTitle": post.title, "url": post.hacker_news_url},
            )
            return _update(state, record, OpenUrl(url=post.hacker_news_url))
        url = post.comment_url(comment.id)
        record = Record(
            type=EventType.COMMENT_OPENED_BROWSER,
            metadata={
                "commentId": comment.id,
                "commentAuthor": comment.author,
                "postId": post.id,
                "postTitle": post.title,
                "url": url,
            },
        )
        return _update(state, record, OpenUrl(url=url))

    return state


def _superseded(state: AppState, feed_type: FeedType) -> bool:
    # Only the most recently requested feed may replace the list
    return state.requested_feed is not None and state.requested_feed != feed_type


def _feed_loaded(state: AppState, event: FeedLoaded) -> AppState:
    if _superseded(state, event.feed_type):
        return state

    records = []
    if event.feed_type != state.feed_type:
        records.append(
            Record(
                type=EventType.FEED_CHANGED,
                metadata={"from": state.feed_type.value, "to": event.feed_type.value},
            )
        )
    records.append(
        Record(
            type=EventType.FEED_LOADED,
            metadata={
                "feedType": event.feed_type.value,
                "postCount": len(event.posts),
                "loadTimeMs": event.load_time_ms,
            },
        )
    )
    return _update(
        state,
        *records,
        feed_type=event.feed_type,
        posts=event.posts,
        selected_post_index=0,
        feed_loading=False,
    )


def _comments_loaded(state: AppState, event: CommentsLoaded) -> AppState:
    # Results for a post that is no longer displayed are dropped
    if state.current_post is None or state.current_post.id != event.post_id:
        return state

    flat = tuple(project(event.comments, state.collapsed))
    return _update(
        state,
        comments=event.comments,
        flat_comments=flat,
        selected_comment_index=clamp_index(state.selected_comment_index, len(flat)),
        comments_loading=False,
    )
