from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FeedType(str, Enum):
    """Feeds published by the Hacker News API."""

    TOP = "top"
    NEW = "new"
    BEST = "best"
    ASK = "ask"
    SHOW = "show"
    JOB = "job"

    @property
    def label(self) -> str:
        return FEED_LABELS[self]


FEED_LABELS = {
    FeedType.TOP: "Top Stories",
    FeedType.NEW: "New Stories",
    FeedType.BEST: "Best Stories",
    FeedType.ASK: "Ask HN",
    FeedType.SHOW: "Show HN",
    FeedType.JOB: "Jobs",
}


class ItemType(str, Enum):
    """Kinds of item stored by the Hacker News API."""

    STORY = "story"
    COMMENT = "comment"
    JOB = "job"
    POLL = "poll"
    POLLOPT = "pollopt"


class Item(BaseModel):
    """A raw Hacker News item, as returned by ``/item/{id}.json``."""

    id: int
    type: Optional[ItemType] = None
    by: Optional[str] = None
    time: Optional[int] = None
    text: Optional[str] = None
    deleted: bool = False
    dead: bool = False
    parent: Optional[int] = None
    poll: Optional[int] = None
    kids: list[int] = Field(default_factory=list)
    url: Optional[str] = None
    score: Optional[int] = None
    title: Optional[str] = None
    parts: list[int] = Field(default_factory=list)
    descendants: Optional[int] = None

    @property
    def is_live(self) -> bool:
        return not (self.deleted or self.dead)


class Comment(BaseModel):
    """A Hacker News comment with its resolved replies."""

    id: int
    author: str = "unknown"
    text: str = ""
    time: int = 0
    parent: int = 0
    replies: list["Comment"] = Field(default_factory=list)
    deleted: bool = False
    dead: bool = False

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.time, tz=timezone.utc)

    @classmethod
    def from_item(cls, item: Item, replies: list["Comment"]) -> "Comment":
        return cls(
            id=item.id,
            author=item.by or "unknown",
            text=item.text or "",
            time=item.time or 0,
            parent=item.parent or 0,
            replies=replies,
            deleted=item.deleted,
            dead=item.dead,
        )


class FlatComment(Comment):
    """
    A comment positioned in a flattened tree.

    Replies are always empty here; visible replies follow the comment in the
    flat sequence instead.
    """

    depth: int = 0
    is_collapsed: bool = False
    reply_count: int = 0


class User(BaseModel):
    """A Hacker News user profile."""

    id: str
    created: int = 0
    karma: int = 0
    about: Optional[str] = None
    submitted: list[int] = Field(default_factory=list)

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.created, tz=timezone.utc)
