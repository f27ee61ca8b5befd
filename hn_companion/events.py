"""
Session event log.

Every user interaction the browser reports is kept in memory as an
``AppEvent`` and written to one JSON file per session on ``save``.
"""

import json
import os
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

DEFAULT_LOG_DIR = Path.home() / ".hackernews-companion" / "logs"


class EventType(str, Enum):
    """All event types recorded by the browser."""

    # Navigation
    FEED_CHANGED = "feed.changed"
    POST_VIEWED = "post.viewed"
    POST_CLOSED = "post.closed"
    HELP_OPENED = "help.opened"
    HELP_CLOSED = "help.closed"

    # Browser actions
    ARTICLE_OPENED_BROWSER = "article.opened_browser"
    POST_OPENED_BROWSER = "post.opened_browser"
    COMMENT_OPENED_BROWSER = "comment.opened_browser"

    # Comments
    COMMENT_VIEWED = "comment.viewed"
    COMMENT_COLLAPSED = "comment.collapsed"
    COMMENT_EXPANDED = "comment.expanded"

    # Feeds
    FEED_REFRESHED = "feed.refreshed"
    FEED_LOADED = "feed.loaded"
    POSTS_LOADED = "posts.loaded"

    # Search
    SEARCH_PERFORMED = "search.performed"
    USER_POSTS_VIEWED = "user.posts_viewed"

    # Lifecycle
    APP_STARTED = "app.started"
    APP_EXITED = "app.exited"

    # Errors
    ERROR_OCCURRED = "error.occurred"
    LOAD_FAILED = "load.failed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AppEvent(BaseModel):
    """A single recorded interaction."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: EventType
    timestamp: datetime = Field(default_factory=_now)
    metadata: dict[str, Any] = Field(default_factory=dict)


class EventLog(BaseModel):
    """On-disk format of a session."""

    events: list[AppEvent]
    session_id: str
    start_time: datetime
    end_time: Optional[datetime] = None


class EventStats(BaseModel):
    total_events: int
    events_by_type: dict[str, int]
    session_duration: int
    posts_viewed: int
    articles_opened: int
    comments_viewed: int
    feed_changes: int


class EventLogger:
    """
    Records the interactions of one browsing session.
    """

    def __init__(self, storage_dir: Union[str, Path, None] = None, enabled: bool = True):
        """
        Initialize the event logger.

        Args:
            storage_dir: Directory session files are written to
            enabled: When False, events are still kept in memory but never saved
        """
        self.session_id = str(uuid.uuid4())
        self.start_time = _now()
        self.storage_dir = Path(storage_dir).expanduser() if storage_dir else DEFAULT_LOG_DIR
        self.enabled = enabled
        self._events: list[AppEvent] = []
        self._post_opened_at: Optional[datetime] = None
        self._post_id: Optional[int] = None

    def log(self, event_type: EventType, metadata: Optional[dict[str, Any]] = None) -> AppEvent:
        """Record an event and return it."""
        event = AppEvent(type=EventType(event_type), metadata=metadata or {})
        self._events.append(event)

        if os.environ.get("DEBUG_EVENTS") == "true":
            logger.debug("[EVENT] {}: {}", event.type.value, event.metadata)
        return event

    def track_post_opened(self, post_id: int) -> None:
        """Start timing how long a post stays open."""
        self._post_opened_at = _now()
        self._post_id = post_id

    def track_post_closed(self) -> int:
        """
        Stop timing the open post.

        Returns:
            Whole seconds the post was open, or 0 if none was being timed
        """
        if self._post_opened_at is None or self._post_id is None:
            return 0

        spent = int((_now() - self._post_opened_at).total_seconds())
        self._post_opened_at = None
        self._post_id = None
        return spent

    def get_events(self) -> list[AppEvent]:
        return list(self._events)

    def get_filtered_events(
        self,
        types: Optional[list[EventType]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[AppEvent]:
        """
        Select events by type and time range.

        Args:
            types: Only keep events of these types
            start: Only keep events at or after this time
            end: Only keep events at or before this time
            limit: Only keep the most recent ``limit`` matches

        Returns:
            The matching events, oldest first
        """
        events = self.get_events()
        if types:
            events = [e for e in events if e.type in types]
        if start is not None:
            events = [e for e in events if e.timestamp >= start]
        if end is not None:
            events = [e for e in events if e.timestamp <= end]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    def get_stats(self) -> EventStats:
        by_type: dict[str, int] = {}
        for event in self._events:
            by_type[event.type.value] = by_type.get(event.type.value, 0) + 1

        return EventStats(
            total_events=len(self._events),
            events_by_type=by_type,
            session_duration=int((_now() - self.start_time).total_seconds()),
            posts_viewed=by_type.get(EventType.POST_VIEWED.value, 0),
            articles_opened=by_type.get(EventType.ARTICLE_OPENED_BROWSER.value, 0),
            comments_viewed=by_type.get(EventType.COMMENT_VIEWED.value, 0),
            feed_changes=by_type.get(EventType.FEED_CHANGED.value, 0),
        )

    @property
    def session_file(self) -> Path:
        started = self.start_time.isoformat().replace(":", "-")
        return self.storage_dir / f"session_{self.session_id}_{started}.json"

    def save(self) -> Optional[Path]:
        """
        Write the session to its log file, replacing earlier saves.

        Returns:
            The file written, or None if saving is disabled
        """
        if not self.enabled:
            return None

        self.storage_dir.mkdir(parents=True, exist_ok=True)
        log = EventLog(
            events=self._events,
            session_id=self.session_id,
            start_time=self.start_time,
            end_time=_now(),
        )
        path = self.session_file
        path.write_text(log.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Saved {} events to {}", len(self._events), path)
        return path

    @staticmethod
    def load_session(path: Union[str, Path]) -> Optional[EventLog]:
        """Load a saved session, or None if the file is unreadable."""
        try:
            return EventLog.model_validate(json.loads(Path(path).read_text(encoding="utf-8")))
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Failed to load session {}: {}", path, e)
            return None

    @staticmethod
    def get_session_files(storage_dir: Union[str, Path, None] = None) -> list[Path]:
        """List saved session files, oldest name first."""
        directory = Path(storage_dir).expanduser() if storage_dir else DEFAULT_LOG_DIR
        if not directory.exists():
            return []
        return sorted(directory.glob("session_*.json"))

    def clear(self) -> None:
        self._events = []

    def session_info(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "start_time": self.start_time,
            "event_count": len(self._events),
        }

    @staticmethod
    def format_event(event: AppEvent) -> str:
        """Render an event as a one-line, human-readable description."""
        time = event.timestamp.astimezone().strftime("%H:%M:%S")
        meta = event.metadata

        if event.type == EventType.POST_VIEWED:
            return f'[{time}] Viewed post: "{meta.get("postTitle")}"'
        if event.type == EventType.POST_CLOSED:
            return f'[{time}] Closed post: "{meta.get("postTitle")}" ({meta.get("timeSpentSeconds")}s)'
        if event.type == EventType.ARTICLE_OPENED_BROWSER:
            return f'[{time}] Opened article in browser: "{meta.get("postTitle")}"'
        if event.type == EventType.POST_OPENED_BROWSER:
            return f'[{time}] Opened HN discussion in browser: "{meta.get("postTitle")}"'
        if event.type == EventType.COMMENT_OPENED_BROWSER:
            return f"[{time}] Opened comment in browser by {meta.get('commentAuthor')}"
        if event.type == EventType.COMMENT_COLLAPSED:
            return f"[{time}] Collapsed comment by {meta.get('commentAuthor')}"
        if event.type == EventType.COMMENT_EXPANDED:
            return f"[{time}] Expanded comment by {meta.get('commentAuthor')}"
        if event.type == EventType.FEED_CHANGED:
            return f"[{time}] Changed feed from {meta.get('from')} to {meta.get('to')}"
        if event.type == EventType.FEED_REFRESHED:
            return f"[{time}] Refreshed {meta.get('feedType')} feed"
        if event.type == EventType.FEED_LOADED:
            return (
                f"[{time}] Loaded {meta.get('postCount')} posts from "
                f"{meta.get('feedType')} ({meta.get('loadTimeMs')}ms)"
            )
        if event.type == EventType.APP_STARTED:
            return f"[{time}] App started ({meta.get('terminalWidth')}x{meta.get('terminalHeight')})"
        if event.type == EventType.APP_EXITED:
            return (
                f"[{time}] App exited ({meta.get('sessionDurationSeconds')}s, "
                f"{meta.get('totalEvents')} events)"
            )
        return f"[{time}] {event.type.value}"
