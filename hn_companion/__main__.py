#!/usr/bin/env python3
"""
Command-line interface for HN Companion.
"""

import asyncio
from typing import Any, Dict, Optional

import fire  # type: ignore

from hn_companion.config import load_config
from hn_companion.context import HNContextProvider
from hn_companion.events import EventLogger
from hn_companion.hn import HackerNewsAPI
from hn_companion.log import setup_logging
from hn_companion.models import Comment, FeedType
from hn_companion.utils import format_comment_count, strip_html, time_ago, truncate
from hn_companion.workflow import fetch_comment_tree


def _setup(config_path: str, to_file: bool = False) -> Dict[str, Any]:
    config = load_config(config_path)
    setup_logging(
        config["logging"]["level"],
        config["logging"]["path"] if to_file else None,
    )
    return config


def browse(feed: str = "", limit: int = 0, config_path: str = "") -> None:
    """
    Browse Hacker News interactively.

    Args:
        feed: Feed to start on (top, new, best, ask, show, job)
        limit: Number of posts fetched per feed
        config_path: Path to the TOML configuration file
    """
    from hn_companion.tui import run

    config = _setup(config_path, to_file=True)
    context = HNContextProvider.get_context_from_config(config)
    run(
        context,
        feed_type=FeedType(feed or config["feed"]["default"]),
        limit=limit or int(config["feed"]["limit"]),
    )


def feed(name: str = "top", limit: int = 10, config_path: str = "") -> None:
    """
    Print the posts of a feed.

    Args:
        name: Feed to read (top, new, best, ask, show, job)
        limit: Number of posts to print
        config_path: Path to the TOML configuration file
    """
    _setup(config_path)
    api = HackerNewsAPI(HNContextProvider.get_default_context(config_path))
    posts = asyncio.run(api.get_posts(FeedType(name), limit))

    for rank, post in enumerate(posts, start=1):
        print(f"{rank:>3}. [{post.score}] {post.title}")
        print(f"     by {post.author} | {format_comment_count(post.comment_count)} | {post.hacker_news_url}")


def post(post_id: int, browser: bool = False, config_path: str = "") -> None:
    """
    Print a summary of a post.

    Args:
        post_id: The ID of the Hacker News post
        browser: Also open the discussion in the default browser
        config_path: Path to the TOML configuration file
    """
    _setup(config_path)
    api = HackerNewsAPI(HNContextProvider.get_default_context(config_path))
    item = asyncio.run(api.get_post(post_id))
    if item is None:
        print(f"Post {post_id} not found")
        return

    print(item.summary())
    if browser:
        item.open_in_browser()


def _print_tree(comments: list[Comment], depth: int = 0) -> None:
    for comment in comments:
        indent = "  " * depth
        text = " ".join(strip_html(comment.text).split())
        print(f"{indent}- {comment.author} ({time_ago(comment.time)}): {truncate(text, 100)}")
        _print_tree(comment.replies, depth + 1)


def comments(post_id: int, config_path: str = "") -> None:
    """
    Print the full comment tree of a post.

    Args:
        post_id: The ID of the Hacker News post
        config_path: Path to the TOML configuration file
    """
    _setup(config_path)
    context = HNContextProvider.get_default_context(config_path)
    item, tree = asyncio.run(fetch_comment_tree(post_id, context))
    if item is None:
        print(f"Post {post_id} not found")
        return

    print(f"{item.title} ({format_comment_count(item.comment_count)})")
    _print_tree(tree)


def user(handle: str, limit: int = 10, config_path: str = "") -> None:
    """
    Print a user's profile and recent submissions.

    Args:
        handle: Hacker News user name
        limit: Number of submissions to look at
        config_path: Path to the TOML configuration file
    """
    _setup(config_path)
    api = HackerNewsAPI(HNContextProvider.get_default_context(config_path))

    async def _load():
        profile = await api.get_user(handle)
        if profile is None:
            return None, []
        return profile, await api.get_posts_by_user(handle, limit)

    profile, posts = asyncio.run(_load())
    if profile is None:
        print(f'User "{handle}" not found')
        return

    print(f"{profile.id} | karma {profile.karma} | joined {profile.created_at:%Y-%m-%d}")
    for item in posts:
        print(f"  [{item.score}] {item.title}")


def sessions(config_path: str = "") -> None:
    """
    List saved session event logs.

    Args:
        config_path: Path to the TOML configuration file
    """
    config = _setup(config_path)
    for path in EventLogger.get_session_files(config["events"]["directory"]):
        print(path)


def session(path: str, limit: Optional[int] = None) -> None:
    """
    Print the events of a saved session.

    Args:
        path: Session file as listed by ``sessions``
        limit: Only print the last ``limit`` events
    """
    log = EventLogger.load_session(path)
    if log is None:
        print(f"Could not read {path}")
        return

    events = log.events[-limit:] if limit else log.events
    print(f"Session {log.session_id} ({len(log.events)} events)")
    for event in events:
        print(EventLogger.format_event(event))


def main() -> None:
    fire.Fire(
        {
            "browse": browse,
            "feed": feed,
            "post": post,
            "comments": comments,
            "user": user,
            "sessions": sessions,
            "session": session,
        }
    )


if __name__ == "__main__":
    main()
