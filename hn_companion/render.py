"""
Screen layout for the terminal browser.

Each view is rendered to a list of styled lines sized to the terminal;
``tui`` only paints them. Rows beyond the viewport are never rendered:
``window`` picks the slice of posts or comments around the selection.
"""

from enum import Enum
from typing import NamedTuple, Optional

from hn_companion.models import FlatComment
from hn_companion.post import HackerNewsPost
from hn_companion.state import AppState, View
from hn_companion.tree import window
from hn_companion.utils import (
    format_comment_count,
    get_domain,
    strip_html,
    time_ago,
    truncate,
    wrap_text,
)

POST_ROWS = 2
COMMENT_ROWS = 3
PREVIEW_CHARS = 200


class Style(str, Enum):
    NORMAL = "normal"
    DIM = "dim"
    BOLD = "bold"
    ACCENT = "accent"
    SELECTED = "selected"
    SEARCH = "search"
    ERROR = "error"


class Line(NamedTuple):
    text: str
    style: Style = Style.NORMAL


HELP_TEXT = [
    ("HackerNews TUI - Keyboard Shortcuts", Style.ACCENT),
    ("", Style.NORMAL),
    ("NAVIGATION", Style.BOLD),
    ("  j/k, ↓/↑       Move up/down", Style.NORMAL),
    ("  g/G            Jump to top/bottom", Style.NORMAL),
    ("  Enter          View post details", Style.NORMAL),
    ("  Esc/Backspace  Back to previous view", Style.NORMAL),
    ("", Style.NORMAL),
    ("ACTIONS", Style.BOLD),
    ("  o              Open article in browser", Style.NORMAL),
    ("  c, Space       Open HN discussion in browser (feed view)", Style.NORMAL),
    ("  Space          Collapse/expand comment (post view)", Style.NORMAL),
    ("  c              Open selected comment in browser (post view)", Style.NORMAL),
    ("  r              Refresh current feed", Style.NORMAL),
    ("  /              Search posts (title, author, domain)", Style.NORMAL),
    ("  ↓/↑            Exit search input, navigate filtered results", Style.NORMAL),
    ("  Esc            Clear filter and exit search", Style.NORMAL),
    ("", Style.NORMAL),
    ("FEEDS", Style.BOLD),
    ("  1              Top stories", Style.NORMAL),
    ("  2              New stories", Style.NORMAL),
    ("  3              Best stories", Style.NORMAL),
    ("  4              Ask HN", Style.NORMAL),
    ("  5              Show HN", Style.NORMAL),
    ("  6              Jobs", Style.NORMAL),
    ("", Style.NORMAL),
    ("OTHER", Style.BOLD),
    ("  h, ?           Show this help", Style.NORMAL),
    ("  q              Quit", Style.NORMAL),
    ("", Style.NORMAL),
    ("Press Esc or h to close", Style.DIM),
]


def render(state: AppState, width: int, height: int, now: Optional[float] = None) -> list[Line]:
    """
    Lay out the current view.

    Args:
        state: The snapshot to draw
        width: Terminal columns
        height: Terminal rows
        now: Reference time for relative timestamps

    Returns:
        At most ``height`` lines, none longer than ``width - 1``
    """
    if state.view == View.HELP:
        lines = [Line(text, style) for text, style in HELP_TEXT]
    elif state.view == View.POST and state.current_post is not None:
        lines = _render_post(state, state.current_post, width, height, now)
    else:
        lines = _render_feed(state, width, height, now)

    if state.error:
        lines = lines[: max(0, height - 1)]
        lines.append(Line(f"Error: {state.error}", Style.ERROR))

    limit = max(0, width - 1)
    return [Line(truncate(line.text, limit), line.style) for line in lines[:height]]


def _separator(width: int) -> Line:
    return Line("─" * max(0, width - 2), Style.DIM)


def _render_feed(state: AppState, width: int, height: int, now: Optional[float]) -> list[Line]:
    posts = state.visible_posts
    count = f"{len(posts)}/{len(state.posts)}" if state.search_query else f"{len(posts)}"
    position = f"[{state.selected_post_index + 1}/{len(posts)}]" if posts else ""
    title = f"HN: {state.feed_type.label} ({count})"
    padding = max(1, width - 1 - len(title) - len(position))

    lines = [Line(f"{title}{' ' * padding}{position}", Style.ACCENT), _separator(width)]

    if state.search_mode:
        lines.append(Line(f"Search: {state.search_query}█", Style.SEARCH))
    elif state.search_query:
        lines.append(Line(f"Filter: {state.search_query} (press / to edit, Esc to clear)", Style.SEARCH))

    footer = [
        _separator(width),
        Line("j/k:navigate  Enter:view  o:open  /:search  Space:HN  h:help  q:quit  1-6:feeds", Style.DIM),
    ]
    reserved = len(lines) + len(footer) + (1 if state.error else 0)

    if state.feed_loading and not state.posts:
        lines.append(Line("Loading posts...", Style.DIM))
    elif not posts:
        lines.append(Line("No matching posts" if state.search_query else "No posts found", Style.DIM))
    else:
        capacity = (height - reserved) // POST_ROWS
        start, end = window(posts, state.selected_post_index, capacity)
        for index in range(start, end):
            lines.extend(_post_lines(posts[index], index + 1, index == state.selected_post_index, now))

    return lines + footer


def _post_lines(post: HackerNewsPost, rank: int, selected: bool, now: Optional[float]) -> list[Line]:
    meta = (
        f"    └─ {get_domain(post.url)} · {format_comment_count(post.comment_count)}"
        f" · {time_ago(post.time, now)}"
    )
    return [
        Line(f"{rank}. [{post.score}↑] {post.title}", Style.SELECTED if selected else Style.NORMAL),
        Line(meta, Style.DIM),
    ]


def _render_post(
    state: AppState, post: HackerNewsPost, width: int, height: int, now: Optional[float]
) -> list[Line]:
    lines = [
        Line("← Back", Style.DIM),
        _separator(width),
        Line(post.title, Style.BOLD),
        Line(
            f"{post.score} points by {post.author} · {post.comment_count} comments"
            f" · {time_ago(post.time, now)}",
            Style.DIM,
        ),
        Line(get_domain(post.url), Style.ACCENT),
    ]
    if post.text is not None:
        preview = strip_html(post.text)[:PREVIEW_CHARS]
        lines.extend(Line(row) for row in wrap_text(preview, max(10, width - 2)))
    lines.append(Line("[o] Open article  [c] Open HN discussion", Style.DIM))
    lines.append(_separator(width))

    flat = state.flat_comments
    position = f" [{state.selected_comment_index + 1}/{len(flat)}]" if flat else ""
    lines.append(Line(f"Comments ({post.comment_count}):{position}", Style.BOLD))

    footer = [_separator(width), Line("j/k:navigate  Space:collapse  o:open  Esc:back  q:quit", Style.DIM)]
    reserved = len(lines) + len(footer) + (1 if state.error else 0)

    if state.comments_loading:
        lines.append(Line("Loading comments...", Style.DIM))
    elif not flat:
        lines.append(Line("No comments yet", Style.DIM))
    else:
        capacity = (height - reserved) // COMMENT_ROWS
        start, end = window(flat, state.selected_comment_index, capacity)
        for index in range(start, end):
            lines.extend(_comment_lines(flat[index], index == state.selected_comment_index, width, now))

    return lines + footer


def _comment_lines(comment: FlatComment, selected: bool, width: int, now: Optional[float]) -> list[Line]:
    indent = "  " * comment.depth
    icon = "▶" if comment.is_collapsed else "▼"
    header = f"{indent}{icon} {comment.author} · {time_ago(comment.time, now)}"
    if comment.is_collapsed:
        header += f" [collapsed, {comment.reply_count} replies]" if comment.reply_count else " [collapsed]"

    body = ""
    if not comment.is_collapsed:
        text = " ".join(strip_html(comment.text).split())
        body = indent + "  " + truncate(text, max(10, width - len(indent) - 3))

    return [Line(header, Style.SELECTED if selected else Style.NORMAL), Line(body), Line("")]
