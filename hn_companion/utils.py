"""
Text formatting helpers for the terminal browser.
"""

import html
import re
import time as _time
from typing import Optional
from urllib.parse import urlparse

_PARAGRAPH = re.compile(r"<p>", re.IGNORECASE)
_BREAK = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")


def time_ago(timestamp: int, now: Optional[float] = None) -> str:
    """
    Format an epoch timestamp relative to ``now``.

    Args:
        timestamp: Seconds since the epoch
        now: Reference time, defaults to the current time

    Returns:
        A compact age such as ``"5m ago"`` or ``"2y ago"``
    """
    now = _time.time() if now is None else now
    seconds = max(0, int(now - timestamp))

    if seconds < 60:
        return f"{seconds}s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 30:
        return f"{days}d ago"
    months = days // 30
    if months < 12:
        return f"{months}mo ago"
    return f"{months // 12}y ago"


def get_domain(url: Optional[str]) -> str:
    """Return the host of a URL without a leading ``www.``."""
    if url is None:
        return "news.ycombinator.com"

    try:
        host = urlparse(url).hostname
    except ValueError:
        # e.g. an unbalanced IPv6 bracket in a submitted URL
        return "unknown"
    if not host:
        return "unknown"
    return re.sub(r"^www\.", "", host)


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    if max_length <= 3:
        return text[:max_length]
    return text[: max_length - 3] + "..."


def strip_html(text: str) -> str:
    """Convert Hacker News comment HTML to plain text."""
    text = _PARAGRAPH.sub("\n\n", text)
    text = _BREAK.sub("\n", text)
    text = _TAG.sub("", text)
    return html.unescape(text).strip()


def format_comment_count(count: int) -> str:
    if count == 0:
        return "no comments"
    if count == 1:
        return "1 comment"
    return f"{count} comments"


def wrap_text(text: str, max_width: int) -> list[str]:
    """
    Greedily wrap text on spaces.

    Words longer than ``max_width`` are kept whole on their own line.
    """
    lines: list[str] = []
    current = ""

    for word in text.split():
        candidate = word if not current else f"{current} {word}"
        if len(candidate) <= max_width:
            current = candidate
        else:
            if current:
                lines.append(current)
            current = word

    if current:
        lines.append(current)
    return lines
