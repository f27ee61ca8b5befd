"""
Comment tree construction and projection.

``build_tree`` turns the item graph's child id references into owned
``Comment`` trees. ``project`` and ``window`` turn such a tree into the
flat, viewport-sized slice of rows the browser draws.
"""

import asyncio
from collections.abc import Awaitable, Callable, Collection, Iterable, Sequence, Sized
from typing import Optional

from loguru import logger

from hn_companion.models import Comment, FlatComment, Item

Resolver = Callable[[int], Awaitable[Optional[Item]]]


async def build_tree(
    resolve: Resolver,
    child_ids: Optional[Iterable[int]],
    exclude: Iterable[int] = (),
    concurrent: bool = False,
) -> list[Comment]:
    """
    Recursively resolve child ids into comment trees.

    Absent items (missing, deleted, dead) and items whose fetch fails are
    dropped together with their subtree. An id that already occurs on the
    path from the root is treated as absent, so cyclic ``kids`` references
    terminate. Source order is preserved.

    Args:
        resolve: Coroutine returning the item for an id, or None if absent
        child_ids: Ordered top-level child ids
        exclude: Ids considered to be on the path already, e.g. the post id
        concurrent: Resolve siblings concurrently instead of one at a time

    Returns:
        The resolved top-level comments, each owning its replies
    """
    return await _build(resolve, child_ids, frozenset(exclude), concurrent)


async def _build(
    resolve: Resolver,
    child_ids: Optional[Iterable[int]],
    path: frozenset[int],
    concurrent: bool,
) -> list[Comment]:
    # Repeated siblings would render the same subtree twice
    ids = list(dict.fromkeys(child_ids or ()))

    if concurrent:
        nodes = await asyncio.gather(*(_build_node(resolve, i, path, concurrent) for i in ids))
    else:
        nodes = []
        for item_id in ids:
            nodes.append(await _build_node(resolve, item_id, path, concurrent))

    return [node for node in nodes if node is not None]


async def _build_node(
    resolve: Resolver, item_id: int, path: frozenset[int], concurrent: bool
) -> Optional[Comment]:
    if item_id in path:
        logger.warning("Dropping comment {}: cyclic reference", item_id)
        return None

    try:
        item = await resolve(item_id)
    except Exception as e:
        logger.warning("Failed to fetch comment {}: {}", item_id, e)
        return None

    if item is None or not item.is_live:
        return None

    replies = await _build(resolve, item.kids, path | {item_id}, concurrent)
    return Comment.from_item(item, replies)


def flatten_all(comments: Iterable[Comment]) -> list[Comment]:
    """Return every comment in pre-order, ignoring collapse state."""
    result: list[Comment] = []
    for comment in comments:
        result.append(comment)
        result.extend(flatten_all(comment.replies))
    return result


def project(
    comments: Iterable[Comment], collapsed: Collection[int], depth: int = 0
) -> list[FlatComment]:
    """
    Flatten a comment tree into display rows.

    Each comment is emitted at ``depth`` and followed by its replies at
    ``depth + 1``, unless its id is in ``collapsed``. A collapsed comment is
    still emitted, flagged ``is_collapsed``.

    Args:
        comments: Top-level comments, in display order
        collapsed: Ids of comments whose replies are hidden
        depth: Depth assigned to the top-level comments

    Returns:
        The visible comments in pre-order, with empty ``replies``
    """
    rows: list[FlatComment] = []
    for comment in comments:
        is_collapsed = comment.id in collapsed
        rows.append(
            FlatComment(
                id=comment.id,
                author=comment.author,
                text=comment.text,
                time=comment.time,
                parent=comment.parent,
                deleted=comment.deleted,
                dead=comment.dead,
                depth=depth,
                is_collapsed=is_collapsed,
                reply_count=len(comment.replies),
            )
        )
        if not is_collapsed and comment.replies:
            rows.extend(project(comment.replies, collapsed, depth + 1))
    return rows


def window(sequence: Sized, selected_index: int, capacity: int) -> tuple[int, int]:
    """
    Compute the slice ``[start, end)`` of a sequence to show in a viewport.

    The selection is kept centered where possible; near either end of the
    sequence the window is pinned to that end instead.

    Args:
        sequence: The rows being displayed
        selected_index: Index of the selected row
        capacity: Number of rows that fit in the viewport

    Returns:
        ``(start, end)`` indices, ``(0, 0)`` when nothing fits
    """
    if capacity <= 0:
        return 0, 0

    length = len(sequence)
    if length <= capacity:
        return 0, length

    start = selected_index - capacity // 2
    start = max(0, min(start, length - capacity))
    return start, start + capacity


def clamp_index(index: int, length: int) -> int:
    """Clamp a selection index into ``[0, length - 1]``; 0 for empty sequences."""
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


def find_comment(comments: Sequence[Comment], comment_id: int) -> Optional[Comment]:
    """Find a comment by id anywhere in a tree."""
    for comment in flatten_all(comments):
        if comment.id == comment_id:
            return comment
    return None
