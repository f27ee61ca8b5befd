"""
Curses front end.

Keys are read without blocking from inside the asyncio loop, so network
loads started by the session keep running while the screen stays
responsive.
"""

import asyncio
import curses
import os
from typing import Optional

from loguru import logger

from hn_companion.hn import HNContext
from hn_companion.models import FeedType
from hn_companion.render import Line, Style, render
from hn_companion.state import Action, AppState, Event, Input, SearchInput, SwitchFeed, View
from hn_companion.workflow import BrowserSession

POLL_INTERVAL = 0.02
ESCAPE = 27
ENTER_KEYS = (curses.KEY_ENTER, 10, 13)
BACKSPACE_KEYS = (curses.KEY_BACKSPACE, 127, 8)

FEED_KEYS = {
    "1": FeedType.TOP,
    "2": FeedType.NEW,
    "3": FeedType.BEST,
    "4": FeedType.ASK,
    "5": FeedType.SHOW,
    "6": FeedType.JOB,
}

MOVE_KEYS = {
    curses.KEY_DOWN: Action.MOVE_DOWN,
    curses.KEY_UP: Action.MOVE_UP,
    ord("j"): Action.MOVE_DOWN,
    ord("k"): Action.MOVE_UP,
    ord("g"): Action.JUMP_TOP,
    ord("G"): Action.JUMP_BOTTOM,
    curses.KEY_HOME: Action.JUMP_TOP,
    curses.KEY_END: Action.JUMP_BOTTOM,
}


def translate_key(state: AppState, key: int) -> Optional[Event]:
    """
    Map a curses key code to an event for the current state.

    Returns:
        The event, or None if the key means nothing here
    """
    if state.view == View.FEED and state.search_mode:
        if key == ESCAPE:
            return Input(action=Action.BACK)
        if key in BACKSPACE_KEYS:
            return Input(action=Action.SEARCH_BACKSPACE)
        if key in ENTER_KEYS:
            return Input(action=Action.SEARCH_SUBMIT)
        if key in (curses.KEY_DOWN, curses.KEY_UP):
            return Input(action=MOVE_KEYS[key])
        if 32 <= key <= 126:
            return SearchInput(text=chr(key))
        return None

    if key in (ord("h"), ord("?")):
        return Input(action=Action.TOGGLE_HELP)
    if key == ord("q"):
        return Input(action=Action.QUIT)
    if key in MOVE_KEYS:
        return Input(action=MOVE_KEYS[key])
    if key == ESCAPE or key in BACKSPACE_KEYS:
        return Input(action=Action.BACK)
    if key == ord("o"):
        return Input(action=Action.OPEN_ARTICLE)
    if key == ord("c"):
        return Input(action=Action.OPEN_DISCUSSION)

    if state.view == View.FEED:
        if 0 <= key < 256 and chr(key) in FEED_KEYS:
            return SwitchFeed(feed_type=FEED_KEYS[chr(key)])
        if key in ENTER_KEYS:
            return Input(action=Action.OPEN)
        if key == ord(" "):
            return Input(action=Action.OPEN_DISCUSSION)
        if key == ord("r"):
            return Input(action=Action.REFRESH)
        if key == ord("/"):
            return Input(action=Action.SEARCH_START)
    elif state.view == View.POST:
        if key == ord(" "):
            return Input(action=Action.TOGGLE_COLLAPSE)
    return None


class Screen:
    """Paints rendered lines onto a curses window."""

    def __init__(self, stdscr):
        self.stdscr = stdscr
        curses.curs_set(0)
        curses.use_default_colors()
        curses.init_pair(1, curses.COLOR_CYAN, -1)
        curses.init_pair(2, curses.COLOR_YELLOW, -1)
        curses.init_pair(3, curses.COLOR_RED, -1)
        self.attrs = {
            Style.NORMAL: curses.A_NORMAL,
            Style.DIM: curses.A_DIM,
            Style.BOLD: curses.A_BOLD,
            Style.ACCENT: curses.color_pair(1) | curses.A_BOLD,
            Style.SELECTED: curses.A_REVERSE | curses.A_BOLD,
            Style.SEARCH: curses.color_pair(2),
            Style.ERROR: curses.color_pair(3),
        }

    @property
    def size(self) -> tuple[int, int]:
        height, width = self.stdscr.getmaxyx()
        return width, height

    def draw(self, lines: list[Line]) -> None:
        self.stdscr.erase()
        width, height = self.size
        for row, line in enumerate(lines[:height]):
            try:
                self.stdscr.addnstr(row, 0, line.text, max(0, width - 1), self.attrs[line.style])
            except curses.error:
                # Writing into the bottom-right cell raises after drawing
                pass
        self.stdscr.refresh()


async def _run(stdscr, session: BrowserSession) -> None:
    screen = Screen(stdscr)
    stdscr.nodelay(True)
    stdscr.keypad(True)

    width, height = screen.size
    session.start(width, height)
    drawn: Optional[AppState] = None
    drawn_size = (width, height)

    try:
        while session.state.running:
            width, height = screen.size
            if drawn is not session.state or drawn_size != (width, height):
                screen.draw(render(session.state, width, height))
                drawn, drawn_size = session.state, (width, height)

            key = stdscr.getch()
            if key == -1:
                await asyncio.sleep(POLL_INTERVAL)
                continue
            if key == curses.KEY_RESIZE:
                drawn = None
                continue

            event = translate_key(session.state, key)
            if event is not None:
                session.dispatch(event)
    finally:
        session.close()


def run(context: HNContext, feed_type: FeedType = FeedType.TOP, limit: int = 30) -> None:
    """
    Run the interactive browser until the user quits.

    Args:
        context: The HN context containing all dependencies
        feed_type: Feed shown on start
        limit: Number of posts fetched per feed
    """
    os.environ.setdefault("ESCDELAY", "25")
    logger.info("Starting browser on {} feed", feed_type.value)

    def main(stdscr) -> None:
        session = BrowserSession(context, feed_type=feed_type, limit=limit)
        asyncio.run(_run(stdscr, session))

    curses.wrapper(main)
