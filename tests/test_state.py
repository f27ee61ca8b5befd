"""
Tests for the navigation state machine.
"""

import pytest

from hn_companion.events import EventType
from hn_companion.models import Comment, FeedType
from hn_companion.post import HackerNewsPost
from hn_companion.state import (
    Action,
    AppState,
    CommentsFailed,
    CommentsLoaded,
    ErrorOccurred,
    FeedFailed,
    FeedLoaded,
    Input,
    LoadComments,
    LoadFeed,
    OpenUrl,
    Record,
    SearchInput,
    SwitchFeed,
    View,
    dispatch,
    toggle_membership,
)


def make_post(post_id, title="Post", author="someone", url=None):
    return HackerNewsPost({"id": post_id, "title": title, "by": author, "url": url})


def node(comment_id, *replies):
    return Comment(id=comment_id, author=f"user{comment_id}", replies=list(replies))


def press(state, *actions):
    for action in actions:
        state = dispatch(state, Input(action=action))
    return state


def records(state):
    return [effect.type for effect in state.effects if isinstance(effect, Record)]


@pytest.fixture
def posts():
    return (
        make_post(1, "Rust in Production", "alice", "https://blog.rust-lang.org/x"),
        make_post(2, "Ask HN: Gardening?", "bob"),
        make_post(3, "Python Tips", "carol", "https://www.python.org/tips"),
    )


@pytest.fixture
def feed_state(posts):
    return dispatch(AppState(), FeedLoaded(feed_type=FeedType.TOP, posts=posts))


@pytest.fixture
def comments():
    """1 -> (2 -> 3), 4; 5"""
    return (node(1, node(2, node(3)), node(4)), node(5))


@pytest.fixture
def post_state(feed_state, comments):
    state = press(feed_state, Action.OPEN)
    return dispatch(state, CommentsLoaded(post_id=1, comments=comments))


class TestFeedView:
    """Tests for feed navigation."""

    def test_switch_feed_requests_load(self):
        state = dispatch(AppState(), SwitchFeed(feed_type=FeedType.ASK))

        assert state.feed_loading
        assert state.effects == (LoadFeed(feed_type=FeedType.ASK),)

    def test_feed_loaded(self, posts):
        state = dispatch(AppState(feed_loading=True), FeedLoaded(feed_type=FeedType.TOP, posts=posts))

        assert state.posts == posts
        assert not state.feed_loading
        assert records(state) == [EventType.FEED_LOADED]

    def test_feed_change_recorded(self, feed_state, posts):
        state = dispatch(feed_state, FeedLoaded(feed_type=FeedType.NEW, posts=posts))

        assert state.feed_type == FeedType.NEW
        assert records(state) == [EventType.FEED_CHANGED, EventType.FEED_LOADED]

    def test_move_is_clamped(self, feed_state):
        state = press(feed_state, Action.MOVE_UP)
        assert state.selected_post_index == 0

        state = press(state, Action.MOVE_DOWN, Action.MOVE_DOWN, Action.MOVE_DOWN, Action.MOVE_DOWN)
        assert state.selected_post_index == 2

    def test_jump_top_and_bottom(self, feed_state):
        assert press(feed_state, Action.JUMP_BOTTOM).selected_post_index == 2
        assert press(feed_state, Action.JUMP_BOTTOM, Action.JUMP_TOP).selected_post_index == 0

    def test_move_on_empty_feed(self):
        state = press(AppState(), Action.MOVE_DOWN, Action.JUMP_BOTTOM)

        assert state.selected_post_index == 0

    def test_refresh(self, feed_state):
        state = press(feed_state, Action.MOVE_DOWN, Action.REFRESH)

        assert state.feed_loading
        assert LoadFeed(feed_type=FeedType.TOP) in state.effects
        assert records(state) == [EventType.FEED_REFRESHED]

        state = dispatch(state, FeedLoaded(feed_type=FeedType.TOP, posts=feed_state.posts))
        assert state.selected_post_index == 0

    def test_failed_refresh_keeps_posts(self, feed_state):
        state = press(feed_state, Action.MOVE_DOWN, Action.REFRESH)
        state = dispatch(state, FeedFailed(feed_type=FeedType.TOP, error="Network down"))

        assert state.error == "Network down"
        assert state.posts == feed_state.posts
        assert state.selected_post_index == 1
        assert not state.feed_loading
        assert records(state) == [EventType.LOAD_FAILED]
        assert press(state, Action.MOVE_DOWN).selected_post_index == 2

    def test_superseded_feed_result_dropped(self, feed_state, posts):
        state = dispatch(feed_state, SwitchFeed(feed_type=FeedType.NEW))
        state = dispatch(state, SwitchFeed(feed_type=FeedType.BEST))

        late = dispatch(state, FeedLoaded(feed_type=FeedType.NEW, posts=posts[:1]))
        assert late.feed_type == FeedType.TOP
        assert late.feed_loading
        assert late.effects == ()

        state = dispatch(late, FeedLoaded(feed_type=FeedType.BEST, posts=posts[1:]))
        assert state.feed_type == FeedType.BEST
        assert not state.feed_loading

        state = dispatch(state, FeedLoaded(feed_type=FeedType.NEW, posts=posts[:1]))
        assert state.feed_type == FeedType.BEST
        assert state.posts == posts[1:]

    def test_superseded_feed_failure_dropped(self, feed_state):
        state = dispatch(feed_state, SwitchFeed(feed_type=FeedType.NEW))
        state = dispatch(state, SwitchFeed(feed_type=FeedType.BEST))

        state = dispatch(state, FeedFailed(feed_type=FeedType.NEW, error="timeout"))

        assert state.error is None
        assert state.feed_loading

    def test_open_without_posts_is_noop(self):
        state = press(AppState(), Action.OPEN)

        assert state.view == View.FEED
        assert state.effects == ()

    def test_open_article(self, feed_state):
        state = press(feed_state, Action.OPEN_ARTICLE)

        assert OpenUrl(url="https://blog.rust-lang.org/x") in state.effects
        assert records(state) == [EventType.ARTICLE_OPENED_BROWSER]

    def test_open_article_falls_back_to_discussion(self, feed_state):
        state = press(feed_state, Action.MOVE_DOWN, Action.OPEN_ARTICLE)

        assert OpenUrl(url="https://news.ycombinator.com/item?id=2") in state.effects

    def test_open_discussion(self, feed_state):
        state = press(feed_state, Action.OPEN_DISCUSSION)

        assert OpenUrl(url="https://news.ycombinator.com/item?id=1") in state.effects
        assert records(state) == [EventType.POST_OPENED_BROWSER]

    def test_quit(self, feed_state):
        assert not press(feed_state, Action.QUIT).running


class TestSearch:
    """Tests for the in-feed search filter."""

    def type_query(self, state, text):
        state = press(state, Action.SEARCH_START)
        for char in text:
            state = dispatch(state, SearchInput(text=char))
        return state

    def test_filter_by_title(self, feed_state):
        state = self.type_query(feed_state, "rust")

        assert state.search_mode
        assert [p.id for p in state.visible_posts] == [1]

    def test_filter_by_author_and_domain(self, feed_state):
        assert [p.id for p in self.type_query(feed_state, "CAROL").visible_posts] == [3]
        assert [p.id for p in self.type_query(feed_state, "python.org").visible_posts] == [3]

    def test_selection_reclamped(self, feed_state):
        state = press(feed_state, Action.JUMP_BOTTOM)
        state = self.type_query(state, "rust")

        assert state.selected_post_index == 0
        assert state.selected_post.id == 1

    def test_backspace(self, feed_state):
        state = self.type_query(feed_state, "rustx")
        assert state.visible_posts == []

        state = press(state, Action.SEARCH_BACKSPACE)
        assert state.search_query == "rust"

    def test_submit_keeps_filter(self, feed_state):
        state = press(self.type_query(feed_state, "p"), Action.SEARCH_SUBMIT)

        assert not state.search_mode
        assert state.search_query == "p"
        assert records(state) == [EventType.SEARCH_PERFORMED]
        assert state.effects[0].metadata == {"query": "p", "resultCount": 2, "feedType": "top"}

    def test_move_leaves_input_and_moves(self, feed_state):
        state = self.type_query(feed_state, "t")
        state = press(state, Action.MOVE_DOWN)

        assert not state.search_mode
        assert state.selected_post_index == 1

    def test_escape_clears_filter(self, feed_state):
        state = press(self.type_query(feed_state, "rust"), Action.BACK)

        assert not state.search_mode
        assert state.search_query == ""
        assert len(state.visible_posts) == 3

    def test_escape_after_submit_clears_filter(self, feed_state):
        state = press(self.type_query(feed_state, "rust"), Action.SEARCH_SUBMIT, Action.BACK)

        assert state.search_query == ""

    def test_open_uses_filtered_selection(self, feed_state):
        state = press(self.type_query(feed_state, "python"), Action.SEARCH_SUBMIT, Action.OPEN)

        assert state.current_post.id == 3


class TestPostView:
    """Tests for the post detail view."""

    def test_open_enters_loading_post_view(self, feed_state):
        state = press(feed_state, Action.OPEN)

        assert state.view == View.POST
        assert state.current_post.id == 1
        assert state.comments_loading
        assert state.flat_comments == ()
        assert LoadComments(post=feed_state.posts[0]) in state.effects
        assert records(state) == [EventType.POST_VIEWED]

    def test_comments_loaded(self, post_state):
        assert not post_state.comments_loading
        assert [c.id for c in post_state.flat_comments] == [1, 2, 3, 4, 5]
        assert [c.depth for c in post_state.flat_comments] == [0, 1, 2, 1, 0]

    def test_move_over_comments(self, post_state):
        state = press(post_state, Action.MOVE_DOWN, Action.MOVE_DOWN)
        assert state.selected_comment.id == 3

        assert press(state, Action.JUMP_BOTTOM).selected_comment_index == 4
        assert press(state, Action.JUMP_TOP).selected_comment_index == 0

    def test_move_without_comments(self, feed_state):
        state = press(feed_state, Action.OPEN)
        state = dispatch(state, CommentsLoaded(post_id=1, comments=()))

        state = press(state, Action.MOVE_DOWN, Action.JUMP_BOTTOM, Action.TOGGLE_COLLAPSE)

        assert state.selected_comment_index == 0
        assert state.collapsed == frozenset()

    def test_toggle_collapse(self, post_state):
        state = press(post_state, Action.TOGGLE_COLLAPSE)

        assert state.collapsed == {1}
        assert [c.id for c in state.flat_comments] == [1, 5]
        assert state.flat_comments[0].is_collapsed
        assert records(state) == [EventType.COMMENT_COLLAPSED]

        state = press(state, Action.TOGGLE_COLLAPSE)

        assert state.collapsed == frozenset()
        assert [c.id for c in state.flat_comments] == [1, 2, 3, 4, 5]
        assert records(state) == [EventType.COMMENT_EXPANDED]

    def test_collapse_recomputed_from_cached_tree(self, post_state):
        state = press(post_state, Action.MOVE_DOWN, Action.TOGGLE_COLLAPSE)

        assert [c.id for c in state.flat_comments] == [1, 2, 4, 5]
        assert state.comments is post_state.comments
        assert not any(isinstance(e, LoadComments) for e in state.effects)

    def test_selection_reclamped_after_shrink(self, feed_state):
        comments = (node(1, node(2, node(3, node(4, node(5))))), node(6), node(7))
        state = press(feed_state, Action.OPEN)
        state = state.model_copy(update={"collapsed": frozenset({1}), "selected_comment_index": 5})

        state = dispatch(state, CommentsLoaded(post_id=1, comments=comments))

        assert [c.id for c in state.flat_comments] == [1, 6, 7]
        assert state.selected_comment_index == 2

    def test_toggle_leaf_is_harmless(self, post_state):
        state = press(post_state, Action.JUMP_BOTTOM, Action.TOGGLE_COLLAPSE)

        assert [c.id for c in state.flat_comments] == [1, 2, 3, 4, 5]
        assert state.selected_comment_index == 4

    def test_back_resets_post_state(self, post_state):
        state = press(post_state, Action.MOVE_DOWN, Action.TOGGLE_COLLAPSE, Action.BACK)

        assert state.view == View.FEED
        assert state.current_post is None
        assert state.comments == ()
        assert state.flat_comments == ()
        assert state.selected_comment_index == 0
        assert state.collapsed == frozenset()
        assert records(state) == [EventType.POST_CLOSED]

    def test_late_comments_for_abandoned_post_dropped(self, feed_state, comments):
        state = press(feed_state, Action.OPEN, Action.BACK)

        late = dispatch(state, CommentsLoaded(post_id=1, comments=comments))

        assert late.view == View.FEED
        assert late.flat_comments == ()
        assert late.posts == feed_state.posts

    def test_late_comments_for_other_post_dropped(self, feed_state, comments):
        state = press(feed_state, Action.OPEN, Action.BACK, Action.MOVE_DOWN, Action.OPEN)

        state = dispatch(state, CommentsLoaded(post_id=1, comments=comments))

        assert state.current_post.id == 2
        assert state.comments_loading
        assert state.flat_comments == ()

    def test_comments_failed(self, feed_state):
        state = dispatch(press(feed_state, Action.OPEN), CommentsFailed(post_id=1, error="timeout"))

        assert state.view == View.POST
        assert not state.comments_loading
        assert state.error == "timeout"

    def test_comments_failed_for_abandoned_post(self, feed_state):
        state = press(feed_state, Action.OPEN, Action.BACK)

        assert dispatch(state, CommentsFailed(post_id=1, error="timeout")).error is None

    def test_open_selected_comment(self, post_state):
        state = press(post_state, Action.MOVE_DOWN, Action.OPEN_DISCUSSION)

        assert OpenUrl(url="https://news.ycombinator.com/item?id=2") in state.effects
        assert records(state) == [EventType.COMMENT_OPENED_BROWSER]

    def test_switch_feed_ignored_in_post_view(self, post_state):
        state = dispatch(post_state, SwitchFeed(feed_type=FeedType.NEW))

        assert state.effects == ()
        assert not state.feed_loading


class TestHelp:
    """Tests for the help overlay."""

    @pytest.mark.parametrize("opened_from", ["feed", "post"])
    def test_help_returns_to_origin(self, feed_state, post_state, opened_from):
        state = feed_state if opened_from == "feed" else post_state
        state = press(state, Action.MOVE_DOWN)

        helped = press(state, Action.TOGGLE_HELP)
        assert helped.view == View.HELP
        assert records(helped) == [EventType.HELP_OPENED]

        back = press(helped, Action.TOGGLE_HELP)
        ignored = {"effects": (), "help_return": View.FEED}
        assert back.model_copy(update=ignored) == state.model_copy(update=ignored)

    def test_escape_closes_help(self, post_state):
        state = press(post_state, Action.TOGGLE_HELP, Action.BACK)

        assert state.view == View.POST
        assert state.current_post is not None

    def test_other_keys_ignored_in_help(self, post_state):
        helped = press(post_state, Action.TOGGLE_HELP)
        state = press(helped, Action.MOVE_DOWN, Action.TOGGLE_COLLAPSE, Action.QUIT)

        assert state.running
        assert state.selected_comment_index == helped.selected_comment_index
        assert state.collapsed == helped.collapsed

    def test_comments_arriving_under_help(self, feed_state, comments):
        state = press(feed_state, Action.OPEN, Action.TOGGLE_HELP)
        state = dispatch(state, CommentsLoaded(post_id=1, comments=comments))
        state = press(state, Action.TOGGLE_HELP)

        assert state.view == View.POST
        assert len(state.flat_comments) == 5


class TestMisc:
    """Tests for collapse-set helpers and errors."""

    def test_toggle_membership_is_involution(self):
        original = frozenset({3, 7})

        assert toggle_membership(toggle_membership(original, 5), 5) == original
        assert toggle_membership(toggle_membership(original, 3), 3) == original

    def test_error_occurred(self):
        state = dispatch(AppState(), ErrorOccurred(error="no browser"))

        assert state.error == "no browser"
        assert records(state) == [EventType.ERROR_OCCURRED]

    def test_unknown_event(self):
        with pytest.raises(TypeError):
            dispatch(AppState(), object())
