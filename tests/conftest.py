"""
Pytest configuration and fixtures for HN Companion tests.
"""

from typing import Any, Dict, List, Optional

import pytest

from hn_companion.events import EventLogger
from hn_companion.hn import HNContext

BASE_URL = "https://hacker-news.firebaseio.com/v0"


def item_url(item_id: int) -> str:
    """Return the API URL of an item."""
    return f"{BASE_URL}/item/{item_id}.json"


class MockApiClient:
    """Mock API client for testing."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        """Initialize with predefined responses."""
        self.responses = responses or {}
        self.errors: Dict[str, Exception] = {}
        self.get_calls: List[str] = []

    def get(self, url: str) -> Any:
        """Return the predefined response for the URL, or None like the real API."""
        self.get_calls.append(url)
        if url in self.errors:
            raise self.errors[url]
        return self.responses.get(url)

    def add_items(self, *items: Dict[str, Any]) -> None:
        """Serve each item payload under its item URL."""
        for item in items:
            self.responses[item_url(item["id"])] = item


@pytest.fixture
def mock_api_client() -> MockApiClient:
    """Return a mock API client."""
    return MockApiClient()


@pytest.fixture
def event_logger(tmp_path) -> EventLogger:
    """Return an event logger writing into a temporary directory."""
    return EventLogger(tmp_path / "logs")


@pytest.fixture
def mock_context(mock_api_client: MockApiClient, event_logger: EventLogger) -> HNContext:
    """Return a mock HN context."""
    return HNContext(api_client=mock_api_client, events=event_logger)


@pytest.fixture
def sample_item() -> Dict[str, Any]:
    """Return a sample HN item (story)."""
    return {
        "id": 12345,
        "type": "story",
        "title": "Test Story",
        "by": "testuser",
        "time": 1617235200,
        "score": 42,
        "descendants": 4,
        "url": "https://www.example.com/article",
        "kids": [1001, 1002, 1003],
    }


@pytest.fixture
def sample_comments() -> List[Dict[str, Any]]:
    """Return sample comments; 1001 has one reply, 1002 is deleted."""
    return [
        {
            "id": 1001,
            "type": "comment",
            "parent": 12345,
            "by": "user1",
            "time": 1617235300,
            "text": "Comment 1",
            "kids": [2001],
        },
        {
            "id": 1002,
            "type": "comment",
            "parent": 12345,
            "time": 1617235400,
            "deleted": True,
        },
        {
            "id": 1003,
            "type": "comment",
            "parent": 12345,
            "by": "user3",
            "time": 1617235500,
            "text": "Comment 3",
        },
        {
            "id": 2001,
            "type": "comment",
            "parent": 1001,
            "by": "user4",
            "time": 1617235600,
            "text": "Reply to comment 1",
        },
    ]


@pytest.fixture
def story_api(mock_api_client: MockApiClient, sample_item, sample_comments) -> MockApiClient:
    """Return a mock API client serving the sample story and its comments."""
    mock_api_client.add_items(sample_item, *sample_comments)
    mock_api_client.responses[f"{BASE_URL}/topstories.json"] = [sample_item["id"]]
    return mock_api_client
