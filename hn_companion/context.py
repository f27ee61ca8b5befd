from typing import Any, Dict

from hn_companion.config import load_config
from hn_companion.events import EventLogger
from hn_companion.hn import HNContext, RequestsClient


class HNContextProvider:
    """
    Service locator/provider for Hacker News contexts.
    Follows the patterns in "Architecture Patterns with Python".
    """

    @staticmethod
    def get_default_context(config_path: str = "") -> HNContext:
        """
        Factory method to create a default context with standard configuration.

        Args:
            config_path: Path to the configuration file. If not provided,
                         the function will search for a config file in standard locations.

        Returns:
            A configured HNContext
        """
        return HNContextProvider.get_context_from_config(load_config(config_path))

    @staticmethod
    def get_context_from_config(config: Dict[str, Any]) -> HNContext:
        """
        Create a context from an already loaded configuration dictionary.

        Args:
            config: Configuration as returned by ``load_config``

        Returns:
            A configured HNContext
        """
        api = config["api"]
        events = config["events"]

        return HNContext(
            api_client=RequestsClient(timeout=float(api["timeout"])),
            events=EventLogger(events["directory"], enabled=bool(events["enabled"])),
            request_delay=float(api["request_delay"]),
            base_url=api["base_url"],
            concurrent_comments=bool(api["concurrent_comments"]),
        )

    @staticmethod
    def get_context_from_params(
        request_delay: float = 0.0,
        base_url: str = "https://hacker-news.firebaseio.com/v0",
        timeout: float = 10.0,
        concurrent_comments: bool = False,
        log_events: bool = False,
    ) -> HNContext:
        """
        Alternative factory method that creates a context using parameter values directly.

        Args:
            request_delay: Delay between API requests
            base_url: Base URL for the Hacker News API
            timeout: HTTP timeout in seconds
            concurrent_comments: Resolve sibling comments concurrently
            log_events: Whether to write a session event log

        Returns:
            A configured HNContext
        """
        return HNContext(
            api_client=RequestsClient(timeout=timeout),
            events=EventLogger(enabled=log_events),
            request_delay=request_delay,
            base_url=base_url,
            concurrent_comments=concurrent_comments,
        )
