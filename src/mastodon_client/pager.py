"""
Timeline pagination for spike-mastodon.

Mastodon paginates timelines with Link headers. Mastodon.py attaches those
links to each returned page, and fetch_next()/fetch_previous() follow them.
TimelinePager keeps a cursor on the most recently fetched page so that
successive calls keep walking in the requested direction, and a "previous"
call after several "next" calls steps back from where the walk currently is.
"""
import logging
from typing import Any, Dict, List, Optional

from mastodon import Mastodon, MastodonError

from .errors import MastodonClientError

logger = logging.getLogger(__name__)


class TimelinePager:
    """Cursor over a paginated Mastodon timeline.

    Attributes:
        initial_items: Statuses of the first page
        current: Page the cursor sits on; its pagination links drive the next fetch

    Example:
        >>> pager = TimelinePager(api, api.timeline_home())
        >>> newer_or_older = pager.next_page()
        >>> TimelinePager.uris(newer_or_older)
        ['https://mastodon.social/users/alice/statuses/1', ...]
    """

    def __init__(self, api: Mastodon, first_page: List[Dict[str, Any]]):
        self.api = api
        self.initial_items = list(first_page)
        self.current = first_page

    def next_page(self) -> List[Dict[str, Any]]:
        """Fetch the page after the cursor.

        Returns:
            Statuses of the next page, or an empty list if there is none.
            The cursor only moves when a page was returned.

        Raises:
            MastodonClientError: If the request fails
        """
        try:
            page = self.api.fetch_next(self.current)
        except MastodonError as e:
            raise MastodonClientError(f"Couldn't get next page: {e}") from e
        return self._advance(page, "next")

    def prev_page(self) -> List[Dict[str, Any]]:
        """Fetch the page before the cursor.

        Returns:
            Statuses of the previous page, or an empty list if there is none.
            The cursor only moves when a page was returned.

        Raises:
            MastodonClientError: If the request fails
        """
        try:
            page = self.api.fetch_previous(self.current)
        except MastodonError as e:
            raise MastodonClientError(f"Couldn't get prev page: {e}") from e
        return self._advance(page, "prev")

    def _advance(self, page: Optional[List[Dict[str, Any]]], direction: str) -> List[Dict[str, Any]]:
        if not page:
            logger.debug(f"No {direction} page available")
            return []
        self.current = page
        logger.debug(f"Fetched {direction} page with {len(page)} statuses")
        return list(page)

    @staticmethod
    def uris(page: List[Dict[str, Any]]) -> List[str]:
        """Return the status URIs of a page, in page order."""
        return [status["uri"] for status in page]
