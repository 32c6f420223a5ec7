"""Page-by-page collection of a user's media."""

from typing import Dict, List, Optional

from mediadisplay.core.exceptions import MediaDisplayError, NoData
from mediadisplay.core.fetcher import CachedFetcher
from mediadisplay.core.media_filter import filter_media
from mediadisplay.models.data_models import MediaPage, PageCursor, RetrievalOptions
from mediadisplay.utils.config import MEDIA_FIELDS
from mediadisplay.utils.logging import get_logger

logger = get_logger(__name__)


def has_media(response: Optional[dict]) -> bool:
    """Does the response carry a non-empty ``data`` list?"""
    if not isinstance(response, dict):
        return False
    data = response.get("data")
    return isinstance(data, list) and len(data) > 0


def next_link(response: dict) -> Optional[str]:
    return (response.get("paging") or {}).get("next")


def media_params(token: str, limit: int, fields: List[str] = MEDIA_FIELDS) -> dict:
    return {
        "access_token": token,
        "fields": ",".join(fields),
        "limit": limit,
    }


def _merge(items: List[dict], more: List[dict]) -> List[dict]:
    """Append a filtered page, keeping items unique by media URL across pages."""
    unique = {item["media_url"]: item for item in items}
    for item in more:
        unique[item["media_url"]] = item
    return list(unique.values())


class PaginationAccumulator:
    """
    Walks the cursor-based media feed until enough items pass the filter.

    The walk starts at the user's media root, or at a cursor handed back by
    a previous call. It stops when the target count is met, the feed runs
    out, a page fails, or ``max_pages`` pages have been read. Without a
    page ceiling a restrictive filter can cost many round trips.
    """

    def __init__(self, fetcher: CachedFetcher):
        self.fetcher = fetcher

    async def accumulate(
        self,
        ig_id: str,
        token: str,
        options: RetrievalOptions,
        cursor: Optional[PageCursor] = None,
        username: Optional[str] = None,
    ) -> MediaPage:
        """
        Collect filtered raw media.

        Args:
            ig_id: Instagram user ID
            token: Access token
            options: Retrieval options (count, limit, type, tag, continuation...)
            cursor: Where a previous call in the same context stopped
            username: The account's username, part of the cache key

        Returns:
            MediaPage with at most ``options.target`` items and, in
            continuation mode, the cursor to pass to the next call

        Raises:
            NoData: If the first page holds no media
            RemoteAPIError, RemoteRequestFailed: If the first page fails
        """
        if cursor is not None and cursor.exhausted:
            logger.debug(f"Media feed exhausted for {username or ig_id}, no request made")
            return MediaPage(items=[], cursor=cursor)

        if cursor is not None and cursor.next_url:
            response = await self.fetcher.fetch(cursor.next_url, username=username)
        else:
            response = await self.fetcher.fetch(
                f"{ig_id}/media",
                media_params(token, options.limit),
                username=username,
                renewed=True,
            )

        if not has_media(response):
            raise NoData(f"No media returned for {username or ig_id}")

        items = filter_media(response["data"], options.type, options.tag)
        target = options.target
        next_url = next_link(response)
        pages = 1

        while next_url and len(items) < target:
            if options.max_pages and pages >= options.max_pages:
                logger.info(f"Stopped after {pages} pages with {len(items)}/{target} items")
                break

            try:
                response = await self.fetcher.fetch(next_url, username=username)
            except MediaDisplayError as e:
                # The failed page stays the cursor so a later call can retry it
                logger.warning(f"Media walk stopped at page {pages + 1}: {e}")
                break

            pages += 1
            if not has_media(response):
                next_url = None
                break

            items = _merge(items, filter_media(response["data"], options.type, options.tag))
            next_url = next_link(response)

        logger.debug(f"Collected {len(items)} items from {pages} page(s)")

        new_cursor = None
        if options.continuation:
            new_cursor = PageCursor(next_url=next_url) if next_url else PageCursor.exhausted_marker()

        return MediaPage(items=items[:target], cursor=new_cursor)


class CursorStore:
    """
    Cursor slots keyed by caller context (a page id, a conversation id...).

    Distinct contexts never interfere. Within one context the last write
    wins, one caller is expected to drive a context's "load more" at a time.
    """

    def __init__(self):
        self._slots: Dict[str, PageCursor] = {}

    def get(self, context: str) -> Optional[PageCursor]:
        return self._slots.get(context)

    def set(self, context: str, cursor: Optional[PageCursor]) -> None:
        if cursor is None:
            self.clear(context)
        else:
            self._slots[context] = cursor

    def clear(self, context: str) -> None:
        self._slots.pop(context, None)
