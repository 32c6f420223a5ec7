"""Conversion of raw media into NormalizedMedia, including album children."""

import html
from datetime import datetime
from typing import Optional

from mediadisplay.core.exceptions import MediaDisplayError
from mediadisplay.core.fetcher import CachedFetcher
from mediadisplay.core.media_filter import extract_tags
from mediadisplay.core.pagination import has_media, media_params
from mediadisplay.models.data_models import NormalizedMedia, RetrievalOptions
from mediadisplay.utils.config import CHILD_FIELDS, MEDIA_TYPE_ALBUM
from mediadisplay.utils.logging import get_logger

logger = get_logger(__name__)


def sanitize_caption(caption: Optional[str]) -> Optional[str]:
    """Encode HTML entities, leaving already encoded entities alone."""
    if caption is None:
        return None
    return html.escape(html.unescape(caption), quote=True)


def parse_timestamp(value: Optional[str]) -> Optional[int]:
    """Unix time of an API timestamp such as ``2024-05-01T10:00:00+0000``."""
    if not value:
        return None
    for parse in (
        lambda v: datetime.strptime(v, "%Y-%m-%dT%H:%M:%S%z"),
        lambda v: datetime.fromisoformat(v.replace("Z", "+00:00")),
    ):
        try:
            return int(parse(value).timestamp())
        except ValueError:
            continue
    logger.debug(f"Unrecognised timestamp: {value}")
    return None


def normalize_item(item: dict) -> NormalizedMedia:
    """Map one raw media dict onto the display record."""
    caption = sanitize_caption(item.get("caption"))
    tags = item["tags"] if "tags" in item else extract_tags(item.get("caption") or "")
    return NormalizedMedia(
        id=str(item.get("id", "")),
        type=item.get("media_type", ""),
        alt=caption,
        description=caption,
        src=item.get("media_url"),
        url=item.get("media_url"),
        tags=list(tags),
        created=parse_timestamp(item.get("timestamp")),
        created_str=item.get("timestamp"),
        href=item.get("permalink"),
        link=item.get("permalink"),
        poster=item.get("thumbnail_url"),
        username=item.get("username"),
    )


class MediaAssembler:
    """Builds NormalizedMedia, fetching the children of carousel albums on request."""

    def __init__(self, fetcher: CachedFetcher):
        self.fetcher = fetcher

    async def assemble(
        self,
        item: dict,
        options: RetrievalOptions,
        token: str,
        username: Optional[str] = None,
    ) -> NormalizedMedia:
        """
        Normalize a filtered media item.

        Args:
            item: Raw media dict from the filter
            options: Retrieval options, ``children`` decides child fetching
            token: Access token for the child request
            username: The account's username, part of the cache key

        Returns:
            NormalizedMedia; albums carry ``children`` when they could be fetched
        """
        media = normalize_item(item)

        if options.children and media.type == MEDIA_TYPE_ALBUM:
            media.children = await self.fetch_children(media.id, options, token, username)

        return media

    async def fetch_children(
        self,
        album_id: str,
        options: RetrievalOptions,
        token: str,
        username: Optional[str] = None,
    ) -> Optional[list]:
        """Children of an album, or None if they could not be retrieved."""
        try:
            response = await self.fetcher.fetch(
                f"{album_id}/children",
                media_params(token, options.limit, CHILD_FIELDS),
                ttl=options.children_ttl,
                username=username,
                renewed=True,
            )
        except MediaDisplayError:
            # Already logged by the fetcher, the album is still usable
            return None

        if not has_media(response):
            logger.debug(f"Album {album_id} has no children")
            return None

        # Children are never albums themselves, no recursion
        return [normalize_item(child) for child in response["data"]]
