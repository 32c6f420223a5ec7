"""Filtering of raw media pages by type and hashtag."""

import re
from typing import Iterable, List

from mediadisplay.utils.config import MEDIA_TYPE_IMAGE, MEDIA_TYPE_VIDEO

HASHTAG_PATTERN = re.compile(r"#(\w+)", re.UNICODE)


def extract_tags(caption: str) -> List[str]:
    """Lowercase hashtags of a caption, without the leading #."""
    if not caption:
        return []
    return [tag.lower() for tag in HASHTAG_PATTERN.findall(caption)]


def filter_media(items: Iterable[dict], type: str = "", tag: str = "") -> List[dict]:
    """
    Tag, coerce, filter and de-duplicate a page of raw media.

    When IMAGE is requested every other type is presented as an image,
    videos by their thumbnail. Items are unique by ``media_url`` in the
    result, the last duplicate wins.

    Args:
        items: Raw media dicts as returned by the API (left unmodified)
        type: Media type to keep (IMAGE, VIDEO, CAROUSEL_ALBUM), empty for all
        tag: Hashtag to keep, without #, empty for all

    Returns:
        List of filtered media dicts with a ``tags`` list
    """
    tagged = []
    for raw in items:
        item = dict(raw)
        item["tags"] = extract_tags(item.get("caption") or "")

        if type == MEDIA_TYPE_IMAGE and item.get("media_type") != MEDIA_TYPE_IMAGE:
            if item.get("media_type") == MEDIA_TYPE_VIDEO:
                item["media_url"] = item.get("thumbnail_url")
            item["media_type"] = MEDIA_TYPE_IMAGE

        tagged.append(item)

    if type:
        tagged = [item for item in tagged if item.get("media_type") == type]

    if tag:
        tag = tag.lower()
        tagged = [item for item in tagged if tag in item["tags"]]

    unique = {}
    for item in tagged:
        if not item.get("media_url"):
            continue
        unique[item["media_url"]] = item

    return list(unique.values())
