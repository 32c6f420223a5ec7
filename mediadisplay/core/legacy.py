"""
Compatibility with the predecessor Instagram Feed integration.

Sites migrating from the old Instagram API integration call
``get_recent_media`` and friends and expect its flat record layout.
Fields the Graph API no longer provides (likes, comments, location...)
are present with null values. The old call conventions, where one
argument could be a bool, a string or a dict, are accepted here and
nowhere else.
"""

import html
import io
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from mediadisplay.core.app_service import MediaService
from mediadisplay.core.exceptions import MediaDisplayError
from mediadisplay.models.data_models import NormalizedMedia, RetrievalOptions
from mediadisplay.utils.config import MEDIA_TYPE_IMAGE
from mediadisplay.utils.logging import get_logger, log_error

logger = get_logger(__name__)


@dataclass
class LegacyOptions:
    get_size: bool = False  # Downloads every image, slow
    limit: Optional[int] = None  # Default: the service's image count
    tag: str = ""


LegacyArg = Union[str, bool, dict, LegacyOptions, None]


def coerce_legacy_args(username: Any, options: LegacyArg) -> Tuple[Optional[str], LegacyOptions]:
    """
    Turn the predecessor's overloaded arguments into a username and LegacyOptions.

    ``get_recent_media(True)`` asks for sizes, ``get_recent_media({"tag": "x"})``
    passes options in the username position, and a string in the options
    position is a tag.

    Raises:
        TypeError: For argument types the predecessor never accepted
    """
    if username is not None and not isinstance(username, str):
        if isinstance(username, bool):
            options = {"get_size": username}
        elif isinstance(username, (dict, LegacyOptions)):
            options = username
        else:
            raise TypeError(f"Unsupported username argument: {username!r}")
        username = None

    if isinstance(options, LegacyOptions):
        return username, options
    if options is None:
        options = {}
    elif isinstance(options, bool):
        options = {"get_size": options}
    elif isinstance(options, str):
        options = {"tag": options}
    elif not isinstance(options, dict):
        raise TypeError(f"Unsupported options argument: {options!r}")

    limit = options.get("limit")
    return username, LegacyOptions(
        get_size=bool(options.get("get_size", options.get("getSize", False))),
        limit=int(limit) if limit else None,
        tag=str(options.get("tag") or ""),
    )


class LegacyFeedAdapter:
    """Predecessor-compatible views over MediaService."""

    def __init__(self, service: MediaService):
        self.service = service

    async def get_recent_media(self, username: Any = None, options: LegacyArg = None) -> List[dict]:
        """
        Get the most recent images in the predecessor's record layout.

        Args:
            username: Instagram username, or options in the old shortcut forms
            options: LegacyOptions, a dict, a bool (get_size) or a str (tag)

        Returns:
            List of legacy media dicts
        """
        username, legacy = coerce_legacy_args(username, options)
        limit = legacy.limit or self.service.image_count

        items = await self.service.get_media(username, RetrievalOptions(
            limit=limit,
            type=MEDIA_TYPE_IMAGE,
            tag=legacy.tag,
            children=False,
        ))
        profile = await self.service.get_profile(username)

        count = min(self.service.image_count, len(items)) if self.service.image_count else len(items)
        data = []
        for media in items[:count]:
            data.append(await self._to_legacy(media, profile, legacy.get_size))
        return data

    async def get_recent_media_by_tag(self, tag: str, username: Any = None, options: LegacyArg = None) -> List[dict]:
        """
        Get recent images carrying a hashtag.

        The Graph API cannot search by tag, so the feed is read page by page
        until enough matches are found, up to the tag search page ceiling.
        Slow: avoid on busy pages.
        """
        username, legacy = coerce_legacy_args(username, options)
        legacy.tag = tag
        legacy.limit = self.service.image_count
        return await self.get_recent_media(username, legacy)

    async def get_user_id_by_username(self, username: str = "") -> int:
        return await self.service.get_user_id(username or None)

    async def get_recent_comments(self, media: Any = None) -> list:
        log_error(logger, "Sorry, comments are not accessible using the Instagram Media Display.")
        return []

    async def _to_legacy(self, media: NormalizedMedia, profile: dict, get_size: bool) -> dict:
        user = {
            "id": profile.get("user_id"),
            "full_name": media.username or profile.get("username"),
            "profile_picture": profile.get("profile_picture_url"),
            "username": media.username or profile.get("username"),
        }

        image = {"url": media.src, "width": None, "height": None}
        if get_size and media.src:
            image["width"], image["height"] = await self.get_image_size(media.src)

        caption = html.unescape(media.description) if media.description is not None else None

        return {
            "id": media.id,
            "user": user,
            "images": {
                "thumbnail": image,
                "low_resolution": image,
                "standard_resolution": image,
            },
            "created_time": media.created,
            "caption": {
                "id": None,
                "text": caption,
                "created_time": media.created,
                "from": user,
            },
            "user_has_liked": None,
            "likes": {"count": None},
            "tags": media.tags,
            "filter": None,
            "comments": {"count": None},
            "type": media.type.lower(),
            "link": media.link,
            "location": {
                "latitude": None,
                "longitude": None,
                "name": None,
                "id": None,
            },
            "attribution": None,
            "users_in_photo": None,
        }

    async def get_image_size(self, url: str) -> Tuple[Optional[int], Optional[int]]:
        """Width and height of a remote image, (None, None) if unreadable."""
        try:
            content = await self.service.client.download(url)
            with Image.open(io.BytesIO(content)) as img:
                return img.size
        except (MediaDisplayError, UnidentifiedImageError) as e:
            logger.warning(f"Could not read image size for {url}: {e}")
            return None, None
