"""Output shapes for NormalizedMedia, chosen by the caller."""

import json
from typing import Iterable, List

from mediadisplay.models.data_models import NormalizedMedia

# Attribute name -> key in the dict/JSON shape
_KEYS = [
    ("id", "id"),
    ("type", "type"),
    ("alt", "alt"),
    ("description", "description"),
    ("src", "src"),
    ("url", "url"),
    ("tags", "tags"),
    ("created", "created"),
    ("created_str", "createdStr"),
    ("href", "href"),
    ("link", "link"),
    ("poster", "poster"),
]


def to_dict(media: NormalizedMedia) -> dict:
    """Plain dict of a media item; unset fields are left out."""
    data = {}
    for attribute, key in _KEYS:
        value = getattr(media, attribute)
        if value is not None:
            data[key] = value
    if media.children is not None:
        data["children"] = [to_dict(child) for child in media.children]
    return data


def to_dicts(items: Iterable[NormalizedMedia]) -> List[dict]:
    return [to_dict(media) for media in items]


def to_json(items: Iterable[NormalizedMedia]) -> str:
    """
    JSON array of media items.

    Lone surrogates in captions are replaced rather than failing the encode.
    """
    encoded = json.dumps(to_dicts(items), ensure_ascii=False)
    return encoded.encode("utf-8", errors="replace").decode("utf-8")
