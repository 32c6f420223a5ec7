"""Data models for retrieved Instagram media."""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from mediadisplay.utils.config import DEFAULT_PAGE_LIMIT

OUTPUT_OBJECT = "object"
OUTPUT_DICT = "dict"
OUTPUT_JSON = "json"


@dataclass
class NormalizedMedia:
    """A media item ready for display."""
    id: str
    type: str
    alt: Optional[str] = None
    description: Optional[str] = None
    src: Optional[str] = None
    url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    created: Optional[int] = None  # Unix timestamp
    created_str: Optional[str] = None  # As returned by the API
    href: Optional[str] = None
    link: Optional[str] = None
    poster: Optional[str] = None  # VIDEO only
    children: Optional[List["NormalizedMedia"]] = None  # CAROUSEL_ALBUM only, when requested
    username: Optional[str] = None  # Owner, not part of the dict/JSON output


@dataclass(frozen=True)
class PageCursor:
    """
    Where the next call should resume.

    ``None`` in place of a cursor means no pagination has happened yet,
    an exhausted cursor means the remote feed has no further pages.
    """
    next_url: Optional[str] = None
    exhausted: bool = False

    @classmethod
    def exhausted_marker(cls) -> "PageCursor":
        return cls(next_url=None, exhausted=True)


@dataclass
class MediaPage:
    """Raw items collected by one accumulation and the cursor to keep."""
    items: List[dict] = field(default_factory=list)
    cursor: Optional[PageCursor] = None


@dataclass
class RetrievalOptions:
    """Options for a media retrieval."""
    count: int = 0  # Target number of items, 0 = bounded by the page size
    limit: int = DEFAULT_PAGE_LIMIT  # Page size requested from the API
    type: str = ""
    tag: str = ""
    children: Union[bool, int] = True  # An int is the cache TTL for child requests
    continuation: bool = False  # "Load more" mode, resumes from the context's cursor
    context: str = ""  # Cursor slot key, e.g. the page id
    max_pages: Optional[int] = None
    output: str = OUTPUT_OBJECT

    @property
    def target(self) -> int:
        return self.count or self.limit

    @property
    def children_ttl(self) -> Optional[int]:
        if isinstance(self.children, bool):
            return None
        return self.children
