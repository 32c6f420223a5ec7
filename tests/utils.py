# tests/utils.py
from __future__ import annotations

import io
from typing import Any
from urllib.parse import urlencode

import httpx
from PIL import Image

from mediadisplay.utils.config import GRAPH_API_URL

IG_ID = "17841400000000001"
GRAPH_HOST = httpx.URL(GRAPH_API_URL).host
GRAPH_PREFIX = httpx.URL(GRAPH_API_URL).path.rstrip("/")


def make_item(
    item_id: str,
    media_type: str = "IMAGE",
    caption: str | None = None,
    media_url: str | None = "",
    **extra: Any,
) -> dict:
    """Raw media item as the Graph API returns it."""
    item = {
        "id": item_id,
        "media_type": media_type,
        "permalink": f"https://www.instagram.com/p/{item_id}/",
        "timestamp": "2024-05-01T10:00:00+0000",
        "username": "alice",
    }
    if media_url == "":
        media_url = f"https://cdn.example.com/{item_id}.jpg"
    if media_url is not None:
        item["media_url"] = media_url
    if caption is not None:
        item["caption"] = caption
    if media_type == "VIDEO":
        item.setdefault("thumbnail_url", f"https://cdn.example.com/{item_id}_thumb.jpg")
    item.update(extra)
    return item


def page_url(after: str, ig_id: str = IG_ID) -> str:
    """A paging.next link as the API hands it out."""
    query = urlencode({"access_token": "tok123", "limit": 24, "after": after})
    return f"{GRAPH_API_URL}/{ig_id}/media?{query}"


def media_page(items: list[dict], next_after: str | None = None, ig_id: str = IG_ID) -> dict:
    page: dict[str, Any] = {"data": items, "paging": {"cursors": {"before": "b", "after": next_after or "z"}}}
    if next_after:
        page["paging"]["next"] = page_url(next_after, ig_id)
    return page


def png_bytes(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeGraphAPI:
    """
    Route table behind an httpx.MockTransport.

    Graph routes are keyed by path below the API version, plus ``?after=<cursor>``
    for paging links. Other hosts are served from ``files`` by full URL.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, Any]] = {}
        self.files: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []

    def add(self, route: str, payload: Any, status: int = 200) -> None:
        self.routes[route] = (status, payload)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @staticmethod
    def route_of(request: httpx.Request) -> str:
        path = request.url.path
        if path.startswith(GRAPH_PREFIX):
            path = path[len(GRAPH_PREFIX):]
        route = path.lstrip("/")
        after = request.url.params.get("after")
        if after:
            route += f"?after={after}"
        return route

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.host != GRAPH_HOST:
            body = self.files.get(str(request.url))
            if body is None:
                return httpx.Response(404, content=b"not found")
            return httpx.Response(200, content=body, headers={"Content-Type": "image/png"})

        route = self.route_of(request)
        if route not in self.routes:
            return httpx.Response(
                404,
                json={"error": {"type": "IGApiException", "message": f"Unknown route {route}", "code": 100}},
            )
        status, payload = self.routes[route]
        if isinstance(payload, (bytes, str)):
            return httpx.Response(status, content=payload)
        return httpx.Response(status, json=payload)

    def calls(self, route: str) -> list[httpx.Request]:
        return [request for request in self.requests if self.route_of(request) == route]
