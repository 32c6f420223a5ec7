# tests/test_pagination.py
from __future__ import annotations

import pytest

from mediadisplay.core.exceptions import NoData
from mediadisplay.core.pagination import CursorStore, has_media, next_link
from mediadisplay.models.data_models import PageCursor, RetrievalOptions
from tests.utils import IG_ID, media_page, make_item, page_url

ROOT = f"{IG_ID}/media"


def _page(after: str) -> str:
    return f"{ROOT}?after={after}"


async def test_walks_pages_until_the_count_is_met(service, graph) -> None:
    graph.add(ROOT, media_page([
        make_item("1", "VIDEO"),
        make_item("2", "IMAGE"),
        make_item("3", "VIDEO"),
    ], next_after="p2"))
    graph.add(_page("p2"), media_page([make_item("4", "VIDEO"), make_item("5", "VIDEO")], next_after="p3"))

    page = await service.accumulator.accumulate(IG_ID, "tok123", RetrievalOptions(count=4, type="VIDEO"))

    assert [item["id"] for item in page.items] == ["1", "3", "4", "5"]
    assert len(graph.calls(_page("p2"))) == 1
    assert graph.calls(_page("p3")) == []
    assert page.cursor is None


async def test_last_page_is_kept_and_walk_ends_without_next_link(service, graph) -> None:
    graph.add(ROOT, media_page([make_item("1", "IMAGE")], next_after="p2"))
    graph.add(_page("p2"), media_page([make_item("2", "VIDEO")]))

    page = await service.accumulator.accumulate(
        IG_ID, "tok123", RetrievalOptions(count=5, type="VIDEO", continuation=True)
    )

    assert [item["id"] for item in page.items] == ["2"]
    assert page.cursor == PageCursor.exhausted_marker()


async def test_result_is_truncated_to_the_target(service, graph) -> None:
    graph.add(ROOT, media_page([make_item(str(i)) for i in range(6)], next_after="p2"))

    page = await service.accumulator.accumulate(
        IG_ID, "tok123", RetrievalOptions(count=2, continuation=True)
    )

    assert [item["id"] for item in page.items] == ["0", "1"]
    assert page.cursor == PageCursor(next_url=page_url("p2"))
    assert graph.calls(_page("p2")) == []


async def test_exhausted_cursor_makes_no_request(service, graph) -> None:
    page = await service.accumulator.accumulate(
        IG_ID, "tok123", RetrievalOptions(count=4, continuation=True),
        cursor=PageCursor.exhausted_marker(),
    )

    assert page.items == []
    assert page.cursor.exhausted
    assert graph.requests == []


async def test_cursor_resumes_from_its_link(service, graph) -> None:
    graph.add(_page("p2"), media_page([make_item("7")]))

    page = await service.accumulator.accumulate(
        IG_ID, "tok123", RetrievalOptions(count=4, continuation=True),
        cursor=PageCursor(next_url=page_url("p2")),
    )

    assert [item["id"] for item in page.items] == ["7"]
    assert graph.calls(ROOT) == []


async def test_empty_first_page_raises_no_data(service, graph) -> None:
    graph.add(ROOT, {"data": []})

    with pytest.raises(NoData):
        await service.accumulator.accumulate(IG_ID, "tok123", RetrievalOptions())


async def test_page_ceiling_stops_a_fruitless_walk(service, graph) -> None:
    graph.add(ROOT, media_page([make_item("1")], next_after="p2"))
    graph.add(_page("p2"), media_page([make_item("2")], next_after="p3"))
    graph.add(_page("p3"), media_page([make_item("3")], next_after="p4"))

    page = await service.accumulator.accumulate(
        IG_ID, "tok123", RetrievalOptions(count=4, type="VIDEO", max_pages=2, continuation=True)
    )

    assert page.items == []
    assert len(graph.calls(_page("p2"))) == 1
    assert graph.calls(_page("p3")) == []
    assert page.cursor == PageCursor(next_url=page_url("p3"))


async def test_failed_page_mid_walk_returns_what_was_gathered(service, graph) -> None:
    graph.add(ROOT, media_page([make_item("1", "VIDEO"), make_item("2", "VIDEO")], next_after="p2"))
    graph.add(_page("p2"), {"detail": "unavailable"}, status=500)

    page = await service.accumulator.accumulate(
        IG_ID, "tok123", RetrievalOptions(count=4, type="VIDEO", continuation=True)
    )

    assert [item["id"] for item in page.items] == ["1", "2"]
    # The failed page is retried by the next call in the context
    assert page.cursor == PageCursor(next_url=page_url("p2"))


async def test_empty_page_mid_walk_exhausts_the_feed(service, graph) -> None:
    graph.add(ROOT, media_page([make_item("1")], next_after="p2"))
    graph.add(_page("p2"), {"data": [], "paging": {}})

    page = await service.accumulator.accumulate(
        IG_ID, "tok123", RetrievalOptions(count=4, continuation=True)
    )

    assert [item["id"] for item in page.items] == ["1"]
    assert page.cursor.exhausted


async def test_duplicates_across_pages_are_dropped(service, graph) -> None:
    shared = "https://cdn.example.com/shared.jpg"
    graph.add(ROOT, media_page([make_item("1", media_url=shared)], next_after="p2"))
    graph.add(_page("p2"), media_page([make_item("2", media_url=shared), make_item("3")]))

    page = await service.accumulator.accumulate(IG_ID, "tok123", RetrievalOptions(count=4))

    assert [item["id"] for item in page.items] == ["2", "3"]


def test_response_helpers() -> None:
    assert has_media({"data": [{"id": "1"}]})
    assert not has_media({"data": []})
    assert not has_media({"paging": {}})
    assert not has_media(None)
    assert next_link({"paging": {"next": "x"}}) == "x"
    assert next_link({"data": []}) is None


def test_cursor_store_keeps_contexts_apart() -> None:
    store = CursorStore()
    store.set("page-1", PageCursor(next_url="a"))
    store.set("page-2", PageCursor.exhausted_marker())

    assert store.get("page-1").next_url == "a"
    assert store.get("page-2").exhausted

    store.set("page-1", None)
    assert store.get("page-1") is None
    store.clear("page-2")
    store.clear("unknown")
    assert store.get("page-2") is None
