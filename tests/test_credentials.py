# tests/test_credentials.py
from __future__ import annotations

from datetime import timedelta

import pytest

from mediadisplay.core.exceptions import NotAuthorized
from mediadisplay.models.schema import utcnow
from tests.utils import IG_ID, media_page, make_item

REFRESHED = {"access_token": "tok456", "token_type": "bearer", "expires_in": 5183944}


async def test_token_inside_renewal_window_is_refreshed_once(service, graph, store_account) -> None:
    await store_account(renews_in_days=5)
    graph.add("refresh_access_token", REFRESHED)

    token = await service.credentials.resolve("alice")

    assert token == "tok456"
    assert service.credentials.refresh_count == 1
    calls = graph.calls("refresh_access_token")
    assert len(calls) == 1
    assert calls[0].url.params["grant_type"] == "ig_refresh_token"
    assert calls[0].url.params["access_token"] == "tok123"

    account = await service.get_account("alice")
    assert account["token"] == "tok456"
    assert abs(account["token_renews"] - (utcnow() + timedelta(days=60))) < timedelta(minutes=1)

    # Renewed, so the next resolve does not refresh again
    assert await service.credentials.resolve("alice") == "tok456"
    assert len(graph.calls("refresh_access_token")) == 1
    assert service.credentials.refresh_count == 1


async def test_token_outside_renewal_window_is_left_alone(service, graph, store_account) -> None:
    await store_account(renews_in_days=30)
    graph.add("refresh_access_token", REFRESHED)

    assert await service.credentials.resolve("alice") == "tok123"
    assert graph.calls("refresh_access_token") == []
    assert service.credentials.refresh_count == 0


async def test_failed_refresh_keeps_the_current_token(service, graph, store_account) -> None:
    await store_account(renews_in_days=2)
    graph.add("refresh_access_token", {"token_type": "bearer"})

    assert await service.credentials.resolve("alice") == "tok123"

    account = await service.get_account("alice")
    assert account["token"] == "tok123"
    assert service.credentials.refresh_count == 0


async def test_every_media_request_renews_a_due_token(service, graph, store_account) -> None:
    await store_account(renews_in_days=1)
    graph.add("refresh_access_token", REFRESHED)
    graph.add(f"{IG_ID}/media", media_page([make_item("1")]))

    items = await service.get_images("alice")

    assert len(items) == 1
    assert len(graph.calls("refresh_access_token")) == 1
    assert graph.calls(f"{IG_ID}/media")[0].url.params["access_token"] == "tok456"


async def test_unknown_user_is_not_authorized(service) -> None:
    with pytest.raises(NotAuthorized):
        await service.credentials.resolve("nobody")
