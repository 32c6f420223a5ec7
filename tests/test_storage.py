# tests/test_storage.py
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import text

from mediadisplay.core.auth_helpers import decrypt_token, encrypt_token
from mediadisplay.models.schema import utcnow
from mediadisplay.storage.cache import CacheStore
from mediadisplay.storage.database import close_db, configure, get_engine, init_db, session_scope
from mediadisplay.storage.repository import AccountRepository
from mediadisplay.utils.config import ACCOUNT_TABLE
from tests.utils import IG_ID


async def test_token_is_encrypted_at_rest(session_factory, alice) -> None:
    async with session_scope(session_factory) as session:
        raw = (await session.execute(text(f"SELECT token FROM {ACCOUNT_TABLE}"))).scalar_one()
        account = await AccountRepository.get(session, "alice")

    assert raw != "tok123"
    assert decrypt_token(raw) == "tok123"
    assert account.token == "tok123"


async def test_lookup_by_username_user_id_and_default(session_factory, store_account) -> None:
    await store_account("alice", user_id=IG_ID)
    await store_account("bob", user_id="17841400000000002")

    async with session_scope(session_factory) as session:
        by_name = await AccountRepository.get(session, "bob")
        by_id = await AccountRepository.get(session, int(IG_ID))
        default = await AccountRepository.get(session)
        missing = await AccountRepository.get(session, "carol")

    assert by_name.username == "bob"
    assert by_id.username == "alice"
    assert default.username == "alice"
    assert missing is None


async def test_delete_reports_whether_a_row_was_removed(session_factory, alice) -> None:
    async with session_scope(session_factory) as session:
        assert await AccountRepository.delete(session, "alice") is True
        assert await AccountRepository.delete(session, "alice") is False


async def test_migration_adds_token_renews_a_day_ahead(tmp_path) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'legacy.db'}"
    configure(url)
    async with get_engine().begin() as conn:
        await conn.execute(text(
            f"CREATE TABLE {ACCOUNT_TABLE} ("
            "username VARCHAR(32) NOT NULL PRIMARY KEY, "
            "token TEXT NOT NULL, "
            "user_id VARCHAR(32) NOT NULL, "
            "account_type VARCHAR(32) NOT NULL, "
            "media_count INTEGER NOT NULL, "
            "modified DATETIME NOT NULL)"
        ))
        await conn.execute(
            text(
                f"INSERT INTO {ACCOUNT_TABLE} (username, token, user_id, account_type, media_count, modified) "
                "VALUES (:username, :token, :user_id, 'PERSONAL', 3, '2024-01-01 00:00:00.000000')"
            ),
            {"username": "alice", "token": encrypt_token("old-token"), "user_id": IG_ID},
        )
    await close_db()

    factory = await init_db(url)
    try:
        async with session_scope(factory) as session:
            account = await AccountRepository.get(session, "alice")
    finally:
        await close_db()

    assert account.token == "old-token"
    assert abs(account.token_renews - (utcnow() + timedelta(days=1))) < timedelta(minutes=1)


async def test_cache_computes_once_until_expiry(session_factory) -> None:
    cache = CacheStore(session_factory)
    calls = []

    async def compute():
        calls.append(1)
        return {"data": [1, 2, 3]}

    first = await cache.get_or_compute("feed", compute, ttl=60)
    second = await cache.get_or_compute("feed", compute, ttl=60)

    assert first == second == {"data": [1, 2, 3]}
    assert len(calls) == 1

    # An expired entry is computed again
    await cache.set("feed", {"data": []}, ttl=-1)
    third = await cache.get_or_compute("feed", compute, ttl=60)
    assert third == {"data": [1, 2, 3]}
    assert len(calls) == 2


async def test_cache_does_not_store_failed_computations(session_factory) -> None:
    cache = CacheStore(session_factory)

    async def compute():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await cache.get_or_compute("feed", compute)

    assert await cache.get("feed") is None


async def test_cache_miss_purges_expired_entries(session_factory) -> None:
    cache = CacheStore(session_factory)
    for after in ("a", "b", "c"):
        await cache.set(f"page-{after}", {"data": [after]}, ttl=-1)
    await cache.set("live", {"data": []}, ttl=60)

    async def compute():
        return {"data": [1]}

    await cache.get_or_compute("fresh", compute, ttl=60)

    async with session_scope(session_factory) as session:
        names = (await session.execute(text("SELECT name FROM instagram_media_display_cache"))).scalars().all()
    assert sorted(names) == ["fresh", "live"]
