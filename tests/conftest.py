# tests/conftest.py
from __future__ import annotations

import os
import tempfile

from cryptography.fernet import Fernet

# Must be set before mediadisplay.utils.config is imported
os.environ.setdefault("MEDIADISPLAY_HOME", tempfile.mkdtemp(prefix="mediadisplay-tests-"))
os.environ.setdefault("MEDIADISPLAY_SECRET_KEY", Fernet.generate_key().decode())

from datetime import timedelta  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402

from mediadisplay.core.app_service import MediaService  # noqa: E402
from mediadisplay.core.graph_client import GraphClient  # noqa: E402
from mediadisplay.core.notifier import AdminNotifier  # noqa: E402
from mediadisplay.models.schema import utcnow  # noqa: E402
from mediadisplay.storage.cache import CacheStore  # noqa: E402
from mediadisplay.storage.database import close_db, init_db, session_scope  # noqa: E402
from mediadisplay.storage.repository import AccountRepository  # noqa: E402
from tests.utils import IG_ID, FakeGraphAPI  # noqa: E402


@pytest.fixture
async def session_factory(tmp_path: Path):
    factory = await init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    yield factory
    await close_db()


@pytest.fixture
def graph() -> FakeGraphAPI:
    return FakeGraphAPI()


@pytest.fixture
def sent_mail() -> list:
    return []


@pytest.fixture
async def service(session_factory, graph, sent_mail):
    cache = CacheStore(session_factory)
    notifier = AdminNotifier(
        cache,
        admin_email="admin@example.com",
        http_host="www.example.com",
        sender=sent_mail.append,
    )
    svc = MediaService(
        session_factory=session_factory,
        client=GraphClient(transport=graph.transport()),
        cache=cache,
        notifier=notifier,
    )
    yield svc
    await svc.aclose()


@pytest.fixture
def store_account(session_factory):
    """Factory storing an account directly, bypassing the API check."""

    async def _factory(
        username: str = "alice",
        token: str = "tok123",
        user_id: str = IG_ID,
        renews_in_days: float | None = None,
    ):
        async with session_scope(session_factory) as session:
            account = await AccountRepository.upsert(session, {
                "username": username,
                "token": token,
                "user_id": user_id,
                "account_type": "MEDIA_CREATOR",
                "media_count": 10,
            })
            if renews_in_days is not None:
                account.token_renews = utcnow() + timedelta(days=renews_in_days)
        return account

    return _factory


@pytest.fixture
async def alice(store_account):
    return await store_account()
