import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from unittest.mock import patch
from httpx import AsyncClient, ASGITransport
from peer_support.db.init_db import create_tables, seed_defaults
from peer_support.core.rate_limit import limiter
from peer_support.services.change_feed import ChangeFeed
from peer_support.services.message_store import MessageStoreClient
from tests.utils import build_app, make_engine, make_sessions

# Disable rate limiting globally for tests
limiter.enabled = False

@pytest.fixture(autouse=True)
def email_task():
    with patch("peer_support.api.v1.endpoints.auth.send_email_task") as task:
        yield task

@pytest.fixture
async def engine(tmp_path):
    engine = make_engine(tmp_path / "test.db")
    await create_tables(engine)
    yield engine
    await engine.dispose()

@pytest.fixture
def sessions(engine):
    return make_sessions(engine)

@pytest.fixture
async def session(sessions):
    async with sessions() as session:
        await seed_defaults(session)
        yield session

@pytest.fixture
def feed():
    return ChangeFeed()

@pytest.fixture
def store(sessions, feed):
    return MessageStoreClient(sessions, feed)

@pytest.fixture
async def client(engine, sessions, feed, session):
    new_app = build_app(engine, sessions, feed, session=session)
    async with AsyncClient(transport=ASGITransport(app=new_app), base_url="http://test") as c:
        yield c
