import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import select
from peer_support.api import deps
from peer_support.api.v1.api import api_router
from peer_support.core.config import settings
from peer_support.db.init_db import create_tables, seed_defaults
from peer_support.db.session import get_db
from peer_support.main import register_exception_handlers
from peer_support.models.group import SupportGroup, GroupMember
from peer_support.services.change_feed import ChangeFeed
from peer_support.services.message_store import MessageStoreClient

def make_engine(db_path):
    # NullPool gives every session its own connection to the file database
    return create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)

def make_sessions(engine):
    return async_sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

def build_app(engine, sessions, feed: ChangeFeed, session=None) -> FastAPI:
    """
    Fresh app wired to the given database and change feed.

    When a session is given, every request shares it; otherwise each request
    opens its own.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await create_tables(engine)
        async with sessions() as s:
            await seed_defaults(s)
        yield

    new_app = FastAPI(lifespan=lifespan)
    new_app.include_router(api_router, prefix=settings.API_V1_STR)
    register_exception_handlers(new_app)

    async def override_get_db():
        if session is not None:
            yield session
        else:
            async with sessions() as s:
                yield s

    new_app.dependency_overrides[get_db] = override_get_db
    new_app.dependency_overrides[deps.get_change_feed] = lambda: feed
    new_app.dependency_overrides[deps.get_message_store] = lambda: MessageStoreClient(sessions, feed)
    return new_app

async def create_user(client: AsyncClient, email: str = None, password: str = "password123"):
    if not email:
        email = f"user_{uuid.uuid4().hex[:8]}@my.fisk.edu"

    register_data = {
        "email": email,
        "password": password,
        "first_name": "Test",
        "last_name": "User",
        "student_id": f"S{uuid.uuid4().int % 10000000:07d}",
        "alias": "tester"
    }

    resp = await client.post(f"{settings.API_V1_STR}/auth/signup", json=register_data)
    assert resp.status_code == 200, resp.text
    register_data["id"] = resp.json()["data"]["id"]
    return register_data

async def get_auth_headers(client: AsyncClient, email: str, password: str = "password123"):
    resp = await client.post(f"{settings.API_V1_STR}/auth/login", json={
        "email": email,
        "password": password
    })
    assert resp.status_code == 200
    token = resp.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}

async def create_user_and_get_headers(client: AsyncClient):
    user_data = await create_user(client)
    headers = await get_auth_headers(client, user_data["email"], user_data["password"])
    return user_data, headers

async def get_group_id(client: AsyncClient, headers: dict, title: str = "Academics") -> str:
    resp = await client.get(f"{settings.API_V1_STR}/groups/", headers=headers)
    assert resp.status_code == 200
    return next(g["id"] for g in resp.json()["data"] if g["title"] == title)

async def join_group(client: AsyncClient, headers: dict, group_id: str):
    resp = await client.post(f"{settings.API_V1_STR}/groups/{group_id}/terms", headers=headers)
    assert resp.status_code == 200, resp.text
    resp = await client.post(f"{settings.API_V1_STR}/groups/{group_id}/join", headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]

async def get_group(session: AsyncSession, title: str = "Academics") -> SupportGroup:
    result = await session.execute(select(SupportGroup).where(SupportGroup.title == title))
    return result.scalar_one()

async def add_member(session: AsyncSession, group_id: uuid.UUID, user_id: uuid.UUID, joined_date: datetime | None) -> GroupMember:
    member = GroupMember(group_id=group_id, user_id=user_id, terms_accepted_at=joined_date, joined_date=joined_date)
    session.add(member)
    await session.commit()
    return member
