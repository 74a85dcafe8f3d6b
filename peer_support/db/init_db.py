import logging
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlmodel import SQLModel, select

from peer_support.models.user import User  # noqa: F401
from peer_support.models.group import SupportGroup, GroupMember, Professional  # noqa: F401
from peer_support.models.chat import MessageDocument  # noqa: F401

logger = logging.getLogger(__name__)

DEFAULT_GROUPS = [
    ("Depression", "A group to share and support individuals facing depression."),
    ("Academics", "A group to discuss academic-related stress and concerns."),
    ("LEAD", "Leadership, empowerment, and development discussions."),
    ("Office of Global Initiative", "Support group for international students and global issues."),
]

DEFAULT_PROFESSIONALS = [
    ("Dr. Jane Doe", "jane.doe@ESNApp.com", "Counseling"),
]

async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

async def seed_defaults(session: AsyncSession) -> None:
    """
    Insert the built-in support groups and professional contacts that are missing.
    """
    result = await session.execute(select(SupportGroup.title))
    existing = set(result.scalars().all())
    for title, description in DEFAULT_GROUPS:
        if title not in existing:
            session.add(SupportGroup(title=title, description=description))
            logger.info(f"Seeded support group {title}")

    result = await session.execute(select(Professional.email))
    existing = set(result.scalars().all())
    for name, email, speciality in DEFAULT_PROFESSIONALS:
        if email not in existing:
            session.add(Professional(name=name, email=email, speciality=speciality))

    await session.commit()
