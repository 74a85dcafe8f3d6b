import asyncio
import logging
import random
from datetime import datetime, timezone, timedelta
from faker import Faker

from sqlalchemy import text
from peer_support.db.session import AsyncSessionLocal, engine
from peer_support.db.init_db import create_tables, seed_defaults
from peer_support.models.user import User
from peer_support.models.group import SupportGroup, GroupMember
from peer_support.models.chat import MessageDocument
from peer_support.core.security import get_password_hash
from sqlmodel import select

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Constants
PASSWORD = "password123"
hashed_password = get_password_hash(PASSWORD)
fake = Faker()

def get_utc_now():
    """Returns a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

async def seed_data():
    await create_tables(engine)

    async with AsyncSessionLocal() as session:
        # 0. Clear chat data
        logger.info("Clearing database...")
        for table in ("messagedocument", "groupmember", '"user"'):
            await session.execute(text(f"DELETE FROM {table}"))
        await session.commit()
        await seed_defaults(session)
        logger.info("Database cleared.")

        groups = (await session.execute(select(SupportGroup))).scalars().all()

        # 1. Create Users
        logger.info("Creating users...")
        users = []
        for _ in range(8):
            first_name, last_name = fake.first_name(), fake.last_name()
            user = User(
                email=f"{first_name}.{last_name}.{fake.random_int(10, 99)}@my.fisk.edu".lower(),
                first_name=first_name,
                last_name=last_name,
                student_id=f"S{fake.random_number(digits=7, fix_len=True)}",
                alias=fake.user_name(),
                hashed_password=hashed_password,
                is_verified=True,
            )
            session.add(user)
            users.append(user)
        await session.commit()

        # 2. Memberships, joined over the past month
        logger.info("Joining groups...")
        now = get_utc_now()
        members = []
        for user in users:
            for group in random.sample(groups, k=2):
                joined = now - timedelta(days=random.randint(1, 30))
                member = GroupMember(
                    group_id=group.id,
                    user_id=user.id,
                    terms_accepted_at=joined - timedelta(minutes=5),
                    joined_date=joined,
                )
                session.add(member)
                members.append(member)
        await session.commit()

        # 3. Chat history
        logger.info("Writing chat history...")
        for member in members:
            for _ in range(random.randint(1, 6)):
                sent = member.joined_date + timedelta(minutes=random.randint(1, 60 * 24 * 7))
                if sent > now:
                    continue
                session.add(MessageDocument(
                    group_id=member.group_id,
                    user_id=str(member.user_id),
                    message_text=fake.sentence(nb_words=random.randint(4, 16)),
                    timestamp=sent,
                    deleted=random.random() < 0.05,
                ))
        await session.commit()

    logger.info(f"Seeding complete. All users use password '{PASSWORD}'.")

if __name__ == "__main__":
    asyncio.run(seed_data())
