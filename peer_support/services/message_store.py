import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import List

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import func, select

from peer_support.core.errors import NotFoundError, RecordValidationError, TransportError
from peer_support.models.chat import MessageDocument
from peer_support.models.group import GroupMember
from peer_support.schemas.chat import Message
from peer_support.services.change_feed import ChangeFeed

logger = logging.getLogger(__name__)

class StoreClock:
    """
    Creation-time source of the store.

    Returns naive UTC datetimes that strictly increase within the process so
    that consecutive writes never share a timestamp. Passing `after` (the
    latest time already stored) keeps the result past it even when this
    host's clock lags the writer of that record; such a bump does not carry
    over to later calls.
    """
    def __init__(self):
        self._last: datetime | None = None

    def now(self, after: datetime | None = None) -> datetime:
        current = datetime.now(timezone.utc).replace(tzinfo=None)
        if self._last is not None and current <= self._last:
            current = self._last + timedelta(microseconds=1)
        self._last = current
        if after is not None and current <= after:
            return after + timedelta(microseconds=1)
        return current

def decode_document(document: MessageDocument) -> Message:
    """
    Map a stored document to a Message.

    Raises RecordValidationError naming every missing required field
    (userID, messageText, timestamp). An empty imageURL means no attachment.
    """
    try:
        return Message.model_validate({
            "id": document.id,
            "userID": document.user_id,
            "messageText": document.message_text,
            "imageURL": document.image_url or None,
            "timestamp": document.timestamp,
            "deleted": document.deleted,
        })
    except ValidationError as e:
        missing = [str(error["loc"][0]) for error in e.errors() if error["loc"]]
        raise RecordValidationError(document.id, missing) from e

class MessageStoreClient:
    """
    Reads and writes a group's message collection and membership records.
    """
    def __init__(self, sessions: async_sessionmaker[AsyncSession], feed: ChangeFeed, clock: StoreClock | None = None):
        self._sessions = sessions
        self._feed = feed
        self._clock = clock or store_clock

    async def send(self, group_id: uuid.UUID, author_id: str, text: str, image_url: str | None = None) -> Message:
        document = MessageDocument(
            group_id=group_id,
            user_id=str(author_id),
            message_text=text,
            image_url=image_url,
            deleted=False,
        )
        latest = select(func.max(MessageDocument.timestamp)).where(MessageDocument.group_id == group_id)
        try:
            async with self._sessions() as session:
                result = await session.execute(latest)
                document.timestamp = self._clock.now(after=result.scalar_one_or_none())
                session.add(document)
                await session.commit()
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to write message to group {group_id}: {e}") from e

        logger.info(f"Message {document.id} stored in group {group_id}")
        self._feed.publish(group_id)
        return decode_document(document)

    async def soft_delete(self, group_id: uuid.UUID, message_id: str) -> Message:
        try:
            async with self._sessions() as session:
                document = await session.get(MessageDocument, (message_id, group_id))
                if document is None:
                    raise NotFoundError(f"Message {message_id} not found in group {group_id}")
                document.deleted = True
                session.add(document)
                await session.commit()
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to delete message {message_id}: {e}") from e

        self._feed.publish(group_id)
        return decode_document(document)

    async def fetch_join_timestamp(self, group_id: uuid.UUID, user_id: uuid.UUID) -> datetime:
        try:
            async with self._sessions() as session:
                member = await session.get(GroupMember, (group_id, user_id))
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to read membership of {user_id} in group {group_id}: {e}") from e

        if member is None:
            raise NotFoundError(f"User {user_id} is not a member of group {group_id}")
        if member.joined_date is None:
            raise NotFoundError(f"User {user_id} has no join date in group {group_id}")
        return member.joined_date

    async def get_message(self, group_id: uuid.UUID, message_id: str) -> Message:
        try:
            async with self._sessions() as session:
                document = await session.get(MessageDocument, (message_id, group_id))
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to read message {message_id}: {e}") from e

        if document is None:
            raise NotFoundError(f"Message {message_id} not found in group {group_id}")
        return decode_document(document)

    async def query_messages(self, group_id: uuid.UUID, since: datetime) -> List[MessageDocument]:
        """
        Documents of the group with timestamp > since, oldest first, ties by ID.
        """
        query = select(MessageDocument).where(
            MessageDocument.group_id == group_id,
            MessageDocument.timestamp > since,
        ).order_by(MessageDocument.timestamp.asc(), MessageDocument.id.asc())
        try:
            async with self._sessions() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            raise TransportError(f"Failed to query messages of group {group_id}: {e}") from e

store_clock = StoreClock()
