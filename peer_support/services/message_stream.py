import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable, List

from peer_support.core.errors import RecordValidationError, TransportError
from peer_support.schemas.chat import Message, Snapshot
from peer_support.services.change_feed import ChangeFeed, Registration
from peer_support.services.message_store import MessageStoreClient, decode_document

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Snapshot], Awaitable[None]]

async def read_snapshot(store: MessageStoreClient, group_id: uuid.UUID, since: datetime, version: int = 0) -> Snapshot:
    """
    Build the visible snapshot of a group from the full ordered result set.

    Records missing a required field are logged and skipped; soft-deleted
    records are dropped. TransportError propagates to the caller.
    """
    documents = await store.query_messages(group_id, since)
    messages: List[Message] = []
    for document in documents:
        try:
            message = decode_document(document)
        except RecordValidationError as e:
            logger.warning(f"Skipping message in group {group_id}: {e}")
            continue
        if not message.deleted:
            messages.append(message)
    return Snapshot(group_id=group_id, version=version, messages=tuple(messages))

class _Subscription:
    def __init__(self, group_id: uuid.UUID, since: datetime, on_snapshot: SnapshotCallback):
        self.group_id = group_id
        self.since = since
        self.on_snapshot = on_snapshot
        self.changed = asyncio.Event()
        self.registration: Registration | None = None
        self.task: asyncio.Task | None = None

class MessageStreamSubscriber:
    """
    Keeps one live, filtered and ordered view of a group's messages.

    At most one subscription is active per subscriber; subscribing again
    closes the previous one. Change notifications are coalesced and handled
    by a single worker task, so snapshot deliveries never overlap and their
    versions strictly increase for the lifetime of the subscriber.
    """
    def __init__(self, store: MessageStoreClient, feed: ChangeFeed):
        self._store = store
        self._feed = feed
        self._active: _Subscription | None = None
        self._version = 0
        # Serialises subscribe/unsubscribe so only one registration is ever held
        self._lock = asyncio.Lock()

    @property
    def active(self) -> bool:
        return self._active is not None

    async def subscribe(self, group_id: uuid.UUID, since: datetime, on_snapshot: SnapshotCallback) -> None:
        async with self._lock:
            await self._release()
            self._start(group_id, since, on_snapshot)

    async def unsubscribe(self) -> None:
        async with self._lock:
            await self._release()

    def _start(self, group_id: uuid.UUID, since: datetime, on_snapshot: SnapshotCallback) -> None:
        loop = asyncio.get_running_loop()
        subscription = _Subscription(group_id, since, on_snapshot)
        subscription.registration = self._feed.listen(
            group_id, lambda _: loop.call_soon_threadsafe(subscription.changed.set)
        )
        # The first snapshot is delivered without waiting for a change.
        subscription.changed.set()
        subscription.task = asyncio.create_task(self._run(subscription), name=f"message-stream-{group_id}")
        self._active = subscription
        logger.info(f"Subscribed to group {group_id} since {since.isoformat()}")

    async def _release(self) -> None:
        subscription, self._active = self._active, None
        if subscription is None:
            return

        subscription.registration.remove()
        subscription.task.cancel()
        if subscription.task is not asyncio.current_task():
            try:
                await subscription.task
            except asyncio.CancelledError:
                pass
        logger.info(f"Unsubscribed from group {subscription.group_id}")

    @asynccontextmanager
    async def subscription(self, group_id: uuid.UUID, since: datetime, on_snapshot: SnapshotCallback) -> AsyncIterator["MessageStreamSubscriber"]:
        """
        Subscribe for the duration of the block; released on every exit path.
        """
        await self.subscribe(group_id, since, on_snapshot)
        try:
            yield self
        finally:
            await self.unsubscribe()

    async def _run(self, subscription: _Subscription) -> None:
        while True:
            await subscription.changed.wait()
            subscription.changed.clear()

            try:
                snapshot = await read_snapshot(self._store, subscription.group_id, subscription.since)
            except TransportError as e:
                logger.warning(f"Keeping last snapshot of group {subscription.group_id}: {e}")
                continue

            if self._active is not subscription:
                return

            self._version += 1
            snapshot = snapshot.model_copy(update={"version": self._version})
            try:
                await subscription.on_snapshot(snapshot)
            except Exception:
                logger.exception(f"Snapshot observer for group {subscription.group_id} failed")

class SnapshotState:
    """
    Holds the current snapshot of a chat session and notifies observers.

    Only newer versions replace the held snapshot; late arrivals are dropped.
    """
    def __init__(self):
        self._current: Snapshot | None = None
        self._observers: List[SnapshotCallback] = []

    @property
    def current(self) -> Snapshot | None:
        return self._current

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._current.messages if self._current else ()

    def observe(self, callback: SnapshotCallback) -> Callable[[], None]:
        self._observers.append(callback)

        def cancel() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return cancel

    async def replace(self, snapshot: Snapshot) -> bool:
        if self._current is not None and snapshot.version <= self._current.version:
            logger.debug(f"Dropping stale snapshot v{snapshot.version} (holding v{self._current.version})")
            return False

        self._current = snapshot
        for observer in list(self._observers):
            await observer(snapshot)
        return True
