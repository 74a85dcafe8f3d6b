from typing import Annotated, Any
import asyncio
import logging
import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from peer_support.api import deps
from peer_support.core.errors import NotFoundError, TransportError
from peer_support.core.rate_limit import limiter
from peer_support.models.user import User
from peer_support.schemas.chat import ChatMessageCreate, Message, Snapshot
from peer_support.schemas.response import APIResponse
from peer_support.services.change_feed import ChangeFeed
from peer_support.services.message_store import MessageStoreClient
from peer_support.services.message_stream import MessageStreamSubscriber, SnapshotState, read_snapshot

logger = logging.getLogger(__name__)

router = APIRouter()

async def get_join_date(store: MessageStoreClient, group_id: uuid.UUID, user: User) -> datetime:
    """
    Lower bound of the user's chat history; 403 when they have not joined.
    """
    try:
        return await store.fetch_join_timestamp(group_id, user.id)
    except NotFoundError:
        raise HTTPException(status_code=403, detail="Not a member of this group")

@router.get("/{group_id}", response_model=APIResponse[Snapshot])
@limiter.limit("30/minute")
async def get_group_messages(
    request: Request,
    group_id: uuid.UUID,
    current_user: Annotated[User, Depends(deps.get_current_user)],
    store: Annotated[MessageStoreClient, Depends(deps.get_message_store)],
) -> Any:
    """
    Current snapshot of the group's chat: messages sent after the caller
    joined, oldest first, without deleted messages.
    """
    since = await get_join_date(store, group_id, current_user)
    snapshot = await read_snapshot(store, group_id, since)
    return APIResponse(message="Messages retrieved", data=snapshot)

@router.post("/{group_id}", response_model=APIResponse[Message])
@limiter.limit("20/minute")
async def send_message(
    request: Request,
    group_id: uuid.UUID,
    message_in: ChatMessageCreate,
    current_user: Annotated[User, Depends(deps.get_current_user)],
    store: Annotated[MessageStoreClient, Depends(deps.get_message_store)],
) -> Any:
    """
    Send a message to a group.
    """
    await get_join_date(store, group_id, current_user)
    message = await store.send(group_id, str(current_user.id), message_in.text, message_in.image_url)
    return APIResponse(message="Message sent", data=message)

@router.get("/{group_id}/messages/{message_id}", response_model=APIResponse[Message])
async def get_message(
    group_id: uuid.UUID,
    message_id: str,
    current_user: Annotated[User, Depends(deps.get_current_user)],
    store: Annotated[MessageStoreClient, Depends(deps.get_message_store)],
) -> Any:
    """
    Read a single message by ID, including soft-deleted ones.
    """
    await get_join_date(store, group_id, current_user)
    try:
        message = await store.get_message(group_id, message_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")
    return APIResponse(message="Message retrieved", data=message)

@router.delete("/{group_id}/messages/{message_id}", response_model=APIResponse[Message])
@limiter.limit("20/minute")
async def delete_message(
    request: Request,
    group_id: uuid.UUID,
    message_id: str,
    current_user: Annotated[User, Depends(deps.get_current_user)],
    store: Annotated[MessageStoreClient, Depends(deps.get_message_store)],
) -> Any:
    """
    Soft-delete one of your own messages. It disappears from snapshots but
    stays readable by ID.
    """
    await get_join_date(store, group_id, current_user)
    try:
        message = await store.get_message(group_id, message_id)
        if message.author_id != str(current_user.id):
            raise HTTPException(status_code=403, detail="You can only delete your own messages")
        message = await store.soft_delete(group_id, message_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")
    return APIResponse(message="Message deleted", data=message)

@router.websocket("/{group_id}/ws")
async def stream_messages(
    websocket: WebSocket,
    group_id: uuid.UUID,
    token: str,
    session: Annotated[AsyncSession, Depends(deps.get_db)],
    store: Annotated[MessageStoreClient, Depends(deps.get_message_store)],
    feed: Annotated[ChangeFeed, Depends(deps.get_change_feed)],
):
    """
    Live chat stream.

    Every snapshot is pushed as {"group_id", "version", "messages"}. Frames
    received from the client are sent to the group as messages
    ({"text": ..., "image_url": ...}).
    """
    try:
        user = await deps.resolve_user(session, token)
        since = await store.fetch_join_timestamp(group_id, user.id)
    except (HTTPException, NotFoundError) as e:
        logger.info(f"Rejected chat stream for group {group_id}: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    except TransportError as e:
        logger.warning(f"Chat stream for group {group_id} unavailable: {e}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    finally:
        await session.close()

    await websocket.accept()

    state = SnapshotState()
    # Snapshots are pushed from the subscriber's worker task, errors from this one
    send_lock = asyncio.Lock()

    async def send_frame(data: dict) -> None:
        async with send_lock:
            await websocket.send_json(data)

    async def push(snapshot: Snapshot) -> None:
        await send_frame(snapshot.model_dump(mode="json", by_alias=True))

    state.observe(push)
    subscriber = MessageStreamSubscriber(store, feed)

    async with subscriber.subscription(group_id, since, state.replace):
        try:
            while True:
                payload = await websocket.receive_text()
                try:
                    message_in = ChatMessageCreate.model_validate_json(payload)
                except ValidationError as e:
                    await send_frame({"error": "Invalid message", "detail": e.errors(include_url=False, include_context=False)})
                    continue
                try:
                    await store.send(group_id, str(user.id), message_in.text, message_in.image_url)
                except TransportError as e:
                    logger.warning(f"Failed to send message over stream: {e}")
                    await send_frame({"error": "Message store unavailable"})
        except WebSocketDisconnect:
            logger.info(f"Chat stream for group {group_id} closed by {user.id}")
