from typing import Annotated
import uuid
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from peer_support.core.config import settings
from peer_support.db.session import get_db, AsyncSessionLocal
from peer_support.models.user import User
from peer_support.schemas.token import TokenPayload
from peer_support.services.change_feed import ChangeFeed, change_feed
from peer_support.services.message_store import MessageStoreClient

reuseable_oauth2 = HTTPBearer(auto_error=True)

async def resolve_user(session: AsyncSession, token: str) -> User:
    """
    Loads the active user an access token was issued to.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenPayload(**payload)
        user_id = uuid.UUID(token_data.sub)
    except (JWTError, ValidationError, TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Could not validate credentials")

    # Verification tokens are not access tokens
    if token_data.type is not None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Could not validate credentials")

    user = await session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user

async def get_current_user(session: Annotated[AsyncSession, Depends(get_db)], token: Annotated[HTTPAuthorizationCredentials, Depends(reuseable_oauth2)]) -> User:
    return await resolve_user(session, token.credentials)

def get_change_feed() -> ChangeFeed:
    return change_feed

def get_message_store(feed: Annotated[ChangeFeed, Depends(get_change_feed)]) -> MessageStoreClient:
    return MessageStoreClient(AsyncSessionLocal, feed)
