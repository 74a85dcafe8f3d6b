from typing import Annotated, Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from peer_support.api import deps
from peer_support.models.user import User

from peer_support.schemas.user import UserRead, UserUpdate
from peer_support.schemas.response import APIResponse
from peer_support.core.security import get_password_hash

router = APIRouter()

@router.get("/me", response_model=APIResponse[UserRead])
async def read_user_me(current_user: Annotated[User, Depends(deps.get_current_user)]) -> Any:
    """
    Get current user details.
    """
    return APIResponse(message="User details retrieved", data=current_user)

@router.put("/me", response_model=APIResponse[UserRead])
async def update_user_me(
    *,
    session: Annotated[AsyncSession, Depends(deps.get_db)],
    user_in: UserUpdate,
    current_user: Annotated[User, Depends(deps.get_current_user)],
) -> Any:
    """
    Update own profile (names, student ID, alias, avatar, password).
    """
    user_data = user_in.model_dump(exclude_unset=True)

    password = user_data.pop("password", None)
    if password:
        user_data["hashed_password"] = get_password_hash(password)

    for field, value in user_data.items():
        setattr(current_user, field, value)

    session.add(current_user)
    await session.commit()
    await session.refresh(current_user)

    return APIResponse(message="User profile updated", data=current_user)
