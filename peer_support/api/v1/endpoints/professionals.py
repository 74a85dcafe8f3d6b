from typing import Annotated, List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from peer_support.api.deps import get_current_user, get_db
from peer_support.models.user import User
from peer_support.models.group import Professional
from peer_support.schemas.group import ProfessionalRead
from peer_support.schemas.response import APIResponse

router = APIRouter()

@router.get("/", response_model=APIResponse[List[ProfessionalRead]])
async def get_professionals(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Contact details of professionals available beyond peer support.
    """
    result = await session.execute(select(Professional).order_by(Professional.name))
    return APIResponse(message="Professionals retrieved", data=result.scalars().all())
