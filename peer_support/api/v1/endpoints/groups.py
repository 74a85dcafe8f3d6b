from typing import Annotated, List
import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from peer_support.api.deps import get_current_user, get_db
from peer_support.models.user import User
from peer_support.models.group import SupportGroup, GroupMember
from peer_support.schemas.group import SupportGroupRead, MembershipRead
from peer_support.schemas.response import APIResponse
from peer_support.services.message_store import store_clock

logger = logging.getLogger(__name__)

router = APIRouter()

async def get_group_or_404(session: AsyncSession, group_id: uuid.UUID) -> SupportGroup:
    group = await session.get(SupportGroup, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Support group not found")
    return group

@router.get("/", response_model=APIResponse[List[SupportGroupRead]])
async def get_groups(
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_db)]
):
    """
    List all peer support groups.
    """
    result = await session.execute(select(SupportGroup).order_by(SupportGroup.title))
    return APIResponse(message="Support groups retrieved", data=result.scalars().all())

@router.get("/{group_id}", response_model=APIResponse[SupportGroupRead])
async def get_group(
    group_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_db)]
):
    group = await get_group_or_404(session, group_id)
    return APIResponse(message="Support group retrieved", data=group)

@router.get("/{group_id}/membership", response_model=APIResponse[MembershipRead])
async def get_membership(
    group_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Whether the current user has accepted the group's terms and joined it.
    """
    await get_group_or_404(session, group_id)
    member = await session.get(GroupMember, (group_id, current_user.id))
    if not member:
        member = GroupMember(group_id=group_id, user_id=current_user.id)
    return APIResponse(message="Membership retrieved", data=member)

@router.post("/{group_id}/terms", response_model=APIResponse[MembershipRead])
async def accept_terms(
    group_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Accept the group's terms and conditions.

    Accepting again keeps the original acceptance time.
    """
    await get_group_or_404(session, group_id)
    member = await session.get(GroupMember, (group_id, current_user.id))
    if not member:
        member = GroupMember(group_id=group_id, user_id=current_user.id)
    if member.terms_accepted_at is None:
        member.terms_accepted_at = store_clock.now()
        session.add(member)
        await session.commit()
        await session.refresh(member)

    return APIResponse(message="Terms accepted", data=member)

@router.post("/{group_id}/join", response_model=APIResponse[MembershipRead])
async def join_group(
    group_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Join a support group.

    The join time becomes the lower bound of the chat history the user sees.
    """
    group = await get_group_or_404(session, group_id)
    member = await session.get(GroupMember, (group_id, current_user.id))

    if not member or member.terms_accepted_at is None:
        raise HTTPException(status_code=400, detail="Terms and conditions must be accepted before joining")
    if member.joined_date is not None:
        raise HTTPException(status_code=400, detail="Already a member")

    member.joined_date = store_clock.now()
    session.add(member)
    await session.commit()
    await session.refresh(member)

    logger.info(f"User {current_user.id} joined group {group.title}")
    return APIResponse(message="Joined group successfully", data=member)
