from typing import Annotated, Any
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
import uuid

from peer_support.api import deps
from peer_support.core import security
from peer_support.core.config import settings
from peer_support.models.user import User
from peer_support.schemas.token import Token
from peer_support.schemas.user import UserCreate, UserRead, LoginRequest
from peer_support.schemas.response import APIResponse
from peer_support.worker import send_email_task

router = APIRouter()

@router.post("/signup", response_model=APIResponse[UserRead])
async def create_user(*, session: Annotated[AsyncSession, Depends(deps.get_db)], user_in: UserCreate) -> Any:
    """
    Register a new account and email a verification link.
    """
    email = user_in.email.lower()
    if settings.ALLOWED_EMAIL_DOMAIN and not email.endswith(settings.ALLOWED_EMAIL_DOMAIN):
        raise HTTPException(status_code=400, detail=f"Email must end with {settings.ALLOWED_EMAIL_DOMAIN}")

    result = await session.execute(select(User).where(User.email == email))
    if result.scalars().first():
        raise HTTPException(
            status_code=400,
            detail="The user with this email already exists in the system.",
        )

    user_data = user_in.model_dump(exclude={"password", "email"})
    user = User(**user_data, email=email, hashed_password=security.get_password_hash(user_in.password))
    session.add(user)
    await session.commit()
    await session.refresh(user)

    token = security.create_verification_token(user.id)
    send_email_task.delay(
        email_to=user.email,
        subject=f"Verify your {settings.PROJECT_NAME} account",
        html_template="verify_email.html",
        environment={
            "project_name": settings.PROJECT_NAME,
            "name": user.alias or user.first_name,
            "link": f"{settings.VERIFY_EMAIL_URL}?token={token}",
        }
    )

    return APIResponse(message="User created successfully", data=user)

@router.post("/login", response_model=APIResponse[Token])
async def login_access_token(session: Annotated[AsyncSession, Depends(deps.get_db)], form_data: LoginRequest) -> Any:
    result = await session.execute(select(User).where(User.email == form_data.email.lower()))
    user = result.scalars().first()
    if not user or not security.verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Incorrect email or password")
    elif not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")

    return APIResponse(
        message="Login successful",
        data=Token(access_token=security.create_access_token(user.id), token_type="bearer")
    )

@router.post("/verify-email", response_model=APIResponse[dict])
async def verify_email(session: Annotated[AsyncSession, Depends(deps.get_db)], token: str) -> Any:
    """
    Confirm the email address a verification token was sent to.
    """
    subject = security.verify_token(token, token_type="verification")
    if not subject:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")

    try:
        user = await session.get(User, uuid.UUID(subject))
    except ValueError:
        user = None
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")

    if not user.is_verified:
        user.is_verified = True
        session.add(user)
        await session.commit()

    return APIResponse(message="Email verified successfully", data={"verified": True})
