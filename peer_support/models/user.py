import uuid
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from pydantic import EmailStr

class UserBase(SQLModel):
    """
    Base User model containing shared attributes.
    """
    email: EmailStr = Field(unique=True, index=True, description="User's email address")
    first_name: str = Field(description="User's first name")
    last_name: str = Field(description="User's last name")
    student_id: str | None = Field(default=None, description="Campus student ID")
    alias: str | None = Field(default=None, description="Display name shown in group chats")
    avatar_url: str | None = Field(default=None, description="URL to user's avatar image")
    is_active: bool = Field(default=True, description="Whether the user account is active")
    is_verified: bool = Field(default=False, description="Whether the user's email is verified")

class User(UserBase, table=True):
    """
    User database model.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, description="Unique identifier for the user")
    hashed_password: str = Field(description="Hashed version of the user's password")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc).replace(tzinfo=None), description="Timestamp when the user was created")
