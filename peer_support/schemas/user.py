import uuid
from datetime import datetime
from pydantic import EmailStr
from sqlmodel import SQLModel
from peer_support.models.user import UserBase

class LoginRequest(SQLModel):
    """
    Schema for user login request.
    """
    email: EmailStr
    password: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "jdoe@my.fisk.edu",
                "password": "securepassword123"
            }
        }
    }

class UserCreate(SQLModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    student_id: str | None = None
    alias: str | None = None
    avatar_url: str | None = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "jdoe@my.fisk.edu",
                "password": "securepassword123",
                "first_name": "Jordan",
                "last_name": "Doe",
                "student_id": "S1234567",
                "alias": "jd"
            }
        }
    }

class UserRead(UserBase):
    id: uuid.UUID
    created_at: datetime

class UserUpdate(SQLModel):
    first_name: str | None = None
    last_name: str | None = None
    student_id: str | None = None
    alias: str | None = None
    avatar_url: str | None = None
    password: str | None = None
