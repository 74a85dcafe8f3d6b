import uuid
from datetime import datetime
from sqlmodel import SQLModel, Field

class SupportGroup(SQLModel, table=True):
    """
    A peer support group users can join and chat in.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, description="Unique identifier for the group")
    title: str = Field(unique=True, index=True, description="Title of the group")
    description: str = Field(description="What the group is about")

class GroupMember(SQLModel, table=True):
    """
    Membership record of a user in a support group.

    A row exists as soon as the user accepts the group's terms; joined_date
    is only set when the user actually joins.
    """
    group_id: uuid.UUID = Field(foreign_key="supportgroup.id", primary_key=True, description="ID of the group")
    user_id: uuid.UUID = Field(foreign_key="user.id", primary_key=True, description="ID of the user")
    joined_date: datetime | None = Field(default=None, description="Timestamp when the user joined; lower bound of their chat history")
    terms_accepted_at: datetime | None = Field(default=None, description="Timestamp when the user accepted the group's terms")

class Professional(SQLModel, table=True):
    """
    Professional contact offered to users alongside peer support.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, description="Unique identifier for the contact")
    name: str = Field(description="Name of the professional")
    email: str = Field(description="Contact email")
    speciality: str | None = Field(default=None, description="Area of practice")
