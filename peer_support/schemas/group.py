import uuid
from datetime import datetime
from sqlmodel import SQLModel

class SupportGroupRead(SQLModel):
    """
    Schema for reading a support group.
    """
    id: uuid.UUID
    title: str
    description: str

class MembershipRead(SQLModel):
    """
    The current user's standing in a group.
    """
    group_id: uuid.UUID
    user_id: uuid.UUID
    terms_accepted_at: datetime | None = None
    joined_date: datetime | None = None

class ProfessionalRead(SQLModel):
    id: uuid.UUID
    name: str
    email: str
    speciality: str | None = None
