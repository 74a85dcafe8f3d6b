import uuid
from datetime import datetime
from sqlmodel import SQLModel, Field

class MessageDocument(SQLModel, table=True):
    """
    Stored chat message document of a group's message collection.

    userID, messageText and timestamp are nullable here because the store does
    not enforce a schema; records lacking them are rejected when decoded.
    """
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True, description="Store-assigned document ID")
    group_id: uuid.UUID = Field(foreign_key="supportgroup.id", primary_key=True, description="ID of the group the message belongs to")
    user_id: str | None = Field(default=None, description="ID of the user who sent the message")
    message_text: str | None = Field(default=None, description="Content of the message")
    timestamp: datetime | None = Field(default=None, index=True, description="Store-assigned creation time, the ordering key")
    image_url: str | None = Field(default=None, description="URL of an attached image")
    deleted: bool = Field(default=False, description="Soft-delete flag")
