import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlmodel import SQLModel

class Message(BaseModel):
    """
    Decoded chat message.

    Serialized with the store's field names (userID, messageText, imageURL).
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    author_id: str = Field(alias="userID")
    text: str = Field(alias="messageText")
    image_url: str | None = Field(default=None, alias="imageURL")
    timestamp: datetime
    deleted: bool = False

class Snapshot(BaseModel):
    """
    Complete, ordered set of visible messages of a group at one point in time.

    Version increases by one with every snapshot delivered on a subscription.
    """
    model_config = ConfigDict(frozen=True)

    group_id: uuid.UUID
    version: int
    messages: tuple[Message, ...] = ()

class ChatMessageCreate(SQLModel):
    """
    Schema for sending a new chat message.
    """
    text: str
    image_url: str | None = None

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message text must not be empty")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "text": "Hang in there, exams are almost over!",
                "image_url": None
            }
        }
    }
