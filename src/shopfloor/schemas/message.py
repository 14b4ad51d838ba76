"""Pydantic schemas for chat messages.

Learn: The inbound payload of a `newMessage` event is a MessageCreate.
The server assigns id and created_at; everything the client sent is
kept as-is in the stored document.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Author(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    age: Optional[int] = Field(None, ge=0, le=150)
    alias: Optional[str] = Field(None, max_length=100)
    avatar: Optional[str] = None


class MessageCreate(BaseModel):
    author: Author
    text: str = Field(..., min_length=1, max_length=5000)


class MessageRead(MessageCreate):
    id: int
    created_at: datetime
