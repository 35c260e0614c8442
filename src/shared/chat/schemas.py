"""Pydantic schemas for the chat assistant API."""

from pydantic import BaseModel, Field, field_validator

MAX_CHAT_MESSAGE_LENGTH = 1000


class ChatRequest(BaseModel):
    """Visitor question, after anti-abuse fields are stripped."""
    message: str = Field(..., min_length=1, max_length=MAX_CHAT_MESSAGE_LENGTH)

    @field_validator('message')
    @classmethod
    def validate_message(cls, v):
        if not v or not v.strip():
            raise ValueError("Message is required")
        return v.strip()


class ChatResponse(BaseModel):
    reply: str
