"""Pydantic schemas for contact API."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from src.shared.auth.input_validation import (
    MAX_SUBJECT_LENGTH,
    sanitize_text,
    validate_email,
    validate_long_text,
    validate_name,
)


class ContactRequest(BaseModel):
    """Schema for contact form submission (after anti-abuse fields are stripped)."""
    name: str = Field(..., min_length=1, max_length=100, description="Your name")
    email: EmailStr = Field(..., description="Your email address")
    subject: Optional[str] = Field(None, max_length=MAX_SUBJECT_LENGTH, description="Message subject")
    message: str = Field(..., min_length=1, max_length=5000, description="Your message")

    @field_validator('name')
    @classmethod
    def validate_name_field(cls, v):
        return validate_name(v, "Name")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return validate_email(v)

    @field_validator('subject')
    @classmethod
    def validate_subject(cls, v):
        """Sanitize subject input with XSS protection. Blank subjects become None."""
        if v is None or not v.strip():
            return None
        return sanitize_text(v.strip(), max_length=MAX_SUBJECT_LENGTH)

    @field_validator('message')
    @classmethod
    def validate_message(cls, v):
        return validate_long_text(v, "Message")


class ContactMessageResponse(BaseModel):
    """Stored contact message as returned to the admin dashboard."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    subject: Optional[str] = None
    message: str
    read: bool
    created_at: datetime


class ContactSubmitResponse(BaseModel):
    """Schema for public contact form response."""
    success: bool
    message: str
    id: str
