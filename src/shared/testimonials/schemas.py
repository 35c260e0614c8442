"""Pydantic schemas for testimonials API."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from src.shared.auth.input_validation import MAX_ROLE_LENGTH, validate_email, validate_long_text, validate_name


class TestimonialRequest(BaseModel):
    """Public testimonial submission. Unknown fields (including `approved`) are ignored."""
    author: str = Field(..., min_length=1, max_length=100)
    role: Optional[str] = Field(None, max_length=MAX_ROLE_LENGTH)
    email: Optional[EmailStr] = None
    content: str = Field(..., min_length=10, max_length=2000)

    @field_validator('author')
    @classmethod
    def validate_author(cls, v):
        return validate_name(v, "Author")

    @field_validator('role')
    @classmethod
    def validate_role(cls, v):
        if v is None or not v.strip():
            return None
        return validate_name(v, "Role", max_length=MAX_ROLE_LENGTH)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        if v is None:
            return None
        return validate_email(v)

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        return validate_long_text(v, "Testimonial", min_length=10, max_length=2000)


class TestimonialUpdate(BaseModel):
    """Admin edit. Every field is optional."""
    author: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[str] = Field(None, max_length=MAX_ROLE_LENGTH)
    content: Optional[str] = Field(None, min_length=1, max_length=2000)
    approved: Optional[bool] = None


class TestimonialResponse(BaseModel):
    """Public view of a testimonial."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    author: str
    role: Optional[str] = None
    content: str
    approved: bool
    created_at: datetime


class TestimonialAdminResponse(TestimonialResponse):
    email: Optional[str] = None
