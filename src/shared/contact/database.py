"""Database model for contact messages."""

from sqlalchemy import Column, String, Text, Boolean, DateTime, Index
from datetime import datetime

# Import Base from auth database to use the same declarative base
from src.shared.auth.database import Base, generate_id


class ContactMessage(Base):
    """Message left by a visitor through the contact form."""
    __tablename__ = "contact_messages"

    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    subject = Column(String, nullable=True)
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('idx_contact_messages_read_created', 'read', 'created_at'),
    )
