"""Database model for visitor testimonials."""

from sqlalchemy import Column, String, Text, Boolean, DateTime
from datetime import datetime

from src.shared.auth.database import Base, generate_id


class Testimonial(Base):
    """Testimonial submitted by a visitor. Hidden from the public site until approved."""
    __tablename__ = "testimonials"

    id = Column(String, primary_key=True, default=generate_id)
    author = Column(String, nullable=False)
    role = Column(String, nullable=True)
    email = Column(String, nullable=True)  # Never exposed publicly
    content = Column(Text, nullable=False)
    approved = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
