"""Sender model."""
import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from app.clock import utcnow
from app.database import Base


class Sender(Base):
    """Authenticated user who authors eCards. Deduplicated by email."""

    __tablename__ = "senders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False, index=True)
    created_date = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    ecards = relationship("ECard", back_populates="sender")
