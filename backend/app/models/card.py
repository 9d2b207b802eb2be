"""eCard and view tracking models."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.clock import utcnow
from app.database import Base


class ECard(Base):
    """A personalized greeting card sent from a sender to one recipient."""

    __tablename__ = "ecards"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_name = Column(String(200), nullable=False)
    recipient_email = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    # Artwork: at most one of these is set
    custom_art_path = Column(String(500))
    premade_art_id = Column(String(100))

    # Scheduling
    scheduled_send_date = Column(DateTime, index=True)
    is_sent = Column(Boolean, nullable=False, default=False)
    sent_date = Column(DateTime)

    # Tracking
    created_date = Column(DateTime, nullable=False, default=utcnow)
    first_viewed_date = Column(DateTime)
    view_count = Column(Integer, nullable=False, default=0)

    # Purged by the retention sweeper once passed
    expiry_date = Column(DateTime, nullable=False, index=True)

    sender_id = Column(String(36), ForeignKey("senders.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Relationships
    sender = relationship("Sender", back_populates="ecards")
    view_records = relationship(
        "ViewRecord",
        back_populates="ecard",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ViewRecord(Base):
    """Immutable audit entry for one recipient view of an eCard."""

    __tablename__ = "view_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    ecard_id = Column(String(36), ForeignKey("ecards.id", ondelete="CASCADE"), nullable=False, index=True)
    viewed_date = Column(DateTime, nullable=False, default=utcnow, index=True)
    ip_address = Column(String(45))
    user_agent = Column(String(500))

    ecard = relationship("ECard", back_populates="view_records")
