"""Premade artwork template model."""
from sqlalchemy import Boolean, Column, Integer, String

from app.database import Base


class PremadeTemplate(Base):
    """Premade card artwork (seeded from YAML files, managed by admins)."""

    __tablename__ = "premade_templates"

    id = Column(String(100), primary_key=True)
    name = Column(String(200), nullable=False)
    category = Column(String(100), nullable=False)
    icon_emoji = Column(String(10), nullable=False, default="")
    description = Column(String(1000))
    image_path = Column(String(500))  # Absolute or relative to premade_art_dir
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0, index=True)
