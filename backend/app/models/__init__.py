"""SQLAlchemy models package."""
from app.models.sender import Sender
from app.models.card import ECard, ViewRecord
from app.models.template import PremadeTemplate

__all__ = [
    "Sender",
    "ECard",
    "ViewRecord",
    "PremadeTemplate",
]
