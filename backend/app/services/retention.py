"""Retention sweep: purge cards (and their artwork) past their expiry date."""
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.clock import Clock, utcnow
from app.errors import ArtworkDeleteFailure
from app.models.card import ECard, ViewRecord
from app.services.artwork import LocalArtworkStore
from app.services.lifecycle import expired_filter

logger = logging.getLogger(__name__)


def run_retention_sweep(
    db: Session,
    artwork_store: LocalArtworkStore,
    clock: Clock = utcnow,
) -> dict:
    """Delete every card whose expiry date has passed. Call this from a scheduler.

    Artwork deletion is best effort: a failure is logged and the card is
    still deleted. All deletions in the run commit together.
    """
    now = clock()
    expired_cards = db.query(ECard).filter(expired_filter(now)).all()

    if not expired_cards:
        return {"deleted": 0, "artwork_failures": 0}

    artwork_failures = 0
    for card in expired_cards:
        if not card.custom_art_path:
            continue
        try:
            artwork_store.delete(card.custom_art_path)
        except ArtworkDeleteFailure as e:
            artwork_failures += 1
            logger.warning(f"Failed to delete art file for card {card.id}: {e}")

    card_ids = [card.id for card in expired_cards]

    # Re-check expiry: a first view since the select may have extended it.
    # Rows already removed by an admin delete match nothing, which is fine.
    still_expired = select(ECard.id).where(ECard.id.in_(card_ids), expired_filter(now))
    db.query(ViewRecord).filter(ViewRecord.ecard_id.in_(still_expired)).delete(synchronize_session=False)
    deleted = db.query(ECard).filter(
        ECard.id.in_(card_ids),
        expired_filter(now),
    ).delete(synchronize_session=False)
    db.commit()

    logger.info(f"Cleaned up {deleted} expired ecards")
    return {"deleted": deleted, "artwork_failures": artwork_failures}
