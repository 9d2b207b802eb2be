"""Delivery pass: send notifications for cards whose send date has arrived."""
import logging

from sqlalchemy.orm import Session, joinedload

from app.clock import Clock, utcnow
from app.models.card import ECard
from app.services.lifecycle import due_for_delivery_filter
from app.services.notifications import NotificationSender

logger = logging.getLogger(__name__)


def get_due_cards(db: Session, now) -> list[ECard]:
    """Unsent cards whose scheduled send date has passed, oldest first."""
    return (
        db.query(ECard)
        .options(joinedload(ECard.sender))
        .filter(due_for_delivery_filter(now))
        .order_by(ECard.scheduled_send_date)
        .all()
    )


def run_delivery_pass(
    db: Session,
    notification_sender: NotificationSender,
    clock: Clock = utcnow,
) -> dict:
    """Send every due card and mark only the successful ones as sent.

    A failed card is left untouched so the next pass retries it. Successful
    sends are persisted together once every attempt has finished.
    """
    now = clock()
    due_cards = get_due_cards(db, now)

    sent_ids = []
    failed = 0

    for card in due_cards:
        try:
            notification_sender.send(card, card.sender)
        except Exception as e:
            failed += 1
            logger.error(f"Failed to send ecard {card.id} to {card.recipient_email}. Will retry on next run. {e}")
            continue

        sent_ids.append(card.id)
        logger.info(f"Successfully sent ecard {card.id} to {card.recipient_email}")

    marked = 0
    if sent_ids:
        sent_at = clock()
        # A card purged since it was selected updates zero rows
        marked = db.query(ECard).filter(
            ECard.id.in_(sent_ids),
            ECard.is_sent == False,  # noqa: E712
        ).update(
            {ECard.is_sent: True, ECard.sent_date: sent_at},
            synchronize_session=False,
        )
        db.commit()
        logger.info(f"Scheduled sending batch complete: {len(sent_ids)} sent, {failed} failed")
    elif failed:
        logger.warning(f"Scheduled sending batch complete: All {failed} cards failed to send")

    return {"sent": len(sent_ids), "failed": failed, "marked": marked}
