"""Card lifecycle policy: expiry windows and delivery/purge eligibility.

Pure functions, shared by card creation, the view recorder, the retention
sweeper and the delivery scheduler.
"""
from datetime import datetime, timedelta

from sqlalchemy import and_

from app.models.card import ECard

# Explicitly scheduled cards need a buffer to reach their send date.
SCHEDULED_RETENTION = timedelta(days=30)
# Send-ASAP cards are delivered and viewed soon after creation.
ASAP_RETENTION = timedelta(days=14)
# Retention measured from the recipient's first view.
VIEWED_RETENTION = timedelta(days=14)


def compute_initial_schedule(
    scheduled_send_date: datetime | None,
    created_at: datetime,
) -> tuple[datetime, datetime]:
    """Compute the effective send date and expiry for a new card.

    Args:
        scheduled_send_date: Send date chosen by the sender, or None to send ASAP
        created_at: Card creation time

    Returns:
        Tuple of (effective_scheduled_send_date, expiry_date)
    """
    if scheduled_send_date is not None:
        return scheduled_send_date, created_at + SCHEDULED_RETENTION

    # No schedule: due immediately so the next delivery pass picks it up
    return created_at, created_at + ASAP_RETENTION


def on_first_view(current_expiry: datetime, viewed_at: datetime) -> datetime:
    """Expiry after the card's first view.

    Only called while ``first_viewed_date`` is still unset. The result is
    clamped so expiry never moves earlier than ``current_expiry``.
    """
    return max(current_expiry, viewed_at + VIEWED_RETENTION)


def is_expired(card: ECard, now: datetime) -> bool:
    """Whether a card is due for purge."""
    return now >= card.expiry_date


def is_due_for_delivery(card: ECard, now: datetime) -> bool:
    """Whether a card should be picked up by the next delivery pass."""
    return (
        not card.is_sent
        and card.scheduled_send_date is not None
        and card.scheduled_send_date <= now
    )


def expired_filter(now: datetime):
    """SQL filter matching ``is_expired``."""
    return ECard.expiry_date <= now


def due_for_delivery_filter(now: datetime):
    """SQL filter matching ``is_due_for_delivery``."""
    return and_(
        ECard.is_sent == False,  # noqa: E712
        ECard.scheduled_send_date.is_not(None),
        ECard.scheduled_send_date <= now,
    )
