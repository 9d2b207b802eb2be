"""eCard operations: creation, lookup, view recording, resend and deletion."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.clock import Clock, utcnow
from app.errors import ArtworkDeleteFailure, InvalidCardRequest, NotFound, PermissionDenied, StorageFailure
from app.models.card import ECard, ViewRecord
from app.models.sender import Sender
from app.schemas.card import CardCreate
from app.services.artwork import ALLOWED_EXTENSIONS, LocalArtworkStore
from app.services.lifecycle import compute_initial_schedule, on_first_view
from app.services.notifications import NotificationSender
from app.services.template_loader import get_active_template

logger = logging.getLogger(__name__)

MAX_USER_AGENT_LENGTH = 500


@dataclass
class ArtUpload:
    """Uploaded custom artwork awaiting storage."""

    filename: str
    stream: BinaryIO
    size: int


def find_or_create_sender(db: Session, name: str, email: str, now) -> Sender:
    """Look up a sender by email, creating one on first use."""
    sender = db.query(Sender).filter(func.lower(Sender.email) == email.lower()).first()
    if sender:
        return sender

    sender = Sender(name=name, email=email, created_date=now)
    db.add(sender)
    db.flush()
    return sender


def validate_art_upload(upload: ArtUpload, max_bytes: int) -> None:
    if Path(upload.filename).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise InvalidCardRequest(f"Unsupported artwork file type: {upload.filename}")
    if upload.size > max_bytes:
        raise InvalidCardRequest(f"Artwork exceeds the {max_bytes} byte upload limit")


def create_card(
    db: Session,
    params: CardCreate,
    artwork_store: LocalArtworkStore,
    clock: Clock = utcnow,
    art_upload: ArtUpload | None = None,
    max_upload_bytes: int = 5 * 1024 * 1024,
) -> ECard:
    """Create an eCard with its initial schedule and expiry."""
    if art_upload is not None and params.premade_art_id:
        raise InvalidCardRequest("Choose either custom artwork or a premade template, not both")

    if params.premade_art_id and not get_active_template(db, params.premade_art_id):
        raise NotFound(f"Premade template {params.premade_art_id} not found")

    if art_upload is not None:
        validate_art_upload(art_upload, max_upload_bytes)

    now = clock()
    scheduled_send_date, expiry_date = compute_initial_schedule(params.scheduled_send_date, now)

    sender = find_or_create_sender(db, params.sender_name, params.sender_email, now)

    card = ECard(
        recipient_name=params.recipient_name,
        recipient_email=params.recipient_email,
        message=params.message,
        premade_art_id=params.premade_art_id,
        scheduled_send_date=scheduled_send_date,
        is_sent=False,
        created_date=now,
        view_count=0,
        expiry_date=expiry_date,
        sender_id=sender.id,
    )

    if art_upload is not None:
        card.custom_art_path = artwork_store.save(art_upload.stream, art_upload.filename)

    db.add(card)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        if card.custom_art_path:
            try:
                artwork_store.delete(card.custom_art_path)
            except ArtworkDeleteFailure as cleanup_error:
                logger.warning(f"Failed to remove art for unsaved ecard: {cleanup_error}")
        raise StorageFailure(f"Failed to create ecard: {e}") from e

    db.refresh(card)
    logger.info(f"Created ecard {card.id}")
    return card


def get_card(db: Session, card_id: str) -> ECard:
    """Get a card with its sender loaded."""
    card = db.query(ECard).options(joinedload(ECard.sender)).filter(ECard.id == card_id).first()
    if not card:
        raise NotFound(f"ECard {card_id} not found")
    return card


def list_cards_for_sender(db: Session, email: str) -> list[ECard]:
    """A sender's cards, newest first. Unknown senders have none."""
    return (
        db.query(ECard)
        .join(Sender, ECard.sender_id == Sender.id)
        .filter(func.lower(Sender.email) == email.lower())
        .order_by(ECard.created_date.desc())
        .all()
    )


def list_cards(db: Session, take: int = 100) -> list[ECard]:
    return (
        db.query(ECard)
        .options(joinedload(ECard.sender))
        .order_by(ECard.created_date.desc())
        .limit(take)
        .all()
    )


def list_view_records(db: Session, take: int = 200) -> list[ViewRecord]:
    return db.query(ViewRecord).order_by(ViewRecord.viewed_date.desc()).limit(take).all()


def record_view(
    db: Session,
    card_id: str,
    clock: Clock = utcnow,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> ECard:
    """Record one recipient view of a card.

    Adds a ViewRecord, increments ``view_count`` in SQL and, on the first
    view only, stamps ``first_viewed_date`` and extends ``expiry_date``. All
    of it commits as one transaction. Every call counts as a view.

    Raises:
        NotFound: if the card does not exist
        StorageFailure: if the read or write fails; nothing is recorded
    """
    try:
        card = db.query(ECard).filter(ECard.id == card_id).first()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to load ecard {card_id} for view: {e}")
        raise StorageFailure(f"Failed to record view for ecard {card_id}") from e

    if not card:
        raise NotFound(f"ECard {card_id} not found")

    now = clock()
    if user_agent:
        user_agent = user_agent[:MAX_USER_AGENT_LENGTH]

    try:
        db.add(ViewRecord(ecard_id=card.id, viewed_date=now, ip_address=ip_address, user_agent=user_agent))

        # Increment in the database so concurrent views never lose an update
        db.query(ECard).filter(ECard.id == card.id).update(
            {ECard.view_count: ECard.view_count + 1},
            synchronize_session=False,
        )

        # Only the first view to commit wins this update
        db.query(ECard).filter(
            ECard.id == card.id,
            ECard.first_viewed_date.is_(None),
        ).update(
            {
                ECard.first_viewed_date: now,
                ECard.expiry_date: on_first_view(card.expiry_date, now),
            },
            synchronize_session=False,
        )

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to record view for ecard {card_id}: {e}")
        raise StorageFailure(f"Failed to record view for ecard {card_id}") from e

    db.refresh(card)
    logger.info(f"ECard {card.id} viewed (total views: {card.view_count})")
    return card


def resend_card(
    db: Session,
    card_id: str,
    notification_sender: NotificationSender,
    clock: Clock = utcnow,
    owner_email: str | None = None,
) -> ECard:
    """Send a card's notification now and mark it sent.

    Raises:
        NotFound: if the card does not exist
        PermissionDenied: if ``owner_email`` is given and does not own the card
        DeliveryFailure: if sending fails; the card is left unchanged
    """
    card = get_card(db, card_id)

    if owner_email is not None and card.sender.email.lower() != owner_email.lower():
        raise PermissionDenied(f"{owner_email} does not own ecard {card_id}")

    notification_sender.send(card, card.sender)

    card.is_sent = True
    card.sent_date = clock()
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageFailure(f"Sent ecard {card_id} but failed to record it: {e}") from e

    db.refresh(card)
    logger.info(f"Resent ecard {card.id} to {card.recipient_email}")
    return card


def delete_card(db: Session, card_id: str, artwork_store: LocalArtworkStore) -> None:
    """Delete a card, its view records and (best effort) its artwork."""
    card = db.query(ECard).filter(ECard.id == card_id).first()
    if not card:
        raise NotFound(f"ECard {card_id} not found")

    if card.custom_art_path:
        try:
            artwork_store.delete(card.custom_art_path)
            logger.info(f"Deleted custom art file: {card.custom_art_path}")
        except ArtworkDeleteFailure as e:
            # Continue with deletion even if file deletion fails
            logger.warning(f"Failed to delete custom art file {card.custom_art_path}: {e}")

    db.query(ViewRecord).filter(ViewRecord.ecard_id == card.id).delete(synchronize_session=False)
    db.delete(card)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageFailure(f"Failed to delete ecard {card_id}: {e}") from e

    logger.info(f"Deleted ecard {card_id}")
