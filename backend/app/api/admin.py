"""Admin API endpoints (requires the admin role)."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps import (
    get_artwork_store,
    get_clock,
    get_db,
    get_notification_sender,
    require_admin,
)
from app.clock import Clock
from app.errors import DeliveryFailure, NotFound, StorageFailure
from app.models.template import PremadeTemplate
from app.schemas.card import CardDetailResponse, MessageResponse, ResendResponse, ViewRecordResponse
from app.schemas.template import TemplateResponse, TemplateWrite
from app.services import cards as card_service
from app.services import template_loader
from app.services.artwork import LocalArtworkStore
from app.services.notifications import NotificationSender

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/ecards", response_model=list[CardDetailResponse])
def get_ecards(
    take: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Most recent cards across all senders."""
    return card_service.list_cards(db, take)


@router.get("/viewaudits", response_model=list[ViewRecordResponse])
def get_view_audits(
    take: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Most recent view records."""
    return card_service.list_view_records(db, take)


# Template management

@router.get("/templates", response_model=list[TemplateResponse])
def get_templates(db: Session = Depends(get_db)):
    return template_loader.get_active_templates(db)


@router.post("/templates", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
def create_template(template_data: TemplateWrite, db: Session = Depends(get_db)):
    if template_data.id and db.get(PremadeTemplate, template_data.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Template id already exists")
    return template_loader.create_template(db, template_data.model_dump())


@router.put("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_template(template_id: str, template_data: TemplateWrite, db: Session = Depends(get_db)):
    data = template_data.model_dump(exclude={"id"})
    if not template_loader.update_template(db, template_id, data):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(template_id: str, db: Session = Depends(get_db)):
    if not template_loader.deactivate_template(db, template_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")


# Card management

@router.post("/ecards/{card_id}/resend", response_model=ResendResponse)
def resend_ecard(
    card_id: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notification_sender: NotificationSender = Depends(get_notification_sender),
):
    """Resend any card now."""
    try:
        card = card_service.resend_card(db, card_id, notification_sender, clock=clock)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="eCard not found")
    except DeliveryFailure as e:
        logger.error(f"Error resending ecard {card_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to resend email: {e}")
    except StorageFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    logger.info(f"Admin resent ecard {card.id} to {card.recipient_email}")
    return ResendResponse(message="Email resent successfully", sent_date=card.sent_date)


@router.delete("/ecards/{card_id}", response_model=MessageResponse)
def delete_ecard(
    card_id: str,
    db: Session = Depends(get_db),
    artwork_store: LocalArtworkStore = Depends(get_artwork_store),
):
    """Delete a card, its view records and its artwork."""
    try:
        card_service.delete_card(db, card_id, artwork_store)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="eCard not found")
    except StorageFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Failed to delete eCard: {e}")

    return MessageResponse(message="eCard deleted successfully")
