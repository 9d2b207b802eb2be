"""eCards API endpoints."""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import FileResponse, HTMLResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.api.deps import (
    CurrentUser,
    get_artwork_store,
    get_clock,
    get_current_user,
    get_db,
    get_notification_sender,
)
from app.clock import Clock
from app.config import get_settings
from app.errors import DeliveryFailure, InvalidCardRequest, NotFound, PermissionDenied, StorageFailure
from app.schemas.card import (
    AppConfigResponse,
    CardCreate,
    CardDetailResponse,
    CardResponse,
    ResendResponse,
)
from app.services import cards as card_service
from app.services.artwork import LocalArtworkStore, content_type_for
from app.services.email_templates import render_page
from app.services.notifications import NotificationSender

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ecards", tags=["ecards"])
settings = get_settings()

PAGE_TEMPLATES_DIR = settings.base_dir / "templates"


def get_request_ip(request: Request) -> str | None:
    """Extract best-effort client IP for view records."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.get("/config", response_model=AppConfigResponse)
def get_config():
    """Public app configuration for the frontend."""
    return AppConfigResponse(app_name=settings.app_name)


@router.get("/my-cards", response_model=list[CardResponse])
def get_my_cards(
    email: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Get cards sent by the current user."""
    if email.lower() != current_user.email.lower():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only list your own cards",
        )

    return card_service.list_cards_for_sender(db, email)


@router.get("/premade-art", response_model=list[str])
def get_premade_art(
    current_user: CurrentUser = Depends(get_current_user),
    artwork_store: LocalArtworkStore = Depends(get_artwork_store),
):
    """List premade art files."""
    return artwork_store.premade_art_ids()


@router.post("", response_model=CardResponse, status_code=status.HTTP_201_CREATED)
def create_ecard(
    sender_name: str = Form(..., alias="senderName"),
    sender_email: str = Form(..., alias="senderEmail"),
    recipient_name: str = Form(..., alias="recipientName"),
    recipient_email: str = Form(..., alias="recipientEmail"),
    message: str = Form(...),
    scheduled_send_date: datetime | None = Form(None, alias="scheduledSendDate"),
    premade_art_id: str | None = Form(None, alias="premadeArtId"),
    custom_art: UploadFile | None = File(None, alias="customArt"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    artwork_store: LocalArtworkStore = Depends(get_artwork_store),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Create an eCard. Without a scheduled date it is sent on the next delivery pass."""
    if sender_email.lower() != current_user.email.lower():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Sender email must match the signed-in user",
        )

    try:
        params = CardCreate(
            sender_name=sender_name,
            sender_email=sender_email,
            recipient_name=recipient_name,
            recipient_email=recipient_email,
            message=message,
            scheduled_send_date=scheduled_send_date,
            premade_art_id=premade_art_id,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )

    art_upload = None
    if custom_art is not None and custom_art.filename:
        art_upload = card_service.ArtUpload(
            filename=custom_art.filename,
            stream=custom_art.file,
            size=custom_art.size or 0,
        )

    try:
        card = card_service.create_card(
            db,
            params,
            artwork_store,
            clock=clock,
            art_upload=art_upload,
            max_upload_bytes=settings.max_upload_bytes,
        )
    except InvalidCardRequest as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StorageFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return card


@router.get("/{card_id}", response_model=CardDetailResponse)
def get_ecard(
    card_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Get a card with its sender."""
    try:
        return card_service.get_card(db, card_id)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="ECard not found")


@router.get("/{card_id}/view", response_class=HTMLResponse)
def view_ecard(
    card_id: str,
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Record a recipient view and render the card page (no auth required)."""
    try:
        card = card_service.record_view(
            db,
            card_id,
            clock=clock,
            ip_address=get_request_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="ECard not found")
    except StorageFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not record view, please try again",
        )

    art_url = None
    if card.custom_art_path:
        art_url = str(request.url_for("get_card_art", card_id=card.id))
    elif card.premade_art_id:
        art_url = str(request.url_for("get_template_image", template_id=card.premade_art_id))

    html = render_page(
        PAGE_TEMPLATES_DIR,
        "card_view.html.j2",
        app_name=settings.app_name,
        art_url=art_url,
        message=card.message,
        sender_name=card.sender.name,
        sender_email=card.sender.email,
        recipient_name=card.recipient_name,
    )
    return HTMLResponse(content=html)


@router.get("/{card_id}/art", name="get_card_art")
def get_card_art(
    card_id: str,
    db: Session = Depends(get_db),
    artwork_store: LocalArtworkStore = Depends(get_artwork_store),
):
    """Serve a card's custom art (no auth required)."""
    try:
        card = card_service.get_card(db, card_id)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="ECard not found")

    if not card.custom_art_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No custom art for this card")

    try:
        art_file = artwork_store.resolve(card.custom_art_path)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Art file not found")

    return FileResponse(art_file, media_type=content_type_for(card.custom_art_path))


@router.post("/{card_id}/resend", response_model=ResendResponse)
def resend_ecard(
    card_id: str,
    sender_email: str = Query(..., alias="senderEmail", min_length=1),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    notification_sender: NotificationSender = Depends(get_notification_sender),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Resend one of your own cards now."""
    if sender_email.lower() != current_user.email.lower():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Sender email must match the signed-in user",
        )

    try:
        card = card_service.resend_card(
            db, card_id, notification_sender, clock=clock, owner_email=sender_email,
        )
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="eCard not found")
    except PermissionDenied:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not own this eCard")
    except DeliveryFailure as e:
        logger.error(f"Error resending ecard {card_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to resend email: {e}")
    except StorageFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return ResendResponse(message="Email resent successfully", sent_date=card.sent_date)
