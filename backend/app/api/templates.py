"""Premade template API endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.api.deps import CurrentUser, get_artwork_store, get_current_user, get_db
from app.schemas.template import TemplateResponse
from app.services.artwork import LocalArtworkStore, content_type_for
from app.services.template_loader import get_active_template, get_active_templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=list[TemplateResponse])
def get_templates(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Get all active premade templates."""
    return get_active_templates(db)


@router.get("/{template_id}", response_model=TemplateResponse)
def get_template(
    template_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Get a specific template by id."""
    template = get_active_template(db, template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return template


@router.get("/{template_id}/image", name="get_template_image")
def get_template_image(
    template_id: str,
    db: Session = Depends(get_db),
    artwork_store: LocalArtworkStore = Depends(get_artwork_store),
):
    """Serve a template's image (no auth required)."""
    template = get_active_template(db, template_id)
    if not template or not template.image_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template image not found")

    try:
        image_file = artwork_store.resolve(template.image_path)
    except FileNotFoundError:
        logger.warning(f"Template image file not found: {template.image_path}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image file not found on disk")

    return FileResponse(image_file, media_type=content_type_for(template.image_path))
