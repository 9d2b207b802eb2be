"""Premade template management: YAML seeding and admin CRUD."""
import logging
import uuid
from pathlib import Path

import yaml
from sqlalchemy.orm import Session

from app.models.template import PremadeTemplate

logger = logging.getLogger(__name__)

TEMPLATE_FIELDS = ("name", "category", "icon_emoji", "description", "image_path", "is_active", "sort_order")


def load_premade_templates(db: Session, templates_dir: Path) -> list[PremadeTemplate]:
    """Load all premade templates from YAML files and upsert to database.

    Returns list of loaded/updated PremadeTemplate objects.
    """
    if not templates_dir.exists():
        logger.warning(f"Premade templates directory not found: {templates_dir}")
        return []

    loaded_templates = []

    for yaml_file in sorted(templates_dir.glob("*.yaml")):
        try:
            template = _load_single_template(db, yaml_file)
            if template:
                loaded_templates.append(template)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load premade template from {yaml_file}: {e}")

    db.commit()
    logger.info(f"Loaded {len(loaded_templates)} premade templates")
    return loaded_templates


def _load_single_template(db: Session, yaml_path: Path) -> PremadeTemplate | None:
    """Load a single premade template from a YAML file."""
    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    template_id = data.get("id")
    if not template_id:
        logger.warning(f"Premade template missing id: {yaml_path}")
        return None

    existing = db.get(PremadeTemplate, template_id)

    if existing:
        existing.name = data.get("name", existing.name)
        existing.category = data.get("category", existing.category)
        existing.icon_emoji = data.get("icon_emoji", existing.icon_emoji)
        existing.description = data.get("description")
        existing.image_path = data.get("image_path")
        existing.sort_order = data.get("sort_order", existing.sort_order)
        logger.debug(f"Updated premade template: {template_id}")
        return existing

    template = PremadeTemplate(
        id=template_id,
        name=data.get("name", template_id),
        category=data.get("category", "General"),
        icon_emoji=data.get("icon_emoji", ""),
        description=data.get("description"),
        image_path=data.get("image_path"),
        is_active=data.get("is_active", True),
        sort_order=data.get("sort_order", 0),
    )
    db.add(template)
    logger.debug(f"Created premade template: {template_id}")
    return template


def get_active_templates(db: Session) -> list[PremadeTemplate]:
    """Active templates in display order."""
    return (
        db.query(PremadeTemplate)
        .filter(PremadeTemplate.is_active == True)  # noqa: E712
        .order_by(PremadeTemplate.sort_order, PremadeTemplate.name)
        .all()
    )


def get_active_template(db: Session, template_id: str) -> PremadeTemplate | None:
    """Get an active template by id."""
    return db.query(PremadeTemplate).filter(
        PremadeTemplate.id == template_id,
        PremadeTemplate.is_active == True,  # noqa: E712
    ).first()


def create_template(db: Session, data: dict) -> PremadeTemplate:
    """Create a template; an id is generated when none is given."""
    template_id = data.get("id") or str(uuid.uuid4())
    template = PremadeTemplate(id=template_id, **{k: v for k, v in data.items() if k in TEMPLATE_FIELDS})
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


def update_template(db: Session, template_id: str, data: dict) -> PremadeTemplate | None:
    """Overwrite a template's fields. Returns None if it does not exist."""
    template = db.get(PremadeTemplate, template_id)
    if not template:
        return None

    for field in TEMPLATE_FIELDS:
        if field in data:
            setattr(template, field, data[field])

    db.commit()
    db.refresh(template)
    return template


def deactivate_template(db: Session, template_id: str) -> bool:
    """Soft-delete a template. Returns False if it does not exist."""
    template = db.get(PremadeTemplate, template_id)
    if not template:
        return False

    template.is_active = False
    db.commit()
    return True
