"""Jinja2 rendering for notification emails and the public card page."""
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound, select_autoescape

from app.errors import TemplateRenderError

logger = logging.getLogger(__name__)


@dataclass
class RenderedEmail:
    subject: str
    html_body: str
    text_body: str | None = None


@lru_cache
def get_environment(templates_dir: Path) -> Environment:
    """Build (once per directory) the Jinja2 environment for a templates directory."""
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(enabled_extensions=("html.j2",), default_for_string=False),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_email(templates_dir: Path, template_key: str, variables: dict[str, str]) -> RenderedEmail:
    """Render ``<key>.subject.j2``, ``<key>.html.j2`` and optional ``<key>.text.j2``.

    Raises:
        TemplateRenderError: if the subject or HTML template is missing or fails to render
    """
    env = get_environment(Path(templates_dir))

    try:
        subject_template = env.get_template(f"{template_key}.subject.j2")
        html_template = env.get_template(f"{template_key}.html.j2")
    except TemplateNotFound as e:
        logger.warning(f"Email template files for '{template_key}' not found")
        raise TemplateRenderError(f"Email template '{template_key}' not found") from e

    try:
        text_template = env.get_template(f"{template_key}.text.j2")
    except TemplateNotFound:
        text_template = None

    try:
        subject = subject_template.render(**variables).strip()
        html_body = html_template.render(**variables)
        text_body = text_template.render(**variables) if text_template else None
    except Exception as e:
        logger.error(f"Error rendering email template '{template_key}': {e}")
        raise TemplateRenderError(f"Failed to render email template '{template_key}'") from e

    return RenderedEmail(subject=subject, html_body=html_body, text_body=text_body)


def render_page(templates_dir: Path, template_name: str, **context) -> str:
    """Render an HTML page template with autoescaping."""
    env = get_environment(Path(templates_dir))
    return env.get_template(template_name).render(**context)
