"""Notification delivery for eCards (email over SMTP)."""
import logging
import re
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Protocol

from app.config import Settings
from app.errors import DeliveryFailure, TemplateRenderError
from app.models.card import ECard
from app.models.sender import Sender
from app.services.email_templates import RenderedEmail, render_email

logger = logging.getLogger(__name__)

NOTIFICATION_TEMPLATE = "ecard-notification"


class NotificationSender(Protocol):
    """Delivers the "you have an eCard" notification to a recipient.

    ``send`` returns on confirmed delivery and raises on any failure.
    """

    def send(self, card: ECard, sender: Sender) -> None: ...


def build_view_url(frontend_url: str, card_id: str) -> str:
    return f"{frontend_url.rstrip('/')}/view/{card_id}"


def build_template_variables(card: ECard, sender: Sender, view_url: str, app_name: str) -> dict[str, str]:
    """Variables available to the notification templates."""
    return {
        "RecipientName": card.recipient_name,
        "SenderName": sender.name,
        "SenderEmail": sender.email,
        "CardMessage": card.message,
        "ViewUrl": view_url,
        "AppName": app_name,
    }


def html_to_text(html_content: str) -> str:
    """Crude plain-text fallback for an HTML body."""
    plain_text = html_content.replace("<br>", "\n").replace("</p>", "\n\n")
    return re.sub(r"<[^>]+>", "", plain_text)


def build_message(
    rendered: RenderedEmail,
    from_email: str,
    from_name: str,
    to_email: str,
    to_name: str,
) -> MIMEMultipart:
    """Assemble a multipart/alternative email from rendered templates."""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = rendered.subject
    msg["From"] = formataddr((from_name, from_email))
    msg["To"] = formataddr((to_name, to_email))

    msg.attach(MIMEText(rendered.text_body or html_to_text(rendered.html_body), "plain", "utf-8"))
    msg.attach(MIMEText(rendered.html_body, "html", "utf-8"))
    return msg


class EmailNotificationSender:
    """Renders the eCard notification and sends it over SMTP."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, card: ECard, sender: Sender) -> None:
        settings = self.settings
        if not settings.frontend_url:
            raise DeliveryFailure(f"FRONTEND_URL is not configured; cannot build view URL for card {card.id}")

        view_url = build_view_url(settings.frontend_url, card.id)
        variables = build_template_variables(card, sender, view_url, settings.app_name)

        try:
            rendered = render_email(settings.email_templates_dir, NOTIFICATION_TEMPLATE, variables)
        except TemplateRenderError as e:
            raise DeliveryFailure(str(e)) from e

        logger.info(
            f"Email notification prepared: To: {card.recipient_name} ({card.recipient_email}), "
            f"Subject: {rendered.subject}"
        )
        logger.debug(f"Email HTML body length: {len(rendered.html_body)} characters")

        if settings.email_dry_run:
            logger.info(
                f"Dry run: not sending ecard {card.id} from {sender.name} ({sender.email}) "
                f"to {card.recipient_email}. View URL: {view_url}"
            )
            return

        if not settings.smtp_host:
            raise DeliveryFailure("SMTP_HOST is not configured")

        msg = build_message(
            rendered,
            from_email=settings.smtp_from_email,
            from_name=settings.smtp_from_name or settings.app_name,
            to_email=card.recipient_email,
            to_name=card.recipient_name,
        )

        try:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
                if settings.smtp_use_tls:
                    server.starttls()
                if settings.smtp_username and settings.smtp_password:
                    server.login(settings.smtp_username, settings.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryFailure(f"Failed to send email for ecard {card.id}: {e}") from e

        logger.info(f"Email sent successfully to {card.recipient_email}")
