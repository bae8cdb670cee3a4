"""Email notifier via SMTP.

Builds a single stock-alert message for a batch of availability records
and sends it over SMTP.  Supports STARTTLS (587) or SSL (465).  Missing
credentials only disable sending; they never fail a check.
"""

from __future__ import annotations

import html
import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional, Sequence

from . import config
from .availability import Decision, batch_has_stock, evaluate
from .models import AvailabilityRecord
from .utils import DeliveryError, retryable_send

logger = logging.getLogger(__name__)


def product_link(sku: str) -> str:
    return f"{config.PRODUCT_BASE_URL.rstrip('/')}/{sku}/{sku}"


def _yes_no(flag: bool) -> str:
    return "Available" if flag else "Out of Stock"


def _build_subject(count: int) -> str:
    subject = f"STOCK ALERT: {count} Item(s) Available!"
    if config.EMAIL_SUBJECT_PREFIX:
        subject = f"{config.EMAIL_SUBJECT_PREFIX} {subject}"
    return subject


def _build_bodies(decisions: Sequence[Decision]) -> tuple[str, str]:
    """Return (plain_text, html) bodies."""
    plain_blocks = []
    html_blocks = []
    for d in decisions:
        url = product_link(d.sku)
        plain_blocks.append(
            f"SKU: {d.sku}\n"
            f"Shipping: {_yes_no(d.shipping_available)}\n"
            f"Pickup: {_yes_no(d.pickup_available)}\n"
            f"Link: {url}\n"
        )
        html_blocks.append(
            (
                '<div style="border: 1px solid #ccc; padding: 10px; margin-bottom: 10px; border-radius: 5px;">'
                '<h3 style="margin: 0;">SKU: {sku}</h3>'
                "<p><strong>Shipping:</strong> {ship}</p>"
                "<p><strong>Pickup:</strong> {pick}</p>"
                '<a href="{url}" style="background-color: #0046be; color: white; padding: 5px 10px; '
                'text-decoration: none; border-radius: 3px; display: inline-block; margin-top: 5px;">Buy Now</a>'
                "</div>"
            ).format(
                sku=html.escape(d.sku),
                ship=_yes_no(d.shipping_available),
                pick=_yes_no(d.pickup_available),
                url=html.escape(url, quote=True),
            )
        )

    plain = (
        "Stock Detected!\n\nThe following items are now available:\n\n"
        + "\n".join(plain_blocks)
    )
    body = (
        "<html>"
        "<body>"
        "<h2>Stock Detected!</h2>"
        "<p>The following items are now available:</p>"
        "{blocks}"
        '<p style="font-size: 12px; color: #666;">This check ran unattended.</p>'
        "</body>"
        "</html>"
    ).format(blocks="".join(html_blocks))
    return plain, body


def compose_alert(records: Sequence[AvailabilityRecord]) -> Optional[EmailMessage]:
    """Build one alert covering every available record, or None when nothing is in stock."""
    if not batch_has_stock(records):
        return None

    available = [d for d in (evaluate(r) for r in records) if d.any_available]
    plain, body = _build_bodies(available)

    msg = EmailMessage()
    msg["Subject"] = _build_subject(len(available))
    msg["From"] = formataddr((config.EMAIL_FROM_NAME, config.EMAIL_USER or ""))
    msg["To"] = config.EMAIL_TO or config.EMAIL_USER or ""
    msg.set_content(plain)
    msg.add_alternative(body, subtype="html")
    return msg


def credentials_configured() -> bool:
    return bool(config.EMAIL_USER and config.EMAIL_PASS)


@retryable_send
def _deliver(msg: EmailMessage) -> None:
    host, port = config.EMAIL_SMTP_HOST, int(config.EMAIL_SMTP_PORT)
    if port == 465:
        with smtplib.SMTP_SSL(host, port, context=ssl.create_default_context(), timeout=20) as s:
            s.login(config.EMAIL_USER, config.EMAIL_PASS)
            s.send_message(msg)
        return
    with smtplib.SMTP(host, port, timeout=20) as s:
        s.ehlo()
        if config.EMAIL_USE_TLS:
            s.starttls(context=ssl.create_default_context())
            s.ehlo()
        s.login(config.EMAIL_USER, config.EMAIL_PASS)
        s.send_message(msg)


def send_alert(msg: EmailMessage) -> bool:
    """Send `msg`. Returns False when sending was skipped for lack of credentials.

    Raises DeliveryError if the transport fails.
    """
    if not credentials_configured():
        logger.warning("Missing EMAIL_USER or EMAIL_PASS; skipping email.")
        return False

    try:
        _deliver(msg)
    except (smtplib.SMTPException, OSError) as e:
        raise DeliveryError(f"Failed to send email: {e}") from e
    logger.info("Email sent to %s (subject=%s)", msg.get("To"), msg.get("Subject"))
    return True


__all__ = ["compose_alert", "send_alert", "credentials_configured", "product_link"]
