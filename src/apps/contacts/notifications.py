"""Operator notifications for new contact submissions."""

import logging
from urllib.parse import urlencode

from django.conf import settings
from django.core.mail import EmailMessage

from .display import coordinates_display, location_display

logger = logging.getLogger(__name__)


async def send_contact_notification(record_id: str, submission: dict) -> None:
    """Email the team when a contact form submission has been stored."""
    recipients: list[str] = getattr(settings, "CONTACT_NOTIFICATION_EMAILS", [])

    if not recipients:
        logger.warning("No CONTACT_NOTIFICATION_EMAILS configured, skipping notification.")
        return

    visitor_data = submission.get("visitor_data") or {}
    location = visitor_data.get("location")
    device = visitor_data.get("deviceDetails") or {}
    submitted_at = submission.get("submitted_at")
    submitted_display = f"{submitted_at:%Y-%m-%d %H:%M}" if submitted_at else "Unknown"

    subject = f"New Contact Submission from {submission['name']}"
    body = (
        f"New contact form submission received:\n\n"
        f"Name: {submission['name']}\n"
        f"Email: {submission['email']}\n"
        f"Message:\n{submission['message']}\n\n"
        f"IP: {visitor_data.get('ip') or 'Not available'}\n"
        f"Location: {location_display(location)}\n"
        f"Coordinates: {coordinates_display(location) or 'Not shared'}\n"
        f"Device: {device.get('platform') or 'Unknown'}\n\n"
        f"Submitted: {submitted_display}\n\n"
        f"View in dashboard: {settings.SITE_URL}/dashboard/submissions/?{urlencode({'q': submission['email']})}\n"
    )

    try:
        msg = EmailMessage(
            subject=subject,
            body=body,
            to=recipients,
            reply_to=[f"{submission['name']} <{submission['email']}>"],
        )
        msg.send(fail_silently=False)
        logger.info("Contact notification sent to %s for submission #%s", recipients, record_id)
    except Exception:
        logger.exception("Failed to send contact notification for submission #%s", record_id)
