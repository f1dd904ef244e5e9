"""Outgoing email for documents and office alerts"""
import logging

from django.conf import settings
from django.core.mail import EmailMessage

logger = logging.getLogger(__name__)


def send_document_email(subject, body, recipients, attachments=None):
    """
    Send an email with optional attachments.

    Args:
        recipients: list of email addresses (empty values are ignored)
        attachments: list of (filename, content_bytes, mimetype) tuples

    Returns the list of recipients actually addressed. Raises ValueError when no
    valid recipient remains; SMTP errors propagate to the caller.
    """
    to = [r.strip() for r in recipients or [] if r and r.strip()]
    if not to:
        raise ValueError('No recipients for email')

    message = EmailMessage(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=to,
    )
    for filename, content, mimetype in attachments or []:
        message.attach(filename, content, mimetype)
    message.send(fail_silently=False)
    logger.info(f"Email '{subject}' sent to {', '.join(to)}")
    return to


def notify_office(subject, body, extra_recipients=None):
    """Best-effort alert to the office mailbox; never raises"""
    recipients = list(getattr(settings, 'OFFICE_NOTIFICATION_EMAILS', [])) + list(extra_recipients or [])
    if not recipients:
        logger.info(f"Office notification skipped (no recipients configured): {subject}")
        return False
    try:
        send_document_email(subject, body, recipients)
        return True
    except Exception as e:
        logger.error(f"Failed to send office notification '{subject}': {str(e)}")
        return False
