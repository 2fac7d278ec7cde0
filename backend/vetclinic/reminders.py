"""Utility functions for delivering appointment messages via email and SMS."""

import logging

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.rest import Client as TwilioClient

from . import config

logger = logging.getLogger(__name__)


def send_email_reminder(to_email: str, subject: str, body: str) -> None:
    """Send an email using SendGrid.

    Requires the ``SENDGRID_API_KEY`` environment variable. Without it the
    message is logged and skipped. Delivery errors propagate to the caller.
    """
    if not config.SENDGRID_API_KEY:
        logger.info("SENDGRID_API_KEY not set; skipping email to %s", to_email)
        return
    message = Mail(
        from_email=config.REMINDER_EMAIL,
        to_emails=to_email,
        subject=subject,
        plain_text_content=body,
    )
    SendGridAPIClient(config.SENDGRID_API_KEY).send(message)


def send_sms_reminder(to_phone: str, body: str) -> None:
    """Send an SMS using Twilio.

    Requires ``TWILIO_SID``, ``TWILIO_AUTH_TOKEN``, and ``TWILIO_PHONE_NUMBER``.
    Missing configuration results in a log message.
    """
    if not all([config.TWILIO_SID, config.TWILIO_AUTH_TOKEN, config.TWILIO_PHONE_NUMBER]):
        logger.info("Twilio credentials not set; skipping SMS to %s", to_phone)
        return
    client = TwilioClient(config.TWILIO_SID, config.TWILIO_AUTH_TOKEN)
    client.messages.create(body=body, from_=config.TWILIO_PHONE_NUMBER, to=to_phone)


__all__ = ["send_email_reminder", "send_sms_reminder"]
