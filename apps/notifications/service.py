"""
Notification service.
Payment confirmations go out by SMS (HTTP SMS gateway) and email (Django mail).
"""

import logging
import requests
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger("trackflow.notifications")


class NotificationService:
    """Send SMS and Email notifications. Fails silently; never blocks the payment flow."""

    def notify(self, phone_or_email: str, message: str) -> bool:
        """Route to email or SMS depending on the address. Returns True on success."""
        if not phone_or_email:
            return False
        if "@" in phone_or_email:
            return self.send_email(phone_or_email, "TrackFlow payment update", message)
        return self.send_sms(phone_or_email, message)

    def send_sms(self, phone: str, message: str) -> bool:
        try:
            resp = requests.post(
                f"{settings.SMS_GATEWAY_URL}/send",
                json={"phone": phone, "message": message},
                timeout=3,
            )
            if resp.status_code == 200:
                logger.info("SMS sent to %s", phone)
                return True
            logger.warning("SMS gateway returned %s for %s", resp.status_code, phone)
        except requests.RequestException as exc:
            logger.warning("SMS failed for %s: %s", phone, exc)
        return False

    def send_email(self, email: str, subject: str, body: str) -> bool:
        try:
            sent = send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [email])
        except Exception as exc:
            logger.warning("Email failed for %s: %s", email, exc)
            return False
        logger.info("EMAIL → %s | Subject: %s", email, subject)
        return bool(sent)
