"""
Celery tasks for background processing.

Tasks for license delivery emails.
"""
import logging
from typing import Optional

from django.conf import settings
from django.core.mail import send_mail

from PosLicensingService.celery import app

logger = logging.getLogger(__name__)

LICENSE_EMAIL_SUBJECT = "Your POS license key"


def render_license_email(license_key: str, plan_type: str, expires_at: Optional[str]) -> str:
    """Build the plain-text body of the license email."""
    lines = [
        "Thank you for your subscription.",
        "",
        f"License key: {license_key}",
        f"Plan: {plan_type}",
    ]
    if expires_at:
        lines.append(f"Valid until: {expires_at}")
    lines += ["", "Enter this key on the activation screen of your POS to get started."]
    return "\n".join(lines)


@app.task(bind=True, max_retries=3)
def send_license_email_task(
    self,
    email: str,
    license_key: str,
    plan_type: str,
    expires_at: Optional[str] = None,
):
    """
    Celery task for license email delivery.

    Args:
        email: Recipient
        license_key: Issued license key
        plan_type: Purchased plan
        expires_at: ISO expiration of the first interval
    """
    try:
        send_mail(
            subject=LICENSE_EMAIL_SUBJECT,
            message=render_license_email(license_key, plan_type, expires_at),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[email],
            fail_silently=False,
        )
        logger.info(f"License email sent to {email}")
    except Exception as exc:
        logger.error(f"License email delivery failed: {exc}", exc_info=True)
        raise self.retry(exc=exc, countdown=2 ** self.request.retries)
