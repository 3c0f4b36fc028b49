"""
Outbound mail.

Two transports are used: the Brevo HTTP API for OTP and account mail, and
SMTP for booking, reservation and marketing notifications. Both raise
ExternalServiceError on failure; callers decide whether that failure reaches
the client or is only logged.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Awaitable, Iterable, Optional, Set

import httpx

from app.config import settings
from app.utils.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"
MAIL_TIMEOUT_SECONDS = 30

# Strong references to background sends so they are not garbage collected mid-flight.
_background_tasks: Set[asyncio.Task] = set()


async def send_brevo_email(to: str, subject: str, html: str, text: Optional[str] = None,
                           name: Optional[str] = None) -> str:
    """
    Send a transactional mail through the Brevo HTTP API.

    Returns:
        Brevo message id

    Raises:
        ExternalServiceError: If Brevo is not configured or rejects the request
    """
    if not settings.brevo_api_key or not settings.brevo_email:
        raise ExternalServiceError("Brevo", "mail service is not configured")

    recipient = {"email": to}
    if name:
        recipient["name"] = name
    payload = {
        "sender": {"name": settings.app_name, "email": settings.brevo_email},
        "to": [recipient],
        "subject": subject,
        "htmlContent": html,
        "textContent": text or subject,
    }

    try:
        async with httpx.AsyncClient(timeout=MAIL_TIMEOUT_SECONDS) as client:
            response = await client.post(
                BREVO_SEND_URL,
                json=payload,
                headers={"api-key": settings.brevo_api_key, "accept": "application/json"},
            )
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"Brevo rejected mail to {to}: {e.response.status_code} {e.response.text}")
        raise ExternalServiceError("Brevo", f"status {e.response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"Brevo mail to {to} failed: {e}")
        raise ExternalServiceError("Brevo", str(e))

    message_id = response.json().get("messageId", "")
    logger.info(f"Brevo mail '{subject}' sent to {to} ({message_id})")
    return message_id


def _deliver_smtp(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=MAIL_TIMEOUT_SECONDS) as smtp:
        smtp.starttls()
        smtp.login(settings.smtp_user, settings.smtp_pass)
        smtp.send_message(message)


async def send_smtp_email(to: str, subject: str, html: str, text: Optional[str] = None,
                          bcc: Optional[Iterable[str]] = None) -> None:
    """
    Send an HTML mail over SMTP without blocking the event loop.

    Raises:
        ExternalServiceError: If SMTP is not configured or delivery fails
    """
    if not settings.smtp_configured:
        raise ExternalServiceError("SMTP", "credentials not configured")

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = f"{settings.app_name} <{settings.smtp_user}>"
    message["To"] = to
    if bcc:
        message["Bcc"] = ", ".join(bcc)
    message.set_content(text or subject)
    message.add_alternative(html, subtype="html")

    try:
        await asyncio.to_thread(_deliver_smtp, message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP mail '{subject}' to {to} failed: {e}")
        raise ExternalServiceError("SMTP", str(e))

    logger.info(f"SMTP mail '{subject}' sent to {to}")


async def send_admin_email(subject: str, html: str, text: Optional[str] = None) -> None:
    """Notify the configured admin address; raises like send_smtp_email."""
    if not settings.admin_email:
        raise ExternalServiceError("SMTP", "ADMIN_EMAIL not configured")
    await send_smtp_email(settings.admin_email, subject, html, text)


async def _log_failure(coro: Awaitable, description: str) -> None:
    try:
        await coro
    except ExternalServiceError as e:
        logger.warning(f"{description} not sent: {e.detail}")
    except Exception as e:
        logger.error(f"{description} failed unexpectedly: {e}", exc_info=True)


def send_in_background(coro: Awaitable, description: str) -> asyncio.Task:
    """Schedule a mail send without waiting for it; failures are logged only."""
    task = asyncio.create_task(_log_failure(coro, description))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def send_best_effort(coro: Awaitable, description: str) -> bool:
    """Await a mail send and report success instead of raising."""
    try:
        await coro
        return True
    except ExternalServiceError as e:
        logger.warning(f"{description} not sent: {e.detail}")
        return False
