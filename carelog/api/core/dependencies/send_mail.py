import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

import aiosmtplib
from pydantic import BaseModel

from carelog.api.core.config import settings
from carelog.api.core.dependencies.email.mailer_templates import email_templates

logger = logging.getLogger("app")


class EmailResult(BaseModel):
    success: bool
    error: Optional[str] = None


def render_email(template_name: str, context: Dict[str, Any]) -> str:
    """Render one of the HTML e-mail templates with the given context."""
    template = email_templates.get_template(template_name)
    return template.render(**context)


def ticket_reply_address(ticket_id) -> Optional[str]:
    """Reply-to address that routes e-mail replies back onto the ticket."""
    if not settings.MAILGUN_DOMAIN:
        return None
    return f"ticket-{ticket_id}@{settings.MAILGUN_DOMAIN}"


async def send_email(
    to: str, subject: str, html: str, reply_to: Optional[str] = None
) -> EmailResult:
    """
    Send an HTML e-mail through the Mailgun SMTP relay.

    Never raises: delivery problems are logged and reported in the result.
    """
    if not settings.MAIL_CONFIGURED:
        logger.warning(f"Email service not configured, skipping mail to {to}")
        return EmailResult(success=False, error="Email service not configured")

    if not to or to == "None":
        logger.error(f"Invalid recipient email: {to}")
        return EmailResult(success=False, error="Invalid recipient")

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.MAIL_SENDER
        msg["To"] = to
        if reply_to:
            msg["Reply-To"] = reply_to

        msg.attach(MIMEText(html, "html"))

        await aiosmtplib.send(
            msg,
            hostname=settings.SMTP_SERVER,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.MAILGUN_SMTP_PASSWORD,
            start_tls=True,
        )

        logger.info(f"Email sent successfully to {to}")
        return EmailResult(success=True)

    except Exception as e:
        logger.error(f"Failed to send email to {to}: {str(e)}", exc_info=True)
        return EmailResult(success=False, error=str(e))
