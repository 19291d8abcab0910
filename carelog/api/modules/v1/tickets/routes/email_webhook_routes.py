import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, status
from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.core.config import settings
from carelog.api.db.database import get_db
from carelog.api.modules.v1.tickets.schemas.email_reply_schema import InboundEmailReply
from carelog.api.modules.v1.tickets.service.email_reply_service import EmailReplyService
from carelog.api.utils.response_payloads import error_response, success_response
from carelog.api.utils.webhook_signature import verify_mailgun_signature

router = APIRouter(prefix="/webhooks/email", tags=["Webhooks"])
logger = logging.getLogger("app")


@router.post("/reply", status_code=status.HTTP_200_OK)
async def receive_email_reply(
    token: Optional[str] = Form(None),
    timestamp: Optional[str] = Form(None),
    signature: Optional[str] = Form(None),
    sender: str = Form(""),
    subject: str = Form(""),
    body_plain: str = Form("", alias="body-plain"),
    reply_to: str = Form("", alias="Reply-To"),
    in_reply_to: Optional[str] = Form(None, alias="In-Reply-To"),
    recipient: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Mailgun inbound route: attach an e-mail reply to its ticket as a public comment.

    Raises:
        401 Unauthorized: missing or invalid Mailgun signature.
        400 Bad Request: ticket reference or sender profile could not be resolved.
        404 Not Found: referenced ticket does not exist.
    """
    if not token or not timestamp or not signature:
        return error_response(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message="Missing signature",
            error="INVALID_SIGNATURE",
        )

    if not verify_mailgun_signature(
        token,
        timestamp,
        signature,
        settings.MAILGUN_API_KEY,
        max_age_seconds=settings.WEBHOOK_MAX_AGE_SECONDS,
    ):
        return error_response(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message="Invalid signature",
            error="INVALID_SIGNATURE",
        )

    payload = InboundEmailReply(
        sender=sender,
        subject=subject,
        body_plain=body_plain,
        reply_to=reply_to,
        in_reply_to=in_reply_to,
        recipient=recipient,
    )
    result = await EmailReplyService(db).process_reply(payload)
    return success_response(status.HTTP_200_OK, "Email reply processed", result)
