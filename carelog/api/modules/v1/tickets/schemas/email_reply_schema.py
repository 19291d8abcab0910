from typing import Optional

from pydantic import BaseModel


class InboundEmailReply(BaseModel):
    """Fields of a Mailgun inbound-route post used to attach a reply to a ticket."""

    sender: str
    subject: str = ""
    body_plain: str = ""
    reply_to: str = ""
    in_reply_to: Optional[str] = None
    recipient: Optional[str] = None
