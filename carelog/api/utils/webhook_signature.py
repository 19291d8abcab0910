import hashlib
import hmac
import logging
import time
from typing import Optional

logger = logging.getLogger("app")


def verify_mailgun_signature(
    token: str,
    timestamp: str,
    signature: str,
    signing_key: str,
    max_age_seconds: int = 900,
    now: Optional[float] = None,
) -> bool:
    """
    Verify a Mailgun webhook signature.

    Mailgun signs ``timestamp + token`` with HMAC-SHA256 using the account's
    webhook signing key and sends the hex digest as ``signature``.

    Args:
        token: Random token supplied by Mailgun.
        timestamp: Unix timestamp (seconds) supplied by Mailgun.
        signature: Hex digest supplied by Mailgun.
        signing_key: Webhook signing key.
        max_age_seconds: Reject payloads older (or further in the future) than this.
        now: Override for the current time, used by tests.

    Returns:
        bool: True when the payload is fresh and the signature matches.
    """
    if not signing_key:
        logger.error("Mailgun signing key not configured")
        return False

    try:
        request_time = int(timestamp)
    except (TypeError, ValueError):
        logger.warning(f"Malformed Mailgun timestamp: {timestamp!r}")
        return False

    current_time = int(now if now is not None else time.time())
    if abs(current_time - request_time) > max_age_seconds:
        logger.warning(
            f"Mailgun webhook timestamp outside window: {abs(current_time - request_time)}s"
        )
        return False

    expected = hmac.new(
        signing_key.encode("utf-8"),
        f"{timestamp}{token}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(expected, signature or ""):
        logger.warning("Invalid Mailgun signature")
        return False

    return True
