import hashlib
import hmac
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)


class StripeSignatureError(Exception):
    pass


def _compute(raw_body: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode("utf-8") + raw_body
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def _parse_header(header: str) -> tuple[int, list[str]]:
    timestamp = None
    signatures = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp = int(value)
        elif key == "v1":
            signatures.append(value)
    if timestamp is None or not signatures:
        raise ValueError("missing t or v1")
    return timestamp, signatures


def verify(raw_body: bytes, header: Optional[str], secret: str, tolerance: int = 300) -> None:
    """
    Raise StripeSignatureError if signature invalid.

    The signature covers the exact bytes Stripe sent, so ``raw_body`` must be
    the unparsed request body.
    """
    if not header:
        raise StripeSignatureError("Missing Stripe-Signature header")
    try:
        timestamp, signatures = _parse_header(header)
    except ValueError:
        raise StripeSignatureError("Malformed Stripe-Signature header")

    if tolerance and abs(time.time() - timestamp) > tolerance:
        logger.warning(f"Stripe signature timestamp outside tolerance of {tolerance}s")
        raise StripeSignatureError("Timestamp outside tolerance")

    expected = _compute(raw_body, timestamp, secret)
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise StripeSignatureError("No signatures found matching the expected signature")


def sign(raw_body: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header value for ``raw_body``."""
    if timestamp is None:
        timestamp = int(time.time())
    return f"t={timestamp},v1={_compute(raw_body, timestamp, secret)}"
