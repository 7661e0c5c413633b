import logging
from typing import Optional

import httpx

from donation_gateway.celery_app import celery
from donation_gateway.errors import ForwardingFailure

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Forward-Signature"


def post_payload(url: str, body: str, signature: Optional[str], timeout: float) -> int:
    """POST ``body`` verbatim; raise ForwardingFailure on error or non-2xx."""
    headers = {"Content-Type": "application/json"}
    if signature:
        headers[SIGNATURE_HEADER] = signature
    try:
        r = httpx.post(url, content=body.encode("utf-8"), headers=headers, timeout=timeout)
    except httpx.HTTPError as exc:
        raise ForwardingFailure(f"forward error: {exc}") from exc
    if not 200 <= r.status_code < 300:
        raise ForwardingFailure(
            f"forward failed with {r.status_code}: {r.text[:200]}", r.status_code
        )
    return r.status_code


@celery.task(bind=True, ignore_result=True)
def forward_payload(self, url: str, body: str, signature: Optional[str] = None, timeout: float = 10.0):
    # Single attempt: the upstream webhook was already acknowledged.
    if self.request.id:
        logger.info(f"Forward task ID: {self.request.id}")
    try:
        code = post_payload(url, body, signature, timeout)
    except ForwardingFailure as exc:
        logger.error(f"Forwarding to automation hook failed: {exc}")
        return {"status": exc.status_code}
    logger.info(f"Forwarded payload, hook answered {code}")
    return {"status": code}
