import hashlib
import hmac
import logging
from typing import Any

from donation_gateway.core.config import Settings
from donation_gateway.schemas.webhook import ForwardPayload, InboundEvent
from donation_gateway.services import formatting
from donation_gateway.services.stripe_objects import (
    custom_full_name,
    linked_id,
    subscription_details,
)
from donation_gateway.tasks import forward_payload

logger = logging.getLogger(__name__)


def build_checkout_payload(event: InboundEvent, session: dict[str, Any]) -> ForwardPayload:
    details = session.get("customer_details") or {}
    email = details.get("email") or session.get("customer_email") or ""
    full_name = custom_full_name(session) or details.get("name")
    name = formatting.display_name(full_name, email)
    is_subscription = session.get("mode") == "subscription"
    currency = (session.get("currency") or "").upper()
    amount = session.get("amount_total")
    address = details.get("address") or {}

    display_text = None
    if isinstance(amount, int):
        display_text = formatting.donation_text(
            name, formatting.format_amount(amount, currency), is_subscription
        )

    return ForwardPayload(
        event_id=event.id,
        event_type=event.type,
        object_id=session["id"],
        session_id=session["id"],
        created=event.created,
        mode=session.get("mode"),
        is_subscription=is_subscription,
        amount=amount,
        currency=currency,
        customer_email_hash=formatting.hash_email(email),
        display_name=name,
        customer_name_initials=formatting.initials(full_name),
        country=address.get("country"),
        prayer_request=formatting.sanitize_text((session.get("metadata") or {}).get("prayer_request")),
        subscription=linked_id(session.get("subscription")),
        display_text=display_text,
    )


def build_invoice_payload(event: InboundEvent, invoice: dict[str, Any]) -> ForwardPayload:
    email = invoice.get("customer_email") or ""
    name = formatting.display_name(invoice.get("customer_name"), email)
    currency = (invoice.get("currency") or "").upper()
    amount = invoice.get("amount_paid")

    display_text = None
    if isinstance(amount, int):
        display_text = formatting.donation_text(
            name, formatting.format_amount(amount, currency), recurring=True
        )

    return ForwardPayload(
        event_id=event.id,
        event_type=event.type,
        object_id=invoice["id"],
        invoice_id=invoice["id"],
        created=event.created,
        is_subscription=True,
        amount=amount,
        currency=currency,
        customer_email_hash=formatting.hash_email(email),
        display_name=name,
        customer_name_initials=formatting.initials(invoice.get("customer_name")),
        subscription=linked_id(invoice.get("subscription") or subscription_details(invoice).get("subscription")),
        display_text=display_text,
    )


def sign_body(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def dispatch(payload: ForwardPayload, settings: Settings) -> bool:
    """Queue ``payload`` for the automation hook. Never raises.

    Returns True when a forward was queued.
    """
    if not settings.forward_hook_url:
        return False

    # Serialize once; the HMAC covers exactly these bytes.
    body = payload.model_dump_json()
    signature = None
    if settings.forward_hmac_secret:
        signature = sign_body(body.encode("utf-8"), settings.forward_hmac_secret)

    try:
        result = forward_payload.delay(
            settings.forward_hook_url, body, signature, settings.forward_timeout
        )
        logger.info(f"Queued forward for {payload.event_type} {payload.object_id} as task {result.id}")
    except Exception as e:
        logger.error(f"Failed to queue forward task: {e}", exc_info=True)
        return False
    return True
