import logging

from donation_gateway.core.config import Settings
from donation_gateway.schemas.webhook import EventKind, ForwardPayload, InboundEvent, WebhookAck
from donation_gateway.services import formatting
from donation_gateway.services.forwarder import (
    build_checkout_payload,
    build_invoice_payload,
    dispatch,
)

logger = logging.getLogger(__name__)


def process_event(event: InboundEvent, settings: Settings) -> WebhookAck:
    """Handle a verified event; forwarding outcome never changes the ack."""
    kind = event.kind
    obj = event.data.object

    if kind is EventKind.CHECKOUT_COMPLETED:
        email = (obj.get("customer_details") or {}).get("email") or obj.get("customer_email")
        if formatting.is_excluded(email, settings.excluded_emails):
            logger.info(f"Skipped {event.type} {obj['id']}: excluded email")
            return WebhookAck(skipped="excluded_email")
        payload = build_checkout_payload(event, obj)

    elif kind is EventKind.INVOICE_PAID:
        if not settings.forward_invoice_paid:
            logger.info("invoice.paid forwarding disabled via FORWARD_INVOICE_PAID")
            return WebhookAck(skipped="invoice_forward_off")
        if formatting.is_excluded(obj.get("customer_email"), settings.excluded_emails):
            logger.info(f"Skipped {event.type} {obj['id']}: excluded email")
            return WebhookAck(skipped="excluded_email")
        payload = build_invoice_payload(event, obj)

    else:
        logger.info(f"Unhandled event type {event.type} ({event.id})")
        return WebhookAck()

    _log_payload(payload)
    dispatch(payload, settings)
    return WebhookAck()


def _log_payload(payload: ForwardPayload) -> None:
    logger.info(
        f"{payload.event_type} {payload.object_id}: amount={payload.amount} "
        f"currency={payload.currency} subscription={payload.is_subscription}"
    )
