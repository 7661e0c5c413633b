import logging
import uuid
from typing import Any, Optional

import stripe

from donation_gateway.core.config import Settings
from donation_gateway.schemas.checkout import CheckoutRequest, SessionSummary
from donation_gateway.services.stripe_objects import as_dict, custom_full_name, linked_id

logger = logging.getLogger(__name__)

FULL_NAME_FIELD = {
    "key": "full_name",
    "label": {"type": "custom", "custom": "Full name"},
    "type": "text",
    "optional": False,
    "text": {"minimum_length": 1, "maximum_length": 120},
}


def success_url(base: str) -> str:
    sep = "&" if "?" in base else "?"
    return f"{base}{sep}session_id={{CHECKOUT_SESSION_ID}}"


def session_params(req: CheckoutRequest, settings: Settings) -> dict[str, Any]:
    """Keyword arguments for ``stripe.checkout.Session.create``."""
    metadata = {
        "source": "webflow",
        "gift_type": "one-time" if req.mode == "payment" else "monthly",
        "public_display": "true" if req.public_display else "false",
    }
    if req.prayer_request:
        metadata["prayer_request"] = req.prayer_request

    price_data: dict[str, Any] = {
        "currency": req.currency.lower(),
        "unit_amount": req.amount,
    }
    params: dict[str, Any] = {
        "mode": req.mode,
        "success_url": success_url(settings.checkout_success_url),
        "cancel_url": settings.checkout_cancel_url,
        "billing_address_collection": "auto",
        "custom_fields": [FULL_NAME_FIELD],
        "metadata": metadata,
        "submit_type": "donate",
    }

    if req.mode == "payment":
        price_data["product_data"] = {"name": "One-time donation"}
        params["customer_creation"] = "always"
        params["payment_intent_data"] = {"metadata": metadata}
    else:
        price_data["product_data"] = {"name": "Recurring donation"}
        price_data["recurring"] = {
            "interval": req.interval,
            "interval_count": req.interval_count,
        }
        params["subscription_data"] = {"metadata": metadata}

    params["line_items"] = [{"quantity": 1, "price_data": price_data}]
    return params


def create_session(
    req: CheckoutRequest, settings: Settings, idempotency_key: Optional[str] = None
) -> str:
    """Create a hosted Checkout session and return its URL."""
    key = idempotency_key or str(uuid.uuid4())
    session = stripe.checkout.Session.create(
        **session_params(req, settings),
        idempotency_key=key,
        api_key=settings.stripe_secret_key,
    )
    logger.info(f"Created checkout session {session.id} mode={req.mode} amount={req.amount}")
    return session.url


def summarize_session(raw: Any) -> SessionSummary:
    s = as_dict(raw)
    details = s.get("customer_details") or {}
    return SessionSummary(
        id=s["id"],
        mode=s.get("mode"),
        status=s.get("status"),
        payment_status=s.get("payment_status"),
        amount_total=s.get("amount_total"),
        currency=s.get("currency"),
        customer_email=details.get("email") or s.get("customer_email"),
        customer_name=custom_full_name(s) or details.get("name"),
        subscription_id=linked_id(s.get("subscription")),
        payment_intent_id=linked_id(s.get("payment_intent")),
    )


def retrieve_session(session_id: str, settings: Settings) -> SessionSummary:
    session = stripe.checkout.Session.retrieve(
        session_id,
        expand=["payment_intent", "subscription", "customer"],
        api_key=settings.stripe_secret_key,
    )
    return summarize_session(session)
