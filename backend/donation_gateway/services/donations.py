"""
Public feed of recent donations.

The Stripe event log is the source of truth: each request lists the most
recent ``checkout.session.completed`` and ``invoice.paid`` events, keeps the
ones that are paid, not excluded and publicly consented, collapses events that
describe the same payment, and renders sentences that show only a first
name and last initial.
"""
import logging
import re
from typing import Any, Iterable, Optional

import stripe
from pydantic import BaseModel

from donation_gateway.core.config import Settings
from donation_gateway.schemas.webhook import EventKind
from donation_gateway.services import formatting
from donation_gateway.services.stripe_objects import (
    as_dict,
    custom_full_name,
    linked_id,
    subscription_details,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 50
CONSENT_KEY = "public_display"
CONSENT_VALUES = {"true", "yes", "1", "on"}
FEED_EVENT_TYPES = [EventKind.CHECKOUT_COMPLETED.value, EventKind.INVOICE_PAID.value]
_LEADING_INT = re.compile(r"\s*[+-]?\d+")


class DonationFeedItem(BaseModel):
    name: str
    text: str
    ts: int


class FeedCandidate(BaseModel):
    kind: EventKind
    payment_ids: tuple[str, ...]
    paid: bool
    email: str = ""
    name: Optional[str] = None
    amount: int = 0
    currency: str = "usd"
    recurring: bool = False
    consented: bool = False
    ts: int

    def to_item(self) -> DonationFeedItem:
        name = formatting.display_name(self.name, self.email)
        amount = formatting.format_amount(self.amount, self.currency)
        return DonationFeedItem(
            name=name,
            text=formatting.donation_text(name, amount, self.recurring),
            ts=self.ts,
        )


def clamp_limit(raw: Any) -> int:
    # Leading integer only, so "3.5" and "12abc" read as 3 and 12.
    match = _LEADING_INT.match(str(raw)) if raw is not None else None
    if not match:
        return DEFAULT_LIMIT
    limit = int(match.group())
    if limit == 0:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, limit))


def cache_control(seconds: int) -> str:
    # Edge-cache hint only.
    if seconds <= 0:
        return "no-store"
    return f"public, s-maxage={seconds}, stale-while-revalidate={seconds * 2}"


def _consented(*metadatas: Optional[dict[str, Any]]) -> bool:
    for metadata in metadatas:
        value = str((metadata or {}).get(CONSENT_KEY, "")).strip().lower()
        if value in CONSENT_VALUES:
            return True
    return False


def _ids(*ids: Any) -> tuple[str, ...]:
    # Payment-intent id first: several sessions can end in one payment.
    return tuple(i for i in (linked_id(v) for v in ids) if i)


def candidate_from_event(event: dict[str, Any]) -> Optional[FeedCandidate]:
    kind = EventKind.of(event.get("type", ""))
    obj = as_dict((event.get("data") or {}).get("object") or {})
    ts = int(event.get("created") or 0)

    if kind is EventKind.CHECKOUT_COMPLETED:
        details = obj.get("customer_details") or {}
        amount = obj.get("amount_total")
        if amount is None:
            amount = obj.get("amount_subtotal") or 0
        return FeedCandidate(
            kind=kind,
            payment_ids=_ids(obj.get("payment_intent"), obj.get("invoice"), obj.get("id")),
            paid=obj.get("payment_status") == "paid",
            email=details.get("email") or obj.get("customer_email") or "",
            name=custom_full_name(obj) or details.get("name"),
            amount=amount,
            currency=obj.get("currency") or "usd",
            recurring=obj.get("mode") == "subscription",
            consented=_consented(obj.get("metadata")),
            ts=ts,
        )

    if kind is EventKind.INVOICE_PAID:
        # Only the first invoice of a subscription is announced; renewals are not.
        if obj.get("billing_reason") != "subscription_create":
            return None
        amount = obj.get("amount_paid")
        if amount is None:
            amount = obj.get("total") or 0
        return FeedCandidate(
            kind=kind,
            payment_ids=_ids(obj.get("payment_intent"), obj.get("id")),
            paid=obj.get("status", "paid") == "paid",
            email=obj.get("customer_email") or "",
            name=obj.get("customer_name"),
            amount=amount,
            currency=obj.get("currency") or "usd",
            recurring=True,
            consented=_consented(obj.get("metadata"), subscription_details(obj).get("metadata")),
            ts=ts,
        )

    return None


def build_feed(
    events: Iterable[dict[str, Any]],
    limit: int,
    excluded: frozenset[str],
    bypass_consent: bool = False,
) -> list[DonationFeedItem]:
    candidates = []
    for event in events:
        try:
            candidate = candidate_from_event(event)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping unreadable event {event.get('id')}: {e}")
            continue
        if candidate is None:
            continue
        if not candidate.paid:
            continue
        if formatting.is_excluded(candidate.email, excluded):
            continue
        if not (candidate.consented or bypass_consent):
            continue
        candidates.append(candidate)

    # Checkout-derived candidates claim their payment ids before invoices do.
    candidates.sort(key=lambda c: c.kind is not EventKind.CHECKOUT_COMPLETED)
    seen: set[str] = set()
    accepted = []
    for candidate in candidates:
        if not candidate.payment_ids or seen.intersection(candidate.payment_ids):
            continue
        seen.update(candidate.payment_ids)
        accepted.append(candidate)

    accepted.sort(key=lambda c: c.ts, reverse=True)
    return [c.to_item() for c in accepted[:limit]]


def fetch_events(settings: Settings) -> list[dict[str, Any]]:
    """Recent feed-relevant events; raises stripe.StripeError upstream."""
    page = stripe.Event.list(
        types=FEED_EVENT_TYPES,
        limit=settings.feed_fetch_limit,
        api_key=settings.stripe_secret_key,
    )
    return [as_dict(ev) for ev in page.data]


def recent_donations(settings: Settings, limit: int) -> list[DonationFeedItem]:
    events = fetch_events(settings)
    items = build_feed(
        events,
        limit,
        settings.excluded_emails,
        bypass_consent=settings.feed_bypass_consent,
    )
    logger.info(f"Built donation feed: {len(items)} of {len(events)} events shown")
    return items
