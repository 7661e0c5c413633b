import json
import logging
import os
from types import SimpleNamespace
from typing import Iterator
from unittest.mock import MagicMock

import pytest
import stripe
from fastapi.testclient import TestClient

# Set test environment variables
os.environ.update(
    {
        "STRIPE_SECRET_KEY": "sk_test_123",
        "STRIPE_WEBHOOK_SECRET": "whsec_test",
        "FORWARD_HOOK_URL": "https://hooks.example.com/catch/1/abc",
        "FORWARD_HMAC_SECRET": "fwd_test_secret",
        "EXCLUDE_EMAILS": "Staff@Example.org, qa@example.org",
        "CELERY_TASK_ALWAYS_EAGER": "true",
        "RATE_LIMIT_ENABLED": "false",
        "REDIS_URL": "redis://localhost:6379/2",  # Use a separate Redis DB for testing
    }
)

from donation_gateway.celery_app import celery
from donation_gateway.core.config import Settings, get_settings

# Import app modules after setting environment variables
from donation_gateway.main import app
from donation_gateway.services import stripe_verify

logger = logging.getLogger(__name__)


@pytest.fixture(autouse=True)
def celery_eager():
    celery.conf.task_always_eager = True
    yield


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def override_settings():
    """Swap the injected settings for one test."""

    def _override(**changes) -> Settings:
        new = get_settings().model_copy(update=changes)
        app.dependency_overrides[get_settings] = lambda: new
        return new

    yield _override
    app.dependency_overrides.pop(get_settings, None)


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signed():
    """Body bytes and headers for a Stripe-signed webhook delivery."""

    def _signed(event: dict, secret: str = "whsec_test"):
        body = json.dumps(event).encode()
        headers = {
            "Stripe-Signature": stripe_verify.sign(body, secret),
            "Content-Type": "application/json",
        }
        return body, headers

    return _signed


def checkout_event(
    event_id="evt_1",
    created=1_700_000_000,
    session_id="cs_test_1",
    amount=500,
    currency="usd",
    mode="payment",
    email="jane.doe@example.com",
    name="Jane Doe",
    payment_intent="pi_1",
    payment_status="paid",
    metadata=None,
    **extra,
) -> dict:
    session = {
        "id": session_id,
        "object": "checkout.session",
        "amount_total": amount,
        "currency": currency,
        "mode": mode,
        "payment_status": payment_status,
        "payment_intent": payment_intent,
        "customer_details": {"email": email, "name": name, "address": {"country": "US"}},
        "metadata": metadata if metadata is not None else {"public_display": "true"},
    }
    session.update(extra)
    return {
        "id": event_id,
        "type": "checkout.session.completed",
        "created": created,
        "data": {"object": session},
    }


def invoice_event(
    event_id="evt_inv_1",
    created=1_700_000_000,
    invoice_id="in_1",
    amount=2500,
    currency="usd",
    email="sam@example.com",
    name="Sam Lee",
    payment_intent="pi_inv_1",
    billing_reason="subscription_create",
    metadata=None,
    **extra,
) -> dict:
    invoice = {
        "id": invoice_id,
        "object": "invoice",
        "amount_paid": amount,
        "currency": currency,
        "customer_email": email,
        "customer_name": name,
        "payment_intent": payment_intent,
        "billing_reason": billing_reason,
        "status": "paid",
        "subscription": "sub_1",
        "subscription_details": {
            "metadata": metadata if metadata is not None else {"public_display": "true"}
        },
    }
    invoice.update(extra)
    return {
        "id": event_id,
        "type": "invoice.paid",
        "created": created,
        "data": {"object": invoice},
    }


@pytest.fixture
def stripe_events(monkeypatch):
    """Stub ``stripe.Event.list`` with the given events."""

    def _stub(events):
        mock = MagicMock(return_value=SimpleNamespace(data=events))
        monkeypatch.setattr(stripe.Event, "list", mock)
        return mock

    return _stub
