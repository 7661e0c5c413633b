import hashlib
import hmac

import httpx
import pytest

from donation_gateway.errors import ForwardingFailure
from donation_gateway.schemas.webhook import ForwardPayload
from donation_gateway.services.forwarder import dispatch, sign_body
from donation_gateway.tasks import SIGNATURE_HEADER, forward_payload, post_payload

URL = "https://hooks.example.com/webhook"
BODY = '{"event_type":"checkout.session.completed","amount":500}'


def test_forward_payload_success(respx_mock):
    route = respx_mock.post(URL).mock(return_value=httpx.Response(200, text="OK"))

    result = forward_payload.apply(args=[URL, BODY, "abc123"]).get()

    assert result["status"] == 200
    request = route.calls.last.request
    assert request.content == BODY.encode()
    assert request.headers[SIGNATURE_HEADER] == "abc123"
    assert request.headers["Content-Type"] == "application/json"


def test_forward_payload_without_signature(respx_mock):
    route = respx_mock.post(URL).mock(return_value=httpx.Response(204))
    forward_payload.apply(args=[URL, BODY]).get()
    assert SIGNATURE_HEADER not in route.calls.last.request.headers


def test_forward_payload_non_2xx_is_logged_not_retried(respx_mock, caplog):
    route = respx_mock.post(URL).mock(return_value=httpx.Response(500, text="boom"))

    with caplog.at_level("ERROR"):
        result = forward_payload.apply(args=[URL, BODY]).get()

    assert result["status"] == 500
    assert route.call_count == 1
    assert "Forwarding to automation hook failed" in caplog.text


def test_forward_payload_network_error(respx_mock):
    respx_mock.post(URL).mock(side_effect=httpx.ConnectError("refused"))
    result = forward_payload.apply(args=[URL, BODY]).get()
    assert result["status"] == 0


def test_post_payload_raises_forwarding_failure(respx_mock):
    respx_mock.post(URL).mock(return_value=httpx.Response(404))
    with pytest.raises(ForwardingFailure) as exc:
        post_payload(URL, BODY, None, timeout=1)
    assert exc.value.status_code == 404


def test_dispatch_signs_serialized_bytes(settings, respx_mock):
    route = respx_mock.post(settings.forward_hook_url).mock(return_value=httpx.Response(200))
    payload = ForwardPayload(
        event_id="evt_1",
        event_type="invoice.paid",
        object_id="in_1",
        invoice_id="in_1",
        created=1_700_000_000,
        is_subscription=True,
        amount=1000,
        currency="JPY",
        customer_email_hash="0" * 64,
        display_name="Ken",
        display_text="Ken became a Partner (¥1,000/mo)",
    )

    assert dispatch(payload, settings) is True

    request = route.calls.last.request
    expected = hmac.new(
        settings.forward_hmac_secret.encode(), request.content, hashlib.sha256
    ).hexdigest()
    assert request.headers[SIGNATURE_HEADER] == expected
    assert request.content == payload.model_dump_json().encode("utf-8")


def test_sign_body():
    assert sign_body(b"{}", "k") == hmac.new(b"k", b"{}", hashlib.sha256).hexdigest()
