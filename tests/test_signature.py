import json
import time

import pytest

from conftest import sign
from storefront.domain.errors import InvalidSignature
from storefront.domain.order_status import PaymentOutcome
from storefront.services.payment_client import StripeCheckoutClient, parse_event

SECRET = "whsec_unit"


def _event(event_type, **obj):
    obj.setdefault("metadata", {"order_id": "42"})
    return {"id": "evt_9", "type": event_type, "data": {"object": obj}}


def _payload(event_type="payment_intent.succeeded", **obj):
    obj.setdefault("id", "pi_1")
    return json.dumps(_event(event_type, **obj)).encode("utf-8")


@pytest.fixture
def stripe_client():
    return StripeCheckoutClient(api_key="sk_test", webhook_secret=SECRET, tolerance=300)


def test_valid_signature_passes(stripe_client):
    payload = _payload()
    event = stripe_client.construct_event(payload, sign(payload, secret=SECRET))
    assert event.outcome == PaymentOutcome.PAID
    assert event.order_id == 42


def test_any_matching_v1_is_accepted(stripe_client):
    payload = _payload()
    good = sign(payload, secret=SECRET)
    ts, v1 = good.split(",")
    event = stripe_client.construct_event(payload, f"{ts},v1=deadbeef,{v1}")
    assert event.event_id == "evt_9"


@pytest.mark.parametrize(
    "header",
    [
        "v1=abc",
        f"t={int(time.time())}",
        "t=soon,v1=abc",
        f"t={int(time.time())},v1=abc",
    ],
)
def test_rejected_headers(stripe_client, header):
    with pytest.raises(InvalidSignature):
        stripe_client.construct_event(_payload(), header)


@pytest.mark.parametrize("header", [None, ""])
def test_missing_header(stripe_client, header):
    with pytest.raises(InvalidSignature) as exc:
        stripe_client.construct_event(_payload(), header)
    assert exc.value.payload["reason"] == "missing signature header"


def test_wrong_secret_and_stale_timestamp(stripe_client):
    payload = _payload()
    with pytest.raises(InvalidSignature):
        stripe_client.construct_event(payload, sign(payload, secret="other"))

    with pytest.raises(InvalidSignature):
        stripe_client.construct_event(payload, sign(payload, secret=SECRET, timestamp=int(time.time()) - 301))


def test_unconfigured_secret_rejects_everything(monkeypatch):
    import storefront.services.payment_client as payment_client

    monkeypatch.setattr(payment_client, "PAYMENT_WEBHOOK_SECRET", "")
    client = StripeCheckoutClient(api_key="sk_test")
    payload = _payload()
    with pytest.raises(InvalidSignature) as exc:
        client.construct_event(payload, sign(payload, secret=""))
    assert exc.value.payload["reason"] == "webhook secret not configured"


@pytest.mark.parametrize(
    "event_type, extra, outcome",
    [
        ("checkout.session.completed", {"payment_status": "paid"}, PaymentOutcome.PAID),
        ("checkout.session.completed", {"payment_status": "unpaid"}, PaymentOutcome.PENDING),
        ("checkout.session.async_payment_succeeded", {}, PaymentOutcome.PAID),
        ("checkout.session.async_payment_failed", {}, PaymentOutcome.FAILED),
        ("payment_intent.succeeded", {}, PaymentOutcome.PAID),
        ("payment_intent.payment_failed", {}, PaymentOutcome.FAILED),
        ("checkout.session.expired", {}, PaymentOutcome.EXPIRED),
        ("customer.created", {}, None),
    ],
)
def test_event_outcomes(event_type, extra, outcome):
    event = parse_event(_event(event_type, id="obj_1", **extra))
    assert event.outcome == outcome
    assert event.order_id == 42
    assert event.event_id == "evt_9"


def test_payment_reference_prefers_intent():
    session = parse_event(_event("checkout.session.completed", id="cs_1", payment_intent="pi_1"))
    assert session.payment_reference == "pi_1"

    intent = parse_event(_event("payment_intent.succeeded", id="pi_2"))
    assert intent.payment_reference == "pi_2"


@pytest.mark.parametrize("raw", ["abc", "²", "-3", "4.0", None])
def test_unusable_order_id_is_dropped(raw):
    event = parse_event(_event("payment_intent.succeeded", id="pi_3", metadata={"order_id": raw}))
    assert event.order_id is None


@pytest.mark.parametrize(
    "body",
    [
        [],
        "text",
        {"type": 7, "data": []},
        {"type": "payment_intent.succeeded", "data": {"object": "pi_1"}},
        {"type": "payment_intent.succeeded", "data": {"object": {"metadata": ["order_id"]}}},
    ],
)
def test_unexpected_shapes_degrade_to_empty_event(body):
    event = parse_event(body)
    assert event.order_id is None


def test_signed_non_json_payload_is_an_empty_event(stripe_client):
    payload = b"not json"
    event = stripe_client.construct_event(payload, sign(payload, secret=SECRET))
    assert event.order_id is None
    assert event.outcome is None
