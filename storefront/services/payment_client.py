# storefront/services/payment_client.py
"""
Hosted checkout payment provider.

``PaymentProvider`` is the port the reconciliation service depends on,
``StripeCheckoutClient`` is the stripe-python implementation: Checkout Sessions
for create/retrieve, ``stripe.WebhookSignature`` for the signed callbacks.
"""
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List

import stripe

from storefront.data.models.order import OrderModel
from storefront.domain.errors import InvalidSignature, PaymentProviderError
from storefront.domain.order_status import PaymentOutcome
from storefront.utils.retry import stripe_retry
from storefront.utils.settings import (
    APP_URL,
    CURRENCY,
    PAYMENT_SECRET_KEY,
    PAYMENT_WEBHOOK_SECRET,
    PAYMENT_WEBHOOK_TOLERANCE_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


@dataclass(frozen=True)
class PaymentEvent:
    """Provider callback reduced to what reconciliation needs."""

    event_id: str
    type: str
    order_id: int | None
    outcome: PaymentOutcome | None
    payment_reference: str | None = None


class PaymentProvider(ABC):
    @abstractmethod
    def create_checkout_session(self, order: OrderModel) -> CheckoutSession:
        ...

    @abstractmethod
    def get_session_status(self, session_id: str) -> PaymentOutcome:
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature_header: str | None) -> PaymentEvent:
        """Verify the signature, then parse. Raises InvalidSignature before looking at the body."""
        ...


# event type -> outcome; checkout.session.completed depends on payment_status
_EVENT_OUTCOMES = {
    "checkout.session.async_payment_succeeded": PaymentOutcome.PAID,
    "payment_intent.succeeded": PaymentOutcome.PAID,
    "checkout.session.async_payment_failed": PaymentOutcome.FAILED,
    "payment_intent.payment_failed": PaymentOutcome.FAILED,
    "checkout.session.expired": PaymentOutcome.EXPIRED,
}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _order_id(raw: Any) -> int | None:
    raw = str(raw) if raw is not None else ""
    if raw.isascii() and raw.isdigit():
        return int(raw)
    return None


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def parse_event(body: Any) -> PaymentEvent:
    """Anything that is not the expected shape degrades to an event without order or outcome."""
    body = _as_dict(body)
    event_type = body.get("type") if isinstance(body.get("type"), str) else ""
    obj = _as_dict(_as_dict(body.get("data")).get("object"))
    metadata = _as_dict(obj.get("metadata"))

    if event_type == "checkout.session.completed":
        outcome = PaymentOutcome.PAID if obj.get("payment_status") == "paid" else PaymentOutcome.PENDING
    else:
        outcome = _EVENT_OUTCOMES.get(event_type)

    if event_type.startswith("payment_intent."):
        reference = _text(obj.get("id"))
    else:
        reference = _text(obj.get("payment_intent")) or _text(obj.get("id"))

    return PaymentEvent(
        event_id=_text(body.get("id")) or "",
        type=event_type,
        order_id=_order_id(metadata.get("order_id")),
        outcome=outcome,
        payment_reference=reference,
    )


class StripeCheckoutClient(PaymentProvider):
    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        tolerance: int | None = None,
    ):
        self.api_key = api_key or PAYMENT_SECRET_KEY
        self.webhook_secret = webhook_secret or PAYMENT_WEBHOOK_SECRET
        self.tolerance = PAYMENT_WEBHOOK_TOLERANCE_SECONDS if tolerance is None else tolerance

    def _line_items(self, order: OrderModel) -> List[Dict[str, Any]]:
        rows = [(line.product_name, line.unit_price_cents, line.quantity) for line in order.lines]
        if order.tax_cents > 0:
            rows.append(("Tax (GST + QST)", order.tax_cents, 1))
        if order.shipping_cents > 0:
            rows.append(("Shipping", order.shipping_cents, 1))

        return [
            {
                "price_data": {
                    "currency": CURRENCY,
                    "product_data": {"name": name},
                    "unit_amount": amount,
                },
                "quantity": quantity,
            }
            for name, amount, quantity in rows
        ]

    @stripe_retry()
    def _create_session(self, order: OrderModel):
        logger.info(f"Creating checkout session for order {order.id}")
        return stripe.checkout.Session.create(
            api_key=self.api_key,
            mode="payment",
            payment_method_types=["card"],
            line_items=self._line_items(order),
            success_url=f"{APP_URL}/orders/{order.id}?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{APP_URL}/checkout?canceled=true",
            client_reference_id=str(order.id),
            metadata={"order_id": str(order.id), "buyer_id": str(order.buyer_id)},
            payment_intent_data={"metadata": {"order_id": str(order.id)}},
            billing_address_collection="required",
        )

    @stripe_retry()
    def _retrieve_session(self, session_id: str):
        logger.info(f"Retrieving checkout session {session_id}")
        return stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)

    def create_checkout_session(self, order: OrderModel) -> CheckoutSession:
        try:
            session = self._create_session(order)
        except stripe.StripeError as e:
            raise PaymentProviderError(f"Failed to create checkout session: {e}") from e

        if not session.url:
            raise PaymentProviderError("Checkout session has no redirect url", session_id=session.id)
        return CheckoutSession(id=session.id, url=session.url)

    def get_session_status(self, session_id: str) -> PaymentOutcome:
        try:
            session = self._retrieve_session(session_id)
        except stripe.StripeError as e:
            raise PaymentProviderError(f"Failed to fetch checkout session: {e}") from e

        if session.payment_status == "paid":
            return PaymentOutcome.PAID
        if session.status == "expired":
            return PaymentOutcome.EXPIRED
        return PaymentOutcome.PENDING

    def construct_event(self, payload: bytes, signature_header: str | None) -> PaymentEvent:
        if not self.webhook_secret:
            raise InvalidSignature("webhook secret not configured")
        if not signature_header:
            raise InvalidSignature("missing signature header")

        try:
            text = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(text, signature_header, self.webhook_secret, self.tolerance)
        except UnicodeDecodeError as e:
            raise InvalidSignature("payload is not utf-8") from e
        except stripe.SignatureVerificationError as e:
            raise InvalidSignature(str(e)) from e

        try:
            body = json.loads(text)
        except ValueError:
            logger.warning("Signed webhook payload is not valid JSON")
            body = {}
        return parse_event(body)
