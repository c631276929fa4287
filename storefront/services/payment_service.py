# storefront/services/payment_service.py
import uuid
from typing import Dict, Any

from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from storefront.data.database import with_transaction
from storefront.data.models.order import OrderModel
from storefront.domain.errors import (
    NotFound,
    Forbidden,
    InvalidTransition,
    InvalidSignature,
    PaymentProviderError,
)
from storefront.domain.order_status import OrderStatus, PaymentStatus, PaymentOutcome
from storefront.repos.order_repo import OrderRepo
from storefront.services.event_dedup import EventDedupService
from storefront.services.order_service import mark_paid
from storefront.services.payment_client import PaymentProvider, PaymentEvent, CheckoutSession
from storefront.utils.retry import poll_retry
from storefront.utils.settings import PAYMENT_POLL_ATTEMPTS, PAYMENT_POLL_INTERVAL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_LOCAL_OUTCOME = {
    PaymentStatus.PAID.value: PaymentOutcome.PAID,
    PaymentStatus.PAYMENT_FAILED.value: PaymentOutcome.FAILED,
    PaymentStatus.PENDING.value: PaymentOutcome.PENDING,
}


def _is_paid(order: OrderModel) -> bool:
    return order.status == OrderStatus.PAID.value or order.payment_status == PaymentStatus.PAID.value


class PaymentService:
    """
    Hosted checkout and payment reconciliation.

    Two paths lead to PAID: the provider's signed webhook and the buyer's
    status poll. Both end in the same idempotent mark_paid, so they can race
    and arrive in any order or any number of times.
    """

    def __init__(
        self,
        db: Session,
        provider: PaymentProvider,
        dedup: EventDedupService | None = None,
        poll_attempts: int = PAYMENT_POLL_ATTEMPTS,
        poll_interval: float = PAYMENT_POLL_INTERVAL_SECONDS,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.provider = provider
        self.dedup = dedup
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval

    def _owned_order(self, order_id: int, buyer_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound("Order", order_id)
        if order.buyer_id != buyer_id:
            raise Forbidden("No access to this order")
        return order

    # checkout
    def start_checkout(self, order_id: int, buyer_id: int) -> CheckoutSession:
        order = self._owned_order(order_id, buyer_id)
        if order.status != OrderStatus.CREATED.value:
            raise InvalidTransition(order.id, order.status, OrderStatus.PAID.value)

        session = self.provider.create_checkout_session(order)

        def _remember(db: Session) -> None:
            locked = self.repo.get_order(order_id, for_update=True)
            # a confirmation may have landed meanwhile, never overwrite its reference
            if locked.status == OrderStatus.CREATED.value and not _is_paid(locked):
                locked.payment_reference = session.id
                db.flush()

        with_transaction(self.db, _remember)
        logger.info(f"Checkout session {session.id} created for order {order_id}")
        return session

    # webhook
    def handle_event(self, event: PaymentEvent) -> str:
        """Apply one verified provider event. Returns what was done, for logging and tests."""
        if event.order_id is None:
            logger.warning(f"Event {event.event_id} ({event.type}) carries no order id, ignored")
            return "ignored"

        if event.outcome == PaymentOutcome.PAID:
            with_transaction(
                self.db, lambda db: mark_paid(db, event.order_id, event.payment_reference)
            )
            return "paid"

        if event.outcome == PaymentOutcome.FAILED:
            return with_transaction(self.db, lambda db: self._record_failure(event.order_id))

        # expired / pending / unknown types: order stays CREATED and payable
        logger.info(f"Event {event.event_id} ({event.type}) for order {event.order_id}: no-op")
        return "noop"

    def _record_failure(self, order_id: int) -> str:
        """Payment dimension only, order status stays CREATED so the buyer can retry or cancel."""
        order = self.repo.get_order(order_id, for_update=True)
        if not order:
            raise NotFound("Order", order_id)

        if _is_paid(order):
            logger.info(f"Late failure event for paid order {order_id}, ignored")
            return "noop"

        order.payment_status = PaymentStatus.PAYMENT_FAILED.value
        self.db.flush()
        logger.info(f"Order {order_id} payment failed")
        return "failed"

    def reconcile_webhook(self, payload: bytes, signature_header: str | None) -> None:
        """
        Signature failures propagate (caller answers 4xx, nothing was touched).
        Anything that goes wrong after that is logged and not surfaced, the
        provider would only retry into the same failure; the next delivery or
        the buyer's poll reconciles.
        """
        try:
            event = self.provider.construct_event(payload, signature_header)
        except InvalidSignature:
            raise
        except Exception as e:
            logger.error(f"Verified webhook could not be parsed: {e}", exc_info=True)
            return
        claimant = uuid.uuid4().hex

        if not self._claim(event, claimant):
            logger.info(f"Event {event.event_id} already handled, skipping duplicate delivery")
            return

        try:
            action = self.handle_event(event)
            logger.info(f"Event {event.event_id} ({event.type}) order {event.order_id}: {action}")
        except Exception as e:
            logger.error(f"Webhook processing failed for event {event.event_id}: {e}", exc_info=True)
            self._release(event, claimant)

    def _claim(self, event: PaymentEvent, claimant: str) -> bool:
        if self.dedup is None or not event.event_id:
            return True
        try:
            return self.dedup.claim(event.event_id, claimant)
        except RedisError as e:
            logger.warning(f"Event dedup unavailable, processing {event.event_id} anyway: {e}")
            return True

    def _release(self, event: PaymentEvent, claimant: str) -> None:
        if self.dedup is None or not event.event_id:
            return
        try:
            self.dedup.release(event.event_id, claimant)
        except RedisError as e:
            logger.warning(f"Failed to release claim on event {event.event_id}: {e}")

    # poll
    def _poll_provider(self, session_id: str) -> PaymentOutcome:
        poll = poll_retry(self.poll_attempts, self.poll_interval)
        return poll(self.provider.get_session_status)(session_id)

    def poll_payment_status(self, order_id: int, buyer_id: int) -> Dict[str, Any]:
        """Synchronous "is it paid yet?": ask the provider when the local record is not PAID."""
        order = self._owned_order(order_id, buyer_id)
        local = _LOCAL_OUTCOME.get(order.payment_status, PaymentOutcome.PENDING)

        if _is_paid(order):
            return {
                "payment_status": PaymentOutcome.PAID.value,
                "updated": False,
                "message": "Order already marked as paid",
            }

        if not order.payment_reference:
            return {
                "payment_status": local.value,
                "updated": False,
                "message": "No payment session to check",
            }

        try:
            outcome = self._poll_provider(order.payment_reference)
        except PaymentProviderError as e:
            logger.warning(f"Payment status poll for order {order_id} gave up: {e}")
            return {
                "payment_status": local.value,
                "updated": False,
                "message": "Payment provider unavailable",
            }

        if outcome == PaymentOutcome.PAID:
            try:
                with_transaction(self.db, lambda db: mark_paid(db, order_id))
            except InvalidTransition as e:
                logger.error(f"Provider reports order {order_id} paid but it is {e.current}")
                return {
                    "payment_status": local.value,
                    "updated": False,
                    "message": f"Order is {e.current}",
                }
            return {
                "payment_status": PaymentOutcome.PAID.value,
                "updated": True,
                "message": "Order updated to PAID based on provider session status",
            }

        return {
            "payment_status": outcome.value,
            "updated": False,
            "message": f"Session payment status: {outcome.value}",
        }
