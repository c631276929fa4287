# storefront/services/order_service.py
import math
from datetime import datetime, timezone
from typing import Dict, Any

from sqlalchemy.orm import Session

from storefront.data.database import with_transaction
from storefront.data.models.order import OrderModel
from storefront.data.models.order_line import OrderLineModel
from storefront.domain.errors import EmptyCart, NotFound, Forbidden, InvalidTransition
from storefront.domain.order_status import OrderStatus, PaymentStatus, can_transition
from storefront.domain.pricing import compute_totals
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.inventory_ledger import InventoryLedger
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _guard(order: OrderModel, target: OrderStatus) -> None:
    if not can_transition(order.status, target.value):
        raise InvalidTransition(order.id, order.status, target.value)


def mark_paid(db: Session, order_id: int, payment_reference: str | None = None) -> OrderModel:
    """
    CREATED -> PAID, to be called inside the caller's transaction.

    Idempotent: an order already paid is returned untouched (paid_at and
    reference stay those of the first confirmation). Payment has no stock
    side effect, the status write is the only thing that happens.
    """
    order = OrderRepo(db).get_order(order_id, for_update=True)
    if not order:
        raise NotFound("Order", order_id)

    if order.status == OrderStatus.PAID.value or order.payment_status == PaymentStatus.PAID.value:
        logger.info(f"Order {order_id} already paid, nothing to do")
        return order

    _guard(order, OrderStatus.PAID)

    order.status = OrderStatus.PAID.value
    order.payment_status = PaymentStatus.PAID.value
    order.paid_at = datetime.now(timezone.utc)
    if payment_reference:
        order.payment_reference = payment_reference
    db.flush()

    logger.info(f"Order {order_id} marked PAID (reference {order.payment_reference})")
    return order


class OrderService:
    """
    Orders domain: creation from the buyer's cart and lifecycle transitions.
    Each command is one with_transaction unit, all or nothing.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.ledger = InventoryLedger(db)

    def create_order(self, buyer_id: int, po_number: str | None = None, notes: str | None = None) -> OrderModel:
        """
        1. lock the buyer's cart and load its items
        2. empty cart -> EmptyCart
        3. reserve stock for every line (any shortfall aborts everything)
        4. subtotal from the prices snapshotted in the cart
        5. tax / shipping / total
        6-7. order + one line per cart item
        8. link cart to the order and empty it
        """

        def _create(db: Session) -> OrderModel:
            # a concurrent call for the same buyer waits here and then sees the emptied cart
            cart = self.carts.get_cart_by_buyer(buyer_id, for_update=True)
            if not cart or not cart.items:
                raise EmptyCart(buyer_id)

            items = list(cart.items)

            self.ledger.reserve_all(
                (item.product_id, item.quantity, item.product.name) for item in items
            )

            subtotal = sum(item.quantity * item.unit_price_cents for item in items)
            totals = compute_totals(subtotal)

            order = self.repo.create_order(
                OrderModel(
                    buyer_id=buyer_id,
                    status=OrderStatus.CREATED.value,
                    payment_status=PaymentStatus.PENDING.value,
                    subtotal_cents=totals.subtotal_cents,
                    tax_cents=totals.tax_cents,
                    shipping_cents=totals.shipping_cents,
                    total_cents=totals.total_cents,
                    po_number=po_number,
                    notes=notes,
                )
            )

            for item in items:
                self.repo.add_line(
                    OrderLineModel(
                        order_id=order.id,
                        product_id=item.product_id,
                        product_name=item.product.name,
                        sku=item.product.sku,
                        quantity=item.quantity,
                        unit_price_cents=item.unit_price_cents,
                    )
                )

            cart.order_id = order.id
            self.carts.clear_items(cart)
            return order

        order = with_transaction(self.db, _create)
        self.db.refresh(order)

        logger.info(
            f"Order {order.id} created for buyer {buyer_id}: "
            f"{len(order.lines)} lines, total {order.total_cents}"
        )
        return order

    # query
    def get_order(self, order_id: int, buyer_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFound("Order", order_id)

        if order.buyer_id != buyer_id:
            raise Forbidden("No access to this order")

        return order

    def list_orders(self, buyer_id: int, page: int, limit: int) -> Dict[str, Any]:
        total = self.repo.count_orders(buyer_id)
        orders = self.repo.list_orders(buyer_id, offset=(page - 1) * limit, limit=limit)
        return {
            "data": orders,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    # commands
    def cancel_order(self, order_id: int, buyer_id: int) -> OrderModel:
        """
        CREATED -> CANCELLED, returning every line's quantity to the ledger.
        This is the only path that gives reserved stock back.
        """

        def _cancel(db: Session) -> OrderModel:
            order = self.repo.get_order(order_id, for_update=True)
            if not order:
                raise NotFound("Order", order_id)

            if order.buyer_id != buyer_id:
                raise Forbidden("No access to this order")

            _guard(order, OrderStatus.CANCELLED)

            for line in sorted(order.lines, key=lambda l: l.product_id):
                self.ledger.release(line.product_id, line.quantity)

            order.status = OrderStatus.CANCELLED.value
            db.flush()
            return order

        order = with_transaction(self.db, _cancel)
        logger.info(f"Order {order_id} cancelled, inventory restored")
        return order

    def mark_paid(self, order_id: int, payment_reference: str | None = None) -> OrderModel:
        return with_transaction(self.db, lambda db: mark_paid(db, order_id, payment_reference))

    def ship_order(self, order_id: int) -> OrderModel:
        def _ship(db: Session) -> OrderModel:
            order = self.repo.get_order(order_id, for_update=True)
            if not order:
                raise NotFound("Order", order_id)

            _guard(order, OrderStatus.SHIPPED)
            order.status = OrderStatus.SHIPPED.value
            db.flush()
            return order

        order = with_transaction(self.db, _ship)
        logger.info(f"Order {order_id} shipped")
        return order
