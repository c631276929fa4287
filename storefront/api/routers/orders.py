# storefront/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import (
    get_current_user,
    require_admin,
    get_payment_provider,
    http_error,
)
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import (
    EmptyCart,
    InsufficientStock,
    InvalidTransition,
    NotFound,
    Forbidden,
)
from storefront.domain.schemas import OrderCreate, OrderOut, OrderPage, PaymentStatusOut
from storefront.services.order_service import OrderService
from storefront.services.payment_client import PaymentProvider
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Turns the buyer's cart into an order, reserving stock for every line.
    400 when the cart is empty, 409 when any line lacks stock (nothing is reserved then).
    """
    svc = get_service(db)
    try:
        return svc.create_order(user.id, po_number=payload.po_number, notes=payload.notes)
    except EmptyCart as e:
        raise http_error(400, e)
    except InsufficientStock as e:
        raise http_error(409, e)


@router.get("", response_model=OrderPage)
def list_orders(
    page: int = Query(1, gt=0),
    limit: int = Query(10, gt=0, le=100),
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).list_orders(user.id, page, limit)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.get_order(order_id, user.id)
    except Forbidden as e:
        raise http_error(403, e)
    except NotFound as e:
        raise http_error(404, e)


@router.delete("/{order_id}", response_model=OrderOut)
def cancel_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Cancels a CREATED order and returns its stock to inventory."""
    svc = get_service(db)
    try:
        return svc.cancel_order(order_id, user.id)
    except Forbidden as e:
        raise http_error(403, e)
    except NotFound as e:
        raise http_error(404, e)
    except InvalidTransition as e:
        raise http_error(400, e)


@router.post("/{order_id}/ship", response_model=OrderOut)
def ship_order(
    order_id: int,
    _admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.ship_order(order_id)
    except NotFound as e:
        raise http_error(404, e)
    except InvalidTransition as e:
        raise http_error(400, e)


@router.get("/{order_id}/payment-status", response_model=PaymentStatusOut)
def payment_status(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    """Backup for the webhook: asks the provider directly when the order is not paid yet."""
    svc = PaymentService(db, provider)
    try:
        return svc.poll_payment_status(order_id, user.id)
    except Forbidden as e:
        raise http_error(403, e)
    except NotFound as e:
        raise http_error(404, e)
