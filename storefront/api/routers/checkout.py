from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, get_payment_provider, http_error
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import NotFound, Forbidden, InvalidTransition, PaymentProviderError
from storefront.domain.schemas import CheckoutSessionIn, CheckoutSessionOut
from storefront.services.payment_client import PaymentProvider
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/session", response_model=CheckoutSessionOut)
def create_session(
    payload: CheckoutSessionIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    """Creates a hosted checkout session; the client redirects the buyer to the returned url."""
    svc = PaymentService(db, provider)
    try:
        session = svc.start_checkout(payload.order_id, user.id)
    except Forbidden as e:
        raise http_error(403, e)
    except NotFound as e:
        raise http_error(404, e)
    except InvalidTransition as e:
        raise http_error(400, e)
    except PaymentProviderError as e:
        raise http_error(502, e)
    return {"url": session.url, "session_id": session.id}
