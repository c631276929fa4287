# storefront/api/deps.py
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import StorefrontError, Unauthenticated, Forbidden
from storefront.services.event_dedup import EventDedupService
from storefront.services.payment_client import PaymentProvider, StripeCheckoutClient
from storefront.services.user_service import UserService


def http_error(status_code: int, error: StorefrontError) -> HTTPException:
    return HTTPException(status_code=status_code, detail=error.to_detail())


def get_current_user(
    x_actor_id: str | None = Header(None, description="Actor id forwarded by the identity gateway"),
    db: Session = Depends(get_db),
) -> UserModel:
    if not x_actor_id:
        raise http_error(401, Unauthenticated())
    return UserService(db).get_or_create_user(x_actor_id)


def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    if user.role != "ADMIN":
        raise http_error(403, Forbidden("Admin access required"))
    return user


def get_payment_provider() -> PaymentProvider:
    return StripeCheckoutClient()


def get_event_dedup() -> EventDedupService | None:
    return EventDedupService()
