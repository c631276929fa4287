from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_admin
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import UserRead, UserSyncIn
from storefront.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
def me(user: UserModel = Depends(get_current_user)):
    return user


@router.put("/{external_id}", response_model=UserRead)
def sync_user(
    external_id: str,
    payload: UserSyncIn,
    _admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Creates or updates a local user from identity provider data."""
    return UserService(db).sync_user(external_id, payload)
