from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, http_error
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import NotFound, ValidationFailed
from storefront.domain.schemas import (
    SavedListCreate,
    SavedListItemIn,
    SavedListOut,
    SavedListToCartOut,
)
from storefront.services.saved_list_service import SavedListService

router = APIRouter(prefix="/saved-lists", tags=["saved-lists"])


def get_service(db: Session):
    return SavedListService(db)


@router.get("", response_model=List[SavedListOut])
def list_lists(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_service(db).list_lists(user.id)


@router.post("", response_model=SavedListOut, status_code=201)
def create_list(
    payload: SavedListCreate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).create_list(user.id, payload.name, payload.description)


@router.get("/{list_id}", response_model=SavedListOut)
def get_list(list_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return get_service(db).get_list(list_id, user.id)
    except NotFound as e:
        raise http_error(404, e)


@router.delete("/{list_id}", status_code=204)
def delete_list(list_id: int, user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        get_service(db).delete_list(list_id, user.id)
    except NotFound as e:
        raise http_error(404, e)
    return Response(status_code=204)


@router.put("/{list_id}/items", response_model=SavedListOut)
def set_item(
    list_id: int,
    payload: SavedListItemIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).set_item(list_id, user.id, payload.product_id, payload.quantity)
    except NotFound as e:
        raise http_error(404, e)
    except ValidationFailed as e:
        raise http_error(400, e)


@router.delete("/{list_id}/items/{product_id}", response_model=SavedListOut)
def remove_item(
    list_id: int,
    product_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).remove_item(list_id, user.id, product_id)
    except NotFound as e:
        raise http_error(404, e)


@router.post("/{list_id}/order", response_model=SavedListToCartOut)
def add_list_to_cart(
    list_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Copies in-stock list items into the cart and reports the ones that were skipped."""
    try:
        return get_service(db).add_list_to_cart(list_id, user.id)
    except NotFound as e:
        raise http_error(404, e)
    except ValidationFailed as e:
        raise http_error(400, e)
