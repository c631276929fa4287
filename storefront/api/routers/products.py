from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin, http_error
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import NotFound, DuplicateSku, ProductInUse
from storefront.domain.schemas import ProductCreate, ProductUpdate, ProductOut, ProductPage
from storefront.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


def get_service(db: Session):
    return ProductService(db)


@router.get("", response_model=ProductPage)
def list_products(
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, gt=0),
    limit: int = Query(20, gt=0, le=100),
    db: Session = Depends(get_db),
):
    return get_service(db).list_products(search, page, limit)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    try:
        return get_service(db).get_product(product_id)
    except NotFound as e:
        raise http_error(404, e)


@router.post("", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductCreate,
    _admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).create_product(payload)
    except DuplicateSku as e:
        raise http_error(409, e)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    _admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).update_product(product_id, payload)
    except NotFound as e:
        raise http_error(404, e)
    except DuplicateSku as e:
        raise http_error(409, e)


@router.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    _admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Refused while the product sits on orders that are neither shipped nor cancelled."""
    try:
        get_service(db).delete_product(product_id)
    except NotFound as e:
        raise http_error(404, e)
    except ProductInUse as e:
        raise http_error(409, e)
    return Response(status_code=204)
