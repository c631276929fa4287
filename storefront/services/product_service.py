# storefront/services/product_service.py
import math
from typing import Dict, Any

from sqlalchemy.orm import Session

from storefront.data.database import with_transaction
from storefront.data.models.product import ProductModel
from storefront.domain.errors import NotFound, DuplicateSku, ProductInUse
from storefront.domain.order_status import ACTIVE_STATUSES
from storefront.domain.schemas import ProductCreate, ProductUpdate
from storefront.repos.product_repo import ProductRepo
from storefront.services.inventory_ledger import InventoryLedger
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ProductService:
    """Admin catalog commands, plus the stock view buyers see."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepo(db)
        self.ledger = InventoryLedger(db)

    def _to_dict(self, product: ProductModel) -> Dict[str, Any]:
        return {
            "id": product.id,
            "sku": product.sku,
            "name": product.name,
            "description": product.description,
            "price_cents": product.price_cents,
            "unit": product.unit,
            "low_threshold": product.low_threshold,
            "current_stock": self.ledger.available(product.id),
            "low_stock": self.ledger.is_low_stock(product),
        }

    def _require(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound("Product", product_id)
        return product

    # query
    def get_product(self, product_id: int) -> Dict[str, Any]:
        return self._to_dict(self._require(product_id))

    def list_products(self, search: str | None, page: int, limit: int) -> Dict[str, Any]:
        total = self.repo.count_products(search)
        products = self.repo.list_products(search, offset=(page - 1) * limit, limit=limit)
        return {
            "data": [self._to_dict(p) for p in products],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    # commands
    def create_product(self, payload: ProductCreate) -> Dict[str, Any]:
        def _create(db: Session) -> ProductModel:
            if payload.sku and self.repo.get_by_sku(payload.sku):
                raise DuplicateSku(payload.sku)

            product = self.repo.add_product(
                ProductModel(
                    sku=payload.sku,
                    name=payload.name,
                    description=payload.description,
                    price_cents=payload.price_cents,
                    unit=payload.unit,
                    low_threshold=payload.low_threshold,
                )
            )
            self.ledger.set_quantity(product.id, payload.initial_stock)
            return product

        product = with_transaction(self.db, _create)
        logger.info(f"Created product {product.id} ({product.sku}) with stock {payload.initial_stock}")
        return self._to_dict(product)

    def update_product(self, product_id: int, payload: ProductUpdate) -> Dict[str, Any]:
        """
        Price changes only affect future cart lines, existing cart and order lines
        keep the price they snapshotted.
        """

        def _update(db: Session) -> ProductModel:
            product = self._require(product_id)
            changes = payload.model_dump(exclude_unset=True, exclude_none=True)

            new_sku = changes.get("sku")
            if new_sku and new_sku != product.sku:
                clash = self.repo.get_by_sku(new_sku)
                if clash and clash.id != product.id:
                    raise DuplicateSku(new_sku)

            current_stock = changes.pop("current_stock", None)
            if current_stock is not None:
                self.ledger.set_quantity(product.id, current_stock)

            for field, value in changes.items():
                setattr(product, field, value)
            db.flush()
            return product

        product = with_transaction(self.db, _update)
        logger.info(f"Updated product {product.id}")
        return self._to_dict(product)

    def delete_product(self, product_id: int) -> None:
        def _delete(db: Session) -> None:
            product = self._require(product_id)

            active_lines = self.repo.count_active_order_lines(product.id, ACTIVE_STATUSES)
            if active_lines:
                raise ProductInUse(product.id, active_lines)

            self.repo.delete_product(product)

        with_transaction(self.db, _delete)
        logger.info(f"Deleted product {product_id}")
