# storefront/repos/product_repo.py
from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_line import OrderLineModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.saved_list import SavedListItemModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_by_sku(self, sku: str) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(ProductModel.sku == sku)
        ).scalar_one_or_none()

    def _search(self, stmt, search: str | None):
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(ProductModel.name.ilike(pattern), ProductModel.sku.ilike(pattern))
            )
        return stmt

    def list_products(self, search: str | None, offset: int, limit: int) -> list[ProductModel]:
        stmt = self._search(select(ProductModel), search)
        return list(
            self.db.execute(stmt.order_by(ProductModel.id).offset(offset).limit(limit)).scalars()
        )

    def count_products(self, search: str | None) -> int:
        stmt = self._search(select(func.count(ProductModel.id)), search)
        return self.db.execute(stmt).scalar_one()

    def add_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def count_active_order_lines(self, product_id: int, statuses) -> int:
        return self.db.execute(
            select(func.count(OrderLineModel.id))
            .join(OrderModel, OrderModel.id == OrderLineModel.order_id)
            .where(
                OrderLineModel.product_id == product_id,
                OrderModel.status.in_(statuses),
            )
        ).scalar_one()

    def delete_product(self, product: ProductModel) -> None:
        # cart and saved list lines go with the product, order lines are history and stay
        self.db.query(CartItemModel).filter(CartItemModel.product_id == product.id).delete(
            synchronize_session=False
        )
        self.db.query(SavedListItemModel).filter(
            SavedListItemModel.product_id == product.id
        ).delete(synchronize_session=False)
        self.db.delete(product)
        self.db.flush()
