# storefront/repos/cart_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    """Items are always changed through cart.items so the loaded collection never goes stale."""

    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_buyer(self, buyer_id: int, for_update: bool = False) -> CartModel | None:
        stmt = select(CartModel).where(CartModel.buyer_id == buyer_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_cart_item(self, cart: CartModel, product_id: int) -> CartItemModel | None:
        return next((i for i in cart.items if i.product_id == product_id), None)

    def add_cart_item(self, cart: CartModel, item: CartItemModel) -> CartItemModel:
        cart.items.append(item)
        self.db.flush()
        return item

    def delete_cart_item(self, cart: CartModel, item: CartItemModel) -> None:
        # delete-orphan cascade removes the row on flush
        cart.items.remove(item)
        self.db.flush()

    def clear_items(self, cart: CartModel) -> int:
        count = len(cart.items)
        cart.items.clear()
        self.db.flush()
        return count
