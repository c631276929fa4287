from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.database import with_transaction
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.product import ProductModel
from storefront.domain.errors import NotFound, ValidationFailed
from storefront.domain.pricing import compute_totals
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def cart_to_dict(cart: CartModel) -> Dict[str, Any]:
    items = list(cart.items)
    subtotal = sum(i.unit_price_cents * i.quantity for i in items)
    totals = compute_totals(subtotal)

    return {
        "cart_id": cart.id,
        "buyer_id": cart.buyer_id,
        "order_id": cart.order_id,
        "items": [
            {
                "product_id": i.product_id,
                "quantity": i.quantity,
                "unit_price_cents": i.unit_price_cents,
                "line_total_cents": i.unit_price_cents * i.quantity,
                "product": {"id": i.product.id, "sku": i.product.sku, "name": i.product.name},
            }
            for i in items
        ],
        "totals": {
            "subtotal_cents": totals.subtotal_cents,
            "tax_cents": totals.tax_cents,
            "shipping_cents": totals.shipping_cents,
            "total_cents": totals.total_cents,
        },
    }


class CartService:
    """
    One cart per buyer, keyed by buyer id.
    commands (add, update, remove) change state, get_cart only reads (and creates an empty cart on first visit)
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    def get_or_create_cart(self, buyer_id: int, for_update: bool = False) -> CartModel:
        cart = self.repo.get_cart_by_buyer(buyer_id, for_update=for_update)
        if cart:
            return cart

        try:
            with self.db.begin_nested():
                cart = self.repo.create_cart(CartModel(buyer_id=buyer_id))
        except IntegrityError:
            # a concurrent first request created it
            return self.repo.get_cart_by_buyer(buyer_id, for_update=for_update)

        logger.info(f"Created cart {cart.id} for buyer {buyer_id}")
        return cart

    # query
    def get_cart(self, buyer_id: int) -> Dict[str, Any]:
        cart = with_transaction(self.db, lambda db: self.get_or_create_cart(buyer_id))
        return cart_to_dict(cart)

    # commands
    def _resolve_product(self, product_id: int | None, sku: str | None) -> ProductModel:
        product = None
        if product_id is not None:
            product = self.products.get_product(product_id)
        elif sku is not None:
            product = self.products.get_by_sku(sku)

        if not product:
            raise NotFound("Product", product_id if product_id is not None else sku)
        return product

    def add_item(
        self,
        buyer_id: int,
        quantity: int,
        product_id: int | None = None,
        sku: str | None = None,
    ) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0", quantity=quantity)

        product = self._resolve_product(product_id, sku)

        def _add(db: Session) -> CartModel:
            cart = self.get_or_create_cart(buyer_id, for_update=True)
            existing = self.repo.get_cart_item(cart, product.id)

            if existing:
                logger.info(
                    f"Product {product.id} already in cart {cart.id}, quantity "
                    f"{existing.quantity} -> {existing.quantity + quantity}"
                )
                # price stays as snapshotted when the line was first added
                existing.quantity += quantity
                db.flush()
            else:
                logger.info(f"Adding product {product.id} to cart {cart.id} at {product.price_cents}")
                self.repo.add_cart_item(
                    cart,
                    CartItemModel(
                        product_id=product.id,
                        quantity=quantity,
                        unit_price_cents=product.price_cents,
                    ),
                )
            return cart

        return cart_to_dict(with_transaction(self.db, _add))

    def update_item(self, buyer_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity < 0:
            raise ValidationFailed("Quantity must be non-negative", quantity=quantity)

        def _update(db: Session) -> CartModel:
            cart = self.repo.get_cart_by_buyer(buyer_id, for_update=True)
            if not cart:
                raise NotFound("Cart", buyer_id)

            item = self.repo.get_cart_item(cart, product_id)
            if not item:
                raise NotFound("Cart item", product_id)

            if quantity == 0:
                self.repo.delete_cart_item(cart, item)
            else:
                item.quantity = quantity
                db.flush()
            return cart

        return cart_to_dict(with_transaction(self.db, _update))

    def remove_item(self, buyer_id: int, product_id: int) -> Dict[str, Any]:
        def _remove(db: Session) -> CartModel:
            cart = self.repo.get_cart_by_buyer(buyer_id, for_update=True)
            if not cart:
                raise NotFound("Cart", buyer_id)

            item = self.repo.get_cart_item(cart, product_id)
            if not item:
                raise NotFound("Cart item", product_id)

            logger.info(f"Removing product {product_id} from cart {cart.id}")
            self.repo.delete_cart_item(cart, item)
            return cart

        return cart_to_dict(with_transaction(self.db, _remove))
