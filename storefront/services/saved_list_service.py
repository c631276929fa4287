from typing import Dict, Any, List

from sqlalchemy.orm import Session

from storefront.data.database import with_transaction
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.saved_list import SavedListModel, SavedListItemModel
from storefront.domain.errors import NotFound, ValidationFailed
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.repos.saved_list_repo import SavedListRepo
from storefront.services.cart_service import CartService, cart_to_dict
from storefront.services.inventory_ledger import InventoryLedger
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class SavedListService:
    """Reusable buyer lists (standing orders). Lists of other buyers are reported as not found."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SavedListRepo(db)
        self.products = ProductRepo(db)
        self.carts = CartRepo(db)
        self.ledger = InventoryLedger(db)

    def _owned(self, list_id: int, buyer_id: int) -> SavedListModel:
        saved_list = self.repo.get_list(list_id)
        if not saved_list or saved_list.buyer_id != buyer_id:
            raise NotFound("Saved list", list_id)
        return saved_list

    # query
    def list_lists(self, buyer_id: int) -> List[SavedListModel]:
        return self.repo.list_for_buyer(buyer_id)

    def get_list(self, list_id: int, buyer_id: int) -> SavedListModel:
        return self._owned(list_id, buyer_id)

    # commands
    def create_list(self, buyer_id: int, name: str, description: str | None = None) -> SavedListModel:
        saved_list = with_transaction(
            self.db,
            lambda db: self.repo.add_list(
                SavedListModel(buyer_id=buyer_id, name=name, description=description)
            ),
        )
        logger.info(f"Created saved list {saved_list.id} for buyer {buyer_id}")
        return saved_list

    def delete_list(self, list_id: int, buyer_id: int) -> None:
        def _delete(db: Session) -> None:
            self.repo.delete_list(self._owned(list_id, buyer_id))

        with_transaction(self.db, _delete)
        logger.info(f"Deleted saved list {list_id}")

    def set_item(self, list_id: int, buyer_id: int, product_id: int, quantity: int) -> SavedListModel:
        if quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0", quantity=quantity)

        def _set(db: Session) -> SavedListModel:
            saved_list = self._owned(list_id, buyer_id)
            if not self.products.get_product(product_id):
                raise NotFound("Product", product_id)

            item = self.repo.get_item(saved_list, product_id)
            if item:
                item.quantity = quantity
                db.flush()
            else:
                self.repo.add_item(
                    saved_list, SavedListItemModel(product_id=product_id, quantity=quantity)
                )
            return saved_list

        return with_transaction(self.db, _set)

    def remove_item(self, list_id: int, buyer_id: int, product_id: int) -> SavedListModel:
        def _remove(db: Session) -> SavedListModel:
            saved_list = self._owned(list_id, buyer_id)
            item = self.repo.get_item(saved_list, product_id)
            if not item:
                raise NotFound("Saved list item", product_id)
            self.repo.delete_item(saved_list, item)
            return saved_list

        return with_transaction(self.db, _remove)

    def add_list_to_cart(self, list_id: int, buyer_id: int) -> Dict[str, Any]:
        """
        Copy the list into the cart. Lines without enough stock are skipped and
        reported, the rest go in (quantity set to the list's quantity). Stock is
        only checked here, it is reserved at order creation.
        """

        def _copy(db: Session) -> Dict[str, Any]:
            saved_list = self._owned(list_id, buyer_id)
            if not saved_list.items:
                raise ValidationFailed("List is empty", list_id=list_id)

            out_of_stock = []
            in_stock = []
            for item in saved_list.items:
                available = self.ledger.available(item.product_id)
                if available < item.quantity:
                    out_of_stock.append(
                        {
                            "product_id": item.product_id,
                            "product_name": item.product.name,
                            "requested_quantity": item.quantity,
                            "available_quantity": available,
                        }
                    )
                else:
                    in_stock.append(item)

            cart = CartService(db).get_or_create_cart(buyer_id, for_update=True)
            for item in in_stock:
                existing = self.carts.get_cart_item(cart, item.product_id)
                if existing:
                    existing.quantity = item.quantity
                    db.flush()
                else:
                    self.carts.add_cart_item(
                        cart,
                        CartItemModel(
                            product_id=item.product_id,
                            quantity=item.quantity,
                            unit_price_cents=item.product.price_cents,
                        ),
                    )

            result = {
                "message": "Items added to cart" if in_stock else "No items added",
                "cart": cart_to_dict(cart),
                "added_items_count": len(in_stock),
                "skipped_items_count": len(out_of_stock),
                "out_of_stock_items": out_of_stock,
                "warning": None,
            }
            if out_of_stock:
                result["warning"] = "Some items were out of stock and excluded from cart"
            return result

        result = with_transaction(self.db, _copy)
        logger.info(
            f"Saved list {list_id} copied to cart of buyer {buyer_id}: "
            f"{result['added_items_count']} added, {result['skipped_items_count']} skipped"
        )
        return result
