# import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.user import UserModel
from storefront.data.models.product import ProductModel
from storefront.data.models.inventory import InventoryRecordModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_line import OrderLineModel
from storefront.data.models.saved_list import SavedListModel, SavedListItemModel

__all__ = [
    "UserModel",
    "ProductModel",
    "InventoryRecordModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderLineModel",
    "SavedListModel",
    "SavedListItemModel",
]
