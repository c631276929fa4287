# storefront/services/inventory_ledger.py
from typing import Iterable, Tuple

from sqlalchemy.orm import Session

from storefront.data.models.inventory import InventoryRecordModel
from storefront.data.models.product import ProductModel
from storefront.domain.errors import InsufficientStock, ValidationFailed
from storefront.repos.inventory_repo import InventoryRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PLATFORM = "PLATFORM"


class InventoryLedger:
    """
    Single source of truth for available units per product.

    - every read that precedes a write locks the row (SELECT ... FOR UPDATE)
    - nothing here commits, mutations belong to the caller's transaction
    - release does not deduplicate, the order status guard does
    """

    def __init__(self, db: Session, owner_type: str = PLATFORM, owner_id: int | None = None):
        self.db = db
        self.repo = InventoryRepo(db)
        self.owner_type = owner_type
        self.owner_id = owner_id

    def _record(self, product_id: int, for_update: bool) -> InventoryRecordModel | None:
        return self.repo.get_record(
            product_id,
            owner_type=self.owner_type,
            owner_id=self.owner_id,
            for_update=for_update,
        )

    def available(self, product_id: int) -> int:
        record = self._record(product_id, for_update=False)
        return record.quantity if record else 0

    def is_low_stock(self, product: ProductModel) -> bool:
        return self.available(product.id) <= product.low_threshold

    def reserve(self, product_id: int, quantity: int, product_name: str | None = None) -> int:
        """Decrement under row lock. Returns the remaining quantity."""
        if quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0", quantity=quantity)

        record = self._record(product_id, for_update=True)
        available = record.quantity if record else 0

        if record is None or quantity > available:
            logger.info(
                f"Reservation refused for product {product_id}: "
                f"requested {quantity}, available {available}"
            )
            raise InsufficientStock(
                product_id=product_id,
                product_name=product_name or str(product_id),
                requested=quantity,
                available=available,
            )

        record.quantity = available - quantity
        self.db.flush()
        return record.quantity

    def reserve_all(self, lines: Iterable[Tuple[int, int, str]]) -> None:
        """
        Reserve (product_id, quantity, product_name) lines all-or-nothing.

        Rows are locked in ascending product id order so two multi-line orders
        never wait on each other in opposite order. The first shortfall raises
        and the caller's rollback undoes every decrement made before it.
        """
        for product_id, quantity, product_name in sorted(lines, key=lambda line: line[0]):
            self.reserve(product_id, quantity, product_name)

    def release(self, product_id: int, quantity: int) -> int | None:
        """Increment under row lock. Returns the new quantity, None if there is no record."""
        if quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0", quantity=quantity)

        record = self._record(product_id, for_update=True)
        if record is None:
            logger.warning(f"No inventory record for product {product_id}, release of {quantity} skipped")
            return None

        record.quantity += quantity
        self.db.flush()
        logger.info(f"Released {quantity} units of product {product_id}, now {record.quantity}")
        return record.quantity

    def set_quantity(self, product_id: int, quantity: int) -> InventoryRecordModel:
        """Admin stock adjustment, creates the record on first use."""
        if quantity < 0:
            raise ValidationFailed("Stock must not be negative", quantity=quantity)

        record = self._record(product_id, for_update=True)
        if record is None:
            record = self.repo.add_record(
                InventoryRecordModel(
                    product_id=product_id,
                    owner_type=self.owner_type,
                    owner_id=self.owner_id,
                    quantity=quantity,
                )
            )
        else:
            record.quantity = quantity
            self.db.flush()
        return record
