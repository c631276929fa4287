from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.inventory import InventoryRecordModel


class InventoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_record(
        self,
        product_id: int,
        owner_type: str = "PLATFORM",
        owner_id: int | None = None,
        for_update: bool = False,
    ) -> InventoryRecordModel | None:
        stmt = select(InventoryRecordModel).where(
            InventoryRecordModel.product_id == product_id,
            InventoryRecordModel.owner_type == owner_type,
        )
        if owner_id is None:
            stmt = stmt.where(InventoryRecordModel.owner_id.is_(None))
        else:
            stmt = stmt.where(InventoryRecordModel.owner_id == owner_id)
        if for_update:
            # SELECT ... FOR UPDATE, held until the enclosing transaction ends
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt.order_by(InventoryRecordModel.id).limit(1)).scalar_one_or_none()

    def add_record(self, record: InventoryRecordModel) -> InventoryRecordModel:
        self.db.add(record)
        self.db.flush()
        return record
