from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class InventoryRecordModel(Base):
    __tablename__ = "inventory_records"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    owner_type = Column(String, nullable=False, default="PLATFORM")  # PLATFORM, SUPPLIER, BUYER
    owner_id = Column(Integer, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)

    product = relationship("ProductModel", back_populates="inventories")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        UniqueConstraint("product_id", "owner_type", "owner_id", name="u_inventory_owner"),
    )
