from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, Text, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class SavedListModel(Base):
    __tablename__ = "saved_lists"

    id = Column(Integer, primary_key=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "SavedListItemModel",
        back_populates="saved_list",
        cascade="all, delete-orphan",
        order_by="SavedListItemModel.id",
    )


class SavedListItemModel(Base):
    __tablename__ = "saved_list_items"

    id = Column(Integer, primary_key=True)
    list_id = Column(Integer, ForeignKey("saved_lists.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False)

    saved_list = relationship("SavedListModel", back_populates="items")
    product = relationship("ProductModel")

    __table_args__ = (UniqueConstraint("list_id", "product_id", name="u_list_product"),)
