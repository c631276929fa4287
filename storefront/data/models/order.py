from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, Text, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String, nullable=False, default="CREATED")  # CREATED, PAID, SHIPPED, CANCELLED
    payment_status = Column(String, nullable=False, default="PENDING")  # PENDING, PAID, PAYMENT_FAILED

    subtotal_cents = Column(Integer, nullable=False)
    tax_cents = Column(Integer, nullable=False, default=0)
    shipping_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False)

    po_number = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    # hosted checkout session id, later the provider's payment id
    payment_reference = Column(String, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    lines = relationship(
        "OrderLineModel",
        back_populates="order",
        order_by="OrderLineModel.id",
    )

    __table_args__ = (
        CheckConstraint(
            "total_cents = subtotal_cents + tax_cents + shipping_cents",
            name="ck_order_total",
        ),
    )
