# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import List, Optional
from datetime import datetime


class ItemIn(BaseModel):
    """Adds a product to the cart, by id or by SKU."""

    product_id: Optional[int] = Field(None, gt=0, description="Product id")
    sku: Optional[str] = Field(None, min_length=1, description="Product SKU")
    quantity: int = Field(..., gt=0, description="Quantity, must be > 0")

    @model_validator(mode="after")
    def _product_reference(self):
        if self.product_id is None and self.sku is None:
            raise ValueError("Provide product_id or sku")
        return self


class ItemQuantityIn(BaseModel):
    quantity: int = Field(..., ge=0, description="New quantity, 0 removes the line")


class ProductRef(BaseModel):
    id: int
    sku: Optional[str] = None
    name: str

    model_config = ConfigDict(from_attributes=True)


class CartItemOut(BaseModel):
    product_id: int
    quantity: int
    unit_price_cents: int
    line_total_cents: int
    product: ProductRef


class TotalsOut(BaseModel):
    subtotal_cents: int
    tax_cents: int
    shipping_cents: int
    total_cents: int


class CartOut(BaseModel):
    cart_id: int
    buyer_id: int
    order_id: Optional[int] = None
    items: List[CartItemOut]
    totals: TotalsOut


class UserRead(BaseModel):
    id: int
    external_id: str
    role: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserSyncIn(BaseModel):
    """Identity provider user sync (created / updated)."""

    email: Optional[str] = Field(None, max_length=320)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: Optional[str] = Field(None, pattern=r"^(BUYER|ADMIN)$")


class OrderCreate(BaseModel):
    po_number: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = Field(None, max_length=2000)


class OrderLineOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    sku: Optional[str] = None
    quantity: int
    unit_price_cents: int

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    buyer_id: int
    status: str
    payment_status: str
    subtotal_cents: int
    tax_cents: int
    shipping_cents: int
    total_cents: int
    po_number: Optional[str] = None
    notes: Optional[str] = None
    payment_reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    lines: List[OrderLineOut]

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderPage(BaseModel):
    data: List[OrderOut]
    pagination: Pagination


class CheckoutSessionIn(BaseModel):
    order_id: int = Field(..., gt=0)


class CheckoutSessionOut(BaseModel):
    url: str
    session_id: str


class PaymentStatusOut(BaseModel):
    payment_status: str
    updated: bool
    message: str


class WebhookAck(BaseModel):
    received: bool = True


class ProductCreate(BaseModel):
    sku: Optional[str] = Field(None, min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price_cents: int = Field(..., gt=0)
    unit: Optional[str] = None
    low_threshold: int = Field(0, ge=0)
    initial_stock: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    sku: Optional[str] = Field(None, min_length=1, max_length=64)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price_cents: Optional[int] = Field(None, gt=0)
    unit: Optional[str] = None
    low_threshold: Optional[int] = Field(None, ge=0)
    current_stock: Optional[int] = Field(None, ge=0)


class ProductOut(BaseModel):
    id: int
    sku: Optional[str] = None
    name: str
    description: Optional[str] = None
    price_cents: int
    unit: Optional[str] = None
    low_threshold: int
    current_stock: int
    low_stock: bool


class ProductPage(BaseModel):
    data: List[ProductOut]
    pagination: Pagination


class SavedListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None


class SavedListItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)


class SavedListItemOut(BaseModel):
    product_id: int
    quantity: int
    product: ProductRef

    model_config = ConfigDict(from_attributes=True)


class SavedListOut(BaseModel):
    id: int
    buyer_id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    items: List[SavedListItemOut]

    model_config = ConfigDict(from_attributes=True)


class OutOfStockItem(BaseModel):
    product_id: int
    product_name: str
    requested_quantity: int
    available_quantity: int


class SavedListToCartOut(BaseModel):
    message: str
    cart: CartOut
    added_items_count: int
    skipped_items_count: int
    out_of_stock_items: List[OutOfStockItem]
    warning: Optional[str] = None
