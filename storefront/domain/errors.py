# storefront/domain/errors.py
"""
Typed business errors.

Every error carries a stable ``code`` discriminant and its structured payload,
routers map the class to an HTTP status and never parse messages.
"""
from typing import Any, Dict


class StorefrontError(Exception):
    code = "STOREFRONT_ERROR"

    def __init__(self, message: str, **payload: Any):
        super().__init__(message)
        self.message = message
        self.payload = payload

    def to_detail(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.payload}


# validation / conflict (ValueError like the rest of the codebase)
class ValidationFailed(StorefrontError, ValueError):
    code = "VALIDATION_FAILED"


class EmptyCart(StorefrontError, ValueError):
    code = "EMPTY_CART"

    def __init__(self, buyer_id: int):
        super().__init__("Cart is empty", buyer_id=buyer_id)


class InsufficientStock(StorefrontError, ValueError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, product_name: str, requested: int, available: int):
        super().__init__(
            f"Stock insufficient for {product_name}",
            product_id=product_id,
            product_name=product_name,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class InvalidTransition(StorefrontError, ValueError):
    code = "INVALID_TRANSITION"

    def __init__(self, order_id: int, current: str, target: str):
        super().__init__(
            f"Cannot move order {order_id} from {current} to {target}",
            order_id=order_id,
            current=current,
            target=target,
        )
        self.current = current
        self.target = target


class DuplicateSku(StorefrontError, ValueError):
    code = "DUPLICATE_SKU"

    def __init__(self, sku: str):
        super().__init__(f"Product with SKU {sku} already exists", sku=sku)


class ProductInUse(StorefrontError, ValueError):
    code = "PRODUCT_IN_USE"

    def __init__(self, product_id: int, active_lines: int):
        super().__init__(
            "Product is referenced by orders that are not yet shipped or cancelled",
            product_id=product_id,
            active_lines=active_lines,
        )


# authorization
class Unauthenticated(StorefrontError, PermissionError):
    code = "UNAUTHENTICATED"

    def __init__(self):
        super().__init__("Unauthorized")


class Forbidden(StorefrontError, PermissionError):
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class InvalidSignature(StorefrontError, PermissionError):
    code = "INVALID_SIGNATURE"

    def __init__(self, reason: str):
        super().__init__("Invalid signature", reason=reason)


# not found
class NotFound(StorefrontError, LookupError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found", entity=entity, entity_id=entity_id)


# upstream payment provider
class PaymentProviderError(StorefrontError, RuntimeError):
    code = "PAYMENT_PROVIDER_ERROR"
