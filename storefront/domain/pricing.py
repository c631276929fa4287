# storefront/domain/pricing.py
from dataclasses import dataclass

# rates in hundred-thousandths so every computation stays in integers
GST_RATE = 5_000  # 5%
QST_RATE = 9_975  # 9.975%
_RATE_SCALE = 100_000

FREE_SHIPPING_THRESHOLD_CENTS = 10_000  # $100
FLAT_SHIPPING_CENTS = 1_000  # $10


@dataclass(frozen=True)
class OrderTotals:
    subtotal_cents: int
    gst_cents: int
    qst_cents: int
    tax_cents: int
    shipping_cents: int
    total_cents: int


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def calculate_gst(subtotal_cents: int) -> int:
    return _round_half_up(subtotal_cents * GST_RATE, _RATE_SCALE)


def calculate_qst(subtotal_cents: int) -> int:
    return _round_half_up(subtotal_cents * QST_RATE, _RATE_SCALE)


def calculate_shipping(subtotal_cents: int) -> int:
    if subtotal_cents >= FREE_SHIPPING_THRESHOLD_CENTS:
        return 0
    return FLAT_SHIPPING_CENTS


def compute_totals(subtotal_cents: int) -> OrderTotals:
    """
    Tax is the sum of two independently rounded components (GST + QST),
    the sum itself is never rounded again.
    """
    if subtotal_cents < 0:
        raise ValueError("subtotal_cents must not be negative")

    gst = calculate_gst(subtotal_cents)
    qst = calculate_qst(subtotal_cents)
    tax = gst + qst
    shipping = calculate_shipping(subtotal_cents)

    return OrderTotals(
        subtotal_cents=subtotal_cents,
        gst_cents=gst,
        qst_cents=qst,
        tax_cents=tax,
        shipping_cents=shipping,
        total_cents=subtotal_cents + tax + shipping,
    )
