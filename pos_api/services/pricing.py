from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional, Union

from ..config import settings
from ..models.order import OrderItem

CENT = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def to_money(value: Amount) -> Decimal:
    """Quantize to cents. Floats go through ``str`` so 0.1 stays 0.1."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_subtotal(items: Iterable[OrderItem]) -> Decimal:
    return to_money(sum((Decimal(str(item.price)) * item.quantity for item in items), Decimal("0")))


def calculate_tax(subtotal: Decimal, tax_rate: Optional[Decimal] = None) -> Decimal:
    rate = settings.TAX_RATE if tax_rate is None else tax_rate
    return to_money(subtotal * rate)


def apply_discount(subtotal: Decimal, tax: Decimal, discount: Amount = 0) -> Decimal:
    return to_money(subtotal) + to_money(tax) - to_money(discount)


def calculate_order_total(
    items: Iterable[OrderItem], discount: Amount = 0, tax_rate: Optional[Decimal] = None
) -> Dict[str, Decimal]:
    """Helper function to calculate order subtotal, tax, discount and total."""
    subtotal = calculate_subtotal(items)
    tax = calculate_tax(subtotal, tax_rate)
    discount = to_money(discount)
    return {
        "subtotal": subtotal,
        "tax": tax,
        "discount": discount,
        "total": apply_discount(subtotal, tax, discount),
    }
