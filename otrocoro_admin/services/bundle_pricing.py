"""
Bundle pricing

Pure functions: the same items and discount always produce the same prices.
Malformed input (negative prices or quantities) is rejected upstream by the
schemas and the validator.
"""
from decimal import Decimal
from typing import Optional, Sequence

from otrocoro_admin.schemas.bundle import (
    BundleItem,
    DiscountPolicy,
    BundlePriceDiscount,
    BundlePricing,
    FixedDiscount,
    PercentageDiscount,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def compute_pricing(items: Sequence[BundleItem], discount: DiscountPolicy) -> BundlePricing:
    """
    Derive bundle prices from line items and a discount policy.

    - percentage: total * (1 - value / 100)
    - fixed: total - value, clamped at zero
    - bundle_price: value, independent of the item total

    savings_percentage is 0 when the item total is 0.
    """
    total = sum((item.original_price * item.quantity for item in items), ZERO)

    if isinstance(discount, PercentageDiscount):
        bundle_price = total * (1 - discount.value / HUNDRED)
    elif isinstance(discount, FixedDiscount):
        bundle_price = max(ZERO, total - discount.value)
    elif isinstance(discount, BundlePriceDiscount):
        bundle_price = discount.value
    else:
        raise TypeError(f"Unsupported discount policy: {type(discount).__name__}")

    savings = total - bundle_price
    savings_percentage = savings / total * HUNDRED if total > 0 else ZERO

    return BundlePricing(
        total_original_price=total,
        bundle_price=bundle_price,
        savings=savings,
        savings_percentage=savings_percentage,
    )


def compute_availability(items: Sequence[BundleItem]) -> Optional[int]:
    """
    Whole bundles the tracked stock can supply.

    Limited by the scarcest item; items without a stock snapshot are
    untracked. Returns None when no item tracks stock.
    """
    quantities = [
        max(0, item.stock) // item.quantity
        for item in items
        if item.stock is not None
    ]
    return min(quantities) if quantities else None


def is_in_stock(available_quantity: Optional[int]) -> bool:
    return available_quantity is None or available_quantity > 0
