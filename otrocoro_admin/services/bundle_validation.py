"""
Bundle validation

Checks a candidate bundle definition before it is persisted. Every rule is
evaluated so the caller gets the complete list of problems; nothing is
raised. Candidates may be pydantic models (BundleCreate, BundleUpdate,
Bundle) or plain mappings with any subset of the bundle fields.
"""
import logging
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from otrocoro_admin.core.config import settings
from otrocoro_admin.core.utils import as_utc
from otrocoro_admin.schemas.bundle import BundleStatus, BundleValidation

logger = logging.getLogger(__name__)


def _read(candidate: Any, name: str) -> Any:
    if isinstance(candidate, Mapping):
        return candidate.get(name)
    return getattr(candidate, name, None)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


_datetime_adapter = TypeAdapter(Optional[datetime])


def _to_datetime(value: Any) -> Tuple[Optional[datetime], bool]:
    """Parse a datetime or ISO string. Returns (value, ok)."""
    try:
        return as_utc(_datetime_adapter.validate_python(value)), True
    except ValidationError:
        return None, False


def _discount_parts(discount: Any) -> Tuple[Optional[str], Optional[Decimal]]:
    return _read(discount, "type"), _to_decimal(_read(discount, "value"))


def validate_bundle(candidate: Any) -> BundleValidation:
    """
    Validate a bundle definition.

    Errors:
    - name missing or shorter than BUNDLE_NAME_MIN_LENGTH
    - fewer than BUNDLE_MIN_ITEMS items
    - percentage discount outside [0, 100]
    - negative fixed discount or explicit bundle price
    - start_date or end_date not a valid date
    - end_date not after start_date
    - status scheduled without a start_date
    - max_quantity below min_quantity

    Warnings:
    - more than BUNDLE_MAX_ITEMS_WARNING items
    """
    errors: List[str] = []
    warnings: List[str] = []

    name = _read(candidate, "name")
    if not isinstance(name, str) or len(name.strip()) < settings.BUNDLE_NAME_MIN_LENGTH:
        errors.append(f"Name must be at least {settings.BUNDLE_NAME_MIN_LENGTH} characters")

    items = _read(candidate, "items") or []
    if len(items) < settings.BUNDLE_MIN_ITEMS:
        errors.append(f"A bundle must contain at least {settings.BUNDLE_MIN_ITEMS} products")

    discount = _read(candidate, "discount")
    if discount is not None:
        discount_type, value = _discount_parts(discount)
        if value is None:
            errors.append("Discount value must be a number")
        elif discount_type == "percentage" and (value < 0 or value > 100):
            errors.append("Percentage discount must be between 0 and 100")
        elif discount_type == "fixed" and value < 0:
            errors.append("Fixed discount cannot be negative")
        elif discount_type == "bundle_price" and value < 0:
            errors.append("Bundle price cannot be negative")

    start_date, start_ok = _to_datetime(_read(candidate, "start_date"))
    if not start_ok:
        errors.append("Start date is not a valid date")
    end_date, end_ok = _to_datetime(_read(candidate, "end_date"))
    if not end_ok:
        errors.append("End date is not a valid date")
    if start_date and end_date and end_date <= start_date:
        errors.append("End date must be after start date")

    status = _read(candidate, "status")
    if status == BundleStatus.SCHEDULED and start_ok and start_date is None:
        errors.append("Scheduled bundles need a start date")

    restrictions = _read(candidate, "restrictions")
    if restrictions is not None:
        min_quantity = _read(restrictions, "min_quantity")
        max_quantity = _read(restrictions, "max_quantity")
        if min_quantity is not None and max_quantity is not None and max_quantity < min_quantity:
            errors.append("Maximum quantity must be greater than or equal to minimum quantity")

    if len(items) > settings.BUNDLE_MAX_ITEMS_WARNING:
        warnings.append(
            f"Bundles with more than {settings.BUNDLE_MAX_ITEMS_WARNING} products "
            f"may confuse the customer"
        )

    if errors:
        logger.debug(f"Bundle candidate rejected: {errors}")

    return BundleValidation(is_valid=not errors, errors=errors, warnings=warnings)
