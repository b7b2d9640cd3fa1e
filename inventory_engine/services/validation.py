"""Input checks shared by the engine services.

These run before a transaction is opened so that bad input never causes
a partial write.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from inventory_engine.core.exceptions import ValidationError


QUANTITY_STEP = Decimal("0.01")


def to_decimal(value, field: str = "quantity") -> Decimal:
    """Coerce ``value`` to a Decimal that fits the two-place quantity columns."""
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number", field=field, value=str(value))
    if not quantity.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field, value=str(value))
    try:
        exact = quantity.quantize(QUANTITY_STEP) == quantity
    except InvalidOperation:
        exact = False
    if not exact:
        raise ValidationError(
            f"{field} allows at most two decimal places", field=field, value=str(value)
        )
    return quantity


def require_positive(value, field: str = "quantity") -> Decimal:
    """Return ``value`` as a Decimal, rejecting zero and negative numbers."""
    quantity = to_decimal(value, field)
    if quantity <= 0:
        raise ValidationError(f"{field} must be greater than zero", field=field, value=quantity)
    return quantity


def require_non_negative(value, field: str = "quantity") -> Decimal:
    quantity = to_decimal(value, field)
    if quantity < 0:
        raise ValidationError(f"{field} cannot be negative", field=field, value=quantity)
    return quantity


def normalize_serials(serial_numbers: Optional[Iterable[str]], quantity: Decimal) -> List[str]:
    """Clean a serial list and check it has one unique serial per unit."""
    if not serial_numbers:
        return []
    serials = [s.strip() for s in serial_numbers if s and s.strip()]
    if len(set(serials)) != len(serials):
        raise ValidationError("Serial numbers must be unique", field="serial_numbers")
    if Decimal(len(serials)) != quantity:
        raise ValidationError(
            f"Got {len(serials)} serial numbers for a quantity of {quantity}",
            field="serial_numbers",
        )
    return serials
