"""Reusable validation helpers for ticket, catalog and account input.

Helpers raise ValidationError (400) with a per-field message, or return the cleaned
value so they can be used inline.
"""
from __future__ import annotations
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional
from techservice.errors import ValidationError

CUSTOM_BRAND = 'custom'


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or raises ValidationError.
    """
    if new_status not in allowed:
        raise ValidationError(fields={field_name: 'invalid'})
    return new_status


def require_text(value: Any, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(fields={field_name: 'required'})
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    """Empty form values are stored as NULL."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_amount(value: Any, field_name: str, required: bool = False) -> Optional[float]:
    """Parse a money value entered as text or number.

    Empty input yields None (or a 'required' error). Anything that is not a finite,
    non-negative decimal is rejected; NaN or the raw string is never returned.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(fields={field_name: 'required'})
        return None
    if isinstance(value, bool):
        raise ValidationError(fields={field_name: 'must be a number'})
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(fields={field_name: 'must be a number'})
    if not number.is_finite():
        raise ValidationError(fields={field_name: 'must be a number'})
    if number < 0:
        raise ValidationError(fields={field_name: 'must not be negative'})
    result = float(number)
    if not math.isfinite(result):
        raise ValidationError(fields={field_name: 'must be a number'})
    return result


def resolve_brand(selection: Any, custom_value: Any = None) -> Optional[str]:
    """Map the brand picker to the stored value.

    KOBRA / HAGEL are stored as-is; the ``custom`` sentinel is replaced by the free-text
    value, which is then required. Any other non-empty string is already resolved.
    """
    chosen = optional_text(selection)
    if chosen is None:
        return None
    if chosen.lower() == CUSTOM_BRAND:
        return require_text(custom_value, 'brand_custom')
    return chosen


def validate_password(raw: Any, min_length: int = 8, field_name: str = 'password') -> str:
    if not raw:
        raise ValidationError(fields={field_name: 'required'})
    if len(str(raw)) < min_length:
        raise ValidationError(fields={field_name: f'must be at least {min_length} characters'})
    return str(raw)


class FieldErrors:
    """Collect several field failures and raise them together."""

    def __init__(self):
        self.fields = {}

    def check(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ValidationError as e:
            self.fields.update(e.fields)
            return None

    def raise_if_any(self):
        if self.fields:
            raise ValidationError(fields=self.fields)


__all__ = [
    'validate_status', 'require_text', 'optional_text', 'parse_amount', 'resolve_brand',
    'validate_password', 'FieldErrors', 'CUSTOM_BRAND',
]
