from __future__ import annotations

from typing import Any


# Upper bound for any single amount: 999,999,999 FCFA.
# Keeps values inside a 32-bit integer column.
MAX_AMOUNT = 999_999_999

# Per line, after merging duplicate products.
MAX_QUANTITY = 100_000

NAME_MAX_LENGTH = 255
UNIT_MAX_LENGTH = 64
TABLE_NUMBER_MAX_LENGTH = 32


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate invoice number)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def require_text(payload: dict, key: str, *, max_length: int = NAME_MAX_LENGTH) -> str:
    """Return a stripped, non-empty string field or raise ValidationError."""
    value = payload.get(key)
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required", details={"field": key})
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(
            f"{key} must be at most {max_length} characters", details={"field": key}
        )
    return value


def optional_text(payload: dict, key: str, *, max_length: int | None = None) -> str:
    """Missing or null becomes "", anything else is coerced and stripped."""
    value: Any = payload.get(key)
    if value is None:
        return ""
    value = str(value).strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            f"{key} must be at most {max_length} characters", details={"field": key}
        )
    return value


def parse_positive_int(value: Any, field: str, *, maximum: int | None = None) -> int:
    """
    Strict integer parsing for quantities.

    Accepts ints and plain digit strings; rejects bools, floats with a
    fractional part, scientific notation and anything <= 0.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer", details={"field": field})
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float) and value.is_integer():
        parsed = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise ValidationError(f"{field} must be a positive integer", details={"field": field})
    if parsed <= 0:
        raise ValidationError(f"{field} must be a positive integer", details={"field": field})
    if maximum is not None and parsed > maximum:
        raise ValidationError(f"{field} must be at most {maximum}", details={"field": field})
    return parsed


class NotFoundError(LookupError):
    """404-level: the referenced invoice, adjustment, product or user is absent."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}
