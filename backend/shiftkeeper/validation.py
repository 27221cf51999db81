from __future__ import annotations

from typing import Any


# Register and safe amounts are capped well above anything a store drawer
# can physically hold; anything larger is a typo.
MAX_AMOUNT_CENTS = 99_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., second active shift)."""

    def __init__(self, message: str, *, code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        if self.code:
            body["code"] = self.code
        body.update(self.details)
        return body


class NotFoundError(LookupError):
    """404-level missing entity."""


def parse_cents(
    value: Any,
    field: str,
    *,
    required: bool = True,
    positive: bool = False,
) -> int | None:
    """
    Strict integer-cents coercion.

    Rejects floats, decimals, scientific notation, booleans and negatives.
    `positive` additionally rejects zero.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer number of cents")

    if isinstance(value, int):
        cents = value
    elif isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation (e.g., "1e5")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer number of cents (no decimals)")
        try:
            cents = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer number of cents")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer number of cents, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer number of cents")

    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if positive and cents == 0:
        raise ValidationError(f"{field} must be > 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return cents


def parse_count(value: Any, field: str) -> int:
    """Non-negative integer count (bill counts); blank means zero."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be a whole number")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number")
    if count < 0:
        raise ValidationError(f"{field} must be >= 0")
    return count


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def parse_id(value: Any, field: str, *, required: bool = True) -> int | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer id")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id")
    if parsed <= 0:
        raise ValidationError(f"{field} must be an integer id")
    return parsed


def clean_text(value: Any, *, max_length: int | None = None, field: str = "note") -> str | None:
    """Strip free text; empty collapses to None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    text = clean_text(value, max_length=max_length, field=field)
    if text is None:
        raise ValidationError(f"{field} is required")
    return text


def require_choice(value: Any, field: str, choices: tuple[str, ...]) -> str:
    text = clean_text(value, field=field)
    if text is None:
        raise ValidationError(f"{field} is required")
    text = text.lower()
    if text not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return text
