from __future__ import annotations

from typing import Any

from .time_utils import parse_document_date


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals and
    scientific notation rather than silently truncating them.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return result


def parse_optional_int(value: Any, field: str, *, minimum: int | None = None) -> int | None:
    if value is None:
        return None
    return parse_int(value, field, minimum=minimum)


def parse_date(value: Any, field: str = "date"):
    try:
        return parse_document_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def require_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _require_list(value: Any, field: str) -> list:
    if not isinstance(value, list) or not value:
        raise ValidationError(f"{field} must be a non-empty list")
    return value


def parse_voucher_lines(value: Any) -> list[dict]:
    """
    Voucher lines: [{"item_id": 1, "quantity": 5, "unit_price_cents": 1000}].

    Quantities must be strictly positive; the voucher type decides direction.
    """
    lines = []
    for index, entry in enumerate(_require_list(value, "items")):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object")
        unit_price_cents = parse_optional_int(
            entry.get("unit_price_cents"), f"items[{index}].unit_price_cents", minimum=0
        ) or 0
        if unit_price_cents > MAX_PRICE_CENTS:
            raise ValidationError(f"items[{index}].unit_price_cents exceeds maximum of {MAX_PRICE_CENTS}")
        lines.append({
            "item_id": parse_int(entry.get("item_id"), f"items[{index}].item_id", minimum=1),
            "quantity": parse_int(entry.get("quantity"), f"items[{index}].quantity", minimum=1),
            "unit_price_cents": unit_price_cents,
        })
    return lines


def parse_count_lines(value: Any) -> list[dict]:
    """
    Count lines: [{"item_id": 1, "actual_stock": 7, "system_stock": 5, "cost_cents": 1000}].

    system_stock and cost_cents are optional. Any client-sent difference is
    ignored; it is always recomputed.
    """
    lines = []
    for index, entry in enumerate(_require_list(value, "items")):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object")
        lines.append({
            "item_id": parse_int(entry.get("item_id"), f"items[{index}].item_id", minimum=1),
            "actual_stock": parse_int(entry.get("actual_stock"), f"items[{index}].actual_stock", minimum=0),
            "system_stock": parse_optional_int(entry.get("system_stock"), f"items[{index}].system_stock"),
            "cost_cents": parse_optional_int(entry.get("cost_cents"), f"items[{index}].cost_cents", minimum=0),
        })
    return lines
