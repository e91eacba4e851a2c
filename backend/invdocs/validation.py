from __future__ import annotations
from datetime import datetime
from invdocs.time_utils import parse_iso_datetime

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum money amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

MOVEMENT_TYPES = ("IN", "OUT")

# Decimal amount keys accepted on inventory writes, mapped to their cents column
AMOUNT_ALIASES = {
    "unit_cost": "unit_cost_cents",
    "unitCost": "unit_cost_cents",
    "unit_price": "unit_price_cents",
    "unitPrice": "unit_price_cents",
}

CENT = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level: referenced identifier does not exist."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


class InsufficientStockError(ValueError):
    """400-level: an OUT movement exceeds the stock derivable from the ledger."""

    def __init__(self, message: str, *, available: int = 0, requested: int = 0):
        super().__init__(message)
        self.available = available
        self.requested = requested


class StoreUnavailableError(RuntimeError):
    """500-level: persistence layer (database or blob storage) unreachable."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - extra_fields: accepted keys that are not model columns (handled by the service)
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    extra_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_amount_cents(key: str, value: Any) -> int:
    """Money amount such as "2.675" or 3.5 to integer cents, rounding half away from zero."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            raise ValidationError(f"{key} must be a number")
        return int(amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100)
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    Keys listed in policy.extra_fields are passed through untouched; the
    service that owns them is responsible for their validation.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(
            f for f in required
            if payload.get(f) is None or (isinstance(payload.get(f), str) and not payload[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    extra = policy.extra_fields or set()

    for k in payload.keys():
        if k not in policy.writable_fields and k not in extra:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols and k not in extra:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in extra:
            patch[k] = raw
            continue

        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _enforce_money(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        amount = patch[key]
        if amount < 0:
            raise ValidationError(f"{key} must be >= 0")
        if amount > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} ({MAX_PRICE_CENTS / 100:,.2f})")


def enforce_rules_inventory_item(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for alias, target in AMOUNT_ALIASES.items():
        if alias not in patch:
            continue
        raw = patch.pop(alias)
        if target in patch:
            raise ValidationError(f"Send either {alias} or {target}, not both")
        patch[target] = coerce_amount_cents(alias, raw)

    _enforce_money(patch, "unit_cost_cents")
    _enforce_money(patch, "unit_price_cents")

    if "quantity" in patch:
        if patch["quantity"] is None:
            raise ValidationError("quantity cannot be null")
        qty = coerce_int("quantity", patch["quantity"])
        if qty < 0:
            raise ValidationError("quantity must be >= 0")
        patch["quantity"] = qty


def enforce_rules_stock_movement(patch: dict) -> None:
    movement_type = str(patch.get("type") or "").strip().upper()
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be IN or OUT")
    patch["type"] = movement_type

    if patch.get("quantity") is None:
        raise ValidationError("quantity is required")
    qty = coerce_int("quantity", patch["quantity"])
    if qty <= 0:
        raise ValidationError("quantity must be > 0")
    patch["quantity"] = qty


def normalize_order_lines(raw_lines: Any) -> list[dict]:
    """
    Validate the line list of an order or sale.

    Each line needs sku, name, qty > 0 and price_cents >= 0.
    Returns cleaned dicts in the submitted order.
    """
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("lines must be a non-empty list")

    cleaned = []
    for idx, line in enumerate(raw_lines, start=1):
        if not isinstance(line, dict):
            raise ValidationError(f"line {idx} must be an object")
        missing = [f for f in ("sku", "name", "qty", "price_cents") if line.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"line {idx} missing required fields: {', '.join(missing)}")

        qty = coerce_int(f"line {idx} qty", line["qty"])
        if qty <= 0:
            raise ValidationError(f"line {idx} qty must be > 0")
        price = coerce_int(f"line {idx} price_cents", line["price_cents"])
        if price < 0:
            raise ValidationError(f"line {idx} price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"line {idx} price_cents cannot exceed {MAX_PRICE_CENTS}")

        cleaned.append({
            "sku": str(line["sku"]).strip(),
            "name": str(line["name"]).strip(),
            "qty": qty,
            "price_cents": price,
        })
    return cleaned
