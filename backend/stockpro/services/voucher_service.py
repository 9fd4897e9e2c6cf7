# Overview: Helpers shared by the receipt, issue and transfer voucher services.

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..errors import NotFoundError, VoucherError
from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from .catalog_service import get_item
from .concurrency import lock_for_update


DEFAULT_LIST_LIMIT = 200


def check_lines(company_id: int, lines: list[Mapping[str, Any]]) -> None:
    """Every line must have a positive quantity and an item of this company."""
    if not lines:
        raise VoucherError("At least one item is required")
    for line in lines:
        if int(line["quantity"]) <= 0:
            raise VoucherError("Quantity must be greater than zero")
        if int(line.get("unit_price_cents") or 0) < 0:
            raise VoucherError("Unit price cannot be negative")
        get_item(int(line["item_id"]), company_id)


def build_lines(line_model, lines: Iterable[Mapping[str, Any]]) -> list:
    """New line rows; total = quantity * unit price."""
    built = []
    for line in lines:
        quantity = int(line["quantity"])
        unit_price_cents = int(line.get("unit_price_cents") or 0)
        built.append(line_model(
            item_id=int(line["item_id"]),
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            total_price_cents=quantity * unit_price_cents,
        ))
    return built


def total_amount_cents(lines: Iterable[Any]) -> int:
    return sum(line.total_price_cents for line in lines)


def resolve_branch_id(user: User, branch_id: int | None) -> int | None:
    """Explicit branch wins, otherwise the acting user's branch."""
    return branch_id if branch_id is not None else user.branch_id


def apply_header(voucher, *, date=None, notes=None) -> None:
    if date is not None:
        voucher.date = date
    elif voucher.date is None:
        voucher.date = utcnow()
    if notes is not None:
        voucher.notes = notes


def get_voucher(model, label: str, voucher_id: int, company_id: int | None = None, *, lock: bool = False):
    q = db.session.query(model).filter(model.id == voucher_id)
    if company_id is not None:
        q = q.filter(model.company_id == company_id)
    if lock:
        q = lock_for_update(q)
    voucher = q.first()
    if voucher is None:
        raise NotFoundError(f"{label} {voucher_id} not found")
    return voucher


def list_vouchers(model, company_id: int, *, store_filter=None, limit: int = DEFAULT_LIST_LIMIT) -> list:
    q = db.session.query(model).filter(model.company_id == company_id)
    if store_filter is not None:
        q = q.filter(store_filter)
    return q.order_by(model.id.desc()).limit(limit).all()
