# Overview: Physical count lifecycle and variance settlement through vouchers.

"""
Physical inventory count service.

Compares the system balance with what was physically counted and settles
the variance through ordinary vouchers when the count is posted.

LIFECYCLE:
1. PENDING: Count created, lines may be replaced, count may be deleted
2. POSTED: Settlement vouchers created (terminal, immutable)

POSTING creates at most two vouchers in the count's store:
- one receipt holding every surplus line (difference > 0)
- one issue holding every shortage line (difference < 0)
The issue goes through the write guard like any other issue, so a shortage
larger than the current balance fails the whole post and the count stays
PENDING. Vouchers and the status flip are flushed in the caller's
transaction: either all of it commits or none of it does.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from ..errors import AlreadyPostedError, ImmutableCountError, NotFoundError, StockError
from ..extensions import db
from ..models import InventoryCount, InventoryCountItem
from ..time_utils import utcnow
from .catalog_service import get_item, get_store, get_user
from .concurrency import lock_for_update, run_with_retry
from .document_service import next_document_number
from .issue_voucher_service import create_issue_voucher
from .receipt_voucher_service import create_receipt_voucher
from .stock_service import get_balance

logger = logging.getLogger(__name__)


COUNT_STATUS_PENDING = "PENDING"
COUNT_STATUS_POSTED = "POSTED"

DOCUMENT_TYPE = "INVENTORY_COUNT"


class CountError(StockError):
    """Raised when a count payload is rejected."""

    code = "INVALID_COUNT"


def _get_count(count_id: int, company_id: int | None, *, lock: bool = False) -> InventoryCount:
    q = db.session.query(InventoryCount).filter(InventoryCount.id == count_id)
    if company_id is not None:
        q = q.filter(InventoryCount.company_id == company_id)
    if lock:
        q = lock_for_update(q)
    count = q.first()
    if count is None:
        raise NotFoundError(f"Count {count_id} not found")
    return count


def _build_lines(company_id: int, store_id: int, items: list[Mapping[str, Any]]) -> list[InventoryCountItem]:
    """
    Count lines with server-computed difference.

    system_stock defaults to the store's current balance; cost defaults to
    the item's purchase price.
    """
    if not items:
        raise CountError("At least one item is required")

    lines = []
    seen: set[int] = set()
    for entry in items:
        item = get_item(int(entry["item_id"]), company_id)
        if item.id in seen:
            raise CountError(f"Item {item.id} appears more than once on the count")
        seen.add(item.id)

        actual_stock = int(entry["actual_stock"])
        if actual_stock < 0:
            raise CountError("Actual stock cannot be negative")

        system_stock = entry.get("system_stock")
        if system_stock is None:
            system_stock = get_balance(store_id, item.id)
        system_stock = int(system_stock)

        cost_cents = entry.get("cost_cents")
        if cost_cents is None:
            cost_cents = item.purchase_price_cents or 0
        cost_cents = int(cost_cents)
        if cost_cents < 0:
            raise CountError("Cost cannot be negative")

        lines.append(InventoryCountItem(
            item_id=item.id,
            system_stock=system_stock,
            actual_stock=actual_stock,
            difference=actual_stock - system_stock,
            cost_cents=cost_cents,
        ))
    return lines


def _total_variance(lines) -> int:
    return sum(line.difference * line.cost_cents for line in lines)


def create_count(
    *,
    company_id: int,
    store_id: int,
    user_id: int,
    items: list[Mapping[str, Any]],
    date=None,
    notes: str | None = None,
    branch_id: int | None = None,
) -> InventoryCount:
    """
    Create a PENDING count with code INVC-0001, INVC-0002, ... per company.

    Raises:
        CountError: no lines, duplicate items or negative quantities
        NotFoundError: store, user or an item is not in the company
    """
    def _op():
        get_store(store_id, company_id)
        user = get_user(user_id, company_id)
        lines = _build_lines(company_id, store_id, items)

        count = InventoryCount(
            company_id=company_id,
            code=next_document_number(company_id=company_id, document_type=DOCUMENT_TYPE),
            store_id=store_id,
            user_id=user_id,
            branch_id=branch_id if branch_id is not None else user.branch_id,
            date=date or utcnow(),
            notes=notes,
            status=COUNT_STATUS_PENDING,
        )
        count.items = lines
        count.total_variance_value_cents = _total_variance(lines)

        db.session.add(count)
        db.session.flush()
        return count

    return run_with_retry(_op)


def update_count(
    count_id: int,
    *,
    company_id: int | None = None,
    items: list[Mapping[str, Any]] | None = None,
    date=None,
    notes: str | None = None,
) -> InventoryCount:
    """Replace a PENDING count's lines and/or header fields."""
    def _op():
        count = _get_count(count_id, company_id, lock=True)
        if count.status == COUNT_STATUS_POSTED:
            raise ImmutableCountError(f"Count {count.code} is posted and cannot be modified")

        if items is not None:
            lines = _build_lines(count.company_id, count.store_id, items)
            count.items = lines
            count.total_variance_value_cents = _total_variance(lines)
        if date is not None:
            count.date = date
        if notes is not None:
            count.notes = notes

        db.session.flush()
        return count

    return run_with_retry(_op)


def delete_count(count_id: int, *, company_id: int | None = None) -> None:
    def _op():
        count = _get_count(count_id, company_id, lock=True)
        if count.status == COUNT_STATUS_POSTED:
            raise ImmutableCountError(f"Count {count.code} is posted and cannot be deleted")
        db.session.delete(count)
        db.session.flush()

    return run_with_retry(_op)


def post_count(count_id: int, *, company_id: int | None = None) -> InventoryCount:
    """
    Post a count: settle surplus and shortage through vouchers.

    Vouchers are attributed to the count's store and user. Their branch is
    the user's branch, falling back to the count's branch.

    Raises:
        AlreadyPostedError: count is already POSTED (no vouchers are created)
        InsufficientStockError / ItemNotInStoreError: shortage not coverable
    """
    def _op():
        count = _get_count(count_id, company_id, lock=True)
        if count.status == COUNT_STATUS_POSTED:
            raise AlreadyPostedError(f"Count {count.code} is already posted")

        surplus = [
            {"item_id": line.item_id, "quantity": line.difference, "unit_price_cents": line.cost_cents}
            for line in count.items if line.difference > 0
        ]
        shortage = [
            {"item_id": line.item_id, "quantity": -line.difference, "unit_price_cents": line.cost_cents}
            for line in count.items if line.difference < 0
        ]

        branch_id = count.user.branch_id if count.user.branch_id is not None else count.branch_id
        posted_at = utcnow()

        if surplus:
            receipt = create_receipt_voucher(
                company_id=count.company_id,
                store_id=count.store_id,
                user_id=count.user_id,
                items=surplus,
                date=posted_at,
                notes=f"Inventory count adjustment - add surplus from count {count.code}",
                branch_id=branch_id,
            )
            count.receipt_voucher_id = receipt.id

        if shortage:
            issue = create_issue_voucher(
                company_id=count.company_id,
                store_id=count.store_id,
                user_id=count.user_id,
                items=shortage,
                date=posted_at,
                notes=f"Inventory count adjustment - remove shortage from count {count.code}",
                branch_id=branch_id,
            )
            count.issue_voucher_id = issue.id

        count.status = COUNT_STATUS_POSTED
        count.posted_at = posted_at
        db.session.flush()

        logger.info(
            "Posted count %s: %d surplus lines, %d shortage lines",
            count.code, len(surplus), len(shortage),
        )
        return count

    return run_with_retry(_op)


def get_count(count_id: int, company_id: int | None = None) -> InventoryCount:
    return _get_count(count_id, company_id)


def get_count_summary(count_id: int, company_id: int | None = None) -> dict:
    """Count header, lines and variance totals."""
    count = _get_count(count_id, company_id)
    lines = list(count.items)

    return {
        "count": count.to_dict(),
        "lines": [line.to_dict() for line in lines],
        "totals": {
            "line_count": len(lines),
            "surplus_quantity": sum(l.difference for l in lines if l.difference > 0),
            "shortage_quantity": sum(-l.difference for l in lines if l.difference < 0),
            "surplus_value_cents": sum(l.difference * l.cost_cents for l in lines if l.difference > 0),
            "shortage_value_cents": sum(-l.difference * l.cost_cents for l in lines if l.difference < 0),
            "total_variance_value_cents": count.total_variance_value_cents,
        },
    }


def list_counts(
    company_id: int,
    *,
    store_id: int | None = None,
    status: str | None = None,
    limit: int = 200,
) -> list[InventoryCount]:
    q = db.session.query(InventoryCount).filter(InventoryCount.company_id == company_id)
    if store_id is not None:
        q = q.filter(InventoryCount.store_id == store_id)
    if status:
        q = q.filter(InventoryCount.status == status)
    return q.order_by(InventoryCount.id.desc()).limit(limit).all()
