# Overview: Balance calculation, existence checks and the write guard.

"""
Stock balance, existence and write guard.

BALANCE (per store, item) is derived on every call, never cached:

    opening + receipts + legacy purchase invoices + legacy sales returns
    - issues - legacy sales invoices - legacy purchase returns
    - transfers out + transfers in

Legacy documents are branch-scoped: every store of a branch sees the same
legacy quantities. A store without a branch sees none.

WRITE GUARD: any write that lowers a (store, item) balance goes through
authorize_net_change(). It takes the StoreItem row lock before reading the
balance, so two debits against the same pair serialize and the second one
sees the first one's lines. The lock is held until the caller commits.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable, Mapping

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientStockError, ItemNotInStoreError
from ..extensions import db
from ..models import (
    StoreIssueVoucher,
    StoreIssueVoucherItem,
    StoreItem,
    StoreReceiptVoucher,
    StoreReceiptVoucherItem,
    StoreTransferVoucher,
    StoreTransferVoucherItem,
)
from .catalog_service import get_item, get_store
from .concurrency import lock_for_update
from .legacy_document_service import (
    PURCHASE_INVOICE,
    PURCHASE_RETURN,
    SALES_INVOICE,
    SALES_RETURN,
    get_scanner,
)


# =============================================================================
# Balance
# =============================================================================

def _sum_lines(line_model, store_column, store_id: int, item_id: int) -> int:
    q = (
        db.session.query(func.coalesce(func.sum(line_model.quantity), 0))
        .join(line_model.voucher)
        .filter(store_column == store_id, line_model.item_id == item_id)
    )
    return int(q.scalar() or 0)


def get_balance_breakdown(store_id: int, item_id: int) -> dict:
    """Every balance component for (store, item) plus the signed total."""
    store = get_store(store_id)
    item = get_item(item_id)

    opening = int(
        db.session.query(func.coalesce(func.sum(StoreItem.opening_balance), 0))
        .filter(StoreItem.store_id == store_id, StoreItem.item_id == item_id)
        .scalar() or 0
    )

    scanner = get_scanner()
    branch_id = store.branch_id

    breakdown = {
        "store_id": store_id,
        "item_id": item_id,
        "opening_balance": opening,
        "receipts": _sum_lines(StoreReceiptVoucherItem, StoreReceiptVoucher.store_id, store_id, item_id),
        "issues": _sum_lines(StoreIssueVoucherItem, StoreIssueVoucher.store_id, store_id, item_id),
        "transfers_out": _sum_lines(
            StoreTransferVoucherItem, StoreTransferVoucher.from_store_id, store_id, item_id
        ),
        "transfers_in": _sum_lines(
            StoreTransferVoucherItem, StoreTransferVoucher.to_store_id, store_id, item_id
        ),
        "purchase_invoices": scanner.sum_quantity(PURCHASE_INVOICE, branch_id, item.code),
        "purchase_returns": scanner.sum_quantity(PURCHASE_RETURN, branch_id, item.code),
        "sales_invoices": scanner.sum_quantity(SALES_INVOICE, branch_id, item.code),
        "sales_returns": scanner.sum_quantity(SALES_RETURN, branch_id, item.code),
    }

    breakdown["balance"] = (
        breakdown["opening_balance"]
        + breakdown["receipts"]
        + breakdown["purchase_invoices"]
        + breakdown["sales_returns"]
        - breakdown["issues"]
        - breakdown["sales_invoices"]
        - breakdown["purchase_returns"]
        - breakdown["transfers_out"]
        + breakdown["transfers_in"]
    )
    return breakdown


def get_balance(store_id: int, item_id: int) -> int:
    return get_balance_breakdown(store_id, item_id)["balance"]


def get_balance_info(store_id: int, item_id: int) -> dict:
    """Existence flag and the quantity a user may still issue or transfer."""
    exists = item_exists_in_store(store_id, item_id)
    balance = get_balance(store_id, item_id)
    return {
        "store_id": store_id,
        "item_id": item_id,
        "exists_in_store": exists,
        "balance": balance,
        "available_qty": max(0, balance),
    }


# =============================================================================
# Existence
# =============================================================================

def _any(query) -> bool:
    return bool(db.session.query(query.exists()).scalar())


def item_exists_in_store(store_id: int, item_id: int) -> bool:
    """
    True when any signal ties the item to the store.

    Checked cheapest first: marker row, receipt line, issue line, transfer
    out, transfer in, then legacy documents of the store's branch.
    """
    store = get_store(store_id)
    item = get_item(item_id)

    checks = (
        db.session.query(StoreItem.id).filter(
            StoreItem.store_id == store_id, StoreItem.item_id == item_id
        ),
        db.session.query(StoreReceiptVoucherItem.id).join(StoreReceiptVoucherItem.voucher).filter(
            StoreReceiptVoucher.store_id == store_id, StoreReceiptVoucherItem.item_id == item_id
        ),
        db.session.query(StoreIssueVoucherItem.id).join(StoreIssueVoucherItem.voucher).filter(
            StoreIssueVoucher.store_id == store_id, StoreIssueVoucherItem.item_id == item_id
        ),
        db.session.query(StoreTransferVoucherItem.id).join(StoreTransferVoucherItem.voucher).filter(
            StoreTransferVoucher.from_store_id == store_id, StoreTransferVoucherItem.item_id == item_id
        ),
        db.session.query(StoreTransferVoucherItem.id).join(StoreTransferVoucherItem.voucher).filter(
            StoreTransferVoucher.to_store_id == store_id, StoreTransferVoucherItem.item_id == item_id
        ),
    )
    for query in checks:
        if _any(query):
            return True

    return get_scanner().references_item(store.branch_id, item.code)


def ensure_store_item_exists(store_id: int, item_id: int, *, lock: bool = False) -> StoreItem:
    """
    Return the (store, item) marker row, creating it with opening balance 0.

    Idempotent. A concurrent creator of the same row loses on the unique
    constraint inside a savepoint and re-reads the winner's row, so the
    caller's transaction stays usable.
    """
    def _query():
        q = db.session.query(StoreItem).filter_by(store_id=store_id, item_id=item_id)
        return lock_for_update(q) if lock else q

    marker = _query().first()
    if marker is not None:
        return marker

    try:
        with db.session.begin_nested():
            marker = StoreItem(store_id=store_id, item_id=item_id, opening_balance=0)
            db.session.add(marker)
        return marker
    except IntegrityError:
        return _query().one()


# =============================================================================
# Write guard
# =============================================================================

def _line_value(line: Any, key: str):
    if isinstance(line, Mapping):
        return line[key]
    return getattr(line, key)


def group_quantities_by_item(lines: Iterable[Any]) -> dict[int, int]:
    """Sum line quantities per item_id (lines may be dicts or line models)."""
    totals: dict[int, int] = defaultdict(int)
    for line in lines:
        totals[int(_line_value(line, "item_id"))] += int(_line_value(line, "quantity"))
    return dict(totals)


def authorize_debit(store_id: int, item_id: int, quantity: int) -> None:
    """
    Allow removing `quantity` units of the item from the store, or raise.

    1. The item must exist in the store (ItemNotInStoreError).
    2. The marker row is locked, created at 0 when the item is only known
       through movements or legacy documents.
    3. The balance read under the lock must cover the quantity
       (InsufficientStockError).
    """
    if quantity <= 0:
        return
    if not item_exists_in_store(store_id, item_id):
        raise ItemNotInStoreError(store_id, item_id)

    ensure_store_item_exists(store_id, item_id, lock=True)

    available = get_balance(store_id, item_id)
    if available < quantity:
        raise InsufficientStockError(store_id, item_id, available, quantity)


def authorize_credit_reversal(store_id: int, item_id: int, quantity: int) -> None:
    """
    Allow taking back `quantity` previously credited units, or raise.

    Used when a receipt shrinks or disappears: the units may already have
    been issued onward.
    """
    if quantity <= 0:
        return
    ensure_store_item_exists(store_id, item_id, lock=True)

    available = get_balance(store_id, item_id)
    if available < quantity:
        raise InsufficientStockError(store_id, item_id, available, quantity)


def authorize_net_change(
    old_effects: Mapping[tuple[int, int], int],
    new_effects: Mapping[tuple[int, int], int],
) -> None:
    """
    Validate replacing one set of stock effects with another.

    Effects map (store_id, item_id) to a signed quantity: negative for units
    leaving the store, positive for units entering it. Only pairs whose
    balance would drop are checked, and only by the size of the drop, since
    the current balance still includes the old effects. Pairs are visited
    in sorted order so row locks are always taken in the same order.
    """
    for key in sorted(set(old_effects) | set(new_effects)):
        store_id, item_id = key
        old_qty = old_effects.get(key, 0)
        new_qty = new_effects.get(key, 0)
        drop = old_qty - new_qty
        if drop <= 0:
            continue
        if new_qty < 0:
            authorize_debit(store_id, item_id, drop)
        else:
            authorize_credit_reversal(store_id, item_id, drop)


def debit_effects(store_id: int, lines: Iterable[Any]) -> dict[tuple[int, int], int]:
    return {(store_id, item_id): -qty for item_id, qty in group_quantities_by_item(lines).items()}


def credit_effects(store_id: int, lines: Iterable[Any]) -> dict[tuple[int, int], int]:
    return {(store_id, item_id): qty for item_id, qty in group_quantities_by_item(lines).items()}


def authorize_debits(store_id: int, lines: Iterable[Any]) -> None:
    """Guard a new outgoing line set (issue or transfer create)."""
    authorize_net_change({}, debit_effects(store_id, lines))


def authorize_debit_changes(store_id: int, old_lines: Iterable[Any], new_lines: Iterable[Any]) -> None:
    """
    Guard replacing an outgoing line set in the same source store.

    Only positive net increases per item are checked: 10 -> 15 checks 5,
    10 -> 4 checks nothing. Items missing from the old set must exist in the
    store. When the source store changes, pass old_lines=[] so every new
    line is validated in full.
    """
    authorize_net_change(debit_effects(store_id, old_lines), debit_effects(store_id, new_lines))
