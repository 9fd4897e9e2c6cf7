# Overview: Issue voucher create, update and delete behind the write guard.

"""
Store issue vouchers (SIV-000001).

Every issue goes through the write guard: the item must exist in the store
and the balance, read under the (store, item) row lock, must cover the
quantity. Lines for the same item are aggregated before checking.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from ..extensions import db
from ..models import StoreIssueVoucher, StoreIssueVoucherItem
from .catalog_service import get_store, get_user
from .concurrency import run_with_retry
from .document_service import next_document_number
from .stock_service import authorize_debit_changes, authorize_debits
from .voucher_service import (
    apply_header,
    build_lines,
    check_lines,
    get_voucher,
    list_vouchers,
    resolve_branch_id,
    total_amount_cents,
)

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "STORE_ISSUE"


def create_issue_voucher(
    *,
    company_id: int,
    store_id: int,
    user_id: int,
    items: list[Mapping[str, Any]],
    date=None,
    notes: str | None = None,
    branch_id: int | None = None,
) -> StoreIssueVoucher:
    """
    Create an issue voucher.

    Raises:
        ItemNotInStoreError: an item has never been in the store
        InsufficientStockError: the store's balance does not cover a line
    """
    def _op():
        get_store(store_id, company_id)
        user = get_user(user_id, company_id)
        check_lines(company_id, items)

        voucher_number = next_document_number(company_id=company_id, document_type=DOCUMENT_TYPE)
        authorize_debits(store_id, items)

        voucher = StoreIssueVoucher(
            company_id=company_id,
            voucher_number=voucher_number,
            store_id=store_id,
            user_id=user_id,
            branch_id=resolve_branch_id(user, branch_id),
        )
        apply_header(voucher, date=date, notes=notes)
        voucher.items = build_lines(StoreIssueVoucherItem, items)
        voucher.total_amount_cents = total_amount_cents(voucher.items)

        db.session.add(voucher)
        db.session.flush()

        logger.info(
            "Created issue voucher %s for store %s (%d lines)",
            voucher.voucher_number, store_id, len(voucher.items),
        )
        return voucher

    return run_with_retry(_op)


def update_issue_voucher(
    voucher_id: int,
    *,
    company_id: int,
    items: list[Mapping[str, Any]],
    store_id: int | None = None,
    date=None,
    notes: str | None = None,
) -> StoreIssueVoucher:
    """
    Replace the issue's line set.

    Same store: only per-item net increases are checked. New store: every
    line is checked in full, since the old lines never touched that store.
    """
    def _op():
        voucher = get_voucher(StoreIssueVoucher, "Issue voucher", voucher_id, company_id, lock=True)
        new_store_id = store_id if store_id is not None else voucher.store_id
        get_store(new_store_id, company_id)
        check_lines(company_id, items)

        old_lines = voucher.items if new_store_id == voucher.store_id else []
        authorize_debit_changes(new_store_id, old_lines, items)

        voucher.store_id = new_store_id
        apply_header(voucher, date=date, notes=notes)
        voucher.items = build_lines(StoreIssueVoucherItem, items)
        voucher.total_amount_cents = total_amount_cents(voucher.items)
        db.session.flush()
        return voucher

    return run_with_retry(_op)


def delete_issue_voucher(voucher_id: int, *, company_id: int) -> None:
    """Deleting an issue only returns stock, so it is never guarded."""
    def _op():
        voucher = get_voucher(StoreIssueVoucher, "Issue voucher", voucher_id, company_id, lock=True)
        db.session.delete(voucher)
        db.session.flush()

    return run_with_retry(_op)


def get_issue_voucher(voucher_id: int, company_id: int | None = None) -> StoreIssueVoucher:
    return get_voucher(StoreIssueVoucher, "Issue voucher", voucher_id, company_id)


def list_issue_vouchers(company_id: int, *, store_id: int | None = None, limit: int = 200):
    store_filter = StoreIssueVoucher.store_id == store_id if store_id is not None else None
    return list_vouchers(StoreIssueVoucher, company_id, store_filter=store_filter, limit=limit)
