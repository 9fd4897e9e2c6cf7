# Overview: Receipt voucher create, update and delete with reversal checks.

"""
Store receipt vouchers (SRV-000001).

A receipt adds stock to one store and is never guarded on create. Shrinking
or deleting a receipt takes units back out of the store, so update and delete
run the reversal check: units already issued onward cannot be un-received.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from ..extensions import db
from ..models import StoreReceiptVoucher, StoreReceiptVoucherItem
from .catalog_service import get_store, get_user
from .concurrency import run_with_retry
from .document_service import next_document_number
from .stock_service import authorize_net_change, credit_effects, ensure_store_item_exists
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

DOCUMENT_TYPE = "STORE_RECEIPT"


def _ensure_markers(store_id: int, lines) -> None:
    for item_id in sorted({int(line["item_id"]) for line in lines}):
        ensure_store_item_exists(store_id, item_id)


def create_receipt_voucher(
    *,
    company_id: int,
    store_id: int,
    user_id: int,
    items: list[Mapping[str, Any]],
    date=None,
    notes: str | None = None,
    branch_id: int | None = None,
) -> StoreReceiptVoucher:
    """
    Create a receipt voucher and make every received item known to the store.

    Raises:
        NotFoundError: store, user or an item is not in the company
        VoucherError: no lines or a non-positive quantity
    """
    def _op():
        get_store(store_id, company_id)
        user = get_user(user_id, company_id)
        check_lines(company_id, items)

        voucher_number = next_document_number(company_id=company_id, document_type=DOCUMENT_TYPE)
        _ensure_markers(store_id, items)

        voucher = StoreReceiptVoucher(
            company_id=company_id,
            voucher_number=voucher_number,
            store_id=store_id,
            user_id=user_id,
            branch_id=resolve_branch_id(user, branch_id),
        )
        apply_header(voucher, date=date, notes=notes)
        voucher.items = build_lines(StoreReceiptVoucherItem, items)
        voucher.total_amount_cents = total_amount_cents(voucher.items)

        db.session.add(voucher)
        db.session.flush()

        logger.info(
            "Created receipt voucher %s for store %s (%d lines)",
            voucher.voucher_number, store_id, len(voucher.items),
        )
        return voucher

    return run_with_retry(_op)


def update_receipt_voucher(
    voucher_id: int,
    *,
    company_id: int,
    items: list[Mapping[str, Any]],
    store_id: int | None = None,
    date=None,
    notes: str | None = None,
) -> StoreReceiptVoucher:
    """
    Replace the receipt's line set (and optionally its store).

    Per item, any reduction of received quantity in a store must still be
    covered by that store's balance.
    """
    def _op():
        voucher = get_voucher(StoreReceiptVoucher, "Receipt voucher", voucher_id, company_id, lock=True)
        new_store_id = store_id if store_id is not None else voucher.store_id
        get_store(new_store_id, company_id)
        check_lines(company_id, items)

        authorize_net_change(
            credit_effects(voucher.store_id, voucher.items),
            credit_effects(new_store_id, items),
        )
        _ensure_markers(new_store_id, items)

        voucher.store_id = new_store_id
        apply_header(voucher, date=date, notes=notes)
        voucher.items = build_lines(StoreReceiptVoucherItem, items)
        voucher.total_amount_cents = total_amount_cents(voucher.items)
        db.session.flush()
        return voucher

    return run_with_retry(_op)


def delete_receipt_voucher(voucher_id: int, *, company_id: int) -> None:
    def _op():
        voucher = get_voucher(StoreReceiptVoucher, "Receipt voucher", voucher_id, company_id, lock=True)
        authorize_net_change(credit_effects(voucher.store_id, voucher.items), {})
        db.session.delete(voucher)
        db.session.flush()

    return run_with_retry(_op)


def get_receipt_voucher(voucher_id: int, company_id: int | None = None) -> StoreReceiptVoucher:
    return get_voucher(StoreReceiptVoucher, "Receipt voucher", voucher_id, company_id)


def list_receipt_vouchers(company_id: int, *, store_id: int | None = None, limit: int = 200):
    store_filter = StoreReceiptVoucher.store_id == store_id if store_id is not None else None
    return list_vouchers(StoreReceiptVoucher, company_id, store_filter=store_filter, limit=limit)
