# Overview: Transfer voucher create, update and delete between two stores.

"""
Store transfer vouchers (STV-000001).

One voucher moves its lines out of from_store and into to_store in the same
transaction; the balance of the pair always changes by equal and opposite
amounts. The source side is guarded like an issue. The destination gets a
marker row per item so the item is known there from now on.

The destination side is never guarded. An update re-checks only per-item net
increases at the source; lowering a line or deleting the voucher gives units
back to the source without any balance check.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import or_

from ..errors import TransferError
from ..extensions import db
from ..models import StoreTransferVoucher, StoreTransferVoucherItem
from .catalog_service import get_store, get_user
from .concurrency import run_with_retry
from .document_service import next_document_number
from .stock_service import (
    authorize_debit_changes,
    authorize_debits,
    ensure_store_item_exists,
)
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

DOCUMENT_TYPE = "STORE_TRANSFER"


def _check_stores(company_id: int, from_store_id: int, to_store_id: int) -> None:
    if from_store_id == to_store_id:
        raise TransferError("Cannot transfer to the same store")
    get_store(from_store_id, company_id)
    get_store(to_store_id, company_id)


def _ensure_destination_markers(to_store_id: int, lines) -> None:
    for item_id in sorted({int(line["item_id"]) for line in lines}):
        ensure_store_item_exists(to_store_id, item_id)


def create_transfer_voucher(
    *,
    company_id: int,
    from_store_id: int,
    to_store_id: int,
    user_id: int,
    items: list[Mapping[str, Any]],
    date=None,
    notes: str | None = None,
    branch_id: int | None = None,
) -> StoreTransferVoucher:
    """
    Create a transfer voucher.

    Raises:
        TransferError: source and destination are the same store
        ItemNotInStoreError: an item has never been in the source store
        InsufficientStockError: the source balance does not cover a line
    """
    def _op():
        _check_stores(company_id, from_store_id, to_store_id)
        user = get_user(user_id, company_id)
        check_lines(company_id, items)

        voucher_number = next_document_number(company_id=company_id, document_type=DOCUMENT_TYPE)
        authorize_debits(from_store_id, items)
        _ensure_destination_markers(to_store_id, items)

        voucher = StoreTransferVoucher(
            company_id=company_id,
            voucher_number=voucher_number,
            from_store_id=from_store_id,
            to_store_id=to_store_id,
            user_id=user_id,
            branch_id=resolve_branch_id(user, branch_id),
        )
        apply_header(voucher, date=date, notes=notes)
        voucher.items = build_lines(StoreTransferVoucherItem, items)
        voucher.total_amount_cents = total_amount_cents(voucher.items)

        db.session.add(voucher)
        db.session.flush()

        logger.info(
            "Created transfer voucher %s from store %s to store %s (%d lines)",
            voucher.voucher_number, from_store_id, to_store_id, len(voucher.items),
        )
        return voucher

    return run_with_retry(_op)


def update_transfer_voucher(
    voucher_id: int,
    *,
    company_id: int,
    items: list[Mapping[str, Any]],
    from_store_id: int | None = None,
    to_store_id: int | None = None,
    date=None,
    notes: str | None = None,
) -> StoreTransferVoucher:
    """
    Replace the transfer's line set (and optionally either store).

    Only net increases at the source are validated: raising a line from 10
    to 15 checks 5 more units, lowering it to 4 checks nothing. Moving the
    transfer to another source store checks every line there in full.
    """
    def _op():
        voucher = get_voucher(StoreTransferVoucher, "Transfer voucher", voucher_id, company_id, lock=True)
        new_from = from_store_id if from_store_id is not None else voucher.from_store_id
        new_to = to_store_id if to_store_id is not None else voucher.to_store_id
        _check_stores(company_id, new_from, new_to)
        check_lines(company_id, items)

        old_lines = voucher.items if new_from == voucher.from_store_id else []
        authorize_debit_changes(new_from, old_lines, items)
        _ensure_destination_markers(new_to, items)

        voucher.from_store_id = new_from
        voucher.to_store_id = new_to
        apply_header(voucher, date=date, notes=notes)
        voucher.items = build_lines(StoreTransferVoucherItem, items)
        voucher.total_amount_cents = total_amount_cents(voucher.items)
        db.session.flush()
        return voucher

    return run_with_retry(_op)


def delete_transfer_voucher(voucher_id: int, *, company_id: int) -> None:
    """Deleting returns stock to the source; neither side is guarded."""
    def _op():
        voucher = get_voucher(StoreTransferVoucher, "Transfer voucher", voucher_id, company_id, lock=True)
        db.session.delete(voucher)
        db.session.flush()

    return run_with_retry(_op)


def get_transfer_voucher(voucher_id: int, company_id: int | None = None) -> StoreTransferVoucher:
    return get_voucher(StoreTransferVoucher, "Transfer voucher", voucher_id, company_id)


def list_transfer_vouchers(company_id: int, *, store_id: int | None = None, limit: int = 200):
    store_filter = None
    if store_id is not None:
        store_filter = or_(
            StoreTransferVoucher.from_store_id == store_id,
            StoreTransferVoucher.to_store_id == store_id,
        )
    return list_vouchers(StoreTransferVoucher, company_id, store_filter=store_filter, limit=limit)
