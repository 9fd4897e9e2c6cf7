# Overview: Per-company document number allocation for vouchers and counts.

from __future__ import annotations

import re

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    DocumentSequence,
    InventoryCount,
    StoreIssueVoucher,
    StoreReceiptVoucher,
    StoreTransferVoucher,
)
from .concurrency import run_with_retry


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


# document_type -> (prefix, zero pad width, model, number attribute)
DOCUMENT_FORMATS = {
    "STORE_RECEIPT": ("SRV", 6, StoreReceiptVoucher, "voucher_number"),
    "STORE_ISSUE": ("SIV", 6, StoreIssueVoucher, "voucher_number"),
    "STORE_TRANSFER": ("STV", 6, StoreTransferVoucher, "voucher_number"),
    "INVENTORY_COUNT": ("INVC", 4, InventoryCount, "code"),
}


def format_document_number(prefix: str, number: int, pad: int) -> str:
    return f"{prefix}-{number:0{pad}d}"


def _seed_number(company_id: int, document_type: str) -> int:
    """
    First number for a company that has no sequence row yet.

    Continues after the lexicographically-last existing number of this type
    (so INVC-0009 is followed by INVC-0010); 1 when none exist or the last
    one does not parse.
    """
    prefix, _pad, model, attr = DOCUMENT_FORMATS[document_type]
    column = getattr(model, attr)
    last = (
        db.session.query(func.max(column))
        .filter(model.company_id == company_id, column.like(f"{prefix}-%"))
        .scalar()
    )
    if not last:
        return 1
    match = re.fullmatch(rf"{re.escape(prefix)}-(\d+)", last)
    if not match:
        return 1
    return int(match.group(1)) + 1


def next_document_number(*, company_id: int, document_type: str) -> str:
    """
    Atomically allocate the next document number for a company/type.

    The increment is a single UPDATE on the (company_id, document_type) row,
    so concurrent allocations serialize on that row and never share a number.
    """
    if document_type not in DOCUMENT_FORMATS:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")
    prefix, pad, _model, _attr = DOCUMENT_FORMATS[document_type]

    def _op() -> str:
        if not company_id:
            raise DocumentSequenceError("company_id is required")

        stmt = (
            update(DocumentSequence)
            .where(
                DocumentSequence.company_id == company_id,
                DocumentSequence.document_type == document_type,
            )
            .values(next_number=DocumentSequence.next_number + 1)
            .execution_options(synchronize_session=False)
        )

        result = db.session.execute(stmt)
        if not result.rowcount:
            number = _seed_number(company_id, document_type)
            try:
                with db.session.begin_nested():
                    db.session.add(DocumentSequence(
                        company_id=company_id,
                        document_type=document_type,
                        next_number=number + 1,
                    ))
                return format_document_number(prefix, number, pad)
            except IntegrityError:
                # Another transaction created the row first
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise

        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(company_id=company_id, document_type=document_type)
            .scalar()
        )
        return format_document_number(prefix, current - 1, pad)

    return run_with_retry(_op)
