# Overview: Read-only scanning of legacy invoices and returns.

"""
Legacy purchase/sales invoices and returns predate the voucher tables. They
store their lines as a JSON list in which each entry names its item by
Item.code and carries a quantity. This module sums and searches those
entries for one branch.

DESIGN NOTE: matching is by exact item code. Renaming an item's code hides
its legacy history from the balance; that is accepted behaviour, not a bug
to be fixed here.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator, Mapping

from flask import current_app

from ..extensions import db
from ..models import PurchaseInvoice, PurchaseReturn, SalesInvoice, SalesReturn

logger = logging.getLogger(__name__)


PURCHASE_INVOICE = "PURCHASE_INVOICE"
PURCHASE_RETURN = "PURCHASE_RETURN"
SALES_INVOICE = "SALES_INVOICE"
SALES_RETURN = "SALES_RETURN"

LEGACY_KINDS = (PURCHASE_INVOICE, SALES_RETURN, SALES_INVOICE, PURCHASE_RETURN)

LEGACY_MODELS = {
    PURCHASE_INVOICE: PurchaseInvoice,
    PURCHASE_RETURN: PurchaseReturn,
    SALES_INVOICE: SalesInvoice,
    SALES_RETURN: SalesReturn,
}

EXTENSION_KEY = "stockpro.legacy_scanner"


class LegacyDocumentSource(ABC):
    """Port: yields the raw line entries of one legacy document kind."""

    @abstractmethod
    def iter_entries(self, kind: str, branch_id: int) -> Iterator[Mapping[str, Any]]:
        raise NotImplementedError


class SqlLegacyDocumentSource(LegacyDocumentSource):
    """Reads entries from the legacy invoice/return tables."""

    def iter_entries(self, kind: str, branch_id: int) -> Iterator[Mapping[str, Any]]:
        model = LEGACY_MODELS[kind]
        rows = (
            db.session.query(model.items)
            .filter(model.branch_id == branch_id)
            .order_by(model.id.asc())
        )
        for (items,) in rows:
            if not isinstance(items, list):
                continue
            for entry in items:
                if isinstance(entry, Mapping):
                    yield entry


def coerce_quantity(value: Any) -> int:
    """
    Quantity of one legacy entry.

    Integers pass through; numeric strings and integral floats are accepted.
    Missing, boolean and non-numeric values count as 0. Non-integral values
    also count as 0 and are logged, since the ledger is integer-only.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return 0
    if not number.is_finite():
        return 0
    if number != number.to_integral_value():
        logger.warning("Ignoring non-integral legacy quantity %r", value)
        return 0
    return int(number)


class LegacyDocumentScanner:
    def __init__(
        self,
        source: LegacyDocumentSource,
        *,
        code_field: str = "id",
        quantity_field: str = "qty",
    ):
        self.source = source
        self.code_field = code_field
        self.quantity_field = quantity_field

    def _matching(self, kind: str, branch_id: int, item_code: str) -> Iterable[Mapping[str, Any]]:
        for entry in self.source.iter_entries(kind, branch_id):
            if entry.get(self.code_field) == item_code:
                yield entry

    def sum_quantity(self, kind: str, branch_id: int | None, item_code: str | None) -> int:
        """Total quantity of `item_code` across every document of `kind` in the branch."""
        if branch_id is None or not item_code:
            return 0
        return sum(
            coerce_quantity(entry.get(self.quantity_field))
            for entry in self._matching(kind, branch_id, item_code)
        )

    def references_item(self, branch_id: int | None, item_code: str | None) -> bool:
        """True as soon as any legacy document of the branch names the item."""
        if branch_id is None or not item_code:
            return False
        for kind in LEGACY_KINDS:
            for _entry in self._matching(kind, branch_id, item_code):
                return True
        return False


def init_app(app, source: LegacyDocumentSource | None = None) -> LegacyDocumentScanner:
    scanner = LegacyDocumentScanner(
        source or SqlLegacyDocumentSource(),
        code_field=app.config.get("LEGACY_ITEM_CODE_FIELD", "id"),
        quantity_field=app.config.get("LEGACY_QUANTITY_FIELD", "qty"),
    )
    app.extensions[EXTENSION_KEY] = scanner
    return scanner


def get_scanner() -> LegacyDocumentScanner:
    """Scanner registered on the current application."""
    scanner = current_app.extensions.get(EXTENSION_KEY)
    if scanner is None:
        scanner = init_app(current_app)
    return scanner
