# Overview: Business-rule errors raised by the stock ledger services.

from __future__ import annotations


class StockError(Exception):
    """Base class for stock ledger business-rule failures."""

    status_code = 400
    code = "STOCK_ERROR"

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code}


class NotFoundError(StockError):
    """Referenced store, item, voucher or count does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class ItemNotInStoreError(StockError):
    """Debit attempted against an item with no existence signal in the store."""

    code = "ITEM_NOT_IN_STORE"

    def __init__(self, store_id: int, item_id: int):
        self.store_id = store_id
        self.item_id = item_id
        super().__init__(
            f"Item {item_id} does not exist in store {store_id}. "
            "Cannot issue or transfer items that have never been received "
            "or transferred into this store."
        )


class InsufficientStockError(StockError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, store_id: int, item_id: int, available: int, requested: int):
        self.store_id = store_id
        self.item_id = item_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for item {item_id} in store {store_id}. "
            f"Available: {available}, Requested: {requested}"
        )

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "store_id": self.store_id,
            "item_id": self.item_id,
            "available": self.available,
            "requested": self.requested,
        }


class AlreadyPostedError(StockError):
    """Posting attempted against a count that is already POSTED."""

    status_code = 409
    code = "ALREADY_POSTED"


class ImmutableCountError(StockError):
    """Update or delete attempted against a POSTED count."""

    status_code = 409
    code = "IMMUTABLE"


class TransferError(StockError):
    code = "INVALID_TRANSFER"


class VoucherError(StockError):
    """Voucher payload rejected by a service (e.g. no lines)."""

    code = "INVALID_VOUCHER"
