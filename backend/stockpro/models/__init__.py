from .tenancy import Company, Branch, Store, User
from .catalog import Item, StoreItem
from .vouchers import (
    StoreReceiptVoucher, StoreReceiptVoucherItem,
    StoreIssueVoucher, StoreIssueVoucherItem,
    StoreTransferVoucher, StoreTransferVoucherItem,
    DocumentSequence,
)
from .legacy import PurchaseInvoice, PurchaseReturn, SalesInvoice, SalesReturn
from .counts import InventoryCount, InventoryCountItem

__all__ = [
    'Company', 'Branch', 'Store', 'User',
    'Item', 'StoreItem',
    'StoreReceiptVoucher', 'StoreReceiptVoucherItem',
    'StoreIssueVoucher', 'StoreIssueVoucherItem',
    'StoreTransferVoucher', 'StoreTransferVoucherItem',
    'DocumentSequence',
    'PurchaseInvoice', 'PurchaseReturn', 'SalesInvoice', 'SalesReturn',
    'InventoryCount', 'InventoryCountItem',
]
