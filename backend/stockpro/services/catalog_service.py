# Overview: Lookups and creation for stores, users and items.

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Item, Store, StoreItem, User


def _scoped_get(model, label: str, obj_id: int, company_id: int | None):
    obj = db.session.get(model, obj_id)
    if obj is None or (company_id is not None and obj.company_id != company_id):
        raise NotFoundError(f"{label} {obj_id} not found")
    return obj


def get_store(store_id: int, company_id: int | None = None) -> Store:
    return _scoped_get(Store, "Store", store_id, company_id)


def get_item(item_id: int, company_id: int | None = None) -> Item:
    return _scoped_get(Item, "Item", item_id, company_id)


def get_user(user_id: int, company_id: int | None = None) -> User:
    return _scoped_get(User, "User", user_id, company_id)


def create_item(
    *,
    company_id: int,
    code: str,
    name: str,
    barcode: str | None = None,
    purchase_price_cents: int = 0,
    sale_price_cents: int = 0,
    store_id: int | None = None,
    opening_balance: int = 0,
) -> Item:
    """
    Create an item, optionally with an opening balance in its originating store.

    The opening balance is the only non-zero StoreItem.opening_balance the
    system ever writes; markers created later by receipts or transfers
    start at 0.
    """
    if opening_balance < 0:
        raise ValueError("opening_balance cannot be negative")
    if opening_balance and store_id is None:
        raise ValueError("opening_balance requires store_id")

    item = Item(
        company_id=company_id,
        code=code,
        name=name,
        barcode=barcode,
        purchase_price_cents=purchase_price_cents,
        sale_price_cents=sale_price_cents,
    )
    db.session.add(item)
    db.session.flush()

    if store_id is not None:
        get_store(store_id, company_id)
        db.session.add(StoreItem(store_id=store_id, item_id=item.id, opening_balance=opening_balance))
        db.session.flush()

    return item
