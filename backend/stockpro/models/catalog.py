from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Item(db.Model):
    """
    Item master data.

    CODE DESIGN NOTE:
    Item.code is human-readable and editable. Legacy invoices and returns
    reference items by this code, not by id, so renaming a code orphans the
    item's legacy history. Vouchers and counts always use item_id.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_items_company_code"),
        db.Index("ix_items_company_name", "company_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    code = db.Column(db.String(64), nullable=False)
    barcode = db.Column(db.String(128), nullable=True)
    name = db.Column(db.String(255), nullable=False)

    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    company = db.relationship("Company", backref=db.backref("items", lazy=True))

    def __repr__(self) -> str:
        return f"<Item id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "code": self.code,
            "barcode": self.barcode,
            "name": self.name,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StoreItem(db.Model):
    """
    Opening-balance marker for a (store, item) pair.

    INVARIANTS:
    - At most one row per (store_id, item_id).
    - opening_balance is set only when the item is created for its
      originating store; every lazily ensured row starts at 0.
    - Presence means "item is known to this store", but absence does not
      mean the opposite (movements and legacy documents also count).

    CONCURRENCY: this row is the lock target (SELECT ... FOR UPDATE) that
    serializes debits against the same (store, item).
    """
    __tablename__ = "store_items"
    __table_args__ = (
        db.UniqueConstraint("store_id", "item_id", name="uq_store_items_store_item"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    opening_balance = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "item_id": self.item_id,
            "opening_balance": self.opening_balance,
            "created_at": to_utc_z(self.created_at),
        }
