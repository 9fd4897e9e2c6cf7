from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class InventoryCount(db.Model):
    """
    Physical inventory count document.

    LIFECYCLE:
    1. PENDING: Count created, lines may be replaced or the count deleted
    2. POSTED: Compensating receipt/issue vouchers created (terminal)

    IMMUTABLE: Once POSTED, neither the header nor its lines may change and
    the count cannot be deleted. POSTED -> POSTED is rejected as well.

    Code format is INVC-0001, allocated per company.
    """
    __tablename__ = "inventory_counts"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_inventory_counts_company_code"),
        db.Index("ix_inventory_counts_company_status", "company_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    code = db.Column(db.String(32), nullable=False)

    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notes = db.Column(db.Text, nullable=True)

    # PENDING, POSTED
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)

    # Sum of difference * cost over all lines (signed)
    total_variance_value_cents = db.Column(db.Integer, nullable=False, default=0)

    # Settlement vouchers created on posting (either may be absent)
    receipt_voucher_id = db.Column(db.Integer, db.ForeignKey("store_receipt_vouchers.id"), nullable=True)
    issue_voucher_id = db.Column(db.Integer, db.ForeignKey("store_issue_vouchers.id"), nullable=True)
    posted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store")
    user = db.relationship("User")
    branch = db.relationship("Branch")
    items = db.relationship(
        "InventoryCountItem",
        back_populates="count",
        cascade="all, delete-orphan",
        order_by="InventoryCountItem.id",
    )

    def __repr__(self) -> str:
        return f"<InventoryCount id={self.id} code={self.code!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "code": self.code,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "branch_id": self.branch_id,
            "date": to_utc_z(self.date),
            "notes": self.notes,
            "status": self.status,
            "total_variance_value_cents": self.total_variance_value_cents,
            "receipt_voucher_id": self.receipt_voucher_id,
            "issue_voucher_id": self.issue_voucher_id,
            "posted_at": to_utc_z(self.posted_at) if self.posted_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryCountItem(db.Model):
    """
    One counted item.

    difference = actual_stock - system_stock. Positive means a physical
    surplus (posted as a receipt), negative a shortage (posted as an issue).
    """
    __tablename__ = "inventory_count_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    count_id = db.Column(db.Integer, db.ForeignKey("inventory_counts.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)

    # Balance observed when the count was taken
    system_stock = db.Column(db.Integer, nullable=False)
    # Physically counted
    actual_stock = db.Column(db.Integer, nullable=False)
    difference = db.Column(db.Integer, nullable=False)

    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    count = db.relationship("InventoryCount", back_populates="items")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "count_id": self.count_id,
            "item_id": self.item_id,
            "system_stock": self.system_stock,
            "actual_stock": self.actual_stock,
            "difference": self.difference,
            "cost_cents": self.cost_cents,
            "created_at": to_utc_z(self.created_at),
        }
