from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


# =============================================================================
# STORE VOUCHERS (first-class movement records)
#
# Every movement line is owned by exactly one voucher. Lines are immutable:
# a voucher update replaces the whole line set (delete-orphan cascade), it
# never edits a line in place. Quantities are always positive; the voucher
# type decides the sign in the balance.
# =============================================================================


def _line_to_dict(line) -> dict:
    return {
        "id": line.id,
        "voucher_id": line.voucher_id,
        "item_id": line.item_id,
        "quantity": line.quantity,
        "unit_price_cents": line.unit_price_cents,
        "total_price_cents": line.total_price_cents,
    }


class StoreReceiptVoucher(db.Model):
    """Receipt into a single store (SRV-000001). Adds stock, never guarded."""
    __tablename__ = "store_receipt_vouchers"
    __table_args__ = (
        db.UniqueConstraint("company_id", "voucher_number", name="uq_srv_company_number"),
        db.Index("ix_srv_store", "store_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    voucher_number = db.Column(db.String(32), nullable=False)

    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notes = db.Column(db.Text, nullable=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store")
    user = db.relationship("User")
    items = db.relationship(
        "StoreReceiptVoucherItem",
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="StoreReceiptVoucherItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "voucher_number": self.voucher_number,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "branch_id": self.branch_id,
            "date": to_utc_z(self.date),
            "notes": self.notes,
            "total_amount_cents": self.total_amount_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "items": [_line_to_dict(line) for line in self.items],
        }


class StoreReceiptVoucherItem(db.Model):
    __tablename__ = "store_receipt_voucher_items"
    __table_args__ = (
        db.Index("ix_srv_items_item_voucher", "item_id", "voucher_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    voucher_id = db.Column(db.Integer, db.ForeignKey("store_receipt_vouchers.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)

    voucher = db.relationship("StoreReceiptVoucher", back_populates="items")
    item = db.relationship("Item")


class StoreIssueVoucher(db.Model):
    """Issue out of a single store (SIV-000001). Guarded by the write guard."""
    __tablename__ = "store_issue_vouchers"
    __table_args__ = (
        db.UniqueConstraint("company_id", "voucher_number", name="uq_siv_company_number"),
        db.Index("ix_siv_store", "store_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    voucher_number = db.Column(db.String(32), nullable=False)

    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notes = db.Column(db.Text, nullable=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store")
    user = db.relationship("User")
    items = db.relationship(
        "StoreIssueVoucherItem",
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="StoreIssueVoucherItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "voucher_number": self.voucher_number,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "branch_id": self.branch_id,
            "date": to_utc_z(self.date),
            "notes": self.notes,
            "total_amount_cents": self.total_amount_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "items": [_line_to_dict(line) for line in self.items],
        }


class StoreIssueVoucherItem(db.Model):
    __tablename__ = "store_issue_voucher_items"
    __table_args__ = (
        db.Index("ix_siv_items_item_voucher", "item_id", "voucher_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    voucher_id = db.Column(db.Integer, db.ForeignKey("store_issue_vouchers.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)

    voucher = db.relationship("StoreIssueVoucher", back_populates="items")
    item = db.relationship("Item")


class StoreTransferVoucher(db.Model):
    """
    Transfer between two stores of the same company (STV-000001).

    One row moves stock out of from_store and into to_store at the same time:
    the balance subtracts it from the source and adds it to the destination.
    Only the source side is guarded.
    """
    __tablename__ = "store_transfer_vouchers"
    __table_args__ = (
        db.UniqueConstraint("company_id", "voucher_number", name="uq_stv_company_number"),
        db.CheckConstraint("from_store_id <> to_store_id", name="ck_stv_distinct_stores"),
        db.Index("ix_stv_from_store", "from_store_id"),
        db.Index("ix_stv_to_store", "to_store_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    voucher_number = db.Column(db.String(32), nullable=False)

    from_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    to_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    notes = db.Column(db.Text, nullable=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    from_store = db.relationship("Store", foreign_keys=[from_store_id])
    to_store = db.relationship("Store", foreign_keys=[to_store_id])
    user = db.relationship("User")
    items = db.relationship(
        "StoreTransferVoucherItem",
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="StoreTransferVoucherItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "voucher_number": self.voucher_number,
            "from_store_id": self.from_store_id,
            "to_store_id": self.to_store_id,
            "user_id": self.user_id,
            "branch_id": self.branch_id,
            "date": to_utc_z(self.date),
            "notes": self.notes,
            "total_amount_cents": self.total_amount_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "items": [_line_to_dict(line) for line in self.items],
        }


class StoreTransferVoucherItem(db.Model):
    __tablename__ = "store_transfer_voucher_items"
    __table_args__ = (
        db.Index("ix_stv_items_item_voucher", "item_id", "voucher_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    voucher_id = db.Column(db.Integer, db.ForeignKey("store_transfer_vouchers.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)

    voucher = db.relationship("StoreTransferVoucher", back_populates="items")
    item = db.relationship("Item")


class DocumentSequence(db.Model):
    """
    Per-company counter for voucher numbers and count codes.

    Allocation is an atomic UPDATE ... SET next_number = next_number + 1 on
    this row, so two concurrent creations can never read the same number.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("company_id", "document_type", name="uq_document_sequences_company_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
