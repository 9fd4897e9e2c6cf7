from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


# =============================================================================
# LEGACY DOCUMENTS
#
# Purchase/sales invoices and returns keep their line items as an opaque
# JSON list, e.g. [{"id": "ITM-001", "name": "...", "qty": 3, "price": 10}].
# Entries reference items by Item.code (the "id" key) rather than Item.id,
# and the documents are scoped to a branch rather than a store.
#
# These tables are written by the invoicing module. The stock ledger only
# reads them.
# =============================================================================


class _LegacyDocumentColumns:
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    items = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "branch_id": self.branch_id,
            "code": self.code,
            "date": to_utc_z(self.date),
            "items": list(self.items or []),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseInvoice(_LegacyDocumentColumns, db.Model):
    """Adds stock to every store of its branch (matched by item code)."""
    __tablename__ = "purchase_invoices"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_purchase_invoices_company_code"),
        db.Index("ix_purchase_invoices_company_branch", "company_id", "branch_id"),
        {"sqlite_autoincrement": True},
    )

    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)


class PurchaseReturn(_LegacyDocumentColumns, db.Model):
    """Removes stock returned to a supplier."""
    __tablename__ = "purchase_returns"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_purchase_returns_company_code"),
        db.Index("ix_purchase_returns_company_branch", "company_id", "branch_id"),
        {"sqlite_autoincrement": True},
    )

    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)


class SalesInvoice(_LegacyDocumentColumns, db.Model):
    """Removes stock sold to a customer."""
    __tablename__ = "sales_invoices"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_sales_invoices_company_code"),
        db.Index("ix_sales_invoices_company_branch", "company_id", "branch_id"),
        {"sqlite_autoincrement": True},
    )

    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)


class SalesReturn(_LegacyDocumentColumns, db.Model):
    """Adds back stock returned by a customer."""
    __tablename__ = "sales_returns"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_sales_returns_company_code"),
        db.Index("ix_sales_returns_company_branch", "company_id", "branch_id"),
        {"sqlite_autoincrement": True},
    )

    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True)
