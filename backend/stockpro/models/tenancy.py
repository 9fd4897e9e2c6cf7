from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Company(db.Model):
    """
    Tenant root. Every store, item, voucher and count belongs to one company.

    Company resolution (who is calling, which company they act for) happens
    outside this service; the row only anchors foreign keys and sequences.
    """
    __tablename__ = "companies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "created_at": to_utc_z(self.created_at),
        }


class Branch(db.Model):
    """
    Company branch.

    Legacy invoices and returns are scoped to a branch, not a store, so the
    stock ledger translates store -> branch before scanning them.
    """
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_branches_company_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("branches", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "code": self.code,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Store(db.Model):
    """Physical stock location. Balances are always per (store, item)."""
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_stores_company_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    # Nullable: a store without a branch simply has no legacy documents
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("stores", lazy=True))
    branch = db.relationship("Branch", backref=db.backref("stores", lazy=True))

    def __repr__(self) -> str:
        return f"<Store id={self.id} code={self.code!r} branch_id={self.branch_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "branch_id": self.branch_id,
            "code": self.code,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class User(db.Model):
    """Minimal user row for voucher/count attribution. Auth lives elsewhere."""
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    branch = db.relationship("Branch")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "branch_id": self.branch_id,
            "email": self.email,
            "name": self.name,
        }
