"""
Pytest fixtures for StockPro backend tests.

Provides test database setup, a small company/branch/store/item world, and
helpers that post vouchers through the real services.
"""
from collections import defaultdict

import pytest

from stockpro import create_app
from stockpro.extensions import db
from stockpro.models import Branch, Company, Item, Store, StoreItem, User
from stockpro.services import (
    issue_voucher_service,
    legacy_document_service,
    receipt_voucher_service,
    transfer_voucher_service,
)
from stockpro.services.legacy_document_service import LegacyDocumentScanner, LegacyDocumentSource


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_BACKOFF': 0,
        'LOG_LEVEL': 'DEBUG',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def company(db_session):
    company = Company(name="Acme Trading", code="ACME")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def other_company(db_session):
    company = Company(name="Beta Supplies", code="BETA")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def branch(db_session, company):
    branch = Branch(company_id=company.id, code="MAIN", name="Main Branch")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def store_a(db_session, company, branch):
    store = Store(company_id=company.id, branch_id=branch.id, code="WH-A", name="Warehouse A")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session, company, branch):
    store = Store(company_id=company.id, branch_id=branch.id, code="WH-B", name="Warehouse B")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_no_branch(db_session, company):
    store = Store(company_id=company.id, branch_id=None, code="KIOSK", name="Kiosk")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def user(db_session, company, branch):
    user = User(company_id=company.id, branch_id=branch.id, email="clerk@acme.test", name="Clerk")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def item(db_session, company):
    item = Item(company_id=company.id, code="ITM-001", name="Steel Bolt", purchase_price_cents=1000)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def item_b(db_session, company):
    item = Item(company_id=company.id, code="ITM-002", name="Steel Nut", purchase_price_cents=2000)
    db_session.add(item)
    db_session.commit()
    return item


class Ledger:
    """Posts vouchers through the services and commits, like a route would."""

    def __init__(self, company, user):
        self.company = company
        self.user = user

    @staticmethod
    def _lines(item, quantity, unit_price_cents=0):
        return [{"item_id": item.id, "quantity": quantity, "unit_price_cents": unit_price_cents}]

    def opening(self, store, item, quantity):
        db.session.add(StoreItem(store_id=store.id, item_id=item.id, opening_balance=quantity))
        db.session.commit()

    def receive(self, store, item, quantity, unit_price_cents=0):
        voucher = receipt_voucher_service.create_receipt_voucher(
            company_id=self.company.id,
            store_id=store.id,
            user_id=self.user.id,
            items=self._lines(item, quantity, unit_price_cents),
        )
        db.session.commit()
        return voucher

    def issue(self, store, item, quantity, unit_price_cents=0):
        voucher = issue_voucher_service.create_issue_voucher(
            company_id=self.company.id,
            store_id=store.id,
            user_id=self.user.id,
            items=self._lines(item, quantity, unit_price_cents),
        )
        db.session.commit()
        return voucher

    def transfer(self, from_store, to_store, item, quantity):
        voucher = transfer_voucher_service.create_transfer_voucher(
            company_id=self.company.id,
            from_store_id=from_store.id,
            to_store_id=to_store.id,
            user_id=self.user.id,
            items=self._lines(item, quantity),
        )
        db.session.commit()
        return voucher


@pytest.fixture(scope='function')
def ledger(db_session, company, user):
    return Ledger(company, user)


class FakeLegacySource(LegacyDocumentSource):
    """In-memory legacy documents keyed by (kind, branch_id)."""

    def __init__(self):
        self.entries = defaultdict(list)
        self.reads = []

    def add(self, kind, branch_id, *entries):
        self.entries[(kind, branch_id)].extend(entries)

    def iter_entries(self, kind, branch_id):
        self.reads.append((kind, branch_id))
        yield from self.entries[(kind, branch_id)]


@pytest.fixture(scope='function')
def legacy_source():
    return FakeLegacySource()


@pytest.fixture(scope='function')
def fake_legacy(app, legacy_source):
    """Swap the application's legacy scanner for one over an in-memory source."""
    source = legacy_source
    previous = app.extensions[legacy_document_service.EXTENSION_KEY]
    app.extensions[legacy_document_service.EXTENSION_KEY] = LegacyDocumentScanner(source)
    yield source
    app.extensions[legacy_document_service.EXTENSION_KEY] = previous
