"""
Tests for balance computation (per store, item).
"""
import pytest

from stockpro.errors import NotFoundError
from stockpro.models import PurchaseInvoice, PurchaseReturn, SalesInvoice, SalesReturn
from stockpro.services import stock_service
from stockpro.services.legacy_document_service import PURCHASE_INVOICE, SALES_INVOICE


class TestBalanceConservation:
    """Balance is opening + credits - debits."""

    def test_unknown_pair_is_zero(self, db_session, store_a, item):
        assert stock_service.get_balance(store_a.id, item.id) == 0

    def test_opening_receipts_and_issues(self, ledger, store_a, item):
        ledger.opening(store_a, item, 4)
        ledger.receive(store_a, item, 10)
        ledger.receive(store_a, item, 6)
        ledger.issue(store_a, item, 7)

        assert stock_service.get_balance(store_a.id, item.id) == 4 + 10 + 6 - 7

    def test_lines_of_other_items_and_stores_do_not_leak(self, ledger, store_a, store_b, item, item_b):
        ledger.receive(store_a, item, 10)
        ledger.receive(store_a, item_b, 3)
        ledger.receive(store_b, item, 8)

        assert stock_service.get_balance(store_a.id, item.id) == 10
        assert stock_service.get_balance(store_a.id, item_b.id) == 3
        assert stock_service.get_balance(store_b.id, item.id) == 8

    def test_multiple_lines_for_same_item_are_summed(self, db_session, company, user, store_a, item):
        from stockpro.services.receipt_voucher_service import create_receipt_voucher

        create_receipt_voucher(
            company_id=company.id,
            store_id=store_a.id,
            user_id=user.id,
            items=[{"item_id": item.id, "quantity": 2}, {"item_id": item.id, "quantity": 5}],
        )
        db_session.commit()

        assert stock_service.get_balance(store_a.id, item.id) == 7


class TestTransferClosure:
    """A transfer moves the same quantity out of one store and into another."""

    def test_pair_total_is_unchanged(self, ledger, store_a, store_b, item):
        ledger.receive(store_a, item, 20)
        before = stock_service.get_balance(store_a.id, item.id) + stock_service.get_balance(store_b.id, item.id)

        ledger.transfer(store_a, store_b, item, 8)

        assert stock_service.get_balance(store_a.id, item.id) == 12
        assert stock_service.get_balance(store_b.id, item.id) == 8
        assert stock_service.get_balance(store_a.id, item.id) + stock_service.get_balance(store_b.id, item.id) == before

    def test_round_trip_restores_both_stores(self, ledger, store_a, store_b, item):
        ledger.receive(store_a, item, 5)
        ledger.transfer(store_a, store_b, item, 5)
        ledger.transfer(store_b, store_a, item, 5)

        assert stock_service.get_balance(store_a.id, item.id) == 5
        assert stock_service.get_balance(store_b.id, item.id) == 0


class TestLegacyComponents:
    """Legacy invoices and returns are branch-scoped and matched by item code."""

    def _add_documents(self, db_session, company, branch, code):
        db_session.add_all([
            PurchaseInvoice(company_id=company.id, branch_id=branch.id, code="PI-1", items=[{"id": code, "qty": 30}]),
            SalesReturn(company_id=company.id, branch_id=branch.id, code="SR-1", items=[{"id": code, "qty": 2}]),
            SalesInvoice(company_id=company.id, branch_id=branch.id, code="SI-1", items=[{"id": code, "qty": 11}]),
            PurchaseReturn(company_id=company.id, branch_id=branch.id, code="PR-1", items=[{"id": code, "qty": 4}]),
        ])
        db_session.commit()

    def test_legacy_documents_enter_the_formula(self, db_session, ledger, company, branch, store_a, item):
        self._add_documents(db_session, company, branch, item.code)
        ledger.receive(store_a, item, 1)

        breakdown = stock_service.get_balance_breakdown(store_a.id, item.id)

        assert breakdown["purchase_invoices"] == 30
        assert breakdown["sales_returns"] == 2
        assert breakdown["sales_invoices"] == 11
        assert breakdown["purchase_returns"] == 4
        assert breakdown["balance"] == 1 + 30 + 2 - 11 - 4

    def test_every_store_of_the_branch_sees_legacy_quantities(
        self, db_session, company, branch, store_a, store_b, item
    ):
        self._add_documents(db_session, company, branch, item.code)

        assert stock_service.get_balance(store_a.id, item.id) == 17
        assert stock_service.get_balance(store_b.id, item.id) == 17

    def test_store_without_branch_ignores_legacy(self, db_session, company, branch, store_no_branch, item):
        self._add_documents(db_session, company, branch, item.code)

        assert stock_service.get_balance(store_no_branch.id, item.id) == 0

    def test_renamed_item_code_loses_legacy_history(self, db_session, company, branch, store_a, item):
        self._add_documents(db_session, company, branch, item.code)
        item.code = "ITM-001-NEW"
        db_session.commit()

        assert stock_service.get_balance(store_a.id, item.id) == 0

    def test_fake_source_is_used_when_injected(self, fake_legacy, db_session, branch, store_a, item):
        fake_legacy.add(PURCHASE_INVOICE, branch.id, {"id": item.code, "qty": 9})
        fake_legacy.add(SALES_INVOICE, branch.id, {"id": item.code, "qty": 3})

        assert stock_service.get_balance(store_a.id, item.id) == 6


class TestBreakdownAndInfo:
    def test_breakdown_lists_every_component(self, ledger, store_a, store_b, item):
        ledger.opening(store_a, item, 2)
        ledger.receive(store_a, item, 10)
        ledger.issue(store_a, item, 3)
        ledger.transfer(store_a, store_b, item, 4)
        ledger.receive(store_b, item, 1)
        ledger.transfer(store_b, store_a, item, 5)

        breakdown = stock_service.get_balance_breakdown(store_a.id, item.id)

        assert breakdown == {
            "store_id": store_a.id,
            "item_id": item.id,
            "opening_balance": 2,
            "receipts": 10,
            "issues": 3,
            "transfers_out": 4,
            "transfers_in": 5,
            "purchase_invoices": 0,
            "purchase_returns": 0,
            "sales_invoices": 0,
            "sales_returns": 0,
            "balance": 10,
        }

    def test_available_quantity_never_negative(self, db_session, company, branch, store_a, item):
        db_session.add(SalesInvoice(
            company_id=company.id, branch_id=branch.id, code="SI-9", items=[{"id": item.code, "qty": 3}],
        ))
        db_session.commit()

        info = stock_service.get_balance_info(store_a.id, item.id)

        assert info["balance"] == -3
        assert info["available_qty"] == 0
        assert info["exists_in_store"] is True

    def test_unknown_store_or_item_raises(self, db_session, store_a, item):
        with pytest.raises(NotFoundError):
            stock_service.get_balance(store_a.id + 999, item.id)
        with pytest.raises(NotFoundError):
            stock_service.get_balance(store_a.id, item.id + 999)


class TestItemOpeningBalance:
    def test_created_item_starts_with_opening_balance_in_its_store(self, db_session, company, store_a, store_b):
        from stockpro.services.catalog_service import create_item

        item = create_item(company_id=company.id, code="ITM-100", name="Washer", store_id=store_a.id, opening_balance=25)
        db_session.commit()

        assert stock_service.get_balance(store_a.id, item.id) == 25
        assert stock_service.item_exists_in_store(store_a.id, item.id) is True
        assert stock_service.get_balance(store_b.id, item.id) == 0
        assert stock_service.item_exists_in_store(store_b.id, item.id) is False

    def test_opening_balance_requires_a_store(self, db_session, company):
        from stockpro.services.catalog_service import create_item

        with pytest.raises(ValueError):
            create_item(company_id=company.id, code="ITM-101", name="Washer", opening_balance=5)
