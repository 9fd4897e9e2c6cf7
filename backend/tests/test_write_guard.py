"""
Tests for the existence gate and the debit guard.
"""
import pytest

from stockpro.errors import InsufficientStockError, ItemNotInStoreError, TransferError
from stockpro.models import PurchaseInvoice, StoreIssueVoucher, StoreItem
from stockpro.services import stock_service
from stockpro.services.issue_voucher_service import create_issue_voucher
from stockpro.services.transfer_voucher_service import create_transfer_voucher


class TestItemExistsInStore:
    def test_unknown_item_does_not_exist(self, db_session, store_a, item):
        assert stock_service.item_exists_in_store(store_a.id, item.id) is False

    def test_marker_row_is_enough(self, ledger, store_a, item):
        ledger.opening(store_a, item, 0)

        assert stock_service.item_exists_in_store(store_a.id, item.id) is True

    def test_receipt_creates_marker(self, db_session, ledger, store_a, item):
        ledger.receive(store_a, item, 1)

        marker = db_session.query(StoreItem).filter_by(store_id=store_a.id, item_id=item.id).one()
        assert marker.opening_balance == 0
        assert stock_service.item_exists_in_store(store_a.id, item.id) is True

    def test_transfer_in_makes_item_exist_at_destination(self, db_session, ledger, store_a, store_b, item):
        ledger.receive(store_a, item, 3)
        ledger.transfer(store_a, store_b, item, 3)

        assert stock_service.item_exists_in_store(store_b.id, item.id) is True
        assert db_session.query(StoreItem).filter_by(store_id=store_b.id, item_id=item.id).count() == 1

    def test_movement_without_marker_still_counts(self, db_session, ledger, store_a, item):
        ledger.receive(store_a, item, 2)
        db_session.query(StoreItem).delete()
        db_session.commit()

        assert stock_service.item_exists_in_store(store_a.id, item.id) is True

    def test_legacy_reference_counts(self, db_session, company, branch, store_a, item):
        db_session.add(PurchaseInvoice(
            company_id=company.id, branch_id=branch.id, code="PI-1", items=[{"id": item.code, "qty": 1}],
        ))
        db_session.commit()

        assert stock_service.item_exists_in_store(store_a.id, item.id) is True

    def test_legacy_reference_needs_a_branch(self, db_session, company, branch, store_no_branch, item):
        db_session.add(PurchaseInvoice(
            company_id=company.id, branch_id=branch.id, code="PI-1", items=[{"id": item.code, "qty": 1}],
        ))
        db_session.commit()

        assert stock_service.item_exists_in_store(store_no_branch.id, item.id) is False


class TestEnsureStoreItemExists:
    def test_is_idempotent(self, db_session, store_a, item):
        first = stock_service.ensure_store_item_exists(store_a.id, item.id)
        second = stock_service.ensure_store_item_exists(store_a.id, item.id, lock=True)
        db_session.commit()

        assert first.id == second.id
        assert db_session.query(StoreItem).count() == 1

    def test_keeps_existing_opening_balance(self, ledger, db_session, store_a, item):
        ledger.opening(store_a, item, 12)

        marker = stock_service.ensure_store_item_exists(store_a.id, item.id)

        assert marker.opening_balance == 12


class TestAuthorizeDebit:
    def test_rejects_item_never_in_store(self, db_session, store_a, item):
        with pytest.raises(ItemNotInStoreError):
            stock_service.authorize_debit(store_a.id, item.id, 1)

    def test_rejects_quantity_above_balance(self, ledger, store_a, item):
        ledger.receive(store_a, item, 5)

        with pytest.raises(InsufficientStockError) as exc_info:
            stock_service.authorize_debit(store_a.id, item.id, 6)

        assert exc_info.value.available == 5
        assert exc_info.value.requested == 6
        assert "Available: 5, Requested: 6" in str(exc_info.value)

    def test_allows_exact_balance(self, ledger, store_a, item):
        ledger.receive(store_a, item, 5)

        stock_service.authorize_debit(store_a.id, item.id, 5)

    def test_item_known_only_through_legacy_gets_a_marker(self, db_session, company, branch, store_a, item):
        db_session.add(PurchaseInvoice(
            company_id=company.id, branch_id=branch.id, code="PI-1", items=[{"id": item.code, "qty": 4}],
        ))
        db_session.commit()

        stock_service.authorize_debit(store_a.id, item.id, 4)
        db_session.commit()

        marker = db_session.query(StoreItem).filter_by(store_id=store_a.id, item_id=item.id).one()
        assert marker.opening_balance == 0


class TestIssueVoucherGuard:
    def test_issue_never_received_item_is_rejected(self, db_session, company, user, store_a, item):
        with pytest.raises(ItemNotInStoreError):
            create_issue_voucher(
                company_id=company.id,
                store_id=store_a.id,
                user_id=user.id,
                items=[{"item_id": item.id, "quantity": 1}],
            )
        db_session.rollback()

        assert db_session.query(StoreIssueVoucher).count() == 0

    def test_lines_for_same_item_are_checked_together(self, db_session, ledger, company, user, store_a, item):
        ledger.receive(store_a, item, 5)

        with pytest.raises(InsufficientStockError) as exc_info:
            create_issue_voucher(
                company_id=company.id,
                store_id=store_a.id,
                user_id=user.id,
                items=[{"item_id": item.id, "quantity": 3}, {"item_id": item.id, "quantity": 3}],
            )

        assert exc_info.value.requested == 6

    def test_sequential_issues_cannot_overdraw(self, db_session, ledger, store_a, item):
        ledger.receive(store_a, item, 10)
        ledger.issue(store_a, item, 7)

        with pytest.raises(InsufficientStockError) as exc_info:
            ledger.issue(store_a, item, 7)
        db_session.rollback()

        assert exc_info.value.available == 3
        assert stock_service.get_balance(store_a.id, item.id) == 3


class TestTransferVoucherGuard:
    def test_same_store_transfer_is_rejected(self, db_session, ledger, company, user, store_a, item):
        ledger.receive(store_a, item, 5)

        with pytest.raises(TransferError):
            create_transfer_voucher(
                company_id=company.id,
                from_store_id=store_a.id,
                to_store_id=store_a.id,
                user_id=user.id,
                items=[{"item_id": item.id, "quantity": 1}],
            )

    def test_source_balance_is_guarded(self, db_session, ledger, store_a, store_b, item):
        ledger.receive(store_a, item, 2)

        with pytest.raises(InsufficientStockError):
            ledger.transfer(store_a, store_b, item, 3)
        db_session.rollback()

        assert stock_service.get_balance(store_b.id, item.id) == 0

    def test_source_must_know_the_item(self, db_session, ledger, store_a, store_b, item):
        ledger.receive(store_b, item, 2)

        with pytest.raises(ItemNotInStoreError):
            ledger.transfer(store_a, store_b, item, 1)
