"""
Tests for scanning legacy invoices and returns.
"""
import logging

import pytest

from stockpro.models import PurchaseInvoice, SalesInvoice
from stockpro.services.legacy_document_service import (
    PURCHASE_INVOICE,
    PURCHASE_RETURN,
    SALES_INVOICE,
    SALES_RETURN,
    LegacyDocumentScanner,
    LegacyDocumentSource,
    SqlLegacyDocumentSource,
    coerce_quantity,
)


BRANCH = 7


@pytest.fixture
def source(legacy_source):
    return legacy_source


@pytest.fixture
def scanner(source):
    return LegacyDocumentScanner(source)


class TestSumQuantity:
    """sum_quantity matches entries by exact item code."""

    def test_sums_matching_entries_only(self, source, scanner):
        source.add(
            PURCHASE_INVOICE, BRANCH,
            {"id": "ITM-001", "name": "Bolt", "qty": 3},
            {"id": "ITM-002", "name": "Nut", "qty": 50},
            {"id": "ITM-001", "name": "Bolt", "qty": 4},
        )

        assert scanner.sum_quantity(PURCHASE_INVOICE, BRANCH, "ITM-001") == 7

    def test_other_kinds_and_branches_are_ignored(self, source, scanner):
        source.add(SALES_INVOICE, BRANCH, {"id": "ITM-001", "qty": 2})
        source.add(PURCHASE_INVOICE, BRANCH + 1, {"id": "ITM-001", "qty": 9})

        assert scanner.sum_quantity(PURCHASE_INVOICE, BRANCH, "ITM-001") == 0
        assert scanner.sum_quantity(SALES_INVOICE, BRANCH, "ITM-001") == 2

    def test_code_match_is_exact(self, source, scanner):
        source.add(SALES_RETURN, BRANCH, {"id": "itm-001", "qty": 1}, {"id": "ITM-001 ", "qty": 1})

        assert scanner.sum_quantity(SALES_RETURN, BRANCH, "ITM-001") == 0

    def test_missing_or_malformed_quantity_counts_as_zero(self, source, scanner):
        source.add(
            PURCHASE_RETURN, BRANCH,
            {"id": "ITM-001"},
            {"id": "ITM-001", "qty": None},
            {"id": "ITM-001", "qty": "abc"},
            {"id": "ITM-001", "qty": True},
            {"id": "ITM-001", "qty": 5},
        )

        assert scanner.sum_quantity(PURCHASE_RETURN, BRANCH, "ITM-001") == 5

    def test_no_branch_means_no_legacy_quantity(self, source, scanner):
        source.add(PURCHASE_INVOICE, BRANCH, {"id": "ITM-001", "qty": 3})

        assert scanner.sum_quantity(PURCHASE_INVOICE, None, "ITM-001") == 0
        assert source.reads == []

    def test_custom_field_names(self, source):
        scanner = LegacyDocumentScanner(source, code_field="code", quantity_field="quantity")
        source.add(PURCHASE_INVOICE, BRANCH, {"code": "ITM-001", "quantity": 6, "id": "X", "qty": 1})

        assert scanner.sum_quantity(PURCHASE_INVOICE, BRANCH, "ITM-001") == 6


class TestCoerceQuantity:
    def test_accepts_ints_numeric_strings_and_integral_floats(self):
        assert coerce_quantity(4) == 4
        assert coerce_quantity("12") == 12
        assert coerce_quantity(" 3 ") == 3
        assert coerce_quantity(2.0) == 2
        assert coerce_quantity("5.0") == 5

    def test_rejects_non_numeric(self):
        assert coerce_quantity(None) == 0
        assert coerce_quantity("") == 0
        assert coerce_quantity("ten") == 0
        assert coerce_quantity(False) == 0
        assert coerce_quantity({"qty": 1}) == 0
        assert coerce_quantity(float("nan")) == 0

    def test_non_integral_quantity_is_zero_and_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="stockpro.services.legacy_document_service"):
            assert coerce_quantity(2.5) == 0
            assert coerce_quantity("1.25") == 0

        assert "non-integral legacy quantity" in caplog.text


class TestReferencesItem:
    def test_true_when_any_kind_names_the_item(self, source, scanner):
        source.add(PURCHASE_RETURN, BRANCH, {"id": "ITM-001", "qty": 0})

        assert scanner.references_item(BRANCH, "ITM-001") is True
        assert scanner.references_item(BRANCH, "ITM-999") is False

    def test_stops_at_first_match(self, source, scanner):
        source.add(PURCHASE_INVOICE, BRANCH, {"id": "ITM-001", "qty": 1})
        source.add(SALES_INVOICE, BRANCH, {"id": "ITM-001", "qty": 1})

        assert scanner.references_item(BRANCH, "ITM-001") is True
        assert source.reads == [(PURCHASE_INVOICE, BRANCH)]

    def test_no_branch_references_nothing(self, source, scanner):
        assert scanner.references_item(None, "ITM-001") is False


class TestSqlLegacyDocumentSource:
    """Reads the JSON item lists of the legacy tables."""

    def test_yields_entries_of_branch_documents(self, db_session, company, branch):
        db_session.add_all([
            PurchaseInvoice(
                company_id=company.id, branch_id=branch.id, code="PI-1",
                items=[{"id": "ITM-001", "qty": 2}, {"id": "ITM-002", "qty": 1}],
            ),
            PurchaseInvoice(
                company_id=company.id, branch_id=branch.id, code="PI-2",
                items=[{"id": "ITM-001", "qty": "3"}],
            ),
            PurchaseInvoice(company_id=company.id, branch_id=None, code="PI-3", items=[{"id": "ITM-001", "qty": 100}]),
            SalesInvoice(company_id=company.id, branch_id=branch.id, code="SI-1", items=[{"id": "ITM-001", "qty": 1}]),
        ])
        db_session.commit()

        scanner = LegacyDocumentScanner(SqlLegacyDocumentSource())

        assert scanner.sum_quantity(PURCHASE_INVOICE, branch.id, "ITM-001") == 5
        assert scanner.sum_quantity(SALES_INVOICE, branch.id, "ITM-001") == 1
        assert scanner.references_item(branch.id, "ITM-002") is True

    def test_skips_non_object_entries(self, db_session, company, branch):
        db_session.add(PurchaseInvoice(
            company_id=company.id, branch_id=branch.id, code="PI-9",
            items=["ITM-001", 4, {"id": "ITM-001", "qty": 4}],
        ))
        db_session.commit()

        entries = list(SqlLegacyDocumentSource().iter_entries(PURCHASE_INVOICE, branch.id))

        assert entries == [{"id": "ITM-001", "qty": 4}]


class TestLegacyDocumentSourcePort:
    def test_adapter_without_iter_entries_cannot_be_created(self):
        class IncompleteSource(LegacyDocumentSource):
            pass

        with pytest.raises(TypeError):
            IncompleteSource()

    def test_sql_adapter_implements_port(self):
        assert isinstance(SqlLegacyDocumentSource(), LegacyDocumentSource)
