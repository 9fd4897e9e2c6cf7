"""
Tests for per-company document number allocation.
"""
import pytest

from stockpro.models import DocumentSequence, StoreReceiptVoucher
from stockpro.services.document_service import DocumentSequenceError, next_document_number


class TestNextDocumentNumber:
    def test_sequential_per_type(self, db_session, company):
        numbers = [next_document_number(company_id=company.id, document_type="STORE_ISSUE") for _ in range(3)]
        count_code = next_document_number(company_id=company.id, document_type="INVENTORY_COUNT")

        assert numbers == ["SIV-000001", "SIV-000002", "SIV-000003"]
        assert count_code == "INVC-0001"

    def test_companies_are_independent(self, db_session, company, other_company):
        assert next_document_number(company_id=company.id, document_type="STORE_RECEIPT") == "SRV-000001"
        assert next_document_number(company_id=company.id, document_type="STORE_RECEIPT") == "SRV-000002"
        assert next_document_number(company_id=other_company.id, document_type="STORE_RECEIPT") == "SRV-000001"

    def test_one_sequence_row_per_company_and_type(self, db_session, company):
        for _ in range(4):
            next_document_number(company_id=company.id, document_type="STORE_TRANSFER")
        db_session.commit()

        row = db_session.query(DocumentSequence).filter_by(company_id=company.id).one()
        assert row.document_type == "STORE_TRANSFER"
        assert row.next_number == 5

    def test_seeds_from_existing_numbers(self, db_session, company, user, store_a):
        db_session.add(StoreReceiptVoucher(
            company_id=company.id, voucher_number="SRV-000041", store_id=store_a.id, user_id=user.id,
        ))
        db_session.commit()

        assert next_document_number(company_id=company.id, document_type="STORE_RECEIPT") == "SRV-000042"

    def test_unknown_type_is_rejected(self, db_session, company):
        with pytest.raises(DocumentSequenceError):
            next_document_number(company_id=company.id, document_type="INVOICE")
