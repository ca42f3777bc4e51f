"""
Construction invariants of the record DTOs.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from workflow_kernel.domain.records import (
    CompanyRegistrationRequest,
    FinancialRequest,
    RegistrationStatus,
    RequestKind,
    RequestStatus,
    VerificationRequest,
    VerificationStatus,
)
from workflow_kernel.exceptions import InvalidRecordError

from conftest import SUBMITTER_ID

T0 = datetime(2024, 2, 1, 8, 0, tzinfo=timezone.utc)
CANDIDATES = ("Acme Ltd", "Acme Holdings Ltd")


def financial(**overrides):
    values = dict(
        id=uuid4(),
        submitter_id=SUBMITTER_ID,
        kind=RequestKind.DEPOSIT,
        amount=Decimal("100.00"),
        currency="EUR",
        status=RequestStatus.PENDING,
        created_at=T0,
        updated_at=T0,
    )
    values.update(overrides)
    return FinancialRequest(**values)


def registration(**overrides):
    values = dict(
        id=uuid4(),
        submitter_id=SUBMITTER_ID,
        candidate_names=CANDIDATES,
        jurisdiction="Seychelles",
        business_type="Holding",
        contact_email="director@acme.example",
        status=RegistrationStatus.PENDING,
        created_at=T0,
        updated_at=T0,
    )
    values.update(overrides)
    return CompanyRegistrationRequest(**values)


class TestFinancialRequest:

    def test_valid(self):
        assert financial().amount == Decimal("100.00")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(InvalidRecordError):
            financial(amount=amount)

    @pytest.mark.parametrize("currency", ["EU", "EURO", "12€"])
    def test_currency_code(self, currency):
        with pytest.raises(InvalidRecordError):
            financial(currency=currency)

    def test_updated_before_created(self):
        with pytest.raises(InvalidRecordError):
            financial(updated_at=T0 - timedelta(seconds=1))


class TestCompanyRegistrationRequest:

    def test_pending_has_no_selected_name(self):
        with pytest.raises(InvalidRecordError):
            registration(selected_name="Acme Ltd")

    @pytest.mark.parametrize("status", [RegistrationStatus.NAME_SELECTED, RegistrationStatus.COMPLETED])
    def test_selected_name_required(self, status):
        with pytest.raises(InvalidRecordError):
            registration(status=status)

        assert registration(status=status, selected_name="Acme Ltd").selected_name == "Acme Ltd"

    def test_selected_name_must_be_candidate(self):
        with pytest.raises(InvalidRecordError):
            registration(status=RegistrationStatus.NAME_SELECTED, selected_name="Other Ltd")

    @pytest.mark.parametrize("names", [(), ("Acme Ltd", "  ")])
    def test_candidate_names(self, names):
        with pytest.raises(InvalidRecordError):
            registration(candidate_names=names)


class TestVerificationRequest:

    def test_timestamps(self):
        with pytest.raises(InvalidRecordError):
            VerificationRequest(
                id=uuid4(),
                submitter_id=SUBMITTER_ID,
                document_type="passport",
                status=VerificationStatus.PENDING,
                created_at=T0,
                updated_at=T0 - timedelta(days=1),
            )
