"""Tests for domain entities."""

from dataclasses import FrozenInstanceError
from datetime import date, datetime
from decimal import Decimal

import pytest

from famledger.domain.entities import (
    HolderKind,
    HolderRef,
    InstanceKind,
    InstanceStatus,
    PaymentMethod,
    Recurrence,
    RecurrenceKind,
    ReconcileReport,
    ReconcileResult,
    TransactionInstance,
)


def make_instance(**overrides):
    fields = dict(
        id=1,
        month=1,
        year=2025,
        date=date(2025, 1, 5),
        description="Rent",
        kind=InstanceKind.EXPENSE,
        expected_amount=Decimal("100.00"),
        actual_amount=None,
        status=InstanceStatus.PENDING,
        payment_method=PaymentMethod.BANK_ACCOUNT,
        account_id=None,
        bank_account_id=1,
        card_id=None,
        box_id=None,
        destination_account_id=None,
        destination_box_id=None,
        template_id=None,
        invoice_id=None,
        paid_invoice_id=None,
        notes=None,
        created_at=datetime(2025, 1, 1),
    )
    fields.update(overrides)
    return TransactionInstance(**fields)


class TestRecurrence:
    @pytest.mark.parametrize(
        "text, kind, installments",
        [
            ("monthly", RecurrenceKind.MONTHLY, None),
            ("Yearly", RecurrenceKind.YEARLY, None),
            ("unique", RecurrenceKind.UNIQUE, None),
            ("installment(3)", RecurrenceKind.INSTALLMENT, 3),
            ("12x", RecurrenceKind.INSTALLMENT, 12),
        ],
    )
    def test_parse(self, text, kind, installments):
        recurrence = Recurrence.parse(text)

        assert recurrence.kind == kind
        assert recurrence.installments == installments

    def test_str_is_canonical(self):
        assert str(Recurrence.parse("3x")) == "installment(3)"
        assert str(Recurrence.parse("MONTHLY")) == "monthly"

    @pytest.mark.parametrize("text", ["weekly", "installment(0)", "x3"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            Recurrence.parse(text)


class TestHolderRef:
    def test_constructors_and_str(self):
        assert HolderRef.bank_account(3) == HolderRef(HolderKind.BANK_ACCOUNT, 3)
        assert HolderRef.box(3).is_box
        assert str(HolderRef.box(3)) == "box:3"

    def test_hashable(self):
        assert len({HolderRef.box(1), HolderRef.box(1), HolderRef.bank_account(1)}) == 2


class TestTransactionInstance:
    def test_effective_amount(self):
        assert make_instance().effective_amount == Decimal("100.00")
        confirmed = make_instance(status=InstanceStatus.CONFIRMED, actual_amount=Decimal("90.00"))
        assert confirmed.effective_amount == Decimal("90.00")

    def test_transfer_endpoints(self):
        instance = make_instance(
            kind=InstanceKind.TRANSFER, bank_account_id=None, box_id=4, destination_account_id=2
        )

        assert instance.source == HolderRef.box(4)
        assert instance.destination == HolderRef.bank_account(2)

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            make_instance().description = "changed"


def test_reconcile_report_lines():
    correction = ReconcileResult(
        holder=HolderRef.bank_account(1),
        holder_name="Checking",
        previous_cached=Decimal("10.00"),
        recomputed=Decimal("12.50"),
        corrected=True,
    )
    report = ReconcileReport(corrections=(correction,), errors=("Error in Savings: boom",))

    assert report.lines() == ["Checking: 10.00 → 12.50", "Error in Savings: boom"]
    assert not report.success
    assert report.total_corrected == 1
