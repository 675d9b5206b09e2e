"""Tests for balance reconciliation and purge."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from famledger.domain.account import AccountService
from famledger.domain.entities import (
    BoxBaseline,
    HolderRef,
    InstanceKind,
    LedgerMovement,
    MovementKind,
)
from famledger.domain.errors import NotFoundError
from famledger.domain.reconciler import BalanceReconciler, recompute_balance


def test_recompute_balance_is_order_independent():
    movements = [
        LedgerMovement(
            id=i,
            holder=HolderRef.bank_account(1),
            amount=Decimal(amount),
            kind=MovementKind.INCOME,
            description="",
            effective_date=date(2025, 1, day),
            created_at=datetime(2025, 1, 1),
            instance_id=None,
            transfer_id=None,
        )
        for i, (amount, day) in enumerate([("10.00", 3), ("-2.50", 1), ("0.01", 2)], start=1)
    ]

    assert recompute_balance(Decimal("100.00"), movements) == Decimal("107.51")
    assert recompute_balance(Decimal("100.00"), reversed(movements)) == Decimal("107.51")


def test_reconcile_without_drift(reconciler, ledger, checking):
    ledger.append(checking.holder, Decimal("-25.00"), MovementKind.EXPENSE, "Lunch", date(2025, 1, 2))

    result = reconciler.reconcile(checking.holder)

    assert not result.corrected
    assert result.previous_cached == result.recomputed == Decimal("975.00")


def test_reconcile_corrects_drift(temp_db, reconciler, ledger, checking):
    ledger.append(checking.holder, Decimal("-25.00"), MovementKind.EXPENSE, "Lunch", date(2025, 1, 2))
    temp_db.set_cached_balance(checking.holder, Decimal("999.99"))

    result = reconciler.reconcile(checking.holder)

    assert result.corrected
    assert result.previous_cached == Decimal("999.99")
    assert result.recomputed == Decimal("975.00")
    assert result.line == "Checking: 999.99 → 975.00"
    assert temp_db.get_cached_balance(checking.holder) == Decimal("975.00")


def test_one_cent_is_within_tolerance(temp_db, reconciler, checking):
    temp_db.set_cached_balance(checking.holder, Decimal("1000.01"))

    result = reconciler.reconcile(checking.holder)

    assert not result.corrected
    assert temp_db.get_cached_balance(checking.holder) == Decimal("1000.01")


def test_reconcile_all_is_idempotent(temp_db, reconciler, checking, vacation_box):
    temp_db.set_cached_balance(checking.holder, Decimal("5.00"))
    temp_db.set_cached_balance(vacation_box.holder, Decimal("7.00"))

    first = reconciler.reconcile_all()
    second = reconciler.reconcile_all()

    assert first.total_corrected == 2
    # Bank accounts come before boxes
    assert [c.holder_name for c in first.corrections] == ["Checking", "Vacation"]
    assert second.total_corrected == 0
    assert second.success


def test_reconcile_all_isolates_failures(temp_db, ledger, account_service, checking, monkeypatch):
    other_id = account_service.create_bank_account("Savings", "Second Bank", Decimal("10.00"))
    temp_db.set_cached_balance(HolderRef.bank_account(other_id), Decimal("0.00"))
    reconciler = BalanceReconciler(temp_db, BoxBaseline.ZERO, ledger)
    original = ledger.movements_for

    def broken_for_checking(holder, ascending=False):
        if holder == checking.holder:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return original(holder, ascending=ascending)

    monkeypatch.setattr(ledger, "movements_for", broken_for_checking)

    report = reconciler.reconcile_all()

    assert not report.success
    assert len(report.errors) == 1
    assert report.errors[0].startswith("Error in Checking:")
    assert [c.holder_name for c in report.corrections] == ["Savings"]
    assert temp_db.get_cached_balance(HolderRef.bank_account(other_id)) == Decimal("10.00")


def test_seeded_box_baseline(temp_db, checking):
    seeded = AccountService(temp_db, BoxBaseline.SEEDED)
    box_id = seeded.create_box("Emergency", checking.id, initial_value=Decimal("500.00"))
    box = HolderRef.box(box_id)

    assert temp_db.get_cached_balance(box) == Decimal("500.00")
    assert not BalanceReconciler(temp_db, BoxBaseline.SEEDED).reconcile(box).corrected
    # Under the zero baseline the seed looks like drift
    assert BalanceReconciler(temp_db, BoxBaseline.ZERO).reconcile(box).corrected
    assert temp_db.get_cached_balance(box) == Decimal("0.00")


def test_purge_resets_balances(
    temp_db, reconciler, instance_service, transfer_service, checking, vacation_box, visa
):
    transfer_service.contribute(vacation_box.id, Decimal("300.00"), date(2025, 1, 1))
    instance_service.create(
        description="Rent",
        kind=InstanceKind.EXPENSE,
        expected_amount=Decimal("200.00"),
        instance_date=date(2025, 1, 5),
        bank_account_id=checking.id,
        actual_amount=Decimal("200.00"),
    )
    instance_service.create(
        description="Shoes",
        kind=InstanceKind.EXPENSE,
        expected_amount=Decimal("60.00"),
        instance_date=date(2025, 1, 6),
        card_id=visa.id,
    )

    counts = reconciler.purge()

    assert counts["instances"] == 2
    assert counts["invoices"] == 1
    assert counts["transfers"] == 1
    assert counts["movements"] == 3
    assert temp_db.get_cached_balance(checking.holder) == Decimal("1000.00")
    assert temp_db.get_cached_balance(vacation_box.holder) == Decimal("0.00")
    assert temp_db.list_instances() == []
    assert temp_db.list_invoices() == []
    assert reconciler.reconcile_all().total_corrected == 0


def test_reconcile_all_isolates_domain_errors(temp_db, ledger, account_service, checking, monkeypatch):
    other_id = account_service.create_bank_account("Savings", "Second Bank", Decimal("10.00"))
    temp_db.set_cached_balance(HolderRef.bank_account(other_id), Decimal("0.00"))
    reconciler = BalanceReconciler(temp_db, BoxBaseline.ZERO, ledger)
    original = ledger.movements_for

    def vanished_checking(holder, ascending=False):
        if holder == checking.holder:
            raise NotFoundError("Bank account Checking disappeared")
        return original(holder, ascending=ascending)

    monkeypatch.setattr(ledger, "movements_for", vanished_checking)

    report = reconciler.reconcile_all()

    assert report.errors == ("Error in Checking: Bank account Checking disappeared",)
    assert [c.holder_name for c in report.corrections] == ["Savings"]


def test_purge_rewinds_installments(temp_db, reconciler, template_service, expander, electricity, visa):
    template_id = template_service.create(
        account_id=electricity.id,
        expected_amount=Decimal("300.00"),
        recurrence="installment(3)",
        start_date=date(2025, 1, 15),
        card_id=visa.id,
    )
    expander.materialize(template_service.get(template_id), 1, 2025)

    reconciler.purge()
    assert template_service.get(template_id).current_installment == 1

    instance = expander.materialize(template_service.get(template_id), 1, 2025)

    assert instance.description == "Electricity (1/3)"
    assert template_service.get(template_id).current_installment == 2
