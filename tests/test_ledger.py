"""Tests for the ledger service."""

from datetime import date
from decimal import Decimal

import pytest

from famledger.domain.entities import BoxBaseline, HolderRef, InstanceKind, MovementKind
from famledger.domain.errors import NotFoundError
from famledger.domain.ledger import REVERSAL_PREFIX, holder_baseline


def balance_of(db, holder):
    return db.get_cached_balance(holder)


class TestAppend:
    """Appending movements keeps the cache in step with the log."""

    def test_append_updates_cached_balance(self, temp_db, ledger, checking):
        ledger.append(checking.holder, Decimal("-200.00"), MovementKind.EXPENSE, "Rent", date(2025, 1, 5))
        ledger.append(checking.holder, Decimal("500.00"), MovementKind.INCOME, "Salary", date(2025, 1, 6))

        assert balance_of(temp_db, checking.holder) == Decimal("1300.00")
        assert ledger.sum(checking.holder) == Decimal("300.00")

    def test_append_quantizes_amount(self, temp_db, ledger, checking):
        movement = ledger.append(
            checking.holder, Decimal("-10.005"), MovementKind.EXPENSE, "Coffee", date(2025, 1, 5)
        )

        assert movement.amount == Decimal("-10.01")
        assert balance_of(temp_db, checking.holder) == Decimal("989.99")

    def test_append_rejects_float(self, ledger, checking):
        with pytest.raises(TypeError):
            ledger.append(checking.holder, 10.5, MovementKind.INCOME, "Float", date(2025, 1, 5))

    def test_append_to_missing_holder(self, ledger):
        with pytest.raises(NotFoundError, match="Box 99 not found"):
            ledger.append(HolderRef.box(99), Decimal("1.00"), MovementKind.INCOME, "x", date(2025, 1, 5))

    def test_many_small_movements_do_not_drift(self, temp_db, ledger, checking):
        for day in range(1, 29):
            ledger.append(checking.holder, Decimal("0.10"), MovementKind.INCOME, "Dime", date(2025, 2, day))

        assert balance_of(temp_db, checking.holder) == Decimal("1002.80")


class TestMovementsFor:
    """Display and audit ordering of movements."""

    def test_display_order_is_newest_first(self, ledger, checking):
        ledger.append(checking.holder, Decimal("1.00"), MovementKind.INCOME, "first", date(2025, 1, 1))
        ledger.append(checking.holder, Decimal("2.00"), MovementKind.INCOME, "third", date(2025, 3, 1))
        ledger.append(checking.holder, Decimal("3.00"), MovementKind.INCOME, "second", date(2025, 2, 1))

        descriptions = [m.description for m in ledger.movements_for(checking.holder)]
        assert descriptions == ["third", "second", "first"]

    def test_same_date_ties_broken_by_creation(self, ledger, checking):
        ledger.append(checking.holder, Decimal("1.00"), MovementKind.INCOME, "earlier", date(2025, 1, 1))
        ledger.append(checking.holder, Decimal("1.00"), MovementKind.INCOME, "later", date(2025, 1, 1))

        newest_first = [m.description for m in ledger.movements_for(checking.holder)]
        oldest_first = [m.description for m in ledger.movements_for(checking.holder, ascending=True)]
        assert newest_first == ["later", "earlier"]
        assert oldest_first == ["earlier", "later"]

    def test_movements_are_scoped_to_holder(self, ledger, checking, vacation_box):
        ledger.append(checking.holder, Decimal("5.00"), MovementKind.INCOME, "account", date(2025, 1, 1))
        ledger.append(vacation_box.holder, Decimal("7.00"), MovementKind.INCOME, "box", date(2025, 1, 1))

        assert [m.description for m in ledger.movements_for(vacation_box.holder)] == ["box"]
        assert ledger.sum(vacation_box.holder) == Decimal("7.00")


class TestCompensation:
    """Compensating and removing an instance's movements."""

    def test_compensate_instance_cancels_net(self, temp_db, ledger, checking, instance_service, jan_2025):
        instance = instance_service.create(
            description="Groceries",
            kind=InstanceKind.EXPENSE,
            expected_amount=Decimal("80.00"),
            instance_date=jan_2025,
            bank_account_id=checking.id,
            actual_amount=Decimal("75.00"),
        )
        assert balance_of(temp_db, checking.holder) == Decimal("925.00")

        compensations = ledger.compensate_instance(instance.id, jan_2025)

        assert len(compensations) == 1
        assert compensations[0].amount == Decimal("75.00")
        assert compensations[0].description == REVERSAL_PREFIX + "Groceries"
        assert balance_of(temp_db, checking.holder) == Decimal("1000.00")
        # Net is now zero, so nothing more to compensate
        assert ledger.compensate_instance(instance.id, jan_2025) == []

    def test_delete_for_instance_restores_balance(self, temp_db, ledger, checking, instance_service, jan_2025):
        instance = instance_service.create(
            description="Bonus",
            kind=InstanceKind.INCOME,
            expected_amount=Decimal("300.00"),
            instance_date=jan_2025,
            bank_account_id=checking.id,
            actual_amount=Decimal("300.00"),
        )

        removed = ledger.delete_for_instance(instance.id)

        assert len(removed) == 1
        assert balance_of(temp_db, checking.holder) == Decimal("1000.00")
        assert ledger.movements_for(checking.holder) == []


class TestStatement:
    def test_statement_verification_block(self, temp_db, ledger, checking):
        ledger.append(checking.holder, Decimal("-40.00"), MovementKind.EXPENSE, "Gas", date(2025, 1, 3))

        statement = ledger.statement(checking.holder)

        assert statement.holder_name == "Checking"
        assert len(statement.movements) == 1
        assert statement.cached_balance == Decimal("960.00")
        assert statement.recomputed == Decimal("960.00")
        assert statement.divergence == Decimal("0.00")

    def test_statement_shows_divergence(self, temp_db, ledger, checking):
        temp_db.set_cached_balance(checking.holder, Decimal("1234.00"))

        statement = ledger.statement(checking.holder)

        assert statement.divergence == Decimal("234.00")


class TestHolderBaseline:
    def test_bank_account_starts_at_initial_balance(self, checking):
        assert holder_baseline(checking) == Decimal("1000.00")

    def test_box_baseline_policies(self, account_service, checking):
        box_id = account_service.create_box("Seeded", checking.id, initial_value=Decimal("50.00"))
        box = account_service.get_box(box_id)

        assert holder_baseline(box, BoxBaseline.ZERO) == Decimal("0.00")
        assert holder_baseline(box, BoxBaseline.SEEDED) == Decimal("50.00")
