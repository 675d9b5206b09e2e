"""Tests for the transaction instance lifecycle."""

from datetime import date
from decimal import Decimal

import pytest

from famledger.domain.entities import (
    HolderRef,
    InstanceKind,
    InstanceStatus,
    MovementKind,
    PaymentMethod,
)
from famledger.domain.errors import NotFoundError, ValidationError


def create_expense(instance_service, amount="200.00", **kwargs):
    defaults = dict(
        description="Rent",
        kind=InstanceKind.EXPENSE,
        expected_amount=Decimal(amount),
        instance_date=date(2025, 1, 5),
    )
    defaults.update(kwargs)
    return instance_service.create(**defaults)


class TestCreate:
    def test_create_is_pending(self, instance_service, checking):
        instance = create_expense(instance_service, bank_account_id=checking.id)

        assert instance.status == InstanceStatus.PENDING
        assert instance.actual_amount is None
        assert (instance.month, instance.year) == (1, 2025)
        assert instance.payment_method == PaymentMethod.BANK_ACCOUNT

    def test_create_with_actual_confirms(self, temp_db, instance_service, checking):
        instance = create_expense(instance_service, bank_account_id=checking.id, actual_amount=Decimal("190.00"))

        assert instance.status == InstanceStatus.CONFIRMED
        assert temp_db.get_cached_balance(checking.holder) == Decimal("810.00")

    def test_expected_amount_must_be_positive(self, instance_service, checking):
        with pytest.raises(ValidationError, match="Expected amount must be positive"):
            create_expense(instance_service, amount="0", bank_account_id=checking.id)

    def test_card_and_bank_account_conflict(self, temp_db, instance_service, checking, visa):
        with pytest.raises(ValidationError):
            create_expense(instance_service, bank_account_id=checking.id, card_id=visa.id)
        assert temp_db.list_instances() == []

    def test_transfer_needs_both_endpoints(self, instance_service, checking):
        with pytest.raises(ValidationError):
            create_expense(instance_service, kind=InstanceKind.TRANSFER, bank_account_id=checking.id)

    def test_transfer_to_itself_rejected(self, temp_db, instance_service, checking):
        with pytest.raises(ValidationError):
            create_expense(
                instance_service,
                kind=InstanceKind.TRANSFER,
                bank_account_id=checking.id,
                destination_account_id=checking.id,
            )
        assert temp_db.list_instances() == []

    def test_unknown_reference(self, instance_service):
        with pytest.raises(NotFoundError, match="Bank account 9 not found"):
            create_expense(instance_service, bank_account_id=9)


class TestConfirm:
    def test_income_and_expense_scenario(self, temp_db, instance_service, reconciler, checking):
        income = create_expense(
            instance_service, amount="500.00", description="Salary",
            kind=InstanceKind.INCOME, bank_account_id=checking.id,
        )
        expense = create_expense(instance_service, bank_account_id=checking.id)

        instance_service.confirm(income.id, Decimal("500.00"))
        instance_service.confirm(expense.id, Decimal("200.00"))

        assert temp_db.get_cached_balance(checking.holder) == Decimal("1300.00")
        result = reconciler.reconcile(checking.holder)
        assert not result.corrected
        assert result.recomputed == Decimal("1300.00")

    def test_confirm_requires_actual_amount(self, instance_service, checking):
        instance = create_expense(instance_service, bank_account_id=checking.id)

        with pytest.raises(ValidationError, match="without an actual amount"):
            instance_service.confirm(instance.id, None)

    def test_confirm_requires_payment_source(self, instance_service):
        instance = create_expense(instance_service)

        with pytest.raises(ValidationError):
            instance_service.confirm(instance.id, Decimal("200.00"))
        assert instance_service.get(instance.id).status == InstanceStatus.PENDING

    def test_zero_amount_posts_nothing(self, temp_db, instance_service, checking):
        instance = create_expense(instance_service, bank_account_id=checking.id)

        confirmed = instance_service.confirm(instance.id, Decimal("0"))

        assert confirmed.status == InstanceStatus.CONFIRMED
        assert temp_db.list_movements(checking.holder) == []

    def test_reconfirm_replaces_previous_posting(self, temp_db, instance_service, checking):
        instance = create_expense(instance_service, bank_account_id=checking.id)

        instance_service.confirm(instance.id, Decimal("200.00"))
        instance_service.confirm(instance.id, Decimal("150.00"))

        assert temp_db.get_cached_balance(checking.holder) == Decimal("850.00")

    def test_expense_with_box_withdraws_from_box(self, temp_db, instance_service, transfer_service, checking, vacation_box):
        transfer_service.contribute(vacation_box.id, Decimal("500.00"), date(2025, 1, 1))
        instance = create_expense(
            instance_service, description="Flights", bank_account_id=checking.id, box_id=vacation_box.id
        )

        instance_service.confirm(instance.id, Decimal("200.00"))

        # Paid from the account, funded from the box
        assert temp_db.get_cached_balance(vacation_box.holder) == Decimal("300.00")
        assert temp_db.get_cached_balance(checking.holder) == Decimal("500.00")
        assert len(temp_db.list_transfers_for_instance(instance.id)) == 1

    def test_income_with_box_contributes_to_box(self, temp_db, instance_service, checking, vacation_box):
        instance = create_expense(
            instance_service, description="Gift", kind=InstanceKind.INCOME,
            bank_account_id=checking.id, box_id=vacation_box.id,
        )

        instance_service.confirm(instance.id, Decimal("100.00"))

        assert temp_db.get_cached_balance(vacation_box.holder) == Decimal("100.00")
        assert temp_db.get_cached_balance(checking.holder) == Decimal("1000.00")

    def test_box_only_expense(self, temp_db, instance_service, transfer_service, vacation_box):
        transfer_service.contribute(vacation_box.id, Decimal("50.00"), date(2025, 1, 1))
        instance = create_expense(instance_service, description="Souvenir", box_id=vacation_box.id)

        instance_service.confirm(instance.id, Decimal("20.00"))

        movements = temp_db.list_movements(vacation_box.holder)
        assert movements[0].kind == MovementKind.EXPENSE
        assert temp_db.get_cached_balance(vacation_box.holder) == Decimal("30.00")

    def test_transfer_instance(self, temp_db, instance_service, checking, vacation_box):
        instance = create_expense(
            instance_service, description="Savings", kind=InstanceKind.TRANSFER,
            bank_account_id=checking.id, destination_box_id=vacation_box.id,
        )
        assert instance.payment_method == PaymentMethod.TRANSFER

        instance_service.confirm(instance.id, Decimal("250.00"))

        assert temp_db.get_cached_balance(checking.holder) == Decimal("750.00")
        assert temp_db.get_cached_balance(vacation_box.holder) == Decimal("250.00")

    def test_override_to_bank_account(self, temp_db, instance_service, invoice_service, checking, visa):
        instance = create_expense(instance_service, card_id=visa.id)
        invoice_id = instance.invoice_id

        confirmed = instance_service.confirm(instance.id, Decimal("200.00"), bank_account_id=checking.id)

        assert confirmed.card_id is None
        assert confirmed.invoice_id is None
        assert confirmed.payment_method == PaymentMethod.BANK_ACCOUNT
        assert temp_db.get_cached_balance(checking.holder) == Decimal("800.00")
        assert invoice_service.get_invoice(invoice_id).total_amount == Decimal("0.00")


class TestUnconfirm:
    def test_unconfirm_restores_balance(self, temp_db, instance_service, checking):
        instance = create_expense(instance_service, bank_account_id=checking.id)
        instance_service.confirm(instance.id, Decimal("200.00"))

        reverted = instance_service.unconfirm(instance.id)

        assert reverted.status == InstanceStatus.PENDING
        assert reverted.actual_amount is None
        assert temp_db.get_cached_balance(checking.holder) == Decimal("1000.00")
        # The history keeps the original movement and its reversal
        assert len(temp_db.list_movements(checking.holder)) == 2

    def test_unconfirm_reverses_transfers(self, temp_db, instance_service, checking, vacation_box):
        instance = create_expense(
            instance_service, description="Savings", kind=InstanceKind.TRANSFER,
            bank_account_id=checking.id, destination_box_id=vacation_box.id,
        )
        instance_service.confirm(instance.id, Decimal("250.00"))

        instance_service.unconfirm(instance.id)

        assert temp_db.get_cached_balance(checking.holder) == Decimal("1000.00")
        assert temp_db.get_cached_balance(vacation_box.holder) == Decimal("0.00")
        assert temp_db.list_transfers_for_instance(instance.id) == []

    def test_unconfirm_pending_is_noop(self, instance_service, checking):
        instance = create_expense(instance_service, bank_account_id=checking.id)

        assert instance_service.unconfirm(instance.id) == instance

    def test_unconfirm_card_transaction_refreshes_invoice(self, instance_service, invoice_service, visa):
        instance = create_expense(instance_service, card_id=visa.id)
        instance_service.confirm(instance.id, Decimal("180.00"))

        instance_service.unconfirm(instance.id)

        assert invoice_service.get_invoice(instance.invoice_id).total_amount == Decimal("200.00")


class TestDelete:
    def test_delete_removes_postings(self, temp_db, instance_service, checking):
        instance = create_expense(instance_service, bank_account_id=checking.id)
        instance_service.confirm(instance.id, Decimal("200.00"))
        instance_service.unconfirm(instance.id)
        instance_service.confirm(instance.id, Decimal("210.00"))

        instance_service.delete(instance.id)

        assert temp_db.get_cached_balance(checking.holder) == Decimal("1000.00")
        assert temp_db.list_movements(checking.holder) == []
        with pytest.raises(NotFoundError):
            instance_service.get(instance.id)

    def test_delete_excludes_template_month(self, template_service, expander, instance_service, electricity, checking):
        template_id = template_service.create(
            account_id=electricity.id,
            expected_amount=Decimal("120.00"),
            recurrence="monthly",
            start_date=date(2025, 1, 1),
            bank_account_id=checking.id,
        )
        instance = expander.materialize(template_service.get(template_id), 1, 2025)

        instance_service.delete(instance.id)

        assert template_service.get(template_id).is_excluded(1, 2025)
        assert expander.materialize_month(1, 2025).created == ()

    def test_confirm_after_template_removed(
        self, temp_db, template_service, expander, instance_service, electricity, checking
    ):
        template_id = template_service.create(
            account_id=electricity.id,
            expected_amount=Decimal("120.00"),
            recurrence="monthly",
            start_date=date(2025, 1, 1),
            bank_account_id=checking.id,
        )
        instance = expander.materialize(template_service.get(template_id), 1, 2025)
        template_service.delete(template_id)

        confirmed = instance_service.confirm(instance.id, Decimal("120.00"))

        assert confirmed.template_id is None
        assert temp_db.get_cached_balance(HolderRef.bank_account(checking.id)) == Decimal("880.00")


class TestUpdate:
    def test_update_expected_amount_refreshes_invoice(self, instance_service, invoice_service, visa):
        instance = create_expense(instance_service, card_id=visa.id)

        instance_service.update(instance.id, expected_amount=Decimal("230.00"), notes="price went up")

        updated = instance_service.get(instance.id)
        assert updated.expected_amount == Decimal("230.00")
        assert updated.notes == "price went up"
        assert invoice_service.get_invoice(instance.invoice_id).total_amount == Decimal("230.00")
