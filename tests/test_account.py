"""Tests for bank accounts, boxes, cards and classifications."""

from decimal import Decimal

import pytest

from famledger.domain.account import AccountService
from famledger.domain.entities import AccountType, BoxBaseline
from famledger.domain.errors import ConflictError, NotFoundError, ValidationError


def test_create_bank_account(account_service):
    account_id = account_service.create_bank_account(
        name="Checking", bank_name="First Bank", initial_balance=Decimal("250.50")
    )

    account = account_service.get_bank_account(account_id)
    assert account.name == "Checking"
    assert account.bank_name == "First Bank"
    assert account.initial_balance == Decimal("250.50")
    assert account.cached_balance == Decimal("250.50")
    assert account.active


def test_duplicate_bank_account_name(account_service, checking):
    with pytest.raises(ConflictError, match="already exists"):
        account_service.create_bank_account(name="Checking", bank_name="Other")


def test_list_bank_accounts_sorted(account_service):
    account_service.create_bank_account("Zeta", "Z")
    account_service.create_bank_account("Alpha", "A")

    assert [a.name for a in account_service.list_bank_accounts()] == ["Alpha", "Zeta"]


def test_unknown_bank_account(account_service):
    with pytest.raises(NotFoundError, match="Bank account 5 not found"):
        account_service.get_bank_account(5)


class TestBoxes:
    def test_box_starts_empty_with_zero_baseline(self, account_service, checking):
        box_id = account_service.create_box("Vacation", checking.id, initial_value=Decimal("100.00"))

        box = account_service.get_box(box_id)
        assert box.bank_account_id == checking.id
        assert box.initial_value == Decimal("100.00")
        assert box.cached_balance == Decimal("0.00")

    def test_seeded_baseline_funds_box(self, temp_db, checking):
        service = AccountService(temp_db, BoxBaseline.SEEDED)
        box_id = service.create_box("Vacation", checking.id, initial_value=Decimal("100.00"))

        assert service.get_box(box_id).cached_balance == Decimal("100.00")

    def test_box_names_unique_per_account(self, account_service, checking, vacation_box):
        with pytest.raises(ConflictError):
            account_service.create_box("Vacation", checking.id)

        other_id = account_service.create_bank_account("Savings", "Second Bank")
        assert account_service.create_box("Vacation", other_id)

    def test_negative_initial_value(self, account_service, checking):
        with pytest.raises(ValidationError, match="must not be negative"):
            account_service.create_box("Broken", checking.id, initial_value=Decimal("-1.00"))

    def test_box_needs_existing_account(self, account_service):
        with pytest.raises(NotFoundError):
            account_service.create_box("Orphan", 12)

    def test_list_boxes_by_account(self, account_service, checking, vacation_box):
        other_id = account_service.create_bank_account("Savings", "Second Bank")
        account_service.create_box("Car", other_id)

        assert [b.name for b in account_service.list_boxes(bank_account_id=checking.id)] == ["Vacation"]
        assert len(account_service.list_boxes()) == 2


class TestCards:
    def test_create_card_defaults(self, account_service):
        card = account_service.get_card(account_service.create_card("Visa"))

        assert (card.closing_day, card.due_day) == (10, 15)
        assert card.bank_account_id is None

    @pytest.mark.parametrize("closing_day, due_day", [(0, 10), (10, 32)])
    def test_invalid_days(self, account_service, closing_day, due_day):
        with pytest.raises(ValidationError):
            account_service.create_card("Bad", closing_day=closing_day, due_day=due_day)

    def test_duplicate_card(self, account_service, visa):
        with pytest.raises(ConflictError):
            account_service.create_card("Visa")


class TestClassifications:
    def test_create_and_filter(self, account_service, electricity, salary):
        expenses = account_service.list_classifications(type=AccountType.EXPENSE)
        incomes = account_service.list_classifications(type=AccountType.INCOME)

        assert [a.name for a in expenses] == ["Electricity"]
        assert expenses[0].group == "Housing"
        assert [a.name for a in incomes] == ["Salary"]

    def test_duplicate_classification(self, account_service, electricity):
        with pytest.raises(ConflictError):
            account_service.create_classification("Electricity", AccountType.EXPENSE)
