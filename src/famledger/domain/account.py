"""Account domain service: bank accounts, boxes, cards and classifications."""

from decimal import Decimal
from typing import Optional
import logging

from famledger.database.base import Database
from famledger.domain.entities import (
    Account,
    AccountType,
    BankAccount,
    Box,
    BoxBaseline,
    Card,
)
from famledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    amount_negative,
    bank_account_not_found,
    box_not_found,
    card_not_found,
    duplicate_name,
)
from famledger.utils.amount_parser import ZERO, to_money

logger = logging.getLogger(__name__)


class AccountService:
    """Service for registering the entities money flows through."""

    def __init__(self, db: Database, box_baseline: BoxBaseline = BoxBaseline.ZERO):
        """Initialize account service.

        Args:
            db: Database instance
            box_baseline: Starting balance policy for new boxes
        """
        self.db = db
        self.box_baseline = box_baseline

    # Bank accounts
    def create_bank_account(self, name: str, bank_name: str, initial_balance: Decimal = ZERO) -> int:
        """Create a new bank account.

        Args:
            name: Account name
            bank_name: Bank name
            initial_balance: Balance before any recorded movement

        Returns:
            Bank account ID

        Raises:
            ConflictError: If account name already exists
        """
        if self.db.get_bank_account_by_name(name) is not None:
            raise ConflictError(duplicate_name("Bank account", name))
        account_id = self.db.create_bank_account(
            name=name, bank_name=bank_name, initial_balance=to_money(initial_balance)
        )
        logger.info("Created bank account %d (%s)", account_id, name)
        return account_id

    def get_bank_account(self, account_id: int) -> BankAccount:
        """Get bank account by ID.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self.db.get_bank_account(account_id)
        if account is None:
            raise NotFoundError(bank_account_not_found(account_id))
        return account

    def list_bank_accounts(self, include_inactive: bool = False) -> list[BankAccount]:
        """List bank accounts."""
        return self.db.list_bank_accounts(include_inactive=include_inactive)

    # Boxes
    def create_box(
        self, name: str, bank_account_id: int, initial_value: Optional[Decimal] = None
    ) -> int:
        """Create a box under a bank account.

        The cached balance starts at the box baseline: zero, or initial_value
        when the seeded baseline is configured.

        Args:
            name: Box name, unique within the bank account
            bank_account_id: Owning bank account
            initial_value: Optional seed amount

        Returns:
            Box ID

        Raises:
            NotFoundError: If the bank account does not exist
            ConflictError: If the account already has a box with that name
            ValidationError: If initial_value is negative
        """
        self.get_bank_account(bank_account_id)
        if self.db.get_box_by_name(name, bank_account_id) is not None:
            raise ConflictError(duplicate_name("Box", name))
        if initial_value is not None:
            initial_value = to_money(initial_value)
            if initial_value < 0:
                raise ValidationError(amount_negative("Initial value"))

        cached = ZERO
        if self.box_baseline == BoxBaseline.SEEDED and initial_value is not None:
            cached = initial_value
        box_id = self.db.create_box(
            name=name,
            bank_account_id=bank_account_id,
            initial_value=initial_value,
            cached_balance=cached,
        )
        logger.info("Created box %d (%s) under bank account %d", box_id, name, bank_account_id)
        return box_id

    def get_box(self, box_id: int) -> Box:
        """Get box by ID.

        Raises:
            NotFoundError: If the box does not exist
        """
        box = self.db.get_box(box_id)
        if box is None:
            raise NotFoundError(box_not_found(box_id))
        return box

    def list_boxes(self, bank_account_id: Optional[int] = None) -> list[Box]:
        """List boxes, optionally of one bank account."""
        return self.db.list_boxes(bank_account_id=bank_account_id)

    # Cards
    def create_card(
        self,
        name: str,
        bank_account_id: Optional[int] = None,
        closing_day: int = 10,
        due_day: int = 15,
    ) -> int:
        """Create a credit card.

        Raises:
            ConflictError: If card name already exists
            ValidationError: If a day is not between 1 and 31
            NotFoundError: If the bank account does not exist
        """
        if self.db.get_card_by_name(name) is not None:
            raise ConflictError(duplicate_name("Card", name))
        for label, day in (("Closing day", closing_day), ("Due day", due_day)):
            if not 1 <= day <= 31:
                raise ValidationError(f"{label} must be between 1 and 31, got {day}")
        if bank_account_id is not None:
            self.get_bank_account(bank_account_id)
        return self.db.create_card(
            name=name, bank_account_id=bank_account_id, closing_day=closing_day, due_day=due_day
        )

    def get_card(self, card_id: int) -> Card:
        """Get card by ID.

        Raises:
            NotFoundError: If the card does not exist
        """
        card = self.db.get_card(card_id)
        if card is None:
            raise NotFoundError(card_not_found(card_id))
        return card

    def list_cards(self) -> list[Card]:
        """List cards."""
        return self.db.list_cards()

    # Classification accounts
    def create_classification(
        self, name: str, type: AccountType, group: Optional[str] = None
    ) -> int:
        """Create an expense/income classification account.

        Raises:
            ConflictError: If a classification with that name already exists
        """
        if self.db.get_classification_account_by_name(name) is not None:
            raise ConflictError(duplicate_name("Classification", name))
        return self.db.create_classification_account(name=name, type=AccountType(type), group=group)

    def list_classifications(self, type: Optional[AccountType] = None) -> list[Account]:
        """List classification accounts, optionally of one type."""
        return self.db.list_classification_accounts(type=type)
