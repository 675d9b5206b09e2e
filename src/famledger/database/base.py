"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Any
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from famledger.domain.entities import (
    Account,
    BankAccount,
    Box,
    Card,
    CardInvoice,
    HolderRef,
    LedgerMovement,
    ProvisionedTemplate,
    TransactionInstance,
    Transfer,
)


class Database(ABC):
    """Abstract database interface for famledger.

    Every write commits immediately unless it runs inside ``atomic()``, in
    which case it is flushed and committed (or rolled back) with the
    outermost block.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Open a (possibly nested) unit of work.

        The outermost block commits on success and rolls back every write
        made inside it on any exception.
        """
        pass

    # Bank account operations
    @abstractmethod
    def create_bank_account(self, name: str, bank_name: str, initial_balance: Decimal) -> int:
        """Create a bank account whose cached balance starts at initial_balance."""
        pass

    @abstractmethod
    def get_bank_account(self, account_id: int) -> Optional[BankAccount]:
        """Get bank account by ID."""
        pass

    @abstractmethod
    def get_bank_account_by_name(self, name: str) -> Optional[BankAccount]:
        """Get bank account by name."""
        pass

    @abstractmethod
    def list_bank_accounts(self, include_inactive: bool = False) -> list[BankAccount]:
        """List bank accounts ordered by name."""
        pass

    # Box operations
    @abstractmethod
    def create_box(
        self,
        name: str,
        bank_account_id: int,
        initial_value: Optional[Decimal],
        cached_balance: Decimal,
    ) -> int:
        """Create a box under a bank account. Returns box ID."""
        pass

    @abstractmethod
    def get_box(self, box_id: int) -> Optional[Box]:
        """Get box by ID."""
        pass

    @abstractmethod
    def get_box_by_name(self, name: str, bank_account_id: Optional[int] = None) -> Optional[Box]:
        """Get box by name, optionally scoped to one bank account."""
        pass

    @abstractmethod
    def list_boxes(
        self, bank_account_id: Optional[int] = None, include_inactive: bool = False
    ) -> list[Box]:
        """List boxes, optionally filtered by owning bank account."""
        pass

    # Card operations
    @abstractmethod
    def create_card(
        self, name: str, bank_account_id: Optional[int], closing_day: int, due_day: int
    ) -> int:
        """Create a credit card. Returns card ID."""
        pass

    @abstractmethod
    def get_card(self, card_id: int) -> Optional[Card]:
        """Get card by ID."""
        pass

    @abstractmethod
    def get_card_by_name(self, name: str) -> Optional[Card]:
        """Get card by name."""
        pass

    @abstractmethod
    def list_cards(self) -> list[Card]:
        """List cards ordered by name."""
        pass

    # Classification account operations
    @abstractmethod
    def create_classification_account(self, name: str, type: str, group: Optional[str]) -> int:
        """Create an expense/income classification account."""
        pass

    @abstractmethod
    def get_classification_account(self, account_id: int) -> Optional[Account]:
        """Get classification account by ID."""
        pass

    @abstractmethod
    def get_classification_account_by_name(self, name: str) -> Optional[Account]:
        """Get classification account by name."""
        pass

    @abstractmethod
    def list_classification_accounts(self, type: Optional[str] = None) -> list[Account]:
        """List classification accounts, optionally filtered by type."""
        pass

    # Holder balance operations
    @abstractmethod
    def get_cached_balance(self, holder: HolderRef, for_update: bool = False) -> Optional[Decimal]:
        """Get a holder's cached balance, or None if the holder does not exist.

        With for_update=True the holder row is locked until the unit of work ends.
        """
        pass

    @abstractmethod
    def set_cached_balance(self, holder: HolderRef, balance: Decimal) -> None:
        """Overwrite a holder's cached balance."""
        pass

    @abstractmethod
    def adjust_cached_balance(self, holder: HolderRef, delta: Decimal) -> Decimal:
        """Add delta to a holder's cached balance under a row lock. Returns new balance."""
        pass

    # Template operations
    @abstractmethod
    def create_template(
        self,
        account_id: int,
        expected_amount: Decimal,
        recurrence: str,
        start_date: date,
        end_date: Optional[date] = None,
        bank_account_id: Optional[int] = None,
        card_id: Optional[int] = None,
        box_id: Optional[int] = None,
        current_installment: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create a provisioned template. Returns template ID."""
        pass

    @abstractmethod
    def get_template(self, template_id: int) -> Optional[ProvisionedTemplate]:
        """Get template by ID, including its excluded months."""
        pass

    @abstractmethod
    def list_templates(self, include_inactive: bool = False) -> list[ProvisionedTemplate]:
        """List templates ordered by ID."""
        pass

    @abstractmethod
    def update_template_installment(self, template_id: int, current_installment: int) -> None:
        """Set the installment counter of a template."""
        pass

    @abstractmethod
    def add_excluded_month(self, template_id: int, month: int, year: int) -> None:
        """Exclude a month from a template's expansion (idempotent)."""
        pass

    @abstractmethod
    def delete_template(self, template_id: int) -> None:
        """Delete a template and its excluded months."""
        pass

    @abstractmethod
    def detach_template_instances(self, template_id: int) -> int:
        """Clear template_id on a template's instances. Returns affected count."""
        pass

    # Transaction instance operations
    @abstractmethod
    def create_instance(
        self,
        month: int,
        year: int,
        date: date,
        description: str,
        kind: str,
        expected_amount: Decimal,
        status: str,
        payment_method: str,
        actual_amount: Optional[Decimal] = None,
        account_id: Optional[int] = None,
        bank_account_id: Optional[int] = None,
        card_id: Optional[int] = None,
        box_id: Optional[int] = None,
        destination_account_id: Optional[int] = None,
        destination_box_id: Optional[int] = None,
        template_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        paid_invoice_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create a transaction instance. Returns instance ID."""
        pass

    @abstractmethod
    def get_instance(self, instance_id: int) -> Optional[TransactionInstance]:
        """Get transaction instance by ID."""
        pass

    @abstractmethod
    def find_instance_for_template(
        self, template_id: int, month: int, year: int
    ) -> Optional[TransactionInstance]:
        """Get the instance a template produced for a month, if any."""
        pass

    @abstractmethod
    def list_instances(
        self,
        month: Optional[int] = None,
        year: Optional[int] = None,
        status: Optional[str] = None,
        bank_account_id: Optional[int] = None,
        box_id: Optional[int] = None,
        card_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        template_id: Optional[int] = None,
        paid_invoice_id: Optional[int] = None,
    ) -> list[TransactionInstance]:
        """List instances with optional filters, ordered by date then ID."""
        pass

    @abstractmethod
    def update_instance(self, instance_id: int, **changes: Any) -> None:
        """Update mutable fields of an instance.

        Raises:
            ValueError: If the instance does not exist or a field is not updatable
        """
        pass

    @abstractmethod
    def delete_instance(self, instance_id: int) -> None:
        """Delete an instance row."""
        pass

    # Card invoice operations
    @abstractmethod
    def create_invoice(
        self,
        card_id: int,
        month: int,
        year: int,
        closing_date: Optional[date],
        due_date: Optional[date],
    ) -> int:
        """Create an open invoice with a zero total. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[CardInvoice]:
        """Get invoice by ID."""
        pass

    @abstractmethod
    def find_invoice(self, card_id: int, month: int, year: int) -> Optional[CardInvoice]:
        """Get the invoice of a card for a billing month, if any."""
        pass

    @abstractmethod
    def list_invoices(
        self, card_id: Optional[int] = None, status: Optional[str] = None
    ) -> list[CardInvoice]:
        """List invoices ordered by billing month."""
        pass

    @abstractmethod
    def update_invoice(self, invoice_id: int, **changes: Any) -> None:
        """Update mutable fields of an invoice."""
        pass

    @abstractmethod
    def confirm_pending_invoice_instances(self, invoice_id: int) -> int:
        """Mark every pending instance of an invoice confirmed.

        Instances without an actual amount take their expected amount.
        Returns the number of instances confirmed.
        """
        pass

    # Ledger movement operations
    @abstractmethod
    def create_movement(
        self,
        holder: HolderRef,
        amount: Decimal,
        kind: str,
        description: str,
        effective_date: date,
        instance_id: Optional[int] = None,
        transfer_id: Optional[int] = None,
    ) -> int:
        """Insert a ledger movement row. Returns movement ID.

        Does not touch the holder's cached balance.
        """
        pass

    @abstractmethod
    def get_movement(self, movement_id: int) -> Optional[LedgerMovement]:
        """Get ledger movement by ID."""
        pass

    @abstractmethod
    def list_movements(self, holder: HolderRef, ascending: bool = False) -> list[LedgerMovement]:
        """List a holder's movements.

        Descending order is effective date, then creation time, newest first.
        """
        pass

    @abstractmethod
    def list_movements_for_instance(self, instance_id: int) -> list[LedgerMovement]:
        """List movements posted directly by an instance."""
        pass

    @abstractmethod
    def list_movements_for_transfer(self, transfer_id: int) -> list[LedgerMovement]:
        """List the movement pair of a transfer."""
        pass

    @abstractmethod
    def delete_movement(self, movement_id: int) -> None:
        """Delete a ledger movement row."""
        pass

    # Transfer operations
    @abstractmethod
    def create_transfer(
        self,
        source: HolderRef,
        destination: HolderRef,
        amount: Decimal,
        kind: str,
        description: str,
        effective_date: date,
        instance_id: Optional[int] = None,
    ) -> int:
        """Create a transfer record. Returns transfer ID."""
        pass

    @abstractmethod
    def get_transfer(self, transfer_id: int) -> Optional[Transfer]:
        """Get transfer by ID."""
        pass

    @abstractmethod
    def list_transfers(self, holder: Optional[HolderRef] = None) -> list[Transfer]:
        """List transfers, optionally those touching one holder."""
        pass

    @abstractmethod
    def list_transfers_for_instance(self, instance_id: int) -> list[Transfer]:
        """List transfers created when confirming an instance."""
        pass

    @abstractmethod
    def delete_transfer(self, transfer_id: int) -> None:
        """Delete a transfer and its movements."""
        pass

    # Bulk operations
    @abstractmethod
    def purge_activity(self) -> dict[str, int]:
        """Delete all movements, transfers, instances, invoices and excluded months.

        Installment templates are rewound to their first installment. Returns
        the number of deleted rows per table.
        """
        pass
