"""Transaction instance lifecycle: create, confirm, unconfirm, delete."""

from datetime import date
from decimal import Decimal
from typing import Optional, Any
import logging

from famledger.database.base import Database
from famledger.domain.entities import (
    HolderRef,
    InstanceKind,
    InstanceStatus,
    MovementKind,
    PaymentMethod,
    TransactionInstance,
)
from famledger.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    actual_amount_required,
    amount_negative,
    amount_not_positive,
    bank_account_not_found,
    box_not_found,
    card_not_found,
    conflicting_payment_sources,
    instance_not_found,
    payment_source_required,
    transfer_endpoints_required,
    transfer_same_holder,
)
from famledger.domain.invoice import InvoiceService
from famledger.domain.ledger import LedgerService
from famledger.domain.transfer import TransferService
from famledger.utils.amount_parser import to_money
from famledger.utils.date_parser import validate_month

logger = logging.getLogger(__name__)


def payment_method_for(
    kind: InstanceKind,
    bank_account_id: Optional[int],
    card_id: Optional[int],
    box_id: Optional[int],
) -> PaymentMethod:
    """Payment method implied by an instance's kind and references."""
    if kind == InstanceKind.TRANSFER:
        return PaymentMethod.TRANSFER
    if card_id is not None:
        return PaymentMethod.CREDIT_CARD
    if bank_account_id is not None:
        return PaymentMethod.BANK_ACCOUNT
    if box_id is not None:
        return PaymentMethod.BOX
    return PaymentMethod.UNDEFINED


class InstanceService:
    """Service for the lifecycle of transaction instances."""

    def __init__(
        self,
        db: Database,
        ledger: Optional[LedgerService] = None,
        transfers: Optional[TransferService] = None,
        invoices: Optional[InvoiceService] = None,
    ):
        """Initialize instance service.

        Args:
            db: Database instance
            ledger: Ledger service direct postings go through
            transfers: Transfer service for transfer and box postings
            invoices: Invoice service card transactions are attached through
        """
        self.db = db
        self.ledger = ledger or LedgerService(db)
        self.transfers = transfers or TransferService(db, self.ledger)
        self.invoices = invoices or InvoiceService(db)

    def _check_references(
        self,
        account_id: Optional[int] = None,
        bank_account_id: Optional[int] = None,
        card_id: Optional[int] = None,
        box_id: Optional[int] = None,
        destination_account_id: Optional[int] = None,
        destination_box_id: Optional[int] = None,
    ) -> None:
        if account_id is not None and self.db.get_classification_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        for account in (bank_account_id, destination_account_id):
            if account is not None and self.db.get_bank_account(account) is None:
                raise NotFoundError(bank_account_not_found(account))
        if card_id is not None and self.db.get_card(card_id) is None:
            raise NotFoundError(card_not_found(card_id))
        for box in (box_id, destination_box_id):
            if box is not None and self.db.get_box(box) is None:
                raise NotFoundError(box_not_found(box))

    def create(
        self,
        description: str,
        kind: InstanceKind,
        expected_amount: Decimal,
        instance_date: date,
        account_id: Optional[int] = None,
        bank_account_id: Optional[int] = None,
        card_id: Optional[int] = None,
        box_id: Optional[int] = None,
        destination_account_id: Optional[int] = None,
        destination_box_id: Optional[int] = None,
        notes: Optional[str] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        actual_amount: Optional[Decimal] = None,
    ) -> TransactionInstance:
        """Create an ad-hoc transaction.

        The transaction is created pending; when actual_amount is given it is
        confirmed straight away. Card transactions join the invoice of their
        month.

        Args:
            description: Free text
            kind: income, expense or transfer
            expected_amount: Positive expected amount
            instance_date: Date of the transaction
            account_id: Classification account
            bank_account_id: Paying/receiving bank account (transfer source)
            card_id: Paying card
            box_id: Target box (transfer source when no bank account is set)
            destination_account_id: Transfer destination bank account
            destination_box_id: Transfer destination box
            notes: Free text
            month: Billing month, defaults to the date's month
            year: Billing year, defaults to the date's year
            actual_amount: Confirm immediately with this amount

        Returns:
            The created (and possibly confirmed) instance

        Raises:
            ValidationError: If amounts, month or payment sources are invalid
            NotFoundError: If a referenced entity does not exist
        """
        expected_amount = to_money(expected_amount)
        if expected_amount <= 0:
            raise ValidationError(amount_not_positive("Expected amount"))
        month = month or instance_date.month
        year = year or instance_date.year
        validate_month(month, year)
        if bank_account_id is not None and card_id is not None:
            raise ValidationError(conflicting_payment_sources())

        if kind == InstanceKind.TRANSFER:
            if card_id is not None:
                raise ValidationError(conflicting_payment_sources())
            if bank_account_id is not None:
                source = HolderRef.bank_account(bank_account_id)
            else:
                source = HolderRef.box(box_id) if box_id is not None else None
            if destination_account_id is not None:
                destination = HolderRef.bank_account(destination_account_id)
            else:
                destination = (
                    HolderRef.box(destination_box_id) if destination_box_id is not None else None
                )
            if source is None or destination is None:
                raise ValidationError(transfer_endpoints_required())
            if source == destination:
                raise ValidationError(transfer_same_holder())
        self._check_references(
            account_id, bank_account_id, card_id, box_id, destination_account_id, destination_box_id
        )

        with self.db.atomic():
            instance_id = self.db.create_instance(
                month=month,
                year=year,
                date=instance_date,
                description=description,
                kind=kind,
                expected_amount=expected_amount,
                status=InstanceStatus.PENDING,
                payment_method=payment_method_for(kind, bank_account_id, card_id, box_id),
                account_id=account_id,
                bank_account_id=bank_account_id,
                card_id=card_id,
                box_id=box_id,
                destination_account_id=destination_account_id,
                destination_box_id=destination_box_id,
                notes=notes,
            )
            instance = self.db.get_instance(instance_id)
            if card_id is not None:
                self.invoices.attach(instance)
            if actual_amount is not None:
                self.confirm(instance_id, actual_amount)

        return self.db.get_instance(instance_id)

    def get(self, instance_id: int) -> TransactionInstance:
        """Get instance by ID.

        Raises:
            NotFoundError: If the instance does not exist
        """
        instance = self.db.get_instance(instance_id)
        if instance is None:
            raise NotFoundError(instance_not_found(instance_id))
        return instance

    def list_instances(
        self,
        month: Optional[int] = None,
        year: Optional[int] = None,
        status: Optional[InstanceStatus] = None,
        bank_account_id: Optional[int] = None,
        box_id: Optional[int] = None,
        card_id: Optional[int] = None,
    ) -> list[TransactionInstance]:
        """List instances with optional filters."""
        return self.db.list_instances(
            month=month,
            year=year,
            status=status,
            bank_account_id=bank_account_id,
            box_id=box_id,
            card_id=card_id,
        )

    def update(
        self,
        instance_id: int,
        expected_amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TransactionInstance:
        """Edit the expected amount, description or notes of an instance.

        The invoice total is refreshed for card transactions.
        """
        instance = self.get(instance_id)
        changes: dict[str, Any] = {}
        if expected_amount is not None:
            expected_amount = to_money(expected_amount)
            if expected_amount <= 0:
                raise ValidationError(amount_not_positive("Expected amount"))
            changes["expected_amount"] = expected_amount
        if description is not None:
            changes["description"] = description
        if notes is not None:
            changes["notes"] = notes
        if not changes:
            return instance

        with self.db.atomic():
            self.db.update_instance(instance_id, **changes)
            self.invoices.on_transaction_posted(instance)
        return self.get(instance_id)

    def confirm(
        self,
        instance_id: int,
        actual_amount: Optional[Decimal],
        bank_account_id: Optional[int] = None,
        card_id: Optional[int] = None,
    ) -> TransactionInstance:
        """Fix the actual amount of an instance and post it.

        Posting depends on where the money goes: card transactions only
        refresh their invoice; transfers move money between their two
        holders; bank account transactions append one movement, plus a box
        contribution (income) or withdrawal (expense) when a target box is
        set; box-only transactions append one movement on the box. A zero
        amount posts nothing. Confirming an already confirmed instance
        reverses its previous posting first.

        Args:
            instance_id: Instance to confirm
            actual_amount: Amount that really happened
            bank_account_id: Pay from this bank account instead
            card_id: Pay with this card instead

        Returns:
            The confirmed instance

        Raises:
            ValidationError: If the amount or payment source is missing or invalid
            NotFoundError: If the instance or an override does not exist
        """
        instance = self.get(instance_id)
        if actual_amount is None:
            raise ValidationError(actual_amount_required(instance_id))
        actual_amount = to_money(actual_amount)
        if actual_amount < 0:
            raise ValidationError(amount_negative("Actual amount"))
        if bank_account_id is not None and card_id is not None:
            raise ValidationError(conflicting_payment_sources())
        self._check_references(bank_account_id=bank_account_id, card_id=card_id)

        changes: dict[str, Any] = {
            "actual_amount": actual_amount,
            "status": InstanceStatus.CONFIRMED,
        }
        if instance.kind != InstanceKind.TRANSFER:
            if bank_account_id is not None:
                changes.update(
                    bank_account_id=bank_account_id,
                    card_id=None,
                    invoice_id=None,
                    payment_method=PaymentMethod.BANK_ACCOUNT,
                )
            elif card_id is not None:
                changes.update(
                    card_id=card_id,
                    bank_account_id=None,
                    payment_method=PaymentMethod.CREDIT_CARD,
                )
                if card_id != instance.card_id:
                    changes["invoice_id"] = None

        if instance.kind == InstanceKind.TRANSFER:
            if instance.source is None or instance.destination is None:
                raise ValidationError(transfer_endpoints_required())
        else:
            has_source = any(
                changes.get(name, getattr(instance, name)) is not None
                for name in ("bank_account_id", "card_id", "box_id")
            )
            if not has_source:
                raise ValidationError(payment_source_required(instance_id))

        with self.db.atomic():
            if instance.is_confirmed:
                self._unpost(instance)
            self.db.update_instance(instance_id, **changes)
            if "invoice_id" in changes and instance.invoice_id is not None:
                self._refresh_invoice(instance.invoice_id)
            confirmed = self.get(instance_id)
            self._post(confirmed)

        logger.info("Confirmed transaction %d for %s", instance_id, actual_amount)
        return self.get(instance_id)

    def _post(self, instance: TransactionInstance) -> None:
        amount = instance.actual_amount
        if instance.card_id is not None and instance.kind != InstanceKind.TRANSFER:
            self.invoices.attach(instance)
            return
        if amount == 0:
            return

        if instance.kind == InstanceKind.TRANSFER:
            self.transfers.transfer(
                instance.source,
                instance.destination,
                amount,
                instance.date,
                instance.description,
                instance_id=instance.id,
            )
            return

        is_income = instance.kind == InstanceKind.INCOME
        movement_kind = MovementKind.INCOME if is_income else MovementKind.EXPENSE
        signed = amount if is_income else -amount

        if instance.bank_account_id is not None:
            account = HolderRef.bank_account(instance.bank_account_id)
            self.ledger.append(
                account, signed, movement_kind, instance.description, instance.date, instance_id=instance.id
            )
            if instance.box_id is not None:
                box = HolderRef.box(instance.box_id)
                source, destination = (account, box) if is_income else (box, account)
                self.transfers.transfer(
                    source, destination, amount, instance.date, instance.description, instance_id=instance.id
                )
            return

        self.ledger.append(
            HolderRef.box(instance.box_id),
            signed,
            movement_kind,
            instance.description,
            instance.date,
            instance_id=instance.id,
        )

    def _unpost(self, instance: TransactionInstance) -> None:
        """Cancel the ledger effect of a confirmed instance."""
        self.transfers.reverse_for_instance(instance.id)
        self.ledger.compensate_instance(instance.id, instance.date)

    def _refresh_invoice(self, invoice_id: int) -> None:
        if self.db.get_invoice(invoice_id) is not None:
            self.invoices.recompute_total(invoice_id)

    def unconfirm(self, instance_id: int) -> TransactionInstance:
        """Revert a confirmed instance to pending.

        Direct postings get compensating movements, transfers it created are
        reversed, the actual amount is cleared and the invoice total is
        refreshed. A pending instance is returned unchanged.
        """
        instance = self.get(instance_id)
        if not instance.is_confirmed:
            return instance

        with self.db.atomic():
            self._unpost(instance)
            self.db.update_instance(
                instance_id, status=InstanceStatus.PENDING, actual_amount=None
            )
            if instance.invoice_id is not None:
                self._refresh_invoice(instance.invoice_id)

        logger.info("Unconfirmed transaction %d", instance_id)
        return self.get(instance_id)

    def delete(self, instance_id: int) -> None:
        """Delete an instance together with everything it posted.

        Template-backed instances leave their month excluded on the template
        so expansion does not recreate them.
        """
        instance = self.get(instance_id)
        with self.db.atomic():
            self.transfers.reverse_for_instance(instance_id)
            self.ledger.delete_for_instance(instance_id)
            if instance.template_id is not None and self.db.get_template(instance.template_id):
                self.db.add_excluded_month(instance.template_id, instance.month, instance.year)
            self.db.delete_instance(instance_id)
            if instance.invoice_id is not None:
                self._refresh_invoice(instance.invoice_id)

        logger.info("Deleted transaction %d", instance_id)
