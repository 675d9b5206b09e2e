"""Card invoice domain service.

An invoice groups a card's transactions for one billing month. Its total
always reflects the best-known amounts: actual for confirmed lines, expected
for pending ones. Settling is a two-step affair: the invoice is marked paid
and a pending payment transaction is scheduled on the paying account; money
only leaves that account once the payment transaction is confirmed.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
import logging

from famledger.database.base import Database
from famledger.domain.entities import (
    CardInvoice,
    InstanceKind,
    InstanceStatus,
    InvoiceStatus,
    PaymentMethod,
    TransactionInstance,
)
from famledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    amount_not_positive,
    bank_account_not_found,
    card_not_found,
    invoice_already_paid,
    invoice_not_paid,
    invoice_not_found,
    invoice_payment_confirmed,
)
from famledger.domain.events import EventBus, InvoiceSettled
from famledger.utils.amount_parser import ZERO, to_money
from famledger.utils.date_parser import clamp_day, validate_month

logger = logging.getLogger(__name__)


class InvoicePaymentScheduler:
    """Creates the pending payment transaction of a settled invoice."""

    def __init__(self, db: Database):
        self.db = db

    def register(self, bus: EventBus) -> None:
        bus.subscribe(InvoiceSettled, self.handle)

    def handle(self, event: InvoiceSettled) -> int:
        """Schedule the payment of a settled invoice on the paying account.

        Returns:
            ID of the pending payment transaction
        """
        instance_id = self.db.create_instance(
            month=event.paid_date.month,
            year=event.paid_date.year,
            date=event.paid_date,
            description=f"Invoice payment {event.month:02d}/{event.year}",
            kind=InstanceKind.EXPENSE,
            expected_amount=event.paid_amount,
            status=InstanceStatus.PENDING,
            payment_method=PaymentMethod.BANK_ACCOUNT,
            bank_account_id=event.paying_account_id,
            paid_invoice_id=event.invoice_id,
            notes="Card invoice payment",
        )
        logger.info(
            "Scheduled payment %d of invoice %d on bank account %d",
            instance_id,
            event.invoice_id,
            event.paying_account_id,
        )
        return instance_id


class InvoiceService:
    """Service for card invoices."""

    def __init__(self, db: Database, bus: Optional[EventBus] = None):
        """Initialize invoice service.

        Args:
            db: Database instance
            bus: Event bus settlements are published on. When omitted, a
                private bus with the payment scheduler subscribed is used.
        """
        self.db = db
        if bus is None:
            bus = EventBus()
            InvoicePaymentScheduler(db).register(bus)
        self.bus = bus

    def get_invoice(self, invoice_id: int) -> CardInvoice:
        """Get invoice by ID.

        Raises:
            NotFoundError: If the invoice does not exist
        """
        invoice = self.db.get_invoice(invoice_id)
        if invoice is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        return invoice

    def list_invoices(
        self, card_id: Optional[int] = None, status: Optional[InvoiceStatus] = None
    ) -> list[CardInvoice]:
        """List invoices, optionally filtered by card and status."""
        return self.db.list_invoices(card_id=card_id, status=status)

    def get_or_create(self, card_id: int, month: int, year: int) -> CardInvoice:
        """Get the invoice of a card for a month, creating it on first use.

        Closing and due dates come from the card's days, clamped to the
        length of the month.

        Raises:
            ValidationError: If month or year are out of range
            NotFoundError: If the card does not exist
        """
        validate_month(month, year)
        invoice = self.db.find_invoice(card_id, month, year)
        if invoice is not None:
            return invoice

        card = self.db.get_card(card_id)
        if card is None:
            raise NotFoundError(card_not_found(card_id))
        invoice_id = self.db.create_invoice(
            card_id=card_id,
            month=month,
            year=year,
            closing_date=clamp_day(year, month, card.closing_day),
            due_date=clamp_day(year, month, card.due_day),
        )
        logger.debug("Opened invoice %d for card %d %02d/%d", invoice_id, card_id, month, year)
        return self.db.get_invoice(invoice_id)

    def attach(self, instance: TransactionInstance) -> Optional[CardInvoice]:
        """Attach a card transaction to its month's invoice and refresh the total.

        Returns:
            The invoice, or None when the transaction is not paid by card
        """
        if instance.card_id is None:
            return None
        with self.db.atomic():
            invoice = self.get_or_create(instance.card_id, instance.month, instance.year)
            if instance.invoice_id != invoice.id:
                self.db.update_instance(instance.id, invoice_id=invoice.id)
            self.recompute_total(invoice.id)
        return self.db.get_invoice(invoice.id)

    def on_transaction_posted(self, instance: TransactionInstance) -> Optional[Decimal]:
        """Refresh the total of the invoice an instance belongs to.

        A dangling invoice reference is ignored.

        Returns:
            The new total, or None when there is no invoice to refresh
        """
        if instance.invoice_id is None:
            return None
        if self.db.get_invoice(instance.invoice_id) is None:
            logger.warning(
                "Transaction %d references missing invoice %d", instance.id, instance.invoice_id
            )
            return None
        return self.recompute_total(instance.invoice_id)

    def recompute_total(self, invoice_id: int) -> Decimal:
        """Set an invoice total to the sum of its transactions' best-known amounts.

        Income lines (refunds, cashback) lower the total.

        Returns:
            The new total
        """
        total = ZERO
        for instance in self.db.list_instances(invoice_id=invoice_id):
            if instance.kind == InstanceKind.INCOME:
                total -= instance.effective_amount
            else:
                total += instance.effective_amount
        self.db.update_invoice(invoice_id, total_amount=total)
        return total

    def settle(
        self,
        invoice_id: int,
        paying_account_id: int,
        paid_date: date,
        paid_amount: Decimal,
    ) -> CardInvoice:
        """Mark an invoice paid and schedule its payment.

        In one unit of work: the invoice becomes paid with total set to the
        paid amount, an InvoiceSettled event is published (the payment
        scheduler turns it into a pending expense on the paying account) and
        every pending transaction of the invoice is confirmed. No ledger
        movement is created.

        Args:
            invoice_id: Invoice to settle
            paying_account_id: Bank account the payment will come from
            paid_date: Payment date
            paid_amount: Amount paid, must be positive

        Returns:
            The settled invoice

        Raises:
            ValidationError: If paid_amount is not positive
            NotFoundError: If the invoice or the paying account does not exist
            ConflictError: If the invoice is already paid
        """
        paid_amount = to_money(paid_amount)
        if paid_amount <= 0:
            raise ValidationError(amount_not_positive("Paid amount"))
        invoice = self.get_invoice(invoice_id)
        if invoice.is_paid:
            raise ConflictError(invoice_already_paid(invoice_id))
        if self.db.get_bank_account(paying_account_id) is None:
            raise NotFoundError(bank_account_not_found(paying_account_id))

        with self.db.atomic():
            self.db.update_invoice(
                invoice_id,
                status=InvoiceStatus.PAID,
                paid_date=paid_date,
                paid_amount=paid_amount,
                paying_account_id=paying_account_id,
                total_amount=paid_amount,
            )
            self.bus.publish(
                InvoiceSettled(
                    invoice_id=invoice.id,
                    card_id=invoice.card_id,
                    month=invoice.month,
                    year=invoice.year,
                    paying_account_id=paying_account_id,
                    paid_date=paid_date,
                    paid_amount=paid_amount,
                )
            )
            confirmed = self.db.confirm_pending_invoice_instances(invoice_id)

        logger.info("Settled invoice %d for %s (%d transaction(s) confirmed)", invoice_id, paid_amount, confirmed)
        return self.db.get_invoice(invoice_id)

    def reopen(self, invoice_id: int) -> CardInvoice:
        """Undo a settlement: the invoice goes back to open.

        The scheduled payment transaction is deleted, which is only allowed
        while it is still pending. The invoice's transactions stay confirmed
        and the total is recomputed from them.

        Returns:
            The reopened invoice

        Raises:
            NotFoundError: If the invoice does not exist
            ConflictError: If the invoice is not paid or its payment is confirmed
        """
        invoice = self.get_invoice(invoice_id)
        if not invoice.is_paid:
            raise ConflictError(invoice_not_paid(invoice_id))
        payments = self.db.list_instances(paid_invoice_id=invoice_id)
        for payment in payments:
            if payment.status == InstanceStatus.CONFIRMED:
                raise ConflictError(invoice_payment_confirmed(invoice_id, payment.id))

        with self.db.atomic():
            for payment in payments:
                self.db.delete_instance(payment.id)
            self.db.update_invoice(
                invoice_id,
                status=InvoiceStatus.OPEN,
                paid_date=None,
                paid_amount=None,
                paying_account_id=None,
            )
            total = self.recompute_total(invoice_id)

        logger.info("Reopened invoice %d (%d payment(s) removed, total %s)", invoice_id, len(payments), total)
        return self.db.get_invoice(invoice_id)
