"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so services only ever see frozen
domain entities.
"""

from decimal import Decimal
from typing import Optional

from famledger.domain import entities as domain
from famledger.database.models import (
    BankAccount as ORMBankAccount,
    Box as ORMBox,
    Card as ORMCard,
    Account as ORMAccount,
    ProvisionedTemplate as ORMTemplate,
    TransactionInstance as ORMInstance,
    CardInvoice as ORMInvoice,
    LedgerMovement as ORMMovement,
    Transfer as ORMTransfer,
)
from famledger.utils.amount_parser import to_money


def _money(value) -> Decimal:
    return to_money(value if value is not None else 0)


def _optional_money(value) -> Optional[Decimal]:
    return None if value is None else to_money(value)


def bank_account_to_domain(orm_account: ORMBankAccount) -> domain.BankAccount:
    """Convert SQLAlchemy BankAccount model to domain BankAccount entity."""
    return domain.BankAccount(
        id=orm_account.id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        initial_balance=_money(orm_account.initial_balance),
        cached_balance=_money(orm_account.cached_balance),
        active=orm_account.active,
        created_at=orm_account.created_at,
    )


def box_to_domain(orm_box: ORMBox) -> domain.Box:
    """Convert SQLAlchemy Box model to domain Box entity."""
    return domain.Box(
        id=orm_box.id,
        name=orm_box.name,
        bank_account_id=orm_box.bank_account_id,
        initial_value=_optional_money(orm_box.initial_value),
        cached_balance=_money(orm_box.cached_balance),
        active=orm_box.active,
        created_at=orm_box.created_at,
    )


def card_to_domain(orm_card: ORMCard) -> domain.Card:
    """Convert SQLAlchemy Card model to domain Card entity."""
    return domain.Card(
        id=orm_card.id,
        name=orm_card.name,
        bank_account_id=orm_card.bank_account_id,
        closing_day=orm_card.closing_day,
        due_day=orm_card.due_day,
        active=orm_card.active,
        created_at=orm_card.created_at,
    )


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain classification Account."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        type=domain.AccountType(orm_account.type),
        group=orm_account.group_name,
        active=orm_account.active,
        created_at=orm_account.created_at,
    )


def template_to_domain(orm_template: ORMTemplate) -> domain.ProvisionedTemplate:
    """Convert SQLAlchemy ProvisionedTemplate model to domain entity."""
    return domain.ProvisionedTemplate(
        id=orm_template.id,
        account_id=orm_template.account_id,
        expected_amount=_money(orm_template.expected_amount),
        recurrence=domain.Recurrence.parse(orm_template.recurrence),
        start_date=orm_template.start_date,
        end_date=orm_template.end_date,
        bank_account_id=orm_template.bank_account_id,
        card_id=orm_template.card_id,
        box_id=orm_template.box_id,
        current_installment=orm_template.current_installment,
        notes=orm_template.notes,
        active=orm_template.active,
        created_at=orm_template.created_at,
        excluded_months=frozenset(
            (excluded.month, excluded.year) for excluded in orm_template.excluded_months
        ),
    )


def instance_to_domain(orm_instance: ORMInstance) -> domain.TransactionInstance:
    """Convert SQLAlchemy TransactionInstance model to domain entity."""
    return domain.TransactionInstance(
        id=orm_instance.id,
        month=orm_instance.month,
        year=orm_instance.year,
        date=orm_instance.date,
        description=orm_instance.description,
        kind=domain.InstanceKind(orm_instance.kind),
        expected_amount=_money(orm_instance.expected_amount),
        actual_amount=_optional_money(orm_instance.actual_amount),
        status=domain.InstanceStatus(orm_instance.status),
        payment_method=domain.PaymentMethod(orm_instance.payment_method),
        account_id=orm_instance.account_id,
        bank_account_id=orm_instance.bank_account_id,
        card_id=orm_instance.card_id,
        box_id=orm_instance.box_id,
        destination_account_id=orm_instance.destination_account_id,
        destination_box_id=orm_instance.destination_box_id,
        template_id=orm_instance.template_id,
        invoice_id=orm_instance.invoice_id,
        paid_invoice_id=orm_instance.paid_invoice_id,
        notes=orm_instance.notes,
        created_at=orm_instance.created_at,
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.CardInvoice:
    """Convert SQLAlchemy CardInvoice model to domain entity."""
    return domain.CardInvoice(
        id=orm_invoice.id,
        card_id=orm_invoice.card_id,
        month=orm_invoice.month,
        year=orm_invoice.year,
        total_amount=_money(orm_invoice.total_amount),
        status=domain.InvoiceStatus(orm_invoice.status),
        closing_date=orm_invoice.closing_date,
        due_date=orm_invoice.due_date,
        paid_date=orm_invoice.paid_date,
        paid_amount=_optional_money(orm_invoice.paid_amount),
        paying_account_id=orm_invoice.paying_account_id,
        created_at=orm_invoice.created_at,
    )


def movement_to_domain(orm_movement: ORMMovement) -> domain.LedgerMovement:
    """Convert SQLAlchemy LedgerMovement model to domain entity."""
    if orm_movement.box_id is not None:
        holder = domain.HolderRef.box(orm_movement.box_id)
    else:
        holder = domain.HolderRef.bank_account(orm_movement.bank_account_id)
    return domain.LedgerMovement(
        id=orm_movement.id,
        holder=holder,
        amount=_money(orm_movement.amount),
        kind=domain.MovementKind(orm_movement.kind),
        description=orm_movement.description,
        effective_date=orm_movement.effective_date,
        created_at=orm_movement.created_at,
        instance_id=orm_movement.instance_id,
        transfer_id=orm_movement.transfer_id,
    )


def transfer_to_domain(orm_transfer: ORMTransfer) -> domain.Transfer:
    """Convert SQLAlchemy Transfer model to domain entity."""
    return domain.Transfer(
        id=orm_transfer.id,
        source=domain.HolderRef(domain.HolderKind(orm_transfer.source_kind), orm_transfer.source_id),
        destination=domain.HolderRef(
            domain.HolderKind(orm_transfer.destination_kind), orm_transfer.destination_id
        ),
        amount=_money(orm_transfer.amount),
        kind=domain.TransferKind(orm_transfer.kind),
        description=orm_transfer.description,
        effective_date=orm_transfer.effective_date,
        instance_id=orm_transfer.instance_id,
        created_at=orm_transfer.created_at,
    )
