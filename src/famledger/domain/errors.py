"""Shared domain error messages and error types."""

from famledger.domain.entities import HolderRef


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or illegal state transitions."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


def bank_account_not_found(account_id: int) -> str:
    """Return message for missing bank account."""
    return f"Bank account {account_id} not found"


def box_not_found(box_id: int) -> str:
    """Return message for missing box."""
    return f"Box {box_id} not found"


def holder_not_found(holder: HolderRef) -> str:
    """Return message for a missing balance holder."""
    if holder.is_box:
        return box_not_found(holder.id)
    return bank_account_not_found(holder.id)


def card_not_found(card_id: int) -> str:
    """Return message for missing card."""
    return f"Card {card_id} not found"


def account_not_found(account_id: int) -> str:
    """Return message for missing classification account."""
    return f"Classification account {account_id} not found"


def template_not_found(template_id: int) -> str:
    """Return message for missing provisioned template."""
    return f"Template {template_id} not found"


def instance_not_found(instance_id: int) -> str:
    """Return message for missing transaction instance."""
    return f"Transaction {instance_id} not found"


def invoice_not_found(invoice_id: int) -> str:
    """Return message for missing card invoice."""
    return f"Invoice {invoice_id} not found"


def transfer_not_found(transfer_id: int) -> str:
    """Return message for missing transfer."""
    return f"Transfer {transfer_id} not found"


def duplicate_name(entity: str, name: str) -> str:
    """Return message for a name uniqueness violation."""
    return f"{entity} with name '{name}' already exists"


def invalid_month(month: int) -> str:
    """Return message for a month outside 1-12."""
    return f"Month must be between 1 and 12, got {month}"


def invalid_year(year: int) -> str:
    """Return message for a year that is not four digits."""
    return f"Year must have four digits, got {year}"


def template_requires_account() -> str:
    """Return message when a template has no classification account."""
    return "Template requires a classification account"


def amount_not_positive(what: str) -> str:
    """Return message for an amount that must be greater than zero."""
    return f"{what} must be positive"


def transfer_same_holder() -> str:
    """Return message when source and destination are the same holder."""
    return "Source and destination must differ"


def actual_amount_required(instance_id: int) -> str:
    """Return message when confirming without an actual amount."""
    return f"Transaction {instance_id} cannot be confirmed without an actual amount"


def payment_source_required(instance_id: int) -> str:
    """Return message when an instance has no payment source to post to."""
    return (
        f"Transaction {instance_id} has no payment source. "
        "Choose a bank account, card or box before confirming."
    )


def conflicting_payment_sources() -> str:
    """Return message when more than one payment source is provided."""
    return "Choose either a bank account or a card as payment source, not both"


def transfer_endpoints_required() -> str:
    """Return message when a transfer instance lacks source or destination."""
    return "A transfer needs both a source and a destination"


def invoice_already_paid(invoice_id: int) -> str:
    """Return message when settling an invoice that is already paid."""
    return f"Invoice {invoice_id} is already paid"


def invoice_not_paid(invoice_id: int) -> str:
    """Return message when reopening an invoice that is still open."""
    return f"Invoice {invoice_id} is not paid"


def invoice_payment_confirmed(invoice_id: int, instance_id: int) -> str:
    """Return message when an invoice payment has already left the bank account."""
    return (
        f"Payment {instance_id} of invoice {invoice_id} is already confirmed; "
        "unconfirm it before reopening the invoice"
    )


def template_delete_blocked(template_id: int, instance_count: int) -> str:
    """Return message when a template still has generated transactions."""
    return (
        f"Cannot delete template {template_id}: it has {instance_count} "
        f"transaction{'s' if instance_count != 1 else ''}. "
        "Delete them with the template or detach them first."
    )


def amount_negative(what: str) -> str:
    """Return message for an amount that must not be below zero."""
    return f"{what} must not be negative"
