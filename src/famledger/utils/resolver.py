"""Utilities for resolving names or IDs given on the command line."""

from typing import Callable, Optional, TypeVar

from famledger.database.base import Database
from famledger.domain.entities import Account, BankAccount, Box, Card, HolderRef
from famledger.domain.errors import NotFoundError, ValidationError

T = TypeVar("T")

_HOLDER_PREFIXES = {
    "account": "bank_account",
    "bank_account": "bank_account",
    "box": "box",
}


def _resolve(
    value: str | int,
    label: str,
    get_by_id: Callable[[int], Optional[T]],
    get_by_name: Callable[[str], Optional[T]],
) -> T:
    """Resolve a name or ID with the given lookups.

    Values that parse as integers are treated as IDs.

    Raises:
        NotFoundError: If nothing matches
    """
    if isinstance(value, int):
        entity = get_by_id(value)
        if entity is None:
            raise NotFoundError(f"{label} ID {value} not found")
        return entity

    try:
        entity_id = int(value)
    except (ValueError, TypeError):
        # Not a number, treat as name
        entity = get_by_name(value)
        if entity is None:
            raise NotFoundError(f"{label} '{value}' not found")
        return entity

    entity = get_by_id(entity_id)
    if entity is None:
        raise NotFoundError(f"{label} ID {entity_id} not found")
    return entity


def resolve_bank_account(db: Database, account: str | int) -> BankAccount:
    """Resolve bank account name or ID."""
    return _resolve(account, "Bank account", db.get_bank_account, db.get_bank_account_by_name)


def resolve_box(db: Database, box: str | int) -> Box:
    """Resolve box name or ID."""
    return _resolve(box, "Box", db.get_box, db.get_box_by_name)


def resolve_card(db: Database, card: str | int) -> Card:
    """Resolve card name or ID."""
    return _resolve(card, "Card", db.get_card, db.get_card_by_name)


def resolve_classification(db: Database, account: str | int) -> Account:
    """Resolve classification account name or ID."""
    return _resolve(
        account,
        "Classification",
        db.get_classification_account,
        db.get_classification_account_by_name,
    )


def resolve_holder(db: Database, holder: str) -> HolderRef:
    """Resolve a holder written as "account:<name-or-id>" or "box:<name-or-id>".

    A value without prefix is looked up as a bank account.

    Raises:
        ValidationError: If the prefix is unknown
        NotFoundError: If the holder does not exist
    """
    prefix, sep, value = holder.partition(":")
    if not sep:
        return resolve_bank_account(db, holder).holder

    kind = _HOLDER_PREFIXES.get(prefix.strip().lower())
    if kind is None:
        raise ValidationError(
            f"Unknown holder type '{prefix}'. Use account:<name-or-id> or box:<name-or-id>"
        )
    if kind == "box":
        return resolve_box(db, value.strip()).holder
    return resolve_bank_account(db, value.strip()).holder
