"""Transfer domain service."""

from datetime import date
from decimal import Decimal
from typing import Optional
import logging

from famledger.database.base import Database
from famledger.domain.entities import (
    HolderKind,
    HolderRef,
    MovementKind,
    Transfer,
    TransferKind,
)
from famledger.domain.errors import (
    NotFoundError,
    ValidationError,
    amount_not_positive,
    box_not_found,
    transfer_not_found,
    transfer_same_holder,
)
from famledger.domain.ledger import LedgerService
from famledger.utils.amount_parser import to_money

logger = logging.getLogger(__name__)


def transfer_kind(source: HolderRef, destination: HolderRef) -> TransferKind:
    """Display kind of a transfer between two holders."""
    if source.kind == HolderKind.BANK_ACCOUNT and destination.is_box:
        return TransferKind.BOX_CONTRIBUTION
    if source.is_box and destination.kind == HolderKind.BANK_ACCOUNT:
        return TransferKind.BOX_WITHDRAWAL
    return TransferKind.TRANSFER


def _leg_kinds(kind: TransferKind) -> tuple[MovementKind, MovementKind]:
    """Movement kinds of the (source, destination) legs."""
    if kind == TransferKind.BOX_CONTRIBUTION:
        return MovementKind.TRANSFER_OUT, MovementKind.BOX_CONTRIBUTION
    if kind == TransferKind.BOX_WITHDRAWAL:
        return MovementKind.BOX_WITHDRAWAL, MovementKind.TRANSFER_IN
    return MovementKind.TRANSFER_OUT, MovementKind.TRANSFER_IN


class TransferService:
    """Service for moving money between two holders."""

    def __init__(self, db: Database, ledger: Optional[LedgerService] = None):
        """Initialize transfer service.

        Args:
            db: Database instance
            ledger: Ledger service used to post both legs
        """
        self.db = db
        self.ledger = ledger or LedgerService(db)

    def transfer(
        self,
        source: HolderRef,
        destination: HolderRef,
        amount: Decimal,
        effective_date: date,
        description: str = "",
        instance_id: Optional[int] = None,
    ) -> Transfer:
        """Move amount from source to destination.

        Both legs are appended in one unit of work: if either fails, neither
        movement nor the transfer record is kept.

        Args:
            source: Holder the money leaves
            destination: Holder the money arrives at
            amount: Positive amount
            effective_date: Date of both movements
            description: Free text; a default is derived from the holders
            instance_id: Transaction instance this transfer settles, if any

        Returns:
            The created transfer

        Raises:
            ValidationError: If amount is not positive or both holders are the same
            NotFoundError: If either holder does not exist
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationError(amount_not_positive("Transfer amount"))
        if source == destination:
            raise ValidationError(transfer_same_holder())

        source_entity = self.ledger.get_holder(source)
        destination_entity = self.ledger.get_holder(destination)

        kind = transfer_kind(source, destination)
        source_kind, destination_kind = _leg_kinds(kind)
        if not description:
            description = f"{source_entity.name} → {destination_entity.name}"

        with self.db.atomic():
            transfer_id = self.db.create_transfer(
                source=source,
                destination=destination,
                amount=amount,
                kind=kind,
                description=description,
                effective_date=effective_date,
                instance_id=instance_id,
            )
            self.ledger.append(
                holder=source,
                amount=-amount,
                kind=source_kind,
                description=description,
                effective_date=effective_date,
                transfer_id=transfer_id,
            )
            self.ledger.append(
                holder=destination,
                amount=amount,
                kind=destination_kind,
                description=description,
                effective_date=effective_date,
                transfer_id=transfer_id,
            )

        logger.info("Transfer %d: %s %s → %s", transfer_id, amount, source, destination)
        return self.db.get_transfer(transfer_id)

    def contribute(
        self, box_id: int, amount: Decimal, effective_date: date, description: str = ""
    ) -> Transfer:
        """Move money from a box's owning bank account into the box."""
        box = self.db.get_box(box_id)
        if box is None:
            raise NotFoundError(box_not_found(box_id))
        return self.transfer(
            HolderRef.bank_account(box.bank_account_id),
            box.holder,
            amount,
            effective_date,
            description or f"Contribution to {box.name}",
        )

    def withdraw(
        self, box_id: int, amount: Decimal, effective_date: date, description: str = ""
    ) -> Transfer:
        """Move money from a box back to its owning bank account."""
        box = self.db.get_box(box_id)
        if box is None:
            raise NotFoundError(box_not_found(box_id))
        return self.transfer(
            box.holder,
            HolderRef.bank_account(box.bank_account_id),
            amount,
            effective_date,
            description or f"Withdrawal from {box.name}",
        )

    def get_transfer(self, transfer_id: int) -> Transfer:
        """Get transfer by ID.

        Raises:
            NotFoundError: If the transfer does not exist
        """
        transfer = self.db.get_transfer(transfer_id)
        if transfer is None:
            raise NotFoundError(transfer_not_found(transfer_id))
        return transfer

    def list_transfers(self, holder: Optional[HolderRef] = None) -> list[Transfer]:
        """List transfers, optionally those touching one holder."""
        return self.db.list_transfers(holder)

    def reverse(self, transfer: Transfer) -> None:
        """Delete a transfer and both legs, restoring both cached balances."""
        with self.db.atomic():
            for movement in self.db.list_movements_for_transfer(transfer.id):
                self.ledger.remove(movement)
            self.db.delete_transfer(transfer.id)
        logger.info("Reversed transfer %d", transfer.id)

    def reverse_for_instance(self, instance_id: int) -> int:
        """Reverse every transfer created by confirming an instance.

        Returns:
            Number of transfers reversed
        """
        transfers = self.db.list_transfers_for_instance(instance_id)
        with self.db.atomic():
            for transfer in transfers:
                self.reverse(transfer)
        return len(transfers)
