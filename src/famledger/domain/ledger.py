"""Ledger domain service.

The ledger is the append-only log of balance-affecting movements. Appending
is the only way money enters or leaves a holder, and every append adjusts
the holder's cached balance in the same unit of work.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
import logging

from famledger.database.base import Database
from famledger.domain.entities import (
    BankAccount,
    Box,
    BoxBaseline,
    HolderRef,
    LedgerMovement,
    MovementKind,
    Statement,
)
from famledger.domain.errors import NotFoundError, holder_not_found
from famledger.utils.amount_parser import ZERO, to_money

logger = logging.getLogger(__name__)

REVERSAL_PREFIX = "[REVERSAL] "


def holder_baseline(entity: BankAccount | Box, box_baseline: BoxBaseline = BoxBaseline.ZERO) -> Decimal:
    """Starting balance a holder's movements are summed on top of.

    Bank accounts start at their initial balance. Boxes start at zero, or at
    their initial value when the seeded baseline is configured.
    """
    if isinstance(entity, BankAccount):
        return entity.initial_balance
    if box_baseline == BoxBaseline.SEEDED and entity.initial_value is not None:
        return entity.initial_value
    return ZERO


class LedgerService:
    """Service for appending to and reading the movement log."""

    def __init__(self, db: Database, box_baseline: BoxBaseline = BoxBaseline.ZERO):
        """Initialize ledger service.

        Args:
            db: Database instance
            box_baseline: Starting balance policy for boxes
        """
        self.db = db
        self.box_baseline = box_baseline

    def get_holder(self, holder: HolderRef) -> BankAccount | Box:
        """Get the bank account or box a reference points to.

        Raises:
            NotFoundError: If the holder does not exist
        """
        if holder.is_box:
            entity = self.db.get_box(holder.id)
        else:
            entity = self.db.get_bank_account(holder.id)
        if entity is None:
            raise NotFoundError(holder_not_found(holder))
        return entity

    def append(
        self,
        holder: HolderRef,
        amount: Decimal,
        kind: MovementKind,
        description: str,
        effective_date: date,
        instance_id: Optional[int] = None,
        transfer_id: Optional[int] = None,
    ) -> LedgerMovement:
        """Append a movement and apply it to the holder's cached balance.

        Args:
            holder: Bank account or box the movement belongs to
            amount: Signed amount (negative leaves the holder)
            kind: Display kind
            description: Free text
            effective_date: Date the movement takes effect
            instance_id: Transaction instance that posted it, if any
            transfer_id: Transfer it is one leg of, if any

        Returns:
            The created movement

        Raises:
            NotFoundError: If the holder does not exist
        """
        amount = to_money(amount)
        with self.db.atomic():
            if self.db.get_cached_balance(holder, for_update=True) is None:
                raise NotFoundError(holder_not_found(holder))
            movement_id = self.db.create_movement(
                holder=holder,
                amount=amount,
                kind=kind,
                description=description,
                effective_date=effective_date,
                instance_id=instance_id,
                transfer_id=transfer_id,
            )
            balance = self.db.adjust_cached_balance(holder, amount)

        logger.debug("Appended %s to %s (balance %s)", amount, holder, balance)
        return self.db.get_movement(movement_id)

    def remove(self, movement: LedgerMovement) -> None:
        """Delete a movement and take its amount back out of the cached balance."""
        with self.db.atomic():
            if self.db.get_cached_balance(movement.holder, for_update=True) is not None:
                self.db.adjust_cached_balance(movement.holder, -movement.amount)
            self.db.delete_movement(movement.id)

    def movements_for(self, holder: HolderRef, ascending: bool = False) -> list[LedgerMovement]:
        """List a holder's movements.

        Display order (default) is newest effective date first, ties broken
        by creation time. ascending=True gives audit replay order.
        """
        return self.db.list_movements(holder, ascending=ascending)

    def sum(self, holder: HolderRef) -> Decimal:
        """Sum of every movement amount of a holder."""
        return sum((m.amount for m in self.db.list_movements(holder, ascending=True)), ZERO)

    def delete_for_instance(self, instance_id: int) -> list[LedgerMovement]:
        """Remove the movements an instance posted directly, restoring balances.

        Transfer legs are left alone; reverse the transfer instead.

        Returns:
            The removed movements
        """
        removed = []
        with self.db.atomic():
            for movement in self.db.list_movements_for_instance(instance_id):
                if movement.transfer_id is not None:
                    continue
                self.remove(movement)
                removed.append(movement)
        return removed

    def compensate_instance(self, instance_id: int, effective_date: date) -> list[LedgerMovement]:
        """Append movements cancelling the net direct postings of an instance.

        One compensating movement is appended per holder whose net is not
        zero; earlier reversals are part of the net, so calling this twice
        in a row appends nothing the second time.

        Returns:
            The compensating movements
        """
        net: dict[HolderRef, Decimal] = {}
        kinds: dict[HolderRef, MovementKind] = {}
        descriptions: dict[HolderRef, str] = {}
        for movement in self.db.list_movements_for_instance(instance_id):
            if movement.transfer_id is not None:
                continue
            net[movement.holder] = net.get(movement.holder, ZERO) + movement.amount
            if not movement.description.startswith(REVERSAL_PREFIX):
                kinds[movement.holder] = movement.kind
                descriptions[movement.holder] = movement.description

        compensations = []
        with self.db.atomic():
            for holder, amount in net.items():
                if amount == ZERO:
                    continue
                compensations.append(
                    self.append(
                        holder=holder,
                        amount=-amount,
                        kind=kinds.get(holder, MovementKind.EXPENSE),
                        description=REVERSAL_PREFIX + descriptions.get(holder, ""),
                        effective_date=effective_date,
                        instance_id=instance_id,
                    )
                )
        return compensations

    def statement(self, holder: HolderRef) -> Statement:
        """Ledger view of a holder with its verification block.

        Raises:
            NotFoundError: If the holder does not exist
        """
        entity = self.get_holder(holder)
        movements = tuple(self.movements_for(holder))
        recomputed = holder_baseline(entity, self.box_baseline) + sum(
            (m.amount for m in movements), ZERO
        )
        return Statement(
            holder=holder,
            holder_name=entity.name,
            movements=movements,
            cached_balance=entity.cached_balance,
            recomputed=recomputed,
        )
