"""Balance reconciliation.

Cached balances are a materialized view of the ledger. The reconciler
recomputes them from the movement log and repairs any drift it finds.
"""

from decimal import Decimal
from typing import Iterable, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from famledger.database.base import Database
from famledger.domain.entities import (
    BoxBaseline,
    HolderRef,
    LedgerMovement,
    ReconcileReport,
    ReconcileResult,
    Statement,
)
from famledger.domain.ledger import LedgerService, holder_baseline
from famledger.utils.amount_parser import to_money

logger = logging.getLogger(__name__)

TOLERANCE = Decimal("0.01")


def recompute_balance(baseline: Decimal, movements: Iterable[LedgerMovement]) -> Decimal:
    """Replay movements on top of a baseline in date order."""
    balance = to_money(baseline)
    for movement in sorted(movements, key=lambda m: (m.effective_date, m.created_at, m.id)):
        balance += movement.amount
    return balance


class BalanceReconciler:
    """Recomputes cached balances from the ledger and corrects drift."""

    def __init__(
        self,
        db: Database,
        box_baseline: BoxBaseline = BoxBaseline.ZERO,
        ledger: Optional[LedgerService] = None,
    ):
        """Initialize balance reconciler.

        Args:
            db: Database instance
            box_baseline: Starting balance policy for boxes
            ledger: Ledger service used to read movements
        """
        self.db = db
        self.box_baseline = box_baseline
        self.ledger = ledger or LedgerService(db, box_baseline)

    def reconcile(self, holder: HolderRef) -> ReconcileResult:
        """Compare a holder's cached balance with its ledger and fix drift.

        A difference above one cent overwrites the cached balance with the
        recomputed one.

        Raises:
            NotFoundError: If the holder does not exist
        """
        with self.db.atomic():
            entity = self.ledger.get_holder(holder)
            cached = self.db.get_cached_balance(holder, for_update=True)
            recomputed = recompute_balance(
                holder_baseline(entity, self.box_baseline),
                self.ledger.movements_for(holder, ascending=True),
            )
            corrected = abs(cached - recomputed) > TOLERANCE
            if corrected:
                self.db.set_cached_balance(holder, recomputed)

        if corrected:
            logger.warning("Corrected %s (%s): %s -> %s", entity.name, holder, cached, recomputed)
        return ReconcileResult(
            holder=holder,
            holder_name=entity.name,
            previous_cached=cached,
            recomputed=recomputed,
            corrected=corrected,
        )

    def reconcile_all(self) -> ReconcileReport:
        """Reconcile every bank account, then every box.

        Each holder runs in its own unit of work; a failing holder is
        reported and the run continues with the next one.
        """
        holders = [(a.holder, a.name) for a in self.db.list_bank_accounts(include_inactive=True)]
        holders += [(b.holder, b.name) for b in self.db.list_boxes(include_inactive=True)]

        corrections = []
        errors = []
        for holder, name in holders:
            try:
                result = self.reconcile(holder)
            except (ValueError, SQLAlchemyError) as e:
                logger.error("Reconciliation of %s failed: %s", name, e)
                errors.append(f"Error in {name}: {e}")
                continue
            if result.corrected:
                corrections.append(result)

        logger.info(
            "Reconciled %d holder(s): %d correction(s), %d error(s)",
            len(holders),
            len(corrections),
            len(errors),
        )
        return ReconcileReport(corrections=tuple(corrections), errors=tuple(errors))

    def statement(self, holder: HolderRef) -> Statement:
        """Ledger view of a holder with its verification block."""
        return self.ledger.statement(holder)

    def purge(self) -> dict[str, int]:
        """Delete all activity and reset every balance to its baseline.

        Bank accounts go back to their initial balance, boxes to the box
        baseline, and installment templates to their first installment.
        Irreversible.

        Returns:
            Number of deleted rows per table
        """
        with self.db.atomic():
            counts = self.db.purge_activity()
            for account in self.db.list_bank_accounts(include_inactive=True):
                self.db.set_cached_balance(account.holder, account.initial_balance)
            for box in self.db.list_boxes(include_inactive=True):
                self.db.set_cached_balance(box.holder, holder_baseline(box, self.box_baseline))

        logger.warning("Purged all ledger activity: %s", counts)
        return counts
