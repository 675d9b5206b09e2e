"""Balance projection.

Simulates a holder's balance month by month, starting from its cached
balance and adding pending transactions, future confirmed ones and the
template obligations that have not been materialized yet. Card spending
reaches a bank account as one expected invoice line per card and month,
charged to the card's bank account.

The engine only reads; projecting never writes anything.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
import logging

from famledger.database.base import Database
from famledger.domain.entities import (
    AccountType,
    Card,
    CardInvoice,
    HolderRef,
    InstanceKind,
    InvoiceStatus,
    MonthProjection,
    ProjectionLine,
    ProvisionedTemplate,
    Provenance,
    TransactionInstance,
)
from famledger.domain.errors import ValidationError, amount_not_positive
from famledger.domain.expander import should_materialize
from famledger.domain.ledger import LedgerService
from famledger.utils.amount_parser import ZERO
from famledger.utils.date_parser import add_months

logger = logging.getLogger(__name__)


def _signed_effects(
    holder: HolderRef,
    is_income: bool,
    amount: Decimal,
    bank_account_id: Optional[int],
    box_id: Optional[int],
    provenance: Provenance,
) -> list[tuple[Decimal, Provenance]]:
    """Signed amounts an income/expense posting applies to holder.

    Mirrors how confirmation posts: a bank account movement, plus a box
    contribution (income) or withdrawal (expense) when a target box is set;
    or a single movement on the box when there is no bank account.
    """
    signed = amount if is_income else -amount
    effects = []
    if bank_account_id is not None:
        if holder == HolderRef.bank_account(bank_account_id):
            effects.append((signed, provenance))
            if box_id is not None:
                # The box leg hands the same amount back
                effects.append(
                    (-signed, Provenance.TRANSFER_OUT if is_income else Provenance.TRANSFER_IN)
                )
        elif box_id is not None and holder == HolderRef.box(box_id):
            effects.append(
                (signed, Provenance.TRANSFER_IN if is_income else Provenance.TRANSFER_OUT)
            )
    elif box_id is not None and holder == HolderRef.box(box_id):
        effects.append((signed, provenance))
    return effects


class ProjectionEngine:
    """Read-only month-by-month balance simulation."""

    def __init__(self, db: Database, ledger: Optional[LedgerService] = None):
        """Initialize projection engine.

        Args:
            db: Database instance
            ledger: Ledger service used to resolve holders
        """
        self.db = db
        self.ledger = ledger or LedgerService(db)

    def _instance_lines(
        self, instance: TransactionInstance, holder: HolderRef, first_month: bool
    ) -> list[ProjectionLine]:
        if instance.kind != InstanceKind.TRANSFER and instance.card_id is not None:
            return []
        # Confirmed this month means already part of the cached balance
        if first_month and instance.is_confirmed:
            return []

        amount = instance.effective_amount
        if instance.kind == InstanceKind.TRANSFER:
            effects = []
            if instance.source == holder:
                effects.append((-amount, Provenance.TRANSFER_OUT))
            if instance.destination == holder:
                effects.append((amount, Provenance.TRANSFER_IN))
        else:
            effects = _signed_effects(
                holder,
                instance.kind == InstanceKind.INCOME,
                amount,
                instance.bank_account_id,
                instance.box_id,
                Provenance.CONFIRMED if instance.is_confirmed else Provenance.PENDING,
            )
        return [
            ProjectionLine(
                label=instance.description,
                amount=signed,
                provenance=provenance,
                instance_id=instance.id,
                template_id=instance.template_id,
            )
            for signed, provenance in effects
        ]

    def _classification(
        self, template: ProvisionedTemplate, names: dict[int, tuple[str, bool]]
    ) -> Optional[tuple[str, bool]]:
        """Name and income flag of a template's classification account, cached in names."""
        if template.account_id not in names:
            account = self.db.get_classification_account(template.account_id)
            if account is None:
                logger.warning("Template %d has no classification account", template.id)
                return None
            names[template.account_id] = (account.name, account.type == AccountType.INCOME)
        return names[template.account_id]

    def _template_lines(
        self, template: ProvisionedTemplate, holder: HolderRef, names: dict[int, tuple[str, bool]]
    ) -> list[ProjectionLine]:
        if template.card_id is not None:
            return []
        classification = self._classification(template, names)
        if classification is None:
            return []
        label, is_income = classification

        effects = _signed_effects(
            holder,
            is_income,
            template.expected_amount,
            template.bank_account_id,
            template.box_id,
            Provenance.TEMPLATE,
        )
        return [
            ProjectionLine(label=label, amount=signed, provenance=provenance, template_id=template.id)
            for signed, provenance in effects
        ]

    def _card_lines(
        self,
        card: Card,
        open_invoices: list[CardInvoice],
        templates: list[ProvisionedTemplate],
        materialized: set[int],
        names: dict[int, tuple[str, bool]],
        month: int,
        year: int,
        first_month: bool,
    ) -> list[ProjectionLine]:
        """Expected invoice of a card for a month, as an expense of its bank account.

        Open invoices count at their current total, overdue ones in the first
        month. Card templates without a transaction yet add their expected
        amount. Paid invoices are left out since their payment is already a
        transaction on the paying account.
        """
        amount = ZERO
        for invoice in open_invoices:
            period = (invoice.year, invoice.month)
            if period == (year, month) or (first_month and period < (year, month)):
                amount += invoice.total_amount

        for template in templates:
            if template.card_id != card.id or template.id in materialized:
                continue
            if not should_materialize(template, month, year):
                continue
            classification = self._classification(template, names)
            if classification is None:
                continue
            _, is_income = classification
            amount += -template.expected_amount if is_income else template.expected_amount

        if amount == ZERO:
            return []
        return [
            ProjectionLine(
                label=f"{card.name} invoice {month:02d}/{year}",
                amount=-amount,
                provenance=Provenance.CARD_INVOICE,
            )
        ]

    def project(
        self, holder: HolderRef, months_ahead: int = 12, today: Optional[date] = None
    ) -> list[MonthProjection]:
        """Project a holder's balance for the current and following months.

        Args:
            holder: Bank account or box to project
            months_ahead: Number of months, the current one included
            today: Reference date (defaults to today)

        Returns:
            One MonthProjection per month, oldest first

        Raises:
            ValidationError: If months_ahead is not positive
            NotFoundError: If the holder does not exist
        """
        if months_ahead < 1:
            raise ValidationError(amount_not_positive("Months ahead"))
        entity = self.ledger.get_holder(holder)
        today = today or date.today()
        templates = self.db.list_templates()
        account_names: dict[int, tuple[str, bool]] = {}
        cards = []
        if not holder.is_box:
            cards = [c for c in self.db.list_cards() if c.bank_account_id == holder.id]
        open_invoices = {
            card.id: self.db.list_invoices(card_id=card.id, status=InvoiceStatus.OPEN) for card in cards
        }

        projections = []
        balance = entity.cached_balance
        for offset in range(months_ahead):
            month, year = add_months(today.month, today.year, offset)
            instances = self.db.list_instances(month=month, year=year)

            lines: list[ProjectionLine] = []
            for instance in instances:
                lines.extend(self._instance_lines(instance, holder, first_month=offset == 0))

            materialized = {i.template_id for i in instances if i.template_id is not None}
            for template in templates:
                if template.id in materialized or not should_materialize(template, month, year):
                    continue
                lines.extend(self._template_lines(template, holder, account_names))
            for card in cards:
                lines.extend(
                    self._card_lines(
                        card,
                        open_invoices[card.id],
                        templates,
                        materialized,
                        account_names,
                        month,
                        year,
                        first_month=offset == 0,
                    )
                )

            income = sum((line.amount for line in lines if line.amount > 0), ZERO)
            expense = sum((-line.amount for line in lines if line.amount < 0), ZERO)
            final = balance + income - expense
            projections.append(
                MonthProjection(
                    month=month,
                    year=year,
                    initial_balance=balance,
                    income=income,
                    expense=expense,
                    final_balance=final,
                    lines=tuple(lines),
                )
            )
            balance = final

        logger.debug("Projected %s for %d month(s)", holder, months_ahead)
        return projections

    def project_all(
        self, months_ahead: int = 12, today: Optional[date] = None
    ) -> dict[HolderRef, list[MonthProjection]]:
        """Project every active bank account and box."""
        holders = [a.holder for a in self.db.list_bank_accounts()]
        holders += [b.holder for b in self.db.list_boxes()]
        return {holder: self.project(holder, months_ahead, today) for holder in holders}
