"""Template expansion: turning provisioned templates into monthly transactions."""

from typing import Optional
import logging

from famledger.database.base import Database
from famledger.domain.entities import (
    AccountType,
    ExpansionResult,
    InstanceKind,
    InstanceStatus,
    ProvisionedTemplate,
    RecurrenceKind,
    TransactionInstance,
)
from famledger.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    template_requires_account,
)
from famledger.domain.invoice import InvoiceService
from famledger.utils.date_parser import add_months, clamp_day, validate_month

logger = logging.getLogger(__name__)


def should_materialize(
    template: ProvisionedTemplate, month: int, year: int, honor_exclusions: bool = True
) -> bool:
    """Decide whether a template yields a transaction for a month.

    Rules, in order: nothing before the start month, nothing after the end
    month, nothing in an excluded month; monthly templates then apply to
    every month, yearly ones to the start month of each year, and unique
    and installment templates only to their start month.
    """
    start = (template.start_date.year, template.start_date.month)
    if (year, month) < start:
        return False
    if template.end_date is not None and (year, month) > (
        template.end_date.year,
        template.end_date.month,
    ):
        return False
    if honor_exclusions and template.is_excluded(month, year):
        return False

    kind = template.recurrence.kind
    if kind == RecurrenceKind.MONTHLY:
        return True
    if kind == RecurrenceKind.YEARLY:
        return month == template.start_date.month
    # Installment templates produce one transaction, like unique ones
    return (year, month) == start


class TemplateExpander:
    """Materializes provisioned templates into transaction instances."""

    def __init__(self, db: Database, invoices: Optional[InvoiceService] = None):
        """Initialize template expander.

        Args:
            db: Database instance
            invoices: Invoice service card transactions are attached through
        """
        self.db = db
        self.invoices = invoices or InvoiceService(db)

    def should_materialize(self, template: ProvisionedTemplate, month: int, year: int) -> bool:
        """Validate month/year and apply the materialization rules."""
        validate_month(month, year)
        return should_materialize(template, month, year)

    def describe(self, template: ProvisionedTemplate) -> tuple[str, InstanceKind]:
        """Description and direction of the transactions a template yields.

        Raises:
            ValidationError: If the template has no classification account
            NotFoundError: If its classification account does not exist
        """
        if template.account_id is None:
            raise ValidationError(template_requires_account())
        account = self.db.get_classification_account(template.account_id)
        if account is None:
            raise NotFoundError(account_not_found(template.account_id))

        description = account.name
        if template.recurrence.kind == RecurrenceKind.INSTALLMENT:
            description += f" ({template.current_installment or 1}/{template.recurrence.installments})"
        kind = InstanceKind.INCOME if account.type == AccountType.INCOME else InstanceKind.EXPENSE
        return description, kind

    def materialize(self, template: ProvisionedTemplate, month: int, year: int) -> TransactionInstance:
        """Create the pending transaction of a template for a month.

        Idempotent: when the template already has a transaction for the
        month, that transaction is returned and nothing is written.

        Raises:
            ValidationError: If month/year are out of range or the template
                has no classification account
            NotFoundError: If the classification account does not exist
        """
        validate_month(month, year)
        existing = self.db.find_instance_for_template(template.id, month, year)
        if existing is not None:
            return existing

        description, kind = self.describe(template)
        with self.db.atomic():
            instance_id = self.db.create_instance(
                month=month,
                year=year,
                date=clamp_day(year, month, template.start_date.day),
                description=description,
                kind=kind,
                expected_amount=template.expected_amount,
                status=InstanceStatus.PENDING,
                payment_method=template.payment_method,
                account_id=template.account_id,
                bank_account_id=template.bank_account_id,
                card_id=template.card_id,
                box_id=template.box_id,
                template_id=template.id,
                notes=template.notes,
            )
            instance = self.db.get_instance(instance_id)
            if instance.card_id is not None:
                self.invoices.attach(instance)
            if template.recurrence.kind == RecurrenceKind.INSTALLMENT:
                current = template.current_installment or 1
                self.db.update_template_installment(
                    template.id, min(current + 1, template.recurrence.installments)
                )

        logger.debug("Materialized template %d for %02d/%d as %d", template.id, month, year, instance_id)
        return self.db.get_instance(instance_id)

    def materialize_month(self, month: int, year: int) -> ExpansionResult:
        """Materialize every active template selected for a month.

        Runs as one unit of work.

        Returns:
            Created and already-existing transactions, plus the templates
            skipped only because the month is excluded
        """
        validate_month(month, year)
        created: list[TransactionInstance] = []
        existing: list[TransactionInstance] = []
        excluded: list[int] = []

        with self.db.atomic():
            for template in self.db.list_templates():
                if not should_materialize(template, month, year):
                    if should_materialize(template, month, year, honor_exclusions=False):
                        excluded.append(template.id)
                    continue
                found = self.db.find_instance_for_template(template.id, month, year)
                if found is not None:
                    existing.append(found)
                    continue
                created.append(self.materialize(template, month, year))

        logger.info(
            "Expanded %02d/%d: %d created, %d existing, %d excluded",
            month,
            year,
            len(created),
            len(existing),
            len(excluded),
        )
        return ExpansionResult(
            month=month,
            year=year,
            created=tuple(created),
            existing=tuple(existing),
            excluded_template_ids=tuple(excluded),
        )

    def materialize_through(self, year: int) -> list[ExpansionResult]:
        """Materialize every month from the earliest template start through December of year.

        Months that already have their transactions are left as they are, so
        running it twice creates nothing the second time. The whole range is
        one unit of work.

        Returns:
            One ExpansionResult per month, oldest first; empty when there are
            no active templates or they all start after the year
        """
        validate_month(12, year)
        templates = self.db.list_templates()
        if not templates:
            return []
        first = min(t.start_date for t in templates)
        month, current_year = first.month, first.year

        results = []
        with self.db.atomic():
            while current_year <= year:
                results.append(self.materialize_month(month, current_year))
                month, current_year = add_months(month, current_year, 1)

        logger.info(
            "Expanded %d month(s) through %d: %d created",
            len(results),
            year,
            sum(len(r.created) for r in results),
        )
        return results
