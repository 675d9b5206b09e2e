"""Provisioned template domain service."""

from datetime import date
from decimal import Decimal
from typing import Optional
import logging

from famledger.database.base import Database
from famledger.domain.entities import ProvisionedTemplate, Recurrence, RecurrenceKind
from famledger.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    account_not_found,
    amount_not_positive,
    bank_account_not_found,
    box_not_found,
    card_not_found,
    conflicting_payment_sources,
    template_delete_blocked,
    template_not_found,
    template_requires_account,
)
from famledger.domain.instance import InstanceService
from famledger.utils.amount_parser import to_money
from famledger.utils.date_parser import validate_month

logger = logging.getLogger(__name__)


class TemplateService:
    """Service for registering and removing budget templates."""

    def __init__(self, db: Database, instances: Optional[InstanceService] = None):
        """Initialize template service.

        Args:
            db: Database instance
            instances: Instance service used when deletion cascades
        """
        self.db = db
        self.instances = instances or InstanceService(db)

    def create(
        self,
        account_id: Optional[int],
        expected_amount: Decimal,
        recurrence: Recurrence | str,
        start_date: date,
        end_date: Optional[date] = None,
        bank_account_id: Optional[int] = None,
        card_id: Optional[int] = None,
        box_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create a provisioned template.

        Args:
            account_id: Classification account (required)
            expected_amount: Positive amount each transaction is expected at
            recurrence: Recurrence or its text form ("monthly", "installment(3)", ...)
            start_date: First month, and the day transactions are dated on
            end_date: Optional last month
            bank_account_id: Paying/receiving bank account
            card_id: Paying card (exclusive with bank_account_id)
            box_id: Target box
            notes: Free text copied to each transaction

        Returns:
            Template ID

        Raises:
            ValidationError: If any field is invalid
            NotFoundError: If a referenced entity does not exist
        """
        if account_id is None:
            raise ValidationError(template_requires_account())
        expected_amount = to_money(expected_amount)
        if expected_amount <= 0:
            raise ValidationError(amount_not_positive("Expected amount"))
        if bank_account_id is not None and card_id is not None:
            raise ValidationError(conflicting_payment_sources())
        if not isinstance(recurrence, Recurrence):
            try:
                recurrence = Recurrence.parse(recurrence)
            except ValueError as e:
                raise ValidationError(str(e)) from e
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date must not be before start date")

        if self.db.get_classification_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        if bank_account_id is not None and self.db.get_bank_account(bank_account_id) is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))
        if card_id is not None and self.db.get_card(card_id) is None:
            raise NotFoundError(card_not_found(card_id))
        if box_id is not None and self.db.get_box(box_id) is None:
            raise NotFoundError(box_not_found(box_id))

        template_id = self.db.create_template(
            account_id=account_id,
            expected_amount=expected_amount,
            recurrence=str(recurrence),
            start_date=start_date,
            end_date=end_date,
            bank_account_id=bank_account_id,
            card_id=card_id,
            box_id=box_id,
            current_installment=1 if recurrence.kind == RecurrenceKind.INSTALLMENT else None,
            notes=notes,
        )
        logger.info("Created %s template %d", recurrence, template_id)
        return template_id

    def get(self, template_id: int) -> ProvisionedTemplate:
        """Get template by ID.

        Raises:
            NotFoundError: If the template does not exist
        """
        template = self.db.get_template(template_id)
        if template is None:
            raise NotFoundError(template_not_found(template_id))
        return template

    def list_templates(self) -> list[ProvisionedTemplate]:
        """List active templates."""
        return self.db.list_templates()

    def exclude_month(self, template_id: int, month: int, year: int) -> None:
        """Stop a template from producing a transaction for one month."""
        validate_month(month, year)
        self.get(template_id)
        self.db.add_excluded_month(template_id, month, year)

    def delete(self, template_id: int, cascade: bool = False, detach: bool = True) -> int:
        """Delete a template.

        Args:
            template_id: Template to delete
            cascade: Also delete every transaction it generated, undoing
                their postings
            detach: Without cascade, keep the transactions as ad-hoc ones.
                When False, deletion is refused while transactions exist.

        Returns:
            Number of transactions deleted or detached

        Raises:
            NotFoundError: If the template does not exist
            DependencyError: If transactions exist and neither cascade nor detach is set
        """
        self.get(template_id)
        instances = self.db.list_instances(template_id=template_id)
        if instances and not cascade and not detach:
            raise DependencyError(template_delete_blocked(template_id, len(instances)))

        with self.db.atomic():
            if cascade:
                for instance in instances:
                    self.instances.delete(instance.id)
            else:
                self.db.detach_template_instances(template_id)
            self.db.delete_template(template_id)

        logger.info(
            "Deleted template %d (%d transaction(s) %s)",
            template_id,
            len(instances),
            "deleted" if cascade else "detached",
        )
        return len(instances)
