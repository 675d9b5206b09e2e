"""Tests for the template service."""

from datetime import date
from decimal import Decimal

import pytest

from famledger.domain.entities import InstanceStatus, RecurrenceKind
from famledger.domain.errors import DependencyError, NotFoundError, ValidationError


def create_monthly(template_service, account, bank_account, **kwargs):
    fields = dict(
        account_id=account.id,
        expected_amount=Decimal("120.00"),
        recurrence="monthly",
        start_date=date(2025, 1, 1),
        bank_account_id=bank_account.id,
    )
    fields.update(kwargs)
    return template_service.create(**fields)


class TestCreate:
    def test_create_parses_recurrence(self, template_service, electricity, checking):
        template_id = create_monthly(template_service, electricity, checking, recurrence="installment(4)")

        template = template_service.get(template_id)
        assert template.recurrence.kind == RecurrenceKind.INSTALLMENT
        assert template.recurrence.installments == 4
        assert template.current_installment == 1

    def test_requires_classification(self, template_service, checking):
        with pytest.raises(ValidationError, match="classification account"):
            template_service.create(
                account_id=None,
                expected_amount=Decimal("10.00"),
                recurrence="monthly",
                start_date=date(2025, 1, 1),
            )

    def test_unknown_recurrence(self, template_service, electricity, checking):
        with pytest.raises(ValidationError, match="Unknown recurrence"):
            create_monthly(template_service, electricity, checking, recurrence="fortnightly")

    def test_end_before_start(self, template_service, electricity, checking):
        with pytest.raises(ValidationError):
            create_monthly(template_service, electricity, checking, end_date=date(2024, 12, 1))

    def test_card_and_account_conflict(self, template_service, electricity, checking, visa):
        with pytest.raises(ValidationError):
            create_monthly(template_service, electricity, checking, card_id=visa.id)

    def test_unknown_classification(self, template_service, checking):
        with pytest.raises(NotFoundError):
            template_service.create(
                account_id=99,
                expected_amount=Decimal("10.00"),
                recurrence="monthly",
                start_date=date(2025, 1, 1),
            )

    def test_template_without_payment_source(self, template_service, electricity):
        template_id = template_service.create(
            account_id=electricity.id,
            expected_amount=Decimal("10.00"),
            recurrence="unique",
            start_date=date(2025, 1, 1),
        )

        assert template_service.get(template_id).payment_method.value == "undefined"


class TestExcludeMonth:
    def test_exclusion_is_idempotent(self, template_service, electricity, checking):
        template_id = create_monthly(template_service, electricity, checking)

        template_service.exclude_month(template_id, 3, 2025)
        template_service.exclude_month(template_id, 3, 2025)

        assert template_service.get(template_id).excluded_months == frozenset({(3, 2025)})

    def test_invalid_month(self, template_service, electricity, checking):
        template_id = create_monthly(template_service, electricity, checking)

        with pytest.raises(ValidationError):
            template_service.exclude_month(template_id, 13, 2025)


class TestDelete:
    def test_delete_detaches_by_default(self, temp_db, template_service, expander, electricity, checking):
        template_id = create_monthly(template_service, electricity, checking)
        instance = expander.materialize(template_service.get(template_id), 1, 2025)

        assert template_service.delete(template_id) == 1

        with pytest.raises(NotFoundError):
            template_service.get(template_id)
        assert temp_db.get_instance(instance.id).template_id is None

    def test_delete_refuses_with_instances(self, template_service, expander, electricity, checking):
        template_id = create_monthly(template_service, electricity, checking)
        expander.materialize(template_service.get(template_id), 1, 2025)

        with pytest.raises(DependencyError, match="1 transaction\\."):
            template_service.delete(template_id, detach=False)

    def test_cascade_undoes_postings(
        self, temp_db, template_service, expander, instance_service, electricity, checking
    ):
        template_id = create_monthly(template_service, electricity, checking)
        template = template_service.get(template_id)
        january = expander.materialize(template, 1, 2025)
        expander.materialize(template, 2, 2025)
        instance_service.confirm(january.id, Decimal("125.00"))
        assert instance_service.get(january.id).status == InstanceStatus.CONFIRMED

        assert template_service.delete(template_id, cascade=True) == 2

        assert temp_db.list_instances() == []
        assert temp_db.get_cached_balance(checking.holder) == Decimal("1000.00")
