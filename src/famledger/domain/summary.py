"""Monthly summary domain service."""

from typing import Optional
import logging

from famledger.database.base import Database
from famledger.domain.entities import (
    Account,
    AccountType,
    InstanceKind,
    SummaryGroupBy,
    SummaryReport,
    SummaryRow,
)
from famledger.utils.amount_parser import ZERO
from famledger.utils.date_parser import validate_month

logger = logging.getLogger(__name__)

UNGROUPED = "Ungrouped"
UNCLASSIFIED = "Unclassified"


class SummaryService:
    """Service for expected vs actual summaries."""

    def __init__(self, db: Database):
        """Initialize summary service.

        Args:
            db: Database instance
        """
        self.db = db

    def _row_key(
        self, account: Optional[Account], kind: InstanceKind, group_by: SummaryGroupBy
    ) -> tuple[str, AccountType]:
        if account is None:
            # Classification account deleted since
            fallback = AccountType.INCOME if kind == InstanceKind.INCOME else AccountType.EXPENSE
            return UNCLASSIFIED, fallback
        if group_by == SummaryGroupBy.GROUP:
            return account.group or UNGROUPED, account.type
        return account.name, account.type

    def monthly_summary(
        self, year: int, group_by: SummaryGroupBy = SummaryGroupBy.ACCOUNT
    ) -> SummaryReport:
        """Sum expected and actual amounts per classification and month.

        Transactions without a classification account (transfers, invoice
        payments) are left out. Income and expense of the same group are
        kept in separate rows.

        Args:
            year: Calendar year to summarize
            group_by: Key rows by classification account name or by its group

        Returns:
            SummaryReport with rows ordered by key, type and month

        Raises:
            ValidationError: If year is not four digits
        """
        validate_month(1, year)
        accounts: dict[int, Optional[Account]] = {}
        totals: dict[tuple[str, AccountType, int], list] = {}

        for instance in self.db.list_instances(year=year):
            if instance.kind == InstanceKind.TRANSFER or instance.account_id is None:
                continue
            if instance.account_id not in accounts:
                accounts[instance.account_id] = self.db.get_classification_account(
                    instance.account_id
                )
            key, account_type = self._row_key(accounts[instance.account_id], instance.kind, group_by)

            entry = totals.setdefault((key, account_type, instance.month), [ZERO, ZERO, 0])
            entry[0] += instance.expected_amount
            if instance.actual_amount is not None:
                entry[1] += instance.actual_amount
            entry[2] += 1

        rows = tuple(
            SummaryRow(
                key=key,
                type=account_type,
                month=month,
                year=year,
                expected_total=expected,
                actual_total=actual,
                count=count,
            )
            for (key, account_type, month), (expected, actual, count) in sorted(
                totals.items(), key=lambda item: (item[0][0], item[0][1].value, item[0][2])
            )
        )
        logger.debug("Summarized %d by %s: %d row(s)", year, group_by.value, len(rows))
        return SummaryReport(year=year, group_by=group_by, rows=rows)
