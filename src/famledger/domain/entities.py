"""Domain model entities for famledger.

These are pure data classes representing business concepts, independent of
database schema. Services receive and return these; the ORM models never
leave the database layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional
import re


class HolderKind(str, Enum):
    """Kinds of entities that carry a balance."""

    BANK_ACCOUNT = "bank_account"
    BOX = "box"


class AccountType(str, Enum):
    """Classification account direction."""

    EXPENSE = "expense"
    INCOME = "income"


class RecurrenceKind(str, Enum):
    """How a provisioned template repeats."""

    UNIQUE = "unique"
    INSTALLMENT = "installment"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class InstanceKind(str, Enum):
    """Direction of a transaction instance."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class InstanceStatus(str, Enum):
    """Transaction instance lifecycle state."""

    PENDING = "pending"
    CONFIRMED = "confirmed"


class PaymentMethod(str, Enum):
    """Where an instance's money comes from or goes to."""

    BANK_ACCOUNT = "bank_account"
    CREDIT_CARD = "credit_card"
    BOX = "box"
    TRANSFER = "transfer"
    UNDEFINED = "undefined"


class MovementKind(str, Enum):
    """Display kind of a ledger movement."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    CARD_INVOICE = "card_invoice"
    BOX_CONTRIBUTION = "box_contribution"
    BOX_WITHDRAWAL = "box_withdrawal"


class TransferKind(str, Enum):
    """Display kind of a transfer between two holders."""

    TRANSFER = "transfer"
    BOX_CONTRIBUTION = "box_contribution"
    BOX_WITHDRAWAL = "box_withdrawal"


class InvoiceStatus(str, Enum):
    """Card invoice state machine: open -> paid."""

    OPEN = "open"
    PAID = "paid"


class Provenance(str, Enum):
    """Origin of a projection breakdown line."""

    CONFIRMED = "confirmed"
    PENDING = "pending"
    TEMPLATE = "template"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    CARD_INVOICE = "card_invoice"


class SummaryGroupBy(str, Enum):
    """Row key of the monthly summary."""

    ACCOUNT = "account"
    GROUP = "group"


class BoxBaseline(str, Enum):
    """Starting balance used for boxes by reconciliation and purge.

    ZERO treats every box as starting empty. SEEDED starts a box at its
    ``initial_value`` (zero when unset).
    """

    ZERO = "zero"
    SEEDED = "seeded"


@dataclass(frozen=True)
class HolderRef:
    """Reference to a balance holder (bank account or box)."""

    kind: HolderKind
    id: int

    @classmethod
    def bank_account(cls, account_id: int) -> "HolderRef":
        return cls(HolderKind.BANK_ACCOUNT, account_id)

    @classmethod
    def box(cls, box_id: int) -> "HolderRef":
        return cls(HolderKind.BOX, box_id)

    @property
    def is_box(self) -> bool:
        return self.kind == HolderKind.BOX

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


_INSTALLMENT_PATTERN = re.compile(r"^(?:installment\((\d+)\)|(\d+)x)$")


@dataclass(frozen=True)
class Recurrence:
    """Recurrence descriptor of a provisioned template.

    Serialized as ``unique``, ``monthly``, ``yearly`` or ``installment(n)``.
    The short form ``<n>x`` is accepted when parsing.
    """

    kind: RecurrenceKind
    installments: Optional[int] = None

    @classmethod
    def parse(cls, text: str) -> "Recurrence":
        """Parse a recurrence string.

        Raises:
            ValueError: If the text is not a known recurrence
        """
        value = text.strip().lower()
        for kind in (RecurrenceKind.UNIQUE, RecurrenceKind.MONTHLY, RecurrenceKind.YEARLY):
            if value == kind.value:
                return cls(kind)

        match = _INSTALLMENT_PATTERN.match(value)
        if match is None:
            raise ValueError(
                f"Unknown recurrence '{text}'. Use unique, monthly, yearly or installment(n)"
            )
        count = int(match.group(1) or match.group(2))
        if count < 1:
            raise ValueError("Installment count must be at least 1")
        return cls(RecurrenceKind.INSTALLMENT, count)

    def __str__(self) -> str:
        if self.kind == RecurrenceKind.INSTALLMENT:
            return f"installment({self.installments})"
        return self.kind.value


@dataclass(frozen=True)
class BankAccount:
    """Bank account domain entity."""

    id: int
    name: str
    bank_name: str
    initial_balance: Decimal
    cached_balance: Decimal
    active: bool
    created_at: datetime

    @property
    def holder(self) -> HolderRef:
        return HolderRef.bank_account(self.id)


@dataclass(frozen=True)
class Box:
    """Envelope sub-account scoped to one bank account."""

    id: int
    name: str
    bank_account_id: int
    initial_value: Optional[Decimal]
    cached_balance: Decimal
    active: bool
    created_at: datetime

    @property
    def holder(self) -> HolderRef:
        return HolderRef.box(self.id)


@dataclass(frozen=True)
class Card:
    """Credit card domain entity."""

    id: int
    name: str
    bank_account_id: Optional[int]
    closing_day: int
    due_day: int
    active: bool
    created_at: datetime


@dataclass(frozen=True)
class Account:
    """Expense/income classification account (e.g. "Electricity")."""

    id: int
    name: str
    type: AccountType
    group: Optional[str]
    active: bool
    created_at: datetime


@dataclass(frozen=True)
class ProvisionedTemplate:
    """Budget template: recurring, installment or unique intent."""

    id: int
    account_id: Optional[int]
    expected_amount: Decimal
    recurrence: Recurrence
    start_date: date
    end_date: Optional[date]
    bank_account_id: Optional[int]
    card_id: Optional[int]
    box_id: Optional[int]
    current_installment: Optional[int]
    notes: Optional[str]
    active: bool
    created_at: datetime
    excluded_months: frozenset[tuple[int, int]] = field(default_factory=frozenset)

    @property
    def payment_method(self) -> PaymentMethod:
        if self.card_id is not None:
            return PaymentMethod.CREDIT_CARD
        if self.bank_account_id is not None:
            return PaymentMethod.BANK_ACCOUNT
        if self.box_id is not None:
            return PaymentMethod.BOX
        return PaymentMethod.UNDEFINED

    def is_excluded(self, month: int, year: int) -> bool:
        return (month, year) in self.excluded_months


@dataclass(frozen=True)
class TransactionInstance:
    """Month-scoped materialization of a template or an ad-hoc entry."""

    id: int
    month: int
    year: int
    date: date
    description: str
    kind: InstanceKind
    expected_amount: Decimal
    actual_amount: Optional[Decimal]
    status: InstanceStatus
    payment_method: PaymentMethod
    account_id: Optional[int]
    bank_account_id: Optional[int]
    card_id: Optional[int]
    box_id: Optional[int]
    destination_account_id: Optional[int]
    destination_box_id: Optional[int]
    template_id: Optional[int]
    invoice_id: Optional[int]
    paid_invoice_id: Optional[int]
    notes: Optional[str]
    created_at: datetime

    @property
    def is_confirmed(self) -> bool:
        return self.status == InstanceStatus.CONFIRMED

    @property
    def effective_amount(self) -> Decimal:
        """Best-known amount: actual once confirmed, expected otherwise."""
        if self.is_confirmed and self.actual_amount is not None:
            return self.actual_amount
        return self.expected_amount

    @property
    def source(self) -> Optional[HolderRef]:
        """Holder money leaves from when this is a transfer."""
        if self.bank_account_id is not None:
            return HolderRef.bank_account(self.bank_account_id)
        if self.box_id is not None:
            return HolderRef.box(self.box_id)
        return None

    @property
    def destination(self) -> Optional[HolderRef]:
        """Holder money arrives at when this is a transfer."""
        if self.destination_account_id is not None:
            return HolderRef.bank_account(self.destination_account_id)
        if self.destination_box_id is not None:
            return HolderRef.box(self.destination_box_id)
        return None


@dataclass(frozen=True)
class CardInvoice:
    """One invoice per card and billing month."""

    id: int
    card_id: int
    month: int
    year: int
    total_amount: Decimal
    status: InvoiceStatus
    closing_date: Optional[date]
    due_date: Optional[date]
    paid_date: Optional[date]
    paid_amount: Optional[Decimal]
    paying_account_id: Optional[int]
    created_at: datetime

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID


@dataclass(frozen=True)
class LedgerMovement:
    """Immutable balance-affecting movement on one holder."""

    id: int
    holder: HolderRef
    amount: Decimal
    kind: MovementKind
    description: str
    effective_date: date
    created_at: datetime
    instance_id: Optional[int]
    transfer_id: Optional[int]


@dataclass(frozen=True)
class Transfer:
    """Pair of movements moving money between two holders."""

    id: int
    source: HolderRef
    destination: HolderRef
    amount: Decimal
    kind: TransferKind
    description: str
    effective_date: date
    instance_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of reconciling one holder."""

    holder: HolderRef
    holder_name: str
    previous_cached: Decimal
    recomputed: Decimal
    corrected: bool

    @property
    def line(self) -> str:
        """Human-readable correction line."""
        return f"{self.holder_name}: {self.previous_cached:.2f} → {self.recomputed:.2f}"


@dataclass(frozen=True)
class ReconcileReport:
    """Aggregated outcome of reconciling every holder."""

    corrections: tuple[ReconcileResult, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def total_corrected(self) -> int:
        return len(self.corrections)

    def lines(self) -> list[str]:
        return [c.line for c in self.corrections] + list(self.errors)


@dataclass(frozen=True)
class Statement:
    """Ledger view of one holder with a balance verification block."""

    holder: HolderRef
    holder_name: str
    movements: tuple[LedgerMovement, ...]
    cached_balance: Decimal
    recomputed: Decimal

    @property
    def divergence(self) -> Decimal:
        return self.cached_balance - self.recomputed


@dataclass(frozen=True)
class ProjectionLine:
    """One contributing entry of a projected month."""

    label: str
    amount: Decimal
    provenance: Provenance
    instance_id: Optional[int] = None
    template_id: Optional[int] = None


@dataclass(frozen=True)
class MonthProjection:
    """Simulated balance of one holder for one month."""

    month: int
    year: int
    initial_balance: Decimal
    income: Decimal
    expense: Decimal
    final_balance: Decimal
    lines: tuple[ProjectionLine, ...] = ()

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class ExpansionResult:
    """Outcome of materializing every template for one month."""

    month: int
    year: int
    created: tuple[TransactionInstance, ...] = ()
    existing: tuple[TransactionInstance, ...] = ()
    excluded_template_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class SummaryRow:
    """Expected and actual totals of one key in one month.

    Actual totals count confirmed amounts only; pending lines add nothing.
    """

    key: str
    type: AccountType
    month: int
    year: int
    expected_total: Decimal
    actual_total: Decimal
    count: int

    @property
    def difference(self) -> Decimal:
        return self.actual_total - self.expected_total


@dataclass(frozen=True)
class SummaryReport:
    """Monthly expected vs actual totals for a year."""

    year: int
    group_by: SummaryGroupBy
    rows: tuple[SummaryRow, ...] = ()

    def rows_for(self, month: int) -> tuple[SummaryRow, ...]:
        return tuple(row for row in self.rows if row.month == month)
