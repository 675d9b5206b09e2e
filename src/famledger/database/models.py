"""SQLAlchemy models for famledger database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(12, 2)


def _now() -> datetime:
    return datetime.now(UTC)


class BankAccount(Base):
    """Bank account model."""

    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    bank_name = Column(String, nullable=False)
    initial_balance = Column(MONEY, default=0, nullable=False)
    cached_balance = Column(MONEY, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    boxes = relationship("Box", back_populates="bank_account", cascade="all, delete")
    movements = relationship(
        "LedgerMovement", back_populates="bank_account", cascade="all, delete"
    )


class Box(Base):
    """Envelope sub-account owned by a bank account."""

    __tablename__ = "boxes"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=False)
    initial_value = Column(MONEY, nullable=True)
    cached_balance = Column(MONEY, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    bank_account = relationship("BankAccount", back_populates="boxes")
    movements = relationship("LedgerMovement", back_populates="box", cascade="all, delete")


class Card(Base):
    """Credit card model."""

    __tablename__ = "cards"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    closing_day = Column(Integer, default=10, nullable=False)
    due_day = Column(Integer, default=15, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    invoices = relationship("CardInvoice", back_populates="card", cascade="all, delete")


class Account(Base):
    """Expense/income classification account model."""

    __tablename__ = "classification_accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    group_name = Column(String, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class ProvisionedTemplate(Base):
    """Budget template model."""

    __tablename__ = "provisioned_templates"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("classification_accounts.id"), nullable=False)
    expected_amount = Column(MONEY, nullable=False)
    recurrence = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    card_id = Column(Integer, ForeignKey("cards.id"), nullable=True)
    box_id = Column(Integer, ForeignKey("boxes.id"), nullable=True)
    current_installment = Column(Integer, nullable=True)
    notes = Column(String, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    account = relationship("Account")
    excluded_months = relationship(
        "ExcludedMonth", back_populates="template", cascade="all, delete"
    )


class ExcludedMonth(Base):
    """Month a template must not be materialized for."""

    __tablename__ = "excluded_months"

    id = Column(Integer, primary_key=True)
    template_id = Column(Integer, ForeignKey("provisioned_templates.id"), nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("template_id", "month", "year", name="uq_excluded_template_month"),
    )

    # Relationships
    template = relationship("ProvisionedTemplate", back_populates="excluded_months")


class TransactionInstance(Base):
    """Month-scoped transaction model."""

    __tablename__ = "transaction_instances"

    id = Column(Integer, primary_key=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    expected_amount = Column(MONEY, nullable=False)
    actual_amount = Column(MONEY, nullable=True)
    status = Column(String, nullable=False)
    payment_method = Column(String, nullable=False)
    account_id = Column(Integer, ForeignKey("classification_accounts.id"), nullable=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    card_id = Column(Integer, ForeignKey("cards.id"), nullable=True)
    box_id = Column(Integer, ForeignKey("boxes.id"), nullable=True)
    destination_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    destination_box_id = Column(Integer, ForeignKey("boxes.id"), nullable=True)
    template_id = Column(Integer, ForeignKey("provisioned_templates.id"), nullable=True)
    invoice_id = Column(Integer, ForeignKey("card_invoices.id"), nullable=True)
    paid_invoice_id = Column(Integer, ForeignKey("card_invoices.id"), nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # One instance per template and month makes materialization idempotent
    __table_args__ = (
        UniqueConstraint("template_id", "month", "year", name="uq_template_month"),
    )


class CardInvoice(Base):
    """Card invoice model."""

    __tablename__ = "card_invoices"

    id = Column(Integer, primary_key=True)
    card_id = Column(Integer, ForeignKey("cards.id"), nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    total_amount = Column(MONEY, default=0, nullable=False)
    status = Column(String, nullable=False)
    closing_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    paid_date = Column(Date, nullable=True)
    paid_amount = Column(MONEY, nullable=True)
    paying_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("card_id", "month", "year", name="uq_card_month"),)

    # Relationships
    card = relationship("Card", back_populates="invoices")


class Transfer(Base):
    """Transfer model pairing two ledger movements."""

    __tablename__ = "transfers"

    id = Column(Integer, primary_key=True)
    source_kind = Column(String, nullable=False)
    source_id = Column(Integer, nullable=False)
    destination_kind = Column(String, nullable=False)
    destination_id = Column(Integer, nullable=False)
    amount = Column(MONEY, nullable=False)
    kind = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    effective_date = Column(Date, nullable=False)
    instance_id = Column(Integer, ForeignKey("transaction_instances.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    movements = relationship("LedgerMovement", back_populates="transfer", cascade="all, delete")


class LedgerMovement(Base):
    """Append-only ledger movement model."""

    __tablename__ = "ledger_movements"

    id = Column(Integer, primary_key=True)
    bank_account_id = Column(Integer, ForeignKey("bank_accounts.id"), nullable=True)
    box_id = Column(Integer, ForeignKey("boxes.id"), nullable=True)
    amount = Column(MONEY, nullable=False)
    kind = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    effective_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    instance_id = Column(Integer, ForeignKey("transaction_instances.id"), nullable=True)
    transfer_id = Column(Integer, ForeignKey("transfers.id"), nullable=True)

    # Relationships
    bank_account = relationship("BankAccount", back_populates="movements")
    box = relationship("Box", back_populates="movements")
    transfer = relationship("Transfer", back_populates="movements")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
