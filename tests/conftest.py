"""Shared pytest fixtures for famledger tests."""

from datetime import date
from decimal import Decimal
import logging
import os
import tempfile

import pytest

from famledger.database.factories import create_sqlite_database
from famledger.domain.account import AccountService
from famledger.domain.entities import AccountType, BoxBaseline
from famledger.domain.expander import TemplateExpander
from famledger.domain.instance import InstanceService
from famledger.domain.invoice import InvoiceService
from famledger.domain.ledger import LedgerService
from famledger.domain.projection import ProjectionEngine
from famledger.domain.reconciler import BalanceReconciler
from famledger.domain.summary import SummaryService
from famledger.domain.template import TemplateService
from famledger.domain.transfer import TransferService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for CLI tests
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop the handler the CLI installs so each test starts clean."""
    yield
    logger = logging.getLogger("famledger")
    for handler in list(logger.handlers):
        if getattr(handler, "_famledger", False):
            logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def ledger(temp_db):
    """Create a LedgerService with the zero box baseline."""
    return LedgerService(temp_db, BoxBaseline.ZERO)


@pytest.fixture
def transfer_service(temp_db, ledger):
    """Create a TransferService sharing the ledger fixture."""
    return TransferService(temp_db, ledger)


@pytest.fixture
def invoice_service(temp_db):
    """Create an InvoiceService with the payment scheduler subscribed."""
    return InvoiceService(temp_db)


@pytest.fixture
def instance_service(temp_db, ledger, transfer_service, invoice_service):
    """Create an InstanceService wired to the other service fixtures."""
    return InstanceService(temp_db, ledger, transfer_service, invoice_service)


@pytest.fixture
def expander(temp_db, invoice_service):
    """Create a TemplateExpander."""
    return TemplateExpander(temp_db, invoice_service)


@pytest.fixture
def template_service(temp_db, instance_service):
    """Create a TemplateService."""
    return TemplateService(temp_db, instance_service)


@pytest.fixture
def reconciler(temp_db, ledger):
    """Create a BalanceReconciler with the zero box baseline."""
    return BalanceReconciler(temp_db, BoxBaseline.ZERO, ledger)


@pytest.fixture
def projection_engine(temp_db, ledger):
    """Create a ProjectionEngine."""
    return ProjectionEngine(temp_db, ledger)


@pytest.fixture
def summary_service(temp_db):
    """Create a SummaryService."""
    return SummaryService(temp_db)


@pytest.fixture
def checking(account_service):
    """A bank account opened with 1000.00."""
    account_id = account_service.create_bank_account(
        name="Checking", bank_name="First Bank", initial_balance=Decimal("1000.00")
    )
    return account_service.get_bank_account(account_id)


@pytest.fixture
def vacation_box(account_service, checking):
    """An empty box under the checking account."""
    box_id = account_service.create_box(name="Vacation", bank_account_id=checking.id)
    return account_service.get_box(box_id)


@pytest.fixture
def visa(account_service, checking):
    """A card closing on the 10th, due on the 20th."""
    card_id = account_service.create_card(
        name="Visa", bank_account_id=checking.id, closing_day=10, due_day=20
    )
    return account_service.get_card(card_id)


@pytest.fixture
def electricity(account_service, temp_db):
    """An expense classification account."""
    account_id = account_service.create_classification(
        name="Electricity", type=AccountType.EXPENSE, group="Housing"
    )
    return temp_db.get_classification_account(account_id)


@pytest.fixture
def salary(account_service, temp_db):
    """An income classification account."""
    account_id = account_service.create_classification(name="Salary", type=AccountType.INCOME)
    return temp_db.get_classification_account(account_id)


@pytest.fixture
def jan_2025():
    return date(2025, 1, 15)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
