"""Bank account, box, card and classification commands."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.cli.resolution import amount_or_exit, date_or_exit, resolve_or_exit
from famledger.domain.account import AccountService
from famledger.domain.entities import AccountType
from famledger.domain.ledger import LedgerService
from famledger.domain.transfer import TransferService
from famledger.utils.resolver import resolve_bank_account, resolve_box


def _account_service(ctx) -> AccountService:
    return AccountService(ctx.obj["db"], box_baseline=ctx.obj["box_baseline"])


@click.group("bank-account")
def bank_account_group():
    """Manage bank accounts."""
    pass


@bank_account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--bank", help="Bank name (defaults to account name if not provided)")
@click.option("--initial-balance", default="0", show_default=True, help="Opening balance")
@click.pass_context
def create_bank_account(ctx, name: str, bank: str | None, initial_balance: str):
    """Create a new bank account.

    Examples:
        famledger bank-account create "Checking" --bank "First Bank" --initial-balance 1000.00
    """
    service = _account_service(ctx)
    balance = amount_or_exit(ctx, initial_balance)
    bank_name = bank if bank is not None else name

    try:
        account_id = service.create_bank_account(name=name, bank_name=bank_name, initial_balance=balance)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created bank account '{name}' (ID: {account_id})")


@bank_account_group.command("list")
@click.pass_context
def list_bank_accounts(ctx):
    """List bank accounts with their balances."""
    accounts = _account_service(ctx).list_bank_accounts()
    if not accounts:
        click.echo("No bank accounts found.")
        return

    click.echo("\nBank accounts:")
    click.echo("-" * 70)
    for acc in accounts:
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | Bank: {acc.bank_name:15s} | "
            f"Balance: {acc.cached_balance:>12.2f}"
        )


@click.group("box")
def box_group():
    """Manage boxes (earmarked sub-accounts)."""
    pass


@box_group.command("create")
@click.argument("name", metavar="BOX_NAME")
@click.option("--account", required=True, help="Owning bank account name or ID")
@click.option("--initial-value", help="Seed amount (used with the seeded box baseline)")
@click.pass_context
def create_box(ctx, name: str, account: str, initial_value: str | None):
    """Create a box under a bank account.

    Examples:
        famledger box create "Vacation" --account "Checking"
    """
    service = _account_service(ctx)
    bank_account = resolve_or_exit(ctx, resolve_bank_account, account)
    value = amount_or_exit(ctx, initial_value) if initial_value is not None else None

    try:
        box_id = service.create_box(name=name, bank_account_id=bank_account.id, initial_value=value)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created box '{name}' in '{bank_account.name}' (ID: {box_id})")


@box_group.command("list")
@click.option("--account", help="Only boxes of this bank account (name or ID)")
@click.pass_context
def list_boxes(ctx, account: str | None):
    """List boxes with their balances."""
    service = _account_service(ctx)
    bank_account_id = None
    if account is not None:
        bank_account_id = resolve_or_exit(ctx, resolve_bank_account, account).id

    boxes = service.list_boxes(bank_account_id=bank_account_id)
    if not boxes:
        click.echo("No boxes found.")
        return

    click.echo("\nBoxes:")
    click.echo("-" * 60)
    for box in boxes:
        click.echo(
            f"ID: {box.id:3d} | {box.name:20s} | Account: {box.bank_account_id:3d} | "
            f"Balance: {box.cached_balance:>12.2f}"
        )


def _box_transfer(ctx, box: str, amount: str, date: str | None, description: str | None, withdraw: bool):
    db = ctx.obj["db"]
    service = TransferService(db, LedgerService(db, ctx.obj["box_baseline"]))
    box_obj = resolve_or_exit(ctx, resolve_box, box)
    value = amount_or_exit(ctx, amount)
    when = date_or_exit(ctx, date)

    try:
        if withdraw:
            transfer = service.withdraw(box_obj.id, value, when, description or "")
        else:
            transfer = service.contribute(box_obj.id, value, when, description or "")
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"{transfer.description}: {transfer.amount:.2f} (transfer ID: {transfer.id})")


@box_group.command("contribute")
@click.argument("box", metavar="BOX")
@click.argument("amount", metavar="AMOUNT")
@click.option("--date", help="Date (YYYY-MM-DD or relative like 'today'); defaults to today")
@click.option("--description", help="Description")
@click.pass_context
def contribute(ctx, box: str, amount: str, date: str | None, description: str | None):
    """Move money from the owning bank account into a box."""
    _box_transfer(ctx, box, amount, date, description, withdraw=False)


@box_group.command("withdraw")
@click.argument("box", metavar="BOX")
@click.argument("amount", metavar="AMOUNT")
@click.option("--date", help="Date (YYYY-MM-DD or relative like 'today'); defaults to today")
@click.option("--description", help="Description")
@click.pass_context
def withdraw(ctx, box: str, amount: str, date: str | None, description: str | None):
    """Move money from a box back to its bank account."""
    _box_transfer(ctx, box, amount, date, description, withdraw=True)


@click.group("card")
def card_group():
    """Manage credit cards."""
    pass


@card_group.command("create")
@click.argument("name", metavar="CARD_NAME")
@click.option("--account", help="Bank account the card belongs to (name or ID)")
@click.option("--closing-day", type=int, default=10, show_default=True, help="Invoice closing day")
@click.option("--due-day", type=int, default=15, show_default=True, help="Invoice due day")
@click.pass_context
def create_card(ctx, name: str, account: str | None, closing_day: int, due_day: int):
    """Create a credit card."""
    service = _account_service(ctx)
    bank_account_id = None
    if account is not None:
        bank_account_id = resolve_or_exit(ctx, resolve_bank_account, account).id

    try:
        card_id = service.create_card(
            name=name, bank_account_id=bank_account_id, closing_day=closing_day, due_day=due_day
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created card '{name}' (ID: {card_id})")


@card_group.command("list")
@click.pass_context
def list_cards(ctx):
    """List credit cards."""
    cards = _account_service(ctx).list_cards()
    if not cards:
        click.echo("No cards found.")
        return

    click.echo("\nCards:")
    click.echo("-" * 60)
    for card in cards:
        click.echo(
            f"ID: {card.id:3d} | {card.name:20s} | Closing: {card.closing_day:2d} | Due: {card.due_day:2d}"
        )


@click.group("classification")
def classification_group():
    """Manage expense/income classification accounts."""
    pass


@classification_group.command("create")
@click.argument("name", metavar="NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in AccountType]),
    default=AccountType.EXPENSE.value,
    show_default=True,
)
@click.option("--group", help="Classification group (e.g. 'Housing')")
@click.pass_context
def create_classification(ctx, name: str, account_type: str, group: str | None):
    """Create a classification account such as "Electricity".

    Examples:
        famledger classification create "Salary" --type income
        famledger classification create "Electricity" --group Housing
    """
    try:
        account_id = _account_service(ctx).create_classification(
            name=name, type=AccountType(account_type), group=group
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created {account_type} classification '{name}' (ID: {account_id})")


@classification_group.command("list")
@click.option("--type", "account_type", type=click.Choice([t.value for t in AccountType]))
@click.pass_context
def list_classifications(ctx, account_type: str | None):
    """List classification accounts."""
    accounts = _account_service(ctx).list_classifications(
        type=AccountType(account_type) if account_type else None
    )
    if not accounts:
        click.echo("No classifications found.")
        return

    click.echo("\nClassifications:")
    click.echo("-" * 60)
    for acc in accounts:
        group = acc.group or "-"
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | {acc.type.value:7s} | Group: {group}")


def register_commands(cli):
    """Register holder commands with main CLI."""
    cli.add_command(bank_account_group)
    cli.add_command(box_group)
    cli.add_command(card_group)
    cli.add_command(classification_group)
