"""Transaction instance commands."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.cli.resolution import (
    amount_or_exit,
    date_or_exit,
    month_or_exit,
    resolve_or_exit,
)
from famledger.domain.entities import HolderKind, InstanceKind, InstanceStatus
from famledger.domain.instance import InstanceService
from famledger.domain.ledger import LedgerService
from famledger.utils.resolver import (
    resolve_bank_account,
    resolve_box,
    resolve_card,
    resolve_classification,
    resolve_holder,
)


def _instance_service(ctx) -> InstanceService:
    db = ctx.obj["db"]
    return InstanceService(db, ledger=LedgerService(db, ctx.obj["box_baseline"]))


def _format_instance(instance) -> str:
    actual = f"{instance.actual_amount:.2f}" if instance.actual_amount is not None else "-"
    return (
        f"ID: {instance.id:4d} | {instance.date.isoformat()} | {instance.kind.value:8s} | "
        f"{instance.description[:30]:30s} | exp {instance.expected_amount:>10.2f} | "
        f"act {actual:>10s} | {instance.status.value:9s} | {instance.payment_method.value}"
    )


@click.group("instance")
def instance_group():
    """Manage monthly transactions."""
    pass


@instance_group.command("add")
@click.option("--description", required=True, help="Description")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in InstanceKind]),
    default=InstanceKind.EXPENSE.value,
    show_default=True,
)
@click.option("--amount", required=True, help="Expected amount")
@click.option("--date", help="Date (YYYY-MM-DD or relative like 'today'); defaults to today")
@click.option("--classification", help="Classification account name or ID")
@click.option("--account", help="Bank account name or ID (transfer source)")
@click.option("--card", help="Card name or ID")
@click.option("--box", help="Target box name or ID (transfer source without --account)")
@click.option("--to", "destination", help="Transfer destination: account:<name-or-id> or box:<name-or-id>")
@click.option("--actual", help="Confirm straight away with this actual amount")
@click.option("--notes", help="Notes")
@click.pass_context
def add_instance(
    ctx,
    description: str,
    kind: str,
    amount: str,
    date: str | None,
    classification: str | None,
    account: str | None,
    card: str | None,
    box: str | None,
    destination: str | None,
    actual: str | None,
    notes: str | None,
):
    """Add an ad-hoc transaction.

    Examples:
        famledger instance add --description "Groceries" --amount 150 --card Visa
        famledger instance add --description "Savings" --kind transfer --amount 200 --account Checking --to box:Vacation
    """
    expected = amount_or_exit(ctx, amount)
    when = date_or_exit(ctx, date)
    actual_amount = amount_or_exit(ctx, actual) if actual is not None else None
    account_id = resolve_or_exit(ctx, resolve_classification, classification).id if classification else None
    bank_account_id = resolve_or_exit(ctx, resolve_bank_account, account).id if account else None
    card_id = resolve_or_exit(ctx, resolve_card, card).id if card else None
    box_id = resolve_or_exit(ctx, resolve_box, box).id if box else None

    destination_account_id = destination_box_id = None
    if destination is not None:
        target = resolve_or_exit(ctx, resolve_holder, destination)
        if target.kind == HolderKind.BOX:
            destination_box_id = target.id
        else:
            destination_account_id = target.id

    try:
        instance = _instance_service(ctx).create(
            description=description,
            kind=InstanceKind(kind),
            expected_amount=expected,
            instance_date=when,
            account_id=account_id,
            bank_account_id=bank_account_id,
            card_id=card_id,
            box_id=box_id,
            destination_account_id=destination_account_id,
            destination_box_id=destination_box_id,
            notes=notes,
            actual_amount=actual_amount,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added transaction '{description}' (ID: {instance.id}, {instance.status.value})")


@instance_group.command("list")
@click.option("--month", help="Billing month (YYYY-MM)")
@click.option("--status", type=click.Choice([s.value for s in InstanceStatus]))
@click.option("--holder", help="Only transactions of account:<name-or-id> or box:<name-or-id>")
@click.option("--card", help="Only transactions of this card (name or ID)")
@click.pass_context
def list_instances(ctx, month: str | None, status: str | None, holder: str | None, card: str | None):
    """List transactions."""
    month_num = year = None
    if month is not None:
        month_num, year = month_or_exit(ctx, month)
    bank_account_id = box_id = None
    if holder is not None:
        target = resolve_or_exit(ctx, resolve_holder, holder)
        if target.kind == HolderKind.BOX:
            box_id = target.id
        else:
            bank_account_id = target.id
    card_id = resolve_or_exit(ctx, resolve_card, card).id if card else None

    instances = _instance_service(ctx).list_instances(
        month=month_num,
        year=year,
        status=InstanceStatus(status) if status else None,
        bank_account_id=bank_account_id,
        box_id=box_id,
        card_id=card_id,
    )
    if not instances:
        click.echo("No transactions found.")
        return

    click.echo("\nTransactions:")
    click.echo("-" * 110)
    for instance in instances:
        click.echo(_format_instance(instance))


@instance_group.command("confirm")
@click.argument("instance_id", type=int)
@click.option("--actual", help="Actual amount (defaults to the expected amount)")
@click.option("--account", help="Pay from this bank account instead (name or ID)")
@click.option("--card", help="Pay with this card instead (name or ID)")
@click.pass_context
def confirm_instance(ctx, instance_id: int, actual: str | None, account: str | None, card: str | None):
    """Confirm a transaction, posting it to the ledger."""
    service = _instance_service(ctx)
    try:
        instance = service.get(instance_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    actual_amount = amount_or_exit(ctx, actual) if actual is not None else instance.expected_amount
    bank_account_id = resolve_or_exit(ctx, resolve_bank_account, account).id if account else None
    card_id = resolve_or_exit(ctx, resolve_card, card).id if card else None

    try:
        confirmed = service.confirm(
            instance_id, actual_amount, bank_account_id=bank_account_id, card_id=card_id
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Confirmed transaction {confirmed.id} at {confirmed.actual_amount:.2f}")


@instance_group.command("unconfirm")
@click.argument("instance_id", type=int)
@click.pass_context
def unconfirm_instance(ctx, instance_id: int):
    """Revert a confirmed transaction to pending."""
    try:
        instance = _instance_service(ctx).unconfirm(instance_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Transaction {instance.id} is {instance.status.value}")


@instance_group.command("delete")
@click.argument("instance_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_instance(ctx, instance_id: int, yes: bool):
    """Delete a transaction and undo what it posted."""
    service = _instance_service(ctx)
    try:
        instance = service.get(instance_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not yes:
        click.echo(_format_instance(instance))
        if not click.confirm("Delete this transaction?"):
            click.echo("Cancelled.")
            return

    try:
        service.delete(instance_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted transaction {instance_id}")


def register_commands(cli):
    """Register instance commands with main CLI."""
    cli.add_command(instance_group)
