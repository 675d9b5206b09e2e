"""Card invoice commands."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.cli.resolution import amount_or_exit, date_or_exit, resolve_or_exit
from famledger.domain.entities import InvoiceStatus
from famledger.domain.invoice import InvoiceService
from famledger.utils.resolver import resolve_bank_account, resolve_card


@click.group("invoice")
def invoice_group():
    """Manage credit card invoices."""
    pass


@invoice_group.command("list")
@click.option("--card", help="Only invoices of this card (name or ID)")
@click.option("--status", type=click.Choice([s.value for s in InvoiceStatus]))
@click.pass_context
def list_invoices(ctx, card: str | None, status: str | None):
    """List card invoices."""
    card_id = resolve_or_exit(ctx, resolve_card, card).id if card else None
    invoices = InvoiceService(ctx.obj["db"]).list_invoices(
        card_id=card_id, status=InvoiceStatus(status) if status else None
    )
    if not invoices:
        click.echo("No invoices found.")
        return

    click.echo("\nInvoices:")
    click.echo("-" * 80)
    for inv in invoices:
        due = inv.due_date.isoformat() if inv.due_date else "-"
        click.echo(
            f"ID: {inv.id:3d} | Card: {inv.card_id:3d} | {inv.month:02d}/{inv.year} | "
            f"Total: {inv.total_amount:>10.2f} | Due: {due} | {inv.status.value}"
        )


@invoice_group.command("settle")
@click.argument("invoice_id", type=int)
@click.option("--account", required=True, help="Paying bank account name or ID")
@click.option("--amount", help="Amount paid (defaults to the invoice total)")
@click.option("--date", help="Payment date (YYYY-MM-DD or relative like 'today'); defaults to today")
@click.pass_context
def settle_invoice(ctx, invoice_id: int, account: str, amount: str | None, date: str | None):
    """Mark an invoice paid and schedule its payment.

    The payment shows up as a pending transaction on the paying account;
    confirm it to move the money.

    Examples:
        famledger invoice settle 3 --account Checking --amount 250
    """
    service = InvoiceService(ctx.obj["db"])
    paying = resolve_or_exit(ctx, resolve_bank_account, account)
    when = date_or_exit(ctx, date)

    try:
        invoice = service.get_invoice(invoice_id)
        paid_amount = amount_or_exit(ctx, amount) if amount is not None else invoice.total_amount
        settled = service.settle(invoice_id, paying.id, when, paid_amount)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Settled invoice {settled.id} for {settled.paid_amount:.2f}; "
        f"payment scheduled on '{paying.name}'"
    )


@invoice_group.command("reopen")
@click.argument("invoice_id", type=int)
@click.pass_context
def reopen_invoice(ctx, invoice_id: int):
    """Undo the settlement of a paid invoice.

    Its scheduled payment is removed, which only works while that payment
    is still pending.
    """
    try:
        invoice = InvoiceService(ctx.obj["db"]).reopen(invoice_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Reopened invoice {invoice.id}; total is {invoice.total_amount:.2f}")


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group)
