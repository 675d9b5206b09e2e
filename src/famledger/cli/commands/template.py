"""Budget template and monthly expansion commands."""

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.cli.resolution import (
    amount_or_exit,
    date_or_exit,
    month_or_exit,
    resolve_or_exit,
)
from famledger.domain.expander import TemplateExpander
from famledger.domain.instance import InstanceService
from famledger.domain.ledger import LedgerService
from famledger.domain.template import TemplateService
from famledger.utils.resolver import (
    resolve_bank_account,
    resolve_box,
    resolve_card,
    resolve_classification,
)


def _template_service(ctx) -> TemplateService:
    db = ctx.obj["db"]
    return TemplateService(db, InstanceService(db, ledger=LedgerService(db, ctx.obj["box_baseline"])))


@click.group("template")
def template_group():
    """Manage budget templates."""
    pass


@template_group.command("create")
@click.option("--classification", required=True, help="Classification account name or ID")
@click.option("--amount", required=True, help="Expected amount")
@click.option(
    "--recurrence",
    default="monthly",
    show_default=True,
    help="unique, monthly, yearly or installment(N) (also accepted: Nx)",
)
@click.option("--start", required=True, help="Start date (YYYY-MM-DD)")
@click.option("--end", help="End date (YYYY-MM-DD)")
@click.option("--account", help="Bank account name or ID")
@click.option("--card", help="Card name or ID")
@click.option("--box", help="Target box name or ID")
@click.option("--notes", help="Notes")
@click.pass_context
def create_template(
    ctx,
    classification: str,
    amount: str,
    recurrence: str,
    start: str,
    end: str | None,
    account: str | None,
    card: str | None,
    box: str | None,
    notes: str | None,
):
    """Create a budget template.

    Examples:
        famledger template create --classification Rent --amount 1200 --start 2025-01-05 --account Checking
        famledger template create --classification Laptop --amount 900 --recurrence 3x --start 2025-02-01 --card Visa
    """
    classification_obj = resolve_or_exit(ctx, resolve_classification, classification)
    expected = amount_or_exit(ctx, amount)
    start_date = date_or_exit(ctx, start)
    end_date = date_or_exit(ctx, end) if end else None
    bank_account_id = resolve_or_exit(ctx, resolve_bank_account, account).id if account else None
    card_id = resolve_or_exit(ctx, resolve_card, card).id if card else None
    box_id = resolve_or_exit(ctx, resolve_box, box).id if box else None

    try:
        template_id = _template_service(ctx).create(
            account_id=classification_obj.id,
            expected_amount=expected,
            recurrence=recurrence,
            start_date=start_date,
            end_date=end_date,
            bank_account_id=bank_account_id,
            card_id=card_id,
            box_id=box_id,
            notes=notes,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created template for '{classification_obj.name}' (ID: {template_id})")


@template_group.command("list")
@click.pass_context
def list_templates(ctx):
    """List active budget templates."""
    templates = _template_service(ctx).list_templates()
    if not templates:
        click.echo("No templates found.")
        return

    click.echo("\nTemplates:")
    click.echo("-" * 80)
    for t in templates:
        end = t.end_date.isoformat() if t.end_date else "-"
        click.echo(
            f"ID: {t.id:3d} | {str(t.recurrence):15s} | {t.expected_amount:>10.2f} | "
            f"{t.start_date.isoformat()} → {end} | {t.payment_method.value}"
        )


@template_group.command("exclude")
@click.argument("template_id", type=int)
@click.argument("month", metavar="MONTH")
@click.pass_context
def exclude_month(ctx, template_id: int, month: str):
    """Skip a template for one month (MONTH as YYYY-MM)."""
    month_num, year = month_or_exit(ctx, month)
    try:
        _template_service(ctx).exclude_month(template_id, month_num, year)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Template {template_id} excluded for {month_num:02d}/{year}")


@template_group.command("delete")
@click.argument("template_id", type=int)
@click.option(
    "--cascade",
    is_flag=True,
    help="Also delete the transactions it generated (undoing their postings)",
)
@click.option(
    "--keep/--refuse",
    "detach",
    default=True,
    show_default=True,
    help="Without --cascade, keep generated transactions as ad-hoc ones, or refuse to delete",
)
@click.pass_context
def delete_template(ctx, template_id: int, cascade: bool, detach: bool):
    """Delete a budget template."""
    try:
        count = _template_service(ctx).delete(template_id, cascade=cascade, detach=detach)
    except ValueError as e:
        handle_domain_error(ctx, e)
    action = "deleted" if cascade else "detached"
    click.echo(f"Deleted template {template_id} ({count} transaction(s) {action})")


@click.command("generate")
@click.argument("month", metavar="MONTH")
@click.pass_context
def generate(ctx, month: str):
    """Materialize every template selected for MONTH (YYYY-MM).

    Running it again for the same month creates nothing new.
    """
    month_num, year = month_or_exit(ctx, month)
    try:
        result = TemplateExpander(ctx.obj["db"]).materialize_month(month_num, year)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"{month_num:02d}/{year}: {len(result.created)} created, "
        f"{len(result.existing)} already present, "
        f"{len(result.excluded_template_ids)} excluded"
    )
    for instance in result.created:
        click.echo(f"  + {instance.id:4d} | {instance.description:30s} | {instance.expected_amount:>10.2f}")


@click.command("generate-through")
@click.argument("year", type=int)
@click.pass_context
def generate_through(ctx, year: int):
    """Materialize every month from the first template start through December of YEAR.

    Months already generated are left as they are.

    Examples:
        famledger generate-through 2026
    """
    try:
        results = TemplateExpander(ctx.obj["db"]).materialize_through(year)
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not results:
        click.echo("No templates to generate.")
        return
    created = sum(len(r.created) for r in results)
    first, last = results[0], results[-1]
    click.echo(
        f"{first.month:02d}/{first.year} to {last.month:02d}/{last.year}: "
        f"{created} created over {len(results)} month(s)"
    )


def register_commands(cli):
    """Register template commands with main CLI."""
    cli.add_command(template_group)
    cli.add_command(generate)
    cli.add_command(generate_through)
