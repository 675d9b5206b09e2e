"""CLI helpers for resolving names, dates and amounts, or exiting with an error."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable, TypeVar

import click

from famledger.cli.error_handling import handle_domain_error
from famledger.database.base import Database
from famledger.utils.amount_parser import parse_amount
from famledger.utils.date_parser import parse_date, parse_month

T = TypeVar("T")


def resolve_or_exit(
    ctx: click.Context, resolver: Callable[[Database, str], T], value: str
) -> T:
    """Resolve a name or ID with resolver, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolver(ctx.obj["db"], value)
    except ValueError as exc:
        handle_domain_error(ctx, exc)


def date_or_exit(ctx: click.Context, value: str | None) -> date:
    """Parse a date option (defaults to today), or exit."""
    if value is None:
        return date.today()
    try:
        return parse_date(value)
    except ValueError as exc:
        click.echo(f"Error: Invalid date format: {exc}", err=True)
        ctx.exit(1)


def amount_or_exit(ctx: click.Context, value: str) -> Decimal:
    """Parse an amount argument, or exit."""
    try:
        return parse_amount(value)
    except ValueError as exc:
        click.echo(f"Error: Invalid amount format: {exc}", err=True)
        ctx.exit(1)


def month_or_exit(ctx: click.Context, value: str) -> tuple[int, int]:
    """Parse a billing month ("YYYY-MM"), or exit."""
    try:
        return parse_month(value)
    except ValueError as exc:
        click.echo(f"Error: Invalid month: {exc}", err=True)
        ctx.exit(1)
