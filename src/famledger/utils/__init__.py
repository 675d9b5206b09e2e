"""Utility functions for famledger."""

from famledger.utils.date_parser import parse_date, parse_month
from famledger.utils.amount_parser import parse_amount, to_money

__all__ = ["parse_date", "parse_month", "parse_amount", "to_money"]
