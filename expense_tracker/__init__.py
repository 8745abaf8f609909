"""Recurring-expense ledger with at-most-once-per-period materialization."""

__version__ = "0.1.0"
