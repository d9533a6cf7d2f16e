"""Aggregates over journal entries."""

from collections.abc import Iterable
from decimal import Decimal

from pydantic import BaseModel

from services.closures.schema import JournalEntry


class LedgerTotals(BaseModel):
    total_debits: Decimal
    total_credits: Decimal
    net_movement: Decimal


class LedgerLine(BaseModel):
    """A journal entry with the register balance after it."""

    entry: JournalEntry
    running_balance: Decimal


def calculate_totals(entries: Iterable[JournalEntry]) -> LedgerTotals:
    """Sum debits and credits of a group of entries."""
    total_debits = Decimal("0")
    total_credits = Decimal("0")
    for entry in entries:
        total_debits += entry.debit_amount or 0
        total_credits += entry.credit_amount or 0

    return LedgerTotals(
        total_debits=total_debits,
        total_credits=total_credits,
        net_movement=total_debits - total_credits,
    )


def calculate_running_balances(
    entries: Iterable[JournalEntry], opening_balance: Decimal = Decimal("0")
) -> list[LedgerLine]:
    """Progressive balance in entry order: previous + debit - credit.

    Args:
        entries: Entries of a single register, already in posting order
        opening_balance: Balance carried over from before the first entry

    Returns:
        One LedgerLine per entry
    """
    balance = opening_balance
    lines = []
    for entry in entries:
        balance += entry.signed_amount
        lines.append(LedgerLine(entry=entry, running_balance=balance))
    return lines
