"""Posting of daily closures to the cash and bank registers.

Each posting call writes its entries as one batch; the ledger store makes
that batch atomic. Posting is not idempotent: callers move the closure out
of its draft state before posting and reverse before posting again.
"""

import logging
from datetime import date
from decimal import Decimal

from services.closures.calculations import compute_closure_totals
from services.closures.schema import (
    DailyClosure,
    Expense,
    JournalEntry,
    PostingResult,
    RegisterType,
)
from services.storage.base import LedgerStore

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


def _format_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def describe_cash_takings(closure_date: date) -> str:
    return f"Daily cash takings {_format_date(closure_date)}"


def describe_pos_takings(closure_date: date) -> str:
    return f"Daily POS takings {_format_date(closure_date)}"


def describe_bank_deposit(closure_date: date) -> str:
    return f"Bank deposit {_format_date(closure_date)}"


def describe_expense(closure_date: date, expense: Expense) -> str:
    """Payee, description and document reference joined, or a generic label."""
    parts = [part for part in (expense.payee, expense.description) if part]
    if expense.document_ref:
        parts.append(f"Ref. {expense.document_ref}")
    if parts:
        return f"{' - '.join(parts)} ({_format_date(closure_date)})"
    return f"Expense {_format_date(closure_date)}"


class LedgerPostingEngine:
    """Turns closures into journal entries and removes them again.

    Storage failures from the ledger store propagate unchanged; the engine
    does not retry.
    """

    def __init__(self, ledger: LedgerStore) -> None:
        self.ledger = ledger

    def build_entries(self, closure: DailyClosure, actor_id: str) -> list[JournalEntry]:
        """Derive the journal entries of a closure without writing them.

        Order: cash takings, expenses, bank deposit pair, POS takings.
        Zero or negative amounts never produce an entry.
        """
        totals = compute_closure_totals(closure.stations, closure.expenses)
        common = {
            "venue_ref": closure.venue_ref,
            "entry_date": closure.closure_date,
            "closure_ref": closure.id,
            "created_by": actor_id,
        }
        entries: list[JournalEntry] = []

        # Negative expenses can push cash income to zero or below
        if totals.cash_total > 0 and totals.cash_income_total > 0:
            entries.append(
                JournalEntry(
                    register_type=RegisterType.CASH,
                    description=describe_cash_takings(closure.closure_date),
                    debit_amount=totals.cash_income_total,
                    **common,
                )
            )

        for expense in closure.expenses:
            if expense.amount is None or expense.amount <= 0:
                continue
            entries.append(
                JournalEntry(
                    register_type=RegisterType.CASH,
                    description=describe_expense(closure.closure_date, expense),
                    credit_amount=expense.amount,
                    account_ref=expense.account_ref,
                    document_ref=expense.document_ref,
                    **common,
                )
            )

        deposit = closure.bank_deposit or _ZERO
        if deposit > 0:
            description = describe_bank_deposit(closure.closure_date)
            entries.append(
                JournalEntry(
                    register_type=RegisterType.CASH,
                    description=description,
                    credit_amount=deposit,
                    **common,
                )
            )
            entries.append(
                JournalEntry(
                    register_type=RegisterType.BANK,
                    description=description,
                    debit_amount=deposit,
                    **common,
                )
            )

        if totals.pos_total > 0:
            entries.append(
                JournalEntry(
                    register_type=RegisterType.BANK,
                    description=describe_pos_takings(closure.closure_date),
                    debit_amount=totals.pos_total,
                    **common,
                )
            )

        return entries

    def post_closure_to_ledger(self, closure: DailyClosure, actor_id: str) -> PostingResult:
        """Write the closure's entries to the ledger in a single batch.

        Args:
            closure: Closure to post
            actor_id: Reference of the user performing the posting

        Returns:
            PostingResult; a closure without monetary activity yields zero
            entries and zero totals
        """
        entries = self.build_entries(closure, actor_id)
        if not entries:
            logger.info(f"Closure {closure.id} has no monetary activity, nothing posted")
            return PostingResult(entries_created=0, total_debits=_ZERO, total_credits=_ZERO)

        created = self.ledger.add_entries(entries)
        total_debits = sum((e.debit_amount or _ZERO for e in entries), _ZERO)
        total_credits = sum((e.credit_amount or _ZERO for e in entries), _ZERO)

        logger.info(
            f"Posted closure {closure.id}: {created} entries, "
            f"debits={total_debits} credits={total_credits}"
        )
        return PostingResult(
            entries_created=created,
            total_debits=total_debits,
            total_credits=total_credits,
        )

    def reverse_closure_posting(self, closure_id: str) -> int:
        """Delete every entry posted for a closure.

        Returns:
            Number of entries removed; zero when nothing was posted
        """
        removed = self.ledger.delete_by_closure(closure_id)
        logger.info(f"Reversed closure {closure_id}: {removed} entries removed")
        return removed
