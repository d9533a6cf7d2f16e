"""Daily cash closure records and the ledger entries derived from them."""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator

# Denomination value of each cash count field
DENOMINATIONS: dict[str, Decimal] = {
    "bills_500": Decimal("500"),
    "bills_200": Decimal("200"),
    "bills_100": Decimal("100"),
    "bills_50": Decimal("50"),
    "bills_20": Decimal("20"),
    "bills_10": Decimal("10"),
    "bills_5": Decimal("5"),
    "coins_2": Decimal("2"),
    "coins_1": Decimal("1"),
    "coins_050": Decimal("0.50"),
    "coins_020": Decimal("0.20"),
    "coins_010": Decimal("0.10"),
    "coins_005": Decimal("0.05"),
    "coins_002": Decimal("0.02"),
    "coins_001": Decimal("0.01"),
}


class CashCount(BaseModel):
    """Physical count of a station's till by denomination (piece counts)."""

    bills_500: int = Field(0, ge=0)
    bills_200: int = Field(0, ge=0)
    bills_100: int = Field(0, ge=0)
    bills_50: int = Field(0, ge=0)
    bills_20: int = Field(0, ge=0)
    bills_10: int = Field(0, ge=0)
    bills_5: int = Field(0, ge=0)
    coins_2: int = Field(0, ge=0)
    coins_1: int = Field(0, ge=0)
    coins_050: int = Field(0, ge=0)
    coins_020: int = Field(0, ge=0)
    coins_010: int = Field(0, ge=0)
    coins_005: int = Field(0, ge=0)
    coins_002: int = Field(0, ge=0)
    coins_001: int = Field(0, ge=0)


class CashStation(BaseModel):
    """One till of a venue within a daily closure.

    ``counted_cash`` is the physically counted total; when absent it is
    derived from ``cash_count``. Missing amounts count as zero.
    """

    name: str = ""
    position: int | None = None
    cash_amount: Decimal | None = Field(None, description="Declared cash sales")
    pos_amount: Decimal | None = Field(None, description="Declared card/POS sales")
    float_amount: Decimal | None = Field(None, description="Cash reserve, not a sale")
    counted_cash: Decimal | None = Field(None, description="Physically counted cash")
    cash_count: CashCount | None = None


class Expense(BaseModel):
    """A payment made during the day, typically out of the till."""

    amount: Decimal | None = None
    payee: str | None = None
    description: str | None = None
    document_ref: str | None = None
    account_ref: str | None = None
    paid_by: str | None = Field(None, description="Payment source tag")


class DailyClosure(BaseModel):
    """End-of-day reconciliation of a venue.

    Immutable once posted; re-posting requires reversing the posting first.
    """

    id: str
    closure_date: date
    venue_ref: str
    stations: list[CashStation] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    bank_deposit: Decimal | None = None


class ClosureTotals(BaseModel):
    """Aggregated figures of a closure.

    ``cash_difference`` compares counted cash against declared cash sales
    only; expenses are excluded because they may be paid from sources other
    than the till. ``cash_income_total`` is the separate figure that folds
    expenses back in.
    """

    cash_total: Decimal
    pos_total: Decimal
    counted_total: Decimal
    expenses_total: Decimal
    cash_difference: Decimal
    sales_total: Decimal
    gross_total: Decimal
    cash_income_total: Decimal
    estimated_vat: Decimal
    net_total: Decimal
    has_significant_difference: bool


class RegisterType(str, Enum):
    """Which cash pool an entry affects."""

    CASH = "CASH"
    BANK = "BANK"


class JournalEntry(BaseModel):
    """A single debit or credit against a register."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    venue_ref: str
    entry_date: date
    register_type: RegisterType
    description: str
    debit_amount: Decimal | None = None
    credit_amount: Decimal | None = None
    account_ref: str | None = None
    document_ref: str | None = None
    closure_ref: str | None = None
    created_by: str

    @model_validator(mode="after")
    def _one_side_only(self) -> "JournalEntry":
        if (self.debit_amount is None) == (self.credit_amount is None):
            raise ValueError("Journal entry needs exactly one of debit_amount or credit_amount")
        amount = self.debit_amount if self.debit_amount is not None else self.credit_amount
        if amount is None or amount <= 0:
            raise ValueError("Journal entry amount must be positive")
        return self

    @property
    def signed_amount(self) -> Decimal:
        """Debits count positive, credits negative."""
        if self.debit_amount is not None:
            return self.debit_amount
        return -(self.credit_amount or Decimal("0"))


class PostingResult(BaseModel):
    entries_created: int
    total_debits: Decimal
    total_credits: Decimal
