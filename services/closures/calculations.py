"""Totals of a daily cash closure.

Pure aggregation over stations and expenses; no side effects.
"""

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from services.closures.schema import DENOMINATIONS, CashCount, CashStation, ClosureTotals, Expense

logger = logging.getLogger(__name__)

DEFAULT_VAT_RATE = Decimal("0.10")
CASH_DIFFERENCE_THRESHOLD = Decimal("5.00")
CENT = Decimal("0.01")
_ZERO = Decimal("0")


def _amount(value: Decimal | None) -> Decimal:
    return value if value is not None else _ZERO


def cash_count_total(count: CashCount) -> Decimal:
    """Value of a denomination count."""
    return sum(
        (value * getattr(count, field) for field, value in DENOMINATIONS.items()),
        _ZERO,
    )


def station_counted_cash(station: CashStation) -> Decimal:
    """Physically counted cash of a station, zero when nothing was counted."""
    if station.counted_cash is not None:
        return station.counted_cash
    if station.cash_count is not None:
        return cash_count_total(station.cash_count)
    return _ZERO


def compute_closure_totals(
    stations: Iterable[CashStation],
    expenses: Iterable[Expense],
    vat_rate: Decimal = DEFAULT_VAT_RATE,
    threshold: Decimal = CASH_DIFFERENCE_THRESHOLD,
) -> ClosureTotals:
    """Aggregate a closure's stations and expenses.

    Args:
        stations: Cash stations of the closure
        expenses: Expenses of the closure (all amounts summed, including
            zero or negative ones)
        vat_rate: VAT rate as a fraction, used for the VAT estimate on sales
        threshold: Cash difference above which the closure is flagged

    Returns:
        ClosureTotals; ``has_significant_difference`` is only set when
        something was actually counted
    """
    stations = list(stations)
    expenses = list(expenses)

    cash_total = sum((_amount(s.cash_amount) for s in stations), _ZERO)
    pos_total = sum((_amount(s.pos_amount) for s in stations), _ZERO)
    counted_total = sum((station_counted_cash(s) for s in stations), _ZERO)
    expenses_total = sum((_amount(e.amount) for e in expenses), _ZERO)

    # Till reconciliation: counted cash vs declared cash sales, expenses excluded
    cash_difference = counted_total - cash_total

    sales_total = cash_total + pos_total
    gross_total = sales_total + expenses_total
    cash_income_total = cash_total + expenses_total

    estimated_vat = (sales_total * vat_rate).quantize(CENT, rounding=ROUND_HALF_UP)
    net_total = sales_total - estimated_vat

    has_significant_difference = counted_total > 0 and abs(cash_difference) > threshold

    logger.debug(
        f"Closure totals: sales={sales_total} counted={counted_total} "
        f"difference={cash_difference}"
    )

    return ClosureTotals(
        cash_total=cash_total,
        pos_total=pos_total,
        counted_total=counted_total,
        expenses_total=expenses_total,
        cash_difference=cash_difference,
        sales_total=sales_total,
        gross_total=gross_total,
        cash_income_total=cash_income_total,
        estimated_vat=estimated_vat,
        net_total=net_total,
        has_significant_difference=has_significant_difference,
    )
