"""
Loan Amortization Calculations

Implements the fixed-installment (French) payment and the month-by-month
amortization schedule, including total and partial grace periods.
"""

import enum
import logging
from dataclasses import dataclass, replace, asdict
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from loansim.calculations.errors import InvalidGraceError, InvalidTermError

logger = logging.getLogger(__name__)


class GraceType(str, enum.Enum):
    """Grace period regime applied to the first months of the loan."""
    none = "none"
    total = "total"
    partial = "partial"


@dataclass(frozen=True)
class AmortizationRow:
    """One month of the payment schedule."""

    period: int
    payment: float
    interest: float
    principal: float
    balance: float
    grace: GraceType = GraceType.none
    payment_date: Optional[date] = None

    def to_dict(self) -> Dict:
        row = asdict(self)
        row["grace"] = self.grace.value
        row["payment_date"] = self.payment_date.isoformat() if self.payment_date else None
        return row


Schedule = Tuple[AmortizationRow, ...]


def calculate_payment(principal: float, monthly_rate: float, periods: int) -> float:
    """
    Calculate the fixed monthly installment.

    Matches Excel's PMT() function (sign flipped to positive).

    Args:
        principal: Amount to amortize
        monthly_rate: Effective monthly rate as decimal
        periods: Number of monthly payments

    Returns:
        Monthly payment amount (positive number)
    """
    if periods <= 0:
        raise InvalidTermError("Number of payments must be greater than 0")

    if monthly_rate == 0:
        return principal / periods

    return principal * monthly_rate / (1 - (1 + monthly_rate) ** (-periods))


def _total_grace_row(
    period: int, balance: float, monthly_rate: float
) -> Tuple[AmortizationRow, float]:
    """No payment; interest capitalizes into the balance."""
    interest = balance * monthly_rate
    balance += interest
    row = AmortizationRow(
        period=period,
        payment=0.0,
        interest=interest,
        principal=0.0,
        balance=balance,
        grace=GraceType.total,
    )
    return row, balance


def _partial_grace_row(
    period: int, balance: float, monthly_rate: float
) -> Tuple[AmortizationRow, float]:
    """Interest-only payment; balance unchanged."""
    interest = balance * monthly_rate
    row = AmortizationRow(
        period=period,
        payment=interest,
        interest=interest,
        principal=0.0,
        balance=balance,
        grace=GraceType.partial,
    )
    return row, balance


GRACE_ROW_BUILDERS: Dict[
    GraceType, Callable[[int, float, float], Tuple[AmortizationRow, float]]
] = {
    GraceType.total: _total_grace_row,
    GraceType.partial: _partial_grace_row,
}


def _amortizing_row(
    period: int, balance: float, monthly_rate: float, payment: float
) -> Tuple[AmortizationRow, float]:
    interest = balance * monthly_rate
    principal = payment - interest
    balance -= principal
    row = AmortizationRow(
        period=period,
        payment=payment,
        interest=interest,
        principal=principal,
        balance=balance,
    )
    return row, balance


def _close_final_row(row: AmortizationRow, opening_balance: float) -> AmortizationRow:
    """Retire whatever floating-point residue is left on the last row."""
    return replace(
        row,
        principal=opening_balance,
        payment=row.interest + opening_balance,
        balance=0.0,
    )


def build_schedule(
    financed_amount: float,
    monthly_rate: float,
    term_months: int,
    grace_type: GraceType = GraceType.none,
    grace_months: int = 0,
    start_date: Optional[date] = None,
) -> Tuple[Schedule, float]:
    """
    Generate the full amortization schedule.

    Grace rows occupy periods 1..grace_months; the installment is then
    computed over the remaining months against the post-grace balance.

    Args:
        financed_amount: Amount financed (principal minus bono)
        monthly_rate: Effective monthly rate as decimal
        term_months: Total loan term in months, grace included
        grace_type: Grace regime
        grace_months: Length of the grace period (ignored without a regime)
        start_date: Date of the first payment, optional

    Returns:
        Tuple of (schedule rows, steady monthly payment)
    """
    if term_months <= 0:
        raise InvalidTermError("Term must be at least one month")

    grace_type = GraceType(grace_type)
    if grace_months < 0:
        raise InvalidGraceError("Grace months cannot be negative")
    if grace_type == GraceType.none:
        grace_months = 0
    elif grace_months >= term_months:
        raise InvalidGraceError(
            f"Grace period ({grace_months} months) must be shorter than "
            f"the loan term ({term_months} months)"
        )

    rows: List[AmortizationRow] = []
    balance = financed_amount

    grace_row = GRACE_ROW_BUILDERS.get(grace_type)
    for period in range(1, grace_months + 1):
        row, balance = grace_row(period, balance, monthly_rate)
        rows.append(row)

    payment = calculate_payment(balance, monthly_rate, term_months - grace_months)

    opening_balance = balance
    for period in range(grace_months + 1, term_months + 1):
        opening_balance = balance
        row, balance = _amortizing_row(period, balance, monthly_rate, payment)
        rows.append(row)

    rows[-1] = _close_final_row(rows[-1], opening_balance)

    if start_date is not None:
        rows = [
            replace(row, payment_date=start_date + relativedelta(months=row.period - 1))
            for row in rows
        ]

    logger.debug(
        f"Built {len(rows)}-month schedule ({grace_type.value} grace, "
        f"{grace_months} months), payment {payment:.2f}"
    )

    return tuple(rows), payment


def calculate_total_interest(schedule: Schedule) -> float:
    """Total interest accrued over the loan term, capitalized interest included."""
    return sum(row.interest for row in schedule)


def calculate_total_paid(schedule: Schedule) -> float:
    """Total cash paid by the borrower."""
    return sum(row.payment for row in schedule)
