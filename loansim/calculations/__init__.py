"""
Loan Calculation Engine

Pure functions for rate conversion, amortization schedules, cash flows,
NPV and IRR. Nothing in this package performs I/O or holds state.
"""

from loansim.calculations import rates, amortization, cashflow, irr, engine
from loansim.calculations.errors import (
    LoanValidationError,
    InvalidRateError,
    InvalidTermError,
    InvalidGraceError,
    InvalidFinancingError,
)

__all__ = [
    "rates",
    "amortization",
    "cashflow",
    "irr",
    "engine",
    "LoanValidationError",
    "InvalidRateError",
    "InvalidTermError",
    "InvalidGraceError",
    "InvalidFinancingError",
]
