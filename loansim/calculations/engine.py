"""
Loan Simulation Engine

Validates loan parameters and chains rate conversion, scheduling, cash-flow
projection and appraisal into a single immutable result.
"""

import enum
import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Optional

from loansim.calculations.amortization import (
    GraceType,
    Schedule,
    build_schedule,
    calculate_total_interest,
    calculate_total_paid,
)
from loansim.calculations.cashflow import CashFlows, project_cash_flows
from loansim.calculations.errors import (
    InvalidFinancingError,
    InvalidGraceError,
    InvalidRateError,
    InvalidTermError,
)
from loansim.calculations.irr import (
    calculate_irr,
    check_discount_rate,
    npv_at_annual_rate,
)
from loansim.calculations.rates import (
    DEFAULT_CAPITALIZATION,
    SUPPORTED_CAPITALIZATIONS,
    RateType,
    monthly_to_annual,
    to_monthly_rate,
)

logger = logging.getLogger(__name__)

DEFAULT_DISCOUNT_RATE = 10.0


class TermUnit(str, enum.Enum):
    """Unit the term was entered in; the schedule always runs in months."""
    years = "years"
    months = "months"


class Currency(str, enum.Enum):
    """Display currency. No conversion is ever applied."""
    PEN = "PEN"
    USD = "USD"


def _is_positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


@dataclass(frozen=True)
class LoanParameters:
    """Inputs of one loan simulation."""

    principal: float
    annual_rate: float  # percent
    term_value: float
    term_unit: TermUnit = TermUnit.years
    rate_type: RateType = RateType.effective
    capitalization: int = DEFAULT_CAPITALIZATION  # periods per year, nominal only
    grace_type: GraceType = GraceType.none
    grace_months: int = 0
    bono_amount: float = 0.0
    currency: Currency = Currency.PEN
    start_date: Optional[date] = None

    @property
    def term_months(self) -> int:
        if TermUnit(self.term_unit) == TermUnit.years:
            return round(self.term_value * 12)
        return round(self.term_value)

    @property
    def term_years(self) -> int:
        """Term rounded to whole years, as stored with saved simulations."""
        return round(self.term_months / 12)

    @property
    def financed_amount(self) -> float:
        return self.principal - (self.bono_amount or 0.0)

    def validate(self) -> None:
        """Raise the matching LoanValidationError for the first violation found."""
        if not _is_positive(self.annual_rate):
            raise InvalidRateError("Annual rate must be a finite number greater than 0")
        try:
            rate_type = RateType(self.rate_type)
        except ValueError as exc:
            raise InvalidRateError(f"Unknown rate type: {self.rate_type}") from exc
        if (
            rate_type == RateType.nominal
            and self.capitalization not in SUPPORTED_CAPITALIZATIONS
        ):
            raise InvalidRateError(
                f"Capitalization must be one of {list(SUPPORTED_CAPITALIZATIONS)}"
            )

        try:
            TermUnit(self.term_unit)
        except ValueError as exc:
            raise InvalidTermError(f"Unknown term unit: {self.term_unit}") from exc
        if not _is_positive(self.term_value) or self.term_months <= 0:
            raise InvalidTermError("Term must be at least one month")

        try:
            grace_type = GraceType(self.grace_type)
        except ValueError as exc:
            raise InvalidGraceError(f"Unknown grace type: {self.grace_type}") from exc
        if self.grace_months < 0:
            raise InvalidGraceError("Grace months cannot be negative")
        if grace_type != GraceType.none and self.grace_months >= self.term_months:
            raise InvalidGraceError(
                f"Grace period ({self.grace_months} months) must be shorter than "
                f"the loan term ({self.term_months} months)"
            )

        if self.principal is None or not math.isfinite(self.principal):
            raise InvalidFinancingError("Principal must be a finite number")
        if self.bono_amount is not None and not math.isfinite(self.bono_amount):
            raise InvalidFinancingError("Bono amount must be a finite number")
        if self.bono_amount is not None and self.bono_amount < 0:
            raise InvalidFinancingError("Bono amount cannot be negative")
        if self.financed_amount <= 0:
            raise InvalidFinancingError(
                "Financed amount (principal minus bono) must be greater than 0"
            )


@dataclass(frozen=True)
class AppraisalResult:
    """NPV and IRR of the borrower's cash flows."""

    npv: float
    discount_rate: float  # percent
    irr: Optional[float] = None  # annual percent, None when not found
    irr_converged: bool = False


@dataclass(frozen=True)
class SimulationResult:
    """Everything produced by one simulation."""

    parameters: LoanParameters
    financed_amount: float
    monthly_rate: float
    effective_annual_rate: float  # percent
    term_months: int
    payment: float
    schedule: Schedule
    cash_flows: CashFlows
    appraisal: AppraisalResult

    @property
    def total_interest(self) -> float:
        return calculate_total_interest(self.schedule)

    @property
    def total_paid(self) -> float:
        return calculate_total_paid(self.schedule)


def appraise(cash_flows: CashFlows, discount_rate: float) -> AppraisalResult:
    """Compute NPV at ``discount_rate`` (annual percent) and the IRR."""
    npv = npv_at_annual_rate(cash_flows, discount_rate)
    irr_result = calculate_irr(cash_flows)
    return AppraisalResult(
        npv=npv,
        discount_rate=discount_rate,
        irr=irr_result.annual_rate if irr_result.found else None,
        irr_converged=irr_result.converged,
    )


def run_simulation(
    params: LoanParameters, discount_rate: float = DEFAULT_DISCOUNT_RATE
) -> SimulationResult:
    """
    Run a full loan simulation.

    Args:
        params: Loan parameters
        discount_rate: Annual discount rate in percent for the NPV

    Returns:
        SimulationResult with schedule, payment and appraisal

    Raises:
        LoanValidationError: If any parameter is structurally invalid
    """
    params.validate()
    check_discount_rate(discount_rate)

    monthly_rate = to_monthly_rate(
        params.annual_rate, params.rate_type, params.capitalization
    )
    financed_amount = params.financed_amount
    term_months = params.term_months

    schedule, payment = build_schedule(
        financed_amount=financed_amount,
        monthly_rate=monthly_rate,
        term_months=term_months,
        grace_type=params.grace_type,
        grace_months=params.grace_months,
        start_date=params.start_date,
    )
    cash_flows = project_cash_flows(financed_amount, schedule)
    appraisal = appraise(cash_flows, discount_rate)

    logger.debug(
        f"Simulated {financed_amount:.2f} over {term_months} months: "
        f"payment {payment:.2f}, NPV {appraisal.npv:.2f}, IRR {appraisal.irr}"
    )

    return SimulationResult(
        parameters=params,
        financed_amount=financed_amount,
        monthly_rate=monthly_rate,
        effective_annual_rate=monthly_to_annual(monthly_rate) * 100,
        term_months=term_months,
        payment=payment,
        schedule=schedule,
        cash_flows=cash_flows,
        appraisal=appraisal,
    )
