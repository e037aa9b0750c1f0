"""
Loan calculation API endpoints.

These endpoints accept inputs and return calculated results. Nothing is
persisted here.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import List, Optional
from datetime import date

from loansim.calculations import LoanValidationError
from loansim.calculations.amortization import GraceType
from loansim.calculations.engine import (
    Currency,
    LoanParameters,
    SimulationResult,
    TermUnit,
    run_simulation,
)
from loansim.calculations.irr import calculate_irr, npv_at_annual_rate
from loansim.calculations.rates import DEFAULT_CAPITALIZATION, RateType
from loansim.config import get_settings

router = APIRouter()
settings = get_settings()


def validation_error(exc: LoanValidationError) -> HTTPException:
    """Translate an engine validation error into a 400 response."""
    return HTTPException(
        status_code=400,
        detail={"code": exc.code, "message": str(exc)},
    )


class LoanInput(BaseModel):
    """Loan parameters as entered by the user."""

    principal: float
    annual_rate: float  # percent
    term_value: float
    term_unit: TermUnit = TermUnit.years
    rate_type: RateType = RateType.effective
    capitalization: int = DEFAULT_CAPITALIZATION
    grace_type: GraceType = GraceType.none
    grace_months: int = 0
    bono_amount: float = 0.0
    currency: Currency = Currency.PEN
    start_date: Optional[date] = None

    def to_parameters(self) -> LoanParameters:
        return LoanParameters(
            principal=self.principal,
            annual_rate=self.annual_rate,
            term_value=self.term_value,
            term_unit=self.term_unit,
            rate_type=self.rate_type,
            capitalization=self.capitalization,
            grace_type=self.grace_type,
            grace_months=self.grace_months,
            bono_amount=self.bono_amount,
            currency=self.currency,
            start_date=self.start_date,
        )


class ScheduleInput(LoanInput):
    """Loan parameters plus the discount rate for NPV."""

    discount_rate: Optional[float] = None  # annual percent


class ScheduleRow(BaseModel):
    period: int
    payment_date: Optional[date] = None
    payment: float
    interest: float
    principal: float
    balance: float
    grace: GraceType


class AppraisalResponse(BaseModel):
    npv: float
    discount_rate: float
    irr: Optional[float] = None
    irr_converged: bool


class ScheduleResponse(BaseModel):
    """Schedule with summary and appraisal metrics."""

    currency: Currency
    financed_amount: float
    monthly_rate: float
    effective_annual_rate: float
    term_months: int
    payment: float
    total_interest: float
    total_paid: float
    appraisal: AppraisalResponse
    schedule: List[ScheduleRow]


def result_to_response(result: SimulationResult) -> ScheduleResponse:
    """Convert a SimulationResult to the response schema."""
    return ScheduleResponse(
        currency=result.parameters.currency,
        financed_amount=result.financed_amount,
        monthly_rate=result.monthly_rate,
        effective_annual_rate=result.effective_annual_rate,
        term_months=result.term_months,
        payment=result.payment,
        total_interest=result.total_interest,
        total_paid=result.total_paid,
        appraisal=AppraisalResponse(
            npv=result.appraisal.npv,
            discount_rate=result.appraisal.discount_rate,
            irr=result.appraisal.irr,
            irr_converged=result.appraisal.irr_converged,
        ),
        schedule=[ScheduleRow(**row.to_dict()) for row in result.schedule],
    )


def simulate(inputs: LoanInput, discount_rate: Optional[float] = None) -> SimulationResult:
    """Run the engine, raising a 400 for invalid loan parameters."""
    if discount_rate is None:
        discount_rate = settings.default_discount_rate
    try:
        return run_simulation(inputs.to_parameters(), discount_rate)
    except LoanValidationError as e:
        raise validation_error(e)


@router.post("/schedule", response_model=ScheduleResponse)
async def calculate_schedule(inputs: ScheduleInput):
    """Generate the amortization schedule with NPV and IRR."""
    return result_to_response(simulate(inputs, inputs.discount_rate))


class NPVInput(BaseModel):
    """Input for NPV calculation."""

    cash_flows: List[float]
    discount_rate: Optional[float] = None  # annual percent


class NPVResponse(BaseModel):
    npv: float
    discount_rate: float


@router.post("/npv", response_model=NPVResponse)
async def calculate_npv_endpoint(inputs: NPVInput):
    """Calculate NPV of monthly cash flows at an annual discount rate."""
    discount_rate = inputs.discount_rate
    if discount_rate is None:
        discount_rate = settings.default_discount_rate

    try:
        npv = npv_at_annual_rate(inputs.cash_flows, discount_rate)
    except LoanValidationError as e:
        raise validation_error(e)

    return NPVResponse(npv=npv, discount_rate=discount_rate)


class IRRInput(BaseModel):
    """Input for IRR calculation."""

    cash_flows: List[float]


class IRRResponse(BaseModel):
    """IRR of monthly cash flows; ``irr`` is null when no sign change exists."""

    found: bool
    irr: Optional[float] = None  # annual percent
    monthly_irr: Optional[float] = None
    converged: bool
    iterations: int


@router.post("/irr", response_model=IRRResponse)
async def calculate_irr_endpoint(inputs: IRRInput):
    """Calculate IRR for given monthly cash flows."""
    try:
        result = calculate_irr(inputs.cash_flows)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return IRRResponse(
        found=result.found,
        irr=result.annual_rate,
        monthly_irr=result.monthly_rate,
        converged=result.converged,
        iterations=result.iterations,
    )
