"""
IRR and NPV Calculations

NPV discounts a monthly cash-flow vector; IRR is found by bisection over a
fixed monthly-rate bracket and reported as an effective annual percentage.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from loansim.calculations.errors import InvalidRateError
from loansim.calculations.rates import annual_to_monthly, monthly_to_annual

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 1000
TOLERANCE = 1e-7
IRR_LOWER_BOUND = -0.99
IRR_UPPER_BOUND = 5.0


@dataclass(frozen=True)
class IRRResult:
    """Outcome of an IRR search.

    ``found`` is False when the bracket holds no sign change. ``converged``
    is False when the iteration budget ran out before the NPV tolerance was
    met; the rate is then the last midpoint.
    """

    found: bool
    monthly_rate: Optional[float] = None
    annual_rate: Optional[float] = None
    converged: bool = False
    iterations: int = 0


def calculate_npv(cash_flows: Sequence[float], monthly_rate: float) -> float:
    """
    Calculate NPV of monthly cash flows.

    Args:
        cash_flows: Cash flows, index 0 undiscounted
        monthly_rate: Monthly discount rate as decimal

    Returns:
        NPV value
    """
    flows = np.asarray(cash_flows, dtype=float)
    periods = np.arange(len(flows))
    # zero flows are skipped so an overflowing discount factor cannot yield nan
    mask = flows != 0
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        discounted = flows[mask] / np.power(1 + monthly_rate, periods[mask])
    return float(np.sum(discounted))


def npv_at_annual_rate(cash_flows: Sequence[float], annual_rate: float) -> float:
    """
    Calculate NPV of monthly cash flows at an annual discount rate.

    Args:
        cash_flows: Monthly cash flows
        annual_rate: Effective annual discount rate in percent (e.g., 10 for 10%)

    Returns:
        NPV value
    """
    check_discount_rate(annual_rate)
    return calculate_npv(cash_flows, annual_to_monthly(annual_rate / 100))


def check_discount_rate(annual_rate: float) -> None:
    """Raise InvalidRateError unless the annual percent rate is finite and above -100."""
    if annual_rate is None or not math.isfinite(annual_rate) or annual_rate <= -100:
        raise InvalidRateError("Discount rate must be a finite number greater than -100%")


def _irr_result(monthly_rate: float, converged: bool, iterations: int) -> IRRResult:
    return IRRResult(
        found=True,
        monthly_rate=monthly_rate,
        annual_rate=monthly_to_annual(monthly_rate) * 100,
        converged=converged,
        iterations=iterations,
    )


def calculate_irr(
    cash_flows: Sequence[float],
    low: float = IRR_LOWER_BOUND,
    high: float = IRR_UPPER_BOUND,
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = TOLERANCE,
) -> IRRResult:
    """
    Calculate IRR of monthly cash flows using bisection.

    Only the single bracket [low, high] is searched. If NPV has the same
    sign at both ends the IRR is reported as not found. When the budget is
    exhausted the last midpoint is returned with ``converged=False``.

    Args:
        cash_flows: Monthly cash flows (at least two)
        low: Lower monthly-rate bound
        high: Upper monthly-rate bound
        max_iterations: Bisection step budget
        tolerance: Absolute NPV tolerance

    Returns:
        IRRResult with the annual rate in percent

    Raises:
        ValueError: If fewer than two cash flows are given
    """
    if len(cash_flows) < 2:
        raise ValueError("At least 2 cash flows required")

    f_low = calculate_npv(cash_flows, low)
    f_high = calculate_npv(cash_flows, high)

    if np.isnan(f_low) or np.isnan(f_high) or f_low * f_high > 0:
        logger.debug("IRR not found: no sign change in the search bracket")
        return IRRResult(found=False)
    if f_low == 0:
        return _irr_result(low, converged=True, iterations=0)
    if f_high == 0:
        return _irr_result(high, converged=True, iterations=0)

    mid = (low + high) / 2
    for iteration in range(1, max_iterations + 1):
        mid = (low + high) / 2
        f_mid = calculate_npv(cash_flows, mid)

        if abs(f_mid) < tolerance:
            logger.debug(f"IRR converged after {iteration} iterations")
            return _irr_result(mid, converged=True, iterations=iteration)

        if (f_mid < 0) == (f_low < 0):
            low, f_low = mid, f_mid
        else:
            high = mid

    logger.warning(
        f"IRR did not reach tolerance {tolerance} in {max_iterations} iterations; "
        f"returning best estimate {mid:.10f}"
    )
    return _irr_result(mid, converged=False, iterations=max_iterations)
