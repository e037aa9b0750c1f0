"""
Interest Rate Conversions

Normalizes annual rates (effective, or nominal with a capitalization
frequency) into the effective monthly rate used by the schedule.
"""

import enum

from loansim.calculations.errors import InvalidRateError

SUPPORTED_CAPITALIZATIONS = (1, 2, 4, 12)
DEFAULT_CAPITALIZATION = 12


class RateType(str, enum.Enum):
    """How the annual rate entered by the user is quoted."""
    effective = "effective"
    nominal = "nominal"


def monthly_to_annual(monthly_rate: float) -> float:
    """Convert a monthly rate to an effective annual rate (both decimals)."""
    return ((1 + monthly_rate) ** 12) - 1


def annual_to_monthly(annual_rate: float) -> float:
    """Convert an effective annual rate to a monthly rate (both decimals)."""
    return ((1 + annual_rate) ** (1 / 12)) - 1


def nominal_to_effective(nominal_rate: float, capitalization: int) -> float:
    """
    Convert a nominal annual rate to its effective annual equivalent.

    Args:
        nominal_rate: Nominal annual rate as decimal (e.g., 0.10 for 10%)
        capitalization: Capitalization periods per year

    Returns:
        Effective annual rate as decimal
    """
    if capitalization not in SUPPORTED_CAPITALIZATIONS:
        raise InvalidRateError(
            f"Capitalization must be one of {list(SUPPORTED_CAPITALIZATIONS)}, "
            f"got {capitalization}"
        )
    return (1 + nominal_rate / capitalization) ** capitalization - 1


def to_effective_annual_rate(
    rate: float,
    rate_type: RateType = RateType.effective,
    capitalization: int = DEFAULT_CAPITALIZATION,
) -> float:
    """
    Effective annual rate (decimal) for a rate quoted in percent.

    Capitalization is ignored for effective rates.
    """
    if rate is None or rate <= 0:
        raise InvalidRateError("Annual rate must be greater than 0")

    try:
        rate_type = RateType(rate_type)
    except ValueError as exc:
        raise InvalidRateError(f"Unknown rate type: {rate_type}") from exc

    if rate_type == RateType.nominal:
        return nominal_to_effective(rate / 100, capitalization)
    return rate / 100


def to_monthly_rate(
    rate: float,
    rate_type: RateType = RateType.effective,
    capitalization: int = DEFAULT_CAPITALIZATION,
) -> float:
    """
    Calculate the effective monthly rate for an annual rate.

    Args:
        rate: Annual rate in percent (e.g., 8.5 for 8.5%)
        rate_type: Whether ``rate`` is effective or nominal
        capitalization: Periods per year, only used for nominal rates

    Returns:
        Effective monthly rate as decimal

    Raises:
        InvalidRateError: If the rate or capitalization is invalid
    """
    monthly_rate = annual_to_monthly(
        to_effective_annual_rate(rate, rate_type, capitalization)
    )
    if monthly_rate <= 0:
        raise InvalidRateError("Monthly rate must be greater than 0")
    return monthly_rate
