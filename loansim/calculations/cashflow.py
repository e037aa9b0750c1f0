"""
Cash Flow Projection

Turns an amortization schedule into the borrower's signed cash-flow stream.
"""

from typing import Tuple

from loansim.calculations.amortization import Schedule

CashFlows = Tuple[float, ...]


def project_cash_flows(financed_amount: float, schedule: Schedule) -> CashFlows:
    """
    Build the cash-flow vector used for NPV and IRR.

    Index 0 is the disbursement received (positive); each following index
    is that month's payment (negative).
    """
    return (financed_amount,) + tuple(-row.payment for row in schedule)
