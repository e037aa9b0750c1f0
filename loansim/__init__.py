"""
Loan simulator: fixed-installment schedules with NPV and IRR appraisal.
"""

__version__ = "0.1.0"
