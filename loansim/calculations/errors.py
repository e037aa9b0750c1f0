"""
Validation errors raised by the loan engine.

Every error is raised before a single schedule row is produced, so a failed
computation never leaves a partial result behind.
"""


class LoanValidationError(ValueError):
    """Base class for structurally invalid loan inputs."""

    code = "invalid_loan"


class InvalidRateError(LoanValidationError):
    """Rate is not positive, or the capitalization frequency is unsupported."""

    code = "invalid_rate"


class InvalidTermError(LoanValidationError):
    """Term is not positive once normalized to months."""

    code = "invalid_term"


class InvalidGraceError(LoanValidationError):
    """Grace months are negative or do not leave any amortizing period."""

    code = "invalid_grace"


class InvalidFinancingError(LoanValidationError):
    """Financed amount (principal minus bono) is not positive."""

    code = "invalid_financing"
