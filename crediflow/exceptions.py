"""
Exception hierarchy for the CrediFlow back-office.

Reference errors double as ``LookupError`` and validation errors as
``ValueError`` so callers that only know the builtin families still catch them.
"""


class CrediflowError(Exception):
    """Base exception for all CrediFlow errors."""


class InvalidLoanTerms(CrediflowError, ValueError):
    """Raised when loan terms are malformed or out of range."""


class InvalidClientData(CrediflowError, ValueError):
    """Raised when a client profile fails validation."""


class EntityNotFoundError(CrediflowError, LookupError):
    """Raised when a referenced entity does not exist."""


class UnknownClient(EntityNotFoundError):
    """Raised when a client id does not resolve in the client directory."""

    def __init__(self, client_id: str):
        super().__init__(f"Client {client_id} not found")
        self.client_id = client_id


class LoanNotFound(EntityNotFoundError):
    """Raised when a loan id does not resolve."""

    def __init__(self, loan_id: str):
        super().__init__(f"Loan {loan_id} not found")
        self.loan_id = loan_id


class InstallmentNotFound(EntityNotFoundError):
    """Raised when an installment number does not exist within a loan."""

    def __init__(self, loan_id: str, installment_number: int):
        super().__init__(f"Installment {installment_number} not found in loan {loan_id}")
        self.loan_id = loan_id
        self.installment_number = installment_number


class LoanStateError(CrediflowError):
    """Raised when a loan or installment is in the wrong state for an operation."""


class AlreadySettled(LoanStateError):
    """Raised when a payment targets an installment that is already PAID."""

    def __init__(self, loan_id: str, installment_number: int):
        super().__init__(f"Installment {installment_number} of loan {loan_id} is already paid")
        self.loan_id = loan_id
        self.installment_number = installment_number
