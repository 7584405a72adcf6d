"""
Portfolio Summary Module

Headline figures for the back-office dashboard, computed from the current
loans and clients.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass
from typing import Iterable, Optional

from .clients import Client
from .loans import Loan, LoanStatus


@dataclass
class PortfolioSummary:
    """Dashboard KPIs"""
    active_portfolio: Decimal          # Principal lent on ACTIVE loans
    expected_collection: Decimal       # Next installment of every ACTIVE loan
    outstanding_balance: Decimal       # Across ACTIVE and DEFAULTED loans
    total_clients: int
    active_loans: int
    defaulted_loans: int
    completed_loans: int
    collected_today: Decimal
    operations_today: int


def summarize_portfolio(
    loans: Iterable[Loan],
    clients: Iterable[Client],
    as_of: Optional[date] = None
) -> PortfolioSummary:
    """
    Compute dashboard KPIs

    Args:
        loans: All loans
        clients: All clients
        as_of: Day whose collections are reported (defaults to today)
    """
    as_of = as_of or date.today()
    loans = list(loans)

    active = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]
    defaulted = [loan for loan in loans if loan.status == LoanStatus.DEFAULTED]

    expected = Decimal('0')
    for loan in active:
        installment = loan.next_open_installment
        if installment is not None:
            expected += installment.amount

    collected = Decimal('0')
    operations = 0
    for loan in loans:
        for installment in loan.installments:
            if installment.paid_date and installment.paid_date.date() == as_of:
                collected += installment.paid_amount
                operations += 1

    return PortfolioSummary(
        active_portfolio=sum((loan.terms.principal for loan in active), Decimal('0')),
        expected_collection=expected,
        outstanding_balance=sum((loan.outstanding_balance for loan in active + defaulted), Decimal('0')),
        total_clients=len(list(clients)),
        active_loans=len(active),
        defaulted_loans=len(defaulted),
        completed_loans=sum(1 for loan in loans if loan.status == LoanStatus.COMPLETED),
        collected_today=collected,
        operations_today=operations,
    )
