"""
Collections Queue Module

Builds the daily collection worklist: the next collectable installment of
every active or defaulted loan, ordered by due date, with the borrower and
days past due attached.
"""

from datetime import date
from dataclasses import dataclass
from typing import List, Optional

from .clients import Client, ClientManager
from .loans import Loan, LoanManager, LoanStatus
from .schedule import Installment


def days_overdue(due_date: date, as_of: Optional[date] = None) -> int:
    """Whole days elapsed since the due date, never negative"""
    as_of = as_of or date.today()
    return max((as_of - due_date).days, 0)


@dataclass
class DueInstallment:
    """One row of the collection worklist"""
    loan: Loan
    client: Optional[Client]
    installment: Installment
    days_overdue: int

    @property
    def is_overdue(self) -> bool:
        return self.days_overdue > 0


@dataclass
class Debtor:
    """Defaulted loan with its borrower"""
    loan: Loan
    client: Optional[Client]


class CollectionsQueue:
    """
    Read-only view over loans and clients for collection work
    """

    def __init__(self, loan_manager: LoanManager, client_manager: ClientManager):
        self.loan_manager = loan_manager
        self.client_manager = client_manager

    def _collectable_loans(self) -> List[Loan]:
        return [
            loan for loan in self.loan_manager.list_loans()
            if loan.status in (LoanStatus.ACTIVE, LoanStatus.DEFAULTED)
        ]

    def get_due_installments(self, as_of: Optional[date] = None) -> List[DueInstallment]:
        """
        Next pending or overdue installment per collectable loan

        Returns:
            Rows sorted by due date, earliest first
        """
        as_of = as_of or date.today()
        rows = []

        for loan in self._collectable_loans():
            installment = loan.next_open_installment
            if installment is None:
                continue
            rows.append(DueInstallment(
                loan=loan,
                client=self.client_manager.get_client(loan.client_id),
                installment=installment,
                days_overdue=days_overdue(installment.due_date, as_of),
            ))

        rows.sort(key=lambda row: row.installment.due_date)
        return rows

    def top_debtors(self, limit: int = 5) -> List[Debtor]:
        """Defaulted loans with their borrowers, oldest loans first"""
        defaulted = self.loan_manager.list_loans(status=LoanStatus.DEFAULTED)
        return [
            Debtor(loan=loan, client=self.client_manager.get_client(loan.client_id))
            for loan in defaulted[:limit]
        ]
