"""
Pydantic schemas for API requests and responses
"""

from decimal import Decimal
from datetime import date
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ..clients import Client
from ..collections import Debtor, DueInstallment
from ..currency import Currency, Money
from ..loans import Loan
from ..portfolio import PortfolioSummary
from ..schedule import AmortizationSchedule, Installment, LoanTerms


class MoneyModel(BaseModel):
    amount: str = Field(..., description="Amount rounded to currency precision")
    currency: str = Field(..., description="Currency code (MXN, USD, ...)")
    formatted: str = Field(..., description="Display string, e.g. $1,234.50")

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=str(money.amount), currency=money.currency.code, formatted=money.to_string())

    @classmethod
    def from_decimal(cls, value: Decimal, currency: Currency) -> 'MoneyModel':
        return cls.from_money(Money(value, currency))


# Client schemas
class CreateClientRequest(BaseModel):
    name: str
    document_id: str
    phone: str = ""
    email: str = ""
    address: str = ""
    monthly_income: str = "0"
    credit_score: int = 70
    notes: Optional[str] = None
    avatar_url: Optional[str] = None


class ClientResponse(BaseModel):
    id: str
    name: str
    document_id: str
    phone: str
    email: str
    address: str
    monthly_income: MoneyModel
    credit_score: int
    notes: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: str

    @classmethod
    def from_client(cls, client: Client, currency: Currency) -> 'ClientResponse':
        return cls(
            id=client.id,
            name=client.name,
            document_id=client.document_id,
            phone=client.phone,
            email=client.email,
            address=client.address,
            monthly_income=MoneyModel.from_decimal(client.monthly_income, currency),
            credit_score=client.credit_score,
            notes=client.notes,
            avatar_url=client.avatar_url,
            created_at=client.created_at.isoformat()
        )


# Loan schemas
class LoanTermsModel(BaseModel):
    principal: str = Field(..., description="Amount lent, decimal string")
    monthly_rate: str = Field(..., description="Nominal monthly rate in percent")
    term: int = Field(..., description="Number of payment periods")
    frequency: str = "monthly"
    method: str = "french"
    start_date: str = Field(..., description="ISO date")

    def to_loan_terms(self) -> LoanTerms:
        return LoanTerms(
            principal=self.principal,
            monthly_rate=self.monthly_rate,
            term=self.term,
            frequency=self.frequency,
            method=self.method,
            start_date=self.start_date
        )

    @classmethod
    def from_terms(cls, terms: LoanTerms) -> 'LoanTermsModel':
        return cls(**terms.to_dict())


class CreateLoanRequest(BaseModel):
    client_id: str
    terms: LoanTermsModel
    request_advisory: bool = False


class InstallmentResponse(BaseModel):
    number: int
    due_date: str
    amount: MoneyModel
    interest_part: MoneyModel
    capital_part: MoneyModel
    balance_remaining: MoneyModel
    status: str
    paid_amount: MoneyModel
    paid_date: Optional[str] = None

    @classmethod
    def from_installment(cls, installment: Installment, currency: Currency) -> 'InstallmentResponse':
        return cls(
            number=installment.number,
            due_date=installment.due_date.isoformat(),
            amount=MoneyModel.from_decimal(installment.amount, currency),
            interest_part=MoneyModel.from_decimal(installment.interest_part, currency),
            capital_part=MoneyModel.from_decimal(installment.capital_part, currency),
            balance_remaining=MoneyModel.from_decimal(installment.balance_remaining, currency),
            status=installment.status.value,
            paid_amount=MoneyModel.from_decimal(installment.paid_amount, currency),
            paid_date=installment.paid_date.isoformat() if installment.paid_date else None
        )


class ScheduleResponse(BaseModel):
    installment_amount: MoneyModel
    total_interest: MoneyModel
    total_payable: MoneyModel
    installments: List[InstallmentResponse]

    @classmethod
    def from_schedule(cls, schedule: AmortizationSchedule, currency: Currency) -> 'ScheduleResponse':
        return cls(
            installment_amount=MoneyModel.from_decimal(schedule.installment_amount, currency),
            total_interest=MoneyModel.from_decimal(schedule.total_interest, currency),
            total_payable=MoneyModel.from_decimal(schedule.total_payable, currency),
            installments=[InstallmentResponse.from_installment(i, currency) for i in schedule.installments]
        )


class LoanResponse(BaseModel):
    id: str
    client_id: str
    status: str
    terms: LoanTermsModel
    total_interest: MoneyModel
    total_payable: MoneyModel
    outstanding_balance: MoneyModel
    progress: int
    created_at: str
    installments: List[InstallmentResponse]
    advisory: Optional[Dict[str, Any]] = None

    @classmethod
    def from_loan(cls, loan: Loan, currency: Currency) -> 'LoanResponse':
        return cls(
            id=loan.id,
            client_id=loan.client_id,
            status=loan.status.value,
            terms=LoanTermsModel.from_terms(loan.terms),
            total_interest=MoneyModel.from_decimal(loan.total_interest, currency),
            total_payable=MoneyModel.from_decimal(loan.total_payable, currency),
            outstanding_balance=MoneyModel.from_decimal(loan.outstanding_balance, currency),
            progress=loan.progress,
            created_at=loan.created_at.isoformat(),
            installments=[InstallmentResponse.from_installment(i, currency) for i in loan.installments],
            advisory=loan.advisory
        )


# Collections schemas
class DueInstallmentResponse(BaseModel):
    loan_id: str
    client_id: str
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    installment: InstallmentResponse
    term: int
    days_overdue: int
    is_overdue: bool

    @classmethod
    def from_row(cls, row: DueInstallment, currency: Currency) -> 'DueInstallmentResponse':
        return cls(
            loan_id=row.loan.id,
            client_id=row.loan.client_id,
            client_name=row.client.name if row.client else None,
            client_phone=row.client.phone if row.client else None,
            installment=InstallmentResponse.from_installment(row.installment, currency),
            term=row.loan.terms.term,
            days_overdue=row.days_overdue,
            is_overdue=row.is_overdue
        )


class DebtorResponse(BaseModel):
    loan_id: str
    client_name: Optional[str] = None
    principal: MoneyModel

    @classmethod
    def from_debtor(cls, debtor: Debtor, currency: Currency) -> 'DebtorResponse':
        return cls(
            loan_id=debtor.loan.id,
            client_name=debtor.client.name if debtor.client else None,
            principal=MoneyModel.from_decimal(debtor.loan.terms.principal, currency)
        )


class OverdueSweepRequest(BaseModel):
    as_of: Optional[date] = None
    grace_days: Optional[int] = None


class CollectionMessageRequest(BaseModel):
    client_name: str
    days_overdue: int
    amount_due: Decimal = Field(..., ge=0, description="Amount owed, decimal string")


class CollectionMessageResponse(BaseModel):
    message: str


# Advisory schemas
class RiskAnalysisRequest(BaseModel):
    client_id: str
    amount: Decimal = Field(..., gt=0, description="Requested principal, decimal string")
    term: int


class RiskAnalysisResponse(BaseModel):
    risk_level: str
    score: int
    reasoning: str
    recommendation: str
    source: str


# Portfolio schemas
class PortfolioSummaryResponse(BaseModel):
    active_portfolio: MoneyModel
    expected_collection: MoneyModel
    outstanding_balance: MoneyModel
    collected_today: MoneyModel
    operations_today: int
    total_clients: int
    active_loans: int
    defaulted_loans: int
    completed_loans: int

    @classmethod
    def from_summary(cls, summary: PortfolioSummary, currency: Currency) -> 'PortfolioSummaryResponse':
        return cls(
            active_portfolio=MoneyModel.from_decimal(summary.active_portfolio, currency),
            expected_collection=MoneyModel.from_decimal(summary.expected_collection, currency),
            outstanding_balance=MoneyModel.from_decimal(summary.outstanding_balance, currency),
            collected_today=MoneyModel.from_decimal(summary.collected_today, currency),
            operations_today=summary.operations_today,
            total_clients=summary.total_clients,
            active_loans=summary.active_loans,
            defaulted_loans=summary.defaulted_loans,
            completed_loans=summary.completed_loans
        )
