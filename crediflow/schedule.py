"""
Amortization Schedule Module

Pure schedule generation: loan terms in, ordered installments plus aggregate
totals out. No storage, no clock, no shared state, so the same function serves
live previews while terms are being edited and the commit path that creates
the loan.

Rates are nominal *monthly* percentages. The period rate is a linear
conversion (monthly / 2 for biweekly, monthly / 4 for weekly) and due dates
advance by a fixed day count per period, not by calendar months.
"""

from decimal import Decimal
from datetime import date, datetime, timedelta
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from .currency import to_decimal
from .exceptions import InvalidLoanTerms

ZERO = Decimal('0')
HUNDRED = Decimal('100')

E = TypeVar('E', bound=Enum)


class PaymentFrequency(Enum):
    """Payment frequency options"""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

    @property
    def periods_per_month(self) -> int:
        """Divisor applied to the monthly rate to get the period rate"""
        return {
            PaymentFrequency.WEEKLY: 4,
            PaymentFrequency.BIWEEKLY: 2,
            PaymentFrequency.MONTHLY: 1,
        }[self]

    @property
    def days_between_payments(self) -> int:
        """Fixed day count between consecutive due dates"""
        return {
            PaymentFrequency.WEEKLY: 7,
            PaymentFrequency.BIWEEKLY: 15,
            PaymentFrequency.MONTHLY: 30,
        }[self]


class AmortizationMethod(Enum):
    """Methods for loan amortization"""
    FRENCH = "french"   # Fixed installment, interest on the reducing balance
    SIMPLE = "simple"   # Flat rate, interest on the original principal


class InstallmentStatus(Enum):
    """Installment lifecycle states"""
    PENDING = "pending"
    PARTIAL = "partial"   # Reserved; no operation produces it yet
    PAID = "paid"
    OVERDUE = "overdue"


def _coerce_enum(enum_cls: Type[E], value: Union[E, str], label: str) -> E:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip()
        try:
            return enum_cls(key.lower())
        except ValueError:
            if key.upper() in enum_cls.__members__:
                return enum_cls[key.upper()]
    raise InvalidLoanTerms(f"Unsupported {label}: {value!r}")


def _coerce_date(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise InvalidLoanTerms(f"Invalid start date: {value!r}")


def _coerce_term(value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise InvalidLoanTerms(f"Invalid term: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidLoanTerms(f"Term must be a whole number of periods, got {value!r}")


@dataclass(frozen=True)
class LoanTerms:
    """
    Loan terms as captured at origination.

    Validates and normalizes on construction, so any LoanTerms instance is a
    legal input to the schedule generator.

    Raises:
        InvalidLoanTerms: principal <= 0, term < 1, negative rate, bad date,
            unknown frequency or method
    """
    principal: Decimal
    monthly_rate: Decimal               # Nominal monthly rate in percent, e.g. 5 for 5%
    term: int                           # Number of payment periods
    frequency: PaymentFrequency
    method: AmortizationMethod
    start_date: date

    def __post_init__(self):
        try:
            principal = to_decimal(self.principal)
            monthly_rate = to_decimal(self.monthly_rate)
        except ValueError as e:
            raise InvalidLoanTerms(str(e))

        if principal <= ZERO:
            raise InvalidLoanTerms(f"Principal must be positive, got {principal}")
        if monthly_rate < ZERO:
            raise InvalidLoanTerms(f"Interest rate cannot be negative, got {monthly_rate}")

        term = _coerce_term(self.term)
        if term < 1:
            raise InvalidLoanTerms(f"Term must be at least one period, got {term}")

        object.__setattr__(self, 'principal', principal)
        object.__setattr__(self, 'monthly_rate', monthly_rate)
        object.__setattr__(self, 'term', term)
        object.__setattr__(self, 'frequency', _coerce_enum(PaymentFrequency, self.frequency, "payment frequency"))
        object.__setattr__(self, 'method', _coerce_enum(AmortizationMethod, self.method, "amortization method"))
        object.__setattr__(self, 'start_date', _coerce_date(self.start_date))

    @property
    def period_rate(self) -> Decimal:
        """Interest rate for one payment period, as a fraction"""
        return self.monthly_rate / HUNDRED / Decimal(self.frequency.periods_per_month)

    def due_date(self, number: int) -> date:
        """Due date of the installment with the given 1-based number"""
        return self.start_date + timedelta(days=self.frequency.days_between_payments * number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'principal': str(self.principal),
            'monthly_rate': str(self.monthly_rate),
            'term': self.term,
            'frequency': self.frequency.value,
            'method': self.method.value,
            'start_date': self.start_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoanTerms':
        return cls(
            principal=Decimal(data['principal']),
            monthly_rate=Decimal(data['monthly_rate']),
            term=data['term'],
            frequency=PaymentFrequency(data['frequency']),
            method=AmortizationMethod(data['method']),
            start_date=date.fromisoformat(data['start_date']),
        )


@dataclass
class Installment:
    """
    One scheduled payment obligation.

    The schedule fields never change after generation; only status,
    paid_amount and paid_date move, and only through the lifecycle manager.
    """
    number: int
    due_date: date
    amount: Decimal
    interest_part: Decimal
    capital_part: Decimal
    balance_remaining: Decimal
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_amount: Decimal = ZERO
    paid_date: Optional[datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID

    @property
    def is_open(self) -> bool:
        """Still collectable (pending or overdue)"""
        return self.status in (InstallmentStatus.PENDING, InstallmentStatus.OVERDUE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'due_date': self.due_date.isoformat(),
            'amount': str(self.amount),
            'interest_part': str(self.interest_part),
            'capital_part': str(self.capital_part),
            'balance_remaining': str(self.balance_remaining),
            'status': self.status.value,
            'paid_amount': str(self.paid_amount),
            'paid_date': self.paid_date.isoformat() if self.paid_date else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Installment':
        return cls(
            number=data['number'],
            due_date=date.fromisoformat(data['due_date']),
            amount=Decimal(data['amount']),
            interest_part=Decimal(data['interest_part']),
            capital_part=Decimal(data['capital_part']),
            balance_remaining=Decimal(data['balance_remaining']),
            status=InstallmentStatus(data['status']),
            paid_amount=Decimal(data['paid_amount']),
            paid_date=datetime.fromisoformat(data['paid_date']) if data.get('paid_date') else None,
        )


@dataclass
class AmortizationSchedule:
    """Generated installments plus aggregate totals"""
    installments: List[Installment]
    total_interest: Decimal
    total_payable: Decimal

    @property
    def installment_amount(self) -> Decimal:
        """Amount of the first installment (the level payment for both methods)"""
        return self.installments[0].amount


def calculate_level_payment(principal: Decimal, period_rate: Decimal, term: int) -> Decimal:
    """
    Level payment of a French (annuity) loan

    Standard formula: P * r(1+r)^n / ((1+r)^n - 1), or P / n when r is zero.
    """
    if period_rate == ZERO:
        return principal / Decimal(term)

    factor = (Decimal('1') + period_rate) ** term
    return principal * (period_rate * factor) / (factor - Decimal('1'))


def generate_schedule_for_terms(terms: LoanTerms) -> AmortizationSchedule:
    """
    Generate the full amortization schedule for validated terms

    FRENCH: fixed installment; interest on the running balance, capital is the
    remainder. The final installment's capital is the exact remaining balance
    so the schedule closes at zero.

    SIMPLE: interest on the original principal every period and capital of
    principal / term, both constant. The running balance still falls by the
    capital part each period.

    Amounts are not rounded, so sums of parts are exact only to the Decimal
    context's 28 significant digits. principal / term rarely divides evenly,
    which means SIMPLE ``capital_part * term`` and the sum of capital parts
    match the principal only to about 1e-18. Compare them with a tolerance,
    not ``==``. The final balance is always exactly zero.
    """
    principal = terms.principal
    rate = terms.period_rate
    term = terms.term

    if terms.method == AmortizationMethod.FRENCH:
        level_payment = calculate_level_payment(principal, rate, term)
    else:
        flat_interest = principal * rate
        flat_capital = principal / Decimal(term)
        level_payment = flat_capital + flat_interest

    installments: List[Installment] = []
    balance = principal
    total_interest = ZERO

    for number in range(1, term + 1):
        is_last = number == term

        if terms.method == AmortizationMethod.FRENCH:
            interest_part = balance * rate
            if is_last:
                capital_part = balance
                amount = capital_part + interest_part
            else:
                capital_part = level_payment - interest_part
                amount = level_payment
        else:
            interest_part = flat_interest
            capital_part = flat_capital
            amount = level_payment

        balance = balance - capital_part
        if is_last or balance < ZERO:
            # Absorb Decimal drift left by the final division
            balance = ZERO

        installments.append(Installment(
            number=number,
            due_date=terms.due_date(number),
            amount=amount,
            interest_part=interest_part,
            capital_part=capital_part,
            balance_remaining=balance,
        ))
        total_interest += interest_part

    return AmortizationSchedule(
        installments=installments,
        total_interest=total_interest,
        total_payable=principal + total_interest,
    )


def generate_schedule(
    principal: Union[Decimal, int, str],
    monthly_rate_percent: Union[Decimal, int, str],
    term_count: int,
    frequency: Union[PaymentFrequency, str],
    method: Union[AmortizationMethod, str],
    start_date: Union[date, str]
) -> AmortizationSchedule:
    """
    Generate an amortization schedule from raw loan parameters

    Args:
        principal: Amount lent, > 0
        monthly_rate_percent: Nominal monthly rate in percent, >= 0
        term_count: Number of payment periods, >= 1
        frequency: WEEKLY, BIWEEKLY or MONTHLY
        method: FRENCH or SIMPLE
        start_date: Loan start date; the first installment falls one period later

    Returns:
        AmortizationSchedule with installments and totals

    Raises:
        InvalidLoanTerms: If any parameter is out of range
    """
    terms = LoanTerms(
        principal=principal,
        monthly_rate=monthly_rate_percent,
        term=term_count,
        frequency=frequency,
        method=method,
        start_date=start_date,
    )
    return generate_schedule_for_terms(terms)
