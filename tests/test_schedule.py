"""
Test suite for amortization schedule generation

Covers French (level payment) and simple (flat) interest schedules, due date
stepping per frequency, aggregate totals and term validation. Schedule math
runs in full Decimal precision; assertions that compare against hand-computed
values use a tolerance, structural invariants are checked exactly.
"""

import pytest
from decimal import Decimal
from datetime import date, datetime

from crediflow.exceptions import InvalidLoanTerms
from crediflow.schedule import (
    AmortizationMethod, InstallmentStatus, LoanTerms, PaymentFrequency,
    calculate_level_payment, generate_schedule, generate_schedule_for_terms
)


def approx(value: Decimal, expected: str, tolerance: str = "0.0001") -> bool:
    return abs(value - Decimal(expected)) <= Decimal(tolerance)


class TestLoanTerms:
    """Test loan terms validation and normalization"""

    def test_terms_normalize_raw_inputs(self):
        """Test strings and enum names are coerced on construction"""
        terms = LoanTerms(
            principal="1000",
            monthly_rate="5",
            term="3",
            frequency="MONTHLY",
            method="french",
            start_date="2024-01-01"
        )

        assert terms.principal == Decimal("1000")
        assert terms.monthly_rate == Decimal("5")
        assert terms.term == 3
        assert terms.frequency == PaymentFrequency.MONTHLY
        assert terms.method == AmortizationMethod.FRENCH
        assert terms.start_date == date(2024, 1, 1)

    def test_datetime_start_is_truncated_to_date(self):
        """Test a datetime start collapses to its calendar date"""
        terms = LoanTerms(Decimal("500"), Decimal("2"), 2, PaymentFrequency.WEEKLY,
                          AmortizationMethod.SIMPLE, datetime(2024, 5, 10, 15, 30))
        assert terms.start_date == date(2024, 5, 10)

    @pytest.mark.parametrize("principal", ["0", "-100"])
    def test_non_positive_principal_rejected(self, principal):
        """Test principal must be strictly positive"""
        with pytest.raises(InvalidLoanTerms):
            LoanTerms(principal, "5", 3, "monthly", "french", "2024-01-01")

    def test_negative_rate_rejected(self):
        """Test negative interest rates are rejected"""
        with pytest.raises(InvalidLoanTerms):
            LoanTerms("1000", "-1", 3, "monthly", "french", "2024-01-01")

    @pytest.mark.parametrize("term", [0, -2, "abc", "2.5"])
    def test_invalid_term_rejected(self, term):
        """Test term must be a whole number of at least one period"""
        with pytest.raises(InvalidLoanTerms):
            LoanTerms("1000", "5", term, "monthly", "french", "2024-01-01")

    def test_unknown_frequency_rejected(self):
        """Test unknown frequencies are rejected"""
        with pytest.raises(InvalidLoanTerms):
            LoanTerms("1000", "5", 3, "daily", "french", "2024-01-01")

    def test_unknown_method_rejected(self):
        """Test unknown amortization methods are rejected"""
        with pytest.raises(InvalidLoanTerms):
            LoanTerms("1000", "5", 3, "monthly", "german", "2024-01-01")

    def test_invalid_start_date_rejected(self):
        """Test malformed start dates are rejected"""
        with pytest.raises(InvalidLoanTerms):
            LoanTerms("1000", "5", 3, "monthly", "french", "not-a-date")

    def test_unparsable_principal_rejected(self):
        """Test non-numeric principal is reported as invalid terms"""
        with pytest.raises(InvalidLoanTerms):
            LoanTerms("lots", "5", 3, "monthly", "french", "2024-01-01")

    def test_invalid_terms_are_value_errors(self):
        """Test InvalidLoanTerms can be caught as ValueError"""
        with pytest.raises(ValueError):
            LoanTerms("0", "5", 3, "monthly", "french", "2024-01-01")

    def test_period_rate_linear_conversion(self):
        """Test monthly rate is split linearly across periods"""
        monthly = LoanTerms("1000", "4", 3, "monthly", "french", "2024-01-01")
        biweekly = LoanTerms("1000", "4", 3, "biweekly", "french", "2024-01-01")
        weekly = LoanTerms("1000", "4", 3, "weekly", "french", "2024-01-01")

        assert monthly.period_rate == Decimal("0.04")
        assert biweekly.period_rate == Decimal("0.02")
        assert weekly.period_rate == Decimal("0.01")

    def test_dict_roundtrip(self):
        """Test terms survive serialization"""
        terms = LoanTerms("2500.50", "3.5", 12, "biweekly", "simple", "2024-02-29")
        assert LoanTerms.from_dict(terms.to_dict()) == terms


class TestFrenchSchedule:
    """Test level-payment (French) amortization"""

    def setup_method(self):
        self.schedule = generate_schedule(
            principal=Decimal("1000"),
            monthly_rate_percent=Decimal("5"),
            term_count=3,
            frequency=PaymentFrequency.MONTHLY,
            method=AmortizationMethod.FRENCH,
            start_date=date(2024, 1, 1)
        )

    def test_level_payment(self):
        """Test the standard annuity formula"""
        payment = calculate_level_payment(Decimal("1000"), Decimal("0.05"), 3)
        assert approx(payment, "367.2085646")

    def test_installment_breakdown(self):
        """Test interest on running balance, capital as the remainder"""
        first, second, third = self.schedule.installments

        assert first.interest_part == Decimal("50")
        assert approx(first.capital_part, "317.2085646")
        assert approx(first.balance_remaining, "682.7914354")

        assert approx(second.interest_part, "34.13957177")
        assert approx(second.capital_part, "333.0689928")
        assert approx(second.balance_remaining, "349.7224426")

        assert approx(third.interest_part, "17.48612213")
        assert approx(third.capital_part, "349.7224426")
        assert third.balance_remaining == Decimal("0")

    def test_totals(self):
        """Test total interest and total payable"""
        assert approx(self.schedule.total_interest, "101.6257", "0.001")
        assert approx(self.schedule.total_payable, "1101.6257", "0.001")
        assert self.schedule.total_payable == Decimal("1000") + self.schedule.total_interest

    def test_capital_sums_to_principal(self):
        """Test the final installment closes the balance"""
        total_capital = sum((i.capital_part for i in self.schedule.installments), Decimal("0"))
        assert abs(total_capital - Decimal("1000")) < Decimal("1e-20")

    def test_amount_is_capital_plus_interest(self):
        """Test every installment amount splits into its parts"""
        for installment in self.schedule.installments:
            assert abs(installment.amount - (installment.capital_part + installment.interest_part)) < Decimal("1e-20")

    def test_balance_strictly_decreasing(self):
        """Test the remaining balance falls every period"""
        balances = [i.balance_remaining for i in self.schedule.installments]
        assert all(a > b for a, b in zip(balances, balances[1:]))

    def test_monthly_due_dates(self):
        """Test monthly periods step by thirty days"""
        assert [i.due_date for i in self.schedule.installments] == [
            date(2024, 1, 31), date(2024, 3, 1), date(2024, 3, 31)
        ]

    def test_fresh_installments_pending(self):
        """Test a new schedule has nothing paid"""
        for number, installment in enumerate(self.schedule.installments, start=1):
            assert installment.number == number
            assert installment.status == InstallmentStatus.PENDING
            assert installment.paid_amount == Decimal("0")
            assert installment.paid_date is None

    def test_installment_amount(self):
        """Test the headline installment amount is the level payment"""
        assert approx(self.schedule.installment_amount, "367.2085646")

    def test_zero_rate(self):
        """Test a zero rate divides the principal evenly"""
        schedule = generate_schedule("900", "0", 3, "monthly", "french", "2024-01-01")

        assert schedule.total_interest == Decimal("0")
        for installment in schedule.installments:
            assert installment.amount == Decimal("300")
            assert installment.interest_part == Decimal("0")
        assert schedule.installments[-1].balance_remaining == Decimal("0")

    def test_single_period(self):
        """Test a one-period loan repays everything plus one period of interest"""
        schedule = generate_schedule("1000", "5", 1, "monthly", "french", "2024-01-01")

        assert len(schedule.installments) == 1
        only = schedule.installments[0]
        assert only.capital_part == Decimal("1000")
        assert only.interest_part == Decimal("50")
        assert only.amount == Decimal("1050")
        assert only.balance_remaining == Decimal("0")

    def test_long_schedule_closes_at_zero(self):
        """Test a long weekly schedule still ends at a zero balance"""
        schedule = generate_schedule("15000", "6", 52, "weekly", "french", "2024-01-01")

        assert len(schedule.installments) == 52
        assert schedule.installments[-1].balance_remaining == Decimal("0")
        total_capital = sum((i.capital_part for i in schedule.installments), Decimal("0"))
        assert abs(total_capital - Decimal("15000")) < Decimal("1e-18")


class TestSimpleSchedule:
    """Test flat (simple) interest amortization"""

    def setup_method(self):
        self.terms = LoanTerms(
            principal=Decimal("1000"),
            monthly_rate=Decimal("5"),
            term=3,
            frequency=PaymentFrequency.MONTHLY,
            method=AmortizationMethod.SIMPLE,
            start_date=date(2024, 1, 1)
        )
        self.schedule = generate_schedule_for_terms(self.terms)

    def test_constant_parts(self):
        """Test interest on the original principal every period"""
        assert len({i.amount for i in self.schedule.installments}) == 1
        for installment in self.schedule.installments:
            assert installment.interest_part == Decimal("50")
            assert approx(installment.capital_part, "333.3333333")
            assert approx(installment.amount, "383.3333333")

    def test_total_interest(self):
        """Test total interest is principal * rate * term"""
        assert self.schedule.total_interest == Decimal("150")
        assert self.schedule.total_payable == Decimal("1150")

    def test_balance_ends_at_zero(self):
        """Test the running balance reaches zero after the last installment"""
        assert self.schedule.installments[-1].balance_remaining == Decimal("0")
        assert approx(self.schedule.installments[0].balance_remaining, "666.6666667")

    def test_capital_sums_to_principal_within_precision(self):
        """Test capital parts add back to the principal within Decimal precision"""
        total_capital = sum((i.capital_part for i in self.schedule.installments), Decimal("0"))
        assert abs(total_capital - Decimal("1000")) < Decimal("1e-18")

    def test_biweekly_due_dates_and_rate(self):
        """Test biweekly periods step by fifteen days at half the monthly rate"""
        schedule = generate_schedule("1000", "4", 4, "biweekly", "simple", "2024-01-01")

        assert [i.due_date for i in schedule.installments] == [
            date(2024, 1, 16), date(2024, 1, 31), date(2024, 2, 15), date(2024, 3, 1)
        ]
        assert schedule.installments[0].interest_part == Decimal("20")
        assert schedule.total_interest == Decimal("80")

    def test_weekly_due_dates(self):
        """Test weekly periods step by seven days"""
        schedule = generate_schedule("1000", "4", 3, "weekly", "simple", "2024-01-01")
        assert [i.due_date for i in schedule.installments] == [
            date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22)
        ]

    def test_generation_is_deterministic(self):
        """Test the same terms always produce the same schedule"""
        again = generate_schedule_for_terms(self.terms)
        assert [i.to_dict() for i in again.installments] == [i.to_dict() for i in self.schedule.installments]


class TestScheduleInvariants:
    """Structural properties that hold for every valid combination of terms"""

    @pytest.mark.parametrize("method", ["french", "simple"])
    @pytest.mark.parametrize("frequency", ["monthly", "biweekly", "weekly"])
    @pytest.mark.parametrize("rate", ["0", "2.5", "7"])
    @pytest.mark.parametrize("term", [1, 2, 12, 52])
    def test_schedule_invariants(self, method, frequency, rate, term):
        principal = Decimal("2500.75")
        schedule = generate_schedule(principal, rate, term, frequency, method, "2024-01-01")
        installments = schedule.installments

        assert [i.number for i in installments] == list(range(1, term + 1))

        total_capital = sum((i.capital_part for i in installments), Decimal("0"))
        assert abs(total_capital - principal) < Decimal("1e-18")

        for installment in installments:
            assert abs(installment.amount - (installment.interest_part + installment.capital_part)) < Decimal("1e-18")
            assert installment.interest_part >= 0
            assert installment.capital_part > 0

        balances = [principal] + [i.balance_remaining for i in installments]
        assert all(a >= b for a, b in zip(balances, balances[1:]))
        assert installments[-1].balance_remaining == Decimal("0")

        due_dates = [i.due_date for i in installments]
        assert due_dates == sorted(set(due_dates))
