"""
Tests for the loan calculation engine.
"""

import pytest
from datetime import date

from loansim.calculations import (
    InvalidFinancingError,
    InvalidGraceError,
    InvalidRateError,
    InvalidTermError,
)
from loansim.calculations.amortization import (
    GraceType,
    build_schedule,
    calculate_payment,
    calculate_total_interest,
)
from loansim.calculations.cashflow import project_cash_flows
from loansim.calculations.engine import (
    LoanParameters,
    RateType,
    TermUnit,
    appraise,
    run_simulation,
)
from loansim.calculations.irr import (
    calculate_irr,
    calculate_npv,
    npv_at_annual_rate,
)
from loansim.calculations.rates import (
    annual_to_monthly,
    monthly_to_annual,
    nominal_to_effective,
    to_monthly_rate,
)


def assert_row_invariants(schedule):
    """Check the per-row payment identities for every grace regime."""
    for expected_period, row in enumerate(schedule, start=1):
        assert row.period == expected_period
        assert row.balance >= 0
        if row.grace == GraceType.total:
            assert row.payment == 0
            assert row.principal == 0
        elif row.grace == GraceType.partial:
            assert row.payment == row.interest
            assert row.principal == 0
        else:
            assert row.payment == pytest.approx(row.interest + row.principal, abs=1e-9)


class TestRateConversion:
    """Test annual to monthly rate conversion."""

    def test_effective_rate(self):
        """12.6825% effective annual is 1% per month."""
        annual = (1.01 ** 12 - 1) * 100
        assert to_monthly_rate(annual, RateType.effective) == pytest.approx(0.01)

    def test_nominal_monthly_capitalization(self):
        """Nominal rate capitalized monthly gives rate/12 per month."""
        assert to_monthly_rate(12, RateType.nominal, 12) == pytest.approx(0.01)

    def test_nominal_annual_capitalization_equals_effective(self):
        assert nominal_to_effective(0.12, 1) == pytest.approx(0.12)
        assert to_monthly_rate(12, RateType.nominal, 1) == pytest.approx(
            to_monthly_rate(12, RateType.effective)
        )

    def test_nominal_quarterly_capitalization(self):
        assert nominal_to_effective(0.08, 4) == pytest.approx(1.02 ** 4 - 1)

    def test_capitalization_ignored_for_effective(self):
        assert to_monthly_rate(10, RateType.effective, 3) == to_monthly_rate(10)

    def test_unsupported_capitalization(self):
        with pytest.raises(InvalidRateError):
            to_monthly_rate(10, RateType.nominal, 3)

    def test_non_positive_rate(self):
        with pytest.raises(InvalidRateError):
            to_monthly_rate(0)
        with pytest.raises(InvalidRateError):
            to_monthly_rate(-5)

    def test_unknown_rate_type(self):
        with pytest.raises(InvalidRateError):
            to_monthly_rate(10, "simple")

    def test_monthly_annual_inverse(self):
        assert monthly_to_annual(annual_to_monthly(0.085)) == pytest.approx(0.085)


class TestPayment:
    """Test fixed installment calculation."""

    def test_calculate_payment(self):
        """$100,000 at 1% monthly over 12 months."""
        payment = calculate_payment(100000, 0.01, 12)
        assert payment == pytest.approx(8884.88, abs=0.01)

    def test_zero_rate_is_straight_line(self):
        assert calculate_payment(1200, 0.0, 12) == 100

    def test_non_positive_periods(self):
        with pytest.raises(InvalidTermError):
            calculate_payment(1000, 0.01, 0)


class TestScheduleNoGrace:
    """Test amortization without a grace period."""

    def test_scenario_effective_rate_20_years(self):
        """150,000 at 8.5% effective over 20 years."""
        result = run_simulation(
            LoanParameters(principal=150000, annual_rate=8.5, term_value=20)
        )
        monthly = 1.085 ** (1 / 12) - 1
        expected = 150000 * monthly / (1 - (1 + monthly) ** -240)

        assert result.term_months == 240
        assert len(result.schedule) == 240
        assert result.payment == pytest.approx(expected)
        assert result.schedule[-1].balance == 0

    def test_scenario_nominal_monthly_rate_20_years(self):
        """8.5% capitalized monthly amortizes at 8.5%/12 per month."""
        result = run_simulation(
            LoanParameters(
                principal=150000,
                annual_rate=8.5,
                term_value=20,
                rate_type=RateType.nominal,
                capitalization=12,
            )
        )
        monthly = 0.085 / 12
        expected = 150000 * monthly / (1 - (1 + monthly) ** -240)

        assert result.monthly_rate == pytest.approx(monthly)
        assert result.payment == pytest.approx(expected)
        assert result.schedule[-1].balance == 0

    def test_principal_sums_to_financed_amount(self):
        schedule, _ = build_schedule(150000, annual_to_monthly(0.085), 240)
        assert sum(row.principal for row in schedule) == pytest.approx(150000, abs=1e-6)
        assert schedule[-1].balance == pytest.approx(0, abs=1e-6)

    def test_constant_payment(self):
        schedule, payment = build_schedule(50000, 0.01, 36)
        for row in schedule[:-1]:
            assert row.payment == payment
        assert schedule[-1].payment == pytest.approx(payment)

    def test_row_invariants(self):
        schedule, _ = build_schedule(80000, 0.007, 120)
        assert_row_invariants(schedule)

    def test_single_month(self):
        schedule, payment = build_schedule(1000, 0.01, 1)
        assert len(schedule) == 1
        assert payment == pytest.approx(1010)
        assert schedule[0].balance == 0

    def test_zero_rate_schedule(self):
        schedule, payment = build_schedule(1200, 0.0, 12)
        assert payment == 100
        assert all(row.interest == 0 for row in schedule)
        assert all(row.principal == pytest.approx(100) for row in schedule)

    def test_grace_months_ignored_without_regime(self):
        schedule, payment = build_schedule(1000, 0.01, 12, GraceType.none, 6)
        reference, reference_payment = build_schedule(1000, 0.01, 12)
        assert payment == reference_payment
        assert all(row.grace == GraceType.none for row in schedule)


class TestScheduleTotalGrace:
    """Test total grace: no payment, interest capitalizes."""

    def test_scenario_nominal_10_percent_with_6_month_grace(self):
        """100,000 at 10% nominal monthly, 10 years, 6 months total grace."""
        result = run_simulation(
            LoanParameters(
                principal=100000,
                annual_rate=10,
                term_value=10,
                rate_type=RateType.nominal,
                capitalization=12,
                grace_type=GraceType.total,
                grace_months=6,
            )
        )
        monthly = 0.10 / 12
        assert result.monthly_rate == pytest.approx(monthly, rel=1e-12)
        assert len(result.schedule) == 120

        grace_rows = result.schedule[:6]
        previous_balance = 100000
        for row in grace_rows:
            assert row.payment == 0
            assert row.principal == 0
            assert row.balance > previous_balance
            assert row.balance == pytest.approx(previous_balance * (1 + monthly))
            previous_balance = row.balance

        capitalized = 100000 * (1 + monthly) ** 6
        assert grace_rows[-1].balance == pytest.approx(capitalized)

        expected_payment = calculate_payment(capitalized, monthly, 114)
        assert result.payment == pytest.approx(expected_payment)
        assert result.schedule[6].period == 7
        assert result.schedule[6].payment == pytest.approx(expected_payment)
        assert result.schedule[6].grace == GraceType.none
        assert result.schedule[-1].balance == 0

    def test_principal_repays_capitalized_balance(self):
        schedule, _ = build_schedule(100000, 0.01, 60, GraceType.total, 12)
        capitalized = schedule[11].balance
        assert sum(row.principal for row in schedule) == pytest.approx(capitalized, abs=1e-6)
        assert_row_invariants(schedule)


class TestSchedulePartialGrace:
    """Test partial grace: interest-only payments."""

    def test_interest_only_rows(self):
        schedule, payment = build_schedule(100000, 0.01, 60, GraceType.partial, 12)
        for row in schedule[:12]:
            assert row.grace == GraceType.partial
            assert row.interest == pytest.approx(1000)
            assert row.payment == row.interest
            assert row.principal == 0
            assert row.balance == 100000

        assert payment == pytest.approx(calculate_payment(100000, 0.01, 48))
        assert schedule[12].period == 13
        assert sum(row.principal for row in schedule) == pytest.approx(100000, abs=1e-6)
        assert schedule[-1].balance == 0
        assert_row_invariants(schedule)

    def test_grace_not_shorter_than_term(self):
        """Partial grace covering the whole term is rejected."""
        with pytest.raises(InvalidGraceError):
            build_schedule(100000, 0.01, 60, GraceType.partial, 60)


class TestScheduleDates:
    """Test optional payment dates."""

    def test_dates_advance_monthly(self):
        schedule, _ = build_schedule(
            10000, 0.01, 13, start_date=date(2025, 1, 31)
        )
        assert schedule[0].payment_date == date(2025, 1, 31)
        assert schedule[1].payment_date == date(2025, 2, 28)
        assert schedule[12].payment_date == date(2026, 1, 31)

    def test_no_dates_by_default(self):
        schedule, _ = build_schedule(10000, 0.01, 3)
        assert all(row.payment_date is None for row in schedule)

    def test_row_to_dict(self):
        schedule, _ = build_schedule(10000, 0.01, 2, start_date=date(2025, 3, 1))
        row = schedule[0].to_dict()
        assert row["grace"] == "none"
        assert row["payment_date"] == "2025-03-01"
        assert set(row) == {
            "period", "payment", "interest", "principal", "balance", "grace", "payment_date"
        }


class TestValidation:
    """Test that invalid parameters abort before any row is produced."""

    def test_bono_equal_to_principal(self):
        params = LoanParameters(principal=100000, annual_rate=10, term_value=10, bono_amount=100000)
        with pytest.raises(InvalidFinancingError):
            run_simulation(params)

    def test_bono_exceeds_principal(self):
        params = LoanParameters(principal=100000, annual_rate=10, term_value=10, bono_amount=150000)
        with pytest.raises(InvalidFinancingError):
            run_simulation(params)

    def test_negative_bono(self):
        params = LoanParameters(principal=100000, annual_rate=10, term_value=10, bono_amount=-1)
        with pytest.raises(InvalidFinancingError):
            params.validate()

    def test_bono_reduces_financed_amount(self):
        result = run_simulation(
            LoanParameters(principal=100000, annual_rate=10, term_value=10, bono_amount=25000)
        )
        assert result.financed_amount == 75000
        assert result.cash_flows[0] == 75000

    def test_partial_grace_equal_to_term(self):
        params = LoanParameters(
            principal=100000,
            annual_rate=10,
            term_value=5,
            grace_type=GraceType.partial,
            grace_months=60,
        )
        with pytest.raises(InvalidGraceError):
            run_simulation(params)

    def test_negative_grace(self):
        params = LoanParameters(principal=100000, annual_rate=10, term_value=5, grace_months=-1)
        with pytest.raises(InvalidGraceError):
            params.validate()

    def test_zero_term(self):
        with pytest.raises(InvalidTermError):
            LoanParameters(principal=1000, annual_rate=10, term_value=0).validate()

    def test_term_rounds_to_zero_months(self):
        params = LoanParameters(
            principal=1000, annual_rate=10, term_value=0.4, term_unit=TermUnit.months
        )
        with pytest.raises(InvalidTermError):
            params.validate()

    def test_zero_rate(self):
        with pytest.raises(InvalidRateError):
            LoanParameters(principal=1000, annual_rate=0, term_value=1).validate()

    def test_nominal_rate_bad_capitalization(self):
        params = LoanParameters(
            principal=1000, annual_rate=10, term_value=1,
            rate_type=RateType.nominal, capitalization=6,
        )
        with pytest.raises(InvalidRateError):
            params.validate()

    @pytest.mark.parametrize("rate", [float("nan"), float("inf")])
    def test_non_finite_rate(self, rate):
        with pytest.raises(InvalidRateError):
            run_simulation(LoanParameters(principal=100000, annual_rate=rate, term_value=10))

    @pytest.mark.parametrize("term", [float("nan"), float("inf")])
    def test_non_finite_term(self, term):
        with pytest.raises(InvalidTermError):
            run_simulation(LoanParameters(principal=100000, annual_rate=10, term_value=term))

    @pytest.mark.parametrize(
        "principal, bono",
        [
            (float("nan"), 0.0),
            (float("inf"), 0.0),
            (100000, float("nan")),
            (100000, float("-inf")),
        ],
    )
    def test_non_finite_financing(self, principal, bono):
        params = LoanParameters(
            principal=principal, annual_rate=10, term_value=10, bono_amount=bono
        )
        with pytest.raises(InvalidFinancingError):
            run_simulation(params)

    @pytest.mark.parametrize("discount_rate", [float("nan"), float("inf"), -100])
    def test_invalid_discount_rate(self, discount_rate):
        params = LoanParameters(principal=100000, annual_rate=10, term_value=10)
        with pytest.raises(InvalidRateError):
            run_simulation(params, discount_rate)

    def test_term_normalization(self):
        assert LoanParameters(1000, 10, 1.5).term_months == 18
        assert LoanParameters(1000, 10, 30, TermUnit.months).term_months == 30
        assert LoanParameters(1000, 10, 30, TermUnit.months).term_years == 2


class TestCashFlows:
    """Test cash-flow projection."""

    def test_project_cash_flows(self):
        schedule, payment = build_schedule(1000, 0.01, 3)
        flows = project_cash_flows(1000, schedule)
        assert len(flows) == 4
        assert flows[0] == 1000
        assert flows[1] == -payment
        assert all(cf < 0 for cf in flows[1:])

    def test_total_grace_rows_contribute_zero(self):
        schedule, _ = build_schedule(1000, 0.01, 6, GraceType.total, 2)
        flows = project_cash_flows(1000, schedule)
        assert flows[1] == 0
        assert flows[2] == 0
        assert flows[3] < 0


class TestNPV:
    """Test NPV calculation."""

    def test_calculate_npv(self):
        assert calculate_npv([-100, 110], 0.10) == pytest.approx(0)
        assert calculate_npv([-100, 50, 50, 50], 0.10) > 0

    def test_zero_discount_rate_is_plain_sum(self):
        assert npv_at_annual_rate([1000, -300, -300, -300], 0) == pytest.approx(100)

    def test_discount_rate_must_exceed_minus_100(self):
        with pytest.raises(InvalidRateError):
            npv_at_annual_rate([1000, -1100], -100)

    def test_loan_is_fair_at_its_own_rate(self):
        """Discounting at the loan's effective rate gives NPV of zero."""
        for params in (
            LoanParameters(principal=150000, annual_rate=8.5, term_value=20),
            LoanParameters(
                principal=100000, annual_rate=10, term_value=10,
                rate_type=RateType.nominal, grace_type=GraceType.total, grace_months=6,
            ),
            LoanParameters(
                principal=90000, annual_rate=7, term_value=15,
                grace_type=GraceType.partial, grace_months=12,
            ),
        ):
            result = run_simulation(params)
            npv = npv_at_annual_rate(result.cash_flows, result.effective_annual_rate)
            assert npv == pytest.approx(0, abs=1e-4)

    def test_npv_positive_for_borrower_at_higher_discount_rate(self):
        result = run_simulation(
            LoanParameters(principal=150000, annual_rate=8.5, term_value=20),
            discount_rate=12,
        )
        assert result.appraisal.discount_rate == 12
        assert result.appraisal.npv > 0


class TestIRR:
    """Test IRR bisection."""

    def test_calculate_irr_simple(self):
        """Borrow 100, repay 110 a month later: 10% per month."""
        result = calculate_irr([-100, 110])
        assert result.found
        assert result.converged
        assert result.monthly_rate == pytest.approx(0.10, abs=1e-8)
        assert result.annual_rate == pytest.approx((1.1 ** 12 - 1) * 100, rel=1e-6)

    def test_irr_zeroes_npv(self):
        flows = [1000, -200, -300, -400, -250]
        result = calculate_irr(flows)
        assert result.found
        assert calculate_npv(flows, result.monthly_rate) == pytest.approx(0, abs=1e-5)

    def test_irr_matches_loan_rate(self):
        result = run_simulation(
            LoanParameters(principal=150000, annual_rate=8.5, term_value=20)
        )
        assert result.appraisal.irr == pytest.approx(8.5, abs=1e-4)

    def test_irr_matches_rate_with_grace(self):
        result = run_simulation(
            LoanParameters(
                principal=100000, annual_rate=10, term_value=10,
                rate_type=RateType.nominal, grace_type=GraceType.total, grace_months=6,
            )
        )
        assert result.appraisal.irr == pytest.approx(result.effective_annual_rate, abs=1e-4)

    def test_irr_is_deterministic(self):
        flows = [5000, -1000, -1200, -1500, -1800]
        assert calculate_irr(flows) == calculate_irr(flows)

    def test_no_sign_change_is_not_found(self):
        result = calculate_irr([-100, -50, -50])
        assert not result.found
        assert result.annual_rate is None
        assert result.monthly_rate is None

    def test_all_negative_flows_still_have_npv(self):
        appraisal = appraise((-100.0, -50.0, -50.0), 10.0)
        assert appraisal.irr is None
        assert not appraisal.irr_converged
        assert appraisal.npv < -100

    def test_exhausted_budget_returns_best_estimate(self):
        result = calculate_irr([-100, 110], max_iterations=5)
        assert result.found
        assert not result.converged
        assert result.iterations == 5
        assert result.monthly_rate == pytest.approx(-0.0540625)

    def test_requires_two_cash_flows(self):
        with pytest.raises(ValueError):
            calculate_irr([100])


class TestSimulationSummary:
    """Test the result bundle."""

    def test_totals(self):
        result = run_simulation(
            LoanParameters(principal=100000, annual_rate=10, term_value=5)
        )
        assert result.total_interest == pytest.approx(calculate_total_interest(result.schedule))
        assert result.total_paid == pytest.approx(100000 + result.total_interest)
        assert result.effective_annual_rate == pytest.approx(10)

    @pytest.mark.parametrize(
        "grace_type,grace_months",
        [(GraceType.none, 0), (GraceType.total, 3), (GraceType.partial, 3), (GraceType.partial, 0)],
    )
    def test_row_invariants_all_regimes(self, grace_type, grace_months):
        result = run_simulation(
            LoanParameters(
                principal=50000, annual_rate=9, term_value=2,
                grace_type=grace_type, grace_months=grace_months,
            )
        )
        assert len(result.schedule) == 24
        assert result.schedule[-1].balance == 0
        assert_row_invariants(result.schedule)
