"""
tests/test_calculations.py
==========================
Unit tests for the metrics engine: per-metric calculators, missing-data
policy, depreciation / CAPEX derivation and the multi-period driver.

Run:  pytest tests/ -v
"""
import math
from dataclasses import fields

import pytest

from fin_metrics.calculations import (
    calculate_all_metrics,
    calculate_average_sales_growth_rate,
    calculate_capex_auto,
    calculate_current_ratio,
    calculate_depreciation_from_account_details,
    calculate_ebitda,
    calculate_ebitda_to_interest_bearing_debt,
    calculate_fcf,
    calculate_interest_bearing_debt,
    calculate_net_cash,
    calculate_sales_growth_rate,
    create_period_comparison,
    recalculate_periods,
    resolve_manual_inputs,
)
from fin_metrics.types import (
    AccountDetail, BalanceSheet, FinancialMetrics, ManualInputs,
    PeriodFinancialData, ProfitLoss,
)


def _period(year=2023, bs=None, pl=None, manual=None, details=None):
    return PeriodFinancialData(
        fiscal_year=year,
        balance_sheet=bs or BalanceSheet(),
        profit_loss=pl or ProfitLoss(),
        manual_inputs=manual or ManualInputs(),
        account_details=details or [],
    )


# ═══════════════════════════════════════════════════════════════════════════════
# 1. SINGLE-PERIOD METRICS
# ═══════════════════════════════════════════════════════════════════════════════

class TestSinglePeriodMetrics:
    def test_full_metric_set(self, period_2021, period_2022):
        m = calculate_all_metrics(period_2022, period_2021)
        assert m.net_cash == pytest.approx(-7_000_000)
        assert m.current_ratio == pytest.approx(280.0)
        assert m.equity_ratio == pytest.approx(50 / 90 * 100)
        assert m.receivables_turnover_months == pytest.approx(1.44)
        assert m.inventory_turnover_months == pytest.approx(1.2)
        assert m.gross_profit_margin == pytest.approx(40.0)
        assert m.operating_profit_margin == pytest.approx(8.5)
        assert m.ebitda_margin == pytest.approx(9.5)
        assert m.roe == pytest.approx(12.0)
        assert m.roa == pytest.approx(6 / 90 * 100)

    def test_ebitda_and_fcf(self):
        p = _period(pl=ProfitLoss(operating_income=8_500_000),
                    manual=ManualInputs(depreciation=1_000_000, capex=2_000_000))
        assert calculate_ebitda(p) == pytest.approx(9_500_000)
        assert calculate_fcf(p) == pytest.approx(7_500_000)

    def test_ebitda_without_depreciation_is_operating_income(self):
        p = _period(pl=ProfitLoss(operating_income=5_000_000))
        assert calculate_ebitda(p) == pytest.approx(5_000_000)

    def test_fcf_absent_capex_counts_as_zero(self):
        p = _period(pl=ProfitLoss(operating_income=5_000_000), manual=ManualInputs(depreciation=500_000))
        assert calculate_fcf(p) == pytest.approx(5_500_000)

    def test_ebitda_none_without_operating_income(self):
        p = _period(manual=ManualInputs(depreciation=1_000_000))
        assert calculate_ebitda(p) is None
        assert calculate_fcf(p) is None

    def test_interest_bearing_debt_includes_bonds_and_leases(self):
        p = _period(bs=BalanceSheet(short_term_borrowings=100, long_term_borrowings=200,
                                    bonds_payable=300, lease_obligations=400))
        assert calculate_interest_bearing_debt(p) == pytest.approx(1000)

    def test_interest_bearing_debt_none_when_all_absent(self):
        assert calculate_interest_bearing_debt(_period()) is None

    def test_net_cash_positive_without_debt(self):
        p = _period(bs=BalanceSheet(cash_and_deposits=5_000))
        assert calculate_net_cash(p) == pytest.approx(5_000)

    def test_net_cash_none_without_cash_or_debt(self):
        assert calculate_net_cash(_period()) is None

    def test_zero_numerator_is_zero_not_none(self):
        p = _period(pl=ProfitLoss(net_sales=1_000, gross_profit=0, operating_income=0))
        m = calculate_all_metrics(p, None)
        assert m.gross_profit_margin == 0.0
        assert m.operating_profit_margin == 0.0


# ═══════════════════════════════════════════════════════════════════════════════
# 2. MISSING DATA POLICY
# ═══════════════════════════════════════════════════════════════════════════════

class TestMissingDataPolicy:
    def test_zero_current_liabilities_only_blanks_current_ratio(self, period_2022):
        period_2022.balance_sheet.current_liabilities_total = 0
        m = calculate_all_metrics(period_2022, None)
        assert m.current_ratio is None
        assert m.equity_ratio == pytest.approx(50 / 90 * 100)
        assert m.ebitda == pytest.approx(9_500_000)
        assert m.roe == pytest.approx(12.0)

    def test_empty_period_never_raises(self):
        m = calculate_all_metrics(_period(), None)
        assert isinstance(m, FinancialMetrics)
        assert all(v is None for v in m.as_dict().values())

    def test_no_nan_or_inf(self):
        p = _period(
            bs=BalanceSheet(total_assets=0, total_net_assets=0, current_liabilities_total=0),
            pl=ProfitLoss(net_sales=0, cost_of_sales=0, operating_income=10, net_income=10),
        )
        for value in calculate_all_metrics(p, _period(2022, pl=ProfitLoss(net_sales=0))).as_dict().values():
            assert value is None or math.isfinite(value)

    def test_current_ratio_none_when_current_assets_missing(self):
        p = _period(bs=BalanceSheet(current_liabilities_total=100))
        assert calculate_current_ratio(p) is None

    def test_receivables_months_none_when_sales_zero(self):
        p = _period(bs=BalanceSheet(accounts_receivable=1_000), pl=ProfitLoss(net_sales=0))
        assert calculate_all_metrics(p, None).receivables_turnover_months is None


# ═══════════════════════════════════════════════════════════════════════════════
# 3. GROWTH
# ═══════════════════════════════════════════════════════════════════════════════

class TestGrowth:
    def test_sales_growth(self):
        curr = _period(2023, pl=ProfitLoss(net_sales=100))
        prev = _period(2022, pl=ProfitLoss(net_sales=80))
        assert calculate_sales_growth_rate(curr, prev) == pytest.approx(25.0)

    def test_previous_zero_gives_none(self):
        curr = _period(2023, pl=ProfitLoss(net_sales=100))
        prev = _period(2022, pl=ProfitLoss(net_sales=0))
        assert calculate_sales_growth_rate(curr, prev) is None

    def test_previous_absent_value_gives_none(self):
        curr = _period(2023, pl=ProfitLoss(net_sales=100))
        assert calculate_sales_growth_rate(curr, _period(2022)) is None

    def test_first_period_growth_is_none(self, period_2021):
        m = calculate_all_metrics(period_2021, None)
        assert m.sales_growth_rate is None
        assert m.operating_income_growth_rate is None
        assert m.ebitda_growth_rate is None
        # same-period ratios still computed
        assert m.current_ratio == pytest.approx(35 / 15 * 100)

    def test_operating_income_and_ebitda_growth(self, period_2021, period_2022):
        m = calculate_all_metrics(period_2022, period_2021)
        assert m.operating_income_growth_rate == pytest.approx((8.5 - 6) / 6 * 100)
        assert m.ebitda_growth_rate == pytest.approx((9.5 - 7) / 7 * 100)

    def test_decline_is_negative(self):
        curr = _period(2023, pl=ProfitLoss(net_sales=90))
        prev = _period(2022, pl=ProfitLoss(net_sales=100))
        assert calculate_sales_growth_rate(curr, prev) == pytest.approx(-10.0)

    def test_average_sales_growth(self, periods):
        assert calculate_average_sales_growth_rate(periods) == pytest.approx(7.5)

    def test_average_sales_growth_single_period(self, period_2021):
        assert calculate_average_sales_growth_rate([period_2021]) is None


# ═══════════════════════════════════════════════════════════════════════════════
# 4. DEBT / EBITDA
# ═══════════════════════════════════════════════════════════════════════════════

class TestDebtToEbitda:
    def test_average_with_previous_period(self, period_2021, period_2022):
        # (32M + 31M) / 2 / 9.5M
        assert calculate_ebitda_to_interest_bearing_debt(period_2022, period_2021) == pytest.approx(31.5 / 9.5)

    def test_current_debt_only_without_previous(self, period_2021):
        assert calculate_ebitda_to_interest_bearing_debt(period_2021, None) == pytest.approx(32 / 7)

    def test_none_without_debt(self):
        p = _period(pl=ProfitLoss(operating_income=1_000))
        assert calculate_ebitda_to_interest_bearing_debt(p, None) is None

    def test_none_with_zero_ebitda(self):
        p = _period(bs=BalanceSheet(long_term_borrowings=1_000), pl=ProfitLoss(operating_income=0))
        assert calculate_ebitda_to_interest_bearing_debt(p, None) is None


# ═══════════════════════════════════════════════════════════════════════════════
# 5. DEPRECIATION & CAPEX
# ═══════════════════════════════════════════════════════════════════════════════

class TestDepreciationAndCapex:
    def test_empty_account_details_is_zero(self):
        assert calculate_depreciation_from_account_details(_period()) == 0.0

    def test_sums_depreciation_entries(self):
        p = _period(details=[
            AccountDetail("depreciation", "Buildings", 300),
            AccountDetail("other", "Amortization of software", 200),
            AccountDetail("other", "減価償却費", 100),
            AccountDetail("other", "Office rent", 999),
            AccountDetail("depreciation", "Vehicles", None),
        ])
        assert calculate_depreciation_from_account_details(p) == pytest.approx(600)

    def test_capex_first_period_is_none(self, period_2021):
        assert calculate_capex_auto(period_2021, None) is None

    def test_capex_missing_tangible_assets_is_none(self, period_2021):
        assert calculate_capex_auto(_period(2022), period_2021) is None

    def test_capex_estimate(self):
        prev = _period(2022, bs=BalanceSheet(tangible_fixed_assets=10_000))
        curr = _period(2023, bs=BalanceSheet(tangible_fixed_assets=12_000),
                       manual=ManualInputs(depreciation=1_500, fixed_asset_disposal_value=300))
        assert calculate_capex_auto(curr, prev) == pytest.approx(3_200)

    def test_manual_values_take_precedence(self, period_2022, period_2023):
        period_2023.manual_inputs = ManualInputs(depreciation=999, capex=111)
        resolved = resolve_manual_inputs(period_2023, period_2022)
        assert resolved.manual_inputs.depreciation == 999
        assert resolved.manual_inputs.capex == 111

    def test_blank_inputs_are_derived(self, period_2022, period_2023):
        resolved = resolve_manual_inputs(period_2023, period_2022)
        assert resolved.manual_inputs.depreciation == pytest.approx(1_200_000)
        # (45M - 43M) + 1.2M - 0.5M
        assert resolved.manual_inputs.capex == pytest.approx(2_700_000)
        assert period_2023.manual_inputs.depreciation is None


# ═══════════════════════════════════════════════════════════════════════════════
# 6. MULTI-PERIOD DRIVER
# ═══════════════════════════════════════════════════════════════════════════════

class TestRecalculatePeriods:
    def test_orders_and_threads_previous(self, period_2021, period_2022, period_2023):
        out = recalculate_periods([period_2023, period_2021, period_2022])
        assert [p.fiscal_year for p in out] == [2021, 2022, 2023]
        assert out[0].metrics.sales_growth_rate is None
        assert out[1].metrics.sales_growth_rate == pytest.approx(25.0)
        assert out[2].metrics.sales_growth_rate == pytest.approx(-10.0)

    def test_derived_inputs_flow_into_metrics(self, periods):
        latest = recalculate_periods(periods)[-1]
        assert latest.metrics.ebitda == pytest.approx(8_200_000)
        assert latest.metrics.fcf == pytest.approx(5_500_000)
        # (31M + 29M) / 2 / 8.2M
        assert latest.metrics.ebitda_to_interest_bearing_debt == pytest.approx(30 / 8.2)

    def test_first_period_capex_stays_none(self, periods):
        first = recalculate_periods(periods)[0]
        assert first.manual_inputs.capex is None
        assert first.metrics.fcf == pytest.approx(7_000_000)

    def test_inputs_not_mutated(self, periods):
        recalculate_periods(periods)
        assert all(p.metrics is None for p in periods)
        assert periods[2].manual_inputs.capex is None

    def test_every_metric_field_present(self, periods):
        m = recalculate_periods(periods)[1].metrics
        assert set(m.as_dict()) == {f.name for f in fields(FinancialMetrics)}

    def test_empty_input(self):
        assert recalculate_periods([]) == []


class TestPeriodComparison:
    def test_change_and_percent(self):
        c = create_period_comparison(120, 100)
        assert c.change == pytest.approx(20)
        assert c.change_percent == pytest.approx(20.0)

    def test_previous_zero(self):
        c = create_period_comparison(50, 0)
        assert c.change == pytest.approx(50)
        assert c.change_percent == 0.0
