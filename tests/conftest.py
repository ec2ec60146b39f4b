"""
tests/conftest.py
=================
Shared pytest fixtures: a three-year (FY2021-FY2023) company whose
statements are internally consistent. Amounts are in yen.
"""
import sys
import os
from datetime import date

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from fin_metrics.calculations import recalculate_periods
from fin_metrics.types import (
    AccountDetail, BalanceSheet, FinancialAnalysis, ManualInputs,
    PeriodFinancialData, ProfitLoss,
)


@pytest.fixture
def period_2021():
    return PeriodFinancialData(
        fiscal_year=2021,
        period_start_date=date(2021, 4, 1),
        period_end_date=date(2022, 3, 31),
        balance_sheet=BalanceSheet(
            cash_and_deposits=20_000_000, accounts_receivable=10_000_000, inventory=5_000_000,
            current_assets_total=35_000_000,
            tangible_fixed_assets=40_000_000, intangible_fixed_assets=2_000_000,
            investments_and_other_assets=3_000_000, fixed_assets_total=45_000_000,
            total_assets=80_000_000,
            accounts_payable=8_000_000, short_term_borrowings=7_000_000,
            current_liabilities_total=15_000_000,
            long_term_borrowings=25_000_000, fixed_liabilities_total=25_000_000,
            total_liabilities=40_000_000,
            capital_stock=10_000_000, retained_earnings=30_000_000, total_net_assets=40_000_000,
        ),
        profit_loss=ProfitLoss(
            net_sales=80_000_000, cost_of_sales=50_000_000, gross_profit=30_000_000,
            selling_general_admin_expenses=24_000_000, operating_income=6_000_000,
            non_operating_income=500_000, non_operating_expenses=300_000,
            ordinary_income=6_200_000, income_before_tax=6_200_000,
            income_taxes=2_000_000, net_income=4_200_000,
        ),
        manual_inputs=ManualInputs(depreciation=1_000_000),
    )


@pytest.fixture
def period_2022():
    return PeriodFinancialData(
        fiscal_year=2022,
        period_start_date=date(2022, 4, 1),
        period_end_date=date(2023, 3, 31),
        balance_sheet=BalanceSheet(
            cash_and_deposits=24_000_000, accounts_receivable=12_000_000, inventory=6_000_000,
            current_assets_total=42_000_000,
            tangible_fixed_assets=43_000_000, intangible_fixed_assets=2_000_000,
            investments_and_other_assets=3_000_000, fixed_assets_total=48_000_000,
            total_assets=90_000_000,
            accounts_payable=9_000_000, short_term_borrowings=6_000_000,
            current_liabilities_total=15_000_000,
            long_term_borrowings=25_000_000, fixed_liabilities_total=25_000_000,
            total_liabilities=40_000_000,
            capital_stock=10_000_000, retained_earnings=40_000_000, total_net_assets=50_000_000,
        ),
        profit_loss=ProfitLoss(
            net_sales=100_000_000, cost_of_sales=60_000_000, gross_profit=40_000_000,
            selling_general_admin_expenses=31_500_000, operating_income=8_500_000,
            non_operating_income=500_000, non_operating_expenses=300_000,
            ordinary_income=8_700_000, income_before_tax=8_700_000,
            income_taxes=2_700_000, net_income=6_000_000,
        ),
        manual_inputs=ManualInputs(depreciation=1_000_000, capex=2_000_000),
    )


@pytest.fixture
def period_2023():
    """Sales decline; depreciation only in the sub-ledger, CAPEX left blank."""
    return PeriodFinancialData(
        fiscal_year=2023,
        period_start_date=date(2023, 4, 1),
        period_end_date=date(2024, 3, 31),
        balance_sheet=BalanceSheet(
            cash_and_deposits=26_000_000, accounts_receivable=11_000_000, inventory=6_000_000,
            current_assets_total=43_000_000,
            tangible_fixed_assets=45_000_000, intangible_fixed_assets=2_000_000,
            investments_and_other_assets=3_000_000, fixed_assets_total=50_000_000,
            total_assets=93_000_000,
            accounts_payable=9_000_000, short_term_borrowings=5_000_000,
            current_liabilities_total=14_000_000,
            long_term_borrowings=24_000_000, fixed_liabilities_total=24_000_000,
            total_liabilities=38_000_000,
            capital_stock=10_000_000, retained_earnings=45_000_000, total_net_assets=55_000_000,
        ),
        profit_loss=ProfitLoss(
            net_sales=90_000_000, cost_of_sales=55_000_000, gross_profit=35_000_000,
            selling_general_admin_expenses=28_000_000, operating_income=7_000_000,
            non_operating_income=500_000, non_operating_expenses=300_000,
            ordinary_income=7_200_000, income_before_tax=7_200_000,
            income_taxes=2_200_000, net_income=5_000_000,
        ),
        manual_inputs=ManualInputs(fixed_asset_disposal_value=500_000),
        account_details=[
            AccountDetail("depreciation", "Depreciation expense", 1_200_000),
            AccountDetail("other", "Office rent", 300_000),
        ],
    )


@pytest.fixture
def periods(period_2021, period_2022, period_2023):
    return [period_2021, period_2022, period_2023]


@pytest.fixture
def analysis(periods):
    """Analysis with metrics already computed for every period."""
    return FinancialAnalysis(
        company_name="Sample Manufacturing Co.",
        industry_name="Manufacturing",
        analysis_date=date(2024, 6, 30),
        periods=recalculate_periods(periods),
    )
