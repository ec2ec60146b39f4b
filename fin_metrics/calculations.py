"""
fin_metrics/calculations.py
===========================
Financial metrics engine. Pure functions of (current period, previous
period or None) → metrics; no I/O, no shared state.

Covers:
  - Liquidity & safety: Net Cash / Net Debt, Current Ratio, Equity Ratio
  - Efficiency: receivable and inventory holding months
  - Cash flow: EBITDA, FCF, average debt / EBITDA
  - Profitability: gross / operating / EBITDA margins, ROE, ROA
  - Growth: sales, operating income and EBITDA growth vs previous period
  - Depreciation from the account-detail sub-ledger
  - CAPEX estimate from the tangible fixed asset delta

Every calculator returns None when an operand is missing or a
denominator is zero, so one missing figure never blanks the other metrics.
"""
from __future__ import annotations
import math
from dataclasses import replace
from typing import Iterable, List, Optional

from .types import (
    AccountDetail, FinancialMetrics, PeriodComparison, PeriodFinancialData,
)

# Item-name fragments that mark an account-detail line as depreciation.
DEPRECIATION_TOKENS: tuple = (
    "depreciation",
    "amortization",
    "amortisation",
    "減価償却",
)


# ─── Numeric Helpers ──────────────────────────────────────────────────────────

def _num(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def _safe_div(num: Optional[float], den: Optional[float]) -> Optional[float]:
    num, den = _num(num), _num(den)
    if num is None or den is None or den == 0:
        return None
    result = num / den
    return result if math.isfinite(result) else None


def _pct(num: Optional[float], den: Optional[float]) -> Optional[float]:
    ratio = _safe_div(num, den)
    return ratio * 100 if ratio is not None else None


def _growth(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    current, previous = _num(current), _num(previous)
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100


def _monthly(value: Optional[float], annual_flow: Optional[float]) -> Optional[float]:
    annual_flow = _num(annual_flow)
    if annual_flow is None or annual_flow == 0:
        return None
    return _safe_div(value, annual_flow / 12)


# ─── Liquidity & Safety ───────────────────────────────────────────────────────

def calculate_interest_bearing_debt(data: PeriodFinancialData) -> Optional[float]:
    """
    Short-term + long-term borrowings + bonds + lease obligations.
    Missing components count as zero; None only when every component is absent.
    """
    bs = data.balance_sheet
    parts = [
        _num(bs.short_term_borrowings),
        _num(bs.long_term_borrowings),
        _num(bs.bonds_payable),
        _num(bs.lease_obligations),
    ]
    if all(p is None for p in parts):
        return None
    return sum(p for p in parts if p is not None)


def calculate_net_cash(data: PeriodFinancialData) -> Optional[float]:
    """
    Net Cash = cash and deposits − interest-bearing debt.
    Negative values denote a net debt position.
    """
    cash = _num(data.balance_sheet.cash_and_deposits)
    debt = calculate_interest_bearing_debt(data)
    if cash is None and debt is None:
        return None
    return (cash or 0.0) - (debt or 0.0)


def calculate_current_ratio(data: PeriodFinancialData) -> Optional[float]:
    bs = data.balance_sheet
    return _pct(bs.current_assets_total, bs.current_liabilities_total)


def calculate_equity_ratio(data: PeriodFinancialData) -> Optional[float]:
    bs = data.balance_sheet
    return _pct(bs.total_net_assets, bs.total_assets)


# ─── Efficiency ───────────────────────────────────────────────────────────────

def calculate_receivables_turnover_months(data: PeriodFinancialData) -> Optional[float]:
    """Accounts receivable ÷ (net sales ÷ 12)."""
    return _monthly(data.balance_sheet.accounts_receivable, data.profit_loss.net_sales)


def calculate_inventory_turnover_months(data: PeriodFinancialData) -> Optional[float]:
    """Inventory ÷ (cost of sales ÷ 12)."""
    return _monthly(data.balance_sheet.inventory, data.profit_loss.cost_of_sales)


# ─── Cash Flow ────────────────────────────────────────────────────────────────

def calculate_ebitda(data: PeriodFinancialData) -> Optional[float]:
    """
    EBITDA = operating income + depreciation.
    Without a depreciation figure EBITDA equals operating income.
    """
    operating_income = _num(data.profit_loss.operating_income)
    if operating_income is None:
        return None
    depreciation = _num(data.manual_inputs.depreciation)
    return operating_income + (depreciation or 0.0)


def calculate_fcf(data: PeriodFinancialData) -> Optional[float]:
    """FCF = EBITDA − CAPEX; an absent CAPEX counts as zero."""
    ebitda = calculate_ebitda(data)
    if ebitda is None:
        return None
    capex = _num(data.manual_inputs.capex)
    return ebitda - (capex or 0.0)


def calculate_ebitda_to_interest_bearing_debt(
    current: PeriodFinancialData,
    previous: Optional[PeriodFinancialData],
) -> Optional[float]:
    """
    Average interest-bearing debt ÷ EBITDA.

    The average spans the opening (previous period) and closing balances;
    with no previous period, or no debt figures in it, the closing balance
    is used alone. A company without debt yields None.
    """
    ebitda = calculate_ebitda(current)
    end_debt = calculate_interest_bearing_debt(current)
    if not ebitda or not end_debt:
        return None

    avg_debt = end_debt
    if previous is not None:
        start_debt = calculate_interest_bearing_debt(previous)
        if start_debt is not None:
            avg_debt = (start_debt + end_debt) / 2

    return _safe_div(avg_debt, ebitda)


# ─── Profitability ────────────────────────────────────────────────────────────

def calculate_gross_profit_margin(data: PeriodFinancialData) -> Optional[float]:
    pl = data.profit_loss
    return _pct(pl.gross_profit, pl.net_sales)


def calculate_operating_profit_margin(data: PeriodFinancialData) -> Optional[float]:
    pl = data.profit_loss
    return _pct(pl.operating_income, pl.net_sales)


def calculate_ebitda_margin(data: PeriodFinancialData) -> Optional[float]:
    return _pct(calculate_ebitda(data), data.profit_loss.net_sales)


def calculate_roe(data: PeriodFinancialData) -> Optional[float]:
    return _pct(data.profit_loss.net_income, data.balance_sheet.total_net_assets)


def calculate_roa(data: PeriodFinancialData) -> Optional[float]:
    return _pct(data.profit_loss.net_income, data.balance_sheet.total_assets)


# ─── Growth ───────────────────────────────────────────────────────────────────

def calculate_sales_growth_rate(
    current: PeriodFinancialData, previous: Optional[PeriodFinancialData]
) -> Optional[float]:
    if previous is None:
        return None
    return _growth(current.profit_loss.net_sales, previous.profit_loss.net_sales)


def calculate_operating_income_growth_rate(
    current: PeriodFinancialData, previous: Optional[PeriodFinancialData]
) -> Optional[float]:
    if previous is None:
        return None
    return _growth(current.profit_loss.operating_income, previous.profit_loss.operating_income)


def calculate_ebitda_growth_rate(
    current: PeriodFinancialData, previous: Optional[PeriodFinancialData]
) -> Optional[float]:
    if previous is None:
        return None
    return _growth(calculate_ebitda(current), calculate_ebitda(previous))


def calculate_average_sales_growth_rate(periods: List[PeriodFinancialData]) -> Optional[float]:
    """Mean of the defined year-over-year sales growth rates."""
    ordered = sorted(periods, key=lambda p: p.fiscal_year)
    rates = [
        r for prev, curr in zip(ordered, ordered[1:])
        if (r := calculate_sales_growth_rate(curr, prev)) is not None
    ]
    return sum(rates) / len(rates) if rates else None


# ─── Aggregate ────────────────────────────────────────────────────────────────

def calculate_all_metrics(
    current: PeriodFinancialData,
    previous: Optional[PeriodFinancialData],
) -> FinancialMetrics:
    """Compute every metric for one period; `previous` is the preceding fiscal year or None."""
    return FinancialMetrics(
        net_cash=calculate_net_cash(current),
        current_ratio=calculate_current_ratio(current),
        equity_ratio=calculate_equity_ratio(current),
        receivables_turnover_months=calculate_receivables_turnover_months(current),
        inventory_turnover_months=calculate_inventory_turnover_months(current),
        ebitda=calculate_ebitda(current),
        fcf=calculate_fcf(current),
        sales_growth_rate=calculate_sales_growth_rate(current, previous),
        operating_income_growth_rate=calculate_operating_income_growth_rate(current, previous),
        ebitda_growth_rate=calculate_ebitda_growth_rate(current, previous),
        gross_profit_margin=calculate_gross_profit_margin(current),
        operating_profit_margin=calculate_operating_profit_margin(current),
        ebitda_margin=calculate_ebitda_margin(current),
        ebitda_to_interest_bearing_debt=calculate_ebitda_to_interest_bearing_debt(current, previous),
        roe=calculate_roe(current),
        roa=calculate_roa(current),
    )


# ─── Depreciation & CAPEX Derivation ──────────────────────────────────────────

def _is_depreciation_entry(detail: AccountDetail) -> bool:
    if (detail.account_type or "").lower() == "depreciation":
        return True
    name = (detail.item_name or "").lower()
    return any(token in name for token in DEPRECIATION_TOKENS)


def calculate_depreciation_from_account_details(data: PeriodFinancialData) -> float:
    """
    Sum the account-detail lines classified as depreciation.
    Returns 0.0 when the sub-ledger is empty or has no such lines.
    """
    total = 0.0
    for detail in data.account_details:
        if not _is_depreciation_entry(detail):
            continue
        amount = _num(detail.amount)
        if amount is not None:
            total += amount
    return total


def calculate_capex_auto(
    current: PeriodFinancialData,
    previous: Optional[PeriodFinancialData],
) -> Optional[float]:
    """
    Estimate CAPEX from the movement in tangible fixed assets:

        (tangible FA end − tangible FA begin) + depreciation − disposal value

    This approximates, it does not measure: revaluations, impairments and
    reclassifications all leak into the delta. Returns None for the first
    period in a sequence or when either tangible fixed asset balance is missing.
    """
    if previous is None:
        return None
    end = _num(current.balance_sheet.tangible_fixed_assets)
    begin = _num(previous.balance_sheet.tangible_fixed_assets)
    if end is None or begin is None:
        return None
    depreciation = _num(current.manual_inputs.depreciation) or 0.0
    disposal = _num(current.manual_inputs.fixed_asset_disposal_value) or 0.0
    return (end - begin) + depreciation - disposal


def resolve_manual_inputs(
    current: PeriodFinancialData,
    previous: Optional[PeriodFinancialData],
) -> PeriodFinancialData:
    """
    Fill depreciation and CAPEX where the user left them blank.
    User-entered values always take precedence over derived ones.
    """
    manual = current.manual_inputs
    depreciation = manual.depreciation
    if depreciation is None:
        depreciation = calculate_depreciation_from_account_details(current)

    resolved = replace(current, manual_inputs=replace(manual, depreciation=depreciation))
    capex = manual.capex
    if capex is None:
        capex = calculate_capex_auto(resolved, previous)
    return replace(resolved, manual_inputs=replace(resolved.manual_inputs, capex=capex))


def recalculate_periods(periods: Iterable[PeriodFinancialData]) -> List[PeriodFinancialData]:
    """
    Resolve manual inputs and compute metrics for an analysis, oldest first.
    Each enriched period becomes the `previous` of the next one.
    Returns new records; the inputs are left untouched.
    """
    ordered = sorted(periods, key=lambda p: p.fiscal_year)
    enriched: List[PeriodFinancialData] = []
    previous: Optional[PeriodFinancialData] = None
    for period in ordered:
        current = resolve_manual_inputs(period, previous)
        current = replace(current, metrics=calculate_all_metrics(current, previous))
        enriched.append(current)
        previous = current
    return enriched


# ─── Comparisons ──────────────────────────────────────────────────────────────

def create_period_comparison(current: float, previous: float) -> PeriodComparison:
    change = current - previous
    change_percent = (change / previous * 100) if previous != 0 else 0.0
    return PeriodComparison(
        current_period=current,
        previous_period=previous,
        change=change,
        change_percent=change_percent,
    )
