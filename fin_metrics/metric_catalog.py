"""
fin_metrics/metric_catalog.py
=============================
Display catalog for computed metrics and statement line items:
label, group, value kind and formula text, in table order.
Exporters and the commentary prompts read labels from here.
"""
from __future__ import annotations
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .formatting import format_metric, get_unit_label
from .types import AmountUnit, MetricKind, PeriodFinancialData

# ─── Metric Definitions ───────────────────────────────────────────────────────


class MetricDef:
    __slots__ = ("label", "group", "kind", "formula")

    def __init__(self, label: str, group: str, kind: MetricKind, formula: str):
        self.label = label
        self.group = group
        self.kind = kind
        self.formula = formula


METRIC_DEFS: Dict[str, MetricDef] = {
    # ── Safety ──────────────────────────────────────────────────────────────
    "net_cash": MetricDef("Net Cash / Net Debt", "Safety", "amount", "Cash and deposits − interest-bearing debt"),
    "current_ratio": MetricDef("Current Ratio", "Safety", "percent", "Current assets ÷ current liabilities × 100"),
    "equity_ratio": MetricDef("Equity Ratio", "Safety", "percent", "Net assets ÷ total assets × 100"),
    # ── Efficiency ──────────────────────────────────────────────────────────
    "receivables_turnover_months": MetricDef("Receivables Months", "Efficiency", "months", "Accounts receivable ÷ (net sales ÷ 12)"),
    "inventory_turnover_months": MetricDef("Inventory Months", "Efficiency", "months", "Inventory ÷ (cost of sales ÷ 12)"),
    # ── Cash Flow ───────────────────────────────────────────────────────────
    "ebitda": MetricDef("EBITDA", "Cash Flow", "amount", "Operating income + depreciation"),
    "fcf": MetricDef("FCF (Free Cash Flow)", "Cash Flow", "amount", "EBITDA − CAPEX"),
    "ebitda_to_interest_bearing_debt": MetricDef("Debt / EBITDA", "Cash Flow", "times", "Average interest-bearing debt ÷ EBITDA"),
    # ── Profitability ───────────────────────────────────────────────────────
    "gross_profit_margin": MetricDef("Gross Profit Margin", "Profitability", "percent", "Gross profit ÷ net sales × 100"),
    "operating_profit_margin": MetricDef("Operating Profit Margin", "Profitability", "percent", "Operating income ÷ net sales × 100"),
    "ebitda_margin": MetricDef("EBITDA Margin", "Profitability", "percent", "EBITDA ÷ net sales × 100"),
    # ── Growth ──────────────────────────────────────────────────────────────
    "sales_growth_rate": MetricDef("Sales Growth (YoY)", "Growth", "percent", "(Current sales − previous sales) ÷ previous sales × 100"),
    "operating_income_growth_rate": MetricDef("Operating Income Growth (YoY)", "Growth", "percent", "(Current OI − previous OI) ÷ previous OI × 100"),
    "ebitda_growth_rate": MetricDef("EBITDA Growth (YoY)", "Growth", "percent", "(Current EBITDA − previous EBITDA) ÷ previous EBITDA × 100"),
    # ── Capital Efficiency ──────────────────────────────────────────────────
    "roe": MetricDef("ROE", "Capital Efficiency", "percent", "Net income ÷ net assets × 100"),
    "roa": MetricDef("ROA", "Capital Efficiency", "percent", "Net income ÷ total assets × 100"),
}

METRIC_GROUPS: List[str] = ["Safety", "Efficiency", "Cash Flow", "Profitability", "Growth", "Capital Efficiency"]


# ─── Statement Line Items ─────────────────────────────────────────────────────

# (field, label) in statement order.
BALANCE_SHEET_ITEMS: List[Tuple[str, str]] = [
    ("cash_and_deposits", "Cash and deposits"),
    ("securities", "Securities"),
    ("notes_receivable", "Notes receivable"),
    ("accounts_receivable", "Accounts receivable"),
    ("inventory", "Inventory"),
    ("other_current_assets", "Other current assets"),
    ("current_assets_total", "Total current assets"),
    ("tangible_fixed_assets", "Tangible fixed assets"),
    ("intangible_fixed_assets", "Intangible fixed assets"),
    ("investments_and_other_assets", "Investments and other assets"),
    ("fixed_assets_total", "Total fixed assets"),
    ("total_assets", "Total assets"),
    ("notes_payable", "Notes payable"),
    ("accounts_payable", "Accounts payable"),
    ("short_term_borrowings", "Short-term borrowings"),
    ("current_liabilities_total", "Total current liabilities"),
    ("long_term_borrowings", "Long-term borrowings"),
    ("bonds_payable", "Bonds payable"),
    ("lease_obligations", "Lease obligations"),
    ("fixed_liabilities_total", "Total fixed liabilities"),
    ("total_liabilities", "Total liabilities"),
    ("capital_stock", "Capital stock"),
    ("retained_earnings", "Retained earnings"),
    ("total_net_assets", "Total net assets"),
]

PROFIT_LOSS_ITEMS: List[Tuple[str, str]] = [
    ("net_sales", "Net sales"),
    ("cost_of_sales", "Cost of sales"),
    ("gross_profit", "Gross profit"),
    ("selling_general_admin_expenses", "SG&A expenses"),
    ("operating_income", "Operating income"),
    ("non_operating_income", "Non-operating income"),
    ("non_operating_expenses", "Non-operating expenses"),
    ("ordinary_income", "Ordinary income"),
    ("extraordinary_income", "Extraordinary income"),
    ("extraordinary_losses", "Extraordinary losses"),
    ("income_before_tax", "Income before tax"),
    ("income_taxes", "Income taxes"),
    ("net_income", "Net income"),
]


def get_metric_keys(group: Optional[str] = None) -> List[str]:
    return [k for k, d in METRIC_DEFS.items() if group is None or d.group == group]


def get_metric_label(key: str) -> str:
    d = METRIC_DEFS.get(key)
    return d.label if d else key


def year_label(fiscal_year: int) -> str:
    return f"FY{fiscal_year}"


# ─── Metrics Table ────────────────────────────────────────────────────────────

def build_metrics_table(periods: List[PeriodFinancialData], unit: AmountUnit = "millions") -> pd.DataFrame:
    """
    One row per metric, one column per fiscal year, values formatted for display.
    Amount metrics are scaled to `unit`; the unit label goes in the "Unit" column.
    Periods without computed metrics show the placeholder.
    """
    ordered = sorted(periods, key=lambda p: p.fiscal_year)
    unit_label = get_unit_label(unit)
    rows = []
    for key, d in METRIC_DEFS.items():
        row = {"Group": d.group, "Metric": d.label}
        for p in ordered:
            value = getattr(p.metrics, key) if p.metrics is not None else None
            row[year_label(p.fiscal_year)] = format_metric(value, d.kind, unit)
        row["Unit"] = unit_label if d.kind == "amount" else ""
        row["Formula"] = d.formula
        rows.append(row)
    return pd.DataFrame(rows)
