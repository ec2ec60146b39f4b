"""
fin_metrics/excel_export.py
===========================
Excel workbook export for an analysis (pandas + openpyxl).

Sheets:
  Account Trend  statement line items per year, scaled to the display unit,
                 plus a latest-minus-previous change column
  Metrics        formatted metrics table (see metric_catalog)
  Raw Data       company header and unscaled statement values
  Chart Data     raw metric series used by the chart report
"""
from __future__ import annotations
import io
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .formatting import convert_amount, get_unit_label
from .metric_catalog import (
    BALANCE_SHEET_ITEMS, METRIC_DEFS, PROFIT_LOSS_ITEMS, build_metrics_table, year_label,
)
from .types import AmountUnit, FinancialAnalysis, PeriodFinancialData

SHEET_ACCOUNT_TREND = "Account Trend"
SHEET_METRICS = "Metrics"
SHEET_RAW_DATA = "Raw Data"
SHEET_CHART_DATA = "Chart Data"

CHART_METRICS: List[str] = [
    "net_cash", "ebitda", "fcf",
    "gross_profit_margin", "operating_profit_margin", "roe", "roa",
]

_RAW_DATA_START_ROW = 6


def _statement_items() -> List[Tuple[str, str, str]]:
    return (
        [("balance_sheet", key, label) for key, label in BALANCE_SHEET_ITEMS]
        + [("profit_loss", key, label) for key, label in PROFIT_LOSS_ITEMS]
    )


def _line_value(period: PeriodFinancialData, section: str, key: str) -> Optional[float]:
    return getattr(getattr(period, section), key)


# ─── Sheet Builders ───────────────────────────────────────────────────────────

def build_account_trend(periods: List[PeriodFinancialData], unit: AmountUnit = "ones") -> pd.DataFrame:
    """
    Line items × fiscal years in `unit`. With two or more periods a "Change"
    column holds latest minus previous, blank when either side is missing.
    """
    ordered = sorted(periods, key=lambda p: p.fiscal_year)
    rows = []
    for section, key, label in _statement_items():
        row: Dict[str, object] = {"Item": label}
        values = [convert_amount(_line_value(p, section, key), unit) for p in ordered]
        for p, v in zip(ordered, values):
            row[year_label(p.fiscal_year)] = v
        if len(ordered) >= 2:
            latest, previous = values[-1], values[-2]
            row["Change"] = latest - previous if latest is not None and previous is not None else None
        rows.append(row)
    return pd.DataFrame(rows)


def build_raw_data(periods: List[PeriodFinancialData]) -> pd.DataFrame:
    ordered = sorted(periods, key=lambda p: p.fiscal_year)
    rows = []
    for section, key, _ in _statement_items():
        row: Dict[str, object] = {"Field": key}
        for p in ordered:
            row[year_label(p.fiscal_year)] = _line_value(p, section, key)
        rows.append(row)
    return pd.DataFrame(rows)


def build_chart_data(periods: List[PeriodFinancialData]) -> pd.DataFrame:
    ordered = sorted(periods, key=lambda p: p.fiscal_year)
    rows = []
    for key in CHART_METRICS:
        row: Dict[str, object] = {"Metric": METRIC_DEFS[key].label}
        for p in ordered:
            row[year_label(p.fiscal_year)] = getattr(p.metrics, key) if p.metrics is not None else None
        rows.append(row)
    return pd.DataFrame(rows)


def _company_header(analysis: FinancialAnalysis) -> pd.DataFrame:
    years = (
        f"FY{analysis.fiscal_year_start} - FY{analysis.fiscal_year_end}"
        if analysis.periods else ""
    )
    return pd.DataFrame([
        ("Company", analysis.company_name),
        ("Industry", analysis.industry_name or ""),
        ("Analysis date", analysis.analysis_date.isoformat() if analysis.analysis_date else ""),
        ("Fiscal years", years),
    ])


# ─── Workbook ─────────────────────────────────────────────────────────────────

def export_to_excel(analysis: FinancialAnalysis, unit: AmountUnit = "ones") -> bytes:
    """Render the analysis as an .xlsx workbook and return its bytes."""
    buf = io.BytesIO()
    periods = analysis.periods
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        trend = build_account_trend(periods, unit)
        trend.to_excel(writer, sheet_name=SHEET_ACCOUNT_TREND, index=False)

        metrics = build_metrics_table(periods, unit)
        metrics.to_excel(writer, sheet_name=SHEET_METRICS, index=False)

        _company_header(analysis).to_excel(writer, sheet_name=SHEET_RAW_DATA, index=False, header=False)
        build_raw_data(periods).to_excel(
            writer, sheet_name=SHEET_RAW_DATA, index=False, startrow=_RAW_DATA_START_ROW,
        )

        build_chart_data(periods).to_excel(writer, sheet_name=SHEET_CHART_DATA, index=False)

        ws = writer.sheets[SHEET_ACCOUNT_TREND]
        ws.cell(row=len(trend) + 3, column=1, value=f"Unit: {get_unit_label(unit)}")
        for sheet in writer.sheets.values():
            sheet.column_dimensions["A"].width = 32
    return buf.getvalue()
