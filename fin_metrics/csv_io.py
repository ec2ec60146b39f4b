"""
fin_metrics/csv_io.py
=====================
CSV template, import and export of period statements, and export of
computed metrics. Columns may be headed by the display label
("Net sales") or the snake_case key ("net_sales").
"""
from __future__ import annotations
import io
import logging
from typing import Dict, List, Mapping, Optional, Tuple

import pandas as pd

from .metric_catalog import BALANCE_SHEET_ITEMS, METRIC_DEFS, PROFIT_LOSS_ITEMS
from .parser import parse_date, parse_fiscal_year, to_numeric
from .types import (
    BalanceSheet, ManualInputs, PeriodFinancialData, ProfitLoss,
)
from .validation import validate_financial_data

logger = logging.getLogger(__name__)

MANUAL_INPUT_ITEMS: List[Tuple[str, str]] = [
    ("depreciation", "Depreciation"),
    ("capex", "CAPEX"),
    ("fixed_asset_disposal_value", "Fixed asset disposal value"),
]

# (key, header label) in column order
CSV_HEADERS: List[Tuple[str, str]] = (
    [
        ("fiscal_year", "Fiscal year (required)"),
        ("period_start_date", "Period start (YYYY-MM-DD)"),
        ("period_end_date", "Period end (YYYY-MM-DD)"),
    ]
    + BALANCE_SHEET_ITEMS
    + PROFIT_LOSS_ITEMS
    + MANUAL_INPUT_ITEMS
)

# Japanese headers used by existing templates and accounting exports.
JAPANESE_HEADER_ALIASES: Dict[str, str] = {
    "年度（必須）": "fiscal_year",
    "年度": "fiscal_year",
    "期首日（YYYY-MM-DD）": "period_start_date",
    "期首日": "period_start_date",
    "期末日（YYYY-MM-DD）": "period_end_date",
    "期末日": "period_end_date",
    "現金及び預金": "cash_and_deposits",
    "現金預金": "cash_and_deposits",
    "有価証券": "securities",
    "受取手形": "notes_receivable",
    "売上債権": "accounts_receivable",
    "売掛金": "accounts_receivable",
    "棚卸資産": "inventory",
    "その他流動資産": "other_current_assets",
    "流動資産合計": "current_assets_total",
    "有形固定資産": "tangible_fixed_assets",
    "無形固定資産": "intangible_fixed_assets",
    "投資その他の資産": "investments_and_other_assets",
    "固定資産合計": "fixed_assets_total",
    "資産合計": "total_assets",
    "支払手形": "notes_payable",
    "仕入債務": "accounts_payable",
    "買掛金": "accounts_payable",
    "短期借入金": "short_term_borrowings",
    "流動負債合計": "current_liabilities_total",
    "長期借入金": "long_term_borrowings",
    "社債": "bonds_payable",
    "リース債務": "lease_obligations",
    "固定負債合計": "fixed_liabilities_total",
    "負債合計": "total_liabilities",
    "資本金": "capital_stock",
    "利益剰余金": "retained_earnings",
    "純資産合計": "total_net_assets",
    "売上高": "net_sales",
    "売上原価": "cost_of_sales",
    "売上総利益": "gross_profit",
    "販売費及び一般管理費": "selling_general_admin_expenses",
    "営業利益": "operating_income",
    "営業外収益": "non_operating_income",
    "営業外費用": "non_operating_expenses",
    "経常利益": "ordinary_income",
    "特別利益": "extraordinary_income",
    "特別損失": "extraordinary_losses",
    "税引前当期純利益": "income_before_tax",
    "法人税等": "income_taxes",
    "当期純利益": "net_income",
    "減価償却費": "depreciation",
    "設備投資額（CAPEX）": "capex",
    "設備投資額": "capex",
    "固定資産売却額": "fixed_asset_disposal_value",
}

_LABEL_TO_KEY: Dict[str, str] = {
    **JAPANESE_HEADER_ALIASES,
    **{label: key for key, label in CSV_HEADERS},
}
_KNOWN_KEYS = {key for key, _ in CSV_HEADERS}


def _normalise_columns(columns: List[str]) -> Dict[str, str]:
    """Map each CSV column to its field key; unknown columns are dropped."""
    mapping: Dict[str, str] = {}
    for col in columns:
        name = str(col).strip().lstrip("﻿")
        if name in _LABEL_TO_KEY:
            mapping[col] = _LABEL_TO_KEY[name]
        elif name in _KNOWN_KEYS:
            mapping[col] = name
    return mapping


# ─── Template ─────────────────────────────────────────────────────────────────

def generate_csv_template() -> str:
    """Header row plus one example row with only the year and dates filled in."""
    example = {label: "" for _, label in CSV_HEADERS}
    example[CSV_HEADERS[0][1]] = "2023"
    example[CSV_HEADERS[1][1]] = "2023-04-01"
    example[CSV_HEADERS[2][1]] = "2024-03-31"
    return pd.DataFrame([example], columns=[label for _, label in CSV_HEADERS]).to_csv(index=False)


# ─── Import ───────────────────────────────────────────────────────────────────

def parse_csv(text: str) -> pd.DataFrame:
    """Read CSV text as strings, columns renamed to field keys. Blank cells stay ""."""
    if not text or not text.strip():
        return pd.DataFrame()
    df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    df = df.rename(columns=_normalise_columns(list(df.columns)))
    return df[[c for c in df.columns if c in _KNOWN_KEYS]]


def row_to_period(row: Mapping[str, str]) -> Tuple[Optional[PeriodFinancialData], List[str]]:
    """
    Convert one CSV row (keyed by field key) to a period record.
    Returns (period, errors); period is None when the fiscal year is missing.
    Consistency problems are reported but do not reject the row.
    """
    errors: List[str] = []
    fiscal_year = parse_fiscal_year(row.get("fiscal_year"))
    if fiscal_year is None:
        errors.append("fiscal_year: fiscal year is required")
        return None, errors

    bs = BalanceSheet(**{key: to_numeric(row.get(key)) for key, _ in BALANCE_SHEET_ITEMS})
    pl = ProfitLoss(**{key: to_numeric(row.get(key)) for key, _ in PROFIT_LOSS_ITEMS})
    manual = ManualInputs(**{key: to_numeric(row.get(key)) for key, _ in MANUAL_INPUT_ITEMS})

    for issue in validate_financial_data(bs, pl):
        errors.append(f"{issue.field}: {issue.message}")

    period = PeriodFinancialData(
        fiscal_year=fiscal_year,
        balance_sheet=bs,
        profit_loss=pl,
        manual_inputs=manual,
        period_start_date=parse_date(row.get("period_start_date")),
        period_end_date=parse_date(row.get("period_end_date")),
    )
    return period, errors


def import_periods_csv(text: str) -> Tuple[List[PeriodFinancialData], List[str]]:
    """
    Parse a statements CSV into periods ordered by fiscal year.
    Errors are prefixed with the 1-based data row number; rows repeating
    an earlier fiscal year are skipped.
    """
    df = parse_csv(text)
    periods: Dict[int, PeriodFinancialData] = {}
    errors: List[str] = []

    if text and text.strip() and "fiscal_year" not in df.columns:
        logger.warning("CSV import: no fiscal year column recognised")
        return [], ["No fiscal_year column found: check the header row"]

    for i, record in enumerate(df.to_dict(orient="records"), start=1):
        period, row_errors = row_to_period(record)
        errors.extend(f"Row {i}: {e}" for e in row_errors)
        if period is None:
            continue
        if period.fiscal_year in periods:
            errors.append(f"Row {i}: duplicate fiscal year {period.fiscal_year}")
            continue
        periods[period.fiscal_year] = period

    if errors:
        logger.warning("CSV import: %d issues across %d rows", len(errors), len(df))
    return [periods[y] for y in sorted(periods)], errors


# ─── Export ───────────────────────────────────────────────────────────────────

def _period_record(period: PeriodFinancialData) -> Dict[str, object]:
    record: Dict[str, object] = {
        "fiscal_year": period.fiscal_year,
        "period_start_date": period.period_start_date.isoformat() if period.period_start_date else "",
        "period_end_date": period.period_end_date.isoformat() if period.period_end_date else "",
    }
    for key, _ in BALANCE_SHEET_ITEMS:
        record[key] = getattr(period.balance_sheet, key)
    for key, _ in PROFIT_LOSS_ITEMS:
        record[key] = getattr(period.profit_loss, key)
    for key, _ in MANUAL_INPUT_ITEMS:
        record[key] = getattr(period.manual_inputs, key)
    return record


def export_periods_csv(periods: List[PeriodFinancialData]) -> str:
    """Statements CSV with display-label headers; re-importable via import_periods_csv."""
    ordered = sorted(periods, key=lambda p: p.fiscal_year)
    df = pd.DataFrame([_period_record(p) for p in ordered], columns=[k for k, _ in CSV_HEADERS])
    df = df.rename(columns=dict(CSV_HEADERS))
    return df.to_csv(index=False)


def export_metrics_csv(periods: List[PeriodFinancialData]) -> str:
    """Raw (unformatted) metric values, one row per fiscal year."""
    rows = []
    for p in sorted(periods, key=lambda p: p.fiscal_year):
        row: Dict[str, object] = {"fiscal_year": p.fiscal_year}
        for key in METRIC_DEFS:
            row[key] = getattr(p.metrics, key) if p.metrics is not None else None
        rows.append(row)
    return pd.DataFrame(rows, columns=["fiscal_year"] + list(METRIC_DEFS)).to_csv(index=False)
