"""
fin_metrics/records.py
======================
Conversion between database-style rows and typed period records.

A period row looks like:

    {
        "id": "...", "fiscal_year": 2023,
        "period_start_date": "2023-04-01", "period_end_date": "2024-03-31",
        "balance_sheet_items": [{...snake_case columns...}],
        "profit_loss_items": [{...}],
        "manual_inputs": [{"input_type": "depreciation", "amount": 1000}],
        "account_details": [{"account_category": "...", "account_name": "...",
                             "amount": 1, "notes": "..."}],
    }

Rows are validated here so the metrics engine only ever sees typed records.
"""
from __future__ import annotations
from dataclasses import fields, replace
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar

from .parser import parse_date, parse_fiscal_year, to_numeric
from .types import (
    AccountDetail, BalanceSheet, FinancialMetrics, ManualInputs, ManualInputType,
    PeriodFinancialData, ProfitLoss,
)

T = TypeVar("T")

MANUAL_INPUT_TYPES: Tuple[ManualInputType, ...] = ("depreciation", "capex", "fixed_asset_disposal_value")

# Values the engine derived, stored apart from user entries so they are
# re-derived on every recalculation instead of being read back as manual input.
DERIVED_INPUT_TYPES: Dict[str, str] = {
    "depreciation": "derived_depreciation",
    "capex": "derived_capex",
}

# FinancialMetrics field → financial_metrics column
METRIC_COLUMNS: Dict[str, str] = {
    "net_cash": "net_cash",
    "current_ratio": "current_ratio",
    "equity_ratio": "equity_ratio",
    "receivables_turnover_months": "accounts_receivable_turnover_months",
    "inventory_turnover_months": "inventory_turnover_months",
    "ebitda": "ebitda",
    "fcf": "fcf",
    "sales_growth_rate": "sales_growth_rate",
    "operating_income_growth_rate": "operating_income_growth_rate",
    "ebitda_growth_rate": "ebitda_growth_rate",
    "gross_profit_margin": "gross_profit_margin",
    "operating_profit_margin": "operating_profit_margin",
    "ebitda_margin": "ebitda_margin",
    "ebitda_to_interest_bearing_debt": "ebitda_to_interest_bearing_debt",
    "roe": "roe",
    "roa": "roa",
}


class RecordError(ValueError):
    """A row cannot be turned into a valid period record."""


# ─── Row → Record ─────────────────────────────────────────────────────────────

def _first_row(value: Any) -> Mapping[str, Any]:
    # Joined one-to-one tables come back either as a list or a single object.
    if isinstance(value, list):
        return value[0] if value else {}
    return value or {}


def _numeric_dataclass(cls: Type[T], row: Mapping[str, Any]) -> T:
    values = {f.name: to_numeric(row.get(f.name)) for f in fields(cls)}
    return cls(**values)


def statement_from_row(cls: Type[T], row: Optional[Mapping[str, Any]]) -> T:
    """Build a BalanceSheet / ProfitLoss from a snake_case row, ignoring unknown columns."""
    return _numeric_dataclass(cls, row or {})


def manual_inputs_from_rows(rows: Optional[Iterable[Mapping[str, Any]]]) -> ManualInputs:
    values: Dict[str, Optional[float]] = {}
    for r in rows or []:
        input_type = r.get("input_type")
        if input_type in MANUAL_INPUT_TYPES:
            values[input_type] = to_numeric(r.get("amount"))
    return ManualInputs(**values)


def account_details_from_rows(rows: Optional[Iterable[Mapping[str, Any]]]) -> List[AccountDetail]:
    return [
        AccountDetail(
            account_type=r.get("account_category") or r.get("account_type") or "other",
            item_name=r.get("account_name") or r.get("item_name"),
            amount=to_numeric(r.get("amount")),
            note=r.get("notes") or r.get("note"),
        )
        for r in rows or []
    ]


def period_from_row(row: Mapping[str, Any]) -> PeriodFinancialData:
    fiscal_year = parse_fiscal_year(row.get("fiscal_year"))
    if fiscal_year is None:
        raise RecordError(f"Invalid fiscal_year: {row.get('fiscal_year')!r}")

    return PeriodFinancialData(
        fiscal_year=fiscal_year,
        balance_sheet=statement_from_row(BalanceSheet, _first_row(row.get("balance_sheet_items"))),
        profit_loss=statement_from_row(ProfitLoss, _first_row(row.get("profit_loss_items"))),
        manual_inputs=manual_inputs_from_rows(row.get("manual_inputs")),
        account_details=account_details_from_rows(row.get("account_details")),
        period_start_date=parse_date(row.get("period_start_date")),
        period_end_date=parse_date(row.get("period_end_date")),
    )


def period_id_from_row(row: Mapping[str, Any]) -> str:
    period_id = row.get("id")
    if period_id is None or str(period_id).strip() == "":
        raise RecordError(f"Period row for fiscal_year {row.get('fiscal_year')!r} has no id")
    return str(period_id)


def order_periods(periods: Iterable[PeriodFinancialData]) -> List[PeriodFinancialData]:
    """Sort by fiscal year; duplicate years are rejected."""
    ordered = sorted(periods, key=lambda p: p.fiscal_year)
    for prev, curr in zip(ordered, ordered[1:]):
        if prev.fiscal_year == curr.fiscal_year:
            raise RecordError(f"Duplicate fiscal year {curr.fiscal_year}")
    return ordered


# ─── Record → Row ─────────────────────────────────────────────────────────────

def metrics_to_row(metrics: FinancialMetrics, analysis_id: str, period_id: str) -> Dict[str, Any]:
    row: Dict[str, Any] = {"analysis_id": analysis_id, "period_id": period_id}
    for attr, column in METRIC_COLUMNS.items():
        row[column] = getattr(metrics, attr)
    return row


def manual_inputs_to_rows(period_id: str, manual: ManualInputs) -> List[Dict[str, Any]]:
    """One row per input type that has a value."""
    return [
        {"period_id": period_id, "input_type": name, "amount": getattr(manual, name)}
        for name in MANUAL_INPUT_TYPES
        if getattr(manual, name) is not None
    ]


def derived_inputs(entered: ManualInputs, resolved: ManualInputs) -> Dict[str, Optional[float]]:
    """
    Derived-input type → value to store. A value the user entered is not
    derived, so its derived slot is cleared (None).
    """
    return {
        DERIVED_INPUT_TYPES[name]: None if getattr(entered, name) is not None else getattr(resolved, name)
        for name in DERIVED_INPUT_TYPES
    }


def _shift_year(d: Optional[date], offset: int) -> Optional[date]:
    if d is None:
        return None
    try:
        return d.replace(year=d.year + offset)
    except ValueError:  # 29 Feb
        return d.replace(year=d.year + offset, day=28)


def duplicate_period(source: PeriodFinancialData, new_fiscal_year: int) -> PeriodFinancialData:
    """
    Copy a period's statements and inputs into a new fiscal year.
    Dates move with the year; computed metrics are dropped.
    """
    offset = new_fiscal_year - source.fiscal_year
    return replace(
        source,
        fiscal_year=new_fiscal_year,
        balance_sheet=replace(source.balance_sheet),
        profit_loss=replace(source.profit_loss),
        manual_inputs=replace(source.manual_inputs),
        account_details=[replace(d) for d in source.account_details],
        period_start_date=_shift_year(source.period_start_date, offset),
        period_end_date=_shift_year(source.period_end_date, offset),
        metrics=None,
    )
