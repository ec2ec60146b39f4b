"""
fin_metrics/formatting.py
=========================
Yen amount scaling (円 / 千円 / 百万円 / 十億円), percent, month and
multiple formatting for metric display. None always renders as "-".
"""
from __future__ import annotations
import math
import re
from typing import Optional

from .types import AmountUnit, MetricKind

PLACEHOLDER = "-"

UNIT_DIVISORS = {
    "ones": 1,
    "thousands": 1_000,
    "millions": 1_000_000,
    "billions": 1_000_000_000,
}

UNIT_LABELS = {
    "ones": "円",
    "thousands": "千円",
    "millions": "百万円",
    "billions": "十億円",
}


def _is_blank(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def convert_amount(value: Optional[float], unit: AmountUnit) -> Optional[float]:
    """Scale a raw yen amount into the display unit. Unknown units pass through."""
    if _is_blank(value):
        return None
    return value / UNIT_DIVISORS.get(unit, 1)


def get_unit_label(unit: AmountUnit) -> str:
    return UNIT_LABELS.get(unit, UNIT_LABELS["ones"])


def format_number(value: Optional[float], decimals: int = 0) -> str:
    """Thousands separators with a fixed number of decimals, e.g. 1234567.8 → 1,234,568."""
    if _is_blank(value):
        return PLACEHOLDER
    return f"{value:,.{decimals}f}"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    if _is_blank(value):
        return PLACEHOLDER
    return f"{value:.{decimals}f}%"


def format_months(value: Optional[float], decimals: int = 1) -> str:
    if _is_blank(value):
        return PLACEHOLDER
    return f"{value:.{decimals}f}ヶ月"


def format_times(value: Optional[float], decimals: int = 2) -> str:
    if _is_blank(value):
        return PLACEHOLDER
    return f"{value:.{decimals}f}倍"


def format_currency(value: Optional[float]) -> str:
    if _is_blank(value):
        return PLACEHOLDER
    return f"¥{format_number(value)}"


def format_amount_with_unit(
    value: Optional[float], unit: AmountUnit = "ones", decimals: int = 0
) -> str:
    """
    Scale a raw yen amount to `unit` and format it with separators.
    The unit label is shown once per table (see get_unit_label), not per cell.
    e.g. (12_345_678, "thousands", 1) → "12,345.7"
    """
    converted = convert_amount(value, unit)
    if converted is None:
        return PLACEHOLDER
    return format_number(converted, decimals)


def format_metric(
    value: Optional[float], kind: MetricKind, unit: AmountUnit = "ones", decimals: Optional[int] = None
) -> str:
    """Format by metric kind: amount | percent | months | times."""
    if kind == "amount":
        return format_amount_with_unit(value, unit, 1 if decimals is None else decimals)
    if kind == "percent":
        return format_percent(value, 1 if decimals is None else decimals)
    if kind == "months":
        return format_months(value, 1 if decimals is None else decimals)
    if kind == "times":
        return format_times(value, 2 if decimals is None else decimals)
    return format_number(value, 0 if decimals is None else decimals)


_SUFFIXES = ("ヶ月", "倍", "%", "¥", "十億円", "百万円", "千円", "円")


def parse_formatted_number(text: Optional[str]) -> Optional[float]:
    """
    Inverse of the formatters: strip separators, symbols and unit suffixes.
    "-" and blanks → None.
    """
    if text is None:
        return None
    s = str(text).strip()
    if s in ("", PLACEHOLDER):
        return None
    for suffix in _SUFFIXES:
        s = s.replace(suffix, "")
    s = s.replace(",", "").strip()
    if not re.fullmatch(r"[-+]?\d+(\.\d+)?", s):
        return None
    return float(s)
