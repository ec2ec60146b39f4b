"""
fin_metrics/parser.py
=====================
Normalisation of raw statement values coming from CSV files, database
rows and OCR/AI extraction:
  - numbers with separators, yen symbols, parenthesised or △/▲ negatives
  - fiscal year labels (2024, FY2024, 2024年度, 2024年3月期)
  - ISO dates
"""
from __future__ import annotations
import math
import re
from datetime import date, datetime
from typing import Any, Optional

_BLANKS = ("", "-", "--", "—", "N/A", "NA", "n/a", "nan", "None", "null")


# ─── Numeric Normalisation ────────────────────────────────────────────────────

def to_numeric(val: Any) -> Optional[float]:
    """Convert diverse string formats to float; unparseable → None."""
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return float(val) if math.isfinite(val) else None
    s = str(val).strip()
    negative = False
    # Parenthetical negatives: (1234) → -1234
    if s.startswith("(") and s.endswith(")"):
        s, negative = s[1:-1], True
    # Japanese statements mark negatives with △ or ▲
    if s[:1] in ("△", "▲"):
        s, negative = s[1:], True
    s = (s.replace(",", "").replace("¥", "").replace("￥", "")
         .replace("円", "").replace(" ", "").strip())
    if s in _BLANKS:
        return None
    try:
        num = float(s)
    except ValueError:
        return None
    if not math.isfinite(num):
        return None
    return -num if negative else num


# ─── Fiscal Year Detection ────────────────────────────────────────────────────

def parse_fiscal_year(val: Any) -> Optional[int]:
    """
    Parse a fiscal year label → int.
    Supports: 2024, "2024", "FY2024", "FY 2024", "2024年度", "2024年3月期".
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        if isinstance(val, float) and (not math.isfinite(val) or not val.is_integer()):
            return None
        y = int(val)
        return y if 1900 <= y <= 2100 else None

    s = str(val).strip()
    m = re.fullmatch(r"(?:FY\s*)?(\d{4})(?:\.0)?(?:\s*年度|\s*年\s*\d{1,2}\s*月期)?", s, re.IGNORECASE)
    if not m:
        return None
    y = int(m.group(1))
    return y if 1900 <= y <= 2100 else None


# ─── Dates ────────────────────────────────────────────────────────────────────

def parse_date(val: Any) -> Optional[date]:
    """ISO date strings (YYYY-MM-DD or full timestamps) → date; blanks → None."""
    if val is None:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    if s in _BLANKS:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None
