"""
fin_metrics/validation.py
=========================
Consistency checks for extracted balance sheet and P&L figures:
subtotal arithmetic, the balance sheet equation and cost-ratio sanity.
Checks report issues; they never raise.
"""
from __future__ import annotations
import math
from typing import Any, List, Optional

from .types import BalanceSheet, ProfitLoss, ValidationIssue

# Rounding tolerance in yen.
TOLERANCE = 1.0


def validate_number(
    value: Any,
    field_name: str,
    required: bool = False,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    allow_negative: bool = True,
) -> Optional[ValidationIssue]:
    """Check a single raw input value; blanks pass unless `required`."""
    if value is None or value == "":
        if required:
            return ValidationIssue(field_name, f"{field_name} is required")
        return None

    try:
        num = float(str(value).replace(",", "")) if not isinstance(value, (int, float)) else float(value)
    except ValueError:
        num = math.nan
    if not math.isfinite(num):
        return ValidationIssue(field_name, f"{field_name} must be a valid number")

    if not allow_negative and num < 0:
        return ValidationIssue(field_name, f"{field_name} must be zero or greater")
    if min_value is not None and num < min_value:
        return ValidationIssue(field_name, f"{field_name} must be at least {min_value:,}")
    if max_value is not None and num > max_value:
        return ValidationIssue(field_name, f"{field_name} must be at most {max_value:,}")
    return None


def _check_sum(
    issues: List[ValidationIssue],
    field_name: str,
    label: str,
    reported: Optional[float],
    parts: List[Optional[float]],
    signs: Optional[List[int]] = None,
    severity: str = "error",
) -> None:
    """Compare a reported subtotal with the signed sum of its components."""
    if reported is None or all(p is None for p in parts):
        return
    signs = signs or [1] * len(parts)
    calculated = sum(s * (p or 0.0) for s, p in zip(signs, parts))
    if abs(calculated - reported) > TOLERANCE:
        issues.append(ValidationIssue(
            field_name,
            f"{label} is inconsistent (calculated: {calculated:,.0f} yen, reported: {reported:,.0f} yen)",
            severity,  # type: ignore[arg-type]
        ))


def validate_balance_sheet(bs: BalanceSheet) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    _check_sum(issues, "current_assets_total", "Total current assets", bs.current_assets_total,
               [bs.cash_and_deposits, bs.accounts_receivable, bs.inventory], severity="warning")
    _check_sum(issues, "fixed_assets_total", "Total fixed assets", bs.fixed_assets_total,
               [bs.tangible_fixed_assets, bs.intangible_fixed_assets, bs.investments_and_other_assets],
               severity="warning")
    _check_sum(issues, "total_assets", "Total assets", bs.total_assets,
               [bs.current_assets_total, bs.fixed_assets_total])
    _check_sum(issues, "current_liabilities_total", "Total current liabilities", bs.current_liabilities_total,
               [bs.accounts_payable, bs.short_term_borrowings], severity="warning")
    _check_sum(issues, "fixed_liabilities_total", "Total fixed liabilities", bs.fixed_liabilities_total,
               [bs.long_term_borrowings], severity="warning")
    _check_sum(issues, "total_liabilities", "Total liabilities", bs.total_liabilities,
               [bs.current_liabilities_total, bs.fixed_liabilities_total])
    _check_sum(issues, "total_net_assets", "Total net assets", bs.total_net_assets,
               [bs.capital_stock, bs.retained_earnings], severity="warning")

    # Total assets = total liabilities + net assets
    if bs.total_assets is not None and bs.total_liabilities is not None and bs.total_net_assets is not None:
        rhs = bs.total_liabilities + bs.total_net_assets
        if abs(bs.total_assets - rhs) > TOLERANCE:
            issues.append(ValidationIssue(
                "total_assets",
                f"Balance sheet does not balance: total assets ({bs.total_assets:,.0f} yen) "
                f"≠ liabilities + net assets ({rhs:,.0f} yen)",
                "error",
            ))

    return issues


def validate_profit_loss(pl: ProfitLoss) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    _check_sum(issues, "gross_profit", "Gross profit", pl.gross_profit,
               [pl.net_sales, pl.cost_of_sales], [1, -1])
    _check_sum(issues, "operating_income", "Operating income", pl.operating_income,
               [pl.gross_profit, pl.selling_general_admin_expenses], [1, -1])
    _check_sum(issues, "ordinary_income", "Ordinary income", pl.ordinary_income,
               [pl.operating_income, pl.non_operating_income, pl.non_operating_expenses], [1, 1, -1])
    _check_sum(issues, "income_before_tax", "Income before tax", pl.income_before_tax,
               [pl.ordinary_income, pl.extraordinary_income, pl.extraordinary_losses], [1, 1, -1])
    _check_sum(issues, "net_income", "Net income", pl.net_income,
               [pl.income_before_tax, pl.income_taxes], [1, -1])

    if pl.net_sales is not None and pl.cost_of_sales is not None and pl.net_sales > 0:
        cost_ratio = pl.cost_of_sales / pl.net_sales * 100
        if cost_ratio > 95:
            issues.append(ValidationIssue(
                "cost_of_sales", f"Cost ratio of {cost_ratio:.1f}% looks unusually high", "warning",
            ))
        if cost_ratio < 0:
            issues.append(ValidationIssue(
                "cost_of_sales", "Cost ratio is negative: cost of sales is below zero", "error",
            ))

    return issues


def validate_financial_data(bs: BalanceSheet, pl: ProfitLoss) -> List[ValidationIssue]:
    return validate_balance_sheet(bs) + validate_profit_loss(pl)


def format_validation_errors(issues: List[ValidationIssue]) -> str:
    """Errors first, then warnings, one per line."""
    errors = [f"❌ {i.message}" for i in issues if i.severity == "error"]
    warnings = [f"⚠️ {i.message}" for i in issues if i.severity == "warning"]
    return "\n".join(errors + warnings)
