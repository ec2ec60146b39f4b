"""
fin_metrics/types.py
====================
Dataclasses for fiscal-period financial records, computed metrics,
commentary and validation results. All numeric fields are Optional:
an absent figure is None, never NaN.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Dict, List, Optional, Literal

# ─── Enumerations ─────────────────────────────────────────────────────────────

AmountUnit = Literal["ones", "thousands", "millions", "billions"]
CommentType = Literal["overall", "liquidity", "profitability", "efficiency", "safety", "growth"]
Severity = Literal["error", "warning"]
MetricKind = Literal["amount", "percent", "months", "times"]
ManualInputType = Literal["depreciation", "capex", "fixed_asset_disposal_value"]

AccountType = Literal[
    "cash_deposits",
    "securities",
    "receivables",
    "inventory",
    "loans_receivable",
    "other_receivables",
    "temporary_payments",
    "land",
    "borrowings",
    "payables",
    "other_payables",
    "accrued_expenses",
    "executive_compensation",
    "rent_expenses",
    "depreciation",
    "other",
]

COMMENT_TYPES: List[str] = ["overall", "liquidity", "profitability", "efficiency", "safety", "growth"]


# ─── Statement Inputs ─────────────────────────────────────────────────────────

@dataclass
class BalanceSheet:
    # Assets
    cash_and_deposits: Optional[float] = None
    securities: Optional[float] = None
    notes_receivable: Optional[float] = None
    accounts_receivable: Optional[float] = None
    inventory: Optional[float] = None
    other_current_assets: Optional[float] = None
    current_assets_total: Optional[float] = None
    tangible_fixed_assets: Optional[float] = None
    intangible_fixed_assets: Optional[float] = None
    investments_and_other_assets: Optional[float] = None
    fixed_assets_total: Optional[float] = None
    total_assets: Optional[float] = None
    # Liabilities
    notes_payable: Optional[float] = None
    accounts_payable: Optional[float] = None
    short_term_borrowings: Optional[float] = None
    current_liabilities_total: Optional[float] = None
    long_term_borrowings: Optional[float] = None
    bonds_payable: Optional[float] = None
    lease_obligations: Optional[float] = None
    fixed_liabilities_total: Optional[float] = None
    total_liabilities: Optional[float] = None
    # Net assets
    capital_stock: Optional[float] = None
    retained_earnings: Optional[float] = None
    total_net_assets: Optional[float] = None


@dataclass
class ProfitLoss:
    net_sales: Optional[float] = None
    cost_of_sales: Optional[float] = None
    gross_profit: Optional[float] = None
    selling_general_admin_expenses: Optional[float] = None
    operating_income: Optional[float] = None
    non_operating_income: Optional[float] = None
    non_operating_expenses: Optional[float] = None
    ordinary_income: Optional[float] = None
    extraordinary_income: Optional[float] = None
    extraordinary_losses: Optional[float] = None
    income_before_tax: Optional[float] = None
    income_taxes: Optional[float] = None
    net_income: Optional[float] = None


@dataclass
class ManualInputs:
    depreciation: Optional[float] = None
    capex: Optional[float] = None
    fixed_asset_disposal_value: Optional[float] = None


@dataclass
class AccountDetail:
    account_type: AccountType = "other"
    item_name: Optional[str] = None
    amount: Optional[float] = None
    note: Optional[str] = None


# ─── Computed Metrics ─────────────────────────────────────────────────────────

@dataclass
class FinancialMetrics:
    # Liquidity / safety
    net_cash: Optional[float] = None
    current_ratio: Optional[float] = None
    equity_ratio: Optional[float] = None
    # Efficiency
    receivables_turnover_months: Optional[float] = None
    inventory_turnover_months: Optional[float] = None
    # Cash flow & profitability
    ebitda: Optional[float] = None
    fcf: Optional[float] = None
    sales_growth_rate: Optional[float] = None
    operating_income_growth_rate: Optional[float] = None
    ebitda_growth_rate: Optional[float] = None
    gross_profit_margin: Optional[float] = None
    operating_profit_margin: Optional[float] = None
    ebitda_margin: Optional[float] = None
    # Financial soundness
    ebitda_to_interest_bearing_debt: Optional[float] = None
    # Capital efficiency
    roe: Optional[float] = None
    roa: Optional[float] = None

    def as_dict(self) -> Dict[str, Optional[float]]:
        return asdict(self)


@dataclass
class PeriodFinancialData:
    fiscal_year: int
    balance_sheet: BalanceSheet = field(default_factory=BalanceSheet)
    profit_loss: ProfitLoss = field(default_factory=ProfitLoss)
    manual_inputs: ManualInputs = field(default_factory=ManualInputs)
    account_details: List[AccountDetail] = field(default_factory=list)
    period_start_date: Optional[date] = None
    period_end_date: Optional[date] = None
    metrics: Optional[FinancialMetrics] = None


@dataclass
class PeriodComparison:
    current_period: float
    previous_period: float
    change: float
    change_percent: float


# ─── Analysis & Commentary ────────────────────────────────────────────────────

@dataclass
class AnalysisComment:
    comment_type: str
    ai_generated_text: Optional[str] = None
    edited_text: Optional[str] = None
    is_edited: bool = False
    display_order: Optional[int] = None

    @property
    def text(self) -> str:
        """Edited text wins over the generated one."""
        if self.is_edited and self.edited_text:
            return self.edited_text
        return self.ai_generated_text or ""


@dataclass
class FinancialAnalysis:
    company_name: str
    periods: List[PeriodFinancialData] = field(default_factory=list)
    industry_name: Optional[str] = None
    analysis_date: Optional[date] = None
    comments: List[AnalysisComment] = field(default_factory=list)

    @property
    def fiscal_year_start(self) -> Optional[int]:
        return min(p.fiscal_year for p in self.periods) if self.periods else None

    @property
    def fiscal_year_end(self) -> Optional[int]:
        return max(p.fiscal_year for p in self.periods) if self.periods else None

    @property
    def latest_period(self) -> Optional[PeriodFinancialData]:
        if not self.periods:
            return None
        return max(self.periods, key=lambda p: p.fiscal_year)


# ─── Validation & Orchestration Results ───────────────────────────────────────

@dataclass
class ValidationIssue:
    field: str
    message: str
    severity: Severity = "error"


@dataclass
class RecalculationSummary:
    periods_processed: int
    success_count: int
    error_count: int
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error_count == 0
