"""
fin_metrics/commentary.py
=========================
LLM-written analysis commentary (overall, liquidity, profitability,
efficiency, safety, growth).

Prompts quote the computed figures verbatim; the model is asked to
describe trends only as far as the multi-year data supports them.
The OpenAI client is injected, so callers and tests decide how (or
whether) to reach the API.
"""
from __future__ import annotations
import logging
from typing import Callable, Dict, List, Optional, Tuple

from openai import OpenAI, OpenAIError

from .config import Settings
from .metric_catalog import year_label
from .types import (
    COMMENT_TYPES, AnalysisComment, FinancialAnalysis, FinancialMetrics, PeriodFinancialData,
)

logger = logging.getLogger(__name__)

NO_CLIENT_OVERALL = "AI commentary is unavailable because no OpenAI API key is configured."
NO_COMMENT = "-"

ANALYST_ROLE = (
    "You are an experienced certified public accountant and SME management consultant "
    "analysing a company's financial statements."
)
USE_DATA_EXACTLY = "Use the figures provided exactly. Never ignore, alter or invent data."

TONE_RULES = """
Tone:
- Avoid strongly negative wording such as "critical", "severe", "fragile" or "threatens sustainability".
- Prefer measured wording such as "worth monitoring" or "room for improvement".
- Do not judge overall soundness from a single indicator.
"""

TREND_RULES = """
Trends:
- Say a trend "continues" only when it holds for several consecutive years.
- Describe a one-year change as happening "in the latest year".
- Separate the multi-year tendency from the latest-year change.
"""


# ─── Figure Formatting ────────────────────────────────────────────────────────

def format_metric_for_prompt(value: Optional[float], unit: str) -> str:
    """
    Render a figure for a prompt. unit is one of "円", "%", "ヶ月", "倍".
    Yen amounts use 億円 above 100 million and 万円 above 10 thousand.
    """
    if value is None:
        return "unknown"
    if unit == "円":
        if abs(value) >= 100_000_000:
            return f"{value / 100_000_000:.1f}億円"
        if abs(value) >= 10_000:
            return f"{value / 10_000:.0f}万円"
        return f"{value:,.0f}円"
    if unit == "%":
        return f"{value:.1f}%"
    if unit == "ヶ月":
        return f"{value:.1f}ヶ月"
    if unit == "倍":
        return f"{value:.2f}倍"
    return f"{value:,}"


def _yen_trend(periods: List[PeriodFinancialData], getter: Callable[[PeriodFinancialData], Optional[float]]) -> str:
    return "\n".join(f"{year_label(p.fiscal_year)}: {format_metric_for_prompt(getter(p) or 0, '円')}" for p in periods)


def _percent_trend(periods: List[PeriodFinancialData], key: str) -> str:
    lines = []
    for p in periods:
        v = getattr(p.metrics, key) if p.metrics is not None else None
        if v is not None:
            lines.append(f"{year_label(p.fiscal_year)}: {v:.1f}%")
    return "\n".join(lines)


# ─── Sales Trend ──────────────────────────────────────────────────────────────

def sales_changes(periods: List[PeriodFinancialData]) -> List[Tuple[int, float]]:
    """(fiscal_year, YoY change %) for each period after the first; 0 when the previous sales are not positive."""
    ordered = sorted(periods, key=lambda p: p.fiscal_year)
    out = []
    for prev, curr in zip(ordered, ordered[1:]):
        prev_sales = prev.profit_loss.net_sales or 0
        curr_sales = curr.profit_loss.net_sales or 0
        rate = (curr_sales - prev_sales) / prev_sales * 100 if prev_sales > 0 else 0.0
        out.append((curr.fiscal_year, rate))
    return out


def describe_sales_trend(periods: List[PeriodFinancialData]) -> str:
    """Plain-language summary of the YoY sales changes; "" for a single period."""
    changes = [rate for _, rate in sales_changes(periods)]
    if not changes:
        return ""
    latest = changes[-1]
    if len(changes) == 1:
        return "decreased in the latest year" if latest < 0 else "increased in the latest year"

    if all(r < 0 for r in changes):
        return "decreasing in every period"
    if all(r > 0 for r in changes):
        return "increasing in every period"
    before = changes[-2]
    if latest < 0 and before > 0:
        return "decreased in the latest year (increasing before that)"
    if latest > 0 and before < 0:
        return "increased in the latest year (decreasing before that)"
    return "mixed increases and decreases"


# ─── Prompt Builders ──────────────────────────────────────────────────────────

def _latest(analysis: FinancialAnalysis) -> Tuple[PeriodFinancialData, FinancialMetrics]:
    latest = analysis.latest_period
    if latest is None:
        raise ValueError("analysis has no periods")
    return latest, latest.metrics or FinancialMetrics()


def _periods(analysis: FinancialAnalysis) -> List[PeriodFinancialData]:
    return sorted(analysis.periods, key=lambda p: p.fiscal_year)


def build_overall_prompt(analysis: FinancialAnalysis, language: str = "Japanese") -> str:
    latest, m = _latest(analysis)
    periods = _periods(analysis)
    return f"""
Analyse the following company's financial data and write an overall assessment.

Company
Name: {analysis.company_name}
Industry: {analysis.industry_name or 'unknown'}
Period: FY{analysis.fiscal_year_start} - FY{analysis.fiscal_year_end}

Net sales:
{_yen_trend(periods, lambda p: p.profit_loss.net_sales)}

Operating income:
{_yen_trend(periods, lambda p: p.profit_loss.operating_income)}

Net income:
{_yen_trend(periods, lambda p: p.profit_loss.net_income)}

Key metrics for {year_label(latest.fiscal_year)}
- Net cash / net debt: {format_metric_for_prompt(m.net_cash, '円')}
- Current ratio: {format_metric_for_prompt(m.current_ratio, '%')}
- EBITDA: {format_metric_for_prompt(m.ebitda, '円')}
- FCF: {format_metric_for_prompt(m.fcf, '円')}
- Sales growth: {format_metric_for_prompt(m.sales_growth_rate, '%')}
- Gross profit margin: {format_metric_for_prompt(m.gross_profit_margin, '%')}
- Operating profit margin: {format_metric_for_prompt(m.operating_profit_margin, '%')}
- ROE: {format_metric_for_prompt(m.roe, '%')}
- ROA: {format_metric_for_prompt(m.roa, '%')}

Instructions
1. Write 3-5 lines in {language}, in a polite register.
2. Name the strengths and the issues, quoting the figures above.
3. Take the industry into account; for service businesses do not discuss inventory or purchasing.
4. High margins may reflect high value-added services or premium pricing, not only cost control.
{TREND_RULES}{TONE_RULES}"""


def build_liquidity_prompt(analysis: FinancialAnalysis, language: str = "Japanese") -> str:
    _, m = _latest(analysis)
    return f"""
Write a 2-3 line comment in {language} on these liquidity indicators:

- Net cash / net debt: {format_metric_for_prompt(m.net_cash, '円')}
- Current ratio: {format_metric_for_prompt(m.current_ratio, '%')}

Assess short-term ability to pay and suggest concrete improvements where relevant.
{TONE_RULES}"""


def build_profitability_prompt(analysis: FinancialAnalysis, language: str = "Japanese") -> str:
    _, m = _latest(analysis)
    periods = _periods(analysis)
    return f"""
Write a 2-3 line comment in {language} on these profitability indicators.

Gross profit margin:
{_percent_trend(periods, 'gross_profit_margin')}

Operating profit margin:
{_percent_trend(periods, 'operating_profit_margin')}

Latest period
- Gross profit margin: {format_metric_for_prompt(m.gross_profit_margin, '%')}
- Operating profit margin: {format_metric_for_prompt(m.operating_profit_margin, '%')}
- EBITDA margin: {format_metric_for_prompt(m.ebitda_margin, '%')}
- ROE: {format_metric_for_prompt(m.roe, '%')}
- ROA: {format_metric_for_prompt(m.roa, '%')}

Say whether profitability is improving, deteriorating or stable across the years.
Treat cost control as a secondary explanation for high margins.
{TREND_RULES}{TONE_RULES}"""


def build_efficiency_prompt(analysis: FinancialAnalysis, language: str = "Japanese") -> str:
    latest, m = _latest(analysis)
    has_inventory = (latest.balance_sheet.inventory or 0) > 0
    inventory_line = (
        f"- Inventory months: {format_metric_for_prompt(m.inventory_turnover_months, 'ヶ月')}"
        if has_inventory else "- Inventory: none (service business)"
    )
    inventory_task = (
        "Assess inventory turnover."
        if has_inventory else
        "Assess working-capital management for a service business; do not mention inventory or purchasing."
    )
    return f"""
Write a 2-3 line comment in {language} on this company's efficiency indicators.

Company: {analysis.company_name}
Industry: {analysis.industry_name or 'unknown'}

- Receivables months: {format_metric_for_prompt(m.receivables_turnover_months, 'ヶ月')}
{inventory_line}

Assess working-capital efficiency and receivables collection. {inventory_task}
Suggest cash-flow improvements where relevant.
{TONE_RULES}"""


def build_safety_prompt(analysis: FinancialAnalysis, language: str = "Japanese") -> str:
    _, m = _latest(analysis)
    return f"""
Write a 2-3 line comment in {language} on these financial safety indicators:

- Net cash / net debt: {format_metric_for_prompt(m.net_cash, '円')}
- Current ratio: {format_metric_for_prompt(m.current_ratio, '%')}
- Equity ratio: {format_metric_for_prompt(m.equity_ratio, '%')}
- Interest-bearing debt / EBITDA: {format_metric_for_prompt(m.ebitda_to_interest_bearing_debt, '倍')}

Assess financial soundness and point out risks where present.
{TONE_RULES}"""


def build_growth_prompt(analysis: FinancialAnalysis, language: str = "Japanese") -> str:
    _, m = _latest(analysis)
    periods = _periods(analysis)
    changes = "\n".join(f"FY{y}: {rate:+.1f}%" for y, rate in sales_changes(periods))
    return f"""
Write a 2-3 line comment in {language} on this company's growth.

Net sales:
{_yen_trend(periods, lambda p: p.profit_loss.net_sales)}

YoY change:
{changes}

Trend: {describe_sales_trend(periods) or 'single period'}
Latest sales growth rate: {format_metric_for_prompt(m.sales_growth_rate, '%')}

Assess growth and comment on the outlook, following the trend stated above.
{TREND_RULES}{TONE_RULES}"""


# comment_type → (builder, system message, factual?, max_tokens)
PROMPTS: Dict[str, Tuple[Callable[[FinancialAnalysis, str], str], Optional[str], bool, int]] = {
    "overall": (build_overall_prompt, f"{ANALYST_ROLE} {USE_DATA_EXACTLY}", True, 500),
    "liquidity": (build_liquidity_prompt, None, False, 300),
    "profitability": (build_profitability_prompt, USE_DATA_EXACTLY, True, 300),
    "efficiency": (
        build_efficiency_prompt,
        "Tailor the analysis to the company's industry. Outside manufacturing and retail, "
        "do not discuss inventory or purchasing.",
        False, 300,
    ),
    "safety": (build_safety_prompt, None, False, 300),
    "growth": (build_growth_prompt, USE_DATA_EXACTLY, True, 300),
}


def build_prompt(analysis: FinancialAnalysis, comment_type: str, language: str = "Japanese") -> str:
    if comment_type not in PROMPTS:
        raise ValueError(f"Unknown comment type: {comment_type!r}")
    return PROMPTS[comment_type][0](analysis, language)


# ─── Generator ────────────────────────────────────────────────────────────────

class CommentGenerator:
    """
    Generates commentary through an OpenAI chat client.
    Without a client every comment is a placeholder. An API failure on
    one comment leaves the others unaffected.
    """

    def __init__(self, client: Optional[OpenAI] = None, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or Settings()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CommentGenerator":
        if not settings.ai_enabled:
            logger.warning("OPENAI_API_KEY is not set; AI commentary is disabled")
            return cls(None, settings)
        return cls(OpenAI(api_key=settings.openai_api_key), settings)

    @staticmethod
    def placeholder(comment_type: str) -> str:
        return NO_CLIENT_OVERALL if comment_type == "overall" else NO_COMMENT

    def _complete(self, system: Optional[str], prompt: str, temperature: float, max_tokens: int) -> Optional[str]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        response = self.client.chat.completions.create(
            model=self.settings.openai_model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content

    def regenerate_comment(self, analysis: FinancialAnalysis, comment_type: str) -> str:
        """Text for a single comment type."""
        prompt = build_prompt(analysis, comment_type, self.settings.comment_language)
        if self.client is None:
            return self.placeholder(comment_type)

        _, system, factual, max_tokens = PROMPTS[comment_type]
        temperature = self.settings.factual_temperature if factual else self.settings.narrative_temperature
        logger.debug("Requesting %s comment for %s", comment_type, analysis.company_name)
        try:
            text = self._complete(system, prompt, temperature, max_tokens)
        except OpenAIError as e:
            logger.error("%s comment generation failed: %s", comment_type, e)
            return self.placeholder(comment_type)
        return text.strip() if text else self.placeholder(comment_type)

    def generate_comments(self, analysis: FinancialAnalysis) -> List[AnalysisComment]:
        """One comment per type, in display order."""
        comments = [
            AnalysisComment(
                comment_type=ct,
                ai_generated_text=self.regenerate_comment(analysis, ct),
                display_order=i,
            )
            for i, ct in enumerate(COMMENT_TYPES, start=1)
        ]
        logger.info("Generated %d comments for %s", len(comments), analysis.company_name)
        return comments
