"""
fin_metrics/charts.py
=====================
Plotly trend charts for an analysis and a standalone HTML chart report.
"""
from __future__ import annotations
import html
from typing import Dict, List, Optional

import plotly.graph_objects as go
import plotly.io as pio

from .formatting import convert_amount, get_unit_label
from .metric_catalog import build_metrics_table, year_label
from .types import AmountUnit, FinancialAnalysis, PeriodFinancialData


def _make_plotly_colors() -> List[str]:
    return ["#1e40af", "#3b82f6", "#60a5fa", "#93c5fd", "#bfdbfe",
            "#1d4ed8", "#2563eb", "#6366f1", "#8b5cf6", "#a78bfa"]


def _layout(fig: go.Figure, title: str, yaxis_title: str, height: int) -> go.Figure:
    fig.update_layout(
        title=dict(text=title, font=dict(size=14, color="#1e293b")),
        yaxis_title=yaxis_title,
        paper_bgcolor="white", plot_bgcolor="#f8fafc",
        margin=dict(l=40, r=20, t=40, b=30),
        height=height, legend=dict(orientation="h", y=-0.2),
        font=dict(family="sans-serif", size=11, color="#64748b"),
        xaxis=dict(gridcolor="#e2e8f0"), yaxis=dict(gridcolor="#e2e8f0"),
    )
    return fig


def _series(periods: List[PeriodFinancialData], getter) -> Dict[int, float]:
    """fiscal_year → value, skipping missing values."""
    out: Dict[int, float] = {}
    for p in periods:
        v = getter(p)
        if v is not None:
            out[p.fiscal_year] = v
    return out


def _metric_series(periods: List[PeriodFinancialData], key: str) -> Dict[int, float]:
    return _series(periods, lambda p: getattr(p.metrics, key) if p.metrics is not None else None)


# ─── Figure Builders ──────────────────────────────────────────────────────────

def build_bar_chart(
    multi_series: Dict[str, Dict[int, float]], title: str, yaxis_title: str = ""
) -> go.Figure:
    """Grouped bars; negative single-series bars are drawn red."""
    fig = go.Figure()
    palette = _make_plotly_colors()
    single = len(multi_series) == 1
    for i, (name, series) in enumerate(multi_series.items()):
        years_s = sorted(series)
        vals = [series[y] for y in years_s]
        color = palette[i % len(palette)]
        colors = ["#ef4444" if single and v < 0 else color for v in vals]
        fig.add_trace(go.Bar(x=[year_label(y) for y in years_s], y=vals, marker_color=colors, name=name))
    fig.update_layout(barmode="group", showlegend=not single)
    return _layout(fig, title, yaxis_title, 280)


def build_line_chart(
    multi_series: Dict[str, Dict[int, float]], title: str, yaxis_title: str = ""
) -> go.Figure:
    fig = go.Figure()
    palette = _make_plotly_colors()
    for i, (name, series) in enumerate(multi_series.items()):
        if not series:
            continue
        years_s = sorted(series)
        fig.add_trace(go.Scatter(
            x=[year_label(y) for y in years_s],
            y=[series[y] for y in years_s],
            name=name, mode="lines+markers",
            line=dict(color=palette[i % len(palette)], width=2.5),
            marker=dict(size=7),
        ))
    return _layout(fig, title, yaxis_title, 300)


def sales_and_operating_income_chart(periods: List[PeriodFinancialData], unit: AmountUnit = "millions") -> go.Figure:
    return build_bar_chart({
        "Net sales": _series(periods, lambda p: convert_amount(p.profit_loss.net_sales, unit)),
        "Operating income": _series(periods, lambda p: convert_amount(p.profit_loss.operating_income, unit)),
    }, "Net Sales & Operating Income", get_unit_label(unit))


def margin_chart(periods: List[PeriodFinancialData]) -> go.Figure:
    return build_line_chart({
        "Gross profit margin": _metric_series(periods, "gross_profit_margin"),
        "Operating profit margin": _metric_series(periods, "operating_profit_margin"),
        "EBITDA margin": _metric_series(periods, "ebitda_margin"),
    }, "Profit Margins", "%")


def safety_chart(periods: List[PeriodFinancialData]) -> go.Figure:
    return build_line_chart({
        "Current ratio": _metric_series(periods, "current_ratio"),
        "Equity ratio": _metric_series(periods, "equity_ratio"),
    }, "Safety Ratios", "%")


def cash_flow_chart(periods: List[PeriodFinancialData], unit: AmountUnit = "millions") -> go.Figure:
    def scaled(key: str) -> Dict[int, float]:
        return {y: convert_amount(v, unit) for y, v in _metric_series(periods, key).items()}

    return build_bar_chart({
        "Net cash": scaled("net_cash"),
        "EBITDA": scaled("ebitda"),
        "FCF": scaled("fcf"),
    }, "Net Cash, EBITDA & FCF", get_unit_label(unit))


def build_charts(analysis: FinancialAnalysis, unit: AmountUnit = "millions") -> List[go.Figure]:
    periods = sorted(analysis.periods, key=lambda p: p.fiscal_year)
    return [
        sales_and_operating_income_chart(periods, unit),
        margin_chart(periods),
        safety_chart(periods),
        cash_flow_chart(periods, unit),
    ]


# ─── HTML Report ──────────────────────────────────────────────────────────────

def export_chart_report(analysis: FinancialAnalysis, unit: AmountUnit = "millions",
                        title: Optional[str] = None) -> str:
    """
    Standalone HTML page: company header, metrics table, trend charts and
    any commentary. plotly.js is loaded from the CDN once.
    """
    heading = html.escape(title or f"{analysis.company_name} Financial Analysis")
    parts = [
        "<!DOCTYPE html>",
        "<html><head><meta charset='utf-8'>",
        f"<title>{heading}</title>",
        "</head><body style='font-family:sans-serif;color:#1e293b;'>",
        f"<h1>{heading}</h1>",
    ]
    if analysis.industry_name:
        parts.append(f"<p>Industry: {html.escape(analysis.industry_name)}</p>")
    if analysis.periods:
        parts.append(f"<p>FY{analysis.fiscal_year_start} - FY{analysis.fiscal_year_end}</p>")

    table = build_metrics_table(analysis.periods, unit)
    parts.append(table.to_html(index=False, border=0, classes="metrics"))

    for i, fig in enumerate(build_charts(analysis, unit)):
        parts.append(pio.to_html(fig, full_html=False, include_plotlyjs="cdn" if i == 0 else False))

    comments = sorted(
        (c for c in analysis.comments if c.text),
        key=lambda c: c.display_order if c.display_order is not None else 0,
    )
    if comments:
        parts.append("<h2>Commentary</h2>")
        for c in comments:
            parts.append(f"<h3>{html.escape(c.comment_type.title())}</h3>")
            parts.append(f"<p>{html.escape(c.text)}</p>")

    parts.append("</body></html>")
    return "\n".join(parts)
