"""
tests/test_charts.py
====================
Plotly chart and HTML report tests.
"""
import pytest

from fin_metrics.charts import (
    build_bar_chart,
    build_charts,
    build_line_chart,
    cash_flow_chart,
    export_chart_report,
    sales_and_operating_income_chart,
)
from fin_metrics.types import AnalysisComment, FinancialAnalysis


class TestFigures:
    def test_bar_negative_values_red(self):
        fig = build_bar_chart({"Net cash": {2022: 10.0, 2023: -5.0}}, "Net cash")
        assert list(fig.data[0].marker.color) == ["#1e40af", "#ef4444"]
        assert list(fig.data[0].x) == ["FY2022", "FY2023"]

    def test_line_skips_empty_series(self):
        fig = build_line_chart({"A": {2022: 1.0}, "B": {}}, "Ratios", "%")
        assert [t.name for t in fig.data] == ["A"]

    def test_sales_chart_scaled(self, analysis):
        fig = sales_and_operating_income_chart(analysis.periods, "millions")
        sales = fig.data[0]
        assert list(sales.y) == pytest.approx([80.0, 100.0, 90.0])
        assert fig.layout.yaxis.title.text == "百万円"

    def test_cash_flow_chart(self, analysis):
        fig = cash_flow_chart(analysis.periods, "millions")
        assert [t.name for t in fig.data] == ["Net cash", "EBITDA", "FCF"]
        assert list(fig.data[1].y) == pytest.approx([7.0, 9.5, 8.2])

    def test_build_charts(self, analysis):
        assert len(build_charts(analysis)) == 4


class TestChartReport:
    def test_report_contents(self, analysis):
        analysis.comments = [
            AnalysisComment("growth", ai_generated_text="Sales fell <slightly>.", display_order=6),
            AnalysisComment("overall", ai_generated_text="Generated", edited_text="Edited overall",
                            is_edited=True, display_order=1),
        ]
        report = export_chart_report(analysis)
        assert report.startswith("<!DOCTYPE html>")
        assert "Sample Manufacturing Co. Financial Analysis" in report
        assert "FY2021 - FY2023" in report
        assert "EBITDA Margin" in report
        assert "cdn.plot.ly" in report
        assert "Edited overall" in report
        assert "<p>Generated</p>" not in report
        assert "&lt;slightly&gt;" in report
        assert report.index("Edited overall") < report.index("Sales fell")

    def test_empty_analysis(self):
        report = export_chart_report(FinancialAnalysis(company_name="Empty Co."), title="Report")
        assert "<h1>Report</h1>" in report
        assert "Commentary" not in report
