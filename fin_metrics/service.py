"""
fin_metrics/service.py
======================
Recalculation of an analysis against an injected period store.

The store is any object implementing PeriodStore; handlers pass their own
client in, nothing here holds a connection.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .calculations import recalculate_periods
from .records import (
    derived_inputs, metrics_to_row, order_periods, period_from_row, period_id_from_row,
)
from .types import ManualInputs, RecalculationSummary

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A read or write against the period store failed."""


class PeriodStore(Protocol):
    def fetch_periods(self, analysis_id: str) -> List[Mapping[str, Any]]:
        """Period rows (with joined statement/manual/detail rows) for one analysis."""
        ...

    def replace_metrics(self, analysis_id: str, period_id: str, row: Dict[str, Any]) -> None:
        ...

    def replace_manual_input(self, period_id: str, input_type: str, amount: Optional[float]) -> None:
        ...


def recalculate_analysis(store: PeriodStore, analysis_id: str) -> RecalculationSummary:
    """
    Recompute metrics for every period of an analysis and write them back.

    Depreciation and CAPEX the engine derived are stored under their own
    derived input types; user-entered manual inputs are never overwritten,
    so derived values follow later edits to account details and assets.
    Derived inputs are written before the metrics row, so a period whose
    metrics were replaced has its inputs saved too.

    Fetch failures propagate. A failed write is logged and counted, and the
    remaining periods are still written.
    """
    rows = store.fetch_periods(analysis_id)
    logger.info("Recalculating analysis %s: %d periods", analysis_id, len(rows))

    ids_by_year: Dict[int, str] = {}
    entered_by_year: Dict[int, ManualInputs] = {}
    periods = []
    for row in rows:
        period = period_from_row(row)
        ids_by_year[period.fiscal_year] = period_id_from_row(row)
        entered_by_year[period.fiscal_year] = period.manual_inputs
        periods.append(period)

    enriched = recalculate_periods(order_periods(periods))

    success = 0
    errors: List[str] = []
    for period in enriched:
        period_id = ids_by_year[period.fiscal_year]
        manual = period.manual_inputs
        logger.debug(
            "FY%s depreciation=%s capex=%s", period.fiscal_year, manual.depreciation, manual.capex,
        )
        step = ""
        try:
            for input_type, amount in derived_inputs(entered_by_year[period.fiscal_year], manual).items():
                step = input_type
                store.replace_manual_input(period_id, input_type, amount)
            step = "metrics"
            store.replace_metrics(analysis_id, period_id, metrics_to_row(period.metrics, analysis_id, period_id))
        except StoreError as e:
            logger.error(
                "FY%s: failed to save %s for period %s: %s", period.fiscal_year, step, period_id, e,
            )
            errors.append(f"FY{period.fiscal_year}: failed to save {step}: {e}")
            continue
        success += 1

    summary = RecalculationSummary(
        periods_processed=len(enriched),
        success_count=success,
        error_count=len(errors),
        errors=errors,
    )
    logger.info(
        "Recalculated analysis %s: %d ok, %d failed",
        analysis_id, summary.success_count, summary.error_count,
    )
    return summary
