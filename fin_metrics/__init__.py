"""Financial Metrics Engine: multi-period ratio analysis for Japanese SME statements."""
from .types import *
from .formatting import *
from .calculations import (
    calculate_all_metrics,
    calculate_average_sales_growth_rate,
    calculate_capex_auto,
    calculate_depreciation_from_account_details,
    calculate_interest_bearing_debt,
    create_period_comparison,
    recalculate_periods,
)
from .config import ConfigError, Settings, configure_logging, load_settings
from .metric_catalog import METRIC_DEFS, build_metrics_table
from .records import RecordError, duplicate_period, period_from_row
from .service import PeriodStore, StoreError, recalculate_analysis
from .validation import validate_financial_data, format_validation_errors
