"""
Financial aggregation and reporting for purchase sessions.

Usage:
    from resale_dashboard.reporting import SessionAnalyzer, ReportAggregator

    with SessionAnalyzer(backend=backend) as analyzer:
        result = analyzer.analyze_session(session_id)
        for store in result.stores:
            print(store.store_name, store.profit, store.roi)
"""

from .business_report import (
    BusinessReport,
    ExportNotImplementedError,
    ReportAggregator,
    ReportResult,
    build_report,
    default_period,
    export_report,
    report_to_dataframes,
)
from .registration_metrics import (
    RegistrationMetrics,
    StoreRegistrationDetail,
    completion_percent,
    compute_registration_metrics,
)
from .sales_analytics import (
    MonthlySales,
    RemainingProduct,
    SessionStrategy,
    analyze_remaining_product,
    compute_monthly_sales,
    compute_session_strategies,
    estimate_shipping,
    risk_level_for,
)
from .session_aggregations import (
    SessionAnalysisResult,
    SessionAnalyzer,
    SessionSummary,
    StoreAnalysis,
    allocate_shared_cost,
    allocated_cost_per_item,
    compute_session_summary,
    compute_store_analyses,
    platform_fee_for,
    safe_percentage,
    sales_expense_for,
)
from .store_overview import StoreOverview, compute_store_overview, rank_for_roi

__all__ = [
    # Session aggregation
    "StoreAnalysis",
    "SessionSummary",
    "SessionAnalyzer",
    "SessionAnalysisResult",
    "allocate_shared_cost",
    "allocated_cost_per_item",
    "compute_store_analyses",
    "compute_session_summary",
    "platform_fee_for",
    "sales_expense_for",
    "safe_percentage",
    # Registration
    "RegistrationMetrics",
    "StoreRegistrationDetail",
    "completion_percent",
    "compute_registration_metrics",
    # Business report
    "BusinessReport",
    "ReportAggregator",
    "ReportResult",
    "ExportNotImplementedError",
    "build_report",
    "default_period",
    "export_report",
    "report_to_dataframes",
    # Store overview
    "StoreOverview",
    "compute_store_overview",
    "rank_for_roi",
    # Sales analytics
    "MonthlySales",
    "SessionStrategy",
    "RemainingProduct",
    "compute_monthly_sales",
    "compute_session_strategies",
    "analyze_remaining_product",
    "estimate_shipping",
    "risk_level_for",
]
