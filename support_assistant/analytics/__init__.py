"""
Analytics - Support Ticket Statistics

Aggregates the ticket collection into distributions and timing statistics,
and describes them as renderer-agnostic chart specifications.
"""

from .aggregator import (
    AnalyticsEngine,
    AnalyticsReport,
    AnalyticsSummary,
    SatisfactionStats,
    TimeStats,
    summarize,
)
from .charts import ChartSeries, ChartSet, ChartSpec, error_chart

__all__ = [
    "AnalyticsEngine",
    "AnalyticsReport",
    "AnalyticsSummary",
    "SatisfactionStats",
    "TimeStats",
    "summarize",
    "ChartSeries",
    "ChartSet",
    "ChartSpec",
    "error_chart",
]
