"""
Analytics Aggregator

Aggregate statistics over the ticket collection:
- Status and priority distributions
- First-response time statistics
- Resolution time statistics
- Customer satisfaction distribution

summarize() is pure; AnalyticsEngine adds the store scan and chart
generation around it.
"""

import asyncio
import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from ..common.schemas import Ticket
from ..common.ticket_store import TicketStore
from .charts import ChartSet, build_chart_set

logger = logging.getLogger("support_assistant.analytics.aggregator")

UNKNOWN_LABEL = "Unknown"
DEFAULT_FETCH_LIMIT = 10000


@dataclass(frozen=True)
class TimeStats:
    """Average / min / max over a sample of hours"""
    average: Optional[float] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    count: int = 0

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "TimeStats":
        if not values:
            return cls()
        return cls(
            average=round(sum(values) / len(values), 2),
            minimum=min(values),
            maximum=max(values),
            count=len(values),
        )


@dataclass(frozen=True)
class SatisfactionStats:
    """Rating distribution keyed by whole-star bucket"""
    average: Optional[float] = None
    distribution: Dict[int, int] = field(default_factory=dict)
    count: int = 0


@dataclass(frozen=True)
class AnalyticsSummary:
    """Aggregate statistics over a set of tickets"""
    total: int = 0
    status_counts: Dict[str, int] = field(default_factory=dict)
    priority_counts: Dict[str, int] = field(default_factory=dict)
    response_time: TimeStats = field(default_factory=TimeStats)
    resolution_time: TimeStats = field(default_factory=TimeStats)
    satisfaction: SatisfactionStats = field(default_factory=SatisfactionStats)


def parse_hour_of_day(timestamp: Optional[str]) -> Optional[float]:
    """
    Fractional hour-of-day of a timestamp (e.g. "2023-06-01 12:15:00" -> 12.25).

    The import pipeline stores first-response *timestamps*, not durations,
    so "response time" is the wall-clock hour the first response was sent.
    """
    if not timestamp:
        return None
    try:
        moment = datetime.fromisoformat(timestamp.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return moment.hour + moment.minute / 60


def ordered_counts(labels: Iterable[str]) -> Dict[str, int]:
    """Count labels, ordered by count descending then label ascending."""
    counts = Counter(labels)
    return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))


def summarize(tickets: Sequence[Ticket]) -> AnalyticsSummary:
    """
    Aggregate a ticket sample.

    Args:
        tickets: Tickets to aggregate (any order)

    Returns:
        AnalyticsSummary; status and priority counts each sum to the total
    """
    response_hours: List[float] = []
    for t in tickets:
        hours = parse_hour_of_day(t.first_response_time)
        if hours is not None:
            response_hours.append(hours)

    resolution_hours = [
        t.resolution_hours for t in tickets
        if t.resolution_hours is not None and math.isfinite(t.resolution_hours)
    ]

    return AnalyticsSummary(
        total=len(tickets),
        status_counts=ordered_counts(t.status or UNKNOWN_LABEL for t in tickets),
        priority_counts=ordered_counts(t.priority or UNKNOWN_LABEL for t in tickets),
        response_time=TimeStats.from_values(response_hours),
        resolution_time=TimeStats.from_values(resolution_hours),
        satisfaction=_satisfaction_stats(tickets),
    )


def _satisfaction_stats(tickets: Sequence[Ticket]) -> SatisfactionStats:
    ratings = [
        t.satisfaction for t in tickets
        if t.satisfaction is not None and math.isfinite(t.satisfaction)
    ]
    if not ratings:
        return SatisfactionStats()

    buckets = Counter(math.floor(r) for r in ratings)
    return SatisfactionStats(
        average=round(sum(ratings) / len(ratings), 2),
        distribution=dict(sorted(buckets.items())),
        count=len(ratings),
    )


@dataclass(frozen=True)
class AnalyticsReport:
    """Outcome of one analytics run: a summary with charts, or an error chart"""
    charts: ChartSet
    summary: Optional[AnalyticsSummary] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.summary is not None


ERROR_CHART_TITLE = "Failed to generate analytics"


class AnalyticsEngine:
    """
    Computes analytics over the ticket store.

    aggregate() propagates store failures; report() is the failure-isolated
    entry point that always yields charts.
    """

    def __init__(self, store: TicketStore, fetch_limit: int = DEFAULT_FETCH_LIMIT):
        self._store = store
        self._fetch_limit = fetch_limit

    async def aggregate(self, tenant: Optional[str] = None) -> AnalyticsSummary:
        """Scan tickets for a tenant (or all tenants) and summarize them."""
        tickets = await asyncio.to_thread(self._store.fetch_all, tenant, self._fetch_limit)
        if len(tickets) >= self._fetch_limit:
            logger.warning("Analytics scan hit the fetch limit (%d), results are partial", self._fetch_limit)
        logger.info("Aggregating %d tickets (tenant=%s)", len(tickets), tenant)
        return summarize(tickets)

    @staticmethod
    def to_chart_specs(summary: AnalyticsSummary) -> ChartSet:
        return build_chart_set(summary)

    async def report(self, tenant: Optional[str] = None) -> AnalyticsReport:
        """
        Aggregate and chart, converting any failure to an error chart.

        Args:
            tenant: Optional product filter

        Returns:
            AnalyticsReport; charts is never None
        """
        try:
            summary = await self.aggregate(tenant)
            return AnalyticsReport(charts=self.to_chart_specs(summary), summary=summary)
        except Exception as e:
            logger.error("Analytics generation failed: %s", e)
            return AnalyticsReport(charts=ChartSet.failed(ERROR_CHART_TITLE), error=str(e))
