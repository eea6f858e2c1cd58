"""
Chart Specifications

Renderer-agnostic chart descriptors built from an AnalyticsSummary.
ChartSpec.to_dict() emits a Chart.js-compatible configuration; rendering
itself happens downstream.
"""

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from .aggregator import AnalyticsSummary

DEFAULT_COLOR = "rgba(201, 203, 207, 0.8)"

STATUS_COLORS = {
    "Open": "rgba(255, 99, 132, 0.8)",
    "Closed": "rgba(75, 192, 192, 0.8)",
    "Pending Customer Response": "rgba(255, 205, 86, 0.8)",
    "In Progress": "rgba(54, 162, 235, 0.8)",
    "Unknown": "rgba(153, 102, 255, 0.8)",
}

PRIORITY_COLORS = {
    "Critical": "rgba(220, 53, 69, 0.8)",
    "High": "rgba(255, 193, 7, 0.8)",
    "Medium": "rgba(40, 167, 69, 0.8)",
    "Low": "rgba(23, 162, 184, 0.8)",
    "Unknown": "rgba(108, 117, 125, 0.8)",
}

RESPONSE_TIME_COLORS = (
    "rgba(54, 162, 235, 0.8)",
    "rgba(75, 192, 192, 0.8)",
    "rgba(255, 99, 132, 0.8)",
)


@dataclass(frozen=True)
class ChartSeries:
    """One dataset of a chart"""
    data: Tuple[float, ...]
    label: str = ""
    colors: Tuple[str, ...] = ()
    border_width: int = 1


@dataclass(frozen=True)
class ChartSpec:
    """Declarative visualization descriptor"""
    kind: str  # "bar" | "doughnut"
    title: str
    labels: Tuple[str, ...]
    series: Tuple[ChartSeries, ...]
    options: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Chart.js configuration"""
        datasets = []
        for s in self.series:
            dataset: Dict[str, Any] = {
                "data": list(s.data),
                "backgroundColor": list(s.colors),
                "borderWidth": s.border_width,
            }
            if s.label:
                dataset["label"] = s.label
            if self.kind == "doughnut":
                dataset["borderColor"] = "#ffffff"
            else:
                dataset["borderColor"] = [c.replace("0.8", "1") for c in s.colors]
            datasets.append(dataset)

        options: Dict[str, Any] = {
            "responsive": True,
            "plugins": {
                "title": {
                    "display": True,
                    "text": self.title,
                    "font": {"size": 16, "weight": "bold"},
                },
            },
        }
        options.update(copy.deepcopy(self.options))

        return {
            "type": self.kind,
            "data": {"labels": list(self.labels), "datasets": datasets},
            "options": options,
        }


@dataclass(frozen=True)
class ChartSet:
    """The four analytics charts, or a single error chart"""
    status: Optional[ChartSpec] = None
    priority: Optional[ChartSpec] = None
    response_time: Optional[ChartSpec] = None
    satisfaction: Optional[ChartSpec] = None
    error: Optional[ChartSpec] = None

    @classmethod
    def failed(cls, message: str) -> "ChartSet":
        return cls(error=error_chart(message))

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"error": self.error.to_dict()}
        charts = {
            "statusDistribution": self.status,
            "priorityDistribution": self.priority,
            "responseTimeChart": self.response_time,
            "satisfactionChart": self.satisfaction,
        }
        return {name: spec.to_dict() for name, spec in charts.items() if spec is not None}


def _count_axis() -> Dict[str, Any]:
    return {"scales": {"y": {"beginAtZero": True, "ticks": {"stepSize": 1}}}}


def _colors(labels: Sequence[str], palette: Dict[str, str]) -> Tuple[str, ...]:
    return tuple(palette.get(label, DEFAULT_COLOR) for label in labels)


def _satisfaction_color(rating: int) -> str:
    if rating >= 4:
        return "rgba(40, 167, 69, 0.8)"
    if rating >= 3:
        return "rgba(255, 193, 7, 0.8)"
    return "rgba(220, 53, 69, 0.8)"


def status_chart(counts: Dict[str, int]) -> ChartSpec:
    labels = tuple(counts)
    return ChartSpec(
        kind="doughnut",
        title="Ticket Status Distribution",
        labels=labels,
        series=(ChartSeries(data=tuple(counts.values()), colors=_colors(labels, STATUS_COLORS), border_width=2),),
        options={"plugins": {
            "title": {"display": True, "text": "Ticket Status Distribution", "font": {"size": 16, "weight": "bold"}},
            "legend": {"position": "bottom"},
        }},
    )


def priority_chart(counts: Dict[str, int]) -> ChartSpec:
    labels = tuple(counts)
    return ChartSpec(
        kind="bar",
        title="Ticket Priority Distribution",
        labels=labels,
        series=(ChartSeries(
            data=tuple(counts.values()),
            label="Number of Tickets",
            colors=_colors(labels, PRIORITY_COLORS),
        ),),
        options=_count_axis(),
    )


def response_time_chart(summary: "AnalyticsSummary") -> ChartSpec:
    stats = summary.response_time
    values = tuple(v if v is not None else 0.0 for v in (stats.average, stats.minimum, stats.maximum))
    return ChartSpec(
        kind="bar",
        title=f"Response Time Statistics ({stats.count} tickets)",
        labels=("Average", "Minimum", "Maximum"),
        series=(ChartSeries(data=values, label="Response Time (hours)", colors=RESPONSE_TIME_COLORS),),
        options={"scales": {"y": {"beginAtZero": True, "title": {"display": True, "text": "Hours"}}}},
    )


def satisfaction_chart(summary: "AnalyticsSummary") -> ChartSpec:
    stats = summary.satisfaction
    buckets = sorted(stats.distribution)
    average = stats.average if stats.average is not None else 0
    return ChartSpec(
        kind="bar",
        title=f"Customer Satisfaction Distribution (Avg: {average}/5)",
        labels=tuple(f"{b} Star{'s' if b != 1 else ''}" for b in buckets),
        series=(ChartSeries(
            data=tuple(stats.distribution[b] for b in buckets),
            label="Number of Ratings",
            colors=tuple(_satisfaction_color(b) for b in buckets),
        ),),
        options=_count_axis(),
    )


def build_chart_set(summary: "AnalyticsSummary") -> ChartSet:
    """All four charts for a summary."""
    return ChartSet(
        status=status_chart(summary.status_counts),
        priority=priority_chart(summary.priority_counts),
        response_time=response_time_chart(summary),
        satisfaction=satisfaction_chart(summary),
    )


def error_chart(message: str) -> ChartSpec:
    """Placeholder chart shown when analytics could not be generated."""
    return ChartSpec(
        kind="doughnut",
        title=message,
        labels=("Error",),
        series=(ChartSeries(data=(1,), colors=("rgba(220, 53, 69, 0.8)",), border_width=2),),
    )
