"""
Result Merge

Composes retrieval and analytics outputs into a single ComposedAnswer.
Text order is fixed: retrieval answer, then the analytics section.
Charts travel alongside the text and are never rendered into it.
"""

from typing import Any, Dict, List, Optional, Sequence

from ..analytics.aggregator import AnalyticsReport, AnalyticsSummary, TimeStats
from ..common.schemas import ComposedAnswer

ANALYTICS_HEADER = "📊 **Analytics Dashboard:**"
ANALYTICS_INTRO = "I've generated comprehensive analytics for your support tickets:"
ANALYTICS_UNAVAILABLE_MESSAGE = (
    "Analytics are temporarily unavailable. Please try again in a moment."
)
NO_ANSWER_MESSAGE = (
    "I couldn't process your query. "
    "Please try asking about support tickets or requesting analytics."
)


def format_hours(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return f"{value:.2f} hours"


def _distribution_lines(title: str, counts: Dict[str, int]) -> List[str]:
    lines = [f"**{title}:**"]
    lines.extend(f"- **{label}:** {count} tickets" for label, count in counts.items())
    return lines


def _time_lines(title: str, stats: TimeStats) -> List[str]:
    return [
        f"**{title}:**",
        f"- **Average:** {format_hours(stats.average)}",
        f"- **Minimum:** {format_hours(stats.minimum)}",
        f"- **Maximum:** {format_hours(stats.maximum)}",
    ]


def render_analytics(summary: AnalyticsSummary) -> str:
    """Text enumeration of an analytics summary, header first."""
    blocks = [
        [ANALYTICS_HEADER, ANALYTICS_INTRO],
        _distribution_lines("Ticket Status Distribution", summary.status_counts),
        _distribution_lines("Ticket Priority Distribution", summary.priority_counts),
        _time_lines("Response Time Statistics", summary.response_time),
    ]
    return "\n\n".join("\n".join(block) for block in blocks)


def compose_answer(
    retrieval_text: Optional[str],
    ticket_ids: Sequence[str],
    analytics: Optional[AnalyticsReport],
    metadata: Optional[Dict[str, Any]] = None,
) -> ComposedAnswer:
    """
    Merge branch outputs into the final answer.

    Args:
        retrieval_text: Synthesized answer, or None if retrieval did not run
        ticket_ids: Tickets the retrieval answer is based on
        analytics: Analytics report, or None if analytics did not run
        metadata: Diagnostics to attach

    Returns:
        ComposedAnswer with de-duplicated ticket references
    """
    sections = []
    if retrieval_text and retrieval_text.strip():
        sections.append(retrieval_text.strip())

    if analytics is not None:
        if analytics.ok:
            sections.append(render_analytics(analytics.summary))
        else:
            sections.append(f"{ANALYTICS_HEADER}\n{ANALYTICS_UNAVAILABLE_MESSAGE}")

    text = "\n\n".join(sections) if sections else NO_ANSWER_MESSAGE

    return ComposedAnswer(
        text=text,
        ticket_ids=tuple(dict.fromkeys(ticket_ids)),
        charts=analytics.charts if analytics is not None else None,
        metadata=dict(metadata or {}),
    )
