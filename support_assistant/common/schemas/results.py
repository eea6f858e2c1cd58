"""
Per-request value objects passed between router, retriever and analytics.

All of them are built once and never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from .ticket import Ticket

if TYPE_CHECKING:
    from ...analytics.charts import ChartSet


@dataclass(frozen=True)
class Query:
    """A user question as received by the router"""
    text: str
    tenant: Optional[str] = None
    thread_id: Optional[str] = None


@dataclass(frozen=True)
class RoutingDecision:
    """Which capabilities a query needs"""
    needs_retrieval: bool
    needs_analytics: bool
    rationale: str = ""
    source: str = "llm"  # "llm" or "keyword"


class RetrievalTier(str, Enum):
    """Retrieval strategy that produced a result"""
    SEMANTIC = "semantic"
    KEYWORD_STRUCTURED = "keyword-structured"
    KEYWORD_RAW = "keyword-raw"
    EMPTY = "empty"


@dataclass(frozen=True)
class RetrievalResult:
    """Tickets in relevance order plus how they were found"""
    tickets: Tuple[Ticket, ...] = ()
    tier: RetrievalTier = RetrievalTier.EMPTY
    fallback_used: bool = False
    fallback_reason: Optional[str] = None

    @classmethod
    def empty(cls, reason: Optional[str] = None) -> "RetrievalResult":
        return cls(
            tickets=(),
            tier=RetrievalTier.EMPTY,
            fallback_used=reason is not None,
            fallback_reason=reason,
        )

    @property
    def ticket_ids(self) -> Tuple[str, ...]:
        return tuple(t.ticket_id for t in self.tickets)


@dataclass(frozen=True)
class ComposedAnswer:
    """Final answer handed back to the caller"""
    text: str
    ticket_ids: Tuple[str, ...] = ()
    charts: Optional["ChartSet"] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON transport"""
        return {
            "answer": self.text,
            "references": {"ticketIds": list(self.ticket_ids)},
            "chart": self.charts.to_dict() if self.charts is not None else None,
            "metadata": dict(self.metadata),
        }
