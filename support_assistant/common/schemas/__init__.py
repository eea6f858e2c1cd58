"""
Support Assistant Schemas

Ticket records from the store and the value objects built per query.
"""

from .ticket import Ticket
from .results import (
    ComposedAnswer,
    Query,
    RetrievalResult,
    RetrievalTier,
    RoutingDecision,
)

__all__ = [
    "Ticket",
    "Query",
    "RoutingDecision",
    "RetrievalTier",
    "RetrievalResult",
    "ComposedAnswer",
]
