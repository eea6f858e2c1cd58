"""
Query Processor

Normalizes user queries and derives the keyword filter used by the
retriever's fallback tiers when semantic search is unavailable.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from qdrant_client import models

from ..common.ticket_store import keyword_filter, tenant_filter


@dataclass
class ParsedQuery:
    """Parsed representation of a user query"""
    original: str
    cleaned: str
    tenant: Optional[str] = None
    keywords: List[str] = field(default_factory=list)

    @property
    def has_keywords(self) -> bool:
        return bool(self.keywords)


class QueryProcessor:
    """
    Processes user queries for ticket search.

    Responsibilities:
    1. Clean and normalize query text for semantic search
    2. Extract the fallback keywords (lower-case, whitespace split,
       tokens longer than two characters, first N in original order)
    3. Build the indexed keyword filter and the tenant scan filter
    """

    MIN_KEYWORD_LENGTH = 3

    def __init__(self, max_keywords: int = 3):
        self._max_keywords = max_keywords

    def parse(self, query: str, tenant: Optional[str] = None) -> ParsedQuery:
        """
        Parse a user query into structured form.

        Args:
            query: Raw user query string
            tenant: Optional product filter

        Returns:
            ParsedQuery with cleaned text and keywords
        """
        return ParsedQuery(
            original=query,
            cleaned=self._clean_query(query),
            tenant=tenant or None,
            keywords=self.extract_keywords(query),
        )

    def extract_keywords(self, query: str) -> List[str]:
        """Extract fallback keywords from query text"""
        words = (query or "").lower().split()
        keywords = [w for w in words if len(w) >= self.MIN_KEYWORD_LENGTH]
        return keywords[:self._max_keywords]

    def build_filter(self, parsed: ParsedQuery) -> models.Filter:
        """OR over keywords of (subject | description | product), AND tenant."""
        return keyword_filter(parsed.keywords, parsed.tenant)

    def build_scan_filter(self, parsed: ParsedQuery) -> Optional[models.Filter]:
        """Tenant-only filter for the raw scan; keywords are matched client-side."""
        return tenant_filter(parsed.tenant)

    def _clean_query(self, query: str) -> str:
        """Clean and normalize query text"""
        cleaned = (query or "").strip()

        # Remove extra whitespace
        cleaned = re.sub(r'\s+', ' ', cleaned)

        return cleaned
