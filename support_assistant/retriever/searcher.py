"""
Searcher

Retrieves support tickets through a three-tier fallback cascade:

1. Semantic nearest-neighbour search
2. Structured keyword filter through the store's query API
3. Raw object scroll over the tenant, matching keywords as substrings

Each tier is attempted at most once. A transport failure (store unreachable)
ends the cascade immediately with an empty result, since every tier depends
on the same store.
"""

import asyncio
import logging
from typing import List, Optional

from ..common.errors import EmbeddingUnavailable, TransportUnavailable
from ..common.schemas import RetrievalResult, RetrievalTier, Ticket
from ..common.ticket_store import TicketStore
from .query_processor import ParsedQuery, QueryProcessor

logger = logging.getLogger("support_assistant.retriever.searcher")


class Searcher:
    """
    Searches the ticket store with graceful degradation.

    Tier failures are classified, never raised: search() always returns a
    RetrievalResult whose tier marker records which strategy produced it.
    """

    def __init__(
        self,
        store: TicketStore,
        query_processor: Optional[QueryProcessor] = None,
        default_limit: int = 10,
    ):
        """
        Initialize searcher.

        Args:
            store: Ticket store client
            query_processor: Keyword extraction for the fallback tiers
            default_limit: Result count when search() is called without one
        """
        self._store = store
        self._processor = query_processor or QueryProcessor()
        self._default_limit = default_limit

    async def search(
        self,
        query: str,
        tenant: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> RetrievalResult:
        """
        Search for tickets relevant to a query.

        Args:
            query: Raw user query
            tenant: Optional product filter (exact match)
            limit: Maximum number of tickets

        Returns:
            RetrievalResult ordered by relevance rank of the producing tier
        """
        if limit is None:
            limit = self._default_limit
        if limit <= 0:
            return RetrievalResult.empty("limit must be positive")
        parsed = self._processor.parse(query, tenant)

        # Tier 1: semantic search
        try:
            tickets = await asyncio.to_thread(
                self._store.semantic_search, parsed.cleaned, parsed.tenant, limit
            )
            logger.info("Semantic search returned %d tickets", len(tickets))
            return RetrievalResult(
                tickets=tuple(tickets[:limit]),
                tier=RetrievalTier.SEMANTIC,
            )
        except TransportUnavailable as e:
            logger.warning("Ticket store unreachable, abandoning search: %s", e)
            return RetrievalResult.empty(f"store unreachable: {e}")
        except EmbeddingUnavailable as e:
            logger.warning("Semantic search unavailable, falling back to keywords: %s", e)
            reason = f"embedding unavailable: {e}"
        except Exception as e:
            logger.warning("Semantic search failed, falling back to keywords: %s", e)
            reason = f"semantic search failed: {e}"

        return await self._keyword_search(parsed, limit, reason)

    async def _keyword_search(self, parsed: ParsedQuery, limit: int, reason: str) -> RetrievalResult:
        """
        Tiers 2 and 3.

        Tier 2 asks the store's word indexes and keeps the hits that also pass
        the substring check. Tier 3 scrolls the tenant's tickets and applies
        the substring check itself, so "phone" finds "iPhone" there.
        """
        if not parsed.has_keywords:
            logger.info("No usable keywords in query, nothing to fall back to")
            return RetrievalResult.empty(f"{reason}; no usable keywords")

        keywords = parsed.keywords
        logger.debug("Keyword fallback with %s (tenant=%s)", keywords, parsed.tenant)

        # Tier 2: structured filter query
        try:
            tickets = await asyncio.to_thread(
                self._store.filter_search, self._processor.build_filter(parsed), limit
            )
            tickets = [ticket for ticket in tickets if ticket.mentions_any(keywords)]
            if tickets:
                logger.info("Structured keyword search returned %d tickets", len(tickets))
                return self._fallback_result(tickets, limit, RetrievalTier.KEYWORD_STRUCTURED, reason)
            logger.info("Structured keyword search found nothing, trying raw fetch")
        except TransportUnavailable as e:
            logger.warning("Ticket store unreachable during keyword search: %s", e)
            return RetrievalResult.empty(f"{reason}; store unreachable: {e}")
        except Exception as e:
            logger.warning("Structured keyword search failed: %s", e)

        # Tier 3: raw object fetch
        try:
            tickets = await asyncio.to_thread(
                self._store.fetch_objects,
                self._processor.build_scan_filter(parsed),
                limit,
                lambda ticket: ticket.mentions_any(keywords),
            )
        except Exception as e:
            logger.error("Raw object fetch failed: %s", e)
            return RetrievalResult.empty(f"{reason}; all fallback tiers failed")

        if not tickets:
            return RetrievalResult.empty(f"{reason}; no keyword matches")

        logger.info("Raw object fetch returned %d tickets", len(tickets))
        return self._fallback_result(tickets, limit, RetrievalTier.KEYWORD_RAW, reason)

    @staticmethod
    def _fallback_result(
        tickets: List[Ticket],
        limit: int,
        tier: RetrievalTier,
        reason: str,
    ) -> RetrievalResult:
        return RetrievalResult(
            tickets=tuple(tickets[:limit]),
            tier=tier,
            fallback_used=True,
            fallback_reason=reason,
        )
