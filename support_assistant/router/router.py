"""
Query Router

Entry point for user questions:
1. Classify the query (LLM, keyword fallback)
2. Run the retrieval and analytics branches concurrently
3. Merge their outputs into one ComposedAnswer

Each branch converts its own failures into a safe default, and route()
never raises to its caller.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..analytics.aggregator import AnalyticsEngine, AnalyticsReport
from ..common.schemas import ComposedAnswer, Query, RetrievalResult, RoutingDecision
from ..retriever.searcher import Searcher
from ..retriever.synthesizer import SynthesizedAnswer, Synthesizer
from .classifier import QueryClassifier
from .merge import compose_answer

logger = logging.getLogger("support_assistant.router")

ROUTE_ERROR_MESSAGE = "I encountered an error while processing your request. Please try again."
RETRIEVAL_ERROR_MESSAGE = (
    "I encountered an error while searching for support tickets. Please try again."
)


class QueryRouter:
    """
    Routes questions to ticket retrieval and/or analytics.

    Components are injected; see app.build_router() for the default wiring.
    """

    def __init__(
        self,
        classifier: QueryClassifier,
        searcher: Searcher,
        synthesizer: Synthesizer,
        analytics: AnalyticsEngine,
    ):
        self._classifier = classifier
        self._searcher = searcher
        self._synthesizer = synthesizer
        self._analytics = analytics

    async def route(
        self,
        query: str,
        tenant: Optional[str] = None,
        thread_id: Optional[str] = None,
    ) -> ComposedAnswer:
        """
        Answer a user question.

        Args:
            query: Natural-language question
            tenant: Optional product filter applied to both branches
            thread_id: Conversation identifier, echoed in metadata

        Returns:
            ComposedAnswer; failures surface as prose plus metadata
        """
        request = Query(text=query, tenant=tenant or None, thread_id=thread_id)
        try:
            return await self._route(request)
        except Exception as e:
            logger.exception("Routing failed: %s", e)
            return ComposedAnswer(
                text=ROUTE_ERROR_MESSAGE,
                metadata={"thread_id": thread_id, "error": str(e)},
            )

    async def _route(self, request: Query) -> ComposedAnswer:
        logger.info("Routing query: %r (tenant=%s)", request.text, request.tenant)
        decision = await self._classifier.classify(request.text)

        retrieval, analytics = await asyncio.gather(
            self._retrieval_branch(request) if decision.needs_retrieval else _skipped(),
            self._analytics_branch(request) if decision.needs_analytics else _skipped(),
        )

        result: Optional[RetrievalResult] = None
        answer: Optional[SynthesizedAnswer] = None
        if retrieval is not None:
            result, answer = retrieval

        metadata = self._build_metadata(request, decision, result, answer, analytics)
        return compose_answer(
            retrieval_text=answer.text if answer is not None else None,
            ticket_ids=answer.ticket_ids if answer is not None else (),
            analytics=analytics,
            metadata=metadata,
        )

    async def _retrieval_branch(
        self, request: Query
    ) -> Tuple[RetrievalResult, SynthesizedAnswer]:
        try:
            result = await self._searcher.search(request.text, tenant=request.tenant)
            answer = await self._synthesizer.synthesize(request.text, result.tickets)
            return result, answer
        except Exception as e:
            logger.error("Retrieval branch failed: %s", e)
            return (
                RetrievalResult.empty(f"retrieval failed: {e}"),
                SynthesizedAnswer(text=RETRIEVAL_ERROR_MESSAGE, warnings=[str(e)]),
            )

    async def _analytics_branch(self, request: Query) -> AnalyticsReport:
        return await self._analytics.report(request.tenant)

    @staticmethod
    def _build_metadata(
        request: Query,
        decision: RoutingDecision,
        result: Optional[RetrievalResult],
        answer: Optional[SynthesizedAnswer],
        analytics: Optional[AnalyticsReport],
    ) -> Dict[str, Any]:
        warnings: List[str] = []
        metadata: Dict[str, Any] = {
            "thread_id": request.thread_id,
            "tenant": request.tenant,
            "routing_source": decision.source,
            "needs_retrieval": decision.needs_retrieval,
            "needs_analytics": decision.needs_analytics,
            "rationale": decision.rationale,
        }

        if result is not None:
            metadata["retrieval_tier"] = result.tier.value
            metadata["fallback_used"] = result.fallback_used
            metadata["fallback_reason"] = result.fallback_reason
        if answer is not None:
            metadata["synthesis_fallback"] = answer.used_fallback
            warnings.extend(answer.warnings)
        if analytics is not None and analytics.error:
            metadata["analytics_error"] = analytics.error
            warnings.append("Analytics unavailable")

        metadata["warnings"] = warnings
        return metadata


async def _skipped() -> None:
    return None
