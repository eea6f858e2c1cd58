"""
Application wiring.

Builds the QueryRouter component graph from an AssistantConfig. Every
component receives its collaborators explicitly; nothing is cached at
module level.
"""

import logging
from typing import Optional

from .analytics import AnalyticsEngine
from .common.config import AssistantConfig, load_config
from .common.embedding_service import EmbeddingService
from .common.errors import SupportAssistantError
from .common.llm_client import LLMClient
from .common.ticket_store import TicketStore
from .retriever import QueryProcessor, Searcher, Synthesizer
from .router import QueryClassifier, QueryRouter

logger = logging.getLogger("support_assistant.app")


def build_router(config: Optional[AssistantConfig] = None) -> QueryRouter:
    """
    Assemble a QueryRouter.

    Args:
        config: Loaded configuration (load_config() when omitted)

    Returns:
        Ready-to-use QueryRouter
    """
    config = config or load_config()

    llm = LLMClient.from_config(config.llm)
    if not llm.is_available:
        logger.warning("LLM provider %s not configured; using keyword routing and template answers",
                       config.llm.provider)

    embedding = EmbeddingService(model=config.embedding.model)
    store = TicketStore.from_config(config.store, embedding)
    try:
        store.ensure_text_indexes()
    except SupportAssistantError as e:
        logger.warning("Could not create keyword indexes on %s: %s", config.store.collection, e)

    searcher = Searcher(
        store,
        query_processor=QueryProcessor(max_keywords=config.retriever.max_keywords),
        default_limit=config.retriever.limit,
    )

    return QueryRouter(
        classifier=QueryClassifier(llm),
        searcher=searcher,
        synthesizer=Synthesizer(llm, max_tokens=config.llm.max_tokens),
        analytics=AnalyticsEngine(store, fetch_limit=config.analytics.fetch_limit),
    )
