"""
Support Assistant Common Module

Shared infrastructure for the retriever, analytics and router packages.
"""

from .config import AssistantConfig, load_config
from .embedding_service import EmbeddingService
from .llm_client import LLMClient
from .ticket_store import TicketStore

__all__ = [
    "AssistantConfig",
    "load_config",
    "EmbeddingService",
    "LLMClient",
    "TicketStore",
]
