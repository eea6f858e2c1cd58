"""
Retriever - Support Ticket Retrieval

Finds tickets relevant to a question and turns them into an answer.

Key Components:
- QueryProcessor: Normalizes queries and builds the keyword fallback filter
- Searcher: Three-tier search (semantic → structured keyword → raw fetch)
- Synthesizer: LLM-based answer synthesis with a template fallback

Pipeline:
1. Parse user query (cleaned text, fallback keywords)
2. Search the ticket store, degrading tier by tier on failure
3. Synthesize an answer citing ticket IDs
"""

from .query_processor import QueryProcessor, ParsedQuery
from .searcher import Searcher
from .synthesizer import Synthesizer, SynthesizedAnswer

__all__ = [
    "QueryProcessor",
    "ParsedQuery",
    "Searcher",
    "Synthesizer",
    "SynthesizedAnswer",
]
