"""
Support Assistant

Question answering over a customer-support ticket collection.

- Retrieval: semantic search with keyword fallbacks, LLM-synthesized answers
- Analytics: status/priority/response-time/satisfaction statistics as charts
- Router: decides per question which of the two to run, and merges them

Usage:
    from support_assistant.app import build_router
    from support_assistant.common import load_config

    router = build_router(load_config())
    answer = await router.route("How do I fix my battery issue?")
"""

__version__ = "0.1.0"
