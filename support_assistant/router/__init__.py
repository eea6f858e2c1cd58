"""
Router - Query Classification and Dispatch

Key Components:
- QueryClassifier: LLM routing decision with a keyword fallback
- compose_answer: Deterministic merge of branch outputs
- QueryRouter: Concurrent dispatch to retrieval and analytics
"""

from .classifier import DecisionParse, QueryClassifier, decode_decision, keyword_classify
from .merge import ANALYTICS_HEADER, NO_ANSWER_MESSAGE, compose_answer
from .router import QueryRouter

__all__ = [
    "DecisionParse",
    "QueryClassifier",
    "decode_decision",
    "keyword_classify",
    "ANALYTICS_HEADER",
    "NO_ANSWER_MESSAGE",
    "compose_answer",
    "QueryRouter",
]
