"""
Query Classifier

Decides which capabilities a query needs: ticket retrieval, analytics, or
both.

The LLM is asked for a small JSON verdict. Its output is decoded into a
tagged DecisionParse; anything malformed (or a failed LLM call) falls back
to a deterministic keyword classifier.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, ValidationError

from ..common.errors import ParseFailure
from ..common.llm_client import LLMClient
from ..common.llm_utils import extract_json_object, is_quota_error
from ..common.schemas import RoutingDecision

logger = logging.getLogger("support_assistant.router.classifier")


CLASSIFY_PROMPT = """Analyze this customer support query and determine which tools are needed:

Query: "{query}"

Available Tools:
1. RAG Agent - For finding specific support tickets, solutions, troubleshooting steps, or product issues
2. Chart Tool - For generating analytics, statistics, charts, or data visualizations

Rules:
- Use RAG if query asks about: specific problems, issues, solutions, troubleshooting, "common problems", "how to fix", product names with issues
- Use Chart if query asks about: statistics, analytics, charts, data, distribution, "show me stats", trends
- Use BOTH if query combines these (e.g., "common issues AND analytics", "problems and show charts")

Respond with ONLY a JSON object:
{{
  "needsRAG": boolean,
  "needsChart": boolean,
  "reasoning": "explanation"
}}"""

ISSUE_PATTERN = re.compile(
    r"issue|problem|fix|trouble|error|common|help|setup|install|battery|camera|tv"
)
ANALYTICS_PATTERN = re.compile(
    r"analytics|chart|statistic|data|show.*stat|distribution|trend|visual"
)


class _DecisionPayload(BaseModel):
    """Wire shape of the LLM verdict; flags must be real JSON booleans."""

    model_config = ConfigDict(extra="ignore")

    needs_retrieval: StrictBool = Field(validation_alias=AliasChoices("needsRAG", "needsRetrieval"))
    needs_analytics: StrictBool = Field(validation_alias=AliasChoices("needsChart", "needsAnalytics"))
    reasoning: Any = ""


@dataclass(frozen=True)
class DecisionParse:
    """Tagged decode result: a decision, or the reason there is none"""
    decision: Optional[RoutingDecision] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.decision is not None

    def unwrap(self) -> RoutingDecision:
        if self.decision is None:
            raise ParseFailure(self.error or "malformed classifier output")
        return self.decision


def decode_decision(raw: Optional[str]) -> DecisionParse:
    """
    Decode classifier output into a RoutingDecision.

    The first balanced {...} span is taken from the text, so prose or code
    fences around the JSON are tolerated.

    Args:
        raw: Raw LLM output

    Returns:
        DecisionParse; never raises
    """
    span = extract_json_object(raw or "")
    if span is None:
        return DecisionParse(error="no JSON object in classifier output")

    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        return DecisionParse(error=f"invalid JSON: {e}")

    if not isinstance(data, dict):
        return DecisionParse(error="classifier output is not a JSON object")

    try:
        payload = _DecisionPayload.model_validate(data)
    except ValidationError as e:
        return DecisionParse(error=f"invalid decision: {e.error_count()} field error(s)")

    return DecisionParse(decision=RoutingDecision(
        needs_retrieval=payload.needs_retrieval,
        needs_analytics=payload.needs_analytics,
        rationale="" if payload.reasoning is None else str(payload.reasoning),
        source="llm",
    ))


def keyword_classify(text: str) -> RoutingDecision:
    """Deterministic fallback; defaults to retrieval when nothing matches."""
    lowered = (text or "").lower()
    needs_retrieval = bool(ISSUE_PATTERN.search(lowered))
    needs_analytics = bool(ANALYTICS_PATTERN.search(lowered))

    if not needs_retrieval and not needs_analytics:
        return RoutingDecision(
            needs_retrieval=True,
            needs_analytics=False,
            rationale="No keyword matched, defaulting to ticket search",
            source="keyword",
        )

    return RoutingDecision(
        needs_retrieval=needs_retrieval,
        needs_analytics=needs_analytics,
        rationale="Fallback analysis based on keywords",
        source="keyword",
    )


class QueryClassifier:
    """
    LLM-backed query classifier with a keyword fallback.

    classify() always returns a decision.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None, max_tokens: int = 200):
        self._llm = llm_client
        self._max_tokens = max_tokens

    @property
    def has_llm(self) -> bool:
        return self._llm is not None and self._llm.is_available

    async def classify(self, text: str) -> RoutingDecision:
        """
        Classify a query.

        Args:
            text: User query

        Returns:
            RoutingDecision from the LLM, or from keywords on any failure
        """
        if not self.has_llm:
            logger.debug("No LLM configured, classifying by keywords")
            return keyword_classify(text)

        try:
            raw = await asyncio.to_thread(
                self._llm.generate,
                CLASSIFY_PROMPT.format(query=text),
                max_tokens=self._max_tokens,
            )
        except Exception as e:
            if is_quota_error(e):
                logger.warning("Classifier LLM quota or rate limit reached, using keywords: %s", e)
            else:
                logger.warning("Classifier LLM call failed, using keywords: %s", e)
            return keyword_classify(text)

        try:
            decision = decode_decision(raw).unwrap()
        except ParseFailure as e:
            logger.warning("Malformed classifier output (%s), using keywords", e)
            return keyword_classify(text)

        logger.info(
            "Routing: retrieval=%s analytics=%s",
            decision.needs_retrieval,
            decision.needs_analytics,
        )
        return decision
