"""
Synthesizer

LLM-based answer synthesis from retrieved support tickets.

Falls back to a deterministic template listing when the LLM is not
configured or the generation call fails. Ticket references always cover
every retrieved ticket, whichever path produced the text.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..common.llm_client import LLMClient
from ..common.llm_utils import is_quota_error
from ..common.schemas import Ticket

logger = logging.getLogger("support_assistant.retriever.synthesizer")


@dataclass
class SynthesizedAnswer:
    """Answer text plus the tickets it is based on"""
    text: str
    ticket_ids: Tuple[str, ...] = ()
    used_fallback: bool = False
    warnings: List[str] = field(default_factory=list)


NO_RESULTS_MESSAGE = (
    "I couldn't find any relevant support tickets for your query. "
    "Please try rephrasing your question or check if the product name is correct."
)

SYNTHESIS_PROMPT = """You are a helpful customer support assistant. Based on the following support tickets, provide a comprehensive answer to the user's query.

User Query: "{query}"

Relevant Support Tickets:
{context}

Instructions:
1. Provide a clear, helpful answer based on the ticket information
2. If multiple tickets are relevant, synthesize the information
3. Mention specific ticket IDs when referencing solutions (e.g. "Ticket #123")
4. If no direct solution exists, suggest next steps
5. Keep the response concise but informative

Answer:"""

FALLBACK_HEADER = "I found {count} relevant support ticket(s) for your query:"

FALLBACK_TICKET_TEMPLATE = """**Ticket #{ticket_id}** ({priority} priority)
Subject: {subject}
Product: {product}
Status: {status}
Issue: {description}
Resolution: {resolution}"""

FALLBACK_NOTE = (
    "---\n"
    "**Note**: AI-generated summaries are temporarily unavailable, "
    "so matching tickets are listed directly (fallback mode)."
)

# Canned tips, checked in order; the first category whose trigger appears wins
TIP_TRIGGERS = (
    ("battery", ("battery", "charging", "charge", "power drain")),
    ("camera", ("camera", "photo", "lens", "picture")),
    ("setup", ("setup", "set up", "install", "configure", "pairing")),
)

TIPS = {
    "battery": """**Battery tips:**
- Update the device to the latest software version
- Check battery health in settings and calibrate by fully charging, then discharging
- Reduce screen brightness and disable background app refresh""",
    "camera": """**Camera tips:**
- Clean the lens and remove any case that may block it
- Restart the camera app, then the device
- Check that the camera has storage and permission access""",
    "setup": """**Setup tips:**
- Follow the quick-start guide step by step and keep the device charged
- Make sure Wi-Fi / Bluetooth is enabled and within range
- Restart both devices and retry pairing if setup stalls""",
}

MAX_FALLBACK_TICKETS = 3
DESCRIPTION_LIMIT = 150
RESOLUTION_LIMIT = 200


class Synthesizer:
    """
    Synthesizes answers from retrieved tickets using an LLM.

    Falls back to template formatting if the LLM is not available.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None, max_tokens: int = 1000):
        """
        Initialize synthesizer.

        Args:
            llm_client: Shared LLM client (optional)
            max_tokens: Completion budget for synthesized answers
        """
        self._llm = llm_client
        self._max_tokens = max_tokens

    @property
    def has_llm(self) -> bool:
        """Check if LLM is available"""
        return self._llm is not None and self._llm.is_available

    async def synthesize(self, query: str, tickets: Sequence[Ticket]) -> SynthesizedAnswer:
        """
        Synthesize an answer from retrieved tickets.

        Args:
            query: User query text
            tickets: Retrieved tickets in relevance order

        Returns:
            SynthesizedAnswer with text and ticket references
        """
        if not tickets:
            return SynthesizedAnswer(
                text=NO_RESULTS_MESSAGE,
                ticket_ids=(),
                warnings=["No search results found"],
            )

        ticket_ids = _unique_ids(tickets)

        if self.has_llm:
            try:
                prompt = SYNTHESIS_PROMPT.format(
                    query=query,
                    context=self._format_context(tickets),
                )
                text = await asyncio.to_thread(
                    self._llm.generate, prompt, max_tokens=self._max_tokens
                )
                if text:
                    return SynthesizedAnswer(text=text, ticket_ids=ticket_ids)
                logger.warning("LLM returned an empty answer, using template")
            except Exception as e:
                if is_quota_error(e):
                    logger.warning("LLM quota or rate limit reached, using template: %s", e)
                else:
                    logger.warning("LLM synthesis failed: %s", e)

        return SynthesizedAnswer(
            text=self.render_fallback(query, tickets),
            ticket_ids=ticket_ids,
            used_fallback=True,
            warnings=["LLM not available - showing raw results"],
        )

    def render_fallback(self, query: str, tickets: Sequence[Ticket]) -> str:
        """Deterministic listing of the top tickets without LLM synthesis."""
        sections = [FALLBACK_HEADER.format(count=len(tickets))]

        for ticket in tickets[:MAX_FALLBACK_TICKETS]:
            sections.append(FALLBACK_TICKET_TEMPLATE.format(
                ticket_id=ticket.ticket_id,
                priority=ticket.priority or "Unknown",
                subject=ticket.subject or "(no subject)",
                product=ticket.product or "Unknown",
                status=ticket.status or "Unknown",
                description=_truncate(ticket.description, DESCRIPTION_LIMIT),
                resolution=_truncate(ticket.resolution or "No resolution provided", RESOLUTION_LIMIT),
            ))

        remaining = len(tickets) - MAX_FALLBACK_TICKETS
        if remaining > 0:
            plural = "s" if remaining != 1 else ""
            sections.append(f"...and {remaining} more related ticket{plural}.")

        tip = self.select_tip(query)
        if tip:
            sections.append(TIPS[tip])

        sections.append(FALLBACK_NOTE)
        return "\n\n".join(sections)

    @staticmethod
    def select_tip(query: str) -> Optional[str]:
        """Pick at most one canned tip category for a query."""
        text = (query or "").lower()
        for category, triggers in TIP_TRIGGERS:
            if any(trigger in text for trigger in triggers):
                return category
        return None

    def _format_context(self, tickets: Sequence[Ticket]) -> str:
        """Format tickets for the LLM prompt"""
        return "\n---\n".join(t.to_context_block() for t in tickets)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _unique_ids(tickets: Sequence[Ticket]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(t.ticket_id for t in tickets))
